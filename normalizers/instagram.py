"""
Instagram Normalizer — maps intercepted Instagram media payloads.

Expects the private web API media shape (taken_at epoch seconds, a nested
`user` object, `caption.text`). Required: id, taken_at, user.username.
"""

from normalizers import (
    BaseNormalizer, ParsedPost, from_epoch, require, safe_get, to_count,
)

# media_type codes used by the Instagram API
MEDIA_TYPES = {
    1: "image",
    2: "video",
    8: "carousel",
}

# product_type values checked when media_type is not a known code
PRODUCT_TYPES = {
    "clips": "reel",
    "story": "story",
}


class InstagramNormalizer(BaseNormalizer):
    """Normalizes Instagram photo, video, carousel, reel and story items."""

    platform = "instagram"

    def get_content_type(self, raw: dict) -> str:
        media_type = raw.get("media_type")
        if media_type in MEDIA_TYPES:
            return MEDIA_TYPES[media_type]
        return PRODUCT_TYPES.get(raw.get("product_type"), "unknown")

    def parse(self, raw: dict) -> ParsedPost:
        raw_id = str(require(raw, self.platform, "id"))
        created_at = from_epoch(
            require(raw, self.platform, "taken_at"), self.platform, "taken_at", raw_id
        )
        username = require(raw, self.platform, "user", "username")

        # Instagram reports views on video surfaces only
        impressions = raw.get("view_count") or raw.get("play_count")

        sound_id = safe_get(
            raw, "clips_metadata", "music_info", "music_asset_info", "audio_asset_id"
        )

        return ParsedPost(
            raw_id=raw_id,
            created_at=created_at,
            impressions=to_count(impressions),
            likes=to_count(raw.get("like_count")),
            comments=to_count(raw.get("comment_count")),
            shares=to_count(raw.get("share_count")),
            saves=to_count(raw.get("save_count")),
            content_type=self.get_content_type(raw),
            caption=safe_get(raw, "caption", "text", default="") or "",
            username=str(username),
            follower_count=to_count(safe_get(raw, "user", "follower_count")),
            verified=bool(safe_get(raw, "user", "is_verified", default=False)),
            sound_id=str(sound_id) if sound_id is not None else None,
            duration=raw.get("video_duration") or 0,
            region=safe_get(raw, "location", "name", default="unknown"),
        )
