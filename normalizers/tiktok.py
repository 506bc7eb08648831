"""
TikTok Normalizer — maps intercepted TikTok item payloads.

Uses the same BaseNormalizer interface as the Instagram normalizer.
Required: id, createTime (epoch seconds), stats, author.uniqueId.
"""

from normalizers import (
    BaseNormalizer, MalformedInputError, ParsedPost, from_epoch, require,
    safe_get, to_count,
)


class TikTokNormalizer(BaseNormalizer):
    """Normalizes TikTok video items (item_list / itemStruct shape)."""

    platform = "tiktok"

    def get_content_type(self, raw: dict) -> str:
        return "video"

    def parse(self, raw: dict) -> ParsedPost:
        raw_id = str(require(raw, self.platform, "id"))
        created_at = from_epoch(
            require(raw, self.platform, "createTime"), self.platform,
            "createTime", raw_id,
        )
        stats = raw.get("stats")
        if not isinstance(stats, dict):
            raise MalformedInputError(self.platform, "stats", raw_id)
        username = require(raw, self.platform, "author", "uniqueId")

        sound_id = safe_get(raw, "music", "id")

        return ParsedPost(
            raw_id=raw_id,
            created_at=created_at,
            impressions=to_count(stats.get("playCount")),
            likes=to_count(stats.get("diggCount")),
            comments=to_count(stats.get("commentCount")),
            shares=to_count(stats.get("shareCount")),
            saves=to_count(stats.get("collectCount")),
            content_type=self.get_content_type(raw),
            caption=raw.get("desc") or "",
            username=str(username),
            follower_count=to_count(safe_get(raw, "authorStats", "followerCount")),
            verified=bool(safe_get(raw, "author", "verified", default=False)),
            sound_id=str(sound_id) if sound_id is not None else None,
            duration=safe_get(raw, "video", "duration", default=0),
            region=raw.get("locationCreated") or "unknown",
        )
