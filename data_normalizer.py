"""
Data Normalizer — standardizes platform payloads into ContentRecords.

Dispatches each raw item to the normalizer registered for its platform tag.
Platforms are never guessed from the payload shape: callers say which
platform a batch came from.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Union

from normalizers import BaseNormalizer, ContentRecord, MalformedInputError
from normalizers.instagram import InstagramNormalizer
from normalizers.tiktok import TikTokNormalizer
from taxonomy_loader import DEFAULT_TAXONOMY, Taxonomy

logger = logging.getLogger(__name__)

NORMALIZER_REGISTRY: Dict[str, BaseNormalizer] = {
    "instagram": InstagramNormalizer(),
    "tiktok": TikTokNormalizer(),
}

REQUIRED_FIELDS = ["content_id", "platform", "timestamp", "metrics", "content", "creator"]


class UnsupportedPlatformError(ValueError):
    """Raised when no normalizer is registered for a platform tag."""
    pass


def get_normalizer(platform: str) -> BaseNormalizer:
    """Return the registered normalizer for a platform tag."""
    normalizer = NORMALIZER_REGISTRY.get(platform)
    if normalizer is None:
        raise UnsupportedPlatformError(
            f"No normalizer for platform '{platform}'. "
            f"Supported: {sorted(NORMALIZER_REGISTRY)}"
        )
    return normalizer


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DataNormalizer:
    """Normalizes raw items and batches into the unified record shape."""

    def __init__(self, taxonomy: Optional[Taxonomy] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.taxonomy = taxonomy or DEFAULT_TAXONOMY
        self.clock = clock or _utc_now

    def normalize(self, raw_item: dict, platform: str,
                  now: Optional[datetime] = None) -> ContentRecord:
        """
        Normalize one raw item.

        Raises:
            UnsupportedPlatformError: unknown platform tag.
            MalformedInputError: the item lacks a required field.
        """
        normalizer = get_normalizer(platform)
        return normalizer.normalize(raw_item, self.taxonomy, now or self.clock())

    def normalize_batch(self, items: Iterable[dict], platform: str,
                        now: Optional[datetime] = None) -> List[ContentRecord]:
        """
        Normalize a batch, skipping items that cannot be normalized.

        One bad item never aborts the batch: failures are logged and the
        item is left out of the result. All items share one `now` so their
        velocities are comparable.
        """
        normalizer = get_normalizer(platform)
        now = now or self.clock()

        records = []
        skipped = 0
        for index, item in enumerate(items):
            try:
                records.append(normalizer.normalize(item, self.taxonomy, now))
            except MalformedInputError as e:
                skipped += 1
                logger.warning(f"Skipping {platform} item #{index}: {e}")
            except (TypeError, ValueError, KeyError, AttributeError, OverflowError) as e:
                skipped += 1
                item_id = item.get("id") if isinstance(item, dict) else None
                logger.warning(
                    f"Skipping {platform} item #{index} ({item_id!r}): "
                    f"unreadable payload: {e}"
                )

        logger.info(
            f"Normalized {len(records)} {platform} items"
            + (f" ({skipped} skipped)" if skipped else "")
        )
        return records


def validate_data(record: Union[ContentRecord, dict]) -> bool:
    """
    Check a normalized record has every required top-level field.

    Accepts a ContentRecord or its to_dict() form. Only reports; the caller
    decides whether to drop or reject an invalid record.
    """
    if isinstance(record, ContentRecord):
        record = record.to_dict()
    if not isinstance(record, dict):
        return False
    return all(record.get(name) not in (None, "", {}) for name in REQUIRED_FIELDS)
