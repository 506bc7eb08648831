"""
Trend Radar Grouper -- splits a batch of records into candidate trend groups.

Two groupings run over the same batch:
  hashtags -- every hashtag is a group; a record joins one group per hashtag
  keywords -- significant caption words, kept only when enough records share them
"""

import logging
from typing import Dict, Iterable, List, Sequence

from normalizers import ContentRecord

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(["the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for"])

MIN_KEYWORD_LENGTH = 4          # tokens of 3 characters or fewer are noise
MIN_KEYWORD_RECORDS = 5


def tokenize_caption(caption: str) -> List[str]:
    """Lowercase whitespace tokens with stop words removed."""
    return [word for word in caption.lower().split() if word not in STOP_WORDS]


def _add_unique(groups: Dict[str, List[ContentRecord]], key: str,
                record: ContentRecord, seen: set) -> None:
    if key in seen:
        return
    seen.add(key)
    groups.setdefault(key, []).append(record)


def group_by_hashtag(records: Iterable[ContentRecord]) -> Dict[str, List[ContentRecord]]:
    """Map each hashtag to the records that carry it (once per record)."""
    groups: Dict[str, List[ContentRecord]] = {}
    for record in records:
        seen = set()
        for hashtag in record.content.hashtags:
            _add_unique(groups, hashtag, record, seen)
    return groups


def extract_keyword_groups(records: Sequence[ContentRecord],
                           min_records: int = MIN_KEYWORD_RECORDS
                           ) -> Dict[str, List[ContentRecord]]:
    """
    Map significant caption keywords to the records that use them.

    Keywords shared by fewer than `min_records` records are dropped as noise.
    """
    groups: Dict[str, List[ContentRecord]] = {}
    for record in records:
        seen = set()
        for word in tokenize_caption(record.content.caption):
            if len(word) >= MIN_KEYWORD_LENGTH:
                _add_unique(groups, word, record, seen)

    significant = {
        keyword: contents
        for keyword, contents in groups.items()
        if len(contents) >= min_records
    }
    logger.debug(
        f"Keyword groups: {len(significant)} significant of {len(groups)} seen"
    )
    return significant
