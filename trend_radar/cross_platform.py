"""
Trend Radar Cross-Platform Matcher -- finds the same content on several platforms.

Each record gets a platform-agnostic key built from its sorted hashtags and
its three longest caption keywords. Records sharing a key on more than one
platform form a cross-platform trend.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from normalizers import ContentRecord
from trend_radar import scorer
from trend_radar.grouper import tokenize_caption
from trend_radar.scorer import GroupMetrics, TrendScore

logger = logging.getLogger(__name__)

MIN_MATCH_KEYWORD_LENGTH = 5
KEY_KEYWORDS = 3


@dataclass(frozen=True)
class CrossPlatformTrend:
    key: str
    platforms: List[str]
    score: TrendScore
    metrics: GroupMetrics

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "platforms": list(self.platforms),
            "score": self.score.to_dict(),
            "metrics": self.metrics.to_dict(),
        }


def extract_keywords(caption: str, limit: int = 5) -> List[str]:
    """Longest caption words first (ties keep caption order)."""
    words = [w for w in tokenize_caption(caption) if len(w) >= MIN_MATCH_KEYWORD_LENGTH]
    words.sort(key=len, reverse=True)
    return words[:limit]


def generate_content_key(record: ContentRecord) -> str:
    hashtags = "-".join(sorted(record.content.hashtags))
    keywords = "-".join(extract_keywords(record.content.caption)[:KEY_KEYWORDS])
    return f"{hashtags}-{keywords}"


def detect_cross_platform_trends(records: Sequence[ContentRecord]) -> List[CrossPlatformTrend]:
    """Score every content key seen on two or more platforms, best first."""
    groups: Dict[str, Dict] = {}
    for record in records:
        key = generate_content_key(record)
        group = groups.setdefault(key, {"platforms": [], "contents": []})
        if record.platform not in group["platforms"]:
            group["platforms"].append(record.platform)
        group["contents"].append(record)

    trends = []
    for key, group in groups.items():
        if len(group["platforms"]) < 2:
            continue
        trends.append(CrossPlatformTrend(
            key=key,
            platforms=group["platforms"],
            score=scorer.score(group["contents"]),
            metrics=scorer.aggregate_metrics(group["contents"]),
        ))

    trends.sort(key=lambda t: t.score.viral_score, reverse=True)

    if trends:
        logger.info(
            f"Cross-platform: {len(trends)} keys span multiple platforms "
            f"(top: {trends[0].key!r} on {', '.join(trends[0].platforms)})"
        )
    return trends
