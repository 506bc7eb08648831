"""
Trend Radar Scorer -- virality scoring for any group of content records.

Aggregates reach and engagement across the group, compares engagement rate
in the later half of the group against the earlier half (growth), and
combines four signals into a 0-100 viral score:

    engagement rate   25 points at a 5% engagement rate
    growth rate       25 points at 100% half-over-half growth
    reach             25 points at 1M impressions
    creator diversity 25 points at 100 distinct creators

Terms are not clamped individually; only the sum is capped at 100, so one
extreme signal can carry a group on its own.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Sequence

from normalizers import ContentRecord

logger = logging.getLogger(__name__)

VIRAL_BENCHMARKS = {
    "engagement_rate": 5,           # percent
    "growth_rate": 100,             # percent, second half vs first half
    "reach": 1_000_000,             # impressions
    "creator_diversity": 100,       # distinct creators
}
TERM_WEIGHT = 25
MAX_VIRAL_SCORE = 100

VIRAL_THRESHOLD = 80
POTENTIALLY_VIRAL_THRESHOLD = 60

PEAK_REACH = 100_000


@dataclass(frozen=True)
class GroupMetrics:
    total_reach: int
    total_engagement: int
    avg_engagement_rate: float      # percent of reach
    content_count: int
    platform_breakdown: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TrendScore:
    viral_score: float
    engagement_rate: float
    growth_rate: float
    reach: int
    velocity: float
    creator_diversity: int
    is_viral: bool
    is_potentially_viral: bool
    phase: str                      # dormant, emerging, rising, peak, declining, viral

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TrendScore":
        return cls(**{name: data[name] for name in cls.__dataclass_fields__})


def aggregate_metrics(contents: Sequence[ContentRecord]) -> GroupMetrics:
    """Sum reach and engagement across a group of records."""
    total_reach = sum(c.metrics.impressions for c in contents)
    total_engagement = sum(c.metrics.total_engagement for c in contents)
    avg_rate = (total_engagement / total_reach * 100) if total_reach > 0 else 0.0

    breakdown: Dict[str, int] = {}
    for c in contents:
        breakdown[c.platform] = breakdown.get(c.platform, 0) + 1

    return GroupMetrics(
        total_reach=total_reach,
        total_engagement=total_engagement,
        avg_engagement_rate=avg_rate,
        content_count=len(contents),
        platform_breakdown=breakdown,
    )


def calculate_time_span(contents: Sequence[ContentRecord]) -> float:
    """Hours between the oldest and newest record in the group."""
    if len(contents) < 2:
        return 0.0
    timestamps = [c.timestamp for c in contents]
    return (max(timestamps) - min(timestamps)).total_seconds() / 3600


def calculate_growth_rate(contents: Sequence[ContentRecord]) -> float:
    """
    Percent change in engagement rate from the earlier half to the later half.

    Records are ordered by creation time; the later half takes the extra
    record when the group size is odd. Returns 0 with fewer than two
    records or when the earlier half had no engagement rate to grow from.
    """
    if len(contents) < 2:
        return 0.0

    ordered = sorted(contents, key=lambda c: c.timestamp)
    midpoint = len(ordered) // 2

    first_rate = aggregate_metrics(ordered[:midpoint]).avg_engagement_rate
    second_rate = aggregate_metrics(ordered[midpoint:]).avg_engagement_rate

    if first_rate == 0:
        return 0.0
    return (second_rate - first_rate) / first_rate * 100


def calculate_creator_diversity(contents: Sequence[ContentRecord]) -> int:
    return len({c.creator.username for c in contents})


def calculate_viral_score(engagement_rate: float, growth_rate: float,
                          reach: int, creator_diversity: int) -> float:
    b = VIRAL_BENCHMARKS
    score = (
        engagement_rate / b["engagement_rate"] * TERM_WEIGHT
        + growth_rate / b["growth_rate"] * TERM_WEIGHT
        + reach / b["reach"] * TERM_WEIGHT
        + creator_diversity / b["creator_diversity"] * TERM_WEIGHT
    )
    return max(min(score, MAX_VIRAL_SCORE), 0)


def classify_phase(is_viral: bool, growth_rate: float, reach: int) -> str:
    """Lifecycle phase, checked in priority order."""
    if is_viral:
        return "viral"
    if growth_rate > 200:
        return "emerging"
    if growth_rate > 50:
        return "rising"
    if growth_rate < -20:
        return "declining"
    if reach > PEAK_REACH:
        return "peak"
    return "dormant"


def score(contents: Sequence[ContentRecord]) -> TrendScore:
    """Score a group of records for virality, growth and lifecycle phase."""
    metrics = aggregate_metrics(contents)
    time_span = calculate_time_span(contents)
    growth_rate = calculate_growth_rate(contents)
    diversity = calculate_creator_diversity(contents)

    velocity = metrics.total_engagement / time_span if time_span > 0 else 0.0

    viral_score = calculate_viral_score(
        metrics.avg_engagement_rate, growth_rate, metrics.total_reach, diversity
    )
    is_viral = viral_score >= VIRAL_THRESHOLD
    is_potentially_viral = POTENTIALLY_VIRAL_THRESHOLD <= viral_score < VIRAL_THRESHOLD

    return TrendScore(
        viral_score=viral_score,
        engagement_rate=metrics.avg_engagement_rate,
        growth_rate=growth_rate,
        reach=metrics.total_reach,
        velocity=velocity,
        creator_diversity=diversity,
        is_viral=is_viral,
        is_potentially_viral=is_potentially_viral,
        phase=classify_phase(is_viral, growth_rate, metrics.total_reach),
    )


def score_groups(groups: Dict[str, List[ContentRecord]]) -> Dict[str, TrendScore]:
    """Score every group in a mapping of identifier -> records."""
    scores = {key: score(contents) for key, contents in groups.items()}
    logger.debug(f"Scored {len(scores)} groups")
    return scores
