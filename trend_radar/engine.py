"""
Trend Detection Engine -- runs the trend radar over one normalized batch.

Groups the batch by hashtag and by keyword, scores every group, keeps the
viral and potentially viral ones as candidates, matches content across
platforms and summarizes the result. Candidates can then be fed into the
tracker so their lifecycle is followed across runs.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import config
from normalizers import ContentRecord
from taxonomy_loader import DEFAULT_TAXONOMY, Taxonomy
from trend_radar import scorer
from trend_radar.cross_platform import CrossPlatformTrend, detect_cross_platform_trends
from trend_radar.grouper import extract_keyword_groups, group_by_hashtag
from trend_radar.predictor import TrajectoryPrediction, TrendPredictor
from trend_radar.scorer import GroupMetrics, TrendScore
from trend_radar.tracker import TrendTracker

logger = logging.getLogger(__name__)

TOP_TRENDS_LIMIT = 10


@dataclass(frozen=True)
class TrendCandidate:
    type: str                           # hashtag or keyword
    identifier: str
    score: TrendScore
    contents: List[ContentRecord]
    metrics: GroupMetrics

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "identifier": self.identifier,
            "score": self.score.to_dict(),
            "content_ids": [c.content_id for c in self.contents],
            "metrics": self.metrics.to_dict(),
        }


@dataclass(frozen=True)
class TrendSummary:
    total_candidates: int
    viral_trends: int
    emerging_trends: int
    top_trends: List[Dict] = field(default_factory=list)
    category_breakdown: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_candidates": self.total_candidates,
            "viral_trends": self.viral_trends,
            "emerging_trends": self.emerging_trends,
            "top_trends": [dict(t) for t in self.top_trends],
            "category_breakdown": {k: list(v) for k, v in self.category_breakdown.items()},
        }


@dataclass(frozen=True)
class TrendAnalysis:
    candidates: List[TrendCandidate]
    cross_platform: List[CrossPlatformTrend]
    summary: TrendSummary

    def to_dict(self) -> dict:
        return {
            "candidates": [c.to_dict() for c in self.candidates],
            "cross_platform": [t.to_dict() for t in self.cross_platform],
            "summary": self.summary.to_dict(),
        }


class TrendDetectionEngine:
    """Identifies viral patterns and emerging trends in normalized batches."""

    def __init__(self, taxonomy: Optional[Taxonomy] = None,
                 tracker: Optional[TrendTracker] = None,
                 max_batch_size: Optional[int] = None):
        self.taxonomy = taxonomy or DEFAULT_TAXONOMY
        self.tracker = tracker or TrendTracker()
        self.predictor = TrendPredictor(self.tracker)
        self.max_batch_size = (
            max_batch_size if max_batch_size is not None else config.MAX_BATCH_SIZE
        )

    def analyze_trends(self, records: Sequence[ContentRecord]) -> TrendAnalysis:
        """Analyze one batch of records for trend candidates."""
        records = list(records)
        if self.max_batch_size and len(records) > self.max_batch_size:
            logger.warning(
                f"Batch of {len(records)} records exceeds MAX_BATCH_SIZE="
                f"{self.max_batch_size}; analyzing the first {self.max_batch_size}"
            )
            records = records[:self.max_batch_size]

        candidates = []
        candidates += self._candidates("hashtag", group_by_hashtag(records))
        candidates += self._candidates("keyword", extract_keyword_groups(records))

        cross_platform = detect_cross_platform_trends(records)
        summary = self.generate_trend_summary(candidates)

        logger.info(
            f"Trend analysis: {len(records)} records -> {summary.total_candidates} "
            f"candidates ({summary.viral_trends} viral), "
            f"{len(cross_platform)} cross-platform"
        )
        return TrendAnalysis(
            candidates=candidates,
            cross_platform=cross_platform,
            summary=summary,
        )

    def _candidates(self, group_type: str,
                    groups: Dict[str, List[ContentRecord]]) -> List[TrendCandidate]:
        candidates = []
        for identifier, trend_score in scorer.score_groups(groups).items():
            if not (trend_score.is_viral or trend_score.is_potentially_viral):
                continue
            contents = groups[identifier]
            candidates.append(TrendCandidate(
                type=group_type,
                identifier=identifier,
                score=trend_score,
                contents=contents,
                metrics=scorer.aggregate_metrics(contents),
            ))
        return candidates

    def generate_trend_summary(self, candidates: Sequence[TrendCandidate]) -> TrendSummary:
        ranked = sorted(candidates, key=lambda c: c.score.viral_score, reverse=True)
        top_trends = [
            {
                "identifier": c.identifier,
                "type": c.type,
                "viral_score": math.floor(c.score.viral_score + 0.5),
                "reach": c.metrics.total_reach,
                "phase": c.score.phase,
            }
            for c in ranked[:TOP_TRENDS_LIMIT]
        ]
        return TrendSummary(
            total_candidates=len(candidates),
            viral_trends=sum(1 for c in candidates if c.score.is_viral),
            emerging_trends=sum(1 for c in candidates if c.score.phase == "emerging"),
            top_trends=top_trends,
            category_breakdown=self.categorize_trends(candidates),
        )

    def categorize_trends(self, candidates: Sequence[TrendCandidate]) -> Dict[str, List[str]]:
        categorized: Dict[str, List[str]] = {}
        for candidate in candidates:
            category = self.detect_category(candidate.identifier)
            categorized.setdefault(category, []).append(candidate.identifier)
        return categorized

    def detect_category(self, identifier: str) -> str:
        return self.taxonomy.detect_category(identifier)

    def track_candidates(self, analysis: TrendAnalysis) -> int:
        """
        Record each candidate's score with the tracker. Returns count tracked.

        A caption keyword can spell the same identifier as a hashtag
        ("#ootd" in both); only the first candidate per identifier is
        recorded so one run adds one snapshot.
        """
        tracked = set()
        for candidate in analysis.candidates:
            if candidate.identifier in tracked:
                continue
            self.tracker.track_trend(candidate.identifier, candidate.score)
            tracked.add(candidate.identifier)
        return len(tracked)

    def get_trend_predictions(self) -> List[TrajectoryPrediction]:
        return self.predictor.get_trend_predictions()
