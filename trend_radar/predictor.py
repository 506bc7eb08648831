"""
Trend Radar Predictor -- 24-hour trajectory forecasts for emerging trends.

Fits a least-squares line through each emerging trend's viral score history
and extrapolates it one day ahead. Confidence comes from how steady the
snapshot-to-snapshot changes are: a trend that moves by the same amount each
time is easier to extrapolate than one that jumps around.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from trend_radar.tracker import TrendSnapshot, TrendTracker

logger = logging.getLogger(__name__)

MIN_HISTORY = 3
FORECAST_HORIZON = timedelta(hours=24)
PEAK_OFFSET = timedelta(hours=48)


@dataclass(frozen=True)
class TrajectoryPrediction:
    identifier: str
    current_trajectory: str             # rising or declining
    predicted_score_24h: float          # 0-100
    confidence: int                     # 0-100
    peak_time: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "current_trajectory": self.current_trajectory,
            "predicted_score_24h": self.predicted_score_24h,
            "confidence": self.confidence,
            "peak_time": self.peak_time.isoformat() if self.peak_time else None,
        }


def _hours_since(origin: datetime, ts: datetime) -> float:
    return (ts - origin).total_seconds() / 3600


def fit_line(x: Sequence[float], y: Sequence[float]) -> Tuple[float, float]:
    """
    Ordinary least squares. Returns (slope, intercept).

    When every x is the same there is no slope to fit; the line is flat
    at the mean of y.
    """
    n = len(x)
    mean_x = sum(x) / n
    mean_y = sum(y) / n

    numerator = sum((x[i] - mean_x) * (y[i] - mean_y) for i in range(n))
    denominator = sum((x[i] - mean_x) ** 2 for i in range(n))

    if denominator == 0:
        return 0.0, mean_y

    slope = numerator / denominator
    return slope, mean_y - slope * mean_x


def calculate_confidence(scores: Sequence[float]) -> int:
    """100 minus ten times the variance of successive score changes, floored at 0.

    Halves round up (92.5 -> 93).
    """
    diffs = [scores[i] - scores[i - 1] for i in range(1, len(scores))]
    if not diffs:
        return 0
    mean_diff = sum(diffs) / len(diffs)
    variance = sum((d - mean_diff) ** 2 for d in diffs) / len(diffs)
    return int(math.floor(max(0.0, 100 - variance * 10) + 0.5))


def predict_trajectory(identifier: str, history: Sequence[TrendSnapshot],
                       now: datetime) -> TrajectoryPrediction:
    """
    Forecast the viral score 24 hours from `now`.

    Time is measured in hours since the first snapshot, which fits the same
    line as regressing on absolute instants without the float precision loss.
    """
    origin = history[0].timestamp
    x = [_hours_since(origin, s.timestamp) for s in history]
    y = [s.metrics.viral_score for s in history]

    slope, intercept = fit_line(x, y)

    future = now + FORECAST_HORIZON
    predicted = slope * _hours_since(origin, future) + intercept
    rising = slope > 0

    return TrajectoryPrediction(
        identifier=identifier,
        current_trajectory="rising" if rising else "declining",
        predicted_score_24h=max(0.0, min(100.0, predicted)),
        confidence=calculate_confidence(y),
        peak_time=now + PEAK_OFFSET if rising else None,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrendPredictor:
    """Forecasts every emerging trend the tracker holds enough history for."""

    def __init__(self, tracker: TrendTracker,
                 clock: Optional[Callable[[], datetime]] = None):
        self.tracker = tracker
        self.clock = clock or tracker.clock or _utc_now

    def get_trend_predictions(self) -> List[TrajectoryPrediction]:
        """Predictions for emerging trends with 3+ snapshots, most confident first."""
        now = self.clock()
        predictions = [
            predict_trajectory(trend.identifier, trend.history, now)
            for trend in self.tracker.get_emerging()
            if len(trend.history) >= MIN_HISTORY
        ]
        predictions.sort(key=lambda p: p.confidence, reverse=True)

        logger.info(f"Generated {len(predictions)} trend predictions")
        return predictions
