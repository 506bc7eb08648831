"""
Trend tracker and trajectory predictor tests.

Run with: python -m pytest test_trend_tracker.py -q
"""

import os
import sys
import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from trend_radar.predictor import (
    TrendPredictor, calculate_confidence, fit_line, predict_trajectory,
)
from trend_radar.scorer import TrendScore
from trend_radar.tracker import (
    CONFIRMED, EMERGING, LOCK_STRIPES, SqliteTrendStore, TrendSnapshot, TrendTracker,
)

START = datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start=START):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, hours=1):
        self.now += timedelta(hours=hours)


def trend_score(viral_score):
    return TrendScore(
        viral_score=viral_score,
        engagement_rate=5.0,
        growth_rate=0.0,
        reach=10_000,
        velocity=10.0,
        creator_diversity=5,
        is_viral=viral_score >= 80,
        is_potentially_viral=60 <= viral_score < 80,
        phase="viral" if viral_score >= 80 else "dormant",
    )


def track_series(tracker, clock, identifier, scores):
    trend = None
    for value in scores:
        trend = tracker.track_trend(identifier, trend_score(value))
        clock.advance()
    return trend


class TestTrendTracker(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.tracker = TrendTracker(clock=self.clock)

    def test_new_trend_starts_emerging(self):
        trend = self.tracker.track_trend("#ai", trend_score(40))
        self.assertEqual(trend.current_phase, EMERGING)
        self.assertEqual(trend.first_seen, START)
        self.assertEqual(len(trend.history), 1)
        self.assertEqual([t.identifier for t in self.tracker.get_emerging()], ["#ai"])

    def test_sustained_high_scores_promote(self):
        trend = track_series(self.tracker, self.clock, "#ai", [50, 50, 50, 82, 90, 95])

        self.assertEqual(trend.current_phase, CONFIRMED)
        self.assertTrue(self.tracker.is_confirmed("#ai"))
        self.assertEqual(self.tracker.get_emerging(), [])
        self.assertEqual([t.identifier for t in self.tracker.get_confirmed()], ["#ai"])

    def test_dip_in_last_three_blocks_promotion(self):
        track_series(self.tracker, self.clock, "#ai", [50, 50, 50, 82, 70, 95])
        self.assertFalse(self.tracker.is_confirmed("#ai"))

    def test_short_history_blocks_promotion(self):
        track_series(self.tracker, self.clock, "#ai", [90, 90, 90, 90, 90])
        self.assertFalse(self.tracker.is_confirmed("#ai"))

    def test_score_of_exactly_80_is_not_sustained(self):
        track_series(self.tracker, self.clock, "#ai", [90, 90, 90, 80, 90, 90])
        self.assertFalse(self.tracker.is_confirmed("#ai"))

    def test_confirmed_trend_keeps_history_and_is_never_demoted(self):
        track_series(self.tracker, self.clock, "#ai", [90] * 6)
        trend = self.tracker.track_trend("#ai", trend_score(10))

        self.assertEqual(trend.current_phase, CONFIRMED)
        self.assertEqual(len(self.tracker.get("#ai").history), 7)
        self.assertEqual(self.tracker.get_emerging(), [])

    def test_history_timestamps_follow_clock(self):
        trend = track_series(self.tracker, self.clock, "#ai", [10, 20, 30])
        self.assertEqual(
            [s.timestamp for s in trend.history],
            [START, START + timedelta(hours=1), START + timedelta(hours=2)],
        )

    def test_concurrent_tracking_of_same_identifier(self):
        def worker():
            for _ in range(25):
                self.tracker.track_trend("#busy", trend_score(10))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(self.tracker.get("#busy").history), 200)

    def test_lock_pool_does_not_grow_with_identifiers(self):
        for i in range(500):
            self.tracker.track_trend(f"#tag{i}", trend_score(10))

        self.assertEqual(len(self.tracker._locks), LOCK_STRIPES)
        self.assertIs(self.tracker._lock_for("#tag1"), self.tracker._lock_for("#tag1"))
        self.assertEqual(len(self.tracker.get_emerging()), 500)


class TestSqliteTrendStore(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmp.name) / "tracker.db"
        self.clock = FakeClock()

    def tearDown(self):
        self._tmp.cleanup()

    def test_history_and_phase_survive_reload(self):
        tracker = TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)
        track_series(tracker, self.clock, "#ai", [50, 85, 85, 85, 90, 95])
        track_series(tracker, self.clock, "#food", [40, 45])

        reloaded = TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)
        ai = reloaded.get("#ai")

        self.assertTrue(ai.is_confirmed)
        self.assertEqual(
            [s.metrics.viral_score for s in ai.history],
            [50, 85, 85, 85, 90, 95],
        )
        self.assertEqual(ai.history[0].timestamp, START)
        self.assertEqual(ai.first_seen, START)
        self.assertEqual([t.identifier for t in reloaded.get_emerging()], ["#food"])
        self.assertEqual([t.identifier for t in reloaded.get_confirmed()], ["#ai"])

    def test_append_returns_full_history(self):
        store = SqliteTrendStore(self.db_path)
        tracker = TrendTracker(store=store, clock=self.clock)
        trend = track_series(tracker, self.clock, "#ai", [10, 20, 30])

        self.assertEqual([s.metrics.viral_score for s in trend.history], [10, 20, 30])
        self.assertEqual(len(store.get("#ai").history), 3)

    def test_two_trackers_sharing_a_database_keep_every_snapshot(self):
        # one tracker per scheduler process, both writing the same file
        first = TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)
        second = TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)

        first.track_trend("#ai", trend_score(10))
        second.track_trend("#ai", trend_score(20))
        first.track_trend("#ai", trend_score(30))

        history = SqliteTrendStore(self.db_path).get("#ai").history
        self.assertEqual([s.metrics.viral_score for s in history], [10, 20, 30])

    def test_promotion_sees_snapshots_written_by_another_tracker(self):
        first = TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)
        second = TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)

        for _ in range(3):
            first.track_trend("#ai", trend_score(90))
            second.track_trend("#ai", trend_score(90))

        self.assertTrue(first.is_confirmed("#ai"))
        self.assertEqual(len(first.get("#ai").history), 6)

    def test_concurrent_trackers_on_one_database(self):
        trackers = [
            TrendTracker(store=SqliteTrendStore(self.db_path), clock=self.clock)
            for _ in range(4)
        ]

        def worker(tracker):
            for _ in range(10):
                tracker.track_trend("#busy", trend_score(10))

        threads = [threading.Thread(target=worker, args=(t,)) for t in trackers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(SqliteTrendStore(self.db_path).get("#busy").history), 40)

    def test_unknown_identifier(self):
        store = SqliteTrendStore(self.db_path)
        self.assertIsNone(store.get("#nothing"))
        self.assertEqual(store.emerging(), [])


class TestTrajectoryMath(unittest.TestCase):

    def test_fit_line(self):
        slope, intercept = fit_line([0, 1, 2], [10, 20, 30])
        self.assertAlmostEqual(slope, 10.0)
        self.assertAlmostEqual(intercept, 10.0)

    def test_fit_line_identical_x_is_flat_at_mean(self):
        self.assertEqual(fit_line([5, 5, 5], [10, 20, 30]), (0.0, 20.0))

    def test_confidence(self):
        self.assertEqual(calculate_confidence([10, 20, 30]), 100)
        self.assertEqual(calculate_confidence([10, 60, 20]), 0)
        # diffs 1 and 3 -> variance 1
        self.assertEqual(calculate_confidence([0, 1, 4]), 90)
        # diffs 2, 0, 0, 0 -> variance 0.75 -> 92.5 rounds up
        self.assertEqual(calculate_confidence([0, 2, 2, 2, 2]), 93)

    def test_same_timestamp_history_does_not_raise(self):
        history = [TrendSnapshot(START, trend_score(v)) for v in (40, 50, 60)]
        prediction = predict_trajectory("#ai", history, START)

        self.assertEqual(prediction.current_trajectory, "declining")
        self.assertAlmostEqual(prediction.predicted_score_24h, 50.0)
        self.assertIsNone(prediction.peak_time)


class TestTrendPredictor(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.tracker = TrendTracker(clock=self.clock)
        self.predictor = TrendPredictor(self.tracker)

    def _by_id(self):
        return {p.identifier: p for p in self.predictor.get_trend_predictions()}

    def test_rising_trend_clamped_with_peak_time(self):
        track_series(self.tracker, self.clock, "#up", [10, 20, 30])
        prediction = self._by_id()["#up"]

        self.assertEqual(prediction.current_trajectory, "rising")
        self.assertEqual(prediction.confidence, 100)
        self.assertEqual(prediction.predicted_score_24h, 100.0)
        self.assertEqual(prediction.peak_time, self.clock() + timedelta(hours=48))

    def test_flat_trend_is_declining(self):
        track_series(self.tracker, self.clock, "#flat", [50, 50, 50])
        prediction = self._by_id()["#flat"]

        self.assertEqual(prediction.current_trajectory, "declining")
        self.assertAlmostEqual(prediction.predicted_score_24h, 50.0)
        self.assertEqual(prediction.confidence, 100)
        self.assertIsNone(prediction.peak_time)

    def test_falling_trend_floors_at_zero(self):
        track_series(self.tracker, self.clock, "#down", [30, 20, 10])
        self.assertEqual(self._by_id()["#down"].predicted_score_24h, 0.0)

    def test_sorted_by_confidence_and_filtered(self):
        track_series(self.tracker, self.clock, "#erratic", [10, 60, 20])
        track_series(self.tracker, self.clock, "#flat", [50, 50, 50])
        track_series(self.tracker, self.clock, "#young", [10, 20])
        track_series(self.tracker, self.clock, "#done", [90] * 6)

        predictions = self.predictor.get_trend_predictions()

        self.assertEqual([p.identifier for p in predictions], ["#flat", "#erratic"])
        self.assertEqual(predictions[1].confidence, 0)

    def test_prediction_serializes(self):
        track_series(self.tracker, self.clock, "#up", [10, 20, 30])
        data = self._by_id()["#up"].to_dict()
        self.assertEqual(data["current_trajectory"], "rising")
        self.assertIsInstance(data["peak_time"], str)


if __name__ == "__main__":
    unittest.main()
