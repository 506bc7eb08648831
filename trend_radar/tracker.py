"""
Trend Radar Tracker -- lifecycle of trends across analysis runs.

Every call to track_trend() appends a timestamped score snapshot to the
trend's history. A trend starts out "emerging" and is promoted to
"confirmed" once it has at least six snapshots and the latest three all
score above 80. Promotion is one-way: confirmed trends are never demoted
and never reopened as emerging.

Trend state lives in a TrendStore so the tracker can run in memory for a
single process or on SQLite for a scheduler that restarts between runs.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

import config
from trend_radar.scorer import TrendScore

logger = logging.getLogger(__name__)

EMERGING = "emerging"
CONFIRMED = "confirmed"

PROMOTION_MIN_HISTORY = 6
SUSTAIN_WINDOW = 3
SUSTAIN_SCORE = 80

LOCK_STRIPES = 64


@dataclass(frozen=True)
class TrendSnapshot:
    timestamp: datetime
    metrics: TrendScore

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp.isoformat(), "metrics": self.metrics.to_dict()}


@dataclass
class TrackedTrend:
    identifier: str
    first_seen: datetime
    history: List[TrendSnapshot] = field(default_factory=list)
    current_phase: str = EMERGING       # emerging or confirmed

    @property
    def is_confirmed(self) -> bool:
        return self.current_phase == CONFIRMED

    def is_sustained(self) -> bool:
        """Enough history, and the latest snapshots all scored high."""
        if len(self.history) < PROMOTION_MIN_HISTORY:
            return False
        recent = self.history[-SUSTAIN_WINDOW:]
        return all(s.metrics.viral_score > SUSTAIN_SCORE for s in recent)

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "first_seen": self.first_seen.isoformat(),
            "history": [s.to_dict() for s in self.history],
            "current_phase": self.current_phase,
        }


class TrendStore(ABC):
    """Holds tracked trends in two disjoint collections: emerging and confirmed."""

    @abstractmethod
    def get(self, identifier: str) -> Optional[TrackedTrend]:
        """Return the trend from either collection, or None if unseen."""
        ...

    @abstractmethod
    def append(self, identifier: str, snapshot: TrendSnapshot) -> TrackedTrend:
        """
        Atomically add one snapshot to a trend's history and return the trend.

        An unseen identifier becomes an emerging trend first seen at the
        snapshot's timestamp. A confirmed trend stays confirmed.
        """
        ...

    @abstractmethod
    def move_to_confirmed(self, identifier: str) -> None:
        """Move an emerging trend into the confirmed collection."""
        ...

    @abstractmethod
    def emerging(self) -> List[TrackedTrend]:
        ...

    @abstractmethod
    def confirmed(self) -> List[TrackedTrend]:
        ...


class InMemoryTrendStore(TrendStore):
    """Process-local store backed by two dicts."""

    def __init__(self):
        self._emerging: Dict[str, TrackedTrend] = {}
        self._confirmed: Dict[str, TrackedTrend] = {}
        self._lock = threading.Lock()

    def get(self, identifier: str) -> Optional[TrackedTrend]:
        with self._lock:
            return self._emerging.get(identifier) or self._confirmed.get(identifier)

    def append(self, identifier: str, snapshot: TrendSnapshot) -> TrackedTrend:
        with self._lock:
            trend = self._emerging.get(identifier) or self._confirmed.get(identifier)
            if trend is None:
                trend = TrackedTrend(identifier=identifier, first_seen=snapshot.timestamp)
                self._emerging[identifier] = trend
            trend.history.append(snapshot)
            return trend

    def move_to_confirmed(self, identifier: str) -> None:
        with self._lock:
            trend = self._emerging.pop(identifier, None)
            if trend is None:
                return
            trend.current_phase = CONFIRMED
            self._confirmed[identifier] = trend

    def emerging(self) -> List[TrackedTrend]:
        with self._lock:
            return list(self._emerging.values())

    def confirmed(self) -> List[TrackedTrend]:
        with self._lock:
            return list(self._confirmed.values())


TRACKER_SCHEMA = """
CREATE TABLE IF NOT EXISTS tracked_trends (
    identifier TEXT PRIMARY KEY,
    collection TEXT NOT NULL DEFAULT 'emerging',
    first_seen TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tracked_trend_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    identifier TEXT NOT NULL,
    snapshot_timestamp TEXT NOT NULL,
    metrics TEXT NOT NULL,
    FOREIGN KEY (identifier) REFERENCES tracked_trends(identifier)
);

CREATE INDEX IF NOT EXISTS idx_tracked_trends_collection
    ON tracked_trends(collection);
CREATE INDEX IF NOT EXISTS idx_tracked_snapshots_identifier
    ON tracked_trend_snapshots(identifier, id);
"""


class SqliteTrendStore(TrendStore):
    """
    SQLite-backed store so trend history survives between scheduler runs.

    Opens a short-lived connection per operation; WAL mode lets readers
    run while a tracker call writes.
    """

    def __init__(self, db_path=None):
        self.db_path = Path(db_path or config.TRACKER_DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(TRACKER_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000")
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _load(self, conn, row) -> TrackedTrend:
        snaps = conn.execute("""
            SELECT snapshot_timestamp, metrics
            FROM tracked_trend_snapshots
            WHERE identifier = ?
            ORDER BY id ASC
        """, (row["identifier"],)).fetchall()

        history = [
            TrendSnapshot(
                timestamp=datetime.fromisoformat(s["snapshot_timestamp"]),
                metrics=TrendScore.from_dict(json.loads(s["metrics"])),
            )
            for s in snaps
        ]
        return TrackedTrend(
            identifier=row["identifier"],
            first_seen=datetime.fromisoformat(row["first_seen"]),
            history=history,
            current_phase=row["collection"],
        )

    def get(self, identifier: str) -> Optional[TrackedTrend]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM tracked_trends WHERE identifier = ?", (identifier,)
            ).fetchone()
            return self._load(conn, row) if row else None
        finally:
            conn.close()

    def append(self, identifier: str, snapshot: TrendSnapshot) -> TrackedTrend:
        """
        Insert the snapshot and read the trend back in one write transaction.

        BEGIN IMMEDIATE takes the write lock up front, so trackers in other
        processes sharing this file cannot interleave between the insert
        and the read.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("""
                INSERT INTO tracked_trends (identifier, collection, first_seen, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(identifier) DO UPDATE SET
                    updated_at = excluded.updated_at
            """, (identifier, EMERGING, snapshot.timestamp.isoformat(),
                  datetime.now(timezone.utc).isoformat()))
            conn.execute("""
                INSERT INTO tracked_trend_snapshots (identifier, snapshot_timestamp, metrics)
                VALUES (?, ?, ?)
            """, (identifier, snapshot.timestamp.isoformat(),
                  json.dumps(snapshot.metrics.to_dict())))

            row = conn.execute(
                "SELECT * FROM tracked_trends WHERE identifier = ?", (identifier,)
            ).fetchone()
            trend = self._load(conn, row)
            conn.commit()
            return trend
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def move_to_confirmed(self, identifier: str) -> None:
        conn = self._connect()
        try:
            conn.execute("""
                UPDATE tracked_trends
                SET collection = ?, updated_at = ?
                WHERE identifier = ? AND collection = ?
            """, (CONFIRMED, datetime.now(timezone.utc).isoformat(),
                  identifier, EMERGING))
            conn.commit()
        finally:
            conn.close()

    def _list(self, collection: str) -> List[TrackedTrend]:
        conn = self._connect()
        try:
            rows = conn.execute("""
                SELECT * FROM tracked_trends
                WHERE collection = ?
                ORDER BY first_seen ASC
            """, (collection,)).fetchall()
            return [self._load(conn, row) for row in rows]
        finally:
            conn.close()

    def emerging(self) -> List[TrackedTrend]:
        return self._list(EMERGING)

    def confirmed(self) -> List[TrackedTrend]:
        return self._list(CONFIRMED)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrendTracker:
    """
    Records score snapshots per trend identifier and promotes sustained trends.

    Calls for different identifiers may run concurrently; calls for the same
    identifier are serialized so appends and promotion happen atomically.
    Locks come from a fixed pool of stripes, so memory stays flat however
    many identifiers a long-running scheduler sees.
    """

    def __init__(self, store: Optional[TrendStore] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store or InMemoryTrendStore()
        self.clock = clock or _utc_now
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def _lock_for(self, identifier: str) -> threading.Lock:
        return self._locks[hash(identifier) % LOCK_STRIPES]

    def track_trend(self, identifier: str, snapshot: TrendScore) -> TrackedTrend:
        """Append a snapshot for the identifier and promote it if sustained."""
        with self._lock_for(identifier):
            trend = self.store.append(
                identifier, TrendSnapshot(timestamp=self.clock(), metrics=snapshot)
            )
            if len(trend.history) == 1:
                logger.debug(f"Tracking new trend {identifier!r}")

            if not trend.is_confirmed and trend.is_sustained():
                self.store.move_to_confirmed(identifier)
                trend.current_phase = CONFIRMED
                logger.info(
                    f"Trend {identifier!r} confirmed after {len(trend.history)} snapshots"
                )
            return trend

    def get(self, identifier: str) -> Optional[TrackedTrend]:
        return self.store.get(identifier)

    def is_confirmed(self, identifier: str) -> bool:
        trend = self.store.get(identifier)
        return trend is not None and trend.is_confirmed

    def get_emerging(self) -> List[TrackedTrend]:
        return self.store.emerging()

    def get_confirmed(self) -> List[TrackedTrend]:
        return self.store.confirmed()
