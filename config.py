"""
Global configuration for the Trend Hunter Engine.

Trend taxonomies come from YAML profiles under profiles/.
This module only holds environment-driven settings and defaults.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# ── Paths ──
PROJECT_ROOT = Path(__file__).parent
PROFILES_DIR = PROJECT_ROOT / "profiles"
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))

# ── Active Taxonomy ──
ACTIVE_TAXONOMY = os.getenv("ACTIVE_TAXONOMY", "default")

# ── Trend Tracker (SQLite store) ──
TRACKER_DB_PATH = Path(
    os.getenv("TRACKER_DB_PATH", str(DATA_DIR / "trend_tracker.db"))
)


def _int_env(name: str, default: int) -> int:
    """Read an integer env var, falling back to the default on bad input."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


# ── Batch Limits ──
# Grouping is O(records x hashtags) and cross-platform matching sorts
# every group, so one analyze_trends call is capped.
MAX_BATCH_SIZE = _int_env("MAX_BATCH_SIZE", 5000)

# ── Logging ──
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
