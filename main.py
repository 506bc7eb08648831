"""
Trend Hunter Engine — command-line runner.

Reads a JSON array of raw platform items captured upstream and runs the
pipeline over it:
  1. Normalize raw items into unified content records
  2. Group by hashtag / keyword and score each group
  3. Match content across platforms
  4. Optionally record candidates in the SQLite trend tracker
  5. Write the analysis (and tracker predictions) as JSON

Usage:
  python main.py --input tiktok_batch.json --platform tiktok
  python main.py -i ig.json -p instagram --track --output report.json
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import config
from data_normalizer import NORMALIZER_REGISTRY, DataNormalizer
from taxonomy_loader import TaxonomyValidationError, load_taxonomy
from trend_radar.engine import TrendDetectionEngine
from trend_radar.tracker import SqliteTrendStore, TrendTracker

logger = logging.getLogger("engine")


def setup_logging():
    """Configure console logging with timestamps."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_args(argv=None):
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Trend Hunter Engine — cross-platform trend detection"
    )
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Path to a JSON array of raw platform items",
    )
    parser.add_argument(
        "--platform", "-p",
        required=True,
        choices=sorted(NORMALIZER_REGISTRY),
        help="Platform the raw items came from",
    )
    parser.add_argument(
        "--taxonomy", "-t",
        default=None,
        help="Taxonomy profile name under profiles/ (default: ACTIVE_TAXONOMY)",
    )
    parser.add_argument(
        "--track",
        action="store_true",
        help="Record trend candidates in the SQLite tracker and include predictions",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="Tracker database path (default: TRACKER_DB_PATH)",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write JSON here instead of stdout",
    )
    return parser.parse_args(argv)


def load_items(path: Path) -> list:
    with open(path, "r") as f:
        items = json.load(f)
    if not isinstance(items, list):
        raise ValueError(f"{path} must contain a JSON array of raw items")
    return items


def run_pipeline(input_path, platform, taxonomy_name=None, track=False,
                 db_path=None) -> dict:
    """
    Run normalization and trend analysis over one raw batch file.

    Returns a JSON-serialisable dict with the analysis and, when tracking,
    the tracker's trend predictions.
    """
    start_time = time.time()

    taxonomy = load_taxonomy(taxonomy_name)
    items = load_items(Path(input_path))
    logger.info(f"Loaded {len(items)} raw {platform} items from {input_path}")

    records = DataNormalizer(taxonomy=taxonomy).normalize_batch(items, platform)

    tracker = TrendTracker(store=SqliteTrendStore(db_path)) if track else None
    engine = TrendDetectionEngine(taxonomy=taxonomy, tracker=tracker)
    analysis = engine.analyze_trends(records)

    result = {
        "platform": platform,
        "taxonomy": taxonomy.name,
        "records_normalized": len(records),
        "records_skipped": len(items) - len(records),
        "analysis": analysis.to_dict(),
    }

    if track:
        tracked = engine.track_candidates(analysis)
        result["tracked"] = tracked
        result["predictions"] = [p.to_dict() for p in engine.get_trend_predictions()]
        result["confirmed"] = [t.identifier for t in engine.tracker.get_confirmed()]

    logger.info(f"Pipeline complete in {time.time() - start_time:.1f}s")
    return result


def main(argv=None):
    setup_logging()
    args = parse_args(argv)
    try:
        result = run_pipeline(
            args.input,
            args.platform,
            taxonomy_name=args.taxonomy,
            track=args.track,
            db_path=args.db,
        )
    except (FileNotFoundError, ValueError, TaxonomyValidationError) as e:
        logger.error(str(e))
        sys.exit(1)

    output = json.dumps(result, indent=2)
    if args.output:
        Path(args.output).write_text(output)
        logger.info(f"Analysis written to {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
