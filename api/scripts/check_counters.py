#!/usr/bin/env python3
"""
Counter Integrity Check

Recounts every denormalized counter (user posts/followers/following, post
likes/comments) from the relation rows and reports drift. Also reports
likes, comments, bookmarks and notifications that outlived their post.

Usage (from the api directory):
    python scripts/check_counters.py

Options:
    --fix   Overwrite drifted counters with the recounted values

Exit status is 1 when problems remain after the run, 0 otherwise.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Add the app to the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from picfeed.db import SessionLocal  # noqa: E402
from picfeed.services.integrity import (  # noqa: E402
    find_counter_drift,
    find_dangling_references,
    repair_counter_drift,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check denormalized counters against relation rows")
    parser.add_argument("--fix", action="store_true", help="Repair drifted counters")
    args = parser.parse_args()

    logger.info("=" * 60)
    logger.info("Counter Integrity Check")
    logger.info("=" * 60)

    db = SessionLocal()
    try:
        drifts = find_counter_drift(db)
        for drift in drifts:
            logger.warning(
                f"{drift.table}.{drift.field} id={drift.entity_id}: "
                f"stored {drift.stored}, actual {drift.actual}"
            )

        dangling = find_dangling_references(db)
        for ref in dangling:
            logger.warning(f"{ref.table} id={ref.row_id} points at missing post {ref.post_id}")

        logger.info("-" * 60)
        logger.info(f"Counter drift: {len(drifts)}")
        logger.info(f"Dangling references: {len(dangling)}")

        if drifts and args.fix:
            repaired = repair_counter_drift(db, drifts)
            logger.info(f"Repaired {repaired} counters")
            drifts = []
        elif drifts:
            logger.info("Run with --fix to repair counters")

        return 1 if drifts or dangling else 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
