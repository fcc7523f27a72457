"""
Report whether the configured storage backend is reachable and how much data
it holds.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from runclub.config import get_settings
from runclub.dependencies import build_store
from runclub.errors import StorageError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check the club storage backend.")
    parser.add_argument(
        "--backend",
        choices=["memory", "s3", "dynamodb", "sql"],
        help="Override RUNCLUB_STORAGE_BACKEND.",
    )
    parser.add_argument(
        "--counts", action="store_true", help="Also load the data and print counts."
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = get_settings()
    if args.backend:
        settings = settings.model_copy(update={"storage_backend": args.backend})

    store = build_store(settings)
    if not store.check_connection():
        logger.error("Cannot reach the %s backend", store.backend_name)
        return 1
    logger.info("Connected to the %s backend", store.backend_name)

    if args.counts:
        try:
            data = store.load_all()
        except StorageError as exc:
            logger.error("Loading data failed: %s (%s)", exc.message, exc.code)
            return 1
        for key in ("members", "records", "schedules", "milestones"):
            logger.info("%s: %d", key, len(data.collection(key)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
