"""
Export club data to a JSON file, or restore it from one.

  export_club_data.py export out.json
  export_club_data.py import in.json --yes
  export_club_data.py backup
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from runclub.config import get_settings
from runclub.dependencies import build_store
from runclub.errors import ClubError
from runclub.service import ClubService

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Export or import club data.")
    sub = parser.add_subparsers(dest="command", required=True)

    export_parser = sub.add_parser("export", help="Write all data to a JSON file.")
    export_parser.add_argument("path", type=Path)

    import_parser = sub.add_parser("import", help="Replace all data from a JSON file.")
    import_parser.add_argument("path", type=Path)
    import_parser.add_argument(
        "--yes", action="store_true", help="Confirm replacing the stored data."
    )

    sub.add_parser("backup", help="Write a backup next to the stored data.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = get_settings()
    service = ClubService(build_store(settings))

    try:
        if args.command == "export":
            payload = service.export_data()
            args.path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            logger.info(
                "Exported %d members and %d records to %s",
                len(payload["members"]),
                len(payload["records"]),
                args.path,
            )
        elif args.command == "import":
            if not args.yes:
                logger.error("Importing replaces all stored data; pass --yes to confirm")
                return 2
            payload = json.loads(args.path.read_text(encoding="utf-8"))
            service.import_data(payload)
        else:
            key = service.create_backup()
            logger.info("Backup written to %s", key)
    except ClubError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
