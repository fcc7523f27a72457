"""
Create the DynamoDB tables used by the dynamodb storage backend.

Tables that already exist are left alone, so the script can be re-run.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import boto3
from botocore.exceptions import ClientError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from runclub.config import get_settings
from runclub.dynamo import table_definitions

logger = logging.getLogger(__name__)


def table_exists(client, table_name: str) -> bool:
    try:
        client.describe_table(TableName=table_name)
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
            return False
        raise
    return True


def create_tables(client, prefix: str, *, wait: bool = True, dry_run: bool = False) -> list[str]:
    created = []
    for definition in table_definitions(prefix):
        name = definition["TableName"]
        if table_exists(client, name):
            logger.info("Table %s already exists, skipping", name)
            continue
        if dry_run:
            logger.info("Would create table %s", name)
            continue
        logger.info("Creating table %s", name)
        client.create_table(**definition)
        created.append(name)

    if wait:
        waiter = client.get_waiter("table_exists")
        for name in created:
            waiter.wait(TableName=name)
            logger.info("Table %s is ACTIVE", name)
    return created


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create running club DynamoDB tables.")
    parser.add_argument("--region", default=settings.aws_region)
    parser.add_argument("--prefix", default=settings.dynamodb_table_prefix)
    parser.add_argument("--endpoint", default=settings.dynamodb_endpoint)
    parser.add_argument("--no-wait", action="store_true")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    client = boto3.client(
        "dynamodb", region_name=args.region, endpoint_url=args.endpoint or None
    )
    try:
        created = create_tables(
            client, args.prefix, wait=not args.no_wait, dry_run=args.dry_run
        )
    except ClientError as exc:
        logger.error("Table creation failed: %s", exc)
        return 1
    logger.info("Done. %d table(s) created.", len(created))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
