"""
DynamoDB storage manager: one table per entity, keyed by string ``id``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from runclub.errors import StorageError, storage_error_from
from runclub.models import (
    ENTITY_TYPES,
    ClubData,
    Member,
    Milestone,
    RunRecord,
    Schedule,
)
from runclub.retry import with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE_SUFFIXES = {
    "members": "Members",
    "records": "Records",
    "schedules": "Schedules",
    "milestones": "Milestones",
}
MEMBER_DATE_INDEX = "memberId-date-index"
DATE_INDEX = "date-index"


def table_names(prefix: str) -> dict[str, str]:
    return {key: f"{prefix}-{suffix}" for key, suffix in TABLE_SUFFIXES.items()}


def to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; store them as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


class DynamoClubStore:
    backend_name = "dynamodb"

    def __init__(
        self,
        region: str,
        table_prefix: str = "RunningClub",
        *,
        endpoint_url: Optional[str] = None,
        resource: Any = None,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self._resource = resource or boto3.resource(
            "dynamodb", region_name=region, endpoint_url=endpoint_url or None
        )
        self.table_names = table_names(table_prefix)
        self._tables = {
            key: self._resource.Table(name) for key, name in self.table_names.items()
        }
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    def _call(self, key: str, operation: str, fn: Callable[[], T]) -> T:
        table_name = self.table_names[key]

        def attempt() -> T:
            try:
                return fn()
            except (ClientError, BotoCoreError) as exc:
                raise storage_error_from(exc, operation, table_name) from exc

        return with_retry(
            attempt,
            attempts=self.retry_attempts,
            base_delay=self.retry_delay,
            description=f"{operation} {table_name}",
        )

    def _collect(self, key: str, method: str, **kwargs) -> list[dict]:
        table = self._tables[key]
        items: list[dict] = []
        start_key = None
        while True:
            page_kwargs = dict(kwargs)
            if start_key:
                page_kwargs["ExclusiveStartKey"] = start_key
            response = self._call(
                key, "load", lambda: getattr(table, method)(**page_kwargs)
            )
            items.extend(response.get("Items") or [])
            start_key = response.get("LastEvaluatedKey")
            if not start_key:
                return items

    def _entities(self, key: str, method: str = "scan", **kwargs) -> list:
        entity = ENTITY_TYPES[key]
        return [
            entity.from_document(from_dynamo(item))
            for item in self._collect(key, method, **kwargs)
        ]

    def _put(self, key: str, document: dict) -> None:
        item = to_dynamo(document)
        self._call(key, "save", lambda: self._tables[key].put_item(Item=item))

    def _delete(self, key: str, item_id: str) -> None:
        self._call(
            key, "delete", lambda: self._tables[key].delete_item(Key={"id": item_id})
        )

    def load_all(self) -> ClubData:
        return ClubData(
            members=self.list_members(),
            records=self.list_records(),
            schedules=self.list_schedules(),
            milestones=self.list_milestones(),
        )

    def list_members(self) -> list[Member]:
        return self._entities("members")

    def list_records(self) -> list[RunRecord]:
        return self._entities("records")

    def list_member_records(self, member_id: str) -> list[RunRecord]:
        return self._entities(
            "records",
            "query",
            IndexName=MEMBER_DATE_INDEX,
            KeyConditionExpression=Key("memberId").eq(member_id),
            ScanIndexForward=False,
        )

    def list_schedules(self) -> list[Schedule]:
        return self._entities("schedules")

    def list_schedules_by_date(self, date: str) -> list[Schedule]:
        return self._entities(
            "schedules",
            "query",
            IndexName=DATE_INDEX,
            KeyConditionExpression=Key("date").eq(date),
        )

    def list_milestones(self) -> list[Milestone]:
        return self._entities("milestones")

    def put_member(self, member: Member) -> None:
        self._put("members", member.to_document())

    def put_record(self, record: RunRecord) -> None:
        self._put("records", record.to_document())

    def put_schedule(self, schedule: Schedule) -> None:
        self._put("schedules", schedule.to_document())

    def put_milestone(self, milestone: Milestone) -> None:
        self._put("milestones", milestone.to_document())

    def delete_member(self, member_id: str) -> None:
        self._delete("members", member_id)

    def delete_record(self, record_id: str) -> None:
        self._delete("records", record_id)

    def delete_records(self, record_ids: list[str]) -> None:
        if not record_ids:
            return

        def write() -> None:
            with self._tables["records"].batch_writer() as batch:
                for record_id in record_ids:
                    batch.delete_item(Key={"id": record_id})

        self._call("records", "delete", write)

    def delete_schedule(self, schedule_id: str) -> None:
        self._delete("schedules", schedule_id)

    def delete_milestone(self, milestone_id: str) -> None:
        self._delete("milestones", milestone_id)

    def replace_all(self, data: ClubData) -> None:
        document = data.to_document()
        for key, table in self._tables.items():
            existing = self._collect(
                key,
                "scan",
                ProjectionExpression="#id",
                ExpressionAttributeNames={"#id": "id"},
            )
            keep = {item["id"] for item in document[key]}

            def write(table=table, existing=existing, items=document[key], keep=keep):
                with table.batch_writer() as batch:
                    for item in existing:
                        if item["id"] not in keep:
                            batch.delete_item(Key={"id": item["id"]})
                    for item in items:
                        batch.put_item(Item=to_dynamo(item))

            self._call(key, "save", write)
            logger.info(
                "Replaced %s: %d items written", self.table_names[key], len(document[key])
            )

    def check_connection(self) -> bool:
        try:
            self._call(
                "members", "load", lambda: self._tables["members"].scan(Limit=1)
            )
        except StorageError as exc:
            logger.error("DynamoDB connection check failed: %s", exc)
            return False
        return True


def table_definitions(prefix: str = "RunningClub") -> list[dict]:
    """CreateTable arguments for every club table, with their GSIs."""
    names = table_names(prefix)

    def string_attrs(*names_: str) -> list[dict]:
        return [{"AttributeName": n, "AttributeType": "S"} for n in names_]

    def hash_key(name: str) -> list[dict]:
        return [{"AttributeName": name, "KeyType": "HASH"}]

    return [
        {
            "TableName": names["members"],
            "KeySchema": hash_key("id"),
            "AttributeDefinitions": string_attrs("id"),
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": names["records"],
            "KeySchema": hash_key("id"),
            "AttributeDefinitions": string_attrs("id", "memberId", "date"),
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": MEMBER_DATE_INDEX,
                    "KeySchema": hash_key("memberId")
                    + [{"AttributeName": "date", "KeyType": "RANGE"}],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": names["schedules"],
            "KeySchema": hash_key("id"),
            "AttributeDefinitions": string_attrs("id", "date"),
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": DATE_INDEX,
                    "KeySchema": hash_key("date"),
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": names["milestones"],
            "KeySchema": hash_key("id"),
            "AttributeDefinitions": string_attrs("id"),
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]
