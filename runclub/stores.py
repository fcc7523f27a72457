"""
Storage managers: the interface every backend implements and the
document-per-collection backend used for S3 and in-memory storage.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol, TypeVar

from runclub.dates import now_iso, now_kst
from runclub.errors import NotFoundError, StorageError, ValidationError
from runclub.models import (
    ENTITY_TYPES,
    ClubData,
    Member,
    Milestone,
    RunRecord,
    Schedule,
)
from runclub.retry import with_retry
from runclub.storage import StorageClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOCUMENT_FILES = {
    "members": "members.json",
    "records": "records.json",
    "schedules": "schedules.json",
    "milestones": "milestones.json",
}
BACKUP_PREFIX = "backups/"
BACKUP_VERSION = "2.0"


class ClubStore(Protocol):
    """Operations the service needs from a storage manager."""

    backend_name: str

    def load_all(self) -> ClubData:
        ...

    def list_members(self) -> list[Member]:
        ...

    def list_records(self) -> list[RunRecord]:
        ...

    def list_member_records(self, member_id: str) -> list[RunRecord]:
        ...

    def list_schedules(self) -> list[Schedule]:
        ...

    def list_schedules_by_date(self, date: str) -> list[Schedule]:
        ...

    def list_milestones(self) -> list[Milestone]:
        ...

    def put_member(self, member: Member) -> None:
        ...

    def put_record(self, record: RunRecord) -> None:
        ...

    def put_schedule(self, schedule: Schedule) -> None:
        ...

    def put_milestone(self, milestone: Milestone) -> None:
        ...

    def delete_member(self, member_id: str) -> None:
        ...

    def delete_record(self, record_id: str) -> None:
        ...

    def delete_records(self, record_ids: list[str]) -> None:
        ...

    def delete_schedule(self, schedule_id: str) -> None:
        ...

    def delete_milestone(self, milestone_id: str) -> None:
        ...

    def replace_all(self, data: ClubData) -> None:
        ...

    def check_connection(self) -> bool:
        ...


def newest_first(records: list[RunRecord]) -> list[RunRecord]:
    return sorted(records, key=lambda r: (r.date, r.created_at), reverse=True)


class DocumentClubStore:
    """
    Keeps each collection in one JSON document, e.g. ``members.json`` holds
    ``{"members": [...], "lastUpdated": "..."}``.

    Every write reads the collection, changes it and overwrites the whole
    document, so concurrent writers follow last-writer-wins.
    """

    def __init__(
        self,
        storage: StorageClient,
        *,
        backend_name: str = "memory",
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self.storage = storage
        self.backend_name = backend_name
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    def _retry(self, operation: Callable[[], T], description: str) -> T:
        return with_retry(
            operation,
            attempts=self.retry_attempts,
            base_delay=self.retry_delay,
            description=description,
        )

    def _load_document(self, path: str) -> dict:
        raw = self._retry(lambda: self.storage.get_bytes(path), f"load {path}")
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise StorageError(
                f"Stored data has an invalid format: {path}",
                code="InvalidData",
                operation="load",
                target=path,
            ) from exc
        if not isinstance(payload, dict):
            raise StorageError(
                f"Stored data has an invalid format: {path}",
                code="InvalidData",
                operation="load",
                target=path,
            )
        return payload

    def _save_document(self, path: str, payload: dict) -> None:
        self._retry(lambda: self.storage.upload_json(path, payload), f"save {path}")

    def _load_collection(self, key: str) -> list[dict]:
        path = DOCUMENT_FILES[key]
        try:
            payload = self._load_document(path)
        except FileNotFoundError:
            logger.info("Creating initial document %s", path)
            self._save_collection(key, [])
            return []
        items = payload.get(key, [])
        if not isinstance(items, list):
            raise StorageError(
                f"Stored data has an invalid format: {path}",
                code="InvalidData",
                operation="load",
                target=path,
            )
        return items

    def _save_collection(self, key: str, items: list[dict]) -> None:
        self._save_document(
            DOCUMENT_FILES[key], {key: items, "lastUpdated": now_iso()}
        )

    def _entities(self, key: str) -> list:
        entity = ENTITY_TYPES[key]
        return [entity.from_document(item) for item in self._load_collection(key)]

    def _put(self, key: str, document: dict) -> None:
        items = self._load_collection(key)
        for index, item in enumerate(items):
            if str(item.get("id")) == document["id"]:
                items[index] = document
                break
        else:
            items.append(document)
        self._save_collection(key, items)

    def _delete(self, key: str, ids: set[str]) -> None:
        items = self._load_collection(key)
        remaining = [item for item in items if str(item.get("id")) not in ids]
        if len(remaining) != len(items):
            self._save_collection(key, remaining)

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
        return newest_first(
            [r for r in self.list_records() if r.member_id == member_id]
        )

    def list_schedules(self) -> list[Schedule]:
        return self._entities("schedules")

    def list_schedules_by_date(self, date: str) -> list[Schedule]:
        return [s for s in self.list_schedules() if s.date == date]

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
        self._delete("members", {member_id})

    def delete_record(self, record_id: str) -> None:
        self._delete("records", {record_id})

    def delete_records(self, record_ids: list[str]) -> None:
        if record_ids:
            self._delete("records", set(record_ids))

    def delete_schedule(self, schedule_id: str) -> None:
        self._delete("schedules", {schedule_id})

    def delete_milestone(self, milestone_id: str) -> None:
        self._delete("milestones", {milestone_id})

    def replace_all(self, data: ClubData) -> None:
        document = data.to_document()
        for key in DOCUMENT_FILES:
            self._save_collection(key, document[key])

    def check_connection(self) -> bool:
        try:
            self._retry(self.storage.check, "connection check")
        except StorageError as exc:
            logger.error("Storage connection check failed: %s", exc)
            return False
        return True

    def save_backup(self, data: ClubData, now: Optional[datetime] = None) -> str:
        moment = now_kst(now)
        stamp = moment.strftime("%Y-%m-%dT%H-%M-%S-%f")
        key = f"{BACKUP_PREFIX}backup-{stamp}.json"
        payload = data.to_document()
        payload["backupDate"] = moment.isoformat(timespec="milliseconds")
        payload["version"] = BACKUP_VERSION
        self._save_document(key, payload)
        logger.info("Saved backup %s", key)
        return key

    def list_backups(self) -> list[dict]:
        objects = self._retry(
            lambda: self.storage.list_keys(BACKUP_PREFIX), "list backups"
        )
        objects = [o for o in objects if o.key.endswith(".json")]
        objects.sort(key=lambda o: (o.last_modified, o.key), reverse=True)
        return [
            {"key": o.key, "last_modified": o.last_modified} for o in objects
        ]

    def load_backup(self, key: str) -> ClubData:
        if not key.startswith(BACKUP_PREFIX) or not key.endswith(".json"):
            raise ValidationError("key", f"Not a backup file: {key}")
        try:
            payload = self._load_document(key)
        except FileNotFoundError as exc:
            raise NotFoundError("backup", key) from exc
        return ClubData.from_document(payload)
