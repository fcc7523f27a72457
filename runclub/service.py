"""
Club operations on top of a storage manager.

The service keeps the loaded club data in memory. Every mutation is applied
to that state first and then written to the store; when the write fails the
in-memory state is restored from a snapshot and the error is re-raised.
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import threading
from datetime import date, datetime
from typing import Any, Iterator, Optional

from runclub import calendar_view, stats, validation
from runclub.dates import current_time_str, now_iso, today_kst, today_str
from runclub.errors import ClubError, ConflictError, NotFoundError, ValidationError
from runclub.models import (
    ClubData,
    Member,
    Milestone,
    RunRecord,
    Schedule,
    new_id,
)
from runclub.stores import BACKUP_VERSION, ClubStore

logger = logging.getLogger(__name__)

MEMBER_FIELDS = {"name", "email", "phone", "join_date"}
RECORD_FIELDS = {"member_id", "distance", "date", "time", "pace", "notes"}
SCHEDULE_FIELDS = {"date", "title", "time", "location", "description", "participants"}
MILESTONE_FIELDS = {"target_km", "reward", "is_active"}


def _find(items: list, item_id: str, kind: str):
    for item in items:
        if item.id == item_id:
            return item
    raise NotFoundError(kind, item_id)


def _replace_item(items: list, updated) -> None:
    for index, item in enumerate(items):
        if item.id == updated.id:
            items[index] = updated
            return


def _check_fields(changes: dict, allowed: set[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        field = sorted(unknown)[0]
        raise ValidationError(field, f"{field} cannot be changed")


def _check_unique_ids(data: ClubData) -> None:
    for key in ("members", "records", "schedules", "milestones"):
        seen: set[str] = set()
        for item in data.collection(key):
            if item.id in seen:
                raise ValidationError(key, f"Duplicate id in {key}: {item.id}")
            seen.add(item.id)


class ClubService:
    def __init__(self, store: ClubStore, *, recent_records_limit: int = 10):
        self.store = store
        self.recent_records_limit = recent_records_limit
        self._data: Optional[ClubData] = None
        self._lock = threading.RLock()

    # -- state ---------------------------------------------------------------

    @property
    def data(self) -> ClubData:
        with self._lock:
            if self._data is None:
                self._data = self.store.load_all()
                logger.info(
                    "Loaded club data from %s: %d members, %d records",
                    self.store.backend_name,
                    len(self._data.members),
                    len(self._data.records),
                )
            return self._data

    def refresh(self) -> ClubData:
        with self._lock:
            self._data = None
            return self.data

    @contextlib.contextmanager
    def _optimistic(self, action: str) -> Iterator[ClubData]:
        with self._lock:
            data = self.data
            snapshot = data.copy()
            try:
                yield data
            except Exception:
                self._data = snapshot
                logger.warning("Rolled back %s", action)
                raise

    # -- members -------------------------------------------------------------

    def _check_unique_name(self, data: ClubData, name: str, exclude_id: Optional[str] = None) -> None:
        folded = name.casefold()
        for member in data.members:
            if member.id != exclude_id and member.name.strip().casefold() == folded:
                raise ConflictError(f"A member named {name!r} already exists")

    def add_member(
        self,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        join_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Member:
        name = validation.validate_name(name)
        email = validation.validate_email(email)
        join_date = validation.validate_date(join_date, "join_date") if join_date else today_str(now)
        stamp = now_iso(now)
        member = Member(
            id=new_id("member"),
            name=name,
            join_date=join_date,
            email=email,
            phone=(phone or "").strip() or None,
            created_at=stamp,
            updated_at=stamp,
        )
        with self._optimistic("add member") as data:
            self._check_unique_name(data, name)
            data.members.append(member)
            self.store.put_member(member)
        logger.info("Added member %s (%s)", member.id, member.name)
        return member

    def update_member(self, member_id: str, changes: dict, now: Optional[datetime] = None) -> Member:
        _check_fields(changes, MEMBER_FIELDS)
        with self._optimistic("update member") as data:
            member = _find(data.members, member_id, "member")
            values: dict[str, Any] = {}
            if "name" in changes:
                values["name"] = validation.validate_name(changes["name"])
                self._check_unique_name(data, values["name"], exclude_id=member_id)
            if "email" in changes:
                values["email"] = validation.validate_email(changes["email"])
            if "phone" in changes:
                values["phone"] = (changes["phone"] or "").strip() or None
            if "join_date" in changes:
                values["join_date"] = validation.validate_date(changes["join_date"], "join_date")
            updated = dataclasses.replace(member, updated_at=now_iso(now), **values)
            _replace_item(data.members, updated)
            self.store.put_member(updated)
        return updated

    def delete_member(self, member_id: str, now: Optional[datetime] = None) -> None:
        """Delete a member together with their records and schedule entries."""
        with self._optimistic("delete member") as data:
            _find(data.members, member_id, "member")
            record_ids = [r.id for r in data.records if r.member_id == member_id]
            data.members = [m for m in data.members if m.id != member_id]
            data.records = [r for r in data.records if r.member_id != member_id]
            touched = []
            for index, schedule in enumerate(data.schedules):
                if member_id in schedule.participants:
                    updated = dataclasses.replace(
                        schedule,
                        participants=[p for p in schedule.participants if p != member_id],
                        updated_at=now_iso(now),
                    )
                    data.schedules[index] = updated
                    touched.append(updated)
            self.store.delete_records(record_ids)
            for schedule in touched:
                self.store.put_schedule(schedule)
            self.store.delete_member(member_id)
        logger.info("Deleted member %s and %d records", member_id, len(record_ids))

    def members(self, sort: str = "name", direction: str = "asc") -> list[Member]:
        keys = {
            "name": lambda m: m.name.casefold(),
            "join_date": lambda m: m.join_date,
            "created_at": lambda m: m.created_at,
            "total_distance": lambda m: m.total_distance,
        }
        if sort not in keys:
            raise ValidationError("sort", f"Unknown sort field: {sort}")
        return sorted(self.data.members, key=keys[sort], reverse=direction == "desc")

    def get_member(self, member_id: str) -> Member:
        return _find(self.data.members, member_id, "member")

    # -- records -------------------------------------------------------------

    @staticmethod
    def _adjust_member(data: ClubData, member_id: str, distance: float, count: int, stamp: str) -> Optional[Member]:
        for index, member in enumerate(data.members):
            if member.id == member_id:
                updated = dataclasses.replace(
                    member,
                    total_distance=max(0.0, round(member.total_distance + distance, 3)),
                    record_count=max(0, member.record_count + count),
                    updated_at=stamp,
                )
                data.members[index] = updated
                return updated
        return None

    def add_record(
        self,
        member_id: str,
        distance: float,
        date: Optional[str] = None,
        pace: Optional[str] = None,
        notes: str = "",
        time: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[RunRecord, list[Milestone]]:
        """
        Log a run. Returns the record and the milestones the team total
        crossed with it.
        """
        distance = validation.validate_distance(distance)
        day = validation.validate_date(date) if date else today_str(now)
        pace = validation.validate_pace(pace)
        run_time = validation.validate_time(time) if time else current_time_str(now)
        stamp = now_iso(now)
        with self._optimistic("add record") as data:
            _find(data.members, member_id, "member")
            before = stats.team_total(data.members)
            record = RunRecord(
                id=new_id("record"),
                member_id=member_id,
                distance=distance,
                date=day,
                time=run_time,
                pace=pace,
                notes=(notes or "").strip(),
                created_at=stamp,
                updated_at=stamp,
            )
            data.records.append(record)
            member = self._adjust_member(data, member_id, distance, 1, stamp)
            after = stats.team_total(data.members)
            self.store.put_record(record)
            self.store.put_member(member)
        crossed = stats.crossed_milestones(
            before, after, stats.effective_milestones(data.milestones)
        )
        for milestone in crossed:
            logger.info("Team reached %.1f km milestone: %s", milestone.target_km, milestone.reward)
        return record, crossed

    def update_record(self, record_id: str, changes: dict, now: Optional[datetime] = None) -> RunRecord:
        _check_fields(changes, RECORD_FIELDS)
        stamp = now_iso(now)
        with self._optimistic("update record") as data:
            record = _find(data.records, record_id, "record")
            values: dict[str, Any] = {}
            if "member_id" in changes:
                values["member_id"] = _find(data.members, changes["member_id"], "member").id
            if "distance" in changes:
                values["distance"] = validation.validate_distance(changes["distance"])
            if "date" in changes:
                values["date"] = validation.validate_date(changes["date"])
            if "time" in changes:
                values["time"] = validation.validate_time(changes["time"])
            if "pace" in changes:
                values["pace"] = validation.validate_pace(changes["pace"])
            if "notes" in changes:
                values["notes"] = (changes["notes"] or "").strip()
            updated = dataclasses.replace(record, updated_at=stamp, **values)
            _replace_item(data.records, updated)

            touched = []
            if updated.member_id != record.member_id:
                touched.append(self._adjust_member(data, record.member_id, -record.distance, -1, stamp))
                touched.append(self._adjust_member(data, updated.member_id, updated.distance, 1, stamp))
            elif updated.distance != record.distance:
                touched.append(
                    self._adjust_member(data, record.member_id, updated.distance - record.distance, 0, stamp)
                )
            self.store.put_record(updated)
            for member in touched:
                if member is not None:
                    self.store.put_member(member)
        return updated

    def delete_record(self, record_id: str, now: Optional[datetime] = None) -> None:
        with self._optimistic("delete record") as data:
            record = _find(data.records, record_id, "record")
            data.records = [r for r in data.records if r.id != record_id]
            member = self._adjust_member(data, record.member_id, -record.distance, -1, now_iso(now))
            self.store.delete_record(record_id)
            if member is not None:
                self.store.put_member(member)

    def records(self, member_id: Optional[str] = None, limit: Optional[int] = None) -> list[RunRecord]:
        records = self.data.records
        if member_id is not None:
            _find(self.data.members, member_id, "member")
            records = [r for r in records if r.member_id == member_id]
        ordered = sorted(records, key=lambda r: (r.date, r.created_at), reverse=True)
        return ordered[:limit] if limit else ordered

    def recent_records(self, limit: Optional[int] = None) -> list[dict]:
        data = self.data
        return stats.recent_records(data.records, data.members, limit or self.recent_records_limit)

    def recalculate_counters(self, now: Optional[datetime] = None) -> int:
        """Rebuild every member's distance and record count from the records."""
        stamp = now_iso(now)
        with self._optimistic("recalculate counters") as data:
            totals: dict[str, tuple[float, int]] = {}
            for record in data.records:
                distance, count = totals.get(record.member_id, (0.0, 0))
                totals[record.member_id] = (distance + record.distance, count + 1)
            changed = []
            for index, member in enumerate(data.members):
                distance, count = totals.get(member.id, (0.0, 0))
                distance = round(distance, 3)
                if member.total_distance != distance or member.record_count != count:
                    updated = dataclasses.replace(
                        member, total_distance=distance, record_count=count, updated_at=stamp
                    )
                    data.members[index] = updated
                    changed.append(updated)
            for member in changed:
                self.store.put_member(member)
        logger.info("Recalculated counters for %d members", len(changed))
        return len(changed)

    # -- schedules -----------------------------------------------------------

    def _validate_participants(self, data: ClubData, participants) -> list[str]:
        known = {m.id for m in data.members}
        result: list[str] = []
        if participants is None:
            return []
        if not isinstance(participants, list):
            raise ValidationError("participants", "participants must be a list of member ids")
        for member_id in participants:
            if member_id not in known:
                raise ValidationError("participants", f"Unknown member: {member_id}")
            if member_id not in result:
                result.append(member_id)
        return result

    def add_schedule(
        self,
        title: str,
        date: str,
        time: Optional[str] = None,
        location: str = "",
        description: str = "",
        participants: Optional[list[str]] = None,
        now: Optional[datetime] = None,
    ) -> Schedule:
        title = validation.validate_name(title, "title", validation.MAX_TITLE_LENGTH)
        day = validation.validate_date(date)
        run_time = validation.validate_time(time)
        stamp = now_iso(now)
        with self._optimistic("add schedule") as data:
            schedule = Schedule(
                id=new_id("schedule"),
                date=day,
                title=title,
                time=run_time,
                location=(location or "").strip(),
                description=(description or "").strip(),
                participants=self._validate_participants(data, participants),
                created_at=stamp,
                updated_at=stamp,
            )
            data.schedules.append(schedule)
            self.store.put_schedule(schedule)
        return schedule

    def update_schedule(self, schedule_id: str, changes: dict, now: Optional[datetime] = None) -> Schedule:
        _check_fields(changes, SCHEDULE_FIELDS)
        with self._optimistic("update schedule") as data:
            schedule = _find(data.schedules, schedule_id, "schedule")
            values: dict[str, Any] = {}
            if "title" in changes:
                values["title"] = validation.validate_name(
                    changes["title"], "title", validation.MAX_TITLE_LENGTH
                )
            if "date" in changes:
                values["date"] = validation.validate_date(changes["date"])
            if "time" in changes:
                values["time"] = validation.validate_time(changes["time"])
            for key in ("location", "description"):
                if key in changes:
                    values[key] = (changes[key] or "").strip()
            if "participants" in changes:
                if changes["participants"] is None:
                    raise ValidationError("participants", "participants cannot be null")
                values["participants"] = self._validate_participants(data, changes["participants"])
            updated = dataclasses.replace(schedule, updated_at=now_iso(now), **values)
            _replace_item(data.schedules, updated)
            self.store.put_schedule(updated)
        return updated

    def delete_schedule(self, schedule_id: str) -> None:
        with self._optimistic("delete schedule") as data:
            _find(data.schedules, schedule_id, "schedule")
            data.schedules = [s for s in data.schedules if s.id != schedule_id]
            self.store.delete_schedule(schedule_id)

    def join_schedule(self, schedule_id: str, member_id: str, now: Optional[datetime] = None) -> Schedule:
        schedule = _find(self.data.schedules, schedule_id, "schedule")
        _find(self.data.members, member_id, "member")
        if member_id in schedule.participants:
            return schedule
        return self.update_schedule(
            schedule_id, {"participants": [*schedule.participants, member_id]}, now=now
        )

    def leave_schedule(self, schedule_id: str, member_id: str, now: Optional[datetime] = None) -> Schedule:
        schedule = _find(self.data.schedules, schedule_id, "schedule")
        if member_id not in schedule.participants:
            return schedule
        return self.update_schedule(
            schedule_id,
            {"participants": [p for p in schedule.participants if p != member_id]},
            now=now,
        )

    def schedules(self, day: Optional[str] = None) -> list[Schedule]:
        schedules = self.data.schedules
        if day is not None:
            day = validation.validate_date(day)
            schedules = [s for s in schedules if s.date == day]
        return sorted(schedules, key=lambda s: (s.date, s.time))

    def upcoming_schedules(self, limit: Optional[int] = None, now: Optional[datetime] = None) -> list[Schedule]:
        return calendar_view.upcoming_schedules(self.data.schedules, today_kst(now), limit)

    def calendar(self, year: int, month: int, selected: Optional[date] = None, now: Optional[datetime] = None) -> dict:
        if not 1 <= month <= 12:
            raise ValidationError("month", "month must be between 1 and 12")
        return calendar_view.month_view(year, month, self.data.schedules, today_kst(now), selected)

    # -- milestones ----------------------------------------------------------

    def add_milestone(
        self, target_km: float, reward: str, is_active: bool = True, now: Optional[datetime] = None
    ) -> Milestone:
        stamp = now_iso(now)
        milestone = Milestone(
            id=new_id("milestone"),
            target_km=validation.validate_target_km(target_km),
            reward=validation.validate_reward(reward),
            is_active=bool(is_active),
            created_at=stamp,
            updated_at=stamp,
        )
        with self._optimistic("add milestone") as data:
            data.milestones.append(milestone)
            self.store.put_milestone(milestone)
        return milestone

    def update_milestone(self, milestone_id: str, changes: dict, now: Optional[datetime] = None) -> Milestone:
        _check_fields(changes, MILESTONE_FIELDS)
        with self._optimistic("update milestone") as data:
            milestone = _find(data.milestones, milestone_id, "milestone")
            values: dict[str, Any] = {}
            if "target_km" in changes:
                values["target_km"] = validation.validate_target_km(changes["target_km"])
            if "reward" in changes:
                values["reward"] = validation.validate_reward(changes["reward"])
            if "is_active" in changes:
                if not isinstance(changes["is_active"], bool):
                    raise ValidationError("is_active", "is_active must be true or false")
                values["is_active"] = changes["is_active"]
            updated = dataclasses.replace(milestone, updated_at=now_iso(now), **values)
            _replace_item(data.milestones, updated)
            self.store.put_milestone(updated)
        return updated

    def toggle_milestone(self, milestone_id: str, now: Optional[datetime] = None) -> Milestone:
        milestone = _find(self.data.milestones, milestone_id, "milestone")
        return self.update_milestone(milestone_id, {"is_active": not milestone.is_active}, now=now)

    def delete_milestone(self, milestone_id: str) -> None:
        with self._optimistic("delete milestone") as data:
            _find(data.milestones, milestone_id, "milestone")
            data.milestones = [m for m in data.milestones if m.id != milestone_id]
            self.store.delete_milestone(milestone_id)

    def milestones(self) -> list[Milestone]:
        return sorted(self.data.milestones, key=lambda m: m.target_km)

    # -- statistics ----------------------------------------------------------

    def member_stats(
        self, sort: str = "rank", direction: str = "asc", now: Optional[datetime] = None
    ) -> list[stats.MemberStats]:
        data = self.data
        ranked = stats.all_member_stats(data.members, data.records, today_kst(now))
        try:
            return stats.sort_member_stats(ranked, sort, direction)
        except ValueError as exc:
            raise ValidationError("sort", str(exc)) from exc

    def team_stats(self, now: Optional[datetime] = None) -> stats.TeamStats:
        data = self.data
        return stats.team_stats(data.members, data.records, today_kst(now))

    def team_goals(self, now: Optional[datetime] = None) -> dict:
        data = self.data
        team = self.team_stats(now)
        total = stats.team_total(data.members)
        return {
            "team_total": total,
            "goals": [g.as_dict() for g in stats.team_goals(team)],
            "next_milestone": stats.next_milestone(total, data.milestones),
            "milestones": [
                {
                    **dataclasses.asdict(m),
                    "is_achieved": total >= m.target_km,
                    "percentage": stats.progress_percentage(total, m.target_km),
                }
                for m in self.milestones()
            ],
        }

    def summary(self, now: Optional[datetime] = None) -> dict:
        return stats.summary(self.data, today_kst(now))

    # -- data management -----------------------------------------------------

    def export_data(self, now: Optional[datetime] = None) -> dict:
        payload = self.data.to_document()
        payload["exportDate"] = now_iso(now)
        payload["version"] = BACKUP_VERSION
        return payload

    def import_data(self, payload: dict) -> ClubData:
        """Replace all club data with an exported payload."""
        for key in ("members", "records", "schedules"):
            if not isinstance(payload.get(key), list):
                raise ValidationError(key, f"{key} must be a list")
        if not isinstance(payload.get("milestones", []), list):
            raise ValidationError("milestones", "milestones must be a list")
        try:
            imported = ClubData.from_document(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError("payload", f"Invalid data format: {exc}") from exc
        _check_unique_ids(imported)
        with self._optimistic("import data"):
            self.store.replace_all(imported)
            self._data = imported
        logger.info(
            "Imported %d members, %d records, %d schedules, %d milestones",
            len(imported.members),
            len(imported.records),
            len(imported.schedules),
            len(imported.milestones),
        )
        return imported

    def _backup_store(self):
        if not hasattr(self.store, "save_backup"):
            raise ClubError(
                f"Backups are not supported by the {self.store.backend_name} backend"
            )
        return self.store

    def create_backup(self, now: Optional[datetime] = None) -> str:
        return self._backup_store().save_backup(self.data, now=now)

    def list_backups(self) -> list[dict]:
        return self._backup_store().list_backups()

    def restore_backup(self, key: str) -> ClubData:
        store = self._backup_store()
        restored = store.load_backup(key)
        _check_unique_ids(restored)
        with self._optimistic("restore backup"):
            store.replace_all(restored)
            self._data = restored
        logger.info("Restored backup %s", key)
        return restored
