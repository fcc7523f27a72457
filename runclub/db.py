"""
SQL storage manager. Accepts any SQLAlchemy URL (Postgres in production,
SQLite for local runs and tests).
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    select,
    text,
)
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from runclub.errors import StorageError
from runclub.models import ClubData, Member, Milestone, RunRecord, Schedule
from runclub.retry import with_retry
from runclub.stores import newest_first

logger = logging.getLogger(__name__)

T = TypeVar("T")

Base = declarative_base()


class MemberRow(Base):
    __tablename__ = "members"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    join_date = Column(String, nullable=False)
    total_distance = Column(Float, nullable=False, default=0.0)
    record_count = Column(Integer, nullable=False, default=0)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class RecordRow(Base):
    __tablename__ = "records"

    id = Column(String, primary_key=True)
    member_id = Column(String, nullable=False, index=True)
    distance = Column(Float, nullable=False)
    date = Column(String, nullable=False, index=True)
    time = Column(String, nullable=False, default="")
    pace = Column(String, nullable=True)
    notes = Column(String, nullable=False, default="")
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class ScheduleRow(Base):
    __tablename__ = "schedules"

    id = Column(String, primary_key=True)
    date = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    time = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    participants = Column(JSON, nullable=False, default=list)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class MilestoneRow(Base):
    __tablename__ = "milestones"

    id = Column(String, primary_key=True)
    target_km = Column(Float, nullable=False)
    reward = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


# Dataclass field names match the column names one to one.
ROW_TYPES = {
    Member: MemberRow,
    RunRecord: RecordRow,
    Schedule: ScheduleRow,
    Milestone: MilestoneRow,
}


def _to_row(entity):
    row_type = ROW_TYPES[type(entity)]
    return row_type(**vars(entity))


def _from_row(entity_type, row):
    values = {
        column.name: getattr(row, column.name)
        for column in row.__table__.columns
    }
    if entity_type is Schedule:
        values["participants"] = list(values["participants"] or [])
    return entity_type(**values)


class SqlClubStore:
    backend_name = "sql"

    def __init__(
        self,
        database_url: str,
        *,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        if not database_url:
            raise ValueError("RUNCLUB_DATABASE_URL is required for SqlClubStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    def _run(self, operation: str, target: str, fn: Callable[[Session], T]) -> T:
        def attempt() -> T:
            try:
                with self.Session() as session:
                    result = fn(session)
                    session.commit()
                    return result
            except OperationalError as exc:
                raise StorageError(
                    "The database is temporarily unavailable. Try again shortly.",
                    code="DatabaseUnavailable",
                    operation=operation,
                    target=target,
                ) from exc
            except SQLAlchemyError as exc:
                message = (
                    "Failed to load data. Refresh and try again."
                    if operation == "load"
                    else "Failed to save data. Try again."
                )
                raise StorageError(
                    message,
                    code=type(exc).__name__,
                    operation=operation,
                    target=target,
                ) from exc

        return with_retry(
            attempt,
            attempts=self.retry_attempts,
            base_delay=self.retry_delay,
            description=f"{operation} {target}",
        )

    def _list(self, entity_type, stmt=None) -> list:
        row_type = ROW_TYPES[entity_type]
        stmt = stmt if stmt is not None else select(row_type)
        return self._run(
            "load",
            row_type.__tablename__,
            lambda session: [
                _from_row(entity_type, row) for row in session.execute(stmt).scalars()
            ],
        )

    def _put(self, entity) -> None:
        row = _to_row(entity)
        self._run("save", row.__tablename__, lambda session: session.merge(row))

    def _delete(self, entity_type, ids: list[str]) -> None:
        row_type = ROW_TYPES[entity_type]
        self._run(
            "delete",
            row_type.__tablename__,
            lambda session: session.execute(
                delete(row_type).where(row_type.id.in_(ids))
            ),
        )

    def load_all(self) -> ClubData:
        return ClubData(
            members=self.list_members(),
            records=self.list_records(),
            schedules=self.list_schedules(),
            milestones=self.list_milestones(),
        )

    def list_members(self) -> list[Member]:
        return self._list(Member, select(MemberRow).order_by(MemberRow.created_at))

    def list_records(self) -> list[RunRecord]:
        return self._list(RunRecord, select(RecordRow).order_by(RecordRow.created_at))

    def list_member_records(self, member_id: str) -> list[RunRecord]:
        stmt = select(RecordRow).where(RecordRow.member_id == member_id)
        return newest_first(self._list(RunRecord, stmt))

    def list_schedules(self) -> list[Schedule]:
        return self._list(Schedule, select(ScheduleRow).order_by(ScheduleRow.date))

    def list_schedules_by_date(self, date: str) -> list[Schedule]:
        return self._list(Schedule, select(ScheduleRow).where(ScheduleRow.date == date))

    def list_milestones(self) -> list[Milestone]:
        return self._list(Milestone, select(MilestoneRow).order_by(MilestoneRow.target_km))

    def put_member(self, member: Member) -> None:
        self._put(member)

    def put_record(self, record: RunRecord) -> None:
        self._put(record)

    def put_schedule(self, schedule: Schedule) -> None:
        self._put(schedule)

    def put_milestone(self, milestone: Milestone) -> None:
        self._put(milestone)

    def delete_member(self, member_id: str) -> None:
        self._delete(Member, [member_id])

    def delete_record(self, record_id: str) -> None:
        self._delete(RunRecord, [record_id])

    def delete_records(self, record_ids: list[str]) -> None:
        if record_ids:
            self._delete(RunRecord, list(record_ids))

    def delete_schedule(self, schedule_id: str) -> None:
        self._delete(Schedule, [schedule_id])

    def delete_milestone(self, milestone_id: str) -> None:
        self._delete(Milestone, [milestone_id])

    def replace_all(self, data: ClubData) -> None:
        def replace(session: Session) -> None:
            for row_type in ROW_TYPES.values():
                session.execute(delete(row_type))
            for key in ("members", "records", "schedules", "milestones"):
                session.add_all([_to_row(item) for item in data.collection(key)])

        self._run("save", "all tables", replace)
        logger.info(
            "Replaced club data: %d members, %d records",
            len(data.members),
            len(data.records),
        )

    def check_connection(self) -> bool:
        try:
            self._run("load", "database", lambda session: session.execute(text("SELECT 1")))
        except StorageError as exc:
            logger.error("Database connection check failed: %s", exc)
            return False
        return True
