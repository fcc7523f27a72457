"""
HTTP routes for the club API.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from runclub.dependencies import get_service
from runclub.schemas import (
    AddRecordResponse,
    BackupListResponse,
    BackupResponse,
    ClubDataResponse,
    HealthResponse,
    ImportResponse,
    MemberCreate,
    MemberResponse,
    MemberStatsResponse,
    MemberUpdate,
    MilestoneCreate,
    MilestoneResponse,
    MilestoneUpdate,
    RecalculateResponse,
    RecentRecordResponse,
    RecordCreate,
    RecordResponse,
    RecordUpdate,
    RestoreRequest,
    ScheduleCreate,
    ScheduleResponse,
    ScheduleUpdate,
    StatusResponse,
    SummaryResponse,
    TeamStatsResponse,
)
from runclub.service import ClubService

logger = logging.getLogger(__name__)

router = APIRouter()

Direction = Literal["asc", "desc"]


def _club_data(service: ClubService) -> dict:
    data = service.data
    return {
        "members": [asdict(m) for m in data.members],
        "records": [asdict(r) for r in data.records],
        "schedules": [asdict(s) for s in data.schedules],
        "milestones": [asdict(m) for m in data.milestones],
    }


@router.get("/health", response_model=HealthResponse)
def health(service: ClubService = Depends(get_service)):
    connected = service.store.check_connection()
    return HealthResponse(
        status="ok" if connected else "degraded",
        backend=service.store.backend_name,
        connected=connected,
    )


@router.get("/data", response_model=ClubDataResponse)
def get_data(
    refresh: bool = Query(False),
    service: ClubService = Depends(get_service),
):
    if refresh:
        service.refresh()
    return _club_data(service)


# -- members -----------------------------------------------------------------


@router.get("/members", response_model=list[MemberResponse])
def list_members(
    sort: str = Query("name"),
    direction: Direction = Query("asc"),
    service: ClubService = Depends(get_service),
):
    return [asdict(m) for m in service.members(sort, direction)]


@router.post("/members", response_model=MemberResponse, status_code=201)
def create_member(payload: MemberCreate, service: ClubService = Depends(get_service)):
    member = service.add_member(
        payload.name,
        email=payload.email,
        phone=payload.phone,
        join_date=payload.join_date,
    )
    return asdict(member)


@router.get("/members/{member_id}", response_model=MemberResponse)
def get_member(member_id: str, service: ClubService = Depends(get_service)):
    return asdict(service.get_member(member_id))


@router.patch("/members/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: str,
    payload: MemberUpdate,
    service: ClubService = Depends(get_service),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied")
    return asdict(service.update_member(member_id, changes))


@router.delete("/members/{member_id}", response_model=StatusResponse)
def delete_member(member_id: str, service: ClubService = Depends(get_service)):
    service.delete_member(member_id)
    return StatusResponse(status="ok")


@router.get("/members/{member_id}/records", response_model=list[RecordResponse])
def member_records(
    member_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: ClubService = Depends(get_service),
):
    return [asdict(r) for r in service.records(member_id=member_id, limit=limit)]


# -- records -----------------------------------------------------------------


@router.get("/records", response_model=list[RecordResponse])
def list_records(
    member_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: ClubService = Depends(get_service),
):
    return [asdict(r) for r in service.records(member_id=member_id, limit=limit)]


@router.get("/records/recent", response_model=list[RecentRecordResponse])
def recent_records(
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: ClubService = Depends(get_service),
):
    return service.recent_records(limit)


@router.post("/records", response_model=AddRecordResponse, status_code=201)
def create_record(payload: RecordCreate, service: ClubService = Depends(get_service)):
    record, crossed = service.add_record(
        payload.member_id,
        payload.distance,
        date=payload.date,
        pace=payload.pace,
        notes=payload.notes,
        time=payload.time,
    )
    return {
        "record": asdict(record),
        "celebrations": [asdict(m) for m in crossed],
    }


@router.patch("/records/{record_id}", response_model=RecordResponse)
def update_record(
    record_id: str,
    payload: RecordUpdate,
    service: ClubService = Depends(get_service),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied")
    return asdict(service.update_record(record_id, changes))


@router.delete("/records/{record_id}", response_model=StatusResponse)
def delete_record(record_id: str, service: ClubService = Depends(get_service)):
    service.delete_record(record_id)
    return StatusResponse(status="ok")


# -- schedules ---------------------------------------------------------------


@router.get("/schedules", response_model=list[ScheduleResponse])
def list_schedules(
    date: Optional[str] = Query(None),
    upcoming: bool = Query(False),
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: ClubService = Depends(get_service),
):
    if upcoming:
        schedules = service.upcoming_schedules(limit)
    else:
        schedules = service.schedules(date)
    return [asdict(s) for s in schedules]


@router.post("/schedules", response_model=ScheduleResponse, status_code=201)
def create_schedule(payload: ScheduleCreate, service: ClubService = Depends(get_service)):
    schedule = service.add_schedule(
        payload.title,
        payload.date,
        time=payload.time,
        location=payload.location,
        description=payload.description,
        participants=payload.participants,
    )
    return asdict(schedule)


@router.patch("/schedules/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    service: ClubService = Depends(get_service),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied")
    return asdict(service.update_schedule(schedule_id, changes))


@router.delete("/schedules/{schedule_id}", response_model=StatusResponse)
def delete_schedule(schedule_id: str, service: ClubService = Depends(get_service)):
    service.delete_schedule(schedule_id)
    return StatusResponse(status="ok")


@router.post(
    "/schedules/{schedule_id}/participants/{member_id}",
    response_model=ScheduleResponse,
)
def join_schedule(
    schedule_id: str, member_id: str, service: ClubService = Depends(get_service)
):
    return asdict(service.join_schedule(schedule_id, member_id))


@router.delete(
    "/schedules/{schedule_id}/participants/{member_id}",
    response_model=ScheduleResponse,
)
def leave_schedule(
    schedule_id: str, member_id: str, service: ClubService = Depends(get_service)
):
    return asdict(service.leave_schedule(schedule_id, member_id))


# -- milestones --------------------------------------------------------------


@router.get("/milestones", response_model=list[MilestoneResponse])
def list_milestones(service: ClubService = Depends(get_service)):
    return [asdict(m) for m in service.milestones()]


@router.post("/milestones", response_model=MilestoneResponse, status_code=201)
def create_milestone(payload: MilestoneCreate, service: ClubService = Depends(get_service)):
    milestone = service.add_milestone(
        payload.target_km, payload.reward, is_active=payload.is_active
    )
    return asdict(milestone)


@router.patch("/milestones/{milestone_id}", response_model=MilestoneResponse)
def update_milestone(
    milestone_id: str,
    payload: MilestoneUpdate,
    service: ClubService = Depends(get_service),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied")
    return asdict(service.update_milestone(milestone_id, changes))


@router.post("/milestones/{milestone_id}/toggle", response_model=MilestoneResponse)
def toggle_milestone(milestone_id: str, service: ClubService = Depends(get_service)):
    return asdict(service.toggle_milestone(milestone_id))


@router.delete("/milestones/{milestone_id}", response_model=StatusResponse)
def delete_milestone(milestone_id: str, service: ClubService = Depends(get_service)):
    service.delete_milestone(milestone_id)
    return StatusResponse(status="ok")


# -- stats -------------------------------------------------------------------


@router.get("/stats/members", response_model=list[MemberStatsResponse])
def member_stats(
    sort: str = Query("rank"),
    direction: Direction = Query("asc"),
    service: ClubService = Depends(get_service),
):
    return [s.as_dict() for s in service.member_stats(sort, direction)]


@router.get("/stats/team", response_model=TeamStatsResponse)
def team_stats(service: ClubService = Depends(get_service)):
    return service.team_stats().as_dict()


@router.get("/stats/summary", response_model=SummaryResponse)
def summary(service: ClubService = Depends(get_service)):
    return service.summary()


@router.get("/stats/goals")
def team_goals(service: ClubService = Depends(get_service)):
    return service.team_goals()


# -- calendar ----------------------------------------------------------------


@router.get("/calendar/{year}/{month}")
def calendar_month(
    year: int,
    month: int,
    selected: Optional[date] = Query(None),
    service: ClubService = Depends(get_service),
):
    if not 1 <= year <= 9999:
        raise HTTPException(status_code=400, detail="Invalid year")
    return service.calendar(year, month, selected=selected)


# -- admin -------------------------------------------------------------------


@router.get("/admin/export")
def export_data(service: ClubService = Depends(get_service)):
    return service.export_data()


@router.post("/admin/import", response_model=ImportResponse)
def import_data(
    payload: dict = Body(...),
    service: ClubService = Depends(get_service),
):
    imported = service.import_data(payload)
    return ImportResponse(
        members=len(imported.members),
        records=len(imported.records),
        schedules=len(imported.schedules),
        milestones=len(imported.milestones),
    )


@router.post("/admin/backups", response_model=BackupResponse, status_code=201)
def create_backup(service: ClubService = Depends(get_service)):
    return BackupResponse(key=service.create_backup())


@router.get("/admin/backups", response_model=BackupListResponse)
def list_backups(service: ClubService = Depends(get_service)):
    return BackupListResponse(backups=service.list_backups())


@router.post("/admin/backups/restore", response_model=ImportResponse)
def restore_backup(payload: RestoreRequest, service: ClubService = Depends(get_service)):
    restored = service.restore_backup(payload.key)
    return ImportResponse(
        members=len(restored.members),
        records=len(restored.records),
        schedules=len(restored.schedules),
        milestones=len(restored.milestones),
    )


@router.post("/admin/recalculate", response_model=RecalculateResponse)
def recalculate(service: ClubService = Depends(get_service)):
    return RecalculateResponse(updated_members=service.recalculate_counters())
