"""
Pydantic schemas for the club API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class MemberCreate(BaseModel):
    name: str = Field(..., max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    join_date: Optional[str] = None


class MemberUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    join_date: Optional[str] = None


class MemberResponse(BaseModel):
    id: str
    name: str
    join_date: str
    email: Optional[str] = None
    phone: Optional[str] = None
    total_distance: float
    record_count: int
    created_at: str
    updated_at: str


class RecordCreate(BaseModel):
    member_id: str
    distance: float
    date: Optional[str] = None
    time: Optional[str] = None
    pace: Optional[str] = None
    notes: str = Field("", max_length=500)


class RecordUpdate(BaseModel):
    member_id: Optional[str] = None
    distance: Optional[float] = None
    date: Optional[str] = None
    time: Optional[str] = None
    pace: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class RecordResponse(BaseModel):
    id: str
    member_id: str
    distance: float
    date: str
    time: str
    pace: Optional[str] = None
    notes: str
    created_at: str
    updated_at: str


class RecentRecordResponse(RecordResponse):
    member_name: Optional[str] = None


class ScheduleCreate(BaseModel):
    title: str = Field(..., max_length=200)
    date: str
    time: Optional[str] = None
    location: str = Field("", max_length=200)
    description: str = Field("", max_length=1000)
    participants: list[str] = Field(default_factory=list)


class ScheduleUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    participants: Optional[list[str]] = None


class ScheduleResponse(BaseModel):
    id: str
    date: str
    title: str
    time: str
    location: str
    description: str
    participants: list[str]
    created_at: str
    updated_at: str


class MilestoneCreate(BaseModel):
    target_km: float
    reward: str = Field(..., max_length=200)
    is_active: bool = True


class MilestoneUpdate(BaseModel):
    target_km: Optional[float] = None
    reward: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None


class MilestoneResponse(BaseModel):
    id: str
    target_km: float
    reward: str
    is_active: bool
    created_at: str
    updated_at: str


class AddRecordResponse(BaseModel):
    record: RecordResponse
    celebrations: list[MilestoneResponse]


class ClubDataResponse(BaseModel):
    members: list[MemberResponse]
    records: list[RecordResponse]
    schedules: list[ScheduleResponse]
    milestones: list[MilestoneResponse]


class MemberStatsResponse(BaseModel):
    member_id: str
    name: str
    rank: int
    total_distance: float
    record_count: int
    average_distance: float
    weekly_distance: float
    monthly_distance: float
    average_pace: Optional[str] = None
    last_run_date: Optional[str] = None


class TeamStatsResponse(BaseModel):
    total_distance: float
    total_records: int
    average_distance: float
    active_members: int
    weekly_distance: float
    monthly_distance: float
    weekly_goal_progress: float
    monthly_goal_progress: float


class SummaryResponse(BaseModel):
    total_members: int
    total_records: int
    this_month_records: int
    total_distance: float


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    backend: str
    connected: bool


class StatusResponse(BaseModel):
    status: Literal["ok"]


class BackupResponse(BaseModel):
    key: str


class BackupInfo(BaseModel):
    key: str
    last_modified: float


class BackupListResponse(BaseModel):
    backups: list[BackupInfo]


class RestoreRequest(BaseModel):
    key: str = Field(..., min_length=1)


class ImportResponse(BaseModel):
    members: int
    records: int
    schedules: int
    milestones: int


class RecalculateResponse(BaseModel):
    updated_members: int
