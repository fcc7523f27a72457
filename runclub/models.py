"""
Club entities and their stored document format.

Storage backends keep the camelCase layout the club's JSON files have
always used (``memberId``, ``totalDistance``, ``lastUpdated``...), so every
entity converts to and from that layout with ``to_document``/``from_document``.
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from runclub.dates import DATE_PATTERN


def new_id(kind: str) -> str:
    return f"{kind}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return float(value)
    return float(value)


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(_as_float(value))


def _as_id(value: Any) -> str:
    if isinstance(value, Decimal):
        value = int(value)
    return str(value)


def _optional(value: Any) -> Optional[str]:
    return value if value else None


@dataclass
class Member:
    id: str
    name: str
    join_date: str
    email: Optional[str] = None
    phone: Optional[str] = None
    total_distance: float = 0.0
    record_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "joinDate": self.join_date,
            "totalDistance": self.total_distance,
            "recordCount": self.record_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict) -> "Member":
        return cls(
            id=_as_id(data["id"]),
            name=data.get("name", ""),
            join_date=data.get("joinDate", ""),
            email=_optional(data.get("email")),
            phone=_optional(data.get("phone")),
            total_distance=_as_float(data.get("totalDistance")),
            record_count=_as_int(data.get("recordCount")),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class RunRecord:
    id: str
    member_id: str
    distance: float
    date: str
    time: str = ""
    pace: Optional[str] = None
    notes: str = ""
    created_at: str = ""
    updated_at: str = ""

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "memberId": self.member_id,
            "distance": self.distance,
            "date": self.date,
            "time": self.time,
            "pace": self.pace,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict) -> "RunRecord":
        # Early records stored a localized display date next to the
        # ISO "originalDate".
        day = data.get("date") or ""
        if not DATE_PATTERN.fullmatch(str(day)) and data.get("originalDate"):
            day = str(data["originalDate"])[:10]
        return cls(
            id=_as_id(data["id"]),
            member_id=_as_id(data.get("memberId", "")),
            distance=_as_float(data.get("distance")),
            date=day,
            time=data.get("time") or "",
            pace=_optional(data.get("pace")),
            notes=data.get("notes") or "",
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class Schedule:
    id: str
    date: str
    title: str
    time: str = ""
    location: str = ""
    description: str = ""
    participants: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "title": self.title,
            "time": self.time,
            "location": self.location,
            "description": self.description,
            "participants": list(self.participants),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict) -> "Schedule":
        return cls(
            id=_as_id(data["id"]),
            date=data.get("date", ""),
            title=data.get("title", ""),
            time=data.get("time") or "",
            location=data.get("location") or "",
            description=data.get("description") or "",
            participants=[_as_id(p) for p in data.get("participants") or []],
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class Milestone:
    id: str
    target_km: float
    reward: str
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "targetKm": self.target_km,
            "reward": self.reward,
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict) -> "Milestone":
        is_active = data.get("isActive")
        return cls(
            id=_as_id(data["id"]),
            target_km=_as_float(data.get("targetKm")),
            reward=data.get("reward", ""),
            is_active=True if is_active is None else bool(is_active),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


ENTITY_TYPES = {
    "members": Member,
    "records": RunRecord,
    "schedules": Schedule,
    "milestones": Milestone,
}


@dataclass
class ClubData:
    members: list[Member] = field(default_factory=list)
    records: list[RunRecord] = field(default_factory=list)
    schedules: list[Schedule] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)

    def copy(self) -> "ClubData":
        return copy.deepcopy(self)

    def collection(self, key: str) -> list:
        return getattr(self, key)

    def to_document(self) -> dict:
        return {
            key: [item.to_document() for item in self.collection(key)]
            for key in ENTITY_TYPES
        }

    @classmethod
    def from_document(cls, data: dict) -> "ClubData":
        return cls(
            **{
                key: [entity.from_document(item) for item in data.get(key) or []]
                for key, entity in ENTITY_TYPES.items()
            }
        )
