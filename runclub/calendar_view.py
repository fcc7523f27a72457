"""
Month grid for the meetup calendar.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from runclub.models import Schedule


@dataclass
class CalendarDay:
    date: date
    schedules: list[Schedule] = field(default_factory=list)
    is_today: bool = False
    is_current_month: bool = False
    is_selected: bool = False

    @property
    def has_schedule(self) -> bool:
        return bool(self.schedules)

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "has_schedule": self.has_schedule,
            "schedules": [s.id for s in self.schedules],
            "is_today": self.is_today,
            "is_current_month": self.is_current_month,
            "is_selected": self.is_selected,
        }


def schedules_on(day: str, schedules: Iterable[Schedule]) -> list[Schedule]:
    return sorted((s for s in schedules if s.date == day), key=lambda s: s.time)


def upcoming_schedules(
    schedules: Iterable[Schedule], today: date, limit: Optional[int] = None
) -> list[Schedule]:
    today_str = today.isoformat()
    upcoming = sorted(
        (s for s in schedules if s.date >= today_str), key=lambda s: (s.date, s.time)
    )
    return upcoming[:limit] if limit else upcoming


def previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def next_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def build_month(
    year: int,
    month: int,
    schedules: Iterable[Schedule],
    today: date,
    selected: Optional[date] = None,
) -> list[CalendarDay]:
    """
    Sunday-first grid covering the whole month: it starts on the Sunday on or
    before the 1st and ends on the Saturday on or after the last day.
    """
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    end = last + timedelta(days=(5 - last.weekday()) % 7)

    by_date: dict[str, list[Schedule]] = {}
    for schedule in schedules:
        by_date.setdefault(schedule.date, []).append(schedule)

    days: list[CalendarDay] = []
    current = start
    while current <= end:
        days.append(
            CalendarDay(
                date=current,
                schedules=sorted(by_date.get(current.isoformat(), []), key=lambda s: s.time),
                is_today=current == today,
                is_current_month=current.month == month,
                is_selected=selected is not None and current == selected,
            )
        )
        current += timedelta(days=1)
    return days


def month_view(
    year: int,
    month: int,
    schedules: Iterable[Schedule],
    today: date,
    selected: Optional[date] = None,
) -> dict:
    schedules = list(schedules)
    prev_year, prev_month = previous_month(year, month)
    next_year, next_month_ = next_month(year, month)
    return {
        "year": year,
        "month": month,
        "previous": {"year": prev_year, "month": prev_month},
        "next": {"year": next_year, "month": next_month_},
        "days": [day.as_dict() for day in build_month(year, month, schedules, today, selected)],
        "schedules": {
            s.id: {"title": s.title, "date": s.date, "time": s.time, "location": s.location}
            for s in schedules
            if s.date.startswith(f"{year:04d}-{month:02d}")
        },
    }
