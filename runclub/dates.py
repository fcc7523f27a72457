"""
Date helpers. The club runs on Korean time, so "today" is always KST.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

KST = timezone(timedelta(hours=9), "KST")

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def now_kst(now: Optional[datetime] = None) -> datetime:
    if now is None:
        return datetime.now(KST)
    if now.tzinfo is None:
        return now.replace(tzinfo=KST)
    return now.astimezone(KST)


def today_kst(now: Optional[datetime] = None) -> date:
    return now_kst(now).date()


def today_str(now: Optional[datetime] = None) -> str:
    return today_kst(now).isoformat()


def now_iso(now: Optional[datetime] = None) -> str:
    return now_kst(now).isoformat(timespec="milliseconds")


def current_time_str(now: Optional[datetime] = None) -> str:
    return now_kst(now).strftime("%H:%M")


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string. Raises ValueError for anything else."""
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        raise ValueError(f"Expected YYYY-MM-DD, got {value!r}")
    return date.fromisoformat(value)


def start_of_week(day: date) -> date:
    # Weeks start on Sunday.
    return day - timedelta(days=(day.weekday() + 1) % 7)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def is_this_month(value: str, today: date) -> bool:
    try:
        day = parse_date(value)
    except ValueError:
        return False
    return day.year == today.year and day.month == today.month
