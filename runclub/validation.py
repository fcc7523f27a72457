"""
Field validation shared by the service layer.

Each validator returns the normalized value or raises ValidationError.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from runclub.dates import parse_date
from runclub.errors import ValidationError

MIN_DISTANCE = 0.1
MAX_DISTANCE = 100.0
MIN_NAME_LENGTH = 1
MAX_NAME_LENGTH = 50
MAX_TITLE_LENGTH = 100

PACE_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


def validate_name(value: Any, field: str = "name", max_length: int = MAX_NAME_LENGTH) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(field, f"{field} must be text")
    name = value.strip()
    if not MIN_NAME_LENGTH <= len(name) <= max_length:
        raise ValidationError(
            field, f"{field} must be {MIN_NAME_LENGTH}-{max_length} characters"
        )
    return name


def validate_distance(value: Any) -> float:
    try:
        distance = float(value)
    except (TypeError, ValueError):
        raise ValidationError("distance", "distance must be a number") from None
    if not math.isfinite(distance) or not MIN_DISTANCE <= distance <= MAX_DISTANCE:
        raise ValidationError(
            "distance", f"distance must be between {MIN_DISTANCE} and {MAX_DISTANCE} km"
        )
    return distance


def validate_pace(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    match = PACE_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if not match or int(match.group(2)) >= 60:
        raise ValidationError("pace", "pace must look like M:SS")
    return value


def validate_date(value: Any, field: str = "date") -> str:
    try:
        return parse_date(value).isoformat()
    except ValueError:
        raise ValidationError(field, f"{field} must be a valid YYYY-MM-DD date") from None


def validate_time(value: Optional[str], field: str = "time") -> str:
    if value is None or value == "":
        return ""
    match = TIME_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if not match or int(match.group(1)) >= 24 or int(match.group(2)) >= 60:
        raise ValidationError(field, f"{field} must look like HH:MM")
    return value


def validate_email(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not EMAIL_PATTERN.fullmatch(value):
        raise ValidationError("email", "email is not valid")
    return value


def validate_target_km(value: Any) -> float:
    try:
        target = float(value)
    except (TypeError, ValueError):
        raise ValidationError("target_km", "target_km must be a number") from None
    if not math.isfinite(target) or target <= 0:
        raise ValidationError("target_km", "target_km must be greater than 0")
    return target


def validate_reward(value: Any) -> str:
    reward = value.strip() if isinstance(value, str) else ""
    if not reward:
        raise ValidationError("reward", "reward is required")
    return reward
