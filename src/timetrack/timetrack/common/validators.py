"""Small named validation functions.

Each function validates one thing and raises ``ValidationError`` with a
reason code; callers compose them explicitly.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from ..core.enums import ErrorReason
from ..core.exceptions import ValidationError
from .datetime_utils import add_years, ensure_utc, parse_iso_date
from .time_of_day import TimeOfDay

Orderable = Union[TimeOfDay, datetime]


def validate_time_of_day(value, field_name: str = "time") -> TimeOfDay:
    if isinstance(value, TimeOfDay):
        return value
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be in HH:MM format",
            reason=ErrorReason.INVALID_TIME_FORMAT,
            details={"field": field_name},
        )
    try:
        return TimeOfDay.parse(value)
    except ValueError:
        raise ValidationError(
            f"{field_name} must be in HH:MM format (e.g. \"09:00\")",
            reason=ErrorReason.INVALID_TIME_FORMAT,
            details={"field": field_name, "value": value},
        )


def validate_instant(value, field_name: str = "time") -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(raw))
        except ValueError:
            pass
    raise ValidationError(
        f"{field_name} must be an ISO 8601 timestamp",
        reason=ErrorReason.INVALID_INSTANT,
        details={"field": field_name, "value": value if isinstance(value, str) else repr(value)},
    )


def require_ordered(start: Orderable, end: Orderable) -> None:
    """End must be strictly after start.

    TimeOfDay values compare by minutes since midnight; instants directly.
    Mixing the two raises TypeError.
    """
    if isinstance(start, TimeOfDay) != isinstance(end, TimeOfDay):
        raise TypeError("Cannot compare a time of day with an absolute instant")
    if not end > start:
        raise ValidationError(
            "End time must be after start time",
            reason=ErrorReason.INVALID_RANGE,
            details={"start_time": str(start), "end_time": str(end)},
        )


def validate_calendar_date(value, field_name: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_iso_date(value.strip())
        except ValueError:
            pass
    raise ValidationError(
        f"{field_name} must be in YYYY-MM-DD format",
        reason=ErrorReason.INVALID_DATE,
        details={"field": field_name},
    )


def require_within_window(value: date, *, today: date, years: int = 1) -> date:
    lower = add_years(today, -years)
    upper = add_years(today, years)
    if value < lower or value > upper:
        raise ValidationError(
            f"Date must be within {years} year(s) of today",
            reason=ErrorReason.DATE_OUT_OF_RANGE,
            details={"date": value.isoformat(), "min": lower.isoformat(), "max": upper.isoformat()},
        )
    return value


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", reason=ErrorReason.INVALID_FIELD, details={"field": field_name})
    return value.strip()


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", reason=ErrorReason.INVALID_FIELD, details={"field": field_name})
    if len(value) > max_len:
        raise ValidationError(
            f"{field_name} cannot exceed {max_len} characters",
            reason=ErrorReason.INVALID_FIELD,
            details={"field": field_name, "max_length": max_len},
        )
    return value
