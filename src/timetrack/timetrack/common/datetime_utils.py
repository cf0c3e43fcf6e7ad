from __future__ import annotations

from datetime import date, datetime, timezone

from ..core.constants import DATE_FORMAT, MIN_DURATION_MINUTES
from .time_of_day import TimeOfDay


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, DATE_FORMAT).date()


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return now_utc().date()


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def combine_utc(day: date, tod: TimeOfDay) -> datetime:
    return datetime.combine(day, tod.to_time(), tzinfo=timezone.utc)


def add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 -> Feb 28 on non-leap target years.
        return value.replace(year=value.year + years, day=28)


def duration_minutes(start: datetime, end: datetime | None) -> int | None:
    if end is None:
        return None
    minutes = round((end - start).total_seconds() / 60)
    return max(MIN_DURATION_MINUTES, minutes)


def isoformat_z(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_utc(value).isoformat().replace("+00:00", "Z")
