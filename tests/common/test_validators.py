from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from src.timetrack.timetrack.common.time_of_day import TimeOfDay
from src.timetrack.timetrack.common.validators import (
    require_max_length,
    require_non_empty,
    require_ordered,
    require_within_window,
    validate_calendar_date,
    validate_instant,
    validate_time_of_day,
)
from src.timetrack.timetrack.core.enums import ErrorReason
from src.timetrack.timetrack.core.exceptions import ValidationError


@pytest.mark.parametrize("value,minutes", [("00:00", 0), ("09:30", 570), ("23:59", 1439)])
def test_time_of_day_accepts_24_hour_values(value, minutes):
    assert validate_time_of_day(value).minutes == minutes


@pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "0900", "", "09:00:00", None, 900])
def test_time_of_day_rejects_malformed_values(value):
    with pytest.raises(ValidationError) as exc:
        validate_time_of_day(value)
    assert exc.value.reason == ErrorReason.INVALID_TIME_FORMAT
    assert exc.value.kind == "VALIDATION_ERROR"


def test_instant_accepts_z_suffix_and_offsets():
    assert validate_instant("2026-02-10T09:00:00Z") == datetime(2026, 2, 10, 9, 0, tzinfo=timezone.utc)
    assert validate_instant("2026-02-10T10:00:00+01:00") == datetime(2026, 2, 10, 9, 0, tzinfo=timezone.utc)


def test_instant_treats_naive_values_as_utc():
    assert validate_instant(datetime(2026, 2, 10, 9, 0)).tzinfo == timezone.utc


@pytest.mark.parametrize("value", ["yesterday", "2026-13-01T00:00:00Z", "", None, 12])
def test_instant_rejects_unparseable_values(value):
    with pytest.raises(ValidationError) as exc:
        validate_instant(value)
    assert exc.value.reason == ErrorReason.INVALID_INSTANT


def test_require_ordered_compares_time_of_day_by_minutes():
    require_ordered(TimeOfDay.parse("09:00"), TimeOfDay.parse("09:01"))
    with pytest.raises(ValidationError) as exc:
        require_ordered(TimeOfDay.parse("10:00"), TimeOfDay.parse("10:00"))
    assert exc.value.reason == ErrorReason.INVALID_RANGE


def test_require_ordered_compares_instants_directly():
    start = datetime(2026, 2, 10, 9, 0, tzinfo=timezone.utc)
    require_ordered(start, datetime(2026, 2, 10, 9, 0, 1, tzinfo=timezone.utc))
    with pytest.raises(ValidationError):
        require_ordered(start, datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc))


def test_require_ordered_refuses_to_mix_domains():
    with pytest.raises(TypeError):
        require_ordered(TimeOfDay.parse("09:00"), datetime(2026, 2, 10, 9, 0, tzinfo=timezone.utc))


def test_calendar_date_parsing():
    assert validate_calendar_date("2026-02-10") == date(2026, 2, 10)
    assert validate_calendar_date(date(2026, 2, 10)) == date(2026, 2, 10)
    with pytest.raises(ValidationError) as exc:
        validate_calendar_date("2026-02-30")
    assert exc.value.reason == ErrorReason.INVALID_DATE


def test_window_is_one_calendar_year_each_way():
    today = date(2026, 10, 19)
    assert require_within_window(date(2027, 10, 19), today=today) == date(2027, 10, 19)
    assert require_within_window(date(2025, 10, 19), today=today) == date(2025, 10, 19)
    for outside in (date(2027, 10, 20), date(2025, 10, 18)):
        with pytest.raises(ValidationError) as exc:
            require_within_window(outside, today=today)
        assert exc.value.reason == ErrorReason.DATE_OUT_OF_RANGE


def test_window_clamps_leap_day():
    assert require_within_window(date(2029, 2, 28), today=date(2028, 2, 29)) == date(2029, 2, 28)
    with pytest.raises(ValidationError):
        require_within_window(date(2029, 3, 1), today=date(2028, 2, 29))


def test_text_field_helpers():
    assert require_non_empty("  Focus day ", "name") == "Focus day"
    with pytest.raises(ValidationError):
        require_non_empty("   ", "name")
    assert require_max_length(None, "description", 5) is None
    with pytest.raises(ValidationError):
        require_max_length("x" * 6, "description", 5)
