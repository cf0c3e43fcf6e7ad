from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time

from ..core.constants import MINUTES_PER_DAY

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A wall-clock time not bound to any date, stored as minutes since midnight.

    Kept apart from ``datetime`` on purpose: ordering a TimeOfDay against an
    absolute instant raises ``TypeError``.
    """

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"minutes out of range: {self.minutes!r}")

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """Parse a 24-hour ``HH:MM`` string (00:00 to 23:59)."""
        m = _HHMM.match(value)
        if not m:
            raise ValueError(f"Invalid time of day: {value!r}")
        return cls(int(m.group(1)) * 60 + int(m.group(2)))

    @classmethod
    def from_time(cls, value: time) -> "TimeOfDay":
        return cls(value.hour * 60 + value.minute)

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeOfDay":
        return cls(value.hour * 60 + value.minute)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def to_time(self) -> time:
        return time(hour=self.hour, minute=self.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"
