from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import duration_minutes, isoformat_z
from ..core.enums import EntryMode


@dataclass(frozen=True)
class TimeEntry:
    """Domain entity: one simple-mode timer run."""

    entry_id: int
    user_id: int
    start_time: datetime
    end_time: Optional[datetime]
    entry_mode: EntryMode = EntryMode.SIMPLE
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    @property
    def duration_minutes(self) -> Optional[int]:
        return duration_minutes(self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "user_id": self.user_id,
            "start_time": isoformat_z(self.start_time),
            "end_time": isoformat_z(self.end_time),
            "duration_minutes": self.duration_minutes,
            "entry_mode": self.entry_mode.value,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "description": self.description,
        }
