from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import duration_minutes, isoformat_z
from ..core.enums import EntryMode


@dataclass(frozen=True)
class Day:
    """Domain entity: a per-date container of time blocks."""

    day_id: int
    user_id: int
    work_date: date
    start_time: datetime
    end_time: Optional[datetime]
    description: Optional[str] = None
    entry_mode: EntryMode = EntryMode.DAY

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def to_dict(self) -> dict:
        return {
            "id": self.day_id,
            "user_id": self.user_id,
            "date": self.work_date.isoformat(),
            "start_time": isoformat_z(self.start_time),
            "end_time": isoformat_z(self.end_time),
            "description": self.description,
            "entry_mode": self.entry_mode.value,
        }


@dataclass(frozen=True)
class Block:
    """Domain entity: a bounded interval inside a Day."""

    block_id: int
    day_id: int
    start_time: datetime
    end_time: datetime
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    entry_mode: EntryMode = EntryMode.DAY

    @property
    def duration_minutes(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "id": self.block_id,
            "day_id": self.day_id,
            "start_time": isoformat_z(self.start_time),
            "end_time": isoformat_z(self.end_time),
            "duration_minutes": self.duration_minutes,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "description": self.description,
            "entry_mode": self.entry_mode.value,
        }


@dataclass(frozen=True)
class BlockDraft:
    """A validated block not yet persisted."""

    start_time: datetime
    end_time: datetime
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    entry_mode: EntryMode = EntryMode.DAY


@dataclass(frozen=True)
class NewDay:
    """A Day to be inserted together with its first blocks."""

    user_id: int
    work_date: date
    start_time: datetime
    end_time: Optional[datetime]
    description: Optional[str] = None
    entry_mode: EntryMode = EntryMode.DAY


@dataclass(frozen=True)
class DayWithBlocks:
    day: Day
    blocks: list[Block] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {**self.day.to_dict(), "blocks": [b.to_dict() for b in self.blocks]}
