from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..common.time_of_day import TimeOfDay
from ..core.enums import ReferenceWarningKind
from ..days.model import Block, Day


@dataclass(frozen=True)
class TemplateEntry:
    """A time-of-day block, not bound to any date."""

    start_time: TimeOfDay
    end_time: TimeOfDay
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    sort_order: int = 0

    def to_dict(self) -> dict:
        return {
            "start_time": str(self.start_time),
            "end_time": str(self.end_time),
            "project_id": self.project_id,
            "category_id": self.category_id,
            "description": self.description,
            "sort_order": self.sort_order,
        }


@dataclass(frozen=True)
class Template:
    template_id: int
    user_id: int
    name: str
    description: Optional[str] = None
    entries: tuple[TemplateEntry, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.template_id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass(frozen=True)
class ReferenceWarning:
    kind: ReferenceWarningKind
    entry_index: int
    reference_id: int
    message: str

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "entry_index": self.entry_index,
            "reference_id": self.reference_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class UnavailableReferences:
    """Project/category ids that may no longer be attached to new blocks."""

    project_ids: frozenset[int] = frozenset()
    category_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class TemplateApplication:
    """Outcome of applying a template to a date."""

    template_id: int
    template_name: str
    day: Day
    blocks: list[Block]
    day_created: bool
    warnings: list[ReferenceWarning] = field(default_factory=list)

    @property
    def entries_applied(self) -> int:
        return len(self.blocks)

    def to_dict(self) -> dict:
        return {
            "data": {**self.day.to_dict(), "blocks": [b.to_dict() for b in self.blocks]},
            "template_id": self.template_id,
            "template_name": self.template_name,
            "entries_applied": self.entries_applied,
            "day_created": self.day_created,
            "warnings": [w.to_dict() for w in self.warnings],
        }
