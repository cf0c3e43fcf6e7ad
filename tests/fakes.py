"""In-memory repositories used by the service and API tests."""

from __future__ import annotations

import threading
import time as _time
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence, Union

from src.timetrack.timetrack.core.enums import EntryMode, ErrorReason
from src.timetrack.timetrack.core.exceptions import ConflictError, StorageError
from src.timetrack.timetrack.days.model import Block, BlockDraft, Day, NewDay
from src.timetrack.timetrack.templates.model import Template, TemplateEntry, UnavailableReferences
from src.timetrack.timetrack.timers.model import TimeEntry


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class InMemoryTimeEntries:
    def __init__(self, *, enforce_unique: bool = True, read_delay: float = 0.0):
        self._by_id: dict[int, TimeEntry] = {}
        self._id = 0
        self._mutex = threading.Lock()
        self.enforce_unique = enforce_unique
        self.read_delay = read_delay

    def all(self) -> list[TimeEntry]:
        return list(self._by_id.values())

    def get_active_simple(self, user_id: int) -> Optional[TimeEntry]:
        found = next(
            (e for e in self._by_id.values() if e.user_id == user_id and e.end_time is None and e.entry_mode == EntryMode.SIMPLE),
            None,
        )
        if self.read_delay:
            _time.sleep(self.read_delay)
        return found

    def create_simple(self, *, user_id, start_time, project_id=None, category_id=None, description=None) -> TimeEntry:
        with self._mutex:
            if self.enforce_unique and any(
                e.user_id == user_id and e.end_time is None for e in self._by_id.values()
            ):
                raise ConflictError("Timer already running", reason=ErrorReason.ACTIVE_TIMER_EXISTS)
            self._id += 1
            entry = TimeEntry(
                entry_id=self._id,
                user_id=user_id,
                start_time=start_time,
                end_time=None,
                project_id=project_id,
                category_id=category_id,
                description=description,
            )
            self._by_id[self._id] = entry
            return entry

    def close_entry(self, *, entry_id, end_time, project_id, category_id, description) -> Optional[TimeEntry]:
        current = self._by_id.get(entry_id)
        if not current or current.end_time is not None:
            return None
        closed = replace(current, end_time=end_time, project_id=project_id, category_id=category_id, description=description)
        self._by_id[entry_id] = closed
        return closed


class InMemoryDays:
    def __init__(self, *, list_delay: float = 0.0):
        self.list_delay = list_delay
        self.days: dict[int, Day] = {}
        self.blocks: dict[int, Block] = {}
        self._day_id = 0
        self._block_id = 0
        self.calls: list[str] = []
        self.fail_commit_after: Optional[int] = None

    def _new_day(self, day: NewDay) -> Day:
        if self.get_for_user_and_date(day.user_id, day.work_date):
            raise ConflictError("A day has already been started for this date", reason=ErrorReason.DAY_ALREADY_STARTED)
        self._day_id += 1
        return Day(
            day_id=self._day_id,
            user_id=day.user_id,
            work_date=day.work_date,
            start_time=day.start_time,
            end_time=day.end_time,
            description=day.description,
            entry_mode=day.entry_mode,
        )

    def _new_block(self, day_id: int, draft: BlockDraft) -> Block:
        self._block_id += 1
        return Block(
            block_id=self._block_id,
            day_id=day_id,
            start_time=draft.start_time,
            end_time=draft.end_time,
            project_id=draft.project_id,
            category_id=draft.category_id,
            description=draft.description,
            entry_mode=draft.entry_mode,
        )

    def get_by_id(self, day_id: int) -> Optional[Day]:
        self.calls.append("get_by_id")
        return self.days.get(day_id)

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[Day]:
        self.calls.append("get_for_user_and_date")
        return next((d for d in self.days.values() if d.user_id == user_id and d.work_date == work_date), None)

    def get_active_for_user(self, user_id: int) -> Optional[Day]:
        open_days = [d for d in self.days.values() if d.user_id == user_id and d.end_time is None]
        return max(open_days, key=lambda d: d.work_date, default=None)

    def create_day(self, day: NewDay) -> Day:
        saved = self._new_day(day)
        self.days[saved.day_id] = saved
        return saved

    def end_day(self, *, day_id: int, end_time: datetime) -> bool:
        day = self.days.get(day_id)
        if not day or day.end_time is not None:
            return False
        self.days[day_id] = replace(day, end_time=end_time)
        return True

    def list_blocks(self, day_id: int) -> Sequence[Block]:
        self.calls.append("list_blocks")
        if self.list_delay:
            _time.sleep(self.list_delay)
        return sorted((b for b in self.blocks.values() if b.day_id == day_id), key=lambda b: b.start_time)

    def get_block(self, block_id: int) -> Optional[Block]:
        return self.blocks.get(block_id)

    def create_block(self, *, day_id: int, draft: BlockDraft) -> Block:
        block = self._new_block(day_id, draft)
        self.blocks[block.block_id] = block
        return block

    def update_block(self, block: Block) -> bool:
        if block.block_id not in self.blocks:
            return False
        self.blocks[block.block_id] = block
        return True

    def delete_block(self, block_id: int) -> bool:
        return self.blocks.pop(block_id, None) is not None

    def commit_blocks(self, *, day: Union[Day, NewDay], drafts: Sequence[BlockDraft]) -> tuple[Day, list[Block]]:
        self.calls.append("commit_blocks")
        # Stage everything, publish only on success (transaction semantics).
        day_id_before, block_id_before = self._day_id, self._block_id
        try:
            saved_day = self._new_day(day) if isinstance(day, NewDay) else day
            staged: list[Block] = []
            for i, draft in enumerate(drafts):
                if self.fail_commit_after is not None and i >= self.fail_commit_after:
                    raise StorageError("connection lost")
                staged.append(self._new_block(saved_day.day_id, draft))
        except Exception:
            self._day_id, self._block_id = day_id_before, block_id_before
            raise
        self.days[saved_day.day_id] = saved_day
        for b in staged:
            self.blocks[b.block_id] = b
        return saved_day, staged


class InMemoryTemplates:
    def __init__(self):
        self.templates: dict[int, Template] = {}
        self._id = 0

    @staticmethod
    def _numbered(entries: Sequence[TemplateEntry]) -> tuple[TemplateEntry, ...]:
        return tuple(replace(e, sort_order=i) for i, e in enumerate(entries))

    def get_by_id(self, template_id: int) -> Optional[Template]:
        return self.templates.get(template_id)

    def list_for_user(self, user_id: int) -> Sequence[Template]:
        return sorted((t for t in self.templates.values() if t.user_id == user_id), key=lambda t: t.name)

    def create(self, *, user_id, name, description, entries) -> Template:
        self._id += 1
        template = Template(
            template_id=self._id,
            user_id=user_id,
            name=name,
            description=description,
            entries=self._numbered(entries),
        )
        self.templates[self._id] = template
        return template

    def update(self, *, template_id, name, description, entries=None) -> Optional[Template]:
        current = self.templates.get(template_id)
        if not current:
            return None
        updated = replace(
            current,
            name=name,
            description=description,
            entries=current.entries if entries is None else self._numbered(entries),
        )
        self.templates[template_id] = updated
        return updated

    def delete(self, template_id: int) -> bool:
        return self.templates.pop(template_id, None) is not None


class InMemoryReferences:
    def __init__(self, *, archived_projects: Iterable[int] = (), inactive_categories: Iterable[int] = ()):
        self.archived_projects = set(archived_projects)
        self.inactive_categories = set(inactive_categories)

    def get_unavailable(self, *, project_ids, category_ids) -> UnavailableReferences:
        return UnavailableReferences(
            project_ids=frozenset(set(project_ids) & self.archived_projects),
            category_ids=frozenset(set(category_ids) & self.inactive_categories),
        )
