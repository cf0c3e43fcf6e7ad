from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..blocks.overlap import assert_no_conflict
from ..common.datetime_utils import now_utc
from ..common.locks import KeyedLock
from ..common.validators import (
    require_max_length,
    require_ordered,
    validate_calendar_date,
    validate_instant,
)
from ..core.constants import DESCRIPTION_MAX_LENGTH, UNSET
from ..core.enums import EntryMode, ErrorReason
from ..core.exceptions import ConflictError, NotFoundError, StorageError
from .model import Block, BlockDraft, Day, DayWithBlocks, NewDay
from .repository import DayRepository

logger = logging.getLogger(__name__)


def day_lock_key(user_id: int, work_date: date) -> tuple:
    """Lock key shared by block writes and template applications for one day."""
    return ("day", int(user_id), work_date)


class DayService:
    """Day mode: day lifecycle and block CRUD.

    Every check-then-write on a day's blocks runs under ``day_lock_key``.
    Records owned by someone else are reported as not found.
    """

    def __init__(self, days: DayRepository, *, locks: KeyedLock | None = None):
        self._days = days
        self._locks = locks if locks is not None else KeyedLock()

    # Lookups

    def _get_owned_day(self, user_id: int, day_id: int) -> Day:
        day = self._days.get_by_id(int(day_id))
        if not day or day.user_id != int(user_id):
            raise NotFoundError("Day not found", reason=ErrorReason.DAY_NOT_FOUND, details={"day_id": day_id})
        return day

    def _get_owned_block(self, user_id: int, block_id: int) -> tuple[Day, Block]:
        block = self._days.get_block(int(block_id))
        day = self._days.get_by_id(block.day_id) if block else None
        if not block or not day or day.user_id != int(user_id):
            raise NotFoundError("Time block not found", reason=ErrorReason.BLOCK_NOT_FOUND, details={"block_id": block_id})
        return day, block

    def get_day(self, user_id: int, day_id: int) -> DayWithBlocks:
        day = self._get_owned_day(user_id, day_id)
        return DayWithBlocks(day=day, blocks=list(self._days.list_blocks(day.day_id)))

    def get_day_for_date(self, user_id: int, work_date) -> Optional[DayWithBlocks]:
        work_date = validate_calendar_date(work_date)
        day = self._days.get_for_user_and_date(int(user_id), work_date)
        if not day:
            return None
        return DayWithBlocks(day=day, blocks=list(self._days.list_blocks(day.day_id)))

    def get_active_day(self, user_id: int) -> Optional[Day]:
        return self._days.get_active_for_user(int(user_id))

    # Day lifecycle

    def start_day(
        self,
        user_id: int,
        work_date=None,
        description: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> Day:
        now = validate_instant(now) if now is not None else now_utc()
        work_date = validate_calendar_date(work_date) if work_date is not None else now.date()
        description = require_max_length(description, "description", DESCRIPTION_MAX_LENGTH)

        with self._locks.hold(day_lock_key(user_id, work_date)):
            existing = self._days.get_for_user_and_date(int(user_id), work_date)
            if existing:
                logger.warning("start_day rejected: user=%s date=%s already has day=%s", user_id, work_date, existing.day_id)
                raise ConflictError(
                    "A day has already been started for this date",
                    reason=ErrorReason.DAY_ALREADY_STARTED,
                    details={"day_id": existing.day_id, "date": work_date.isoformat()},
                )
            day = self._days.create_day(
                NewDay(
                    user_id=int(user_id),
                    work_date=work_date,
                    start_time=now,
                    end_time=None,
                    description=description or None,
                    entry_mode=EntryMode.DAY,
                )
            )

        logger.info("day started: user=%s day=%s date=%s", user_id, day.day_id, work_date)
        return day

    def end_day(self, user_id: int, day_id: int, *, now: datetime | None = None) -> Day:
        now = validate_instant(now) if now is not None else now_utc()
        day = self._get_owned_day(user_id, day_id)

        with self._locks.hold(day_lock_key(day.user_id, day.work_date)):
            day = self._get_owned_day(user_id, day_id)
            if day.end_time is not None:
                raise ConflictError(
                    "Day has already been ended",
                    reason=ErrorReason.DAY_ALREADY_ENDED,
                    details={"day_id": day.day_id, "end_time": day.to_dict()["end_time"]},
                )
            require_ordered(day.start_time, now)
            if not self._days.end_day(day_id=day.day_id, end_time=now):
                raise ConflictError(
                    "Day has already been ended",
                    reason=ErrorReason.DAY_ALREADY_ENDED,
                    details={"day_id": day.day_id},
                )

        logger.info("day ended: user=%s day=%s", user_id, day.day_id)
        return replace(day, end_time=now)

    # Blocks

    def create_block(
        self,
        user_id: int,
        day_id: int,
        *,
        start_time,
        end_time,
        project_id: Optional[int] = None,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Block:
        start = validate_instant(start_time, "start_time")
        end = validate_instant(end_time, "end_time")
        require_ordered(start, end)
        description = require_max_length(description, "description", DESCRIPTION_MAX_LENGTH)

        draft = BlockDraft(
            start_time=start,
            end_time=end,
            project_id=project_id or None,
            category_id=category_id or None,
            description=description or None,
            entry_mode=EntryMode.DAY,
        )

        day = self._get_owned_day(user_id, day_id)
        with self._locks.hold(day_lock_key(day.user_id, day.work_date)):
            existing = self._days.list_blocks(day.day_id)
            try:
                assert_no_conflict(draft, existing)
            except ConflictError as e:
                logger.warning("create_block rejected: day=%s %s", day.day_id, e.details.get("conflicting_block"))
                raise
            block = self._days.create_block(day_id=day.day_id, draft=draft)

        logger.info("block created: day=%s block=%s", day.day_id, block.block_id)
        return block

    def update_block(
        self,
        user_id: int,
        block_id: int,
        *,
        start_time=UNSET,
        end_time=UNSET,
        project_id=UNSET,
        category_id=UNSET,
        description=UNSET,
    ) -> Block:
        """Merge the supplied fields onto the stored block.

        Ordering and overlap (against siblings, excluding the block itself)
        are re-checked; nothing is written if either fails.
        """
        if description is not UNSET:
            description = require_max_length(description, "description", DESCRIPTION_MAX_LENGTH)
        day, _ = self._get_owned_block(user_id, block_id)

        with self._locks.hold(day_lock_key(day.user_id, day.work_date)):
            _, current = self._get_owned_block(user_id, block_id)
            merged = replace(
                current,
                start_time=current.start_time if start_time is UNSET else validate_instant(start_time, "start_time"),
                end_time=current.end_time if end_time is UNSET else validate_instant(end_time, "end_time"),
                project_id=current.project_id if project_id is UNSET else (project_id or None),
                category_id=current.category_id if category_id is UNSET else (category_id or None),
                description=current.description if description is UNSET else (description or None),
            )
            require_ordered(merged.start_time, merged.end_time)

            siblings = self._days.list_blocks(day.day_id)
            try:
                assert_no_conflict(merged, siblings, exclude_id=current.block_id)
            except ConflictError as e:
                logger.warning("update_block rejected: block=%s %s", current.block_id, e.details.get("conflicting_block"))
                raise

            if not self._days.update_block(merged):
                raise StorageError("Failed to update time block")

        logger.info("block updated: day=%s block=%s", day.day_id, merged.block_id)
        return merged

    def delete_block(self, user_id: int, block_id: int) -> None:
        day, block = self._get_owned_block(user_id, block_id)
        with self._locks.hold(day_lock_key(day.user_id, day.work_date)):
            if not self._days.delete_block(block.block_id):
                raise NotFoundError("Time block not found", reason=ErrorReason.BLOCK_NOT_FOUND, details={"block_id": block_id})
        logger.info("block deleted: day=%s block=%s", day.day_id, block.block_id)
