from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc
from ..common.locks import KeyedLock
from ..common.validators import require_max_length, require_ordered, validate_instant
from ..core.constants import DESCRIPTION_MAX_LENGTH, UNSET
from ..core.enums import ErrorReason
from ..core.exceptions import ConflictError, NotFoundError
from .model import TimeEntry
from .repository import TimeEntryRepository

logger = logging.getLogger(__name__)


class TimerService:
    """Simple mode: at most one running timer per user.

    The read-then-insert in ``start_timer`` and the read-then-close in
    ``stop_timer`` run under a per-user lock.
    """

    def __init__(self, entries: TimeEntryRepository, *, locks: KeyedLock | None = None):
        self._entries = entries
        self._locks = locks if locks is not None else KeyedLock()

    @staticmethod
    def _lock_key(user_id: int) -> tuple:
        return ("timer", int(user_id))

    def get_active(self, user_id: int) -> Optional[TimeEntry]:
        return self._entries.get_active_simple(int(user_id))

    def start_timer(
        self,
        user_id: int,
        *,
        project_id: Optional[int] = None,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
        now: datetime | None = None,
    ) -> TimeEntry:
        now = validate_instant(now) if now is not None else now_utc()
        description = require_max_length(description, "description", DESCRIPTION_MAX_LENGTH)

        with self._locks.hold(self._lock_key(user_id)):
            active = self._entries.get_active_simple(int(user_id))
            if active:
                logger.warning("start_timer rejected: user=%s already has entry=%s running", user_id, active.entry_id)
                raise ConflictError(
                    "Timer already running",
                    reason=ErrorReason.ACTIVE_TIMER_EXISTS,
                    details={"active_entry": active.to_dict()},
                )

            entry = self._entries.create_simple(
                user_id=int(user_id),
                start_time=now,
                project_id=project_id or None,
                category_id=category_id or None,
                description=description or None,
            )

        logger.info("timer started: user=%s entry=%s", user_id, entry.entry_id)
        return entry

    def stop_timer(
        self,
        user_id: int,
        *,
        project_id=UNSET,
        category_id=UNSET,
        description=UNSET,
        now: datetime | None = None,
    ) -> TimeEntry:
        """Close the running timer.

        Only explicitly supplied fields overwrite the stored ones; passing
        ``None`` clears a field.
        """
        now = validate_instant(now) if now is not None else now_utc()
        if description is not UNSET:
            description = require_max_length(description, "description", DESCRIPTION_MAX_LENGTH)

        with self._locks.hold(self._lock_key(user_id)):
            active = self._entries.get_active_simple(int(user_id))
            if not active:
                raise NotFoundError("No active timer found", reason=ErrorReason.NO_ACTIVE_TIMER)

            require_ordered(active.start_time, now)

            closed = self._entries.close_entry(
                entry_id=active.entry_id,
                end_time=now,
                project_id=active.project_id if project_id is UNSET else (project_id or None),
                category_id=active.category_id if category_id is UNSET else (category_id or None),
                description=active.description if description is UNSET else (description or None),
            )
            if closed is None:
                raise NotFoundError("No active timer found", reason=ErrorReason.NO_ACTIVE_TIMER)

        logger.info("timer stopped: user=%s entry=%s minutes=%s", user_id, closed.entry_id, closed.duration_minutes)
        return closed
