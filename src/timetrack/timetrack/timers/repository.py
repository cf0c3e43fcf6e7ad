from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import TimeEntry


class TimeEntryRepository(Protocol):
    def get_active_simple(self, user_id: int) -> Optional[TimeEntry]:
        """The open simple-mode entry of a user, if any."""

        raise NotImplementedError

    def create_simple(
        self,
        *,
        user_id: int,
        start_time: datetime,
        project_id: Optional[int] = None,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> TimeEntry:
        """Insert an open simple entry.

        Implementations backed by a store with a uniqueness guarantee raise
        ``ConflictError(ACTIVE_TIMER_EXISTS)`` when a second open entry is inserted.
        """

        raise NotImplementedError

    def close_entry(
        self,
        *,
        entry_id: int,
        end_time: datetime,
        project_id: Optional[int],
        category_id: Optional[int],
        description: Optional[str],
    ) -> Optional[TimeEntry]:
        """Set end_time on a still-open entry; None if it was already closed."""

        raise NotImplementedError
