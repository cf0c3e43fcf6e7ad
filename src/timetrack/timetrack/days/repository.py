from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence, Union

from .model import Block, BlockDraft, Day, NewDay


class DayRepository(Protocol):
    def get_by_id(self, day_id: int) -> Optional[Day]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[Day]:
        raise NotImplementedError

    def get_active_for_user(self, user_id: int) -> Optional[Day]:
        """Most recent day of the user that has not been ended."""

        raise NotImplementedError

    def create_day(self, day: NewDay) -> Day:
        """Insert a day; raises ``ConflictError(DAY_ALREADY_STARTED)`` on a duplicate (user, date)."""

        raise NotImplementedError

    def end_day(self, *, day_id: int, end_time: datetime) -> bool:
        """Set end_time if still open; False when it was already set."""

        raise NotImplementedError

    def list_blocks(self, day_id: int) -> Sequence[Block]:
        """Blocks of a day ordered by start_time."""

        raise NotImplementedError

    def get_block(self, block_id: int) -> Optional[Block]:
        raise NotImplementedError

    def create_block(self, *, day_id: int, draft: BlockDraft) -> Block:
        """Insert a block; raises ``BlockOverlapError`` if a sibling committed meanwhile overlaps it."""

        raise NotImplementedError

    def update_block(self, block: Block) -> bool:
        """Same write-time overlap check as ``create_block``, ignoring the block itself."""

        raise NotImplementedError

    def delete_block(self, block_id: int) -> bool:
        raise NotImplementedError

    def commit_blocks(self, *, day: Union[Day, NewDay], drafts: Sequence[BlockDraft]) -> tuple[Day, list[Block]]:
        """Persist a (possibly new) day and all drafts as one transaction.

        Either every row is written or none is. Drafts are re-checked
        against the day's blocks inside that transaction.
        """

        raise NotImplementedError
