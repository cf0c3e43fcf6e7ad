from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence, Union

import mysql.connector

from ..blocks.overlap import assert_no_conflict
from ..core.enums import EntryMode, ErrorReason
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, is_duplicate_key, to_db_datetime
from .model import Block, BlockDraft, Day, NewDay
from .repository import DayRepository

_DAY_COLUMNS = "day_id, user_id, work_date, start_time, end_time, description, entry_mode"
_BLOCK_COLUMNS = "block_id, day_id, start_time, end_time, project_id, category_id, description, entry_mode"


def _row_to_day(r: dict) -> Day:
    return Day(
        day_id=int(r["day_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        start_time=from_db_datetime(r["start_time"]),
        end_time=from_db_datetime(r.get("end_time")),
        description=r.get("description"),
        entry_mode=EntryMode(r["entry_mode"]),
    )


def _row_to_block(r: dict) -> Block:
    return Block(
        block_id=int(r["block_id"]),
        day_id=int(r["day_id"]),
        start_time=from_db_datetime(r["start_time"]),
        end_time=from_db_datetime(r["end_time"]),
        project_id=r.get("project_id"),
        category_id=r.get("category_id"),
        description=r.get("description"),
        entry_mode=EntryMode(r["entry_mode"]),
    )


def _insert_day(cur, day: NewDay) -> Day:
    try:
        cur.execute(
            """
            INSERT INTO days(user_id, work_date, start_time, end_time, description, entry_mode)
            VALUES(%s,%s,%s,%s,%s,%s)
            """,
            (
                int(day.user_id),
                day.work_date,
                to_db_datetime(day.start_time),
                to_db_datetime(day.end_time),
                day.description,
                day.entry_mode.value,
            ),
        )
    except mysql.connector.IntegrityError as e:
        if is_duplicate_key(e):
            raise ConflictError(
                "A day has already been started for this date",
                reason=ErrorReason.DAY_ALREADY_STARTED,
                details={"date": day.work_date.isoformat()},
            ) from e
        raise
    return Day(
        day_id=int(cur.lastrowid),
        user_id=int(day.user_id),
        work_date=day.work_date,
        start_time=day.start_time,
        end_time=day.end_time,
        description=day.description,
        entry_mode=day.entry_mode,
    )


def _insert_block(cur, day_id: int, draft: BlockDraft) -> Block:
    cur.execute(
        """
        INSERT INTO blocks(day_id, start_time, end_time, project_id, category_id, description, entry_mode)
        VALUES(%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            int(day_id),
            to_db_datetime(draft.start_time),
            to_db_datetime(draft.end_time),
            draft.project_id,
            draft.category_id,
            draft.description,
            draft.entry_mode.value,
        ),
    )
    return Block(
        block_id=int(cur.lastrowid),
        day_id=int(day_id),
        start_time=draft.start_time,
        end_time=draft.end_time,
        project_id=draft.project_id,
        category_id=draft.category_id,
        description=draft.description,
        entry_mode=draft.entry_mode,
    )


def _lock_day_blocks(cur, day_id: int) -> list[Block]:
    """Lock the day row and read its blocks inside the caller's transaction.

    Writers to one day queue on the row lock, so the overlap check that
    follows sees every block committed before it, across processes.
    """
    cur.execute("SELECT day_id FROM days WHERE day_id=%s FOR UPDATE", (int(day_id),))
    fetchone(cur)
    cur.execute(
        f"SELECT {_BLOCK_COLUMNS} FROM blocks WHERE day_id=%s ORDER BY start_time ASC FOR SHARE",
        (int(day_id),),
    )
    return [_row_to_block(r) for r in fetchall(cur)]


class MySQLDayRepository(DayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, day_id: int) -> Optional[Day]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_DAY_COLUMNS} FROM days WHERE day_id=%s", (int(day_id),))
            r = fetchone(cur)
            return _row_to_day(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[Day]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DAY_COLUMNS} FROM days WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_day(r) if r else None

    def get_active_for_user(self, user_id: int) -> Optional[Day]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DAY_COLUMNS}
                FROM days
                WHERE user_id=%s AND end_time IS NULL
                ORDER BY work_date DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _row_to_day(r) if r else None

    def create_day(self, day: NewDay) -> Day:
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert_day(cur, day)

    def end_day(self, *, day_id: int, end_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE days SET end_time=%s WHERE day_id=%s AND end_time IS NULL",
                (to_db_datetime(end_time), int(day_id)),
            )
            return cur.rowcount > 0

    def list_blocks(self, day_id: int) -> Sequence[Block]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BLOCK_COLUMNS} FROM blocks WHERE day_id=%s ORDER BY start_time ASC, block_id ASC",
                (int(day_id),),
            )
            return [_row_to_block(r) for r in fetchall(cur)]

    def get_block(self, block_id: int) -> Optional[Block]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BLOCK_COLUMNS} FROM blocks WHERE block_id=%s", (int(block_id),))
            r = fetchone(cur)
            return _row_to_block(r) if r else None

    def create_block(self, *, day_id: int, draft: BlockDraft) -> Block:
        with db_cursor(self._conn_factory) as (_, cur):
            assert_no_conflict(draft, _lock_day_blocks(cur, day_id))
            return _insert_block(cur, day_id, draft)

    def update_block(self, block: Block) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            assert_no_conflict(block, _lock_day_blocks(cur, block.day_id), exclude_id=block.block_id)
            cur.execute(
                """
                UPDATE blocks
                SET start_time=%s, end_time=%s, project_id=%s, category_id=%s, description=%s
                WHERE block_id=%s
                """,
                (
                    to_db_datetime(block.start_time),
                    to_db_datetime(block.end_time),
                    block.project_id,
                    block.category_id,
                    block.description,
                    int(block.block_id),
                ),
            )
            return cur.rowcount > 0

    def delete_block(self, block_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM blocks WHERE block_id=%s", (int(block_id),))
            return cur.rowcount > 0

    def commit_blocks(self, *, day: Union[Day, NewDay], drafts: Sequence[BlockDraft]) -> tuple[Day, list[Block]]:
        with db_cursor(self._conn_factory) as (_, cur):
            if isinstance(day, NewDay):
                saved_day = _insert_day(cur, day)
            else:
                existing = _lock_day_blocks(cur, day.day_id)
                for draft in drafts:
                    assert_no_conflict(draft, existing)
                saved_day = day
            blocks = [_insert_block(cur, saved_day.day_id, d) for d in drafts]
            return saved_day, blocks
