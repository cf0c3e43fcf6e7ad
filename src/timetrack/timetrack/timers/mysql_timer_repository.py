from __future__ import annotations

from datetime import datetime
from typing import Optional

import mysql.connector

from ..core.enums import EntryMode, ErrorReason
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, from_db_datetime, is_duplicate_key, to_db_datetime
from .model import TimeEntry
from .repository import TimeEntryRepository

_COLUMNS = "entry_id, user_id, start_time, end_time, project_id, category_id, description, entry_mode"


def _row_to_entry(r: dict) -> TimeEntry:
    return TimeEntry(
        entry_id=int(r["entry_id"]),
        user_id=int(r["user_id"]),
        start_time=from_db_datetime(r["start_time"]),
        end_time=from_db_datetime(r.get("end_time")),
        entry_mode=EntryMode(r["entry_mode"]),
        project_id=r.get("project_id"),
        category_id=r.get("category_id"),
        description=r.get("description"),
    )


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_simple(self, user_id: int) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_entries
                WHERE user_id=%s AND end_time IS NULL AND entry_mode=%s
                """,
                (int(user_id), EntryMode.SIMPLE.value),
            )
            r = fetchone(cur)
            return _row_to_entry(r) if r else None

    def create_simple(
        self,
        *,
        user_id: int,
        start_time: datetime,
        project_id: Optional[int] = None,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> TimeEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO time_entries(user_id, start_time, end_time, project_id, category_id, description, entry_mode)
                    VALUES(%s,%s,NULL,%s,%s,%s,%s)
                    """,
                    (int(user_id), to_db_datetime(start_time), project_id, category_id, description, EntryMode.SIMPLE.value),
                )
            except mysql.connector.IntegrityError as e:
                if is_duplicate_key(e):
                    raise ConflictError("Timer already running", reason=ErrorReason.ACTIVE_TIMER_EXISTS) from e
                raise
            return TimeEntry(
                entry_id=int(cur.lastrowid),
                user_id=int(user_id),
                start_time=start_time,
                end_time=None,
                entry_mode=EntryMode.SIMPLE,
                project_id=project_id,
                category_id=category_id,
                description=description,
            )

    def close_entry(
        self,
        *,
        entry_id: int,
        end_time: datetime,
        project_id: Optional[int],
        category_id: Optional[int],
        description: Optional[str],
    ) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET end_time=%s, project_id=%s, category_id=%s, description=%s
                WHERE entry_id=%s AND end_time IS NULL
                """,
                (to_db_datetime(end_time), project_id, category_id, description, int(entry_id)),
            )
            if cur.rowcount == 0:
                return None
            cur.execute(f"SELECT {_COLUMNS} FROM time_entries WHERE entry_id=%s", (int(entry_id),))
            r = fetchone(cur)
            return _row_to_entry(r) if r else None
