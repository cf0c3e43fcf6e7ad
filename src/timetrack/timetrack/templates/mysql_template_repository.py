from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..common.time_of_day import TimeOfDay
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Template, TemplateEntry, UnavailableReferences
from .repository import ReferenceRepository, TemplateRepository


def _row_to_entry(r: dict) -> TemplateEntry:
    return TemplateEntry(
        start_time=TimeOfDay.from_time(normalize_mysql_time(r["start_time"])),
        end_time=TimeOfDay.from_time(normalize_mysql_time(r["end_time"])),
        project_id=r.get("project_id"),
        category_id=r.get("category_id"),
        description=r.get("description"),
        sort_order=int(r.get("sort_order") or 0),
    )


def _insert_entries(cur, template_id: int, entries: Sequence[TemplateEntry]) -> list[TemplateEntry]:
    saved: list[TemplateEntry] = []
    for index, e in enumerate(entries):
        cur.execute(
            """
            INSERT INTO template_entries(template_id, start_time, end_time, project_id, category_id, description, sort_order)
            VALUES(%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(template_id),
                e.start_time.to_time(),
                e.end_time.to_time(),
                e.project_id,
                e.category_id,
                e.description,
                index,
            ),
        )
        saved.append(
            TemplateEntry(
                start_time=e.start_time,
                end_time=e.end_time,
                project_id=e.project_id,
                category_id=e.category_id,
                description=e.description,
                sort_order=index,
            )
        )
    return saved


def _load_entries(cur, template_ids: Sequence[int]) -> dict[int, list[TemplateEntry]]:
    out: dict[int, list[TemplateEntry]] = {int(t): [] for t in template_ids}
    if not template_ids:
        return out
    placeholders = ",".join(["%s"] * len(template_ids))
    cur.execute(
        f"""
        SELECT template_id, start_time, end_time, project_id, category_id, description, sort_order
        FROM template_entries
        WHERE template_id IN ({placeholders})
        ORDER BY template_id ASC, sort_order ASC, entry_id ASC
        """,
        tuple(int(t) for t in template_ids),
    )
    for r in fetchall(cur):
        out[int(r["template_id"])].append(_row_to_entry(r))
    return out


class MySQLTemplateRepository(TemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, template_id: int) -> Optional[Template]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT template_id, user_id, name, description FROM templates WHERE template_id=%s",
                (int(template_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            entries = _load_entries(cur, [int(r["template_id"])])[int(r["template_id"])]
            return Template(
                template_id=int(r["template_id"]),
                user_id=int(r["user_id"]),
                name=r["name"],
                description=r.get("description"),
                entries=tuple(entries),
            )

    def list_for_user(self, user_id: int) -> Sequence[Template]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT template_id, user_id, name, description
                FROM templates
                WHERE user_id=%s
                ORDER BY name ASC, template_id ASC
                """,
                (int(user_id),),
            )
            rows = fetchall(cur)
            entries = _load_entries(cur, [int(r["template_id"]) for r in rows])
            return [
                Template(
                    template_id=int(r["template_id"]),
                    user_id=int(r["user_id"]),
                    name=r["name"],
                    description=r.get("description"),
                    entries=tuple(entries[int(r["template_id"])]),
                )
                for r in rows
            ]

    def create(
        self,
        *,
        user_id: int,
        name: str,
        description: Optional[str],
        entries: Sequence[TemplateEntry],
    ) -> Template:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO templates(user_id, name, description) VALUES(%s,%s,%s)",
                (int(user_id), name, description),
            )
            template_id = int(cur.lastrowid)
            saved = _insert_entries(cur, template_id, entries)
            return Template(
                template_id=template_id,
                user_id=int(user_id),
                name=name,
                description=description,
                entries=tuple(saved),
            )

    def update(
        self,
        *,
        template_id: int,
        name: str,
        description: Optional[str],
        entries: Optional[Sequence[TemplateEntry]] = None,
    ) -> Optional[Template]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT template_id, user_id FROM templates WHERE template_id=%s FOR UPDATE",
                (int(template_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            cur.execute(
                "UPDATE templates SET name=%s, description=%s WHERE template_id=%s",
                (name, description, int(template_id)),
            )
            if entries is not None:
                cur.execute("DELETE FROM template_entries WHERE template_id=%s", (int(template_id),))
                saved = _insert_entries(cur, int(template_id), entries)
            else:
                saved = _load_entries(cur, [int(template_id)])[int(template_id)]
            return Template(
                template_id=int(template_id),
                user_id=int(r["user_id"]),
                name=name,
                description=description,
                entries=tuple(saved),
            )

    def delete(self, template_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM templates WHERE template_id=%s", (int(template_id),))
            return cur.rowcount > 0


class MySQLReferenceRepository(ReferenceRepository):
    """Reads project/category status owned by the catalog CRUD layer."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_unavailable(self, *, project_ids: Iterable[int], category_ids: Iterable[int]) -> UnavailableReferences:
        project_ids = sorted({int(p) for p in project_ids})
        category_ids = sorted({int(c) for c in category_ids})
        usable_projects: set[int] = set()
        usable_categories: set[int] = set()

        with db_cursor(self._conn_factory) as (_, cur):
            if project_ids:
                placeholders = ",".join(["%s"] * len(project_ids))
                cur.execute(
                    f"SELECT project_id FROM projects WHERE project_id IN ({placeholders}) AND is_archived=0",
                    tuple(project_ids),
                )
                usable_projects = {int(r["project_id"]) for r in fetchall(cur)}
            if category_ids:
                placeholders = ",".join(["%s"] * len(category_ids))
                cur.execute(
                    f"SELECT category_id FROM categories WHERE category_id IN ({placeholders}) AND is_active=1",
                    tuple(category_ids),
                )
                usable_categories = {int(r["category_id"]) for r in fetchall(cur)}

        return UnavailableReferences(
            project_ids=frozenset(set(project_ids) - usable_projects),
            category_ids=frozenset(set(category_ids) - usable_categories),
        )
