from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

# schema.sql names its own database; the configured one wins.
_DATABASE_SELECTION = re.compile(r"^(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def db_config_from_settings(db_config: dict) -> DBConfig:
    return DBConfig(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "timetrack_db")),
    )


def split_statements(sql: str) -> Iterator[str]:
    """Yield the statements of a DDL script.

    ``;`` ends a statement unless quoted; ``--`` and ``#`` comments run to end
    of line and are dropped.
    """
    statement: list[str] = []
    quote = None
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if quote:
            statement.append(ch)
            if ch == "\\" and i + 1 < n:
                statement.append(sql[i + 1])
                i += 1
            elif ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
            statement.append(ch)
        elif ch == "#" or sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            continue
        elif ch == ";":
            text = "".join(statement).strip()
            if text:
                yield text
            statement = []
        else:
            statement.append(ch)
        i += 1

    text = "".join(statement).strip()
    if text:
        yield text


def schema_statements(schema_path: str | Path) -> list[str]:
    sql = Path(schema_path).read_text(encoding="utf-8")
    return [s for s in split_statements(sql) if not _DATABASE_SELECTION.match(s)]


def apply_schema(db_config: dict, *, schema_path: str | Path) -> list[str]:
    """Create the configured database if needed, run schema.sql in it and return its tables."""
    config = db_config_from_settings(db_config)
    statements = schema_statements(schema_path)

    conn = mysql.connector.connect(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        use_pure=True,
    )
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        cur.execute(f"USE `{config.database}`")
        for statement in statements:
            cur.execute(statement)
        conn.commit()
        cur.execute("SHOW TABLES")
        tables = [row[0] for row in cur.fetchall()]
    finally:
        conn.close()

    logger.info("schema applied to %s: %s statements, %s tables", config.database, len(statements), len(tables))
    return tables
