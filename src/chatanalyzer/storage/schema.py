"""Detection of the chat log storage layout.

Two layouts are supported:

- Event log: a table with ``id`` and ``event`` columns, where ``event`` holds
  one JSON webhook payload per row.
- Flat chat: a table with ``timestamp``, ``user`` and ``message`` columns,
  optionally accompanied by a user directory table (``id`` plus ``display_name``
  or ``name``).

The event log wins when a database holds both.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any

from chatanalyzer.storage.errors import SchemaUnsupportedError

logger = logging.getLogger(__name__)

EVENT_LOG_COLUMNS = frozenset({"id", "event"})
FLAT_CHAT_COLUMNS = frozenset({"timestamp", "user", "message"})
USER_NAME_COLUMNS = ("display_name", "name")


class SchemaKind(str, Enum):
    EVENT_LOG = "event_log"
    FLAT_CHAT = "flat_chat"


@dataclass(frozen=True)
class SchemaLayout:
    """Resolved layout of an opened chat log.

    Attributes:
        kind: Which storage layout the log uses.
        table: Table holding the chat rows.
        user_table: User directory table (flat chat only).
        user_name_column: Display name column of user_table.
    """

    kind: SchemaKind
    table: str
    user_table: str | None = None
    user_name_column: str | None = None

    @property
    def has_user_directory(self) -> bool:
        return self.user_table is not None and self.user_name_column is not None


def quote_identifier(name: str) -> str:
    """Quote an SQLite identifier."""
    return '"' + name.replace('"', '""') + '"'


def list_tables(conn: sqlite3.Connection) -> list[str]:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
        "ORDER BY name"
    )
    return [row[0] for row in cursor.fetchall()]


def table_columns(conn: sqlite3.Connection, table: str) -> list[dict[str, Any]]:
    cursor = conn.execute(f"PRAGMA table_info({quote_identifier(table)})")
    return [
        {
            "name": row[1],
            "type": row[2],
            "notnull": bool(row[3]),
            "pk": bool(row[5]),
        }
        for row in cursor.fetchall()
    ]


def _pick(candidates: list[str], preferred: str) -> str | None:
    if not candidates:
        return None
    for name in candidates:
        if name.lower() == preferred:
            return name
    return candidates[0]


def detect_schema(conn: sqlite3.Connection) -> SchemaLayout:
    """Detect which supported layout an SQLite database uses.

    Args:
        conn: Open connection to the chat log

    Returns:
        Resolved SchemaLayout

    Raises:
        SchemaUnsupportedError: If no table matches a supported layout
    """
    tables = list_tables(conn)
    columns = {
        table: {col["name"].lower() for col in table_columns(conn, table)} for table in tables
    }

    event_tables = [t for t in tables if EVENT_LOG_COLUMNS <= columns[t]]
    event_table = _pick(event_tables, "events")
    if event_table is not None:
        layout = SchemaLayout(kind=SchemaKind.EVENT_LOG, table=event_table)
        logger.info(f"Detected event log layout (table '{event_table}')")
        return layout

    flat_tables = [t for t in tables if FLAT_CHAT_COLUMNS <= columns[t]]
    flat_table = _pick(flat_tables, "messages")
    if flat_table is None:
        raise SchemaUnsupportedError(
            f"No supported chat table found (tables: {', '.join(tables) or 'none'})",
            tables=tables,
        )

    user_name_column = None
    directory_tables = [
        t
        for t in tables
        if t != flat_table
        and "id" in columns[t]
        and any(name in columns[t] for name in USER_NAME_COLUMNS)
    ]
    user_table = _pick(directory_tables, "users")
    if user_table is not None:
        user_name_column = next(name for name in USER_NAME_COLUMNS if name in columns[user_table])

    logger.info(
        f"Detected flat chat layout (table '{flat_table}', "
        f"user directory: {user_table or 'none'})"
    )
    return SchemaLayout(
        kind=SchemaKind.FLAT_CHAT,
        table=flat_table,
        user_table=user_table,
        user_name_column=user_name_column,
    )


def describe_structure(conn: sqlite3.Connection) -> dict[str, list[dict[str, Any]]]:
    """Map every table of the database to its column descriptions."""
    return {table: table_columns(conn, table) for table in list_tables(conn)}
