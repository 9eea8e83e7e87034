"""Read-only access to an SQLite chat log.

ChatLogSource owns one shared connection, detects the storage layout once on
open and hands out raw rows. It never writes to the log.

Example:
    ```python
    source = ChatLogSource("line_messages.db")
    source.open()
    rows = source.fetch_all_rows(50, RowOrder.ARRIVAL_DESC)
    source.close()
    ```
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from enum import Enum
from pathlib import Path
from typing import Any

from chatanalyzer.storage.errors import (
    LogSourceNotOpenError,
    LogSourceUnavailableError,
    SchemaUnsupportedError,
)
from chatanalyzer.storage.rows import EventRow, FlatRow, RawRow
from chatanalyzer.storage.schema import (
    SchemaKind,
    SchemaLayout,
    describe_structure,
    detect_schema,
    quote_identifier,
)

logger = logging.getLogger(__name__)

# Rows whose payload is not valid JSON sort last instead of failing the query.
_EVENT_TIMESTAMP = (
    "CASE WHEN json_valid(event) "
    "THEN CAST(json_extract(event, '$.timestamp') AS INTEGER) END"
)


class RowOrder(str, Enum):
    """Ordering of rows fetched from the log."""

    ARRIVAL_DESC = "arrival_desc"
    TIMESTAMP_DESC = "timestamp_desc"


class ChatLogSource:
    """Reload-capable handle on a read-only SQLite chat log."""

    def __init__(self, db_path: Path | str) -> None:
        self.path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._layout: SchemaLayout | None = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def layout(self) -> SchemaLayout:
        if self._layout is None:
            raise LogSourceNotOpenError("Chat log is not open")
        return self._layout

    @property
    def kind(self) -> SchemaKind:
        return self.layout.kind

    def _connect(self) -> tuple[sqlite3.Connection, SchemaLayout]:
        """Open a new read-only connection and detect its layout.

        Raises:
            LogSourceUnavailableError: If the file is missing or not a database
            SchemaUnsupportedError: If the layout is not supported
        """
        if not self.path.is_file():
            raise LogSourceUnavailableError(f"Chat log not found: {self.path}")

        uri = f"{self.path.resolve().as_uri()}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
        except sqlite3.Error as e:
            raise LogSourceUnavailableError(f"Cannot open chat log {self.path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            layout = detect_schema(conn)
        except SchemaUnsupportedError:
            conn.close()
            raise
        except sqlite3.Error as e:
            conn.close()
            raise LogSourceUnavailableError(f"Cannot read chat log {self.path}: {e}") from e

        return conn, layout

    def _swap(self, conn: sqlite3.Connection, layout: SchemaLayout) -> None:
        with self._lock:
            old = self._conn
            self._conn = conn
            self._layout = layout
        if old is not None:
            old.close()

    def open(self) -> None:
        """Open the log read-only and detect its layout.

        Raises:
            LogSourceUnavailableError: If the file is missing or not a database
            SchemaUnsupportedError: If the layout is not supported
        """
        conn, layout = self._connect()
        self._swap(conn, layout)
        logger.info(f"Opened chat log {self.path} ({layout.kind.value})")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                logger.debug(f"Closed chat log {self.path}")
            self._conn = None
            self._layout = None

    def reload(self) -> None:
        """Reopen the log, picking up a replaced file.

        The new file is opened and validated first; if that fails the current
        connection keeps serving and the error is raised.
        """
        logger.info(f"Reloading chat log {self.path}")
        conn, layout = self._connect()
        self._swap(conn, layout)
        logger.info(f"Reloaded chat log {self.path} ({layout.kind.value})")

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            if self._conn is None:
                raise LogSourceNotOpenError("Chat log is not open")
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise LogSourceUnavailableError(f"Chat log query failed: {e}") from e

    def _select(self) -> str:
        layout = self.layout
        table = quote_identifier(layout.table)
        if layout.kind is SchemaKind.EVENT_LOG:
            return f"SELECT id AS row_id, event FROM {table}"
        return f'SELECT rowid AS row_id, timestamp, "user", message FROM {table}'

    def _to_rows(self, records: list[sqlite3.Row]) -> list[RawRow]:
        if self.layout.kind is SchemaKind.EVENT_LOG:
            return [EventRow(row_id=r["row_id"], event=r["event"]) for r in records]
        return [
            FlatRow(
                row_id=r["row_id"],
                timestamp=r["timestamp"],
                user=r["user"],
                message=r["message"],
            )
            for r in records
        ]

    def fetch_all_rows(self, limit: int, order: RowOrder = RowOrder.TIMESTAMP_DESC) -> list[RawRow]:
        """Fetch up to ``limit`` raw rows.

        Args:
            limit: Maximum rows to return
            order: ARRIVAL_DESC (physically last rows first) or TIMESTAMP_DESC

        Returns:
            Raw rows in the requested order
        """
        if limit < 0:
            raise ValueError("limit must be non-negative")
        event_log = self.layout.kind is SchemaKind.EVENT_LOG
        physical = "id" if event_log else "rowid"
        if order is RowOrder.ARRIVAL_DESC:
            order_by = f"{physical} DESC"
        else:
            timestamp = _EVENT_TIMESTAMP if event_log else "CAST(timestamp AS INTEGER)"
            order_by = f"{timestamp} DESC, {physical} DESC"
        records = self._query(f"{self._select()} ORDER BY {order_by} LIMIT ?", (limit,))
        return self._to_rows(records)

    def fetch_rows_in_range(self, start_ts: int, end_ts: int) -> list[RawRow]:
        """Fetch candidate rows whose timestamp lies in [start_ts, end_ts].

        Event log rows are prefiltered loosely; callers must re-check the
        normalized timestamp.
        """
        if self.layout.kind is SchemaKind.EVENT_LOG:
            sql = (
                f"{self._select()} WHERE event LIKE '%\"message\"%' "
                f"AND {_EVENT_TIMESTAMP} BETWEEN ? AND ? ORDER BY id"
            )
        else:
            sql = f"{self._select()} WHERE CAST(timestamp AS INTEGER) BETWEEN ? AND ? ORDER BY rowid"
        return self._to_rows(self._query(sql, (start_ts, end_ts)))

    def fetch_user_directory(self) -> dict[str, str]:
        """Map sender ids to display names (empty when the log has no directory)."""
        layout = self.layout
        if not layout.has_user_directory:
            return {}
        assert layout.user_table is not None and layout.user_name_column is not None
        records = self._query(
            f"SELECT id, {quote_identifier(layout.user_name_column)} AS name "
            f"FROM {quote_identifier(layout.user_table)}"
        )
        return {str(r["id"]): str(r["name"]) for r in records if r["id"] is not None and r["name"]}

    def count_rows(self) -> int:
        """Total rows in the chat table, including non-message events."""
        records = self._query(f"SELECT COUNT(*) AS total FROM {quote_identifier(self.layout.table)}")
        return int(records[0]["total"])

    def describe_structure(self) -> dict[str, list[dict[str, Any]]]:
        with self._lock:
            if self._conn is None:
                raise LogSourceNotOpenError("Chat log is not open")
            return describe_structure(self._conn)
