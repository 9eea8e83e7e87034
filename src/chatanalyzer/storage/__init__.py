"""Read-only storage layer for SQLite chat logs.

Example:
    ```python
    from chatanalyzer.storage import ChatLogSource, RowOrder

    source = ChatLogSource("line_messages.db")
    source.open()
    rows = source.fetch_all_rows(100, RowOrder.TIMESTAMP_DESC)
    ```
"""

from __future__ import annotations

from chatanalyzer.storage.errors import (
    LogSourceError,
    LogSourceNotOpenError,
    LogSourceUnavailableError,
    SchemaUnsupportedError,
)
from chatanalyzer.storage.log_source import ChatLogSource, RowOrder
from chatanalyzer.storage.rows import EventRow, FlatRow, RawRow
from chatanalyzer.storage.schema import SchemaKind, SchemaLayout, detect_schema

__all__ = [
    "ChatLogSource",
    "EventRow",
    "FlatRow",
    "LogSourceError",
    "LogSourceNotOpenError",
    "LogSourceUnavailableError",
    "RawRow",
    "RowOrder",
    "SchemaKind",
    "SchemaLayout",
    "SchemaUnsupportedError",
    "detect_schema",
]
