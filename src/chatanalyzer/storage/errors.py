"""Chat log storage exceptions."""

from __future__ import annotations


class LogSourceError(Exception):
    """Base exception for chat log access."""


class LogSourceUnavailableError(LogSourceError):
    """Raised when the chat log file is missing or cannot be opened."""


class LogSourceNotOpenError(LogSourceError):
    """Raised when the chat log is queried before it was opened."""


class SchemaUnsupportedError(LogSourceError):
    """Raised when the database matches neither supported layout."""

    def __init__(self, message: str, tables: list[str] | None = None) -> None:
        super().__init__(message)
        self.tables = tables or []
