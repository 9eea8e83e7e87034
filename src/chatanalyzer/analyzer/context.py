"""Selection of the message window handed to the answer generator.

Three modes are supported:

- ``recent``: the physically-last N rows, returned oldest first.
- ``dateRange``: every message inside an inclusive time window, oldest first.
- ``all``: up to N messages ordered newest first. This order is kept as is,
  so ``all`` and ``recent`` deliberately disagree on direction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from chatanalyzer.analyzer.normalizer import NormalizationResult, normalize_rows
from chatanalyzer.models.message import Message
from chatanalyzer.storage.log_source import ChatLogSource, RowOrder
from chatanalyzer.storage.schema import SchemaKind

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 50
DEFAULT_ALL_LIMIT = 200
DEFAULT_DATE_RANGE_DAYS = 30

# Names accepted by the HTTP API in addition to the mode values.
_MODE_ALIASES = {"monthly": "dateRange"}


class InvalidContextModeError(ValueError):
    """Raised when a context mode name is not recognized."""

    def __init__(self, mode: object) -> None:
        super().__init__(f"Invalid context mode: {mode!r}")
        self.mode = mode


class InvalidDateRangeError(ValueError):
    """Raised when a dateRange window ends before it starts."""

    def __init__(self, start: int, end: int) -> None:
        super().__init__(f"Invalid date range: start ({start}) is after end ({end})")
        self.start = start
        self.end = end


class ContextMode(str, Enum):
    RECENT = "recent"
    DATE_RANGE = "dateRange"
    ALL = "all"


def parse_context_mode(value: ContextMode | str) -> ContextMode:
    """Resolve a context mode name.

    Raises:
        InvalidContextModeError: If the name is unknown
    """
    if isinstance(value, ContextMode):
        return value
    if not isinstance(value, str):
        raise InvalidContextModeError(value)
    try:
        return ContextMode(_MODE_ALIASES.get(value, value))
    except ValueError as e:
        raise InvalidContextModeError(value) from e


def to_millis(value: int | datetime) -> int:
    """Convert an epoch-ms int or an aware datetime to epoch milliseconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("datetime bounds must be timezone-aware")
        return int(value.timestamp() * 1000)
    return int(value)


@dataclass
class ContextSelection:
    """Messages selected for one request."""

    mode: ContextMode
    messages: list[Message] = field(default_factory=list)
    participants: set[str] = field(default_factory=set)
    groups: set[str] = field(default_factory=set)
    processed: int = 0
    dropped: int = 0

    @property
    def message_count(self) -> int:
        return len(self.messages)


class ContextSelector:
    """Builds context windows from a chat log.

    Example:
        ```python
        selector = ContextSelector(source)
        messages = selector.recent(50)
        ```
    """

    def __init__(
        self,
        source: ChatLogSource,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
        all_limit: int = DEFAULT_ALL_LIMIT,
        date_range_days: int = DEFAULT_DATE_RANGE_DAYS,
    ) -> None:
        self._source = source
        self.recent_limit = recent_limit
        self.all_limit = all_limit
        self.date_range_days = date_range_days

    def _normalize(self, rows: list) -> NormalizationResult:
        result = normalize_rows(rows)
        if self._source.kind is SchemaKind.FLAT_CHAT and result.messages:
            directory = self._source.fetch_user_directory()
            if directory:
                result.messages = [
                    m.with_user_name(directory[m.sender_id]) if m.sender_id in directory else m
                    for m in result.messages
                ]
        return result

    def _recent(self, n: int) -> NormalizationResult:
        result = self._normalize(self._source.fetch_all_rows(n, RowOrder.ARRIVAL_DESC))
        result.messages.sort(key=lambda m: m.timestamp)
        return result

    def _date_range(self, start: int, end: int) -> NormalizationResult:
        if start > end:
            raise InvalidDateRangeError(start, end)
        result = self._normalize(self._source.fetch_rows_in_range(start, end))
        result.messages = sorted(
            (m for m in result.messages if start <= m.timestamp <= end),
            key=lambda m: m.timestamp,
        )
        result.participants = {m.sender_id for m in result.messages}
        result.groups = {m.group_id for m in result.messages if m.group_id is not None}
        return result

    def _all(self, limit: int) -> NormalizationResult:
        return self._normalize(self._source.fetch_all_rows(limit, RowOrder.TIMESTAMP_DESC))

    def recent(self, n: int | None = None) -> list[Message]:
        """Messages from the last ``n`` rows, ascending by timestamp."""
        return self._recent(self.recent_limit if n is None else n).messages

    def date_range(self, start: int | datetime, end: int | datetime) -> list[Message]:
        """Messages with start <= timestamp <= end, ascending by timestamp."""
        return self._date_range(to_millis(start), to_millis(end)).messages

    def all(self, limit: int | None = None) -> list[Message]:
        """Up to ``limit`` messages, newest first (not re-sorted)."""
        return self._all(self.all_limit if limit is None else limit).messages

    def default_window(self, now: datetime | None = None) -> tuple[int, int]:
        """Window used by dateRange when no bounds are given: the last N days."""
        end = now or datetime.now(UTC)
        start = end - timedelta(days=self.date_range_days)
        return to_millis(start), to_millis(end)

    def select(
        self,
        mode: ContextMode | str,
        *,
        limit: int | None = None,
        start: int | datetime | None = None,
        end: int | datetime | None = None,
    ) -> ContextSelection:
        """Select messages for a context mode.

        The mode is validated before the log is touched.

        Args:
            mode: Context mode or its name
            limit: Row limit for recent/all (defaults from the constructor)
            start: Lower bound for dateRange (default: end - date_range_days)
            end: Upper bound for dateRange (default: now)

        Returns:
            ContextSelection with messages and batch counters

        Raises:
            InvalidContextModeError: If the mode is unknown
        """
        context_mode = parse_context_mode(mode)

        if context_mode is ContextMode.RECENT:
            result = self._recent(self.recent_limit if limit is None else limit)
        elif context_mode is ContextMode.ALL:
            result = self._all(self.all_limit if limit is None else limit)
        else:
            default_start, default_end = self.default_window()
            end_ms = default_end if end is None else to_millis(end)
            if start is None:
                start_ms = end_ms - (default_end - default_start)
            else:
                start_ms = to_millis(start)
            result = self._date_range(start_ms, end_ms)

        logger.debug(
            f"Selected {result.emitted} messages in '{context_mode.value}' mode "
            f"({result.dropped} rows dropped)"
        )
        return ContextSelection(
            mode=context_mode,
            messages=result.messages,
            participants=result.participants,
            groups=result.groups,
            processed=result.processed,
            dropped=result.dropped,
        )
