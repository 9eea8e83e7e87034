"""Normalization of raw chat log rows into Message records.

Malformed rows are dropped and counted, never raised: a single bad row must
not abort a batch.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from chatanalyzer.models.message import Message
from chatanalyzer.storage.rows import EventRow, FlatRow, RawRow

logger = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """Raised when a raw row cannot become a Message."""


@dataclass
class NormalizationResult:
    """Messages produced from a batch of raw rows, plus batch counters.

    Attributes:
        messages: Normalized messages, in input order.
        participants: Distinct sender ids.
        groups: Distinct group ids.
        processed: Rows seen.
        dropped: Rows rejected as malformed or non-message.
    """

    messages: list[Message] = field(default_factory=list)
    participants: set[str] = field(default_factory=set)
    groups: set[str] = field(default_factory=set)
    processed: int = 0
    dropped: int = 0

    @property
    def emitted(self) -> int:
        return len(self.messages)

    @property
    def drop_rate(self) -> float:
        return self.dropped / self.processed if self.processed else 0.0


def _coerce_timestamp(value: Any) -> int:
    if isinstance(value, bool):
        raise MalformedRecordError(f"invalid timestamp: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as e:
            raise MalformedRecordError(f"invalid timestamp: {value!r}") from e
    raise MalformedRecordError(f"invalid timestamp: {value!r}")


def _require_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if isinstance(value, bool) or value is None:
        raise MalformedRecordError(f"missing {key}")
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        raise MalformedRecordError(f"invalid {key}: {value!r}")
    return value


def parse_event(row: EventRow) -> Message:
    """Turn an event log row into a Message.

    Only text messages are accepted: ``type == "message"`` and
    ``message.type == "text"``.

    Raises:
        MalformedRecordError: If the payload is not a text message event
    """
    raw = row.event
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raise MalformedRecordError("event payload is not text")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"invalid JSON: {e}") from e

    if not isinstance(payload, dict) or payload.get("type") != "message":
        raise MalformedRecordError("not a message event")
    message = payload.get("message")
    if not isinstance(message, dict) or message.get("type") != "text":
        raise MalformedRecordError("not a text message")
    source = payload.get("source")
    if not isinstance(source, dict):
        raise MalformedRecordError("missing source")

    group_id = source.get("groupId")
    try:
        return Message(
            id=_require_str(message, "id"),
            text=_require_str(message, "text"),
            timestamp=_coerce_timestamp(payload.get("timestamp")),
            sender_id=_require_str(source, "userId"),
            group_id=group_id if isinstance(group_id, str) and group_id else None,
        )
    except ValidationError as e:
        raise MalformedRecordError(str(e)) from e


def parse_flat(row: FlatRow) -> Message:
    """Turn a flat chat row into a Message.

    Raises:
        MalformedRecordError: If a column is missing or invalid
    """
    if not isinstance(row.user, (str, int)) or isinstance(row.user, bool):
        raise MalformedRecordError("missing user")
    if not isinstance(row.message, str):
        raise MalformedRecordError("missing message")
    try:
        return Message(
            id=str(row.row_id),
            text=row.message,
            timestamp=_coerce_timestamp(row.timestamp),
            sender_id=str(row.user),
        )
    except ValidationError as e:
        raise MalformedRecordError(str(e)) from e


def normalize_row(row: RawRow) -> Message | None:
    """Normalize one raw row, returning None when it is dropped."""
    try:
        if isinstance(row, EventRow):
            return parse_event(row)
        return parse_flat(row)
    except MalformedRecordError as e:
        logger.debug(f"Dropped row {row.row_id}: {e}")
        return None


def normalize_rows(rows: Iterable[RawRow]) -> NormalizationResult:
    """Normalize a batch of rows in a single pass.

    Args:
        rows: Raw rows from the chat log

    Returns:
        NormalizationResult with messages in input order
    """
    result = NormalizationResult()
    for row in rows:
        result.processed += 1
        message = normalize_row(row)
        if message is None:
            result.dropped += 1
            continue
        result.messages.append(message)
        result.participants.add(message.sender_id)
        if message.group_id is not None:
            result.groups.add(message.group_id)

    if result.dropped:
        logger.info(
            f"Normalized {result.processed} rows: {result.emitted} messages, "
            f"{result.dropped} dropped ({result.drop_rate:.0%})"
        )
    return result
