"""Raw rows read from the chat log, one type per storage layout."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EventRow:
    """Row of an event log: a JSON webhook payload."""

    row_id: int
    event: Any


@dataclass(frozen=True)
class FlatRow:
    """Row of a flat chat table."""

    row_id: int
    timestamp: Any
    user: Any
    message: Any


RawRow = EventRow | FlatRow
