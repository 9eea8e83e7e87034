"""Chat log summary shown by the dashboard endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import tzinfo

from chatanalyzer.analyzer.context import ContextMode, ContextSelector
from chatanalyzer.analyzer.statistics import DEFAULT_TOP_KEYWORDS, compute_statistics
from chatanalyzer.config import DEFAULT_KEYWORD_VOCABULARY
from chatanalyzer.models.statistics import Statistics
from chatanalyzer.storage.log_source import ChatLogSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatSummary:
    """Statistics over the whole log plus raw row counters."""

    statistics: Statistics
    total_events: int
    dropped_rows: int


def summarize(
    source: ChatLogSource,
    limit: int,
    vocabulary: Sequence[str] = DEFAULT_KEYWORD_VOCABULARY,
    top_n: int = DEFAULT_TOP_KEYWORDS,
    tz: tzinfo | None = None,
) -> ChatSummary:
    """Compute statistics over up to ``limit`` of the newest messages."""
    selection = ContextSelector(source).select(ContextMode.ALL, limit=limit)
    stats = compute_statistics(selection.messages, vocabulary=vocabulary, top_n=top_n, tz=tz)
    return ChatSummary(
        statistics=stats,
        total_events=source.count_rows(),
        dropped_rows=selection.dropped,
    )
