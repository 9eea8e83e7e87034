"""Service layer for Chat AI Analyzer.

Services sit between the web API and the analysis pipeline and accept their
dependencies via constructor, so they can be tested with fakes.
"""

from __future__ import annotations

from chatanalyzer.service.answer import AnswerService
from chatanalyzer.service.summary import ChatSummary, summarize

__all__ = [
    "AnswerService",
    "ChatSummary",
    "summarize",
]
