"""Domain models for Chat AI Analyzer.

Models:
    Message: Normalized chat message
    Statistics: Statistics derived from a message set
    DateRange: Time span covered by a message set
    KeywordCount: Occurrences of one vocabulary word
    AnswerResult: Answer to a question, with its source and confidence
    AnswerSource: Enum of answer paths (generator, fallback)
"""

from .answer import FALLBACK_CONFIDENCE, GENERATOR_CONFIDENCE, AnswerResult, AnswerSource
from .message import Message
from .statistics import DateRange, KeywordCount, Statistics, iso_from_millis

__all__ = [
    "FALLBACK_CONFIDENCE",
    "GENERATOR_CONFIDENCE",
    "AnswerResult",
    "AnswerSource",
    "DateRange",
    "KeywordCount",
    "Message",
    "Statistics",
    "iso_from_millis",
]
