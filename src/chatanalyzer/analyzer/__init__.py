"""Normalization, context selection and statistical analysis of chat logs."""

from chatanalyzer.analyzer.context import (
    ContextMode,
    ContextSelection,
    ContextSelector,
    InvalidContextModeError,
    InvalidDateRangeError,
    parse_context_mode,
)
from chatanalyzer.analyzer.fallback import (
    NO_DATA_REPORT,
    FallbackAnalyzer,
    QuestionIntent,
    classify_question,
)
from chatanalyzer.analyzer.normalizer import (
    MalformedRecordError,
    NormalizationResult,
    normalize_row,
    normalize_rows,
)
from chatanalyzer.analyzer.statistics import compute_statistics

__all__ = [
    "NO_DATA_REPORT",
    "ContextMode",
    "ContextSelection",
    "ContextSelector",
    "FallbackAnalyzer",
    "InvalidContextModeError",
    "InvalidDateRangeError",
    "MalformedRecordError",
    "NormalizationResult",
    "QuestionIntent",
    "classify_question",
    "compute_statistics",
    "normalize_row",
    "normalize_rows",
    "parse_context_mode",
]
