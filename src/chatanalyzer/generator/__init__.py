"""External text generation used to answer questions about a chat log."""

from __future__ import annotations

from chatanalyzer.generator.errors import GenerationError, GenerationFailedError, RateLimitedError
from chatanalyzer.generator.gemini import GeminiGenerator, TextGenerator, create_generator
from chatanalyzer.generator.prompts import (
    build_prompt,
    build_sentiment_prompt,
    build_statistics_prompt,
    build_topic_prompt,
    format_messages_for_prompt,
)

__all__ = [
    "GeminiGenerator",
    "GenerationError",
    "GenerationFailedError",
    "RateLimitedError",
    "TextGenerator",
    "build_prompt",
    "build_sentiment_prompt",
    "build_statistics_prompt",
    "build_topic_prompt",
    "create_generator",
    "format_messages_for_prompt",
]
