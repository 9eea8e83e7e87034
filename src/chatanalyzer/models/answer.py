"""Answer result models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

GENERATOR_CONFIDENCE = 0.85
FALLBACK_CONFIDENCE = 0.70


class AnswerSource(str, Enum):
    """Which path produced an answer."""

    GENERATOR = "generator"
    FALLBACK = "fallback"

    @property
    def confidence(self) -> float:
        return GENERATOR_CONFIDENCE if self is AnswerSource.GENERATOR else FALLBACK_CONFIDENCE


class AnswerResult(BaseModel):
    """Answer to a question about the chat log.

    Attributes:
        answer: Answer text.
        confidence: Fixed confidence of the path that produced it.
        source: Generator or statistical fallback.
        message_count: Number of messages in the context window.
        context: Context mode the messages were selected with.
        timestamp: When the answer was produced.
    """

    model_config = ConfigDict(
        strict=True,
        frozen=True,
        extra="forbid",
    )

    answer: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: AnswerSource
    message_count: int = Field(ge=0, serialization_alias="messageCount")
    context: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_source(
        cls, answer: str, source: AnswerSource, message_count: int, context: str
    ) -> AnswerResult:
        return cls(
            answer=answer,
            confidence=source.confidence,
            source=source,
            message_count=message_count,
            context=context,
        )
