"""Gemini text generator over the generateContent REST API."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import tzinfo
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from chatanalyzer.generator.errors import GenerationFailedError, RateLimitedError
from chatanalyzer.generator.prompts import (
    build_prompt,
    build_sentiment_prompt,
    build_statistics_prompt,
    build_topic_prompt,
)
from chatanalyzer.models.message import Message
from chatanalyzer.models.statistics import Statistics

if TYPE_CHECKING:
    from chatanalyzer.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"


class TextGenerator(Protocol):
    """Anything that can answer a question from a list of messages."""

    async def generate(self, question: str, messages: Sequence[Message]) -> str: ...


class GeminiGenerator:
    """Answers questions with a Gemini model.

    Each call is a single attempt: failures are raised, never retried.

    Example:
        ```python
        generator = GeminiGenerator(api_key="...")
        answer = await generator.generate("今月の話題は？", messages)
        ```
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        tz: tzinfo | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        self._api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.tz = tz

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, question: str, messages: Sequence[Message]) -> str:
        """Generate an answer.

        Raises:
            RateLimitedError: If the API reports a usage limit (HTTP 429)
            GenerationFailedError: On any other failure or an empty answer
        """
        return await self._generate_content(build_prompt(question, messages, self.tz))

    async def analyze_statistics(self, stats: Statistics) -> str:
        """Describe the character and activity level of a group from its statistics."""
        return await self._generate_content(build_statistics_prompt(stats))

    async def analyze_topic(self, topic: str, messages: Sequence[Message]) -> str:
        """Analyze how one topic comes up in the conversation."""
        if not topic.strip():
            raise ValueError("topic must not be empty")
        return await self._generate_content(build_topic_prompt(topic, messages, self.tz))

    async def analyze_sentiment(self, messages: Sequence[Message]) -> str:
        """Analyze the mood of the conversation and the relations between members."""
        return await self._generate_content(build_sentiment_prompt(messages, self.tz))

    async def _generate_content(self, prompt: str) -> str:
        """Single generateContent call.

        Raises:
            RateLimitedError: If the API reports a usage limit
            GenerationFailedError: On any other failure or an empty answer
        """
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.HTTPError as e:
            raise GenerationFailedError(f"Gemini request failed: {e}") from e

        if response.status_code == 429 or (
            response.status_code >= 400 and "RESOURCE_EXHAUSTED" in response.text
        ):
            raise RateLimitedError(f"Gemini rate limit reached (HTTP {response.status_code})")
        if response.status_code >= 400:
            raise GenerationFailedError(f"Gemini returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationFailedError("Gemini returned a non-JSON response") from e

        answer = self._extract_text(data)
        logger.debug(f"Gemini answered with {len(answer)} characters")
        return answer

    @staticmethod
    def _extract_text(data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailedError("Gemini response has no candidate text") from e
        if not text.strip():
            raise GenerationFailedError("Gemini returned an empty answer")
        return text


def create_generator(settings: Settings) -> GeminiGenerator | None:
    """Build the configured generator, or None when no API key is set."""
    if not settings.gemini_api_key:
        logger.info("GEMINI_API_KEY not set, answers will use statistical analysis")
        return None
    return GeminiGenerator(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.generator_timeout,
        tz=settings.tzinfo,
    )
