"""Answer orchestration.

Questions are answered by the text generator when one is configured; any
generator failure (rate limit, HTTP error, timeout, empty answer) falls back to
the statistical analyzer. The generator gets a single attempt per question.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from chatanalyzer.analyzer.context import ContextSelector, parse_context_mode
from chatanalyzer.analyzer.fallback import FallbackAnalyzer
from chatanalyzer.generator.errors import GenerationFailedError, RateLimitedError
from chatanalyzer.generator.gemini import TextGenerator
from chatanalyzer.models.answer import AnswerResult, AnswerSource
from chatanalyzer.models.message import Message
from chatanalyzer.utils.logging import TimingContext

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR_TIMEOUT = 30.0


class AnswerService:
    """Answers questions about a chat log.

    The service accepts dependencies via constructor for testability.

    Example:
        ```python
        service = AnswerService(
            selector=ContextSelector(source),
            fallback=FallbackAnalyzer(),
            generator=create_generator(settings),
        )
        result = await service.answer("誰が一番話してる？", context="recent")
        ```
    """

    def __init__(
        self,
        selector: ContextSelector,
        fallback: FallbackAnalyzer,
        generator: TextGenerator | None = None,
        generator_timeout: float = DEFAULT_GENERATOR_TIMEOUT,
    ) -> None:
        """Initialize the service.

        Args:
            selector: Context selector over the chat log
            fallback: Statistical analyzer used when the generator fails
            generator: Text generator (None = always use the fallback)
            generator_timeout: Seconds allowed for the single generator call
        """
        self._selector = selector
        self._fallback = fallback
        self._generator = generator
        self._generator_timeout = generator_timeout

    @property
    def generator_enabled(self) -> bool:
        return self._generator is not None

    async def answer(
        self,
        question: str,
        context: str = "recent",
        start: int | datetime | None = None,
        end: int | datetime | None = None,
    ) -> AnswerResult:
        """Answer a question from the messages of a context window.

        Args:
            question: Free-form question
            context: Context mode name ("recent", "dateRange", "all")
            start: Lower bound for dateRange
            end: Upper bound for dateRange

        Returns:
            AnswerResult from the generator, or from the fallback analyzer

        Raises:
            InvalidContextModeError: If the context mode is unknown (before any I/O)
            LogSourceError: If the chat log cannot be read
        """
        mode = parse_context_mode(context)

        with TimingContext("select_context", logger):
            selection = self._selector.select(mode, start=start, end=end)
        messages = selection.messages

        answer = await self._try_generator(question, messages)
        if answer is not None:
            logger.info(f"Answered with generator ({len(messages)} messages, {mode.value})")
            return AnswerResult.from_source(answer, AnswerSource.GENERATOR, len(messages), mode.value)

        answer = self._fallback.analyze(question, messages)
        logger.info(f"Answered with fallback analysis ({len(messages)} messages, {mode.value})")
        return AnswerResult.from_source(answer, AnswerSource.FALLBACK, len(messages), mode.value)

    async def _try_generator(self, question: str, messages: list[Message]) -> str | None:
        """Single generator attempt; None means fall back."""
        if self._generator is None:
            return None

        try:
            with TimingContext("generate_answer", logger):
                return await asyncio.wait_for(
                    self._generator.generate(question, messages),
                    timeout=self._generator_timeout,
                )
        except RateLimitedError as e:
            logger.warning(f"Generator rate limited, falling back: {e}")
        except GenerationFailedError as e:
            logger.warning(f"Generator failed, falling back: {e}")
        except TimeoutError:
            logger.warning(
                f"Generator timed out after {self._generator_timeout}s, falling back"
            )
        except Exception:
            logger.exception("Unexpected generator error, falling back")
        return None
