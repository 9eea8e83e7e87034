"""FastAPI application factory."""

from __future__ import annotations

import logging
import platform
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from chatanalyzer import __version__
from chatanalyzer.analyzer.context import ContextSelector
from chatanalyzer.analyzer.fallback import FallbackAnalyzer
from chatanalyzer.config import Settings, get_settings
from chatanalyzer.generator.gemini import TextGenerator, create_generator
from chatanalyzer.service.answer import AnswerService
from chatanalyzer.storage.errors import LogSourceError
from chatanalyzer.storage.log_source import ChatLogSource
from chatanalyzer.web.exception_handlers import register_exception_handlers
from chatanalyzer.web.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from chatanalyzer.web.routers.ai import router as ai_router
from chatanalyzer.web.routers.chat import router as chat_router
from chatanalyzer.web.routers.database import router as database_router
from chatanalyzer.web.routers.health import router as health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the chat log on startup and close it on shutdown.

    A missing or unsupported log does not stop the server: the API answers
    503 until a reload succeeds.
    """
    settings: Settings = app.state.settings
    source: ChatLogSource | None = app.state.log_source

    logger.info("=" * 60)
    logger.info(f"Chat AI Analyzer v{__version__} starting up")
    logger.info(f"Python: {platform.python_version()}, OS: {platform.system()} {platform.release()}")
    logger.info("=" * 60)
    logger.info(f"Configuration: host={settings.host}, port={settings.port}")

    if source is None:
        logger.warning("No chat log configured (set LINE_DATABASE_PATH or use --database)")
    else:
        try:
            source.open()
        except LogSourceError as e:
            logger.warning(f"Chat log not loaded: {e}")

    if app.state.generator_enabled:
        logger.info(f"Text generator enabled (model={settings.gemini_model})")
    else:
        logger.info("Text generator disabled, answers use statistical analysis")

    logger.info("Application startup complete")

    yield

    if source is not None:
        source.close()
    logger.info("Shutdown complete")


def create_app(
    *,
    debug: bool | None = None,
    settings: Settings | None = None,
    generator: TextGenerator | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        debug: Enable debug mode (more verbose errors). If None, uses settings.
        settings: Settings instance. If None, uses get_settings().
        generator: Text generator override. If None, built from settings.

    Returns:
        Configured FastAPI application instance

    Example:
        ```python
        app = create_app(settings=Settings(database_path="line.db"))
        # Run with: uvicorn chatanalyzer.web.app:app
        ```
    """
    if settings is None:
        settings = get_settings()

    effective_debug = debug if debug is not None else settings.debug

    app = FastAPI(
        title="Chat AI Analyzer",
        description="Question answering and statistics over LINE chat logs",
        version=__version__,
        debug=effective_debug,
        lifespan=lifespan,
    )

    source = ChatLogSource(settings.database_path) if settings.database_path else None
    app.state.settings = settings
    app.state.log_source = source
    app.state.answer_service = None
    if generator is None:
        generator = create_generator(settings)
    app.state.generator_enabled = generator is not None
    if source is not None:
        app.state.answer_service = AnswerService(
            selector=ContextSelector(
                source,
                recent_limit=settings.recent_limit,
                all_limit=settings.all_limit,
                date_range_days=settings.date_range_days,
            ),
            fallback=FallbackAnalyzer(
                vocabulary=settings.keyword_vocabulary,
                top_n=settings.top_keywords_limit,
                tz=settings.tzinfo,
            ),
            generator=generator,
            generator_timeout=settings.generator_timeout,
        )

    register_exception_handlers(app)

    # First added = last executed: RequestLogging runs after RequestID is set
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(database_router)
    app.include_router(chat_router)
    app.include_router(ai_router)

    return app


# Default app instance for uvicorn
app = create_app()
