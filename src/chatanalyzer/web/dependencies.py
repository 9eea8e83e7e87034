"""Dependency injection helpers for FastAPI routes.

The chat log and the services built on it live in ``app.state`` and are
created by the application factory.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from chatanalyzer.config import Settings
from chatanalyzer.storage.errors import LogSourceNotOpenError
from chatanalyzer.storage.log_source import ChatLogSource


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_optional_log_source(request: Request) -> ChatLogSource | None:
    """Configured chat log handle, open or not (None when no path is set)."""
    return request.app.state.log_source


def get_log_source(request: Request) -> ChatLogSource:
    """Open chat log handle.

    Raises:
        LogSourceNotOpenError: If no chat log is loaded (answered with 503)
    """
    source: ChatLogSource | None = request.app.state.log_source
    if source is None or not source.is_open:
        raise LogSourceNotOpenError("Chat log is not loaded")
    return source


AppSettings = Annotated[Settings, Depends(get_app_settings)]
LogSource = Annotated[ChatLogSource, Depends(get_log_source)]
OptionalLogSource = Annotated[ChatLogSource | None, Depends(get_optional_log_source)]
