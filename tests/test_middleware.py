"""Tests for web middleware.

Tests cover:
- RequestIDMiddleware: request ID generation, propagation and correlation IDs
- RequestLoggingMiddleware: request/response logging
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from starlette.requests import Request
from starlette.responses import Response

from chatanalyzer.utils.logging import get_correlation_id
from chatanalyzer.web.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    get_request_id,
    request_id_var,
)


class TestRequestIDMiddleware:
    """Tests for RequestIDMiddleware."""

    @pytest.fixture
    def middleware(self) -> RequestIDMiddleware:
        return RequestIDMiddleware(MagicMock())

    @pytest.mark.asyncio
    async def test_generates_request_id(self, middleware: RequestIDMiddleware) -> None:
        """Should generate a UUID4 if no X-Request-ID header."""
        request = MagicMock(spec=Request)
        request.headers = {}
        request.state = MagicMock()
        call_next = AsyncMock(return_value=Response(content="test"))

        result = await middleware.dispatch(request, call_next)

        assert len(request.state.request_id) == 36
        assert result.headers["X-Request-ID"] == request.state.request_id

    @pytest.mark.asyncio
    async def test_uses_existing_request_id(self, middleware: RequestIDMiddleware) -> None:
        existing_id = "custom-request-id-123"
        request = MagicMock(spec=Request)
        request.headers = {"X-Request-ID": existing_id}
        request.state = MagicMock()
        call_next = AsyncMock(return_value=Response(content="test"))

        result = await middleware.dispatch(request, call_next)

        assert request.state.request_id == existing_id
        assert result.headers["X-Request-ID"] == existing_id

    @pytest.mark.asyncio
    async def test_correlation_id_set_during_request(self, middleware: RequestIDMiddleware) -> None:
        """The first 16 characters of the request ID tag log lines of the request."""
        request = MagicMock(spec=Request)
        request.headers = {"X-Request-ID": "0123456789abcdef-extra"}
        request.state = MagicMock()
        seen: list[str | None] = []

        async def call_next(_: Request) -> Response:
            seen.append(get_correlation_id())
            return Response(content="test")

        await middleware.dispatch(request, call_next)

        assert seen == ["0123456789abcdef"]
        assert get_correlation_id() is None
        assert get_request_id() is None

    @pytest.mark.asyncio
    async def test_context_cleared_on_error(self, middleware: RequestIDMiddleware) -> None:
        request = MagicMock(spec=Request)
        request.headers = {}
        request.state = MagicMock()
        call_next = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await middleware.dispatch(request, call_next)

        assert get_correlation_id() is None


class TestGetRequestId:
    """Tests for get_request_id function."""

    def test_returns_none_when_not_set(self) -> None:
        token = request_id_var.set(None)
        try:
            assert get_request_id() is None
        finally:
            request_id_var.reset(token)

    def test_returns_value_when_set(self) -> None:
        token = request_id_var.set("test-id-456")
        try:
            assert get_request_id() == "test-id-456"
        finally:
            request_id_var.reset(token)


class TestRequestLoggingMiddleware:
    """Tests for RequestLoggingMiddleware."""

    @pytest.mark.asyncio
    async def test_logs_request(self) -> None:
        """Should log request start and completion with status and duration."""
        middleware = RequestLoggingMiddleware(MagicMock())
        request = MagicMock(spec=Request)
        request.method = "POST"
        request.url = MagicMock()
        request.url.path = "/api/ai/ask"
        request.client = MagicMock()
        request.client.host = "127.0.0.1"
        request.state = MagicMock()
        request.state.request_id = "test-123"
        call_next = AsyncMock(return_value=Response(content="test", status_code=200))

        with patch("chatanalyzer.web.middleware.logger") as mock_logger:
            result = await middleware.dispatch(request, call_next)

        assert result.status_code == 200
        assert mock_logger.info.call_count == 2
        completed = mock_logger.info.call_args_list[1]
        assert completed.args[0] == "Request completed"
        assert completed.kwargs["extra"]["status_code"] == 200
        assert completed.kwargs["extra"]["path"] == "/api/ai/ask"
        assert completed.kwargs["extra"]["request_id"] == "test-123"
