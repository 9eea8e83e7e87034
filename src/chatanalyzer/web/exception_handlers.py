"""Exception handlers producing the API's JSON error envelope.

Every error response has the shape ``{"success": false, "error": "..."}``.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING

from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatanalyzer.analyzer.context import InvalidContextModeError, InvalidDateRangeError
from chatanalyzer.storage.errors import LogSourceError

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

DATABASE_NOT_LOADED = "データベースが読み込まれていません"


def _get_error_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(status_code: int, error: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, HTTPException | StarletteHTTPException):
        exc = HTTPException(status_code=500, detail=str(exc))

    logger.warning(
        f"HTTP {exc.status_code} error: {exc.detail} "
        f"(request_id={_get_error_id(request)}, path={request.url.path})"
    )
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else [{"msg": str(exc)}]
    logger.warning(
        f"Validation error on {request.url.path}: {errors} (request_id={_get_error_id(request)})"
    )
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "入力データが不正です",
        errors=[{"loc": list(e.get("loc", [])), "msg": str(e.get("msg", ""))} for e in errors],
    )


async def log_source_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Chat log missing, unreadable or in an unsupported layout."""
    logger.warning(
        f"Chat log unavailable on {request.url.path} "
        f"(request_id={_get_error_id(request)}): {type(exc).__name__}: {exc}"
    )
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, DATABASE_NOT_LOADED)


async def bad_request_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unknown context mode or reversed dateRange bounds."""
    logger.info(f"Rejected request on {request.url.path}: {exc}")
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions.

    In debug mode the response includes the exception type and traceback;
    otherwise only a generic message and the request id.
    """
    error_id = _get_error_id(request)
    logger.exception(
        f"Unhandled exception in {request.method} {request.url.path} (request_id={error_id}): {exc}"
    )

    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.debug:
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Internal server error: {type(exc).__name__}: {exc}",
            request_id=error_id,
            traceback=traceback.format_exc().split("\n"),
        )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "内部エラーが発生しました",
        request_id=error_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers."""
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(LogSourceError, log_source_exception_handler)
    app.add_exception_handler(InvalidContextModeError, bad_request_exception_handler)
    app.add_exception_handler(InvalidDateRangeError, bad_request_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
