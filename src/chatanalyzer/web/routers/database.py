"""Chat log status and reload endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from chatanalyzer.storage.errors import LogSourceError
from chatanalyzer.web.dependencies import OptionalLogSource
from chatanalyzer.web.exception_handlers import DATABASE_NOT_LOADED, error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/database", tags=["database"])


@router.get("/status")
async def database_status(source: OptionalLogSource) -> dict[str, Any]:
    """Layout and table structure of the loaded chat log."""
    if source is None or not source.is_open:
        return {
            "success": False,
            "error": DATABASE_NOT_LOADED,
            "message": "LINE_DATABASE_PATH環境変数を確認してください",
        }
    return {
        "success": True,
        "message": "データベースが正常に読み込まれています",
        "schema": source.kind.value,
        "table": source.layout.table,
        "structure": source.describe_structure(),
        "filePath": str(source.path),
    }


@router.post("/reload", response_model=None)
async def reload_database(source: OptionalLogSource) -> dict[str, Any] | JSONResponse:
    """Reopen the chat log, picking up a replaced or newly created file."""
    if source is None:
        return error_response(
            400, "データベースの再読み込みに失敗しました", detail="Chat log path is not configured"
        )

    try:
        source.reload()
    except LogSourceError as e:
        logger.warning(f"Chat log reload failed: {e}")
        return error_response(400, "データベースの再読み込みに失敗しました", detail=str(e))

    return {
        "success": True,
        "message": "データベースが正常に再読み込みされました",
        "schema": source.kind.value,
    }
