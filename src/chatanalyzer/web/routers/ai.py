"""Question answering endpoint."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from chatanalyzer.analyzer.context import parse_context_mode
from chatanalyzer.models.answer import AnswerSource
from chatanalyzer.service.answer import AnswerService
from chatanalyzer.web.dependencies import get_log_source
from chatanalyzer.web.exception_handlers import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


class AskRequest(BaseModel):
    question: str = ""
    context: str = "recent"
    start: int | None = Field(default=None, ge=0, description="dateRange start (epoch ms)")
    end: int | None = Field(default=None, ge=0, description="dateRange end (epoch ms)")


@router.post("/ask", response_model=None)
async def ask(body: AskRequest, request: Request) -> dict[str, Any] | JSONResponse:
    """Answer a question about the chat log.

    Uses the text generator when available and falls back to statistical
    analysis otherwise.
    """
    question = body.question.strip()
    if not question:
        return error_response(400, "質問が入力されていません")

    parse_context_mode(body.context)
    get_log_source(request)

    service: AnswerService = request.app.state.answer_service
    logger.info(f"Question received ({body.context}): {question[:200]}")
    result = await service.answer(question, context=body.context, start=body.start, end=body.end)

    return {
        "success": True,
        **result.model_dump(mode="json", by_alias=True),
        "useGemini": result.source is AnswerSource.GENERATOR,
    }
