"""Chat log summary and message listing endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from chatanalyzer.analyzer.context import ContextMode, ContextSelector
from chatanalyzer.models.message import Message
from chatanalyzer.service.summary import summarize
from chatanalyzer.web.dependencies import AppSettings, LogSource, OptionalLogSource

router = APIRouter(prefix="/api", tags=["chat"])


class MessageOut(BaseModel):
    """Message as returned by the API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    timestamp: int
    sender_id: str = Field(serialization_alias="senderId")
    group_id: str | None = Field(default=None, serialization_alias="groupId")
    user_name: str | None = Field(default=None, serialization_alias="userName")

    @classmethod
    def from_message(cls, message: Message) -> MessageOut:
        return cls(**message.model_dump())


@router.get("/chat/summary")
async def chat_summary(settings: AppSettings, source: LogSource) -> dict[str, Any]:
    """Statistics over the whole chat log."""
    summary = summarize(
        source,
        limit=settings.summary_limit,
        vocabulary=settings.keyword_vocabulary,
        top_n=settings.top_keywords_limit,
        tz=settings.tzinfo,
    )
    return {
        "success": True,
        "data": {
            "totalEvents": summary.total_events,
            "droppedRows": summary.dropped_rows,
            **summary.statistics.model_dump(mode="json", by_alias=True),
        },
    }


@router.get("/chat/messages")
async def chat_messages(
    settings: AppSettings,
    source: LogSource,
    limit: Annotated[int | None, Query(ge=1, le=10_000)] = None,
    recent: bool = False,
) -> dict[str, Any]:
    """Newest messages (``recent=false``) or the last rows oldest first (``recent=true``)."""
    mode = ContextMode.RECENT if recent else ContextMode.ALL
    selection = ContextSelector(source).select(
        mode, limit=limit if limit is not None else settings.messages_default_limit
    )
    return {
        "success": True,
        "data": {
            "messages": [
                MessageOut.from_message(m).model_dump(by_alias=True) for m in selection.messages
            ],
            "participants": sorted(selection.participants),
            "groups": sorted(selection.groups),
            "totalEvents": selection.processed,
        },
    }


@router.get("/file/status")
async def file_status(source: OptionalLogSource) -> dict[str, Any]:
    loaded = source is not None and source.is_open
    return {
        "success": True,
        "data": {
            "isLoaded": loaded,
            "timestamp": datetime.now(UTC).isoformat() if loaded else None,
        },
    }
