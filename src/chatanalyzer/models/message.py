"""Message domain model."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# Latest instant that stays a valid datetime in every UTC offset.
MAX_TIMESTAMP_MS = int(datetime(9999, 12, 30, tzinfo=UTC).timestamp()) * 1000


class Message(BaseModel):
    """Normalized chat message, independent of the storage layout it came from.

    Attributes:
        id: Opaque message identifier.
        text: Message text (never empty).
        timestamp: Epoch milliseconds, used for all ordering.
        sender_id: Author identifier.
        group_id: Group the message was posted to (event log only).
        user_name: Display name of the author, defaults to sender_id.

    Example:
        >>> msg = Message(id="1", text="了解", timestamp=1704067200000, sender_id="U1")
        >>> msg.display_name
        'U1'
    """

    model_config = ConfigDict(
        strict=True,
        frozen=True,
        extra="forbid",
    )

    id: str
    text: str
    timestamp: int
    sender_id: str
    group_id: str | None = None
    user_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_user_name(cls, data: Any) -> Any:
        """Fall back to the sender id when no display name is known."""
        if isinstance(data, dict) and not data.get("user_name"):
            data = {**data, "user_name": data.get("sender_id")}
        return data

    @field_validator("text")
    @classmethod
    def text_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be empty")
        return v

    @field_validator("sender_id")
    @classmethod
    def sender_id_must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("sender_id must not be empty")
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_in_range(cls, v: int) -> int:
        if v < 0:
            raise ValueError("timestamp must be non-negative")
        if v > MAX_TIMESTAMP_MS:
            raise ValueError(f"timestamp out of range: {v}")
        return v

    @property
    def display_name(self) -> str:
        return self.user_name or self.sender_id

    @property
    def sent_at(self) -> datetime:
        """Timestamp as a timezone-aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    def with_user_name(self, user_name: str) -> Message:
        """Return a copy carrying the given display name."""
        return self.model_copy(update={"user_name": user_name})

    @classmethod
    def fake(
        cls,
        id: str | None = None,
        text: str | None = None,
        timestamp: int | None = None,
        sender_id: str | None = None,
        group_id: str | None = None,
        user_name: str | None = None,
    ) -> Message:
        """Create a fake Message for testing.

        Args:
            id: Message ID (default: random numeric string).
            text: Message text (default: "Test message").
            timestamp: Epoch milliseconds (default: 1 hour ago).
            sender_id: Author ID (default: random "U..." id).
            group_id: Group ID (default: None).
            user_name: Display name (default: sender_id).

        Returns:
            Message instance with test data.

        Example:
            >>> msg = Message.fake(text="Hello")
            >>> msg.text
            'Hello'
        """
        default_timestamp = int((datetime.now(UTC) - timedelta(hours=1)).timestamp() * 1000)
        return cls(
            id=id if id is not None else str(random.randint(1, 1_000_000)),
            text=text if text is not None else "Test message",
            timestamp=timestamp if timestamp is not None else default_timestamp,
            sender_id=sender_id if sender_id is not None else f"U{random.randint(1, 1_000_000)}",
            group_id=group_id,
            user_name=user_name,
        )
