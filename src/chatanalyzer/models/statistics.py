"""Statistics result models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def iso_from_millis(timestamp: int) -> str:
    """Format epoch milliseconds as ISO-8601 UTC with millisecond precision.

    Example:
        >>> iso_from_millis(1704067200000)
        '2024-01-01T00:00:00.000Z'
    """
    dt = datetime.fromtimestamp(timestamp / 1000, tz=UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


class DateRange(BaseModel):
    """Inclusive time span covered by a message set (both None when empty)."""

    model_config = ConfigDict(strict=True, frozen=True, extra="forbid")

    start: str | None = None
    end: str | None = None

    @model_validator(mode="after")
    def bounds_set_together(self) -> DateRange:
        if (self.start is None) != (self.end is None):
            raise ValueError("start and end must both be set or both be None")
        return self

    @classmethod
    def from_millis(cls, start: int, end: int) -> DateRange:
        return cls(start=iso_from_millis(start), end=iso_from_millis(end))


class KeywordCount(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, extra="forbid")

    word: str
    count: int = Field(ge=1)


class Statistics(BaseModel):
    """Statistics derived from a message set.

    Never persisted: always recomputed from the messages of one request.
    Serialized with camelCase keys (`model_dump(by_alias=True)`).

    Attributes:
        total_messages: Number of messages analyzed.
        unique_participants: Number of distinct senders.
        unique_groups: Number of distinct groups (event log only).
        date_range: Oldest and newest message time.
        most_active_user: Sender with the most messages (ties: smallest id).
        most_active_user_count: Message count of most_active_user.
        average_messages_per_day: Messages per calendar-day span, 2 decimals.
        messages_per_user: Message count per sender, busiest first.
        messages_per_hour: Message count per local hour (keys 0-23).
        most_active_hour: Busiest hour of day (ties: earliest hour).
        most_active_hour_count: Message count of most_active_hour.
        top_keywords: Vocabulary words found, most frequent first.
    """

    model_config = ConfigDict(
        strict=True,
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    total_messages: int = Field(ge=0)
    unique_participants: int = Field(ge=0)
    unique_groups: int = Field(default=0, ge=0)
    date_range: DateRange = Field(default_factory=DateRange)
    most_active_user: str | None = None
    most_active_user_count: int = Field(default=0, ge=0)
    average_messages_per_day: float = Field(default=0.0, ge=0.0)
    messages_per_user: dict[str, int] = Field(default_factory=dict)
    messages_per_hour: dict[int, int] = Field(default_factory=lambda: dict.fromkeys(range(24), 0))
    most_active_hour: int | None = None
    most_active_hour_count: int = Field(default=0, ge=0)
    top_keywords: list[KeywordCount] = Field(default_factory=list)

    @field_validator("messages_per_hour")
    @classmethod
    def hours_must_cover_day(cls, v: dict[int, int]) -> dict[int, int]:
        if set(v) != set(range(24)):
            raise ValueError("messages_per_hour must have exactly the keys 0-23")
        return v

    @model_validator(mode="after")
    def validate_consistency(self) -> Statistics:
        if self.unique_participants > self.total_messages:
            raise ValueError("unique_participants cannot exceed total_messages")
        if self.total_messages == 0 and self.most_active_user is not None:
            raise ValueError("most_active_user must be None when there are no messages")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_empty(self) -> bool:
        return self.total_messages == 0

    @property
    def average_messages_per_user(self) -> int:
        """Rounded messages per participant (0 when empty)."""
        if not self.unique_participants:
            return 0
        return round(self.total_messages / self.unique_participants)

    @classmethod
    def empty(cls) -> Statistics:
        """Statistics of an empty message set.

        Example:
            >>> Statistics.empty().date_range.start is None
            True
        """
        return cls(total_messages=0, unique_participants=0)
