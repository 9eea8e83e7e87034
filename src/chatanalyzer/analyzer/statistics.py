"""Statistics over a set of normalized messages."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, tzinfo
from functools import lru_cache

from chatanalyzer.config import DEFAULT_KEYWORD_VOCABULARY
from chatanalyzer.models.message import Message
from chatanalyzer.models.statistics import DateRange, KeywordCount, Statistics

MS_PER_DAY = 86_400_000
DEFAULT_TOP_KEYWORDS = 10


@lru_cache(maxsize=256)
def _keyword_pattern(word: str) -> re.Pattern[str]:
    """Pattern counting one vocabulary word.

    ASCII words must not sit inside a longer ASCII alphanumeric run, so "ok"
    does not match "book". Other scripts have no word separators and match as
    substrings.
    """
    escaped = re.escape(word)
    if word.isascii():
        escaped = rf"(?<![A-Za-z0-9]){escaped}(?![A-Za-z0-9])"
    return re.compile(escaped, re.IGNORECASE)


def count_keywords(texts: Sequence[str], vocabulary: Sequence[str]) -> Counter[str]:
    """Count occurrences of each vocabulary word across texts."""
    counts: Counter[str] = Counter()
    for word in vocabulary:
        pattern = _keyword_pattern(word)
        total = sum(len(pattern.findall(text)) for text in texts)
        if total:
            counts[word] = total
    return counts


def local_hour(timestamp: int, tz: tzinfo | None = None) -> int:
    """Hour of day (0-23) of an epoch-ms timestamp, in tz or local time."""
    return datetime.fromtimestamp(timestamp / 1000, tz=tz).hour


def compute_statistics(
    messages: Sequence[Message],
    *,
    vocabulary: Sequence[str] = DEFAULT_KEYWORD_VOCABULARY,
    top_n: int = DEFAULT_TOP_KEYWORDS,
    tz: tzinfo | None = None,
) -> Statistics:
    """Compute statistics for a message set.

    Args:
        messages: Messages in any order
        vocabulary: Words counted as keywords
        top_n: Number of keywords reported
        tz: Timezone for hour-of-day counts (None = local time)

    Returns:
        Statistics; Statistics.empty() for an empty input.

    Example:
        >>> stats = compute_statistics([Message.fake(sender_id="U1", text="了解")])
        >>> stats.most_active_user
        'U1'
    """
    if not messages:
        return Statistics.empty()

    per_user: Counter[str] = Counter()
    per_hour: Counter[int] = Counter()
    groups: set[str] = set()
    min_ts = max_ts = messages[0].timestamp

    for message in messages:
        per_user[message.sender_id] += 1
        per_hour[local_hour(message.timestamp, tz)] += 1
        if message.group_id is not None:
            groups.add(message.group_id)
        min_ts = min(min_ts, message.timestamp)
        max_ts = max(max_ts, message.timestamp)

    total = len(messages)
    dayspan = (max_ts - min_ts) // MS_PER_DAY + 1

    # Highest count first, ties broken by the smaller key.
    ranked_users = sorted(per_user.items(), key=lambda item: (-item[1], item[0]))
    most_active_user, most_active_user_count = ranked_users[0]
    most_active_hour, most_active_hour_count = min(
        per_hour.items(), key=lambda item: (-item[1], item[0])
    )

    keyword_counts = count_keywords([m.text for m in messages], vocabulary)
    order = {word: index for index, word in enumerate(vocabulary)}
    top_keywords = sorted(keyword_counts.items(), key=lambda item: (-item[1], order[item[0]]))

    return Statistics(
        total_messages=total,
        unique_participants=len(per_user),
        unique_groups=len(groups),
        date_range=DateRange.from_millis(min_ts, max_ts),
        most_active_user=most_active_user,
        most_active_user_count=most_active_user_count,
        average_messages_per_day=round(total / dayspan, 2),
        messages_per_user=dict(ranked_users),
        messages_per_hour={hour: per_hour.get(hour, 0) for hour in range(24)},
        most_active_hour=most_active_hour,
        most_active_hour_count=most_active_hour_count,
        top_keywords=[KeywordCount(word=w, count=c) for w, c in top_keywords[:top_n]],
    )
