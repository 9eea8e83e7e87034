"""Pytest configuration and shared fixtures for Chat AI Analyzer tests.

Fixtures:
- reset_settings_cache: Clears the cached settings around each test (autouse)
- event_log_db: SQLite event log with valid, non-text and malformed rows
- flat_chat_db: SQLite flat chat table with a users directory
- unsupported_db: SQLite database matching neither layout
- event_source / flat_source: Opened ChatLogSource handles on the above
- fake_message_factory: Factory for creating fake Message objects
- make_settings: Factory for Settings isolated from the environment
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Generator, Iterator
from pathlib import Path
from typing import Any

import pytest

from chatanalyzer.config import Settings, reset_settings
from chatanalyzer.models import Message
from chatanalyzer.storage import ChatLogSource

# 2024-01-01T00:00:00Z
T0 = 1_704_067_200_000
DAY_MS = 86_400_000


def make_event(
    message_id: str,
    user_id: str,
    text: str,
    timestamp: int | str,
    group_id: str | None = "G1",
    message_type: str = "text",
    event_type: str = "message",
) -> str:
    """Build a webhook payload as stored in the event log."""
    source: dict[str, Any] = {"type": "group" if group_id else "user", "userId": user_id}
    if group_id:
        source["groupId"] = group_id
    payload: dict[str, Any] = {
        "type": event_type,
        "timestamp": timestamp,
        "source": source,
        "replyToken": "r" * 8,
    }
    if event_type == "message":
        message: dict[str, Any] = {"type": message_type, "id": message_id}
        if message_type == "text":
            message["text"] = text
        payload["message"] = message
    return json.dumps(payload, ensure_ascii=False)


# Rows of the event log fixture, in arrival (id) order.
EVENT_ROWS: list[str] = [
    make_event("m1", "U1", "おはよう", T0 + 1_000),
    make_event("m2", "U2", "了解です", T0 + 5_000),
    make_event("m3", "U1", "ok thanks", T0 + 3_000),
    make_event("m4", "U2", "", T0 + 4_000, message_type="sticker"),
    '{"type": "message", "timestamp": ',
    make_event("m6", "U3", "はい", T0 + 2 * DAY_MS),
    make_event("m7", "U3", "", T0 + 6_000, event_type="follow"),
    make_event("m8", "U2", "うん、いいね", str(T0 + 10_000)),
]


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Make sure no test sees settings cached by another."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def event_log_db(tmp_path: Path) -> Path:
    """Create an event log database.

    Valid text messages: m1, m2, m3, m6, m8 (senders U1, U2, U3; group G1).
    Dropped rows: m4 (sticker), row 5 (truncated JSON), m7 (follow event).
    """
    db_path = tmp_path / "line_events.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("CREATE TABLE events (id INTEGER PRIMARY KEY AUTOINCREMENT, event TEXT)")
        conn.executemany("INSERT INTO events (event) VALUES (?)", [(row,) for row in EVENT_ROWS])
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def flat_chat_db(tmp_path: Path) -> Path:
    """Create a flat chat database with a users directory.

    Valid messages: rows 1, 2, 5. Row 3 has a non-numeric timestamp and row 4
    an empty text.
    """
    db_path = tmp_path / "line_flat.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "CREATE TABLE messages (id INTEGER PRIMARY KEY, timestamp TEXT, user TEXT, message TEXT)"
        )
        conn.execute("CREATE TABLE users (id TEXT PRIMARY KEY, display_name TEXT)")
        conn.executemany(
            "INSERT INTO messages (id, timestamp, user, message) VALUES (?, ?, ?, ?)",
            [
                (1, str(T0), "alice_id", "hello"),
                (2, str(T0 + 60_000), "bob_id", "ok"),
                (3, "not-a-time", "bob_id", "broken"),
                (4, str(T0 + 120_000), "alice_id", ""),
                (5, str(T0 + 180_000), "carol_id", "thanks!"),
            ],
        )
        conn.executemany(
            "INSERT INTO users (id, display_name) VALUES (?, ?)",
            [("alice_id", "Alice"), ("bob_id", "Bob")],
        )
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def unsupported_db(tmp_path: Path) -> Path:
    db_path = tmp_path / "other.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def event_source(event_log_db: Path) -> Iterator[ChatLogSource]:
    source = ChatLogSource(event_log_db)
    source.open()
    yield source
    source.close()


@pytest.fixture
def flat_source(flat_chat_db: Path) -> Iterator[ChatLogSource]:
    source = ChatLogSource(flat_chat_db)
    source.open()
    yield source
    source.close()


@pytest.fixture
def fake_message_factory() -> Callable[..., Message]:
    """Factory for creating fake Message objects.

    Usage:
        def test_something(fake_message_factory):
            msg = fake_message_factory(sender_id="U1", text="了解")
    """
    return Message.fake


@pytest.fixture
def make_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """Factory for Settings that ignore the developer's environment and .env file."""
    for var in ("GEMINI_API_KEY", "LINE_DATABASE_PATH", "PORT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {"gemini_api_key": "", "log_to_file": False}
        values.update(overrides)
        return Settings(**values)

    return _make
