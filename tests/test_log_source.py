"""Tests for schema detection and the read-only chat log source."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from chatanalyzer.storage import (
    ChatLogSource,
    EventRow,
    FlatRow,
    LogSourceError,
    LogSourceNotOpenError,
    LogSourceUnavailableError,
    RowOrder,
    SchemaKind,
    SchemaUnsupportedError,
    detect_schema,
)
from chatanalyzer.storage.schema import quote_identifier

T0 = 1_704_067_200_000


def _connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


class TestDetectSchema:
    """Tests for detect_schema."""

    def test_event_log(self, event_log_db: Path) -> None:
        with _connect(event_log_db) as conn:
            layout = detect_schema(conn)

        assert layout.kind is SchemaKind.EVENT_LOG
        assert layout.table == "events"
        assert layout.has_user_directory is False

    def test_flat_chat_with_directory(self, flat_chat_db: Path) -> None:
        with _connect(flat_chat_db) as conn:
            layout = detect_schema(conn)

        assert layout.kind is SchemaKind.FLAT_CHAT
        assert layout.table == "messages"
        assert layout.user_table == "users"
        assert layout.user_name_column == "display_name"

    def test_flat_chat_name_column(self, tmp_path: Path) -> None:
        db_path = tmp_path / "names.db"
        with sqlite3.connect(db_path) as conn:
            conn.execute("CREATE TABLE chat (timestamp INTEGER, user TEXT, message TEXT)")
            conn.execute("CREATE TABLE members (id TEXT, name TEXT)")

        with _connect(db_path) as conn:
            layout = detect_schema(conn)

        assert layout.table == "chat"
        assert layout.user_table == "members"
        assert layout.user_name_column == "name"

    def test_event_log_preferred_over_flat(self, tmp_path: Path) -> None:
        db_path = tmp_path / "both.db"
        with sqlite3.connect(db_path) as conn:
            conn.execute("CREATE TABLE messages (timestamp INTEGER, user TEXT, message TEXT)")
            conn.execute("CREATE TABLE events (id INTEGER PRIMARY KEY, event TEXT)")

        with _connect(db_path) as conn:
            layout = detect_schema(conn)

        assert layout.kind is SchemaKind.EVENT_LOG

    def test_unsupported(self, unsupported_db: Path) -> None:
        with _connect(unsupported_db) as conn:
            with pytest.raises(SchemaUnsupportedError) as exc_info:
                detect_schema(conn)

        assert exc_info.value.tables == ["notes"]

    def test_quote_identifier(self) -> None:
        assert quote_identifier('we"ird') == '"we""ird"'


class TestChatLogSourceLifecycle:
    """Tests for opening, closing and reloading a chat log."""

    def test_missing_file(self, tmp_path: Path) -> None:
        source = ChatLogSource(tmp_path / "missing.db")

        with pytest.raises(LogSourceUnavailableError):
            source.open()
        assert source.is_open is False

    def test_not_a_database(self, tmp_path: Path) -> None:
        path = tmp_path / "garbage.db"
        path.write_bytes(b"this is not sqlite" * 100)

        with pytest.raises(LogSourceUnavailableError):
            ChatLogSource(path).open()

    def test_unsupported_schema(self, unsupported_db: Path) -> None:
        source = ChatLogSource(unsupported_db)

        with pytest.raises(SchemaUnsupportedError):
            source.open()
        assert source.is_open is False

    def test_errors_share_base_class(self) -> None:
        assert issubclass(SchemaUnsupportedError, LogSourceError)
        assert issubclass(LogSourceUnavailableError, LogSourceError)
        assert issubclass(LogSourceNotOpenError, LogSourceError)

    def test_fetch_before_open(self, event_log_db: Path) -> None:
        source = ChatLogSource(event_log_db)

        with pytest.raises(LogSourceNotOpenError):
            source.fetch_all_rows(10)

    def test_close_is_idempotent(self, event_source: ChatLogSource) -> None:
        event_source.close()
        event_source.close()

        assert event_source.is_open is False

    def test_reload_picks_up_new_rows(self, event_log_db: Path) -> None:
        source = ChatLogSource(event_log_db)
        source.open()
        before = source.count_rows()

        with sqlite3.connect(event_log_db) as conn:
            conn.execute("INSERT INTO events (event) VALUES ('{}')")

        source.reload()
        try:
            assert source.count_rows() == before + 1
        finally:
            source.close()

    def test_failed_reload_keeps_current_log(self, event_log_db: Path, tmp_path: Path) -> None:
        source = ChatLogSource(event_log_db)
        source.open()
        event_log_db.rename(tmp_path / "moved.db")

        try:
            with pytest.raises(LogSourceUnavailableError):
                source.reload()

            assert source.is_open is True
            assert source.kind is SchemaKind.EVENT_LOG
            assert source.count_rows() == 8
        finally:
            source.close()

    def test_reload_into_unsupported_layout_keeps_current_log(
        self, event_log_db: Path, unsupported_db: Path
    ) -> None:
        source = ChatLogSource(event_log_db)
        source.open()
        unsupported_db.replace(event_log_db)

        try:
            with pytest.raises(SchemaUnsupportedError):
                source.reload()

            assert source.layout.table == "events"
            assert len(source.fetch_all_rows(100)) == 8
        finally:
            source.close()

    def test_connection_is_read_only(self, event_source: ChatLogSource) -> None:
        with pytest.raises(LogSourceUnavailableError):
            event_source._query("DELETE FROM events")


class TestChatLogSourceQueries:
    """Tests for row fetching."""

    def test_event_rows_arrival_order(self, event_source: ChatLogSource) -> None:
        rows = event_source.fetch_all_rows(3, RowOrder.ARRIVAL_DESC)

        assert [row.row_id for row in rows] == [8, 7, 6]
        assert all(isinstance(row, EventRow) for row in rows)

    def test_event_rows_timestamp_order(self, event_source: ChatLogSource) -> None:
        rows = event_source.fetch_all_rows(100, RowOrder.TIMESTAMP_DESC)

        # Row 5 holds invalid JSON and sorts last
        assert [row.row_id for row in rows] == [6, 8, 7, 2, 4, 3, 1, 5]

    def test_event_rows_in_range(self, event_source: ChatLogSource) -> None:
        rows = event_source.fetch_rows_in_range(T0, T0 + 5_000)

        assert [row.row_id for row in rows] == [1, 2, 3, 4]

    def test_flat_rows(self, flat_source: ChatLogSource) -> None:
        rows = flat_source.fetch_all_rows(2, RowOrder.ARRIVAL_DESC)

        assert [row.row_id for row in rows] == [5, 4]
        assert isinstance(rows[0], FlatRow)
        assert rows[0].user == "carol_id"
        assert rows[0].message == "thanks!"

    def test_flat_rows_in_range(self, flat_source: ChatLogSource) -> None:
        rows = flat_source.fetch_rows_in_range(T0, T0 + 60_000)

        assert [row.row_id for row in rows] == [1, 2]

    def test_user_directory(self, flat_source: ChatLogSource) -> None:
        assert flat_source.fetch_user_directory() == {"alice_id": "Alice", "bob_id": "Bob"}

    def test_event_log_has_no_user_directory(self, event_source: ChatLogSource) -> None:
        assert event_source.fetch_user_directory() == {}

    def test_count_rows(self, event_source: ChatLogSource) -> None:
        assert event_source.count_rows() == 8

    def test_describe_structure(self, flat_source: ChatLogSource) -> None:
        structure = flat_source.describe_structure()

        assert set(structure) == {"messages", "users"}
        assert [col["name"] for col in structure["messages"]] == ["id", "timestamp", "user", "message"]

    def test_negative_limit_rejected(self, event_source: ChatLogSource) -> None:
        with pytest.raises(ValueError):
            event_source.fetch_all_rows(-1)
