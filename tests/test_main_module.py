"""Tests for the command line entry point in chatanalyzer.main.

Tests cover:
- --validate flows (valid config, missing chat log)
- --version
- Server startup with CLI overrides (uvicorn mocked)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from chatanalyzer import __version__
from chatanalyzer.config import Settings
from chatanalyzer.main import main


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Reset logging state between tests to prevent interference."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers.copy()
    original_level = root_logger.level

    yield

    root_logger.handlers = original_handlers
    root_logger.setLevel(original_level)


@pytest.fixture
def clean_env(make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate main() from the developer's environment and .env file."""
    monkeypatch.setenv("CHATANALYZER_LOG_TO_FILE", "false")


def run_main(monkeypatch: pytest.MonkeyPatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["chatanalyzer", *args])
    main()


class TestValidate:
    """Tests for --validate."""

    def test_valid(
        self,
        clean_env: None,
        event_log_db: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_main(monkeypatch, "--validate", "--database", str(event_log_db))

        assert exc_info.value.code == 0
        output = capsys.readouterr().out
        assert f"Database: {event_log_db}" in output
        assert "Configuration is valid" in output

    def test_missing_database(
        self,
        clean_env: None,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_main(monkeypatch, "--validate", "--database", str(tmp_path / "missing.db"))

        assert exc_info.value.code == 1
        output = capsys.readouterr().out
        assert "Configuration validation failed" in output
        assert "Chat log not found" in output

    def test_database_from_environment(
        self,
        clean_env: None,
        event_log_db: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("LINE_DATABASE_PATH", str(event_log_db))

        with pytest.raises(SystemExit) as exc_info:
            run_main(monkeypatch, "--validate")

        assert exc_info.value.code == 0


def test_version(
    clean_env: None, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        run_main(monkeypatch, "--version")

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_starts_server_with_overrides(
    clean_env: None, event_log_db: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    fake_app = MagicMock()

    with (
        patch("uvicorn.run") as mock_run,
        patch("chatanalyzer.web.app.create_app", return_value=fake_app) as mock_create_app,
    ):
        run_main(
            monkeypatch,
            "--database",
            str(event_log_db),
            "--port",
            "9001",
            "--log-level",
            "WARNING",
        )

    settings = mock_create_app.call_args.kwargs["settings"]
    assert settings.port == 9001
    assert settings.database_path == event_log_db
    assert settings.log_level == "WARNING"
    mock_run.assert_called_once()
    assert mock_run.call_args.args[0] is fake_app
    assert mock_run.call_args.kwargs["port"] == 9001
    assert logging.getLogger().level == logging.WARNING


def test_starts_without_database(clean_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing chat log is reported but does not stop the server."""
    with (
        patch("uvicorn.run") as mock_run,
        patch("chatanalyzer.web.app.create_app", return_value=MagicMock()),
    ):
        run_main(monkeypatch)

    mock_run.assert_called_once()
