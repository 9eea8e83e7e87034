"""Tests for configuration loading and validation."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from chatanalyzer.config import DEFAULT_KEYWORD_VOCABULARY, Settings, get_settings, reset_settings


class TestSettingsDefaults:
    """Tests for default values."""

    def test_defaults(self, make_settings: Callable[..., Settings]) -> None:
        settings = make_settings()

        assert settings.port == 3000
        assert settings.database_path is None
        assert settings.generator_enabled is False
        assert settings.recent_limit == 50
        assert settings.all_limit == 200
        assert settings.date_range_days == 30
        assert settings.keyword_vocabulary == list(DEFAULT_KEYWORD_VOCABULARY)
        assert settings.tzinfo is None

    def test_log_file_path(self, make_settings: Callable[..., Settings]) -> None:
        settings = make_settings()

        assert settings.log_file_path.name == "chatanalyzer.log"
        assert settings.log_file_path.parent == settings.log_dir


class TestEnvironment:
    """Tests for environment variable loading."""

    def test_prefixed_variables(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHATANALYZER_PORT", "8080")
        monkeypatch.setenv("CHATANALYZER_RECENT_LIMIT", "20")

        settings = Settings()

        assert settings.port == 8080
        assert settings.recent_limit == 20

    def test_legacy_database_variable(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("LINE_DATABASE_PATH", str(tmp_path / "line.db"))

        settings = Settings()

        assert settings.database_path == tmp_path / "line.db"

    def test_legacy_port_variable(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PORT", "4000")

        assert Settings().port == 4000

    def test_gemini_api_key_variable(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "secret")

        settings = Settings()

        assert settings.gemini_api_key == "secret"
        assert settings.generator_enabled is True

    def test_keyword_vocabulary_csv(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHATANALYZER_KEYWORD_VOCABULARY", "deploy, rollback,,incident ")

        settings = Settings()

        assert settings.keyword_vocabulary == ["deploy", "rollback", "incident"]

    def test_cors_origins_csv(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHATANALYZER_CORS_ORIGINS", "http://a.test,http://b.test")

        assert Settings().cors_origins == ["http://a.test", "http://b.test"]

    def test_get_settings_is_cached(self, make_settings: Callable[..., Settings]) -> None:
        first = get_settings()

        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first


class TestFieldValidation:
    """Tests for field validators."""

    def test_empty_vocabulary_rejected(self, make_settings: Callable[..., Settings]) -> None:
        with pytest.raises(ValidationError, match="keyword_vocabulary"):
            make_settings(keyword_vocabulary=" , ")

    def test_valid_timezone(self, make_settings: Callable[..., Settings]) -> None:
        settings = make_settings(timezone="Asia/Tokyo")

        assert settings.tzinfo == ZoneInfo("Asia/Tokyo")

    def test_blank_timezone_means_local(self, make_settings: Callable[..., Settings]) -> None:
        assert make_settings(timezone="  ").tzinfo is None

    def test_unknown_timezone(self, make_settings: Callable[..., Settings]) -> None:
        with pytest.raises(ValidationError, match="Unknown timezone"):
            make_settings(timezone="Mars/Olympus")

    def test_log_level_normalized(self, make_settings: Callable[..., Settings]) -> None:
        assert make_settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self, make_settings: Callable[..., Settings]) -> None:
        with pytest.raises(ValidationError, match="log_level"):
            make_settings(log_level="VERBOSE")

    def test_invalid_log_format(self, make_settings: Callable[..., Settings]) -> None:
        with pytest.raises(ValidationError, match="log_format"):
            make_settings(log_format="xml")

    def test_port_range(self, make_settings: Callable[..., Settings]) -> None:
        with pytest.raises(ValidationError, match="port"):
            make_settings(port=0)


class TestConfigValidation:
    """Tests for Settings.validate() and Settings.check()."""

    def test_valid_config(self, make_settings: Callable[..., Settings], event_log_db: Path) -> None:
        settings = make_settings(database_path=event_log_db)

        assert settings.validate() == []

    def test_database_not_configured(self, make_settings: Callable[..., Settings]) -> None:
        errors = make_settings().validate()

        assert len(errors) == 1
        assert "not configured" in errors[0]

    def test_database_missing(self, make_settings: Callable[..., Settings], tmp_path: Path) -> None:
        errors = make_settings(database_path=tmp_path / "missing.db").validate()

        assert any("not found" in error for error in errors)

    def test_database_is_directory(
        self, make_settings: Callable[..., Settings], tmp_path: Path
    ) -> None:
        errors = make_settings(database_path=tmp_path).validate()

        assert any("not a file" in error for error in errors)

    def test_limits_inconsistent(
        self, make_settings: Callable[..., Settings], event_log_db: Path
    ) -> None:
        settings = make_settings(database_path=event_log_db, recent_limit=500, all_limit=100)

        errors = settings.validate()

        assert len(errors) == 1
        assert "all_limit" in errors[0]

    def test_warnings(self, make_settings: Callable[..., Settings]) -> None:
        warnings = make_settings(debug=True, host="0.0.0.0").check()

        assert any("No chat log" in w for w in warnings)
        assert any("GEMINI_API_KEY" in w for w in warnings)
        assert any("Debug mode" in w for w in warnings)

    def test_print_config_masks_api_key(
        self, make_settings: Callable[..., Settings], capsys: pytest.CaptureFixture[str]
    ) -> None:
        make_settings(gemini_api_key="super-secret-key").print_config()

        output = capsys.readouterr().out
        assert "super-secret-key" not in output
        assert "Gemini API Key: ***" in output
