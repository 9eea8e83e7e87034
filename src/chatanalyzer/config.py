"""Configuration management for Chat AI Analyzer.

Supports layered configuration with priority: CLI args > ENV vars > .env file > defaults
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import platformdirs
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# Short acknowledgment tokens counted by the keyword statistics.
DEFAULT_KEYWORD_VOCABULARY: tuple[str, ...] = (
    "了解",
    "はい",
    "うん",
    "いいね",
    "ありがとう",
    "なるほど",
    "おけ",
    "ok",
    "okay",
    "yes",
    "yeah",
    "sure",
    "thanks",
    "lol",
)


def get_user_log_dir() -> Path:
    """Get platform-appropriate user logs directory.

    Returns:
        Path to platform-specific logs directory
    """
    return Path(platformdirs.user_log_dir("ChatAIAnalyzer", "ChatAIAnalyzer"))


def _split_csv(v: Any) -> list[str]:
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    if isinstance(v, (list, tuple)):
        return [str(item) for item in v]
    return []


class Settings(BaseSettings):
    """Application settings with layered configuration support.

    Configuration is loaded in the following priority (highest to lowest):
    1. CLI arguments (passed directly to Settings())
    2. Environment variables (prefixed with CHATANALYZER_)
    3. .env file (if present in current directory)
    4. Default values

    Example:
        ```python
        settings = get_settings()
        settings = Settings(database_path="line.db", port=9000)
        ```

    Environment variables:
        CHATANALYZER_HOST: Server host (default: 127.0.0.1)
        CHATANALYZER_PORT / PORT: Server port (default: 3000)
        CHATANALYZER_DATABASE_PATH / LINE_DATABASE_PATH: SQLite chat log
        CHATANALYZER_GEMINI_API_KEY / GEMINI_API_KEY: Generator API key
        CHATANALYZER_LOG_LEVEL: Logging level (default: INFO)
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATANALYZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Server settings
    host: str = Field(
        default="127.0.0.1",
        description="Server host to bind to",
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("CHATANALYZER_PORT", "PORT"),
        description="Server port to bind to",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)",
    )

    # Chat log
    database_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("CHATANALYZER_DATABASE_PATH", "LINE_DATABASE_PATH"),
        description="Path to the SQLite chat log",
    )

    # Generator
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CHATANALYZER_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="API key for the Gemini generator (empty disables it)",
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model name",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Gemini REST API",
    )
    generator_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Timeout for a single generator call (seconds)",
    )

    # Context windows
    recent_limit: int = Field(
        default=50,
        ge=1,
        le=10_000,
        description="Messages handed to the generator in 'recent' mode",
    )
    all_limit: int = Field(
        default=200,
        ge=1,
        le=100_000,
        description="Messages handed to the generator in 'all' mode",
    )
    date_range_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Default window for 'dateRange' mode when no bounds are given",
    )
    summary_limit: int = Field(
        default=1_000_000,
        ge=1,
        description="Maximum rows read for the chat summary",
    )
    messages_default_limit: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Default page size for the messages endpoint",
    )

    # Statistics
    keyword_vocabulary: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_KEYWORD_VOCABULARY),
        description="Keywords counted by the statistics (comma-separated in env var)",
    )
    top_keywords_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of keywords reported",
    )
    timezone: str | None = Field(
        default=None,
        description="IANA timezone for hour-of-day statistics (default: local time)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_to_file: bool = Field(
        default=False,
        description="Enable logging to file (in addition to console)",
    )
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        ge=1024 * 1024,
        le=100 * 1024 * 1024,
        description="Maximum size of each log file before rotation",
    )
    log_file_backup_count: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Number of backup log files to keep",
    )
    log_format: str = Field(
        default="text",
        description="Log format: 'text' for human-readable, 'json' for structured logging",
    )
    log_module_levels: dict[str, str] = Field(
        default_factory=dict,
        description="Per-module log levels (e.g., {'chatanalyzer.generator': 'DEBUG'})",
    )

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",  # Vite
            "http://127.0.0.1:5173",
        ],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is supported."""
        valid_formats = {"text", "json"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of: {', '.join(valid_formats)}")
        return v_lower

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        return _split_csv(v)

    @field_validator("keyword_vocabulary", mode="before")
    @classmethod
    def parse_keyword_vocabulary(cls, v: Any) -> list[str]:
        """Parse keyword vocabulary from comma-separated string or list."""
        words = _split_csv(v)
        if not words:
            raise ValueError("keyword_vocabulary must contain at least one word")
        return words

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Validate timezone is a known IANA name."""
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo | None:
        """Timezone used for hour-of-day statistics (None = local time)."""
        return ZoneInfo(self.timezone) if self.timezone else None

    @property
    def generator_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def log_dir(self) -> Path:
        """Directory for log files (uses platform-specific directory)."""
        return get_user_log_dir()

    @property
    def log_file_path(self) -> Path:
        """Path to the main log file."""
        return self.log_dir / "chatanalyzer.log"

    def check(self) -> list[str]:
        """Validate configuration and return any warnings.

        Returns:
            List of warning messages (empty if all is well)
        """
        warnings = []

        if self.database_path is None:
            warnings.append(
                "No chat log configured - the API will answer 503 until one is loaded\n"
                "  → Use --database or set LINE_DATABASE_PATH"
            )
        if not self.generator_enabled:
            warnings.append("GEMINI_API_KEY not set - answers will use statistical analysis only")
        if self.debug and self.host == "0.0.0.0":  # nosec B104
            warnings.append(
                "Debug mode enabled with public host binding - not recommended for production"
            )

        return warnings

    def validate(self) -> list[str]:  # type: ignore[override]
        """Strict validation for startup - fails fast with all errors at once.

        Returns:
            List of error messages (empty if validation passes)
        """
        errors = []

        if self.database_path is None:
            errors.append(
                "Chat log path is not configured\n"
                "  → Fix: chatanalyzer --database path/to/line.db"
            )
        elif not self.database_path.exists():
            errors.append(f"Chat log not found: {self.database_path}")
        elif not self.database_path.is_file():
            errors.append(f"Chat log path is not a file: {self.database_path}")

        if self.all_limit < self.recent_limit:
            errors.append(
                f"all_limit ({self.all_limit}) must not be smaller than "
                f"recent_limit ({self.recent_limit})"
            )

        return errors

    def print_config(self) -> None:
        """Print current configuration to stdout."""
        print("Chat AI Analyzer Configuration:")
        print(f"  Host: {self.host}")
        print(f"  Port: {self.port}")
        print(f"  Debug: {self.debug}")
        print(f"  Database: {self.database_path or '(not set)'}")
        print(f"  Gemini API Key: {'***' if self.gemini_api_key else '(not set)'}")
        print(f"  Gemini Model: {self.gemini_model}")
        print(f"  Generator Timeout: {self.generator_timeout}s")
        print(f"  Recent Limit: {self.recent_limit}")
        print(f"  All Limit: {self.all_limit}")
        print(f"  Date Range Days: {self.date_range_days}")
        print(f"  Keywords: {', '.join(self.keyword_vocabulary)}")
        print(f"  Top Keywords: {self.top_keywords_limit}")
        print(f"  Timezone: {self.timezone or 'local'}")
        print(f"  Log Level: {self.log_level}")
        print(f"  Log Format: {self.log_format}")
        print(f"  Log to File: {self.log_to_file}")
        if self.log_to_file:
            print(f"  Log File: {self.log_file_path}")
            print(f"  Log Max Size: {self.log_file_max_bytes / (1024 * 1024):.1f} MB")
            print(f"  Log Backup Count: {self.log_file_backup_count}")
        if self.log_module_levels:
            print(f"  Module Log Levels: {self.log_module_levels}")
        print(f"  CORS Origins: {', '.join(self.cors_origins)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded once and cached. To reload settings,
    call get_settings.cache_clear() first.

    Returns:
        Settings instance
    """
    return Settings()


def reset_settings() -> None:
    """Clear settings cache to force reload on next get_settings() call."""
    get_settings.cache_clear()
