"""Main entry point for Chat AI Analyzer."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(
    level: str = "INFO",
    debug: bool = False,
    log_format: str = "text",
    log_to_file: bool = False,
    log_file_path: Path | None = None,
    log_file_max_bytes: int = 10 * 1024 * 1024,
    log_file_backup_count: int = 5,
    module_levels: dict[str, str] | None = None,
) -> None:
    """Configure logging for the application with console and optional file output.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR)
        debug: If True, overrides level to DEBUG
        log_format: "text" for human-readable lines, "json" for structured output
        log_to_file: Enable file logging in addition to console
        log_file_path: Path to log file (required when log_to_file=True)
        log_file_max_bytes: Maximum size per log file before rotation
        log_file_backup_count: Number of rotated backup files to keep
        module_levels: Per-module log level overrides
    """
    from chatanalyzer.utils.logging import (
        CorrelationIDFilter,
        JSONFormatter,
        LogSanitizer,
        SanitizingFormatter,
        configure_module_levels,
    )

    effective_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)
    root_logger.handlers.clear()

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = SanitizingFormatter(
            "%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    file_error: OSError | None = None
    if log_to_file and log_file_path:
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    log_file_path,
                    maxBytes=log_file_max_bytes,
                    backupCount=log_file_backup_count,
                    encoding="utf-8",
                )
            )
        except OSError as e:
            file_error = e

    for handler in handlers:
        handler.setLevel(effective_level)
        handler.setFormatter(formatter)
        # Filters are not inherited by child loggers, so they go on the handlers
        handler.addFilter(LogSanitizer())
        handler.addFilter(CorrelationIDFilter())
        root_logger.addHandler(handler)

    if module_levels:
        configure_module_levels(module_levels)

    if file_error is not None:
        logging.warning(f"Failed to initialize file logging: {file_error}. Using console-only logging.")
    elif len(handlers) > 1:
        logging.info(f"File logging enabled: {log_file_path}")


def main() -> None:
    """Run the Chat AI Analyzer web API."""
    import argparse

    import uvicorn

    from chatanalyzer import __version__
    from chatanalyzer.config import Settings, get_settings, reset_settings

    env_settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Chat AI Analyzer - question answering over LINE chat logs"
    )
    parser.add_argument(
        "--host",
        default=env_settings.host,
        help=f"Host to bind to (default: {env_settings.host}, env: CHATANALYZER_HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=env_settings.port,
        help=f"Port to bind to (default: {env_settings.port}, env: CHATANALYZER_PORT)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=env_settings.debug,
        help="Enable debug mode (env: CHATANALYZER_DEBUG)",
    )
    parser.add_argument(
        "--database",
        type=str,
        default=None,
        help=f"SQLite chat log (default: {env_settings.database_path}, env: LINE_DATABASE_PATH)",
    )
    parser.add_argument(
        "--log-level",
        default=env_settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {env_settings.log_level}, env: CHATANALYZER_LOG_LEVEL)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and exit without starting server",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Chat AI Analyzer {__version__}",
    )

    args = parser.parse_args()

    reset_settings()

    cli_overrides: dict[str, object] = {
        "host": args.host,
        "port": args.port,
        "debug": args.debug,
        "log_level": args.log_level,
    }
    if args.database:
        cli_overrides["database_path"] = Path(args.database)

    settings = Settings(**cli_overrides)

    errors = settings.validate()
    warnings = settings.check()

    if args.validate:
        settings.print_config()
        print()

        if errors:
            print("Configuration validation failed:")
            for error in errors:
                print(f"\n{error}")
            sys.exit(1)

        if warnings:
            print("Configuration warnings:")
            for warning in warnings:
                print(f"  • {warning}")
            print()

        print("Configuration is valid")
        sys.exit(0)

    setup_logging(
        level=settings.log_level,
        debug=settings.debug,
        log_format=settings.log_format,
        log_to_file=settings.log_to_file,
        log_file_path=settings.log_file_path if settings.log_to_file else None,
        log_file_max_bytes=settings.log_file_max_bytes,
        log_file_backup_count=settings.log_file_backup_count,
        module_levels=settings.log_module_levels,
    )

    # The server still starts: the chat log can be fixed and reloaded at runtime
    for problem in [*errors, *warnings]:
        logging.warning(problem)

    print("=" * 60)
    print(f"Chat AI Analyzer v{__version__}")
    print("=" * 60)
    print(f"Server:        http://{settings.host}:{settings.port}")
    print(f"Chat log:      {settings.database_path or '(not set)'}")
    print(f"Generator:     {settings.gemini_model if settings.generator_enabled else 'disabled'}")
    print(f"Log level:     {settings.log_level}")
    if settings.log_to_file:
        print(f"Log file:      {settings.log_file_path}")
    print("=" * 60)

    from chatanalyzer.web.app import create_app

    try:
        uvicorn.run(
            create_app(settings=settings),
            host=settings.host,
            port=settings.port,
            log_level="debug" if settings.debug else "info",
        )
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
