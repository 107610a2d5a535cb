"""
Centralized logging configuration for the tender pipeline.

setup_logging() is called once at application startup (the API lifespan does
this); modules only ever call logging.getLogger(__name__).
"""
import logging
import sys
from pathlib import Path
from typing import Optional


_logging_configured = False

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> None:
    """
    Configure the root logger.

    Subsequent calls are no-ops until reset_logging() is called.

    Args:
        level: Logging level, numeric or name ("DEBUG", "INFO", ...)
        log_file: Optional file path to also write logs to
        format_string: Custom format string
    """
    global _logging_configured

    if _logging_configured:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    # The Anthropic client logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _logging_configured = True
    logging.getLogger(__name__).info("Logging configured at level %s", logging.getLevelName(level))


def reset_logging() -> None:
    """Reset logging configuration. Used by tests."""
    global _logging_configured
    _logging_configured = False

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
