"""Centralized logging configuration for study-tracker."""

import os
import re
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler


def setup_logging(
    name: str = "study_tracker",
    level: str = None,
    log_dir: str | Path | None = None,
) -> logging.Logger:
    """
    Set up logging with console and file handlers.

    Args:
        name: Logger name (the package logger by default)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO.
        log_dir: Directory for log files. Defaults to the configured log dir.

    Returns:
        Configured logger
    """
    # Get log level from environment or default
    level = level or os.getenv("LOG_LEVEL", "INFO")
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    detailed_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    simple_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    redactor = SensitiveDataFilter()

    # Console goes to stderr so stdout stays clean for the MCP stdio transport
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(simple_formatter)
    console_handler.addFilter(redactor)
    logger.addHandler(console_handler)

    if log_dir is None:
        from .config import get_config
        log_dir = get_config().log_dir

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_path / f"{name}.log",
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
    )
    file_handler.setLevel(logging.DEBUG)  # File gets all logs
    file_handler.setFormatter(detailed_formatter)
    file_handler.addFilter(redactor)
    logger.addHandler(file_handler)

    return logger


class SensitiveDataFilter(logging.Filter):
    """Filter to redact API keys from log messages."""

    SENSITIVE_PATTERNS = [
        (re.compile(r"([?&]key=)[^&\s]+"), r"\1[REDACTED_API_KEY]"),
        (re.compile(r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)[^\s\"',]+", re.IGNORECASE), r"\1[REDACTED_API_KEY]"),
        (re.compile(r"AIza[0-9A-Za-z_\-]{20,}"), "[REDACTED_API_KEY]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            redacted = pattern.sub(replacement, redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True
