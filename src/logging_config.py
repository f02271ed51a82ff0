"""
Structured logging configuration for LinkPulse.

Every record goes to stdout, and to <log_dir>/linkpulse.log when a log
directory is configured. Context passed through `extra` (URLs, dates,
statuses) is appended to text lines and merged into JSON objects.
Configure via environment variables:
- LOG_FORMAT: 'json' or 'text' (default: 'text')
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: 'INFO')
"""

import json
import logging
import os
import sys
from datetime import UTC, date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

# Third-party loggers held at WARNING even with --verbose
QUIET_LOGGERS = ("urllib3",)

# Attributes every LogRecord carries; anything else came in through `extra`
STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in STANDARD_ATTRS and not key.startswith("_")
    }


def _plain(value: Any) -> Any:
    """Dates as ISO strings, enums as their value; link records carry both."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    return value


def _json_default(value: Any) -> Any:
    plain = _plain(value)
    return str(plain) if plain is value else plain


def _record_time(record: logging.LogRecord) -> str:
    # Activity dates are all UTC, so log timestamps are too
    return datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for CI logs and the linkpulse.log file."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": _record_time(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(_extra_fields(record))
        return json.dumps(log_data, ensure_ascii=False, default=_json_default)


class TextFormatter(logging.Formatter):
    """
    Terminal formatter.

    Format: timestamp - logger - level - message [url=..., source=...]
    """

    def format(self, record: logging.LogRecord) -> str:
        base_msg = f"{_record_time(record)} - {record.name} - {record.levelname} - {record.getMessage()}"

        extra_parts = [f"{key}={_plain(value)}" for key, value in _extra_fields(record).items()]
        if extra_parts:
            base_msg += f" [{', '.join(extra_parts)}]"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


def get_log_level() -> int:
    """Get log level from environment variable."""
    level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str, logging.INFO)


def get_log_format() -> str:
    """Get log format from environment variable."""
    return os.environ.get("LOG_FORMAT", "text").lower()


def setup_logging(
    log_dir: str | None = None,
    verbose: bool = False,
    log_format: str | None = None,
    log_level: int | None = None,
) -> None:
    """
    Configure the root logger for a LinkPulse run.

    Args:
        log_dir: Directory for linkpulse.log (created if missing); None logs to stdout only
        verbose: If True, sets level to DEBUG (overrides LOG_LEVEL env var)
        log_format: 'json' or 'text' (overrides LOG_FORMAT env var)
        log_level: Logging level (overrides LOG_LEVEL env var and verbose flag)
    """
    if log_level is not None:
        level = log_level
    elif verbose:
        level = logging.DEBUG
    else:
        level = get_log_level()

    fmt = log_format if log_format is not None else get_log_format()
    formatter = JSONFormatter() if fmt == "json" else TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(log_dir) / "linkpulse.log", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Use extra={'key': 'value'} when logging to add context fields.

    Example:
        logger = get_logger(__name__)
        logger.info("Feed date found", extra={'url': url, 'feed_path': '/atom.xml'})
    """
    return logging.getLogger(name)
