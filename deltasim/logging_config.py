"""Logging configuration helpers for deltasim.

The library is silent by default (a NullHandler sits on the ``deltasim``
logger). Call one of the helpers below to see scheduler activity:

    import deltasim

    deltasim.enable_console_logging(level="DEBUG")
    deltasim.enable_file_logging("logs/sim.log", max_bytes=5_000_000)
    deltasim.enable_json_logging()
    deltasim.configure_from_env()

Environment variables read by configure_from_env():
    DS_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DS_LOG_FILE: Path to a rotating log file
    DS_LOG_JSON: Set to "1" for JSON lines instead of plain text
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "JsonFormatter",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "deltasim"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Record attributes the scheduler attaches via ``extra=``, and their JSON keys.
_SIM_FIELDS = {"sim_tick": "tick", "sim_process": "process", "sim_signal": "signal"}


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Scheduler records carry the logical clock and process name, which are
    emitted as top-level ``tick`` / ``process`` keys when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr, key in _SIM_FIELDS.items():
            if hasattr(record, attr):
                log_data[key] = getattr(record, attr)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def _get_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close every handler on the deltasim logger except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _install(handler: logging.Handler, level: LogLevel | int, formatter: logging.Formatter) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _rotating_handler(path: str | Path, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Log to stderr.

    Args:
        level: Log level name or int.
        format: Log message format string.
        date_format: Date format for %(asctime)s.

    Returns:
        The created StreamHandler.
    """
    handler = logging.StreamHandler()
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> RotatingFileHandler:
    """Log to a size-rotated file. Parent directories are created.

    Long runs at DEBUG level produce one line per process resumption, so
    rotation keeps the total size bounded by ``max_bytes * (backup_count + 1)``.
    """
    handler = _rotating_handler(path, max_bytes, backup_count)
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_json_logging(
    level: LogLevel | int = "INFO",
    path: str | Path | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Handler:
    """Log JSON lines to stderr, or to a rotating file when ``path`` is given."""
    if path is None:
        handler: logging.Handler = logging.StreamHandler()
    else:
        handler = _rotating_handler(path, max_bytes, backup_count)
    _install(handler, level, JsonFormatter())
    return handler


def configure_from_env() -> None:
    """Configure logging from DS_LOGGING, DS_LOG_FILE and DS_LOG_JSON.

    Does nothing when neither DS_LOGGING nor DS_LOG_FILE is set.
    """
    level = os.environ.get("DS_LOGGING", "").upper()
    log_file = os.environ.get("DS_LOG_FILE", "")
    use_json = os.environ.get("DS_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"

    if use_json:
        enable_json_logging(level=level, path=log_file or None)
    elif log_file:
        enable_file_logging(log_file, level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Set the level of the deltasim logger."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the level for one submodule, e.g. ``set_module_level("core.simulator", "DEBUG")``."""
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove all handlers and silence the deltasim logger."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
