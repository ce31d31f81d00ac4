"""
Logging setup for hutwatch.

The orchestrator tags its records through ``extra=`` with the target being
scraped (``target_id``, ``provider_type``, ``attempt``, ``backoff_ms`` ...).
Both formatters surface those tags: the JSON formatter as top-level keys,
the console formatter as a ``[key=value ...]`` suffix limited to
``CONTEXT_FIELDS``.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable

# Attribute names of a bare LogRecord; everything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

CONTEXT_FIELDS = ("target_id", "provider_type", "attempt", "backoff_ms", "current_batch")

QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached to ``record`` through ``extra``."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: timestamp, level, logger, message, module, function, line,
    exception (when present), followed by every ``extra`` field.
    Values that are not JSON types are rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        payload.update(record_extras(record))
        return json.dumps(payload, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter: colored level names plus the scrape context suffix."""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy; other handlers format the same record
        colored = logging.makeLogRecord(vars(record))
        color = self.LEVEL_COLORS.get(record.levelname)
        if color:
            colored.levelname = f"{color}{record.levelname}{self.RESET}"

        text = super().format(colored)

        extras = record_extras(record)
        context = " ".join(f"{key}={extras[key]}" for key in CONTEXT_FIELDS if key in extras)
        return f"{text} [{context}]" if context else text


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
    console_output: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL; anything else means INFO
        json_format: JSON instead of colored text on the console
        log_file: Rotating log file, always written as JSON
        console_output: Log to stderr
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept
        quiet_loggers: Libraries whose per-request INFO lines are raised to WARNING

    Examples:
        >>> setup_logging(level="DEBUG")
        >>> setup_logging(json_format=True, log_file="logs/hutwatch.log")
    """
    level_no = logging.getLevelName(level.upper()) if isinstance(level, str) else None
    if not isinstance(level_no, int):
        level_no = logging.INFO

    root = logging.getLogger()
    root.setLevel(level_no)
    root.handlers.clear()

    handlers = []
    if console_output:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(
            JSONFormatter()
            if json_format
            else ColoredFormatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handlers.append(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(JSONFormatter())
        handlers.append(rotating)

    for handler in handlers:
        handler.setLevel(level_no)
        root.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={logging.getLevelName(level_no)}, json={json_format}, file={log_file}"
    )


def get_logger(name: str, extra_fields: Dict[str, Any] | None = None) -> logging.LoggerAdapter:
    """
    Logger adapter that adds ``extra_fields`` to every record.

    Examples:
        >>> logger = get_logger(__name__, {"provider_type": "montblanc"})
        >>> logger.info("Fetching planning")
    """
    return logging.LoggerAdapter(logging.getLogger(name), extra_fields or {})
