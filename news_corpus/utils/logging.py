"""
Structured logging for crawl runs.

Every pipeline message carries an ``event`` name (``crawl_start``,
``source_failed``, ``article_saved`` ...) plus free-form fields. The console
shows the message with a few of those fields inline; the log file gets one
JSON object per line so runs can be grepped by event.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from ..config import LoggingConfig


LOGGER_NAME = "news_corpus"

# Fields echoed on the console after the message, in this order
CONSOLE_FIELDS = ("reason", "url", "article_file", "path", "error")

# Attributes every LogRecord has; anything else was passed through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the ``news_corpus`` logger from scratch.

    Existing handlers are closed first, so repeated CLI invocations in one
    process (tests) do not stack handlers or leak file descriptors.
    """
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console_handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
        console_handler.setLevel(level)
        console_handler.setFormatter(EventConsoleFormatter())
        logger.addHandler(console_handler)

    if cfg.file:
        target_dir = log_dir if log_dir is not None else Path(cfg.directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target_dir / cfg.filename, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(_build_file_formatter(cfg.format))
        logger.addHandler(file_handler)

    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def log_event(
    logger: logging.Logger | None,
    message: str,
    event: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log ``message`` tagged with ``event`` and structured ``fields``.

    Field names must not collide with LogRecord attributes (use
    ``article_file``, not ``filename``).
    """
    if logger is None:
        return
    logger.log(level, message, extra={"event": event, **fields})


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the structured fields attached to a record by ``log_event``."""
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class EventConsoleFormatter(logging.Formatter):
    """``message [event] key=value ...`` for the few fields worth reading live."""

    def format(self, record: logging.LogRecord) -> str:
        fields = event_fields(record)
        text = record.getMessage()
        event = fields.get("event")
        if event:
            text = f"{text} [{event}]"
        shown = [f"{key}={fields[key]}" for key in CONSOLE_FIELDS if fields.get(key) is not None]
        if shown:
            text = f"{text} {' '.join(shown)}"
        return text


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = event_fields(record)
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "event": fields.pop("event", None),
            "message": record.getMessage(),
        }
        payload.update(fields)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s [%(event)s] %(message)s", defaults={"event": "-"})


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
