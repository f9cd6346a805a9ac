"""Rotating plain-text and JSONL logs shared by the API server and the CLI."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any, Optional

from flask import g, has_request_context, request

_REQUEST_LOGGER_NAME = "recall.api"
_DEFAULT_LOG_DIR = Path(__file__).resolve().parents[2] / "logs"
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_MESSAGE_CHARS = 2000
_MAX_STACK_CHARS = 8000
_BACKUP_DAYS = 14

_installed_handlers: list[logging.Handler] = []


def log_dir() -> Path:
    path = Path(os.getenv("LOG_DIR") or _DEFAULT_LOG_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_level() -> int:
    """``LOG_LEVEL`` wins; otherwise DEBUG under ``RECALL_ENV=dev`` and INFO elsewhere."""

    name = os.getenv("LOG_LEVEL")
    if not name:
        env = (os.getenv("RECALL_ENV") or os.getenv("FLASK_ENV") or "").strip().lower()
        name = "DEBUG" if env in {"dev", "development", "local"} else "INFO"
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...[{len(text) - limit} more chars]"


def _meta(record: logging.LogRecord) -> dict[str, Any]:
    meta = getattr(record, "meta", None)
    if meta is None:
        return {}
    if not isinstance(meta, dict):
        return {"value": repr(meta)}
    try:
        json.dumps(meta)
    except (TypeError, ValueError):
        return {"repr": repr(meta)}
    return meta


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the id of the HTTP request being served, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            correlation_id: Optional[str] = None
            if has_request_context():
                correlation_id = getattr(g, "correlation_id", None) or request.headers.get(
                    "X-Correlation-Id"
                )
            record.correlation_id = correlation_id
        return True


class JsonlFormatter(logging.Formatter):
    """One JSON object per line.

    Span events from :mod:`observability` carry ``event`` and ``meta``; the
    page URL and duration are lifted to the top level so ingest runs can be
    filtered without parsing ``meta``.
    """

    def format(self, record: logging.LogRecord) -> str:
        meta = _meta(record)
        attributes = meta.get("attributes") if isinstance(meta.get("attributes"), dict) else {}
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt=_TIME_FORMAT),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": getattr(record, "event", None) or "log",
            "correlation_id": getattr(record, "correlation_id", None),
            "message": _clip(record.getMessage(), _MAX_MESSAGE_CHARS),
        }
        if "page.url" in attributes:
            payload["page_url"] = attributes["page.url"]
        if "duration_ms" in meta:
            payload["duration_ms"] = meta["duration_ms"]
        if record.exc_info:
            payload["stack"] = _clip(self.formatException(record.exc_info), _MAX_STACK_CHARS)
        if meta:
            payload["meta"] = meta
        return json.dumps(payload, ensure_ascii=False)


class PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        head = f"{self.formatTime(record, datefmt=_TIME_FORMAT)} [{record.levelname}] {record.name}"
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            head += f" cid={correlation_id}"
        line = f"{head} {_clip(record.getMessage(), _MAX_MESSAGE_CHARS)}"
        event = getattr(record, "event", None)
        if event:
            line += f" event={event}"
        if record.exc_info:
            line += "\n" + _clip(self.formatException(record.exc_info), _MAX_STACK_CHARS)
        return line


def _rotating_handler(filename: str, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=log_dir() / filename,
        when="midnight",
        backupCount=_BACKUP_DAYS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    return handler


class ConsoleHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when the record is emitted."""

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stderr
        super().emit(record)


def setup_logging(*, console_level: int | None = None) -> None:
    """Attach ``recall.log`` and ``recall.jsonl`` to the root logger once.

    ``console_level`` adds (or re-levels) a stderr handler; the CLI uses it.
    Repeated calls never duplicate handlers.
    """

    file_level = resolve_level()
    root = logging.getLogger()
    if not _installed_handlers:
        for handler in (
            _rotating_handler("recall.log", PlainFormatter(), file_level),
            _rotating_handler("recall.jsonl", JsonlFormatter(), file_level),
        ):
            _installed_handlers.append(handler)
            root.addHandler(handler)
        logging.captureWarnings(True)
    levels = [file_level]
    if console_level is not None:
        console = next((h for h in _installed_handlers if isinstance(h, ConsoleHandler)), None)
        if console is None:
            console = ConsoleHandler()
            console.setFormatter(PlainFormatter())
            _installed_handlers.append(console)
            root.addHandler(console)
        console.setLevel(console_level)
        levels.append(console_level)
    root.setLevel(min(levels))
    logging.getLogger(_REQUEST_LOGGER_NAME).setLevel(file_level)


def get_request_logger() -> logging.Logger:
    return logging.getLogger(_REQUEST_LOGGER_NAME)


__all__ = [
    "ConsoleHandler",
    "CorrelationIdFilter",
    "JsonlFormatter",
    "PlainFormatter",
    "get_request_logger",
    "log_dir",
    "resolve_level",
    "setup_logging",
]
