"""Span helpers that log start/end/error events around enrichment and storage work.

Events go through the standard ``logging`` module with ``event`` and ``meta``
extras, which the JSONL formatter in ``backend.app.logging_setup`` writes out
as structured fields.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from flask import g, has_request_context

LOGGER = logging.getLogger(__name__)

_PREVIEW_CHARS = 256
_BULKY_KEYS = frozenset({"text", "full_text", "fullText", "prompt", "content"})


class Span:
    """Mutable bag of attributes collected while a span is open."""

    __slots__ = ("name", "attributes", "error", "_started")

    def __init__(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self.attributes: dict[str, Any] = dict(attributes or {})
        self.error: dict[str, str] | None = None
        self._started = time.perf_counter()

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[str(key)] = value

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._started) * 1000)


def redact(value: Any) -> Any:
    """Clip long strings and replace page bodies with their length."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= _PREVIEW_CHARS else value[:_PREVIEW_CHARS] + "...[truncated]"
    if isinstance(value, Mapping):
        cleaned: dict[Any, Any] = {}
        for key, item in value.items():
            if key in _BULKY_KEYS and isinstance(item, str):
                cleaned[key] = f"<{len(item)} chars>"
            else:
                cleaned[key] = redact(item)
        return cleaned
    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact(item) for item in value]
    return redact(repr(value))


def _log(span: Span, phase: str, level: int, inputs: Any, *, timed: bool) -> None:
    meta: dict[str, Any] = {}
    if span.attributes:
        meta["attributes"] = redact(span.attributes)
    if inputs is not None:
        meta["inputs"] = redact(inputs)
    if span.error:
        meta["error"] = span.error
    if timed:
        meta["duration_ms"] = span.elapsed_ms()
    extra: dict[str, Any] = {"event": f"{span.name}.{phase}", "meta": meta}
    if has_request_context() and getattr(g, "correlation_id", None):
        extra["correlation_id"] = g.correlation_id
    LOGGER.log(level, "%s %s", span.name, phase, extra=extra)


@contextmanager
def start_span(
    name: str,
    *,
    attributes: Mapping[str, Any] | None = None,
    inputs: Any | None = None,
) -> Iterator[Span]:
    """Log ``<name>.start`` now and ``<name>.end`` or ``<name>.error`` on exit."""

    span = Span(name, attributes)
    _log(span, "start", logging.DEBUG, inputs, timed=False)
    try:
        yield span
    except Exception as exc:
        span.error = {"type": type(exc).__name__, "message": str(exc)}
        _log(span, "error", logging.ERROR, inputs, timed=True)
        raise
    _log(span, "end", logging.INFO, inputs, timed=True)


__all__ = ["Span", "redact", "start_span"]
