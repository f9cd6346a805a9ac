"""Unit tests for the observability helpers."""

from __future__ import annotations

import logging

import pytest

import observability


def test_start_span_emits_start_and_end_events(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="observability")

    with observability.start_span(
        "unit.test",
        attributes={"foo": "bar"},
        inputs={"text": "x" * 1000},
    ) as span:
        span.set_attribute("extra", "value")

    records = [record for record in caplog.records if record.name == "observability"]
    assert [record.event for record in records] == ["unit.test.start", "unit.test.end"]
    assert records[0].levelno == logging.DEBUG
    assert records[1].levelno == logging.INFO
    meta = records[1].meta
    assert meta["attributes"] == {"foo": "bar", "extra": "value"}
    assert meta["inputs"] == {"text": "<1000 chars>"}


def test_start_span_records_errors(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="observability")

    with pytest.raises(RuntimeError):
        with observability.start_span("unit.fail"):
            raise RuntimeError("boom")

    error = [record for record in caplog.records if getattr(record, "event", "") == "unit.fail.error"]
    assert len(error) == 1
    assert error[0].levelno == logging.ERROR
    assert error[0].meta["error"] == {"type": "RuntimeError", "message": "boom"}


def test_redact_truncates_long_strings() -> None:
    redacted = observability.redact({"title": "t" * 300, "items": ("a", 1)})

    assert redacted["title"].endswith("...[truncated]")
    assert len(redacted["title"]) == 256 + len("...[truncated]")
    assert redacted["items"] == ["a", 1]
