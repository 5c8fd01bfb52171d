"""Tests for the shared observability logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path
import sys

import pytest
import structlog

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from shared.observability import logger as logger_module
from shared.observability.logger import (
    generate_operation_id,
    get_logger,
    get_operation_id,
    operation_context,
)


def test_operation_context_binds_and_unbinds() -> None:
    with operation_context(operation="clear_tier") as operation_id:
        context = structlog.contextvars.get_contextvars()
        assert get_operation_id() == operation_id
        assert context["operation_id"] == operation_id
        assert context["operation"] == "clear_tier"

    remaining = structlog.contextvars.get_contextvars()
    assert get_operation_id() is None
    assert "operation_id" not in remaining
    assert "operation" not in remaining


def test_operation_context_uses_supplied_identifier() -> None:
    with operation_context(operation_id="op-123") as operation_id:
        assert operation_id == "op-123"
        assert get_operation_id() == "op-123"


def test_nested_contexts_restore_outer_values() -> None:
    with operation_context(operation="outer") as outer_id:
        with operation_context(operation="inner") as inner_id:
            assert inner_id != outer_id
            assert get_operation_id() == inner_id
            assert structlog.contextvars.get_contextvars()["operation"] == "inner"

        context = structlog.contextvars.get_contextvars()
        assert get_operation_id() == outer_id
        assert context["operation_id"] == outer_id
        assert context["operation"] == "outer"

    assert "operation" not in structlog.contextvars.get_contextvars()


def test_operation_context_restores_after_error() -> None:
    with pytest.raises(RuntimeError):
        with operation_context(operation="failing"):
            raise RuntimeError("boom")

    assert get_operation_id() is None
    assert "operation" not in structlog.contextvars.get_contextvars()


def test_generate_operation_id_is_unique_hex() -> None:
    first = generate_operation_id()
    second = generate_operation_id()

    assert first != second
    assert len(first) == 32
    int(first, 16)


@pytest.mark.parametrize(
    "level, expected",
    [
        ("info", (logging.INFO, "INFO")),
        ("DEBUG", (logging.DEBUG, "DEBUG")),
        (logging.WARNING, (logging.WARNING, "WARNING")),
    ],
)
def test_coerce_level(level, expected) -> None:
    assert logger_module._coerce_level(level) == expected


def test_coerce_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        logger_module._coerce_level("chatty")


def test_format_record_escapes_braces() -> None:
    class _Level:
        name = "INFO"

    class _Time:
        @staticmethod
        def isoformat() -> str:
            return "2026-01-05T09:00:00"

    line = logger_module._format_record(
        {
            "time": _Time(),
            "level": _Level(),
            "extra": {"service": "intake-queue", "operation_id": "op-1"},
            "message": '{"event": "patient_enqueued"}',
        }
    )

    assert line == (
        '2026-01-05T09:00:00 | INFO     | intake-queue | op-1 | '
        '{{"event": "patient_enqueued"}}\n'
    )


def test_get_logger_returns_bindable_logger() -> None:
    bound = get_logger("tests.logger").bind(component="queue")

    assert hasattr(bound, "info")
