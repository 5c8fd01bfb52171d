"""Observability helpers shared by the intake queue service."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

from shared.config.settings import get_settings as get_shared_settings
from shared.observability import configure_logging, get_logger, operation_context

from .constants import SERVICE_NAME

configure_logging(
    service_name=SERVICE_NAME, level=get_shared_settings().logging.level
)

logger = get_logger("services.intake_queue")

# Fields that identify or rank a patient without revealing who they are.
SAFE_PATIENT_KEYS = frozenset(
    {"id", "age", "tier", "arrived_at", "arrival_sequence"}
)


@contextmanager
def cli_operation_context(
    *, operation_id: str | None = None, **extra: Any
) -> Iterator[str]:
    """Bind an operation identifier for multi-step console workflows.

    A confirmation flow (preview, prompt, commit) spans several calls; binding
    one identifier lets the log lines of all steps be correlated.
    """

    cli_context = {"channel": "cli"}
    cli_context.update(extra)

    with operation_context(operation_id=operation_id, **cli_context) as bound_id:
        yield bound_id


def scrub_for_logging(
    payload: Any,
    *,
    allow_keys: Iterable[str] | None = None,
    max_depth: int = 4,
    max_items: int = 5,
) -> Any:
    """Return a representation of ``payload`` that is safe to log.

    Free-text values (names, notes) are replaced with ``"[redacted]"`` unless
    their key is listed in ``allow_keys``. Identifiers, numbers, enums and
    timestamps pass through. Pydantic models and dataclasses are traversed, and
    sequences are truncated to ``max_items`` entries.
    """

    allowed = set(SAFE_PATIENT_KEYS if allow_keys is None else allow_keys)

    def _scrub(value: Any, depth: int) -> Any:
        if depth <= 0:
            return "[scrubbed]"

        if hasattr(value, "model_dump"):
            return _scrub(value.model_dump(mode="python"), depth)

        if is_dataclass(value) and not isinstance(value, type):
            return _scrub(asdict(value), depth)

        if isinstance(value, Mapping):
            return {
                str(key): item if str(key) in allowed else _scrub(item, depth - 1)
                for key, item in value.items()
            }

        if isinstance(value, Enum):
            return value.value

        if isinstance(value, (UUID, datetime, date)):
            return str(value)

        if isinstance(value, str):
            return value if not value else "[redacted]"

        if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
            sample = [_scrub(item, depth - 1) for item in list(value)[:max_items]]
            return tuple(sample) if isinstance(value, tuple) else sample

        if isinstance(value, (int, float, bool)) or value is None:
            return value

        return str(value)

    return _scrub(payload, max_depth)


__all__ = [
    "SAFE_PATIENT_KEYS",
    "cli_operation_context",
    "logger",
    "scrub_for_logging",
]
