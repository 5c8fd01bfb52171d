"""Logging helpers integrating structlog and loguru with operation context."""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from types import FrameType
from typing import Any, Iterator, Mapping

import structlog
from loguru import logger as loguru_logger

__all__ = [
    "configure_logging",
    "generate_operation_id",
    "get_logger",
    "get_operation_id",
    "operation_context",
]

_OPERATION_ID: ContextVar[str | None] = ContextVar("operation_id", default=None)
_CONFIGURED: bool = False
_SERVICE_NAME: str | None = None


def _format_record(record: Mapping[str, Any]) -> str:
    """Return the loguru format string for a single console line."""

    timestamp = record["time"].isoformat()
    level = record["level"].name
    extra = record.get("extra") or {}
    service = extra.get("service", "-")
    operation_id = extra.get("operation_id") or "-"
    message = record.get("message", "")
    if not isinstance(message, str):
        message = str(message)
    # The return value is treated as a ``str.format`` template by loguru and
    # structlog emits JSON, so braces must be escaped.
    message = message.replace("{", "{{").replace("}", "}}")
    return f"{timestamp} | {level:<8} | {service} | {operation_id} | {message}\n"


def _coerce_level(level: str | int) -> tuple[int, str]:
    """Normalize ``level`` to logging and loguru compatible representations."""

    if isinstance(level, int):
        numeric = level
    else:
        normalized = logging.getLevelName(level.upper())
        if not isinstance(normalized, int):
            raise ValueError(f"Unknown log level: {level}")
        numeric = normalized
    name = logging.getLevelName(numeric)
    if not isinstance(name, str):  # pragma: no cover - custom numeric levels
        name = "INFO"
    return numeric, name


def get_operation_id() -> str | None:
    """Return the operation identifier bound to the current context, if any."""

    return _OPERATION_ID.get()


def generate_operation_id() -> str:
    return uuid.uuid4().hex


class LoguruInterceptHandler(logging.Handler):
    """Route standard logging records (structlog's sink) through loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - thin wrapper
        level: str | int
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        bound = loguru_logger.bind(logger=record.name)
        operation_id = get_operation_id()
        if operation_id:
            bound = bound.bind(operation_id=operation_id)

        bound.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(
    *, service_name: str | None = None, level: str | int = "INFO"
) -> None:
    """Configure loguru/structlog integration for the current process.

    Safe to call more than once: sinks are installed on the first call only,
    later calls just rebind ``service_name``.
    """

    global _CONFIGURED, _SERVICE_NAME

    numeric_level, level_name = _coerce_level(level)

    if not _CONFIGURED:
        loguru_logger.remove()
        loguru_logger.add(
            sys.stderr,
            level=level_name,
            backtrace=False,
            diagnose=False,
            format=_format_record,
        )

        logging.basicConfig(
            handlers=[LoguruInterceptHandler()],
            level=numeric_level,
            force=True,
        )
        logging.captureWarnings(True)

        _configure_structlog()
        _CONFIGURED = True

    if service_name:
        _SERVICE_NAME = service_name
        loguru_logger.configure(extra={"service": service_name})
        structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog bound logger with the given ``name``."""

    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


@contextmanager
def operation_context(
    operation_id: str | None = None, **extra: Any
) -> Iterator[str]:
    """Bind ``operation_id`` and extra fields for the lifetime of the block.

    Values that were bound before entering the block are restored on exit so
    nested contexts do not clobber the outer one.
    """

    extra.pop("operation_id", None)

    oid = operation_id or generate_operation_id()
    token = _OPERATION_ID.set(oid)
    context_values = dict(extra)
    if _SERVICE_NAME and "service" not in context_values:
        context_values["service"] = _SERVICE_NAME

    context_api = structlog.contextvars
    previous_context = context_api.get_contextvars()
    context_api.bind_contextvars(operation_id=oid, **context_values)
    bound_keys = list(dict.fromkeys(["operation_id", *context_values.keys()]))

    with loguru_logger.contextualize(operation_id=oid, **extra):
        try:
            yield oid
        finally:
            context_api.unbind_contextvars(*bound_keys)
            restore = {
                key: previous_context[key]
                for key in bound_keys
                if key in previous_context
            }
            if restore:
                context_api.bind_contextvars(**restore)
            _OPERATION_ID.reset(token)
