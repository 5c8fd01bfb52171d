"""Audit helpers for recording administrative queue events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from .logger import get_logger, get_operation_id

__all__ = [
    "AuditRepository",
    "LoggingAuditRepository",
    "MemoryAuditRepository",
    "QueueAudit",
    "get_audit_repository",
    "record_queue_audit",
    "set_audit_repository",
]


@dataclass(slots=True)
class QueueAudit:
    """Structured payload describing an auditable queue mutation."""

    event: str
    subject: str | None = None
    operation_id: str | None = None
    service: str | None = None
    success: bool | None = None
    affected: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the audit entry."""

        return {
            "event": self.event,
            "subject": self.subject,
            "operationId": self.operation_id,
            "service": self.service,
            "success": self.success,
            "affectedCount": len(self.affected),
            "metadata": dict(self.metadata),
            "createdAt": self.created_at.isoformat(),
        }


class AuditRepository(Protocol):
    """Contract for persisting queue audit events."""

    def persist(self, audit: QueueAudit) -> None:  # pragma: no cover - interface definition
        """Persist ``audit`` to the underlying storage backend."""


class LoggingAuditRepository:
    """Persist audit entries to the configured logger."""

    def __init__(self) -> None:
        self._logger = get_logger("audit")

    def persist(self, audit: QueueAudit) -> None:
        payload = audit.to_dict()
        # ``event`` is the positional log message argument.
        self._logger.info("queue_audit", audit_event=payload.pop("event"), **payload)


class MemoryAuditRepository:
    """Keep audit entries in process memory, newest last."""

    def __init__(self) -> None:
        self.entries: list[QueueAudit] = []

    def persist(self, audit: QueueAudit) -> None:
        self.entries.append(audit)

    def events(self) -> list[str]:
        return [entry.event for entry in self.entries]


_DEFAULT_REPOSITORY: AuditRepository | None = None


def get_audit_repository() -> AuditRepository:
    """Return the globally configured audit repository."""

    global _DEFAULT_REPOSITORY
    if _DEFAULT_REPOSITORY is None:
        _DEFAULT_REPOSITORY = LoggingAuditRepository()
    return _DEFAULT_REPOSITORY


def set_audit_repository(repository: AuditRepository | None) -> None:
    """Replace the global repository; ``None`` restores the logging default."""

    global _DEFAULT_REPOSITORY
    _DEFAULT_REPOSITORY = repository


def record_queue_audit(
    event: str,
    *,
    subject: str | None = None,
    success: bool | None = None,
    affected: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    repository: AuditRepository | None = None,
    operation_id: str | None = None,
    service: str | None = None,
) -> QueueAudit:
    """Capture an audit event and persist it using the configured repository."""

    repo = repository or get_audit_repository()
    context = structlog.contextvars.get_contextvars()

    audit_entry = QueueAudit(
        event=event,
        subject=subject,
        operation_id=operation_id or get_operation_id(),
        service=service or context.get("service"),
        success=success,
        affected=list(affected or []),
        metadata=dict(metadata or {}),
    )

    repo.persist(audit_entry)
    return audit_entry
