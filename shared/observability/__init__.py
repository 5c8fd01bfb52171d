"""Observability utilities shared across intake services."""

from .logger import (
    configure_logging,
    generate_operation_id,
    get_logger,
    get_operation_id,
    operation_context,
)
from .audit import (
    AuditRepository,
    LoggingAuditRepository,
    MemoryAuditRepository,
    QueueAudit,
    get_audit_repository,
    record_queue_audit,
    set_audit_repository,
)

__all__ = [
    "AuditRepository",
    "LoggingAuditRepository",
    "MemoryAuditRepository",
    "QueueAudit",
    "configure_logging",
    "generate_operation_id",
    "get_audit_repository",
    "get_logger",
    "get_operation_id",
    "operation_context",
    "record_queue_audit",
    "set_audit_repository",
]
