"""Administrative bulk operations and patient edits.

Destructive actions follow a two-step protocol: a ``propose_*`` call returns a
:class:`PendingChange` that lists who would be affected, and nothing happens
until :meth:`PendingChange.commit` receives an explicit confirmation.
Non-destructive actions (adding a note, the emergency override admission)
apply immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, FrozenSet

from shared.observability import (
    AuditRepository,
    generate_operation_id,
    operation_context,
    record_queue_audit,
)

from .constants import CONFIRMATION_WORD
from .errors import (
    DuplicatePatientError,
    InvalidRangeError,
    PatientNotFoundError,
    SeniorAgeRequirementError,
)
from .models import NoteEntry, PatientRecord, Tier
from .observability import logger
from .patient_queue import PatientQueue, ReassignOutcome

__all__ = ["AdminOperations", "PendingChange"]

BULK_CONFIRMATIONS: FrozenSet[str] = frozenset({CONFIRMATION_WORD.casefold()})
EDIT_CONFIRMATIONS: FrozenSet[str] = BULK_CONFIRMATIONS | {"y", "yes"}


@dataclass
class PendingChange:
    """A proposed mutation waiting for the operator's confirmation."""

    action: str
    summary: str
    affected: list[str]
    apply: Callable[[], Any] = field(repr=False)
    accepted: FrozenSet[str] = field(default=BULK_CONFIRMATIONS, repr=False)
    operation_id: str = field(default_factory=generate_operation_id)
    status: str = "pending"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def is_confirmation(self, confirmation: str | bool) -> bool:
        if isinstance(confirmation, bool):
            return confirmation
        return confirmation.strip().casefold() in self.accepted

    def commit(self, confirmation: str | bool) -> Any | None:
        """Apply the change if ``confirmation`` accepts it.

        Returns the result of the underlying operation, or ``None`` when the
        confirmation is anything else, in which case the change is cancelled.
        A change can only be resolved once.
        """

        if not self.is_pending:
            raise RuntimeError(f"Change '{self.action}' is already {self.status}")

        with operation_context(operation_id=self.operation_id, action=self.action):
            if not self.is_confirmation(confirmation):
                self.status = "cancelled"
                logger.info("admin_change_cancelled", affected=len(self.affected))
                return None
            try:
                result = self.apply()
            except Exception as exc:
                self.status = "failed"
                logger.warning(
                    "admin_change_failed",
                    affected=len(self.affected),
                    error=type(exc).__name__,
                )
                raise
            self.status = "committed"
            logger.info("admin_change_committed", affected=len(self.affected))
            return result


class AdminOperations:
    """Bulk clears, tier reassignment and field edits atop a queue."""

    def __init__(
        self, queue: PatientQueue, *, audit: AuditRepository | None = None
    ) -> None:
        self.queue = queue
        self._audit = audit

    def _require(self, name: str) -> PatientRecord:
        record = self.queue.find_by_exact_name(name)
        if record is None:
            raise PatientNotFoundError(name)
        return record

    def _audit_event(self, event: str, **kwargs: Any) -> None:
        record_queue_audit(event, repository=self._audit, **kwargs)

    # ------------------------------------------------------------------
    # Bulk clears
    # ------------------------------------------------------------------
    def propose_clear_tier(self, tier: Tier) -> PendingChange:
        tier = Tier(tier)
        previewed = self.queue.list_tier(tier)
        affected = [record.name for record in previewed]
        patient_ids = frozenset(record.id for record in previewed)

        def _apply() -> list[str]:
            removed = self.queue.clear_tier(tier, patient_ids=patient_ids)
            self._audit_event(
                "tier_cleared",
                subject=tier.value,
                success=True,
                affected=removed,
            )
            return removed

        return PendingChange(
            action="clear_tier",
            summary=f"Remove {len(affected)} {tier.value.lower()} patient(s).",
            affected=affected,
            apply=_apply,
        )

    def propose_clear_all(self) -> PendingChange:
        previewed = self.queue.records()
        affected = [record.name for record in previewed]
        patient_ids = frozenset(record.id for record in previewed)

        def _apply() -> list[str]:
            removed = self.queue.clear_all(patient_ids=patient_ids)
            self._audit_event("queue_cleared", success=True, affected=removed)
            return removed

        return PendingChange(
            action="clear_all",
            summary=f"Remove {len(affected)} patient(s) from all queues.",
            affected=affected,
            apply=_apply,
        )

    def propose_clear_by_age_range(self, min_age: int, max_age: int) -> PendingChange:
        if min_age > max_age:
            raise InvalidRangeError(min_age, max_age)
        previewed = self.queue.patients_in_age_range(min_age, max_age)
        affected = [record.name for record in previewed]
        patient_ids = frozenset(record.id for record in previewed)

        def _apply() -> list[str]:
            removed = self.queue.clear_by_age_range(
                min_age, max_age, patient_ids=patient_ids
            )
            self._audit_event(
                "age_range_cleared",
                subject=f"{min_age}-{max_age}",
                success=True,
                affected=removed,
                metadata={"minAge": min_age, "maxAge": max_age},
            )
            return removed

        return PendingChange(
            action="clear_by_age_range",
            summary=f"Remove {len(affected)} patient(s) aged {min_age}-{max_age}.",
            affected=affected,
            apply=_apply,
        )

    # ------------------------------------------------------------------
    # Tier reassignment and field edits
    # ------------------------------------------------------------------
    def propose_reassign_tier(self, name: str, new_tier: Tier) -> PendingChange:
        new_tier = Tier(new_tier)
        record = self._require(name)
        policy = self.queue.policy
        if new_tier is Tier.SENIOR and not policy.qualifies_for_senior(record.age):
            raise SeniorAgeRequirementError(
                record.name, age=record.age, threshold=policy.senior_age_threshold
            )
        previous = record.tier

        def _apply() -> ReassignOutcome:
            outcome = self.queue.reassign_tier_by_id(record.id, new_tier)
            self._audit_event(
                "tier_reassigned",
                subject=str(record.id),
                success=outcome is not ReassignOutcome.NOT_FOUND,
                metadata={
                    "from": previous.value,
                    "to": new_tier.value,
                    "outcome": outcome.value,
                },
            )
            return outcome

        return PendingChange(
            action="reassign_tier",
            summary=f"Change patient type from {previous.value} to {new_tier.value}.",
            affected=[record.name],
            apply=_apply,
            accepted=EDIT_CONFIRMATIONS,
        )

    def _propose_edit(
        self,
        name: str,
        field_name: str,
        value: Any,
        *,
        describe: Callable[[Any], str] = str,
        after: Callable[[PatientRecord], None] | None = None,
    ) -> PendingChange:
        record = self._require(name)
        probe = record.model_copy()
        setattr(probe, field_name, value)
        new_value = getattr(probe, field_name)
        old_value = getattr(record, field_name)
        label = field_name.capitalize()

        def _apply() -> PatientRecord:
            updated = self.queue.update_fields(record.id, {field_name: new_value})
            if updated is None:
                raise PatientNotFoundError(record.name)
            updated.add_note(
                f"{label} changed from {describe(old_value)} to {describe(new_value)}",
                at=self.queue.clock(),
            )
            if after is not None:
                after(updated)
            self._audit_event(
                "patient_edited",
                subject=str(updated.id),
                success=True,
                metadata={"field": field_name},
            )
            return updated

        return PendingChange(
            action=f"edit_{field_name}",
            summary=f"Change {field_name} from {describe(old_value)} to {describe(new_value)}.",
            affected=[record.name],
            apply=_apply,
            accepted=EDIT_CONFIRMATIONS,
        )

    def propose_rename(self, name: str, new_name: str) -> PendingChange:
        record = self._require(name)
        clash = self.queue.find_by_exact_name(new_name)
        if clash is not None and clash.id != record.id:
            raise DuplicatePatientError(new_name.strip())
        return self._propose_edit(
            name, "name", new_name, describe=lambda value: f"'{value}'"
        )

    def propose_age_change(self, name: str, new_age: int) -> PendingChange:
        policy = self.queue.policy

        def _flag_tier_review(record: PatientRecord) -> None:
            expected = policy.classify(record.age, record.tier is Tier.EMERGENCY)
            if expected is not record.tier:
                record.add_note(
                    f"Age {record.age} suggests {expected.value} tier; "
                    f"currently {record.tier.value}. Review patient type.",
                    at=self.queue.clock(),
                )

        return self._propose_edit(name, "age", new_age, after=_flag_tier_review)

    def propose_birthdate_change(self, name: str, new_birthdate: date) -> PendingChange:
        return self._propose_edit(
            name,
            "birthdate",
            new_birthdate,
            describe=lambda value: value.isoformat(),
        )

    # ------------------------------------------------------------------
    # Immediate actions
    # ------------------------------------------------------------------
    def add_note(self, name: str, text: str) -> NoteEntry:
        record = self._require(name)
        return record.add_note(text, at=self.queue.clock())

    def admit_emergency_override(
        self,
        name: str,
        age: int,
        birthdate: date,
        note: str = "",
    ) -> PatientRecord:
        """Admit an emergency patient even when capacity limits are reached."""

        record = PatientRecord.create(
            name, age, birthdate, Tier.EMERGENCY, note, clock=self.queue.clock
        )
        self.queue.enqueue(record, bypass_capacity=True)
        self._audit_event(
            "emergency_override_admitted",
            subject=str(record.id),
            success=True,
            metadata={"waiting": self.queue.total_count()},
        )
        return record
