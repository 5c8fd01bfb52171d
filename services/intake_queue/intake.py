"""Intake boundary: turn validated walk-in details into a queued patient."""

from __future__ import annotations

from datetime import date

from .models import PatientRecord
from .observability import logger
from .patient_queue import PatientQueue

__all__ = ["admit_patient"]


def admit_patient(
    queue: PatientQueue,
    name: str,
    age: int,
    birthdate: date,
    is_emergency: bool,
    note: str = "",
) -> PatientRecord:
    """Classify, build and enqueue a walk-in patient.

    ``pydantic.ValidationError`` is raised for an invalid name, age or
    birthdate and :class:`~services.intake_queue.errors.CapacityExceededError`
    when the patient's tier or the waiting room is full. Neither leaves the
    queue modified.
    """

    tier = queue.policy.classify(age, is_emergency)
    record = PatientRecord.create(name, age, birthdate, tier, note, clock=queue.clock)
    logger.debug("patient_classified", tier=tier.value, age=age, is_emergency=is_emergency)
    return queue.enqueue(record)
