"""Priority dispatch queue for walk-in patients."""

from __future__ import annotations

import itertools
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Collection, Iterator, Mapping, Protocol
from uuid import UUID

from .config import IntakeQueueSettings, get_settings
from .errors import (
    CapacityExceededError,
    DuplicatePatientError,
    InvalidRangeError,
    SeniorAgeRequirementError,
)
from .models import Clock, PatientRecord, QueueStatistics, Tier
from .observability import logger, scrub_for_logging
from .policy import TierPolicy
from .stats import StatsCollector

__all__ = ["EDITABLE_FIELDS", "PatientQueue", "QueueObserver", "ReassignOutcome"]

DispatchKey = tuple[int, datetime, int]

# Fields that never take part in the dispatch key.
EDITABLE_FIELDS = frozenset({"name", "age", "birthdate"})


def _selected(record: PatientRecord, patient_ids: Collection[UUID] | None) -> bool:
    return patient_ids is None or record.id in patient_ids


class QueueObserver(Protocol):
    """Receives notifications for every admitted and dispatched patient."""

    def on_enqueue(self, record: PatientRecord) -> None:  # pragma: no cover - interface
        ...

    def on_dequeue(self, record: PatientRecord) -> None:  # pragma: no cover - interface
        ...


class ReassignOutcome(str, Enum):
    """Result of a tier reassignment request."""

    NOT_FOUND = "not_found"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


class PatientQueue:
    """Bounded priority queue ordered by ``(tier rank, arrival)``.

    Records are kept in a single list sorted by dispatch key, so dequeue,
    listing and name lookups all see patients in the order they will be
    served. Every public operation runs under one re-entrant lock.

    Lookups by name are case-insensitive and return the first match in
    dispatch order; names are not required to be unique unless
    ``reject_duplicate_names`` is configured.
    """

    def __init__(
        self,
        policy: TierPolicy | None = None,
        *,
        settings: IntakeQueueSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        resolved_settings = settings or get_settings()
        self.policy = policy or TierPolicy.from_settings(resolved_settings)
        self.reject_duplicate_names = resolved_settings.reject_duplicate_names
        self._clock = clock or datetime.now
        self._records: list[PatientRecord] = []
        self._sequence = itertools.count()
        self._lock = threading.RLock()
        self._observers: list[QueueObserver] = []
        self.stats = StatsCollector(self.policy, clock=self._clock)
        self.stats.attach(self)

    @property
    def clock(self) -> Clock:
        return self._clock

    def subscribe(self, observer: QueueObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    # ------------------------------------------------------------------
    # Internal helpers; callers must hold the lock
    # ------------------------------------------------------------------
    def _key(self, record: PatientRecord) -> DispatchKey:
        if record.arrived_at is None or record.arrival_sequence is None:
            raise RuntimeError(f"Patient {record.id} has no recorded arrival")
        return (
            self.policy.rank(record.tier),
            record.arrived_at,
            record.arrival_sequence,
        )

    def _ordered(self) -> list[PatientRecord]:
        # Records are live objects whose tier can change outside the queue,
        # so order is re-derived from them on every access.
        self._records.sort(key=self._key)
        return self._records

    def _pop(self, index: int) -> PatientRecord:
        return self._ordered().pop(index)

    def _index_of_name(self, name: str) -> int | None:
        for index, record in enumerate(self._ordered()):
            if record.matches_name(name):
                return index
        return None

    def _index_of_id(self, patient_id: UUID) -> int | None:
        for index, record in enumerate(self._ordered()):
            if record.id == patient_id:
                return index
        return None

    def _remove_where(
        self, predicate: Callable[[PatientRecord], bool]
    ) -> list[PatientRecord]:
        removed: list[PatientRecord] = []
        kept: list[PatientRecord] = []
        for record in self._ordered():
            (removed if predicate(record) else kept).append(record)
        self._records = kept
        return removed

    def _ensure_room(self, tier: Tier, *, include_total: bool = True) -> None:
        current = sum(1 for record in self._records if record.tier is tier)
        limit = self.policy.capacity(tier)
        if self.policy.is_at_capacity(current, limit):
            logger.warning(
                "capacity_exceeded",
                tier=tier.value,
                scope="tier",
                current=current,
                limit=limit,
            )
            raise CapacityExceededError(tier, current=current, limit=limit)

        if include_total:
            total = len(self._records)
            total_limit = self.policy.total_capacity
            if self.policy.is_at_capacity(total, total_limit):
                logger.warning(
                    "capacity_exceeded",
                    tier=tier.value,
                    scope="total",
                    current=total,
                    limit=total_limit,
                )
                raise CapacityExceededError(
                    tier, current=total, limit=total_limit, scope="total"
                )

    def _reassign_at(self, index: int, new_tier: Tier) -> ReassignOutcome:
        record = self._records[index]
        if record.tier is new_tier:
            return ReassignOutcome.UNCHANGED

        if new_tier is Tier.SENIOR and not self.policy.qualifies_for_senior(record.age):
            raise SeniorAgeRequirementError(
                record.name,
                age=record.age,
                threshold=self.policy.senior_age_threshold,
            )

        # Moving between tiers never changes the total.
        self._ensure_room(new_tier, include_total=False)

        previous = record.reassign_tier(new_tier)
        record.add_note(
            f"Type changed from {previous.value} to {new_tier.value}",
            at=self._clock(),
        )
        logger.info(
            "patient_reassigned",
            patient_id=str(record.id),
            previous_tier=previous.value,
            tier=new_tier.value,
        )
        return ReassignOutcome.CHANGED

    # ------------------------------------------------------------------
    # Admission and dispatch
    # ------------------------------------------------------------------
    def enqueue(
        self, record: PatientRecord, *, bypass_capacity: bool = False
    ) -> PatientRecord:
        """Admit ``record`` and stamp its arrival.

        Raises :class:`CapacityExceededError` when either the record's tier or
        the waiting room as a whole is full; the queue is left untouched.
        ``bypass_capacity`` is the administrative emergency-add path and is
        only accepted for emergency patients.
        """

        with self._lock:
            if bypass_capacity and record.tier is not Tier.EMERGENCY:
                raise ValueError("Only emergency patients may bypass capacity limits")
            if self._index_of_id(record.id) is not None:
                raise ValueError(f"Patient {record.id} is already queued")
            if self.reject_duplicate_names and self._index_of_name(record.name) is not None:
                raise DuplicatePatientError(record.name)
            if not bypass_capacity:
                self._ensure_room(record.tier)

            record.arrived_at = self._clock()
            record.arrival_sequence = next(self._sequence)
            self._records.append(record)

            for observer in self._observers:
                observer.on_enqueue(record)

            logger.info(
                "patient_enqueued",
                patient=scrub_for_logging(record, max_depth=1),
                bypass_capacity=bypass_capacity,
                waiting=len(self._records),
            )
            return record

    def dequeue(self) -> PatientRecord | None:
        """Remove and return the next patient, or ``None`` when nobody waits."""

        with self._lock:
            if not self._records:
                return None
            record = self._pop(0)
            for observer in self._observers:
                observer.on_dequeue(record)
            logger.info(
                "patient_dequeued",
                patient=scrub_for_logging(record, max_depth=1),
                waiting=len(self._records),
            )
            return record

    def peek_next(self) -> PatientRecord | None:
        with self._lock:
            return self._ordered()[0] if self._records else None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def find_by_exact_name(self, name: str) -> PatientRecord | None:
        with self._lock:
            index = self._index_of_name(name)
            return None if index is None else self._records[index]

    def find_by_id(self, patient_id: UUID) -> PatientRecord | None:
        with self._lock:
            index = self._index_of_id(patient_id)
            return None if index is None else self._records[index]

    def search(self, query: str) -> list[PatientRecord]:
        """Return patients whose name contains ``query``, in dispatch order."""

        needle = query.strip().casefold()
        with self._lock:
            return [
                record for record in self._ordered() if needle in record.name.casefold()
            ]

    def patients_in_age_range(self, min_age: int, max_age: int) -> list[PatientRecord]:
        if min_age > max_age:
            raise InvalidRangeError(min_age, max_age)
        with self._lock:
            return [
                record
                for record in self._ordered()
                if min_age <= record.age <= max_age
            ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def remove(self, name: str) -> bool:
        """Remove the first patient named ``name``; ``False`` if none waits."""

        with self._lock:
            index = self._index_of_name(name)
            if index is None:
                return False
            record = self._pop(index)
            logger.info("patient_removed", patient_id=str(record.id), tier=record.tier.value)
            return True

    def remove_by_id(self, patient_id: UUID) -> bool:
        with self._lock:
            index = self._index_of_id(patient_id)
            if index is None:
                return False
            record = self._pop(index)
            logger.info("patient_removed", patient_id=str(record.id), tier=record.tier.value)
            return True

    def reassign_tier(self, name: str, new_tier: Tier) -> ReassignOutcome:
        """Move the first patient named ``name`` to ``new_tier``.

        The patient keeps its original arrival, so it is ordered among the
        new tier by when it first came in. Raises
        :class:`SeniorAgeRequirementError` for under-age senior moves and
        :class:`CapacityExceededError` when the target tier is full.
        """

        with self._lock:
            index = self._index_of_name(name)
            if index is None:
                return ReassignOutcome.NOT_FOUND
            return self._reassign_at(index, Tier(new_tier))

    def reassign_tier_by_id(self, patient_id: UUID, new_tier: Tier) -> ReassignOutcome:
        with self._lock:
            index = self._index_of_id(patient_id)
            if index is None:
                return ReassignOutcome.NOT_FOUND
            return self._reassign_at(index, Tier(new_tier))

    def update_fields(
        self, patient_id: UUID, changes: Mapping[str, Any]
    ) -> PatientRecord | None:
        """Apply validated edits to name, age or birthdate of a waiting patient.

        All changes are validated on a copy first, so an invalid value leaves
        the record untouched. Returns ``None`` when the patient is not waiting.
        """

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        with self._lock:
            index = self._index_of_id(patient_id)
            if index is None:
                return None
            record = self._records[index]
            probe = record.model_copy()
            for field_name, value in changes.items():
                setattr(probe, field_name, value)
            for field_name in changes:
                setattr(record, field_name, getattr(probe, field_name))
            logger.info(
                "patient_updated",
                patient_id=str(record.id),
                fields=sorted(changes),
            )
            return record

    def clear_tier(
        self, tier: Tier, *, patient_ids: Collection[UUID] | None = None
    ) -> list[str]:
        """Remove every patient in ``tier``; return their names in arrival order.

        ``patient_ids`` restricts the clear to those patients, e.g. the ones an
        operator was shown before confirming.
        """

        tier = Tier(tier)
        with self._lock:
            removed = self._remove_where(
                lambda record: record.tier is tier
                and _selected(record, patient_ids)
            )
            logger.info("tier_cleared", tier=tier.value, removed=len(removed))
            return [record.name for record in removed]

    def clear_all(
        self, *, patient_ids: Collection[UUID] | None = None
    ) -> list[str]:
        with self._lock:
            removed = self._remove_where(
                lambda record: _selected(record, patient_ids)
            )
            logger.info("queue_cleared", removed=len(removed))
            return [record.name for record in removed]

    def clear_by_age_range(
        self,
        min_age: int,
        max_age: int,
        *,
        patient_ids: Collection[UUID] | None = None,
    ) -> list[str]:
        """Remove every patient aged ``min_age`` to ``max_age`` inclusive."""

        if min_age > max_age:
            raise InvalidRangeError(min_age, max_age)
        with self._lock:
            removed = self._remove_where(
                lambda record: min_age <= record.age <= max_age
                and _selected(record, patient_ids)
            )
            logger.info(
                "age_range_cleared",
                min_age=min_age,
                max_age=max_age,
                removed=len(removed),
            )
            return [record.name for record in removed]

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    def count_by_tier(self, tier: Tier) -> int:
        tier = Tier(tier)
        with self._lock:
            return sum(1 for record in self._records if record.tier is tier)

    def total_count(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> list[PatientRecord]:
        """Return every waiting patient in dispatch order."""

        with self._lock:
            return list(self._ordered())

    def list_tier(self, tier: Tier) -> list[PatientRecord]:
        tier = Tier(tier)
        with self._lock:
            return [record for record in self._ordered() if record.tier is tier]

    def snapshot(self) -> QueueStatistics:
        return self.stats.snapshot()

    @property
    def seen_today(self) -> int:
        return self.stats.seen_today

    @property
    def emergencies_today(self) -> int:
        return self.stats.emergencies_today

    def __len__(self) -> int:
        return self.total_count()

    def __iter__(self) -> Iterator[PatientRecord]:
        return iter(self.records())
