"""Running counters and derived statistics for the intake queue."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Dict

from .models import Clock, PatientRecord, QueueStatistics, Tier, TierBreakdown
from .observability import logger
from .policy import DEFAULT_POLICY, TierPolicy

if TYPE_CHECKING:  # pragma: no cover - import cycle only needed for typing
    from .patient_queue import PatientQueue

__all__ = ["StatsCollector"]


class StatsCollector:
    """Observe queue events and derive statistics from the live queue.

    ``seen_today``, ``emergencies_today`` and ``served_today`` only ever grow
    during a day; they reset when the clock crosses into a new calendar date.
    Everything else is computed from the queue's current contents on demand so
    it can never drift from the structure.
    """

    def __init__(
        self, policy: TierPolicy | None = None, *, clock: Clock | None = None
    ) -> None:
        self._policy = policy or DEFAULT_POLICY
        self._clock = clock or datetime.now
        self._queue: PatientQueue | None = None
        self._day: date = self._clock().date()
        self._seen = 0
        self._emergencies = 0
        self._served = 0

    def attach(self, queue: "PatientQueue") -> None:
        """Subscribe to ``queue`` and use it as the source of live records."""

        queue.subscribe(self)
        self._queue = queue

    def _roll_over(self) -> None:
        today = self._clock().date()
        if today != self._day:
            logger.info(
                "daily_counters_reset",
                previous_day=self._day.isoformat(),
                seen=self._seen,
                emergencies=self._emergencies,
                served=self._served,
            )
            self._day = today
            self._seen = 0
            self._emergencies = 0
            self._served = 0

    def on_enqueue(self, record: PatientRecord) -> None:
        self._roll_over()
        self._seen += 1
        if record.tier is Tier.EMERGENCY:
            self._emergencies += 1

    def on_dequeue(self, record: PatientRecord) -> None:
        self._roll_over()
        self._served += 1

    @property
    def seen_today(self) -> int:
        self._roll_over()
        return self._seen

    @property
    def emergencies_today(self) -> int:
        self._roll_over()
        return self._emergencies

    @property
    def served_today(self) -> int:
        self._roll_over()
        return self._served

    def _records(self) -> list[PatientRecord]:
        if self._queue is None:
            return []
        return self._queue.records()

    def average_age(self) -> float | None:
        """Return the mean age of waiting patients, or ``None`` when empty."""

        records = self._records()
        if not records:
            return None
        return sum(record.age for record in records) / len(records)

    def composition_percentages(self) -> Dict[Tier, float]:
        """Return each tier's share of the waiting patients, in percent.

        Shares are rounded to one decimal. The last non-empty tier in rank
        order receives the remainder so the shares add up to exactly 100.
        """

        tiers = self._policy.tiers_by_rank()
        counts = {tier: 0 for tier in tiers}
        for record in self._records():
            counts[record.tier] += 1

        total = sum(counts.values())
        shares = {tier: 0.0 for tier in tiers}
        if total == 0:
            return shares

        populated = [tier for tier in tiers if counts[tier]]
        allocated = 0.0
        for tier in populated[:-1]:
            shares[tier] = round(counts[tier] * 100.0 / total, 1)
            allocated += shares[tier]
        shares[populated[-1]] = round(100.0 - allocated, 1)
        return shares

    def snapshot(self) -> QueueStatistics:
        """Return the full statistics report for display."""

        self._roll_over()
        records = self._records()
        percentages = self.composition_percentages()
        breakdown: Dict[Tier, TierBreakdown] = {}
        for tier in self._policy.tiers_by_rank():
            count = sum(1 for record in records if record.tier is tier)
            limit = self._policy.capacity(tier)
            breakdown[tier] = TierBreakdown(
                tier=tier,
                label=self._policy.label(tier),
                count=count,
                capacity=limit,
                status=self._policy.capacity_status(count, limit),
                percentage=percentages[tier],
            )

        total_capacity = self._policy.total_capacity
        return QueueStatistics(
            day=self._day,
            total_waiting=len(records),
            total_capacity=total_capacity,
            total_status=self._policy.capacity_status(len(records), total_capacity),
            seen_today=self.seen_today,
            emergencies_today=self.emergencies_today,
            served_today=self.served_today,
            average_age=self.average_age(),
            tiers=breakdown,
        )
