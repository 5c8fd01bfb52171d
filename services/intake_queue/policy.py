"""Tier classification, ranking and capacity rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .config import IntakeQueueSettings
from .models import CapacityStatus, Tier

__all__ = ["DEFAULT_POLICY", "TierPolicy", "TierProfile"]


@dataclass(frozen=True, slots=True)
class TierProfile:
    """Static attributes of a single tier."""

    rank: int
    capacity: int
    label: str
    icon: str


_DEFAULT_PROFILES: Mapping[Tier, TierProfile] = {
    Tier.EMERGENCY: TierProfile(rank=1, capacity=10, label="Emergency Queue", icon="[EMERGENCY]"),
    Tier.SENIOR: TierProfile(rank=2, capacity=15, label="Senior Queue", icon="[SENIOR]"),
    Tier.REGULAR: TierProfile(rank=3, capacity=25, label="Regular Queue", icon="[REGULAR]"),
}


class TierPolicy:
    """Pure lookup table keyed by tier.

    Lower rank numbers are served first. ``total_capacity`` is enforced
    independently of the per-tier limits, so it can bind while a tier still
    has room.
    """

    def __init__(
        self,
        profiles: Mapping[Tier, TierProfile] | None = None,
        *,
        total_capacity: int = 50,
        senior_age_threshold: int = 75,
        warning_threshold: float = 0.8,
        critical_threshold: float = 0.95,
    ) -> None:
        resolved = dict(profiles or _DEFAULT_PROFILES)
        missing = set(Tier) - set(resolved)
        if missing:
            names = ", ".join(sorted(tier.value for tier in missing))
            raise ValueError(f"Tier profiles missing for: {names}")
        self._profiles = resolved
        self.total_capacity = total_capacity
        self.senior_age_threshold = senior_age_threshold
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold

    @classmethod
    def from_settings(cls, settings: IntakeQueueSettings) -> "TierPolicy":
        capacity = settings.capacity
        limits = {
            Tier.EMERGENCY: capacity.emergency,
            Tier.SENIOR: capacity.senior,
            Tier.REGULAR: capacity.regular,
        }
        profiles = {
            tier: TierProfile(
                rank=profile.rank,
                capacity=limits[tier],
                label=profile.label,
                icon=profile.icon,
            )
            for tier, profile in _DEFAULT_PROFILES.items()
        }
        return cls(
            profiles,
            total_capacity=capacity.total,
            senior_age_threshold=settings.senior_age_threshold,
            warning_threshold=capacity.warning_threshold,
            critical_threshold=capacity.critical_threshold,
        )

    def profile(self, tier: Tier) -> TierProfile:
        return self._profiles[Tier(tier)]

    def rank(self, tier: Tier) -> int:
        return self.profile(tier).rank

    def capacity(self, tier: Tier) -> int:
        return self.profile(tier).capacity

    def label(self, tier: Tier) -> str:
        return self.profile(tier).label

    def icon(self, tier: Tier) -> str:
        return self.profile(tier).icon

    def tiers_by_rank(self) -> list[Tier]:
        """Return every tier, highest priority first."""

        return sorted(self._profiles, key=self.rank)

    def classify(self, age: int, is_emergency: bool) -> Tier:
        """Return the tier a new walk-in is placed in.

        Emergency always wins; otherwise patients at or above the senior age
        threshold are seniors and everyone else is regular.
        """

        if is_emergency:
            return Tier.EMERGENCY
        if age >= self.senior_age_threshold:
            return Tier.SENIOR
        return Tier.REGULAR

    def qualifies_for_senior(self, age: int) -> bool:
        return age >= self.senior_age_threshold

    @staticmethod
    def is_at_capacity(current: int, limit: int) -> bool:
        return current >= limit

    def is_near_capacity(self, current: int, limit: int) -> bool:
        if limit <= 0:
            return True
        return current / limit >= self.warning_threshold

    def capacity_status(self, current: int, limit: int) -> CapacityStatus:
        """Classify occupancy against the warning and critical thresholds."""

        if limit <= 0:
            return CapacityStatus.CRITICAL
        ratio = current / limit
        if ratio >= self.critical_threshold:
            return CapacityStatus.CRITICAL
        if ratio >= self.warning_threshold:
            return CapacityStatus.WARNING
        return CapacityStatus.NORMAL


DEFAULT_POLICY = TierPolicy()
