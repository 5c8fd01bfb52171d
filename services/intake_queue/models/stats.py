"""Read-only statistics payloads returned to display callers."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from .patient import Tier


class CapacityStatus(str, Enum):
    """How close a queue is to its configured limit."""

    NORMAL = "NORMAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class TierBreakdown(BaseModel):
    """Current occupancy of a single tier."""

    model_config = ConfigDict(frozen=True)

    tier: Tier
    label: str
    count: int = Field(ge=0)
    capacity: int = Field(ge=0)
    status: CapacityStatus
    percentage: float = Field(ge=0.0, le=100.0)


class QueueStatistics(BaseModel):
    """Snapshot of the queue used for statistics reports."""

    model_config = ConfigDict(frozen=True)

    day: date
    total_waiting: int = Field(ge=0)
    total_capacity: int = Field(ge=0)
    total_status: CapacityStatus
    seen_today: int = Field(ge=0)
    emergencies_today: int = Field(ge=0)
    served_today: int = Field(ge=0)
    average_age: float | None = Field(
        default=None, description="Mean age of waiting patients, None when empty"
    )
    tiers: Dict[Tier, TierBreakdown] = Field(default_factory=dict)


__all__ = [
    "CapacityStatus",
    "QueueStatistics",
    "TierBreakdown",
]
