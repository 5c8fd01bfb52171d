"""Data models used by the intake queue service."""

from .patient import Clock, NoteEntry, PatientRecord, Tier
from .stats import CapacityStatus, QueueStatistics, TierBreakdown

__all__ = [
    "CapacityStatus",
    "Clock",
    "NoteEntry",
    "PatientRecord",
    "QueueStatistics",
    "Tier",
    "TierBreakdown",
]
