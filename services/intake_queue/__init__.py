"""Walk-in intake queue: tiered priority dispatch for waiting patients."""

from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env", override=False)

from .observability import cli_operation_context, logger, scrub_for_logging  # noqa: E402
from .admin import AdminOperations, PendingChange  # noqa: E402
from .errors import (  # noqa: E402
    CapacityExceededError,
    DuplicatePatientError,
    InvalidRangeError,
    PatientNotFoundError,
    QueueError,
    SeniorAgeRequirementError,
)
from .intake import admit_patient  # noqa: E402
from .models import NoteEntry, PatientRecord, QueueStatistics, Tier  # noqa: E402
from .patient_queue import PatientQueue, ReassignOutcome  # noqa: E402
from .policy import TierPolicy, TierProfile  # noqa: E402
from .stats import StatsCollector  # noqa: E402

__all__ = [
    "__version__",
    "AdminOperations",
    "CapacityExceededError",
    "DuplicatePatientError",
    "InvalidRangeError",
    "NoteEntry",
    "PatientNotFoundError",
    "PatientQueue",
    "PatientRecord",
    "PendingChange",
    "QueueError",
    "QueueStatistics",
    "ReassignOutcome",
    "SeniorAgeRequirementError",
    "StatsCollector",
    "Tier",
    "TierPolicy",
    "TierProfile",
    "admit_patient",
    "cli_operation_context",
    "logger",
    "scrub_for_logging",
]

__version__ = "0.1.0"
