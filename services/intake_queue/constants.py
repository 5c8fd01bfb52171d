"""Constants shared across the intake queue service."""

SERVICE_NAME = "intake-queue"

CONFIRMATION_WORD = "CONFIRM"

NO_NOTES_MESSAGE = "No notes recorded."

NOTE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_AGE_YEARS = 150

__all__ = [
    "CONFIRMATION_WORD",
    "MAX_AGE_YEARS",
    "NOTE_TIMESTAMP_FORMAT",
    "NO_NOTES_MESSAGE",
    "SERVICE_NAME",
]
