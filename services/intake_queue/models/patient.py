"""Patient models for the intake queue service."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Callable, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import MAX_AGE_YEARS, NO_NOTES_MESSAGE, NOTE_TIMESTAMP_FORMAT

Clock = Callable[[], datetime]


def _now() -> datetime:
    """Return a naive local timestamp, the resolution notes are displayed in."""

    return datetime.now()


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February on a non-leap target year
        return day.replace(year=day.year - years, day=28)


class Tier(str, Enum):
    """Priority tiers a waiting patient can be placed in."""

    EMERGENCY = "Emergency"
    SENIOR = "Senior"
    REGULAR = "Regular"


class NoteEntry(BaseModel):
    """A single timestamped entry of a patient's note log."""

    model_config = ConfigDict(frozen=True)

    recorded_at: datetime = Field(description="Capture time of the note")
    text: str = Field(min_length=1, description="Trimmed note text")

    def format(self) -> str:
        return f"[{self.recorded_at.strftime(NOTE_TIMESTAMP_FORMAT)}] {self.text}"


class PatientRecord(BaseModel):
    """A walk-in patient waiting in the intake queue.

    ``tier`` is mutable so a patient can be reassigned without replacing the
    record. ``arrived_at`` and ``arrival_sequence`` are stamped by the queue at
    enqueue time and are never touched by reassignment, which keeps the
    patient's seniority within its new tier.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(description="Patient display name, used for lookups")
    age: int = Field(ge=0, le=MAX_AGE_YEARS, description="Age in whole years")
    birthdate: date = Field(description="Date of birth")
    tier: Tier = Field(description="Current priority tier")
    arrived_at: datetime | None = Field(default=None)
    arrival_sequence: int | None = Field(default=None, ge=0)
    notes: Tuple[NoteEntry, ...] = Field(default=())

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be empty")
        return stripped

    @field_validator("birthdate")
    @classmethod
    def _validate_birthdate(cls, value: date) -> date:
        today = date.today()
        if value > today:
            raise ValueError("birthdate must not be in the future")
        if value < _years_before(today, MAX_AGE_YEARS):
            raise ValueError(
                f"birthdate must not be more than {MAX_AGE_YEARS} years in the past"
            )
        return value

    @classmethod
    def create(
        cls,
        name: str,
        age: int,
        birthdate: date,
        tier: Tier,
        initial_note: str | None = None,
        *,
        clock: Clock | None = None,
    ) -> "PatientRecord":
        """Build a validated record, seeding the note log with ``initial_note``."""

        record = cls(name=name, age=age, birthdate=birthdate, tier=tier)
        if initial_note and initial_note.strip():
            record.add_note(initial_note, at=(clock or _now)())
        return record

    def add_note(self, text: str, *, at: datetime | None = None) -> NoteEntry:
        """Append ``text`` to the note log and return the new entry.

        Entry timestamps never go backwards: an ``at`` earlier than the last
        entry is raised to that entry's time.
        """

        stripped = text.strip()
        if not stripped:
            raise ValueError("note text must not be empty")
        recorded_at = at or _now()
        if self.notes and recorded_at < self.notes[-1].recorded_at:
            recorded_at = self.notes[-1].recorded_at
        entry = NoteEntry(recorded_at=recorded_at, text=stripped)
        self.notes = (*self.notes, entry)
        return entry

    def has_notes(self) -> bool:
        return bool(self.notes)

    def latest_note(self) -> str:
        if not self.notes:
            return ""
        return self.notes[-1].text

    def formatted_history(self) -> str:
        """Return every note, oldest first, one timestamped entry per line."""

        if not self.notes:
            return NO_NOTES_MESSAGE
        return "\n".join(entry.format() for entry in self.notes)

    def reassign_tier(self, new_tier: Tier) -> Tier:
        """Overwrite the tier and return the previous one.

        No business rules are applied here; the queue enforces age and
        capacity checks before calling this.
        """

        previous = self.tier
        self.tier = new_tier
        return previous

    def matches_name(self, name: str) -> bool:
        return self.name.casefold() == name.strip().casefold()


__all__ = [
    "Clock",
    "NoteEntry",
    "PatientRecord",
    "Tier",
]
