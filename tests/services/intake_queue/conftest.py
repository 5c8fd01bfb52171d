from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[3]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.intake_queue import PatientQueue, PatientRecord, Tier
from services.intake_queue.config import CapacitySettings, IntakeQueueSettings


class SteppingClock:
    """Deterministic clock advancing by ``step`` on every call."""

    def __init__(
        self,
        start: datetime = datetime(2026, 1, 5, 9, 0, 0),
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


def birthdate_for(age: int) -> date:
    return date(date.today().year - age, 1, 1)


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def settings() -> IntakeQueueSettings:
    return IntakeQueueSettings()


@pytest.fixture
def roomy_settings() -> IntakeQueueSettings:
    return IntakeQueueSettings(
        capacity=CapacitySettings(emergency=100, senior=100, regular=100, total=300)
    )


@pytest.fixture
def queue(settings: IntakeQueueSettings, clock: SteppingClock) -> PatientQueue:
    return PatientQueue(settings=settings, clock=clock)


@pytest.fixture
def make_patient() -> Callable[..., PatientRecord]:
    def _make(
        name: str,
        age: int,
        tier: Tier | None = None,
        *,
        note: str | None = None,
    ) -> PatientRecord:
        resolved = tier
        if resolved is None:
            resolved = Tier.SENIOR if age >= 75 else Tier.REGULAR
        return PatientRecord.create(name, age, birthdate_for(age), resolved, note)

    return _make
