"""Seed an intake queue with synthetic walk-ins and print a JSON snapshot.

The walk-ins are generated with Faker from a ``--seed`` flag so the output is
reproducible. This is the bundled example of an external caller: it only uses
the public intake, dispatch and statistics operations.
"""

from __future__ import annotations

import argparse
import json
import random
from datetime import date
from typing import Any, Dict, List, Optional

from faker import Faker

from .errors import CapacityExceededError
from .intake import admit_patient
from .observability import cli_operation_context, logger
from .patient_queue import PatientQueue

CHIEF_COMPLAINTS = (
    "chest pain",
    "shortness of breath",
    "persistent cough",
    "fever",
    "sprained ankle",
    "headache",
    "abdominal pain",
    "dizziness",
    "laceration",
    "rash",
)


def _calculate_age(dob: date, *, today: date | None = None) -> int:
    reference = today or date.today()
    years = reference.year - dob.year
    if (reference.month, reference.day) < (dob.month, dob.day):
        years -= 1
    return years


def populate_queue(
    queue: PatientQueue,
    count: int,
    *,
    seed: Optional[int] = None,
    emergency_rate: float = 0.15,
) -> Dict[str, int]:
    """Admit ``count`` synthetic walk-ins; report how many were turned away."""

    faker = Faker("en_US")
    if seed is not None:
        faker.seed_instance(seed)
    rng = random.Random(seed)

    admitted = 0
    turned_away = 0
    for _ in range(count):
        dob = faker.date_of_birth(minimum_age=0, maximum_age=99)
        try:
            admit_patient(
                queue,
                faker.name(),
                _calculate_age(dob),
                dob,
                rng.random() < emergency_rate,
                rng.choice(CHIEF_COMPLAINTS),
            )
        except CapacityExceededError as exc:
            turned_away += 1
            logger.info("walk_in_turned_away", **exc.to_dict())
        else:
            admitted += 1
    return {"admitted": admitted, "turned_away": turned_away}


def _patient_row(record: Any) -> Dict[str, Any]:
    return {
        "name": record.name,
        "age": record.age,
        "tier": record.tier.value,
        "latest_note": record.latest_note(),
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fill an intake queue with synthetic walk-ins and dispatch some of them.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for Faker and the RNG.")
    parser.add_argument("--patients", type=int, default=20, help="Walk-ins to generate.")
    parser.add_argument("--dispatch", type=int, default=3, help="Patients to call up afterwards.")
    parser.add_argument(
        "--emergency-rate",
        type=float,
        default=0.15,
        help="Probability that a walk-in is flagged as an emergency.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the intake queue demo CLI."""

    args = _build_parser().parse_args(argv)
    queue = PatientQueue()

    with cli_operation_context(operation="demo"):
        intake = populate_queue(
            queue, args.patients, seed=args.seed, emergency_rate=args.emergency_rate
        )
        dispatched = []
        for _ in range(args.dispatch):
            record = queue.dequeue()
            if record is None:
                break
            dispatched.append(_patient_row(record))

    statistics = queue.snapshot().model_dump(mode="json", exclude={"day"})
    payload = {
        "intake": intake,
        "dispatched": dispatched,
        "waiting": [_patient_row(record) for record in queue.records()],
        "statistics": statistics,
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
