from __future__ import annotations

import random
from pathlib import Path
import sys

import pytest
from pydantic import ValidationError

PROJECT_ROOT = Path(__file__).resolve().parents[3]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.intake_queue import (
    CapacityExceededError,
    DuplicatePatientError,
    InvalidRangeError,
    PatientQueue,
    ReassignOutcome,
    SeniorAgeRequirementError,
    Tier,
)
from services.intake_queue.config import CapacitySettings, IntakeQueueSettings


def _drain(queue: PatientQueue) -> list[str]:
    names = []
    while (record := queue.dequeue()) is not None:
        names.append(record.name)
    return names


def test_dispatch_serves_tiers_in_priority_order(queue, make_patient) -> None:
    queue.enqueue(make_patient("Amy", 40, Tier.EMERGENCY))
    queue.enqueue(make_patient("Bob", 80, Tier.SENIOR))
    queue.enqueue(make_patient("Cara", 30, Tier.REGULAR))

    assert _drain(queue) == ["Amy", "Bob", "Cara"]
    assert queue.dequeue() is None


def test_dispatch_is_fifo_within_tier(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))
    queue.enqueue(make_patient("Eve", 25))

    assert _drain(queue) == ["Dan", "Eve"]


def test_later_emergency_jumps_ahead_of_waiting_regulars(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))
    queue.enqueue(make_patient("Bob", 80))
    queue.enqueue(make_patient("Amy", 40, Tier.EMERGENCY))

    assert queue.peek_next().name == "Amy"
    assert _drain(queue) == ["Amy", "Bob", "Dan"]


def test_peek_next_does_not_remove(queue, make_patient) -> None:
    assert queue.peek_next() is None

    queue.enqueue(make_patient("Dan", 20))

    assert queue.peek_next().name == "Dan"
    assert queue.total_count() == 1


def test_enqueue_stamps_arrival(queue, make_patient, clock) -> None:
    first = queue.enqueue(make_patient("Dan", 20))
    second = queue.enqueue(make_patient("Eve", 25))

    assert first.arrived_at is not None
    assert first.arrived_at < second.arrived_at
    assert first.arrival_sequence < second.arrival_sequence


def test_dispatch_order_holds_after_mixed_mutations(
    roomy_settings, clock, make_patient
) -> None:
    queue = PatientQueue(settings=roomy_settings, clock=clock)
    rng = random.Random(7)
    tiers = [Tier.EMERGENCY, Tier.REGULAR]

    for index in range(40):
        age = rng.randint(0, 100)
        tier = Tier.SENIOR if age >= 75 and rng.random() < 0.5 else rng.choice(tiers)
        queue.enqueue(make_patient(f"patient-{index}", age, tier))

    for index in rng.sample(range(40), 10):
        queue.reassign_tier(f"patient-{index}", rng.choice(tiers))
    for index in rng.sample(range(40), 5):
        queue.remove(f"patient-{index}")

    keys = []
    while (record := queue.dequeue()) is not None:
        keys.append(
            (queue.policy.rank(record.tier), record.arrived_at, record.arrival_sequence)
        )

    assert len(keys) == 35
    assert keys == sorted(keys)


def test_enqueue_then_remove_restores_count(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))
    before = queue.total_count()

    queue.enqueue(make_patient("Eve", 25))
    assert queue.remove("Eve") is True

    assert queue.total_count() == before
    assert queue.find_by_exact_name("Eve") is None


def test_remove_missing_patient_returns_false(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))

    assert queue.remove("Nobody") is False
    assert queue.total_count() == 1


def test_remove_by_id(queue, make_patient) -> None:
    record = queue.enqueue(make_patient("Dan", 20))

    assert queue.remove_by_id(record.id) is True
    assert queue.remove_by_id(record.id) is False
    assert queue.find_by_id(record.id) is None


def test_tier_capacity_is_enforced_atomically(queue, make_patient) -> None:
    for index in range(10):
        queue.enqueue(make_patient(f"E{index}", 40, Tier.EMERGENCY))
    overflow = make_patient("Late", 40, Tier.EMERGENCY)

    with pytest.raises(CapacityExceededError) as excinfo:
        queue.enqueue(overflow)

    assert excinfo.value.scope == "tier"
    assert excinfo.value.limit == 10
    assert queue.count_by_tier(Tier.EMERGENCY) == 10
    assert queue.total_count() == 10
    assert overflow.arrived_at is None
    assert queue.seen_today == 10


def test_total_capacity_binds_before_tier_limits(clock, make_patient) -> None:
    settings = IntakeQueueSettings(
        capacity=CapacitySettings(emergency=10, senior=10, regular=10, total=3)
    )
    queue = PatientQueue(settings=settings, clock=clock)
    for name in ("A", "B", "C"):
        queue.enqueue(make_patient(name, 30))

    with pytest.raises(CapacityExceededError) as excinfo:
        queue.enqueue(make_patient("D", 40, Tier.EMERGENCY))

    assert excinfo.value.scope == "total"
    assert excinfo.value.to_dict()["limit"] == 3
    assert queue.count_by_tier(Tier.EMERGENCY) == 0
    assert queue.total_count() == 3


def test_bypass_capacity_is_emergency_only(clock, make_patient) -> None:
    settings = IntakeQueueSettings(
        capacity=CapacitySettings(emergency=1, senior=1, regular=1, total=1)
    )
    queue = PatientQueue(settings=settings, clock=clock)
    queue.enqueue(make_patient("A", 30, Tier.EMERGENCY))

    queue.enqueue(make_patient("B", 30, Tier.EMERGENCY), bypass_capacity=True)
    with pytest.raises(ValueError):
        queue.enqueue(make_patient("C", 30), bypass_capacity=True)

    assert queue.count_by_tier(Tier.EMERGENCY) == 2
    assert queue.total_count() == 2


def test_same_record_cannot_be_queued_twice(queue, make_patient) -> None:
    record = queue.enqueue(make_patient("Dan", 20))

    with pytest.raises(ValueError):
        queue.enqueue(record)

    assert queue.total_count() == 1


def test_duplicate_names_allowed_by_default(queue, make_patient) -> None:
    first = queue.enqueue(make_patient("Sam", 30))
    queue.enqueue(make_patient("sam", 40, Tier.EMERGENCY))

    assert queue.total_count() == 2
    # first match follows dispatch order, not insertion order
    assert queue.find_by_exact_name("SAM").tier is Tier.EMERGENCY
    assert queue.find_by_id(first.id) is first


def test_duplicate_names_rejected_when_configured(clock, make_patient) -> None:
    queue = PatientQueue(
        settings=IntakeQueueSettings(reject_duplicate_names=True), clock=clock
    )
    queue.enqueue(make_patient("Sam", 30))

    with pytest.raises(DuplicatePatientError):
        queue.enqueue(make_patient(" sam ", 40))

    assert queue.total_count() == 1


def test_find_and_search_are_case_insensitive(queue, make_patient) -> None:
    queue.enqueue(make_patient("Ann Lee", 30))
    queue.enqueue(make_patient("Joanna", 50, Tier.EMERGENCY))
    queue.enqueue(make_patient("Bob", 80))

    assert queue.find_by_exact_name("ann lee").name == "Ann Lee"
    assert queue.find_by_exact_name("Ann") is None
    assert [record.name for record in queue.search("ANN")] == ["Joanna", "Ann Lee"]
    assert queue.search("zzz") == []


def test_reassign_to_senior_requires_age(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 60))

    with pytest.raises(SeniorAgeRequirementError):
        queue.reassign_tier("Dan", Tier.SENIOR)

    record = queue.find_by_exact_name("Dan")
    assert record.tier is Tier.REGULAR
    assert not record.has_notes()


def test_reassign_outcomes(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))

    assert queue.reassign_tier("Nobody", Tier.EMERGENCY) is ReassignOutcome.NOT_FOUND
    assert queue.reassign_tier("dan", Tier.REGULAR) is ReassignOutcome.UNCHANGED
    assert queue.reassign_tier("dan", Tier.EMERGENCY) is ReassignOutcome.CHANGED

    record = queue.find_by_exact_name("Dan")
    assert record.tier is Tier.EMERGENCY
    assert record.latest_note() == "Type changed from Regular to Emergency"


def test_reassigned_patient_keeps_original_seniority(queue, make_patient) -> None:
    early = queue.enqueue(make_patient("Early", 30))
    queue.enqueue(make_patient("Urgent", 40, Tier.EMERGENCY))
    queue.enqueue(make_patient("Later", 35))
    arrived = early.arrived_at

    queue.reassign_tier("Early", Tier.EMERGENCY)

    assert early.arrived_at == arrived
    assert _drain(queue) == ["Early", "Urgent", "Later"]


def test_reassign_does_not_touch_daily_counters(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))

    queue.reassign_tier("Dan", Tier.EMERGENCY)

    assert queue.seen_today == 1
    assert queue.emergencies_today == 0


def test_reassign_into_full_tier_fails(clock, make_patient) -> None:
    settings = IntakeQueueSettings(
        capacity=CapacitySettings(emergency=1, senior=5, regular=5, total=2)
    )
    queue = PatientQueue(settings=settings, clock=clock)
    queue.enqueue(make_patient("Urgent", 40, Tier.EMERGENCY))
    queue.enqueue(make_patient("Dan", 20))

    with pytest.raises(CapacityExceededError):
        queue.reassign_tier("Dan", Tier.EMERGENCY)

    assert queue.find_by_exact_name("Dan").tier is Tier.REGULAR
    assert queue.count_by_tier(Tier.EMERGENCY) == 1


def test_reassign_within_full_waiting_room_is_allowed(clock, make_patient) -> None:
    settings = IntakeQueueSettings(
        capacity=CapacitySettings(emergency=5, senior=5, regular=5, total=2)
    )
    queue = PatientQueue(settings=settings, clock=clock)
    queue.enqueue(make_patient("Dan", 20))
    queue.enqueue(make_patient("Eve", 25))

    assert queue.reassign_tier("Eve", Tier.EMERGENCY) is ReassignOutcome.CHANGED
    assert queue.total_count() == 2


def test_clear_by_age_range_removes_matching_patients(queue, make_patient) -> None:
    for name, age in (("P40", 40), ("P80", 80), ("P85", 85), ("P30", 30)):
        queue.enqueue(make_patient(name, age))

    removed = queue.clear_by_age_range(70, 90)

    assert removed == ["P80", "P85"]
    assert queue.total_count() == 2
    assert [record.name for record in queue.records()] == ["P40", "P30"]


def test_clear_by_age_range_rejects_reversed_bounds(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))

    with pytest.raises(InvalidRangeError):
        queue.clear_by_age_range(50, 10)
    with pytest.raises(InvalidRangeError):
        queue.patients_in_age_range(50, 10)

    assert queue.total_count() == 1


def test_clear_tier_returns_names_in_arrival_order(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))
    queue.enqueue(make_patient("Amy", 40, Tier.EMERGENCY))
    queue.enqueue(make_patient("Eve", 25))

    assert queue.clear_tier(Tier.REGULAR) == ["Dan", "Eve"]
    assert queue.clear_tier(Tier.SENIOR) == []
    assert [record.name for record in queue.records()] == ["Amy"]


def test_clear_all_returns_dispatch_order(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))
    queue.enqueue(make_patient("Bob", 80))
    queue.enqueue(make_patient("Amy", 40, Tier.EMERGENCY))

    assert queue.clear_all() == ["Amy", "Bob", "Dan"]
    assert queue.total_count() == 0
    assert queue.seen_today == 3


def test_counts_and_tier_listing(queue, make_patient) -> None:
    queue.enqueue(make_patient("Dan", 20))
    queue.enqueue(make_patient("Bob", 80))
    queue.enqueue(make_patient("Eve", 25))

    assert queue.count_by_tier(Tier.REGULAR) == 2
    assert queue.count_by_tier(Tier.SENIOR) == 1
    assert queue.count_by_tier(Tier.EMERGENCY) == 0
    assert len(queue) == 3
    assert [record.name for record in queue.list_tier(Tier.REGULAR)] == ["Dan", "Eve"]
    assert [record.name for record in queue] == ["Bob", "Dan", "Eve"]


def test_daily_counters_only_grow(queue, make_patient) -> None:
    queue.enqueue(make_patient("Amy", 40, Tier.EMERGENCY))
    queue.enqueue(make_patient("Dan", 20))
    queue.dequeue()
    queue.remove("Dan")

    assert queue.seen_today == 2
    assert queue.emergencies_today == 1
    assert queue.stats.served_today == 1


def test_update_fields_validates_before_applying(queue, make_patient) -> None:
    record = queue.enqueue(make_patient("Dan", 20))

    with pytest.raises(ValidationError):
        queue.update_fields(record.id, {"name": "Daniel", "age": 200})
    assert record.name == "Dan"
    assert record.age == 20

    with pytest.raises(ValueError):
        queue.update_fields(record.id, {"tier": Tier.EMERGENCY})

    updated = queue.update_fields(record.id, {"name": " Daniel ", "age": 21})
    assert updated is record
    assert record.name == "Daniel"
    assert record.age == 21


def test_update_fields_for_missing_patient(queue, make_patient) -> None:
    record = make_patient("Ghost", 30)

    assert queue.update_fields(record.id, {"age": 31}) is None


def test_direct_record_reassignment_is_reflected_in_dispatch(queue, make_patient) -> None:
    queue.enqueue(make_patient("Reg", 30))
    later = queue.enqueue(make_patient("Later", 35))

    later.reassign_tier(Tier.EMERGENCY)

    assert queue.peek_next() is later
    assert [record.name for record in queue.records()] == ["Later", "Reg"]
    assert queue.list_tier(Tier.REGULAR)[0].name == "Reg"
    assert _drain(queue) == ["Later", "Reg"]


def test_direct_reassignment_keeps_arrival_order_in_new_tier(queue, make_patient) -> None:
    first = queue.enqueue(make_patient("First", 30))
    queue.enqueue(make_patient("Amy", 40, Tier.EMERGENCY))

    first.reassign_tier(Tier.EMERGENCY)
    queue.enqueue(make_patient("Zed", 50, Tier.EMERGENCY))

    assert _drain(queue) == ["First", "Amy", "Zed"]


def test_record_without_arrival_is_rejected_by_ordering(queue, make_patient) -> None:
    record = queue.enqueue(make_patient("Amy", 40))
    record.arrived_at = None

    with pytest.raises(RuntimeError):
        queue.peek_next()


def test_clear_restricted_to_given_ids(queue, make_patient) -> None:
    amy = queue.enqueue(make_patient("Amy", 40))
    queue.enqueue(make_patient("Bob", 41))

    assert queue.clear_all(patient_ids={amy.id}) == ["Amy"]
    assert [record.name for record in queue.records()] == ["Bob"]
