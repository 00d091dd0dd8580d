# sched_core/rulesets/tests/test_copy_on_write.py
import uuid

import pytest

from sched_core.common.events import RULESET_FORKED, subscribe, unsubscribe
from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.practices.services import PracticeService
from sched_core.rules.models import Rule
from sched_core.rulesets import copy_on_write
from sched_core.rulesets.copy_on_write import (
    copy_base_schedules,
    resolve_entity_in_working_set,
    resolve_working_rule_set,
)
from sched_core.rulesets.exceptions import (
    DataIntegrityError,
    EntityNotFound,
    PracticeNotFound,
    RuleSetNotFound,
    RuleSetPracticeMismatch,
)
from sched_core.rulesets.models import RuleSet

pytestmark = pytest.mark.django_db


@pytest.fixture
def populated(initial_rule_set):
    """A v1 holding one of each entity plus a rule referencing them."""
    doc = Practitioner.objects.create(rule_set=initial_rule_set, name="Dr. Who", tags=["gp"])
    room = Location.objects.create(rule_set=initial_rule_set, name="Room 1")
    checkup = AppointmentType.objects.create(
        rule_set=initial_rule_set, name="Checkup", duration=15, allowed_practitioner_ids=[str(doc.id)]
    )
    schedule = BaseSchedule.objects.create(
        rule_set=initial_rule_set,
        practitioner=doc,
        location=room,
        day_of_week=0,
        start_time="08:00",
        end_time="12:00",
    )
    rule = Rule.objects.create(
        rule_set=initial_rule_set,
        name="max three checkups",
        priority=1,
        action="BLOCK",
        condition={
            "type": "AND",
            "children": [
                {"type": "Property", "entity": "Slot", "attr": "doctor", "op": "=", "value": str(doc.id)},
                {"type": "Count", "filter": {"type": str(checkup.id), "location": str(room.id)}, "op": ">=", "value": 3},
            ],
        },
        zones={"createZone": {"condition": {"type": "AND", "children": []}, "zone": {"start": "Slot.end", "duration": "1h", "allowOnly": [str(checkup.id)]}}},
    )
    return {"doc": doc, "room": room, "checkup": checkup, "schedule": schedule, "rule": rule}


def test_fork_creates_next_version_with_parent(practice, initial_rule_set):
    fork = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)

    assert fork.id != initial_rule_set.id
    assert fork.saved is False
    assert fork.is_active is False
    assert fork.version == initial_rule_set.version + 1
    assert fork.parent_versions == [str(initial_rule_set.id)]
    assert fork.description == "Unsaved changes"


def test_fork_is_idempotent(practice, initial_rule_set):
    first = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)
    second = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)

    assert first.id == second.id
    assert RuleSet.objects.filter(practice=practice, saved=False).count() == 1



def test_fork_that_loses_the_insert_race_returns_the_winner(practice, initial_rule_set, monkeypatch):
    winner = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)

    real_find = copy_on_write._find_unsaved
    calls = []

    def find_unsaved_missing_the_winner_once(practice_id):
        calls.append(practice_id)
        return None if len(calls) == 1 else real_find(practice_id)

    monkeypatch.setattr(copy_on_write, "_find_unsaved", find_unsaved_missing_the_winner_once)
    forked = []
    handler = subscribe(RULESET_FORKED)(forked.append)
    try:
        loser = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)
    finally:
        unsubscribe(RULESET_FORKED, handler)

    assert loser.id == winner.id
    assert len(calls) == 2
    assert forked == []
    assert RuleSet.objects.filter(practice=practice, saved=False).count() == 1
    assert RuleSet.objects.filter(practice=practice).count() == 2


def test_fork_copies_entities_and_remaps_references(practice, initial_rule_set, populated):
    fork = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)

    doc = Practitioner.objects.get(rule_set=fork)
    room = Location.objects.get(rule_set=fork)
    checkup = AppointmentType.objects.get(rule_set=fork)
    schedule = BaseSchedule.objects.get(rule_set=fork)
    rule = Rule.objects.get(rule_set=fork)

    assert doc.parent_id == populated["doc"].id and doc.id != populated["doc"].id
    assert doc.tags == ["gp"]
    assert checkup.allowed_practitioner_ids == [str(doc.id)]
    assert schedule.practitioner_id == doc.id
    assert schedule.location_id == room.id

    children = rule.condition["children"]
    assert children[0]["value"] == str(doc.id)
    assert children[1]["filter"] == {"type": str(checkup.id), "location": str(room.id)}
    assert rule.zones["createZone"]["zone"]["allowOnly"] == [str(checkup.id)]

    # source stays untouched
    assert Rule.objects.get(id=populated["rule"].id).condition["children"][0]["value"] == str(populated["doc"].id)


def test_fork_publishes_event(practice, initial_rule_set):
    received = []

    def handler(payload):
        received.append(payload)

    subscribe(RULESET_FORKED)(handler)
    try:
        fork = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)
        resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)
    finally:
        unsubscribe(RULESET_FORKED, handler)

    assert received == [
        {
            "practice_id": str(practice.id),
            "rule_set_id": str(fork.id),
            "source_rule_set_id": str(initial_rule_set.id),
            "version": 2,
        }
    ]


def test_fork_rejects_unknown_or_foreign_source(practice, initial_rule_set):
    with pytest.raises(RuleSetNotFound):
        resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=uuid.uuid4())

    other = PracticeService.create_practice(name="Other practice")
    with pytest.raises(RuleSetPracticeMismatch):
        resolve_working_rule_set(practice_id=other.id, source_rule_set_id=initial_rule_set.id)

    with pytest.raises(PracticeNotFound):
        resolve_working_rule_set(practice_id=uuid.uuid4(), source_rule_set_id=initial_rule_set.id)


def test_entity_resolution_follows_parent_link(practice, initial_rule_set, populated):
    fork = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)

    copy = resolve_entity_in_working_set(Practitioner, entity_id=populated["doc"].id, working=fork)
    assert copy.rule_set_id == fork.id
    assert copy.parent_id == populated["doc"].id

    # an id already inside the working set resolves to itself
    assert resolve_entity_in_working_set(Practitioner, entity_id=copy.id, working=fork) == copy

    with pytest.raises(EntityNotFound):
        resolve_entity_in_working_set(Practitioner, entity_id=uuid.uuid4(), working=fork)


def test_missing_copy_is_a_data_integrity_error(practice, initial_rule_set, populated):
    fork = resolve_working_rule_set(practice_id=practice.id, source_rule_set_id=initial_rule_set.id)
    Location.objects.filter(rule_set=fork).delete()

    with pytest.raises(DataIntegrityError):
        resolve_entity_in_working_set(Location, entity_id=populated["room"].id, working=fork)


def test_base_schedule_copy_requires_mapped_references(initial_rule_set, populated):
    target = RuleSet.objects.create(
        practice=initial_rule_set.practice, version=9, description="scratch", saved=True
    )
    with pytest.raises(DataIntegrityError):
        copy_base_schedules(
            source_id=initial_rule_set.id,
            target=target,
            practitioner_map={},
            location_map={populated["room"].id: uuid.uuid4()},
        )
