# sched_core/entities/tests/test_dependency_services.py
import uuid

import pytest

from sched_core.entities.models import AppointmentType, BaseSchedule, Practitioner
from sched_core.entities.services import (
    AppointmentTypeService,
    BaseScheduleService,
    LocationService,
    PractitionerService,
)
from sched_core.rules.models import Rule
from sched_core.rules.services import RuleService
from sched_core.rulesets.exceptions import EntityValidationError, StaleSnapshot
from sched_core.rulesets.services import RuleSetService

pytestmark = pytest.mark.django_db


@pytest.fixture
def staffed(scope):
    """Two practitioners, one room, a shared appointment type and a rule naming both doctors."""
    who = PractitionerService.create_practitioner(**scope, name="Dr. Who", tags=["gp"])
    house = PractitionerService.create_practitioner(**scope, name="Dr. House")
    room = LocationService.create_location(**scope, name="Room 1")
    working = {**scope, "source_rule_set_id": who.rule_set_id}

    BaseScheduleService.create_base_schedule(
        **working,
        practitioner_id=who.entity_id,
        location_id=room.entity_id,
        day_of_week=1,
        start_time="08:00",
        end_time="12:00",
        break_times=[{"start": "10:00", "end": "10:15"}],
    )
    checkup = AppointmentTypeService.create_appointment_type(
        **working, name="Checkup", duration=15, practitioner_ids=[who.entity_id, house.entity_id]
    )
    condition = {
        "type": "Property",
        "entity": "Slot",
        "attr": "doctor",
        "op": "IN",
        "value": [str(who.entity_id), str(house.entity_id)],
    }
    rule = RuleService.create_rule(**working, name="doctors", action="BLOCK", condition=condition)
    return {
        "working": working,
        "who": str(who.entity_id),
        "house": str(house.entity_id),
        "room": str(room.entity_id),
        "checkup": checkup.entity_id,
        "rule": rule.entity_id,
    }


# -------------------------
# Delete / restore with dependencies
# -------------------------
def test_delete_with_dependencies_returns_a_snapshot(staffed):
    deletion = PractitionerService.delete_practitioner_with_dependencies(
        **staffed["working"], practitioner_id=staffed["who"]
    )
    snapshot = deletion.snapshot

    assert str(deletion.rule_set_id) == str(staffed["working"]["source_rule_set_id"])
    assert snapshot["practitioner"] == {"id": staffed["who"], "name": "Dr. Who", "tags": ["gp"]}
    assert snapshot["base_schedules"] == [
        {
            "location_id": staffed["room"],
            "day_of_week": 1,
            "start_time": "08:00",
            "end_time": "12:00",
            "break_times": [{"start": "10:00", "end": "10:15"}],
        }
    ]
    assert snapshot["appointment_type_patches"] == [
        {
            "appointment_type_id": str(staffed["checkup"]),
            "before_allowed_practitioner_ids": [staffed["who"], staffed["house"]],
            "after_allowed_practitioner_ids": [staffed["house"]],
        }
    ]
    assert [p["rule_id"] for p in snapshot["rule_patches"]] == [str(staffed["rule"])]

    assert not Practitioner.objects.filter(id=staffed["who"]).exists()
    assert not BaseSchedule.objects.filter(rule_set_id=deletion.rule_set_id).exists()
    assert AppointmentType.objects.get(id=staffed["checkup"]).allowed_practitioner_ids == [staffed["house"]]
    assert Rule.objects.get(id=staffed["rule"]).condition["value"] == [staffed["house"]]
    assert deletion.to_dict()["ruleSetId"] == str(deletion.rule_set_id)


def test_scalar_references_survive_the_delete(scope):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    condition = {"type": "Property", "entity": "Slot", "attr": "doctor", "op": "=", "value": str(doc.entity_id)}
    rule = RuleService.create_rule(**scope, name="one doctor", action="BLOCK", condition=condition)

    deletion = PractitionerService.delete_practitioner_with_dependencies(**scope, practitioner_id=doc.entity_id)

    assert deletion.snapshot["rule_patches"] == []
    assert Rule.objects.get(id=rule.entity_id).condition == condition


def test_restore_puts_every_dependency_back(staffed):
    working = staffed["working"]
    deletion = PractitionerService.delete_practitioner_with_dependencies(**working, practitioner_id=staffed["who"])

    restored = PractitionerService.restore_practitioner_with_dependencies(**working, snapshot=deletion.snapshot)

    new_id = str(restored.entity_id)
    assert new_id != staffed["who"]
    doc = Practitioner.objects.get(id=new_id)
    assert (doc.name, doc.tags) == ("Dr. Who", ["gp"])

    schedule = BaseSchedule.objects.get(practitioner_id=new_id)
    assert str(schedule.location_id) == staffed["room"]
    assert (schedule.day_of_week, schedule.start_time, schedule.end_time) == (1, "08:00", "12:00")
    assert schedule.break_times == [{"start": "10:00", "end": "10:15"}]

    assert AppointmentType.objects.get(id=staffed["checkup"]).allowed_practitioner_ids == [new_id, staffed["house"]]
    assert Rule.objects.get(id=staffed["rule"]).condition["value"] == [new_id, staffed["house"]]


def test_restore_rejects_a_duplicate_name(staffed):
    working = staffed["working"]
    deletion = PractitionerService.delete_practitioner_with_dependencies(**working, practitioner_id=staffed["who"])
    PractitionerService.create_practitioner(**working, name="Dr. Who")

    with pytest.raises(EntityValidationError):
        PractitionerService.restore_practitioner_with_dependencies(**working, snapshot=deletion.snapshot)


def test_restore_after_save_is_stale(practice, staffed):
    working = staffed["working"]
    deletion = PractitionerService.delete_practitioner_with_dependencies(**working, practitioner_id=staffed["who"])
    v2 = RuleSetService.save_unsaved_rule_set(practice_id=practice.id, description="v2")

    # the snapshot names rows of v2; the new working copy holds copies of them
    with pytest.raises(StaleSnapshot):
        PractitionerService.restore_practitioner_with_dependencies(
            practice_id=practice.id, source_rule_set_id=v2.id, snapshot=deletion.snapshot
        )
    assert not Practitioner.objects.filter(name="Dr. Who").exists()


def test_restore_when_another_allowed_practitioner_is_gone(staffed):
    working = staffed["working"]
    deletion = PractitionerService.delete_practitioner_with_dependencies(**working, practitioner_id=staffed["who"])
    # keep the type bookable while Dr. House leaves
    AppointmentTypeService.update_appointment_type(
        **working,
        appointment_type_id=staffed["checkup"],
        practitioner_ids=[PractitionerService.create_practitioner(**working, name="Dr. Grey").entity_id],
    )
    PractitionerService.delete_practitioner(**working, practitioner_id=staffed["house"])

    with pytest.raises(StaleSnapshot):
        PractitionerService.restore_practitioner_with_dependencies(**working, snapshot=deletion.snapshot)


def test_delete_practitioner_still_answers_a_mutation_result(staffed):
    result = PractitionerService.delete_practitioner(**staffed["working"], practitioner_id=staffed["who"])
    assert result.to_dict() == {
        "entityId": staffed["who"],
        "ruleSetId": str(staffed["working"]["source_rule_set_id"]),
    }


# -------------------------
# Guarded base schedule replacement
# -------------------------
def _hours(staffed, day, start, end):
    return {
        "practitioner_id": staffed["who"],
        "location_id": staffed["room"],
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
    }


def test_replace_swaps_schedules(staffed):
    working = staffed["working"]
    old = BaseSchedule.objects.get(practitioner_id=staffed["who"])

    replacement = BaseScheduleService.replace_base_schedule_set(
        **working,
        expected_present_ids=[old.id],
        replacement_schedules=[_hours(staffed, 1, "09:00", "13:00"), _hours(staffed, 2, "09:00", "13:00")],
    )

    assert replacement.deleted_ids == [str(old.id)]
    assert len(replacement.created_ids) == 2
    rows = BaseSchedule.objects.filter(practitioner_id=staffed["who"]).order_by("day_of_week")
    assert [(r.day_of_week, r.start_time) for r in rows] == [(1, "09:00"), (2, "09:00")]
    assert sorted(replacement.to_dict()["createdScheduleIds"]) == sorted(str(r.id) for r in rows)


def test_replace_resolves_ids_of_a_saved_version(practice, staffed):
    old = BaseSchedule.objects.get(practitioner_id=staffed["who"])
    v2 = RuleSetService.save_unsaved_rule_set(practice_id=practice.id, description="v2")

    replacement = BaseScheduleService.replace_base_schedule_set(
        practice_id=practice.id,
        source_rule_set_id=v2.id,
        expected_present_ids=[old.id],
        replacement_schedules=[_hours(staffed, 3, "14:00", "18:00")],
    )

    assert replacement.rule_set_id != v2.id
    assert BaseSchedule.objects.filter(id=old.id).exists()
    copy = BaseSchedule.objects.get(id=replacement.created_ids[0])
    assert copy.rule_set_id == replacement.rule_set_id
    assert copy.practitioner.parent_id == uuid.UUID(staffed["who"])


def test_replace_refuses_a_stale_view(staffed):
    working = staffed["working"]
    old = BaseSchedule.objects.get(practitioner_id=staffed["who"])
    BaseScheduleService.delete_base_schedule(**working, base_schedule_id=old.id)

    with pytest.raises(StaleSnapshot):
        BaseScheduleService.replace_base_schedule_set(
            **working, expected_present_ids=[old.id], replacement_schedules=[_hours(staffed, 1, "09:00", "13:00")]
        )
    assert not BaseSchedule.objects.filter(rule_set_id=working["source_rule_set_id"]).exists()


def test_replace_refuses_when_replacements_already_exist(staffed):
    working = staffed["working"]
    old = BaseSchedule.objects.get(practitioner_id=staffed["who"])
    first = BaseScheduleService.replace_base_schedule_set(
        **working, expected_present_ids=[old.id], replacement_schedules=[_hours(staffed, 1, "09:00", "13:00")]
    )
    again = BaseSchedule.objects.get(id=first.created_ids[0])

    with pytest.raises(StaleSnapshot):
        BaseScheduleService.replace_base_schedule_set(
            **working,
            expected_present_ids=[again.id],
            expected_absent_ids=first.created_ids,
            replacement_schedules=[_hours(staffed, 1, "09:00", "13:00")],
        )
    assert BaseSchedule.objects.filter(id=again.id).exists()


def test_replace_needs_something_to_replace(scope):
    with pytest.raises(EntityValidationError):
        BaseScheduleService.replace_base_schedule_set(**scope, expected_present_ids=[], replacement_schedules=[])


def test_replace_rejects_duplicate_ids(staffed):
    old = BaseSchedule.objects.get(practitioner_id=staffed["who"])
    with pytest.raises(StaleSnapshot):
        BaseScheduleService.replace_base_schedule_set(
            **staffed["working"], expected_present_ids=[old.id, old.id], replacement_schedules=[]
        )
