# sched_core/entities/tests/test_entity_services.py
import uuid

import pytest

from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.entities.selectors import EntitySelector
from sched_core.entities.services import (
    AppointmentTypeService,
    BaseScheduleService,
    LocationService,
    PractitionerService,
)
from sched_core.rulesets.exceptions import EntityNotFound, EntityValidationError, RuleSetNotFound
from sched_core.rulesets.models import RuleSet
from sched_core.rulesets.services import RuleSetService

pytestmark = pytest.mark.django_db


def test_create_in_saved_rule_set_forks_first(practice, scope, initial_rule_set):
    result = PractitionerService.create_practitioner(**scope, name=" Dr. Who ", tags=["gp"])

    assert result.rule_set_id != initial_rule_set.id
    doc = Practitioner.objects.get(id=result.entity_id)
    assert doc.rule_set_id == result.rule_set_id
    assert doc.name == "Dr. Who"
    assert not Practitioner.objects.filter(rule_set=initial_rule_set).exists()
    assert result.to_dict() == {"entityId": str(doc.id), "ruleSetId": str(result.rule_set_id)}


def test_chained_edits_share_the_working_copy(scope):
    first = LocationService.create_location(**scope, name="Room 1")
    second = LocationService.create_location(**scope, name="Room 2")
    assert first.rule_set_id == second.rule_set_id


def test_update_through_saved_id_edits_the_copy(practice, scope):
    created = LocationService.create_location(**scope, name="Room 1")
    v2 = RuleSetService.save_unsaved_rule_set(practice_id=practice.id, description="v2")

    # the caller still holds the v2 entity id
    updated = LocationService.update_location(
        practice_id=practice.id, source_rule_set_id=v2.id, location_id=created.entity_id, name="Room A"
    )

    assert updated.rule_set_id != v2.id
    assert updated.entity_id != created.entity_id
    assert Location.objects.get(id=created.entity_id).name == "Room 1"
    copy = Location.objects.get(id=updated.entity_id)
    assert copy.name == "Room A"
    assert copy.parent_id == created.entity_id


def test_names_are_required(scope):
    with pytest.raises(EntityValidationError):
        LocationService.create_location(**scope, name="   ")


def test_unknown_entity(scope):
    with pytest.raises(EntityNotFound):
        LocationService.delete_location(**scope, location_id=uuid.uuid4())


# -------------------------
# Practitioners
# -------------------------
def test_deleting_practitioner_cleans_schedules_and_allowed_lists(scope):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    other = PractitionerService.create_practitioner(**scope, name="Dr. Strange")
    room = LocationService.create_location(**scope, name="Room 1")
    AppointmentTypeService.create_appointment_type(
        **scope, name="Checkup", duration=15, practitioner_ids=[doc.entity_id, other.entity_id]
    )
    BaseScheduleService.create_base_schedule(
        **scope,
        practitioner_id=doc.entity_id,
        location_id=room.entity_id,
        day_of_week=1,
        start_time="08:00",
        end_time="12:00",
    )

    PractitionerService.delete_practitioner(**scope, practitioner_id=doc.entity_id)

    working = doc.rule_set_id
    assert not Practitioner.objects.filter(id=doc.entity_id).exists()
    assert not BaseSchedule.objects.filter(rule_set_id=working).exists()
    assert AppointmentType.objects.get(rule_set_id=working).allowed_practitioner_ids == [str(other.entity_id)]


# -------------------------
# Appointment types
# -------------------------
def test_appointment_type_rules(scope):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")

    with pytest.raises(EntityValidationError):
        AppointmentTypeService.create_appointment_type(**scope, name="Checkup", duration=15, practitioner_ids=[])
    with pytest.raises(EntityValidationError):
        AppointmentTypeService.create_appointment_type(
            **scope, name="Checkup", duration=0, practitioner_ids=[doc.entity_id]
        )

    created = AppointmentTypeService.create_appointment_type(
        **scope, name="Checkup", duration=15, practitioner_ids=[doc.entity_id, doc.entity_id]
    )
    assert AppointmentType.objects.get(id=created.entity_id).allowed_practitioner_ids == [str(doc.entity_id)]

    with pytest.raises(EntityValidationError):
        AppointmentTypeService.create_appointment_type(
            **scope, name="Checkup", duration=30, practitioner_ids=[doc.entity_id]
        )

    AppointmentTypeService.update_appointment_type(**scope, appointment_type_id=created.entity_id, duration=20)
    assert AppointmentType.objects.get(id=created.entity_id).duration == 20


# -------------------------
# Base schedules
# -------------------------
@pytest.mark.parametrize(
    "day,start,end",
    [(7, "08:00", "12:00"), (1, "8am", "12:00"), (1, "12:00", "08:00"), (1, "08:00", "08:00")],
)
def test_base_schedule_validation(scope, day, start, end):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    room = LocationService.create_location(**scope, name="Room 1")
    with pytest.raises(EntityValidationError):
        BaseScheduleService.create_base_schedule(
            **scope,
            practitioner_id=doc.entity_id,
            location_id=room.entity_id,
            day_of_week=day,
            start_time=start,
            end_time=end,
        )


def test_base_schedule_update_and_breaks(scope):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    room = LocationService.create_location(**scope, name="Room 1")
    created = BaseScheduleService.create_base_schedule(
        **scope,
        practitioner_id=doc.entity_id,
        location_id=room.entity_id,
        day_of_week=2,
        start_time="08:00",
        end_time="16:00",
        break_times=[{"start": "12:00", "end": "12:30"}],
    )

    BaseScheduleService.update_base_schedule(**scope, base_schedule_id=created.entity_id, end_time="18:00")
    schedule = BaseSchedule.objects.get(id=created.entity_id)
    assert (schedule.start_time, schedule.end_time) == ("08:00", "18:00")
    assert schedule.break_times == [{"start": "12:00", "end": "12:30"}]

    with pytest.raises(EntityValidationError):
        BaseScheduleService.update_base_schedule(
            **scope, base_schedule_id=created.entity_id, break_times=[{"start": "13:00", "end": "12:00"}]
        )


def test_deleting_location_removes_its_schedules(scope):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    room = LocationService.create_location(**scope, name="Room 1")
    BaseScheduleService.create_base_schedule(
        **scope, practitioner_id=doc.entity_id, location_id=room.entity_id, day_of_week=0, start_time="08:00", end_time="09:00"
    )
    LocationService.delete_location(**scope, location_id=room.entity_id)
    assert not BaseSchedule.objects.filter(rule_set_id=room.rule_set_id).exists()


# -------------------------
# Selectors
# -------------------------
def test_selectors_read_any_rule_set(scope, initial_rule_set):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    PractitionerService.create_practitioner(**scope, name="Dr. Adams")

    names = list(EntitySelector.list_practitioners(rule_set_id=doc.rule_set_id).values_list("name", flat=True))
    assert names == ["Dr. Adams", "Dr. Who"]
    assert EntitySelector.list_practitioners(rule_set_id=initial_rule_set.id).count() == 0

    with pytest.raises(RuleSetNotFound):
        EntitySelector.list_locations(rule_set_id=uuid.uuid4())


def test_base_schedules_filter_by_practitioner(scope):
    a = PractitionerService.create_practitioner(**scope, name="A")
    b = PractitionerService.create_practitioner(**scope, name="B")
    room = LocationService.create_location(**scope, name="Room 1")
    for p in (a, b):
        BaseScheduleService.create_base_schedule(
            **scope, practitioner_id=p.entity_id, location_id=room.entity_id, day_of_week=0, start_time="08:00", end_time="09:00"
        )

    qs = EntitySelector.list_base_schedules(rule_set_id=a.rule_set_id, practitioner_id=a.entity_id)
    assert [s.practitioner_id for s in qs] == [a.entity_id]
    assert RuleSet.objects.filter(id=a.rule_set_id, saved=False).exists()
