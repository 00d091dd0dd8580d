# sched_core/rules/tests/test_check_slot.py
from datetime import datetime, timezone

import pytest

from sched_core.appointments.models import Appointment
from sched_core.entities.services import PractitionerService
from sched_core.practices.services import PracticeService
from sched_core.rules.decisions import RuleEngine
from sched_core.rules.services import RuleService
from sched_core.rulesets.exceptions import NoActiveRuleSet, RuleSetPracticeMismatch
from sched_core.rulesets.models import RuleSet
from sched_core.rulesets.services import RuleSetService

pytestmark = pytest.mark.django_db

SLOT = {"start": "2025-01-06T10:00:00Z", "end": "2025-01-06T10:30:00Z"}


def at(hour, minute=0):
    return datetime(2025, 1, 6, hour, minute, tzinfo=timezone.utc)


def test_active_rule_set_without_rules_allows(practice, initial_rule_set):
    result = RuleEngine.check_slot(practice_id=practice.id, slot=SLOT)
    assert result.to_dict() == {"action": "ALLOW", "message": "no matching rules"}


def test_daily_cap_blocks_once_reached(practice, scope):
    doc = PractitionerService.create_practitioner(**scope, name="Dr. Who")
    RuleService.create_rule(
        **scope,
        name="max 3 per doctor",
        action="BLOCK",
        message="Dr. Who is fully booked",
        condition={"type": "Count", "filter": {"doctor": str(doc.entity_id)}, "op": ">=", "value": 3},
    )
    RuleSetService.save_unsaved_rule_set(practice_id=practice.id, description="cap", set_as_active=True)

    for hour in (8, 9):
        Appointment.objects.create(practice_id=practice.id, start=at(hour), end=at(hour, 30), practitioner_id=doc.entity_id)
    assert RuleEngine.check_slot(practice_id=practice.id, slot=SLOT).action == "ALLOW"

    Appointment.objects.create(practice_id=practice.id, start=at(11), end=at(11, 30), practitioner_id=doc.entity_id)
    result = RuleEngine.check_slot(practice_id=practice.id, slot=SLOT)
    assert result.blocked is True
    assert result.message == "Dr. Who is fully booked"
    assert result.rule_name == "max 3 per doctor"


def test_appointments_outside_window_are_ignored(practice, scope):
    RuleService.create_rule(
        **scope, name="busy", action="BLOCK", condition={"type": "Count", "filter": {}, "op": ">", "value": 0}
    )
    RuleSetService.save_unsaved_rule_set(practice_id=practice.id, description="busy", set_as_active=True)

    # default window is 4h around the slot
    Appointment.objects.create(practice_id=practice.id, start=at(5, 30), end=at(6))
    assert RuleEngine.check_slot(practice_id=practice.id, slot=SLOT).action == "ALLOW"

    Appointment.objects.create(practice_id=practice.id, start=at(14, 30), end=at(15))
    assert RuleEngine.check_slot(practice_id=practice.id, slot=SLOT).action == "BLOCK"


def test_working_copy_can_be_simulated(practice, scope):
    created = RuleService.create_rule(
        **scope, name="closed", action="BLOCK", condition={"type": "AND", "children": []}
    )

    assert RuleEngine.check_slot(practice_id=practice.id, slot=SLOT).action == "ALLOW"
    simulated = RuleEngine.check_slot(practice_id=practice.id, slot=SLOT, rule_set_id=created.rule_set_id)
    assert simulated.action == "BLOCK"
    assert simulated.rule_id == str(created.entity_id)


def test_context_reaches_property_conditions(practice, scope):
    RuleService.create_rule(
        **scope,
        name="no online bookings",
        action="BLOCK",
        condition={"type": "Property", "entity": "Context", "attr": "channel", "op": "=", "value": "online"},
    )
    rule_set_id = RuleSet.objects.get(practice=practice, saved=False).id

    blocked = RuleEngine.check_slot(practice_id=practice.id, slot=SLOT, rule_set_id=rule_set_id, context={"channel": "online"})
    allowed = RuleEngine.check_slot(practice_id=practice.id, slot=SLOT, rule_set_id=rule_set_id, context={"channel": "phone"})
    assert (blocked.action, allowed.action) == ("BLOCK", "ALLOW")


def test_foreign_rule_set_and_missing_active(practice, initial_rule_set):
    other = PracticeService.create_practice(name="Other")
    with pytest.raises(RuleSetPracticeMismatch):
        RuleEngine.check_slot(practice_id=other.id, slot=SLOT, rule_set_id=initial_rule_set.id)

    RuleSet.objects.filter(id=initial_rule_set.id).update(is_active=False)
    with pytest.raises(NoActiveRuleSet):
        RuleEngine.check_slot(practice_id=practice.id, slot=SLOT)


@pytest.mark.parametrize("slot_start", ["2025-01-06T10:00:00+01:00", "2025-01-06T09:00:00Z"])
def test_scoped_count_reads_slot_and_appointments_on_one_clock(practice, scope, settings, slot_start):
    settings.SCHEDULING_TIME_ZONE = "Europe/Berlin"
    RuleService.create_rule(
        **scope,
        name="morning is full",
        action="BLOCK",
        condition={"type": "Count", "filter": {}, "op": ">=", "value": 1, "start": "08:00", "end": "12:00"},
    )
    RuleSetService.save_unsaved_rule_set(practice_id=practice.id, description="mornings", set_as_active=True)

    # 07:30 UTC is 08:30 in Berlin, inside the morning scope
    Appointment.objects.create(practice_id=practice.id, start=at(7, 30), end=at(8))

    slot = {"start": slot_start, "end": "2025-01-06T09:30:00Z"}
    assert RuleEngine.check_slot(practice_id=practice.id, slot=slot).action == "BLOCK"


def test_appointment_context_uses_the_scheduling_clock(practice, settings):
    settings.SCHEDULING_TIME_ZONE = "Europe/Berlin"
    appt = Appointment.objects.create(practice_id=practice.id, start=at(9), end=at(9, 30))

    ctx = appt.to_context()
    assert (ctx["start"], ctx["end"]) == ("2025-01-06T10:00:00+01:00", "2025-01-06T10:30:00+01:00")
