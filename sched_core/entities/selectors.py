# sched_core/entities/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.rulesets.selectors import RuleSetSelector


class EntitySelector:
    """
    Reads scoped to one rule set. Any rule set id is valid: the working copy,
    the active one or any saved historical version.
    """

    @staticmethod
    def list_practitioners(*, rule_set_id: UUID) -> QuerySet[Practitioner]:
        RuleSetSelector.get_rule_set(rule_set_id=rule_set_id)
        return Practitioner.objects.filter(rule_set_id=rule_set_id).order_by("name", "created_at")

    @staticmethod
    def list_locations(*, rule_set_id: UUID) -> QuerySet[Location]:
        RuleSetSelector.get_rule_set(rule_set_id=rule_set_id)
        return Location.objects.filter(rule_set_id=rule_set_id).order_by("name", "created_at")

    @staticmethod
    def list_appointment_types(*, rule_set_id: UUID) -> QuerySet[AppointmentType]:
        RuleSetSelector.get_rule_set(rule_set_id=rule_set_id)
        return AppointmentType.objects.filter(rule_set_id=rule_set_id).order_by("name")

    @staticmethod
    def list_base_schedules(*, rule_set_id: UUID, practitioner_id: UUID | None = None) -> QuerySet[BaseSchedule]:
        RuleSetSelector.get_rule_set(rule_set_id=rule_set_id)
        qs = BaseSchedule.objects.filter(rule_set_id=rule_set_id).select_related("practitioner", "location")
        if practitioner_id:
            qs = qs.filter(practitioner_id=practitioner_id)
        return qs.order_by("day_of_week", "start_time")
