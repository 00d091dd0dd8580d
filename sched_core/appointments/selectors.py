# sched_core/appointments/selectors.py
from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping, Optional
from uuid import UUID

from django.conf import settings
from django.db.models import QuerySet

from sched_core.appointments.models import Appointment
from sched_core.rules.engine.timeofday import parse_instant

DEFAULT_WINDOW_HOURS = 4


def appointment_window() -> timedelta:
    hours = getattr(settings, "SCHEDULING_APPOINTMENT_WINDOW_HOURS", DEFAULT_WINDOW_HOURS)
    return timedelta(hours=hours)


class AppointmentSelector:
    @staticmethod
    def list_for_practice(*, practice_id: UUID, start=None, end=None) -> QuerySet[Appointment]:
        qs = Appointment.objects.filter(practice_id=practice_id)
        if start is not None:
            qs = qs.filter(start__gte=parse_instant(start))
        if end is not None:
            qs = qs.filter(start__lte=parse_instant(end))
        return qs.order_by("start")

    @staticmethod
    def fetch_relevant_appointments(
        *,
        practice_id: UUID,
        slot: Mapping[str, Any],
        window: Optional[timedelta] = None,
    ) -> list[dict[str, Any]]:
        """
        Appointments of the practice whose start lies within
        [slot.start - window, slot.end + window], as evaluator contexts.

        Appointments starting outside the window are invisible to rule
        evaluation even if they are long enough to reach the slot.
        """
        window = appointment_window() if window is None else window
        query_start = parse_instant(slot["start"]) - window
        query_end = parse_instant(slot["end"]) + window

        qs = Appointment.objects.filter(
            practice_id=practice_id,
            start__gte=query_start,
            start__lte=query_end,
        ).order_by("start")
        return [appt.to_context() for appt in qs]
