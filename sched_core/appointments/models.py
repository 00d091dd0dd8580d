# sched_core/appointments/models.py
from __future__ import annotations

from typing import Any

from django.db import models

from sched_core.common.clock import to_scheduling_clock
from sched_core.common.models import PracticeScopedModel


class Appointment(PracticeScopedModel):
    """
    A booked appointment. Not versioned: appointments live outside rule sets
    and reference entities by id only.
    """
    title = models.CharField(max_length=255, blank=True, default="")
    start = models.DateTimeField(db_index=True)
    end = models.DateTimeField()

    appointment_type_id = models.UUIDField(null=True, blank=True)
    practitioner_id = models.UUIDField(null=True, blank=True)
    location_id = models.UUIDField(null=True, blank=True)

    class Meta:
        db_table = "appointments_appointment"
        ordering = ["start"]
        indexes = [
            models.Index(fields=["practice_id", "start"]),
        ]

    def __str__(self) -> str:
        return f"{self.start.isoformat()} {self.title}".strip()

    def to_context(self) -> dict[str, Any]:
        """
        Evaluator view of the appointment: {_id, start, end, type?, doctor?, location?}.
        start / end are written on the scheduling clock.
        """
        ctx: dict[str, Any] = {
            "_id": str(self.id),
            "start": to_scheduling_clock(self.start),
            "end": to_scheduling_clock(self.end),
        }
        if self.appointment_type_id is not None:
            ctx["type"] = str(self.appointment_type_id)
        if self.practitioner_id is not None:
            ctx["doctor"] = str(self.practitioner_id)
        if self.location_id is not None:
            ctx["location"] = str(self.location_id)
        return ctx
