# sched_core/entities/models.py
from __future__ import annotations

from django.db import models

from sched_core.common.models import RuleSetScopedModel


class Practitioner(RuleSetScopedModel):
    name = models.CharField(max_length=255)
    tags = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "entities_practitioner"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["rule_set", "parent_id"]),
        ]

    def __str__(self) -> str:
        return self.name


class Location(RuleSetScopedModel):
    name = models.CharField(max_length=255)

    class Meta:
        db_table = "entities_location"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["rule_set", "parent_id"]),
        ]

    def __str__(self) -> str:
        return self.name


class AppointmentType(RuleSetScopedModel):
    """
    Bookable appointment kind. allowed_practitioner_ids holds practitioner ids
    (str) of the same rule set.
    """
    name = models.CharField(max_length=255)
    duration = models.PositiveIntegerField(help_text="Minutes")
    allowed_practitioner_ids = models.JSONField(default=list)

    class Meta:
        db_table = "entities_appointment_type"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["rule_set", "name"], name="uq_appointment_type_rule_set_name"),
        ]
        indexes = [
            models.Index(fields=["rule_set", "parent_id"]),
        ]

    def __str__(self) -> str:
        return self.name


class BaseSchedule(RuleSetScopedModel):
    """
    Weekly working hours of a practitioner at a location.
    Times are "HH:MM"; break_times is a list of {"start", "end"}.
    """
    practitioner = models.ForeignKey(Practitioner, on_delete=models.CASCADE, related_name="base_schedules")
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name="base_schedules")

    day_of_week = models.PositiveSmallIntegerField()  # 0=Sunday .. 6=Saturday
    start_time = models.CharField(max_length=5)
    end_time = models.CharField(max_length=5)
    break_times = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "entities_base_schedule"
        ordering = ["day_of_week", "start_time"]
        indexes = [
            models.Index(fields=["rule_set", "parent_id"]),
            models.Index(fields=["rule_set", "practitioner"]),
        ]

    def __str__(self) -> str:
        return f"{self.practitioner_id} d{self.day_of_week} {self.start_time}-{self.end_time}"
