# sched_core/practices/models.py
from __future__ import annotations

import uuid

from django.db import models

from sched_core.common.models import TimeStampedModel


class Practice(TimeStampedModel):
    """
    A medical practice: the scope every rule set and appointment belongs to.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)

    class Meta:
        db_table = "practices_practice"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name
