# sched_core/practices/selectors.py
from __future__ import annotations

from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from sched_core.practices.models import Practice
from sched_core.rulesets.exceptions import PracticeNotFound


class PracticeSelector:
    @staticmethod
    def get_practice(*, practice_id: UUID) -> Practice:
        try:
            return Practice.objects.get(id=practice_id)
        except (Practice.DoesNotExist, ValidationError):
            raise PracticeNotFound(practice_id)

    @staticmethod
    def list_practices() -> QuerySet[Practice]:
        return Practice.objects.all().order_by("name")
