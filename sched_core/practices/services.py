# sched_core/practices/services.py
from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction

from sched_core.practices.models import Practice
from sched_core.rulesets.exceptions import EntityValidationError
from sched_core.rulesets.models import RuleSet

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DESCRIPTION = "Initial configuration"


class PracticeService:
    @staticmethod
    @transaction.atomic
    def create_practice(*, name: str) -> Practice:
        """
        New practice plus its first rule set (v1, saved and active), so that
        every later edit has a source to fork from.
        """
        cleaned = name.strip() if isinstance(name, str) else ""
        if not cleaned:
            raise EntityValidationError("Practice name is required", field="name")

        practice = Practice.objects.create(name=cleaned)
        rule_set = RuleSet.objects.create(
            practice=practice,
            version=1,
            description=getattr(settings, "SCHEDULING_INITIAL_DESCRIPTION", DEFAULT_INITIAL_DESCRIPTION),
            saved=True,
            is_active=True,
            parent_versions=[],
        )
        logger.info("created practice %s with initial rule set %s", practice.id, rule_set.id)
        return practice
