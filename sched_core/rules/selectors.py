# sched_core/rules/selectors.py
from __future__ import annotations

from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from sched_core.rules.engine.errors import RuleNotFound
from sched_core.rules.models import Rule
from sched_core.rulesets.selectors import RuleSetSelector


class RuleSelector:
    @staticmethod
    def get_rule(*, rule_id: UUID) -> Rule:
        try:
            return Rule.objects.get(id=rule_id)
        except (Rule.DoesNotExist, ValidationError):
            raise RuleNotFound(rule_id)

    @staticmethod
    def list_rules(*, rule_set_id: UUID, enabled_only: bool = False) -> QuerySet[Rule]:
        RuleSetSelector.get_rule_set(rule_set_id=rule_set_id)
        qs = Rule.objects.filter(rule_set_id=rule_set_id)
        if enabled_only:
            qs = qs.filter(enabled=True)
        return qs.order_by("priority", "created_at", "name")

    @staticmethod
    def is_name_available(*, rule_set_id: UUID, name: str, exclude_rule_id: UUID | None = None) -> bool:
        qs = Rule.objects.filter(rule_set_id=rule_set_id, name=name.strip())
        if exclude_rule_id:
            qs = qs.exclude(id=exclude_rule_id)
        return not qs.exists()
