# sched_core/rulesets/selectors.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from sched_core.rulesets.exceptions import NoActiveRuleSet, RuleSetNotFound
from sched_core.rulesets.models import RuleSet, RuleSetEvent


class RuleSetSelector:
    @staticmethod
    def get_rule_set(*, rule_set_id: UUID) -> RuleSet:
        try:
            return RuleSet.objects.get(id=rule_set_id)
        except (RuleSet.DoesNotExist, ValidationError):
            raise RuleSetNotFound(rule_set_id)

    @staticmethod
    def list_rule_sets(*, practice_id: UUID) -> QuerySet[RuleSet]:
        return RuleSet.objects.filter(practice_id=practice_id).order_by("-created_at", "-version")

    @staticmethod
    def get_unsaved_rule_set(*, practice_id: UUID) -> Optional[RuleSet]:
        return RuleSet.objects.filter(practice_id=practice_id, saved=False).first()

    @staticmethod
    def get_active_rule_set(*, practice_id: UUID) -> RuleSet:
        rule_set = RuleSet.objects.filter(practice_id=practice_id, is_active=True, saved=True).first()
        if rule_set is None:
            raise NoActiveRuleSet(practice_id)
        return rule_set

    @staticmethod
    def version_history(*, practice_id: UUID) -> list[dict[str, Any]]:
        """
        Version graph input, newest first:
          [{id, createdAt, isActive, message, parents, version, saved}]
        """
        return [
            {
                "id": str(rs.id),
                "createdAt": rs.created_at.isoformat(),
                "isActive": rs.is_active,
                "message": rs.description,
                "parents": list(rs.parent_versions or []),
                "version": rs.version,
                "saved": rs.saved,
            }
            for rs in RuleSetSelector.list_rule_sets(practice_id=practice_id)
        ]

    @staticmethod
    def list_events(*, practice_id: UUID, rule_set_id: Optional[UUID] = None) -> QuerySet[RuleSetEvent]:
        qs = RuleSetEvent.objects.filter(practice_id=practice_id)
        if rule_set_id is not None:
            qs = qs.filter(rule_set_id=rule_set_id)
        return qs.order_by("-occurred_at")
