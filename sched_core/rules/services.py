# sched_core/rules/services.py
from __future__ import annotations

from typing import Any, Iterable, Optional
from uuid import UUID

from django.db import transaction

from sched_core.rules.engine.errors import ConditionValidationError, RuleNotFound
from sched_core.rules.engine.references import map_condition_references, map_zone_references
from sched_core.rules.engine.validation import (
    ACTIONS,
    ensure_valid_rule_payload,
    validate_condition_tree,
    validate_zones,
)
from sched_core.rules.models import Rule
from sched_core.rules.selectors import RuleSelector
from sched_core.rulesets.copy_on_write import (
    MutationResult,
    ensure_mutable,
    resolve_entity_in_working_set,
    resolve_working_rule_set,
    working_set_reference_mapper,
)
from sched_core.rulesets.exceptions import EntityNotFound, EntityValidationError
from sched_core.rulesets.models import RuleSet

_UPDATABLE = ("name", "description", "priority", "action", "enabled", "message", "condition", "zones")


class RuleService:
    """
    Rule write-model operations. Every call first resolves the practice's
    working rule set (forking `source_rule_set_id` when needed) and only
    touches rows inside it.
    """

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _working(practice_id: UUID, source_rule_set_id: UUID) -> RuleSet:
        working = resolve_working_rule_set(practice_id=practice_id, source_rule_set_id=source_rule_set_id)
        ensure_mutable(working)
        return working

    @staticmethod
    def _resolve(rule_id: Any, working: RuleSet) -> Rule:
        try:
            return resolve_entity_in_working_set(Rule, entity_id=rule_id, working=working)
        except EntityNotFound:
            raise RuleNotFound(rule_id)

    @staticmethod
    def _clean_name(working: RuleSet, name: Any, exclude_id: Optional[UUID] = None) -> str:
        cleaned = name.strip() if isinstance(name, str) else ""
        if not cleaned:
            raise EntityValidationError("Rule name is required", field="name")

        if not RuleSelector.is_name_available(rule_set_id=working.id, name=cleaned, exclude_rule_id=exclude_id):
            raise EntityValidationError("A rule with this name already exists in this rule set", field="name")
        return cleaned

    @staticmethod
    def _clean_action(action: Any) -> str:
        if action not in ACTIONS:
            raise EntityValidationError(f"action must be one of {', '.join(ACTIONS)}", field="action")
        return action

    @staticmethod
    def _clean_priority(priority: Any) -> int:
        if not isinstance(priority, int) or isinstance(priority, bool):
            raise EntityValidationError("priority must be an integer", field="priority")
        return priority

    # -------------------------
    # CRUD
    # -------------------------
    @staticmethod
    @transaction.atomic
    def create_rule(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        name: str,
        action: str,
        condition: dict,
        priority: int = 0,
        description: str = "",
        message: str = "",
        enabled: bool = True,
        zones: Optional[dict] = None,
    ) -> MutationResult:
        # payload is validated before any write
        ensure_valid_rule_payload(condition, zones)
        RuleService._clean_action(action)
        RuleService._clean_priority(priority)

        working = RuleService._working(practice_id, source_rule_set_id)
        refs = working_set_reference_mapper(working)
        rule = Rule.objects.create(
            rule_set=working,
            name=RuleService._clean_name(working, name),
            description=description or "",
            priority=priority,
            action=action,
            enabled=bool(enabled),
            message=message or "",
            condition=map_condition_references(condition, refs),
            zones=map_zone_references(zones, refs),
        )
        return MutationResult(entity_id=rule.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def update_rule(
        *, practice_id: UUID, source_rule_set_id: UUID, rule_id: UUID, **updates: Any
    ) -> MutationResult:
        unknown = set(updates) - set(_UPDATABLE)
        if unknown:
            raise EntityValidationError(f"unknown rule fields: {', '.join(sorted(unknown))}", fields=sorted(unknown))

        errors: list[str] = []
        if "condition" in updates:
            errors += validate_condition_tree(updates["condition"])
        if "zones" in updates:
            errors += validate_zones(updates["zones"])
        if errors:
            raise ConditionValidationError(errors)
        if "action" in updates:
            RuleService._clean_action(updates["action"])
        if "priority" in updates:
            RuleService._clean_priority(updates["priority"])

        working = RuleService._working(practice_id, source_rule_set_id)
        rule = RuleService._resolve(rule_id, working)

        if "name" in updates:
            updates["name"] = RuleService._clean_name(working, updates["name"], exclude_id=rule.id)
        # ids may still point into the rule set the edit started from
        refs = working_set_reference_mapper(working)
        if "condition" in updates:
            updates["condition"] = map_condition_references(updates["condition"], refs)
        if "zones" in updates:
            updates["zones"] = map_zone_references(updates["zones"], refs)

        for key, value in updates.items():
            setattr(rule, key, value)
        rule.save(update_fields=[*updates.keys(), "updated_at"])

        return MutationResult(entity_id=rule.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def delete_rule(*, practice_id: UUID, source_rule_set_id: UUID, rule_id: UUID) -> MutationResult:
        working = RuleService._working(practice_id, source_rule_set_id)
        rule = RuleService._resolve(rule_id, working)
        entity_id = rule.id
        rule.delete()
        return MutationResult(entity_id=entity_id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def toggle_rule(*, practice_id: UUID, source_rule_set_id: UUID, rule_id: UUID) -> tuple[MutationResult, bool]:
        working = RuleService._working(practice_id, source_rule_set_id)
        rule = RuleService._resolve(rule_id, working)
        rule.enabled = not rule.enabled
        rule.save(update_fields=["enabled", "updated_at"])
        return MutationResult(entity_id=rule.id, rule_set_id=working.id), rule.enabled

    @staticmethod
    @transaction.atomic
    def copy_rule(
        *, practice_id: UUID, source_rule_set_id: UUID, rule_id: UUID, new_name: str
    ) -> MutationResult:
        working = RuleService._working(practice_id, source_rule_set_id)
        source = RuleService._resolve(rule_id, working)

        rule = Rule.objects.create(
            rule_set=working,
            name=RuleService._clean_name(working, new_name),
            description=source.description,
            priority=source.priority,
            action=source.action,
            enabled=source.enabled,
            message=source.message,
            condition=source.condition,
            zones=source.zones,
        )
        return MutationResult(entity_id=rule.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def reorder_rules(
        *, practice_id: UUID, source_rule_set_id: UUID, ordering: Iterable[tuple[Any, int]]
    ) -> list[MutationResult]:
        """
        Apply [(rule_id, priority), ...] as one batch: either every priority
        changes or none does.
        """
        pairs = list(ordering)
        for _, priority in pairs:
            RuleService._clean_priority(priority)

        working = RuleService._working(practice_id, source_rule_set_id)

        resolved: list[tuple[Rule, int]] = [(RuleService._resolve(rid, working), p) for rid, p in pairs]
        for rule, priority in resolved:
            rule.priority = priority
        Rule.objects.bulk_update([r for r, _ in resolved], ["priority"])

        return [MutationResult(entity_id=r.id, rule_set_id=working.id) for r, _ in resolved]
