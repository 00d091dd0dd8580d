# sched_core/rulesets/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction

from sched_core.common.events import RULESET_ACTIVATED, RULESET_DISCARDED, RULESET_SAVED, publish
from sched_core.practices.models import Practice
from sched_core.rulesets.copy_on_write import get_or_create_unsaved_rule_set, resolve_working_rule_set
from sched_core.rulesets.exceptions import (
    InvalidRuleSetDescription,
    NoUnsavedRuleSet,
    PracticeNotFound,
    RuleSetNotFound,
    RuleSetNotSaved,
    RuleSetPracticeMismatch,
)
from sched_core.rulesets.models import RuleSet
from sched_core.rulesets.snapshots import build_canonical_snapshot

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 255


@dataclass(frozen=True)
class DiscardOutcome:
    deleted: bool
    reason: str  # discarded | has_changes | no_parent | not_unsaved | parent_missing
    parent_rule_set_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"deleted": self.deleted, "reason": self.reason}
        if self.parent_rule_set_id is not None:
            out["parentRuleSetId"] = self.parent_rule_set_id
        return out


class RuleSetService:
    """
    Rule set lifecycle:
        unsaved --save--> saved/inactive --set_active--> saved/active
        unsaved --discard--> deleted (with every entity it holds)
    """

    # re-exported so callers need a single import
    resolve_working_rule_set = staticmethod(resolve_working_rule_set)
    get_or_create_unsaved_rule_set = staticmethod(get_or_create_unsaved_rule_set)

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _lock_practice(practice_id: UUID) -> Practice:
        try:
            return Practice.objects.select_for_update().get(id=practice_id)
        except (Practice.DoesNotExist, ValidationError):
            raise PracticeNotFound(practice_id)

    @staticmethod
    def _clean_description(practice_id: UUID, description: Any, exclude_id: UUID) -> str:
        if not isinstance(description, str) or not description.strip():
            raise InvalidRuleSetDescription("Description must not be empty", description)

        cleaned = description.strip()
        if len(cleaned) > MAX_DESCRIPTION_LENGTH:
            raise InvalidRuleSetDescription(
                f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters", description
            )

        clash = (
            RuleSet.objects.filter(practice_id=practice_id, saved=True, description=cleaned)
            .exclude(id=exclude_id)
            .exists()
        )
        if clash:
            raise InvalidRuleSetDescription("A saved rule set with this description already exists", description)
        return cleaned

    @staticmethod
    def _activate(practice_id: UUID, rule_set: RuleSet) -> Optional[RuleSet]:
        """
        Deactivate the current active rule set, then activate `rule_set`.
        Caller holds the practice lock inside one transaction.
        """
        previous = (
            RuleSet.objects.select_for_update()
            .filter(practice_id=practice_id, is_active=True)
            .exclude(id=rule_set.id)
            .first()
        )
        if previous is not None:
            previous.is_active = False
            previous.save(update_fields=["is_active", "updated_at"])

        rule_set.is_active = True
        rule_set.save(update_fields=["is_active", "updated_at"])
        return previous

    # -------------------------
    # Lifecycle
    # -------------------------
    @staticmethod
    @transaction.atomic
    def save_unsaved_rule_set(*, practice_id: UUID, description: str, set_as_active: bool = False) -> RuleSet:
        practice = RuleSetService._lock_practice(practice_id)

        rule_set = RuleSet.objects.select_for_update().filter(practice=practice, saved=False).first()
        if rule_set is None:
            raise NoUnsavedRuleSet(practice_id)

        rule_set.description = RuleSetService._clean_description(practice.id, description, rule_set.id)
        rule_set.saved = True
        rule_set.save(update_fields=["description", "saved", "updated_at"])

        logger.info("saved rule set %s (v%s) for practice %s", rule_set.id, rule_set.version, practice.id)
        publish(
            RULESET_SAVED,
            {"practice_id": str(practice.id), "rule_set_id": str(rule_set.id), "version": rule_set.version},
        )

        if set_as_active:
            previous = RuleSetService._activate(practice.id, rule_set)
            RuleSetService._announce_activation(practice.id, rule_set, previous)

        return rule_set

    @staticmethod
    def _announce_activation(practice_id: UUID, rule_set: RuleSet, previous: Optional[RuleSet]) -> None:
        logger.info(
            "activated rule set %s for practice %s (previous: %s)",
            rule_set.id,
            practice_id,
            previous.id if previous else None,
        )
        publish(
            RULESET_ACTIVATED,
            {
                "practice_id": str(practice_id),
                "rule_set_id": str(rule_set.id),
                "previous_rule_set_id": str(previous.id) if previous else None,
            },
        )

    @staticmethod
    @transaction.atomic
    def discard_unsaved_rule_set(*, practice_id: UUID) -> UUID:
        practice = RuleSetService._lock_practice(practice_id)

        rule_set = RuleSet.objects.filter(practice=practice, saved=False).first()
        if rule_set is None:
            raise NoUnsavedRuleSet(practice_id)

        rule_set_id = rule_set.id
        # entities are removed through the rule_set foreign key cascade
        rule_set.delete()

        logger.info("discarded unsaved rule set %s for practice %s", rule_set_id, practice.id)
        publish(RULESET_DISCARDED, {"practice_id": str(practice.id), "rule_set_id": str(rule_set_id)})
        return rule_set_id

    @staticmethod
    @transaction.atomic
    def set_active_rule_set(*, practice_id: UUID, rule_set_id: UUID) -> RuleSet:
        practice = RuleSetService._lock_practice(practice_id)

        try:
            rule_set = RuleSet.objects.select_for_update().get(id=rule_set_id)
        except (RuleSet.DoesNotExist, ValidationError):
            raise RuleSetNotFound(rule_set_id)

        if rule_set.practice_id != practice.id:
            raise RuleSetPracticeMismatch(rule_set_id, practice_id)
        if not rule_set.saved:
            raise RuleSetNotSaved(rule_set_id)
        if rule_set.is_active:
            return rule_set

        previous = RuleSetService._activate(practice.id, rule_set)
        RuleSetService._announce_activation(practice.id, rule_set, previous)
        return rule_set

    @staticmethod
    @transaction.atomic
    def discard_unsaved_rule_set_if_equivalent(*, practice_id: UUID, rule_set_id: UUID) -> DiscardOutcome:
        """
        Drop a working copy that ended up identical to the rule set it was
        forked from (e.g. every edit was undone by hand).
        """
        practice = RuleSetService._lock_practice(practice_id)

        try:
            rule_set = RuleSet.objects.get(id=rule_set_id)
        except (RuleSet.DoesNotExist, ValidationError):
            raise RuleSetNotFound(rule_set_id)
        if rule_set.practice_id != practice.id:
            raise RuleSetPracticeMismatch(rule_set_id, practice_id)

        if rule_set.saved:
            return DiscardOutcome(deleted=False, reason="not_unsaved")

        parent_id = rule_set.parent_id
        if not parent_id:
            return DiscardOutcome(deleted=False, reason="no_parent")

        parent = RuleSet.objects.filter(id=parent_id, practice=practice).first()
        if parent is None:
            return DiscardOutcome(deleted=False, reason="parent_missing", parent_rule_set_id=str(parent_id))

        if build_canonical_snapshot(rule_set.id) != build_canonical_snapshot(parent.id):
            return DiscardOutcome(deleted=False, reason="has_changes", parent_rule_set_id=str(parent.id))

        rule_set.delete()
        logger.info("discarded unchanged rule set %s (parent %s)", rule_set_id, parent.id)
        publish(RULESET_DISCARDED, {"practice_id": str(practice.id), "rule_set_id": str(rule_set_id)})
        return DiscardOutcome(deleted=True, reason="discarded", parent_rule_set_id=str(parent.id))
