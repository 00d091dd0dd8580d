# sched_core/rulesets/exceptions.py
from __future__ import annotations

from typing import Any

from sched_core.rules.engine.errors import RuleEngineError


class PracticeNotFound(RuleEngineError):
    code = "practice_not_found"

    def __init__(self, practice_id: Any):
        super().__init__(f"Practice not found: {practice_id}", details={"practice_id": str(practice_id)})


class RuleSetNotFound(RuleEngineError):
    code = "rule_set_not_found"

    def __init__(self, rule_set_id: Any):
        super().__init__(f"Rule set not found: {rule_set_id}", details={"rule_set_id": str(rule_set_id)})


class RuleSetPracticeMismatch(RuleEngineError):
    code = "rule_set_practice_mismatch"

    def __init__(self, rule_set_id: Any, practice_id: Any):
        super().__init__(
            "Rule set does not belong to this practice",
            details={"rule_set_id": str(rule_set_id), "practice_id": str(practice_id)},
        )


class NoUnsavedRuleSet(RuleEngineError):
    code = "no_unsaved_rule_set"

    def __init__(self, practice_id: Any):
        super().__init__(
            "No unsaved rule set exists for this practice",
            details={"practice_id": str(practice_id)},
            help="Make a change first; the working copy is created on the first mutation",
        )


class NoActiveRuleSet(RuleEngineError):
    code = "no_active_rule_set"

    def __init__(self, practice_id: Any):
        super().__init__("No active rule set for this practice", details={"practice_id": str(practice_id)})


class RuleSetImmutable(RuleEngineError):
    code = "rule_set_immutable"

    def __init__(self, rule_set_id: Any):
        super().__init__(
            "Saved rule sets cannot be modified",
            details={"rule_set_id": str(rule_set_id)},
            help="Changes are applied to the unsaved working copy",
        )


class RuleSetNotSaved(RuleEngineError):
    code = "rule_set_not_saved"

    def __init__(self, rule_set_id: Any):
        super().__init__(
            "Only saved rule sets can be activated",
            details={"rule_set_id": str(rule_set_id)},
        )


class InvalidRuleSetDescription(RuleEngineError):
    code = "invalid_rule_set_description"

    def __init__(self, message: str, description: Any = None):
        super().__init__(message, details={"description": description})


class EntityNotFound(RuleEngineError):
    code = "entity_not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "entity_id": str(entity_id)},
        )


class EntityValidationError(RuleEngineError):
    code = "entity_validation_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message, details=details)


class StaleSnapshot(RuleEngineError):
    """The working rule set no longer matches what the caller last read."""

    code = "stale_snapshot"

    def __init__(self, message: str, **details: Any):
        super().__init__(message, details=details, help="Reload the rule set and try again")


class DataIntegrityError(RuleEngineError):
    """
    A store invariant does not hold (e.g. an entity has no copy in the working
    rule set). Indicates a bug; never retried.
    """

    code = "data_integrity_error"
