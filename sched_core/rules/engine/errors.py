# sched_core/rules/engine/errors.py
from __future__ import annotations

from typing import Any, Optional, Sequence


class RuleEngineError(Exception):
    """
    Base class for every scheduling-domain error.

    Carries a stable machine code, structured details and an optional hint,
    so the API layer can render the canonical error envelope without
    string-parsing messages.
    """

    code = "rule_engine_error"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None, help: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.help = help

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message, "details": self.details}
        if self.help:
            out["help"] = self.help
        return out


# -----------------------
# Parsing / comparison
# -----------------------
class InvalidDurationFormat(RuleEngineError):
    code = "invalid_duration_format"

    def __init__(self, duration: Any):
        super().__init__(
            f'Invalid duration format: "{duration}"',
            details={"received": duration, "expected": "Duration like '35min', '2h' or '1h30min'"},
            help="Use formats like: 35min, 2h, 1h30min, 90min",
        )


class InvalidTimeFormat(RuleEngineError):
    code = "invalid_time_format"

    def __init__(self, value: Any):
        super().__init__(
            f'Invalid time of day: "{value}"',
            details={"received": value, "expected": "HH:MM between 00:00 and 23:59"},
        )


class UnknownOperator(RuleEngineError):
    code = "unknown_operator"

    def __init__(self, operator: Any, allowed: Sequence[str]):
        super().__init__(
            f'Unknown comparison operator: "{operator}"',
            details={"received": operator, "allowed": list(allowed)},
            help=f"Use one of: {', '.join(allowed)}",
        )


class TypeMismatch(RuleEngineError):
    code = "type_mismatch"

    def __init__(self, operator: str, left: Any, right: Any, expected: str = "numeric"):
        super().__init__(
            f'Type mismatch: cannot use operator "{operator}" with these operands',
            details={
                "operator": operator,
                "left": repr(left),
                "left_type": type(left).__name__,
                "right": repr(right),
                "right_type": type(right).__name__,
                "expected": expected,
            },
            help=f'The operator "{operator}" requires {expected} operands',
        )
        self.operator = operator
        self.left = left
        self.right = right


# -----------------------
# Condition trees
# -----------------------
class InvalidConditionType(RuleEngineError):
    code = "invalid_condition_type"

    def __init__(self, condition_type: Any, allowed: Sequence[str], path: str = "root"):
        super().__init__(
            f'Unknown condition type: "{condition_type}"',
            details={"received": condition_type, "allowed": list(allowed), "path": path},
            help=f"Valid condition types: {', '.join(allowed)}",
        )


class ConditionValidationError(RuleEngineError):
    """
    Raised with every structural problem found in a condition tree,
    e.g. ["root.children[1]: missing 'op' field for Property"].
    """

    code = "condition_validation_error"

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(
            f"Invalid condition tree ({len(self.errors)} problem(s))",
            details={"errors": self.errors},
        )


class RuleNotFound(RuleEngineError):
    code = "rule_not_found"

    def __init__(self, rule_id: Any):
        super().__init__(
            f"Rule not found: {rule_id}",
            details={"rule_id": str(rule_id)},
            help="Verify that the rule id is correct and the rule has not been deleted",
        )


class InvalidDateTimeFormat(RuleEngineError):
    code = "invalid_datetime_format"

    def __init__(self, value: Any):
        super().__init__(
            f'Invalid ISO 8601 datetime: "{value}"',
            details={"received": value, "expected": "ISO 8601 datetime, e.g. 2025-01-06T09:30:00Z"},
        )
