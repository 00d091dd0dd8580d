from sched_core.rules.engine.conditions import (
    AdjacentCondition,
    AndCondition,
    ConditionTree,
    CountCondition,
    NotCondition,
    OrCondition,
    PropertyCondition,
    TimeRangeFreeCondition,
    condition_to_dict,
    parse_condition,
)
from sched_core.rules.engine.durations import parse_duration
from sched_core.rules.engine.errors import (
    ConditionValidationError,
    InvalidConditionType,
    InvalidDateTimeFormat,
    InvalidDurationFormat,
    InvalidTimeFormat,
    RuleEngineError,
    RuleNotFound,
    TypeMismatch,
    UnknownOperator,
)
from sched_core.rules.engine.evaluator import RuleEvaluationResult, evaluate, evaluate_rules
from sched_core.rules.engine.operators import compare
from sched_core.rules.engine.timeofday import (
    extract_time_of_day,
    is_within_time_of_day_range,
    parse_time_of_day,
    time_ranges_overlap,
)
from sched_core.rules.engine.validation import validate_condition_tree, validate_zones

__all__ = [
    "AdjacentCondition",
    "AndCondition",
    "ConditionTree",
    "ConditionValidationError",
    "CountCondition",
    "InvalidConditionType",
    "InvalidDateTimeFormat",
    "InvalidDurationFormat",
    "InvalidTimeFormat",
    "NotCondition",
    "OrCondition",
    "PropertyCondition",
    "RuleEngineError",
    "RuleEvaluationResult",
    "RuleNotFound",
    "TimeRangeFreeCondition",
    "TypeMismatch",
    "UnknownOperator",
    "compare",
    "condition_to_dict",
    "evaluate",
    "evaluate_rules",
    "extract_time_of_day",
    "is_within_time_of_day_range",
    "parse_condition",
    "parse_duration",
    "parse_time_of_day",
    "time_ranges_overlap",
    "validate_condition_tree",
    "validate_zones",
]
