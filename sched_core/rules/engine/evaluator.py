# sched_core/rules/engine/evaluator.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from sched_core.rules.engine.conditions import (
    SLOT_START,
    AdjacentCondition,
    AndCondition,
    ConditionTree,
    CountCondition,
    NotCondition,
    OrCondition,
    PropertyCondition,
    TimeRangeFreeCondition,
    parse_condition,
)
from sched_core.rules.engine.durations import duration_as_timedelta
from sched_core.rules.engine.errors import InvalidConditionType
from sched_core.rules.engine.operators import compare, strict_equals
from sched_core.rules.engine.timeofday import is_within_time_of_day_range, parse_instant, time_ranges_overlap

ACTION_BLOCK = "BLOCK"
ACTION_ALLOW = "ALLOW"
DEFAULT_MESSAGE = "no matching rules"

_MISSING = object()


@dataclass(frozen=True)
class RuleEvaluationResult:
    action: str
    message: str
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    zones: Optional[Any] = None

    @property
    def blocked(self) -> bool:
        return self.action == ACTION_BLOCK

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"action": self.action, "message": self.message}
        if self.rule_id is not None:
            out["ruleId"] = self.rule_id
        if self.rule_name is not None:
            out["ruleName"] = self.rule_name
        if self.zones is not None:
            out["zones"] = self.zones
        return out


# -----------------------
# Leaf helpers
# -----------------------
def _in_scope(node: Any, slot: Mapping[str, Any]) -> bool:
    return is_within_time_of_day_range(slot["start"], node.time_start, node.time_end)


def _matches_filter(appointment: Mapping[str, Any], filter_: Mapping[str, Any]) -> bool:
    for key, expected in filter_.items():
        if key == "overlaps":
            continue
        if not strict_equals(appointment.get(key, _MISSING), expected):
            return False
    return True


def _evaluate_property(node: PropertyCondition, slot: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
    if not _in_scope(node, slot):
        return False

    source = slot if node.entity == "Slot" else context
    value = source.get(node.attr, _MISSING)
    if value is _MISSING or value is None:
        return False
    return compare(value, node.op, node.value)


def _evaluate_count(node: CountCondition, slot: Mapping[str, Any], appointments: Sequence[Mapping[str, Any]]) -> bool:
    scoped = node.time_start is not None or node.time_end is not None
    if scoped and not _in_scope(node, slot):
        return False

    count = 0
    for appt in appointments:
        if node.filter.get("overlaps") is True:
            if not time_ranges_overlap(slot["start"], slot["end"], appt["start"], appt["end"]):
                continue
        if scoped and not is_within_time_of_day_range(appt["start"], node.time_start, node.time_end):
            continue
        if _matches_filter(appt, node.filter):
            count += 1

    return compare(count, node.op, node.value)


def _evaluate_time_range_free(
    node: TimeRangeFreeCondition, slot: Mapping[str, Any], appointments: Sequence[Mapping[str, Any]]
) -> bool:
    if not _in_scope(node, slot):
        return False

    window_start = parse_instant(slot["start"] if node.anchor == SLOT_START else slot["end"])
    window_end = window_start + duration_as_timedelta(node.duration)

    return not any(time_ranges_overlap(window_start, window_end, a["start"], a["end"]) for a in appointments)


def _evaluate_adjacent(node: AdjacentCondition, slot: Mapping[str, Any], appointments: Sequence[Mapping[str, Any]]) -> bool:
    if not _in_scope(node, slot):
        return False

    if node.direction == "before":
        target, boundary = parse_instant(slot["start"]), "end"
    else:
        target, boundary = parse_instant(slot["end"]), "start"

    for appt in appointments:
        if parse_instant(appt[boundary]) != target:
            continue
        if _matches_filter(appt, node.filter):
            return True
    return False


# -----------------------
# Public entry points
# -----------------------
def evaluate(
    node: ConditionTree,
    slot: Mapping[str, Any],
    appointments: Sequence[Mapping[str, Any]],
    context: Optional[Mapping[str, Any]] = None,
) -> bool:
    """
    Recursive descent over a typed condition tree. Pure: no I/O, no mutation
    of its inputs. Parsing and comparison errors propagate to the caller.
    """
    context = context or {}

    if isinstance(node, PropertyCondition):
        return _evaluate_property(node, slot, context)
    if isinstance(node, CountCondition):
        return _evaluate_count(node, slot, appointments)
    if isinstance(node, TimeRangeFreeCondition):
        return _evaluate_time_range_free(node, slot, appointments)
    if isinstance(node, AdjacentCondition):
        return _evaluate_adjacent(node, slot, appointments)

    if isinstance(node, AndCondition):
        return all(evaluate(child, slot, appointments, context) for child in node.children)
    if isinstance(node, OrCondition):
        return any(evaluate(child, slot, appointments, context) for child in node.children)
    if isinstance(node, NotCondition):
        return not evaluate(node.child, slot, appointments, context)

    raise InvalidConditionType(getattr(node, "type", type(node).__name__), ())


def _rule_value(rule: Any, name: str, default: Any = None) -> Any:
    if isinstance(rule, Mapping):
        return rule.get(name, default)
    return getattr(rule, name, default)


def evaluate_rules(
    rules: Iterable[Any],
    slot: Mapping[str, Any],
    appointments: Sequence[Mapping[str, Any]],
    context: Optional[Mapping[str, Any]] = None,
) -> RuleEvaluationResult:
    """
    First match wins over enabled rules, ordered by ascending priority.

    `rules` may be Rule model instances or plain dicts; a rule's condition may
    be the typed tree or its JSON form.
    """
    enabled = [r for r in rules if _rule_value(r, "enabled", True)]
    # sorted() is stable: equal priorities keep their input order
    ordered = sorted(enabled, key=lambda r: _rule_value(r, "priority", 0))

    for rule in ordered:
        condition = _rule_value(rule, "condition")
        if isinstance(condition, Mapping):
            condition = parse_condition(condition)

        if not evaluate(condition, slot, appointments, context):
            continue

        rule_id = _rule_value(rule, "id")
        return RuleEvaluationResult(
            action=_rule_value(rule, "action"),
            message=_rule_value(rule, "message", ""),
            rule_id=str(rule_id) if rule_id is not None else None,
            rule_name=_rule_value(rule, "name"),
            zones=_rule_value(rule, "zones"),
        )

    return RuleEvaluationResult(action=ACTION_ALLOW, message=DEFAULT_MESSAGE)
