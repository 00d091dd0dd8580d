# sched_core/rules/engine/validation.py
from __future__ import annotations

from typing import Any, Mapping

from sched_core.rules.engine.conditions import CONDITION_TYPES, SLOT_END, SLOT_START
from sched_core.rules.engine.durations import parse_duration
from sched_core.rules.engine.errors import ConditionValidationError, InvalidDurationFormat, InvalidTimeFormat
from sched_core.rules.engine.operators import COUNT_OPERATORS, OPERATORS
from sched_core.rules.engine.timeofday import parse_time_of_day

PROPERTY_ENTITIES = ("Slot", "Context")
DIRECTIONS = ("before", "after")
ACTIONS = ("BLOCK", "ALLOW")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_time(errors: list[str], path: str, node: Mapping[str, Any], key: str, kind: str) -> None:
    if key not in node or node[key] is None:
        return
    try:
        parse_time_of_day(node[key])
    except InvalidTimeFormat:
        errors.append(f"{path}: invalid '{key}' time for {kind} (expected HH:MM)")


def _check_op(errors: list[str], path: str, node: Mapping[str, Any], kind: str, allowed: tuple) -> None:
    op = node.get("op")
    if not op or not isinstance(op, str):
        errors.append(f"{path}: missing 'op' field for {kind}")
    elif op not in allowed:
        errors.append(f"{path}: unknown operator '{op}' for {kind}")


def _check_filter(errors: list[str], path: str, node: Mapping[str, Any], kind: str) -> None:
    if not isinstance(node.get("filter"), Mapping):
        errors.append(f"{path}: missing or invalid 'filter' field for {kind}")


def _validate_node(node: Any, path: str, errors: list[str]) -> None:
    if not isinstance(node, Mapping):
        errors.append(f"{path}: invalid node structure")
        return

    kind = node.get("type")
    if not kind or not isinstance(kind, str):
        errors.append(f"{path}: missing or invalid 'type' field")
        return

    if kind == "Property":
        if node.get("entity") not in PROPERTY_ENTITIES:
            errors.append(f"{path}: invalid 'entity' field for Property")
        if not node.get("attr") or not isinstance(node.get("attr"), str):
            errors.append(f"{path}: missing 'attr' field for Property")
        _check_op(errors, path, node, kind, OPERATORS)
        if "value" not in node:
            errors.append(f"{path}: missing 'value' field for Property")
        elif node.get("op") in ("IN", "NOT_IN") and not isinstance(node["value"], list):
            errors.append(f"{path}: 'value' must be a list for operator {node['op']}")
        _check_time(errors, path, node, "start", kind)
        _check_time(errors, path, node, "end", kind)

    elif kind == "Count":
        if node.get("entity", "Appointment") != "Appointment":
            errors.append(f"{path}: invalid 'entity' field for Count")
        _check_filter(errors, path, node, kind)
        _check_op(errors, path, node, kind, COUNT_OPERATORS)
        if not _is_number(node.get("value")):
            errors.append(f"{path}: missing or invalid 'value' field for Count")
        _check_time(errors, path, node, "start", kind)
        _check_time(errors, path, node, "end", kind)

    elif kind == "TimeRangeFree":
        if node.get("start") not in (SLOT_START, SLOT_END):
            errors.append(f"{path}: invalid 'start' field for TimeRangeFree")
        duration = node.get("duration")
        if not duration or not isinstance(duration, str):
            errors.append(f"{path}: missing 'duration' field for TimeRangeFree")
        else:
            try:
                parse_duration(duration)
            except InvalidDurationFormat:
                errors.append(f"{path}: invalid 'duration' '{duration}' for TimeRangeFree")
        _check_time(errors, path, node, "timeOfDayStart", kind)
        _check_time(errors, path, node, "end", kind)

    elif kind == "Adjacent":
        if node.get("entity", "Appointment") != "Appointment":
            errors.append(f"{path}: invalid 'entity' field for Adjacent")
        _check_filter(errors, path, node, kind)
        if node.get("direction") not in DIRECTIONS:
            errors.append(f"{path}: invalid 'direction' field for Adjacent")
        _check_time(errors, path, node, "start", kind)
        _check_time(errors, path, node, "end", kind)

    elif kind in ("AND", "OR"):
        children = node.get("children")
        if not isinstance(children, list):
            errors.append(f"{path}: missing 'children' field for {kind}")
        else:
            for i, child in enumerate(children):
                _validate_node(child, f"{path}.children[{i}]", errors)

    elif kind == "NOT":
        if not node.get("child"):
            errors.append(f"{path}: missing 'child' field for NOT")
        else:
            _validate_node(node["child"], f"{path}.child", errors)

    else:
        errors.append(f"{path}: unknown condition type '{kind}' (expected one of {', '.join(CONDITION_TYPES)})")


def validate_condition_tree(data: Any) -> list[str]:
    """
    Structural check of a condition tree received as JSON.

    Returns every problem found as a path-qualified message; an empty list
    means the tree can be parsed and evaluated.
    """
    errors: list[str] = []
    _validate_node(data, "root", errors)
    return errors


def validate_zones(data: Any) -> list[str]:
    if data is None:
        return []
    if not isinstance(data, Mapping):
        return ["zones: must be an object"]

    errors: list[str] = []
    create = data.get("createZone")
    if create is None:
        return errors
    if not isinstance(create, Mapping):
        return ["zones.createZone: must be an object"]

    _validate_node(create.get("condition"), "zones.createZone.condition", errors)

    zone = create.get("zone")
    if not isinstance(zone, Mapping):
        errors.append("zones.createZone: missing 'zone' field")
        return errors

    if not isinstance(zone.get("allowOnly"), list):
        errors.append("zones.createZone.zone: missing 'allowOnly' list")
    if zone.get("start") not in (SLOT_START, SLOT_END):
        errors.append("zones.createZone.zone: invalid 'start' field")
    try:
        parse_duration(zone.get("duration"))
    except InvalidDurationFormat:
        errors.append("zones.createZone.zone: invalid 'duration' field")
    return errors


def ensure_valid_rule_payload(condition: Any, zones: Any = None) -> None:
    errors = validate_condition_tree(condition) + validate_zones(zones)
    if errors:
        raise ConditionValidationError(errors)
