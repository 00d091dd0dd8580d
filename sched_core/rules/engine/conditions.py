# sched_core/rules/engine/conditions.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional, Union

from sched_core.rules.engine.errors import ConditionValidationError, InvalidConditionType

CONDITION_TYPES = ("Property", "Count", "TimeRangeFree", "Adjacent", "AND", "OR", "NOT")

SLOT_START = "Slot.start"
SLOT_END = "Slot.end"


@dataclass(frozen=True)
class PropertyCondition:
    """
    Compare one attribute of the candidate slot (entity="Slot") or of the
    evaluation context (entity="Context") against a literal.
    """

    type: ClassVar[str] = "Property"

    entity: str
    attr: str
    op: str
    value: Any
    time_start: Optional[str] = None
    time_end: Optional[str] = None


@dataclass(frozen=True)
class CountCondition:
    """
    Count existing appointments matching `filter` and compare the count to `value`.
    filter={"overlaps": True} additionally requires overlap with the slot.
    """

    type: ClassVar[str] = "Count"

    filter: Mapping[str, Any]
    op: str
    value: Any
    # None when the document omits it; only "Appointment" is valid
    entity: Optional[str] = None
    time_start: Optional[str] = None
    time_end: Optional[str] = None


@dataclass(frozen=True)
class TimeRangeFreeCondition:
    """
    True when no appointment overlaps [anchor, anchor + duration),
    anchor being the slot start or end.
    """

    type: ClassVar[str] = "TimeRangeFree"

    anchor: str
    duration: str
    time_start: Optional[str] = None
    time_end: Optional[str] = None


@dataclass(frozen=True)
class AdjacentCondition:
    type: ClassVar[str] = "Adjacent"

    direction: str
    filter: Mapping[str, Any]
    entity: Optional[str] = None
    time_start: Optional[str] = None
    time_end: Optional[str] = None


@dataclass(frozen=True)
class AndCondition:
    type: ClassVar[str] = "AND"

    children: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class OrCondition:
    type: ClassVar[str] = "OR"

    children: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class NotCondition:
    type: ClassVar[str] = "NOT"

    child: "ConditionTree"


ConditionTree = Union[
    PropertyCondition,
    CountCondition,
    TimeRangeFreeCondition,
    AdjacentCondition,
    AndCondition,
    OrCondition,
    NotCondition,
]

LEAF_TYPES = (PropertyCondition, CountCondition, TimeRangeFreeCondition, AdjacentCondition)


# -----------------------
# Wire format (JSON dict) <-> typed tree
# -----------------------
def _require(node: Mapping[str, Any], key: str, path: str, kind: str) -> Any:
    if key not in node:
        raise ConditionValidationError([f"{path}: missing '{key}' field for {kind}"])
    return node[key]


def parse_condition(data: Any, path: str = "root") -> ConditionTree:
    """
    Convert the persisted JSON shape into the typed tree.

    Unknown tags raise InvalidConditionType; a missing required field raises
    ConditionValidationError. Run validate_condition_tree() first when every
    problem should be reported at once.
    """
    if not isinstance(data, Mapping):
        raise ConditionValidationError([f"{path}: condition must be an object"])

    kind = data.get("type")

    if kind == "Property":
        return PropertyCondition(
            entity=_require(data, "entity", path, kind),
            attr=_require(data, "attr", path, kind),
            op=_require(data, "op", path, kind),
            value=_require(data, "value", path, kind),
            time_start=data.get("start"),
            time_end=data.get("end"),
        )

    if kind == "Count":
        return CountCondition(
            entity=data.get("entity"),
            filter=dict(_require(data, "filter", path, kind)),
            op=_require(data, "op", path, kind),
            value=_require(data, "value", path, kind),
            time_start=data.get("start"),
            time_end=data.get("end"),
        )

    if kind == "TimeRangeFree":
        return TimeRangeFreeCondition(
            anchor=_require(data, "start", path, kind),
            duration=_require(data, "duration", path, kind),
            time_start=data.get("timeOfDayStart"),
            time_end=data.get("end"),
        )

    if kind == "Adjacent":
        return AdjacentCondition(
            entity=data.get("entity"),
            direction=_require(data, "direction", path, kind),
            filter=dict(_require(data, "filter", path, kind)),
            time_start=data.get("start"),
            time_end=data.get("end"),
        )

    if kind in ("AND", "OR"):
        children = _require(data, "children", path, kind)
        if not isinstance(children, (list, tuple)):
            raise ConditionValidationError([f"{path}: 'children' must be a list for {kind}"])
        parsed = tuple(parse_condition(c, f"{path}.children[{i}]") for i, c in enumerate(children))
        return AndCondition(children=parsed) if kind == "AND" else OrCondition(children=parsed)

    if kind == "NOT":
        return NotCondition(child=parse_condition(_require(data, "child", path, kind), f"{path}.child"))

    raise InvalidConditionType(kind, CONDITION_TYPES, path=path)


def _with_scope(out: dict[str, Any], start_key: str, node: Any) -> dict[str, Any]:
    if node.time_start is not None:
        out[start_key] = node.time_start
    if node.time_end is not None:
        out["end"] = node.time_end
    return out


def _entity(node: Any) -> dict[str, Any]:
    return {} if node.entity is None else {"entity": node.entity}


def condition_to_dict(node: ConditionTree) -> dict[str, Any]:
    """
    Inverse of parse_condition(). Optional time-scope keys are emitted only
    when set, so parse -> serialize returns the original document.
    """
    if isinstance(node, PropertyCondition):
        out = {"type": node.type, "entity": node.entity, "attr": node.attr, "op": node.op, "value": node.value}
        return _with_scope(out, "start", node)

    if isinstance(node, CountCondition):
        out = {"type": node.type, **_entity(node), "filter": dict(node.filter), "op": node.op, "value": node.value}
        return _with_scope(out, "start", node)

    if isinstance(node, TimeRangeFreeCondition):
        out = {"type": node.type, "start": node.anchor, "duration": node.duration}
        return _with_scope(out, "timeOfDayStart", node)

    if isinstance(node, AdjacentCondition):
        out = {"type": node.type, **_entity(node), "direction": node.direction, "filter": dict(node.filter)}
        return _with_scope(out, "start", node)

    if isinstance(node, (AndCondition, OrCondition)):
        return {"type": node.type, "children": [condition_to_dict(c) for c in node.children]}

    if isinstance(node, NotCondition):
        return {"type": node.type, "child": condition_to_dict(node.child)}

    raise InvalidConditionType(getattr(node, "type", type(node).__name__), CONDITION_TYPES)
