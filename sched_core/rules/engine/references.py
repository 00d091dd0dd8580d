# sched_core/rules/engine/references.py
from __future__ import annotations

import copy
from typing import Any, Callable, Iterable, Optional

# Keys that hold practitioner / location / appointment type ids, both as
# Count/Adjacent filter keys and as Slot attributes in Property nodes.
ENTITY_REFERENCE_KEYS = ("doctor", "location", "type")

# Mapper result that removes an id from a list value. Scalar values are kept.
DROP = object()

Mapper = Callable[[str], Optional[Any]]


def _map_scalar(value: Any, mapper: Mapper) -> Any:
    if isinstance(value, str):
        mapped = mapper(value)
        if mapped is not None:
            return mapped
    return value


def _map_value(value: Any, mapper: Mapper) -> Any:
    if isinstance(value, list):
        return [v for v in (_map_scalar(item, mapper) for item in value) if v is not DROP]
    mapped = _map_scalar(value, mapper)
    return value if mapped is DROP else mapped


def _walk(node: Any, mapper: Mapper) -> None:
    if not isinstance(node, dict):
        return

    kind = node.get("type")

    if kind in ("Count", "Adjacent") and isinstance(node.get("filter"), dict):
        for key in ENTITY_REFERENCE_KEYS:
            if key in node["filter"]:
                node["filter"][key] = _map_value(node["filter"][key], mapper)

    elif kind == "Property":
        if node.get("entity") == "Slot" and node.get("attr") in ENTITY_REFERENCE_KEYS and "value" in node:
            node["value"] = _map_value(node["value"], mapper)

    elif kind in ("AND", "OR"):
        for child in node.get("children") or []:
            _walk(child, mapper)

    elif kind == "NOT":
        _walk(node.get("child"), mapper)


def map_condition_references(condition: Any, mapper: Mapper) -> Any:
    """
    Return a deep copy of `condition` with every entity id reference passed
    through `mapper`. A mapper returning None keeps the original value.
    """
    out = copy.deepcopy(condition)
    _walk(out, mapper)
    return out


def map_zone_references(zones: Any, mapper: Mapper) -> Any:
    if not isinstance(zones, dict):
        return copy.deepcopy(zones)

    out = copy.deepcopy(zones)
    create = out.get("createZone")
    if isinstance(create, dict):
        if "condition" in create:
            _walk(create["condition"], mapper)
        zone = create.get("zone")
        if isinstance(zone, dict) and isinstance(zone.get("allowOnly"), list):
            zone["allowOnly"] = _map_value(zone["allowOnly"], mapper)
    return out


def remap_ids(id_map: dict[str, str]) -> Mapper:
    return lambda value: id_map.get(value)


def drop_ids(ids: Iterable[str]) -> Mapper:
    dropped = set(ids)
    return lambda value: DROP if value in dropped else None
