# sched_core/rulesets/snapshots.py
from __future__ import annotations

import json
from typing import Any
from uuid import UUID

from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.rules.engine.references import map_condition_references, map_zone_references
from sched_core.rules.models import Rule


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _normalize_break_times(break_times: Any) -> list[dict]:
    items = [{"start": b.get("start"), "end": b.get("end")} for b in (break_times or []) if isinstance(b, dict)]
    return sorted(items, key=lambda b: (str(b["start"]), str(b["end"])))


def build_canonical_snapshot(rule_set_id: UUID) -> dict[str, list[str]]:
    """
    Id-free description of a rule set's content.

    Entity references are replaced by names, so a fork and its parent produce
    identical snapshots until something is actually changed.
    """
    practitioners = list(Practitioner.objects.filter(rule_set_id=rule_set_id))
    locations = list(Location.objects.filter(rule_set_id=rule_set_id))
    appointment_types = list(AppointmentType.objects.filter(rule_set_id=rule_set_id))
    schedules = list(BaseSchedule.objects.filter(rule_set_id=rule_set_id))
    rules = list(Rule.objects.filter(rule_set_id=rule_set_id))

    practitioner_names = {str(p.id): p.name for p in practitioners}
    location_names = {str(loc.id): loc.name for loc in locations}
    names = {**practitioner_names, **location_names, **{str(at.id): at.name for at in appointment_types}}

    def to_name(value: str):
        return names.get(value)

    return {
        "practitioners": sorted(_dumps({"name": p.name, "tags": sorted(map(str, p.tags or []))}) for p in practitioners),
        "locations": sorted(_dumps({"name": loc.name}) for loc in locations),
        "appointment_types": sorted(
            _dumps(
                {
                    "name": at.name,
                    "duration": at.duration,
                    "allowedPractitioners": sorted(
                        practitioner_names.get(str(pid), str(pid)) for pid in at.allowed_practitioner_ids
                    ),
                }
            )
            for at in appointment_types
        ),
        "base_schedules": sorted(
            _dumps(
                {
                    "practitionerName": practitioner_names.get(str(bs.practitioner_id), str(bs.practitioner_id)),
                    "locationName": location_names.get(str(bs.location_id), str(bs.location_id)),
                    "dayOfWeek": bs.day_of_week,
                    "startTime": bs.start_time,
                    "endTime": bs.end_time,
                    "breakTimes": _normalize_break_times(bs.break_times),
                }
            )
            for bs in schedules
        ),
        "rules": sorted(
            _dumps(
                {
                    "name": r.name,
                    "description": r.description,
                    "priority": r.priority,
                    "action": r.action,
                    "enabled": r.enabled,
                    "message": r.message,
                    "condition": map_condition_references(r.condition, to_name),
                    "zones": map_zone_references(r.zones, to_name),
                }
            )
            for r in rules
        ),
    }
