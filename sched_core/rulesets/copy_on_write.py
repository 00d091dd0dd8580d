# sched_core/rulesets/copy_on_write.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type, TypeVar
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from sched_core.common.events import RULESET_FORKED, publish
from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.practices.models import Practice
from sched_core.rules.engine.references import map_condition_references, map_zone_references, remap_ids
from sched_core.rules.models import Rule
from sched_core.rulesets.exceptions import (
    DataIntegrityError,
    EntityNotFound,
    PracticeNotFound,
    RuleSetImmutable,
    RuleSetNotFound,
    RuleSetPracticeMismatch,
)
from sched_core.rulesets.models import RuleSet

logger = logging.getLogger(__name__)

DEFAULT_UNSAVED_DESCRIPTION = "Unsaved changes"

M = TypeVar("M")

# old entity id -> id of its copy in the fork
IdMap = dict[UUID, UUID]


@dataclass(frozen=True)
class MutationResult:
    """
    Returned by every store mutation: the touched entity and the working rule
    set it lives in, so callers can chain edits without re-resolving.
    """
    entity_id: Any
    rule_set_id: Any

    def to_dict(self) -> dict[str, Any]:
        return {"entityId": str(self.entity_id), "ruleSetId": str(self.rule_set_id)}


@dataclass
class ForkIdMaps:
    practitioners: IdMap = field(default_factory=dict)
    locations: IdMap = field(default_factory=dict)
    appointment_types: IdMap = field(default_factory=dict)
    base_schedules: IdMap = field(default_factory=dict)
    rules: IdMap = field(default_factory=dict)

    def entity_refs(self) -> dict[str, str]:
        """String view of every id a rule condition may reference."""
        out: dict[str, str] = {}
        for id_map in (self.practitioners, self.locations, self.appointment_types):
            out.update({str(old): str(new) for old, new in id_map.items()})
        return out

    def counts(self) -> dict[str, int]:
        return {
            "practitioners": len(self.practitioners),
            "locations": len(self.locations),
            "appointment_types": len(self.appointment_types),
            "base_schedules": len(self.base_schedules),
            "rules": len(self.rules),
        }


def unsaved_description() -> str:
    return getattr(settings, "SCHEDULING_UNSAVED_DESCRIPTION", DEFAULT_UNSAVED_DESCRIPTION)


# -----------------------
# Per-type copy passes (dependencies first)
# -----------------------
def copy_practitioners(*, source_id: UUID, target: RuleSet) -> IdMap:
    id_map: IdMap = {}
    copies = []
    for p in Practitioner.objects.filter(rule_set_id=source_id).order_by("created_at", "id"):
        new_id = uuid.uuid4()
        id_map[p.id] = new_id
        copies.append(Practitioner(id=new_id, rule_set=target, parent_id=p.id, name=p.name, tags=list(p.tags or [])))
    Practitioner.objects.bulk_create(copies)
    return id_map


def copy_locations(*, source_id: UUID, target: RuleSet) -> IdMap:
    id_map: IdMap = {}
    copies = []
    for loc in Location.objects.filter(rule_set_id=source_id).order_by("created_at", "id"):
        new_id = uuid.uuid4()
        id_map[loc.id] = new_id
        copies.append(Location(id=new_id, rule_set=target, parent_id=loc.id, name=loc.name))
    Location.objects.bulk_create(copies)
    return id_map


def copy_appointment_types(*, source_id: UUID, target: RuleSet, practitioner_map: IdMap) -> IdMap:
    refs = {str(old): str(new) for old, new in practitioner_map.items()}
    id_map: IdMap = {}
    copies = []
    for at in AppointmentType.objects.filter(rule_set_id=source_id).order_by("created_at", "id"):
        new_id = uuid.uuid4()
        id_map[at.id] = new_id
        copies.append(
            AppointmentType(
                id=new_id,
                rule_set=target,
                parent_id=at.id,
                name=at.name,
                duration=at.duration,
                allowed_practitioner_ids=[refs.get(str(pid), str(pid)) for pid in at.allowed_practitioner_ids],
            )
        )
    AppointmentType.objects.bulk_create(copies)
    return id_map


def copy_base_schedules(
    *, source_id: UUID, target: RuleSet, practitioner_map: IdMap, location_map: IdMap
) -> IdMap:
    id_map: IdMap = {}
    copies = []
    for bs in BaseSchedule.objects.filter(rule_set_id=source_id).order_by("created_at", "id"):
        practitioner_id = practitioner_map.get(bs.practitioner_id)
        location_id = location_map.get(bs.location_id)
        if practitioner_id is None or location_id is None:
            raise DataIntegrityError(
                "Base schedule references an entity outside its rule set",
                details={"base_schedule_id": str(bs.id), "rule_set_id": str(source_id)},
            )

        new_id = uuid.uuid4()
        id_map[bs.id] = new_id
        copies.append(
            BaseSchedule(
                id=new_id,
                rule_set=target,
                parent_id=bs.id,
                practitioner_id=practitioner_id,
                location_id=location_id,
                day_of_week=bs.day_of_week,
                start_time=bs.start_time,
                end_time=bs.end_time,
                break_times=list(bs.break_times or []),
            )
        )
    BaseSchedule.objects.bulk_create(copies)
    return id_map


def copy_rules(*, source_id: UUID, target: RuleSet, entity_refs: dict[str, str]) -> IdMap:
    mapper = remap_ids(entity_refs)
    id_map: IdMap = {}
    copies = []
    for r in Rule.objects.filter(rule_set_id=source_id).order_by("priority", "created_at", "id"):
        new_id = uuid.uuid4()
        id_map[r.id] = new_id
        copies.append(
            Rule(
                id=new_id,
                rule_set=target,
                parent_id=r.id,
                name=r.name,
                description=r.description,
                priority=r.priority,
                action=r.action,
                enabled=r.enabled,
                message=r.message,
                condition=map_condition_references(r.condition, mapper),
                zones=map_zone_references(r.zones, mapper),
            )
        )
    Rule.objects.bulk_create(copies)
    return id_map


def copy_rule_set_entities(*, source_id: UUID, target: RuleSet) -> ForkIdMaps:
    """
    Deep-copy every scheduling entity of `source_id` into `target`.
    Each pass receives the id maps of the passes it depends on.
    """
    maps = ForkIdMaps()
    maps.practitioners = copy_practitioners(source_id=source_id, target=target)
    maps.locations = copy_locations(source_id=source_id, target=target)
    maps.appointment_types = copy_appointment_types(
        source_id=source_id, target=target, practitioner_map=maps.practitioners
    )
    maps.base_schedules = copy_base_schedules(
        source_id=source_id,
        target=target,
        practitioner_map=maps.practitioners,
        location_map=maps.locations,
    )
    maps.rules = copy_rules(source_id=source_id, target=target, entity_refs=maps.entity_refs())
    return maps


# -----------------------
# Working copy resolution
# -----------------------
def _lock_practice(practice_id: UUID) -> Practice:
    try:
        return Practice.objects.select_for_update().get(id=practice_id)
    except (Practice.DoesNotExist, ValidationError):
        raise PracticeNotFound(practice_id)


def _find_unsaved(practice_id: UUID) -> Optional[RuleSet]:
    return RuleSet.objects.filter(practice_id=practice_id, saved=False).first()


@transaction.atomic
def resolve_working_rule_set(*, practice_id: UUID, source_rule_set_id: UUID) -> RuleSet:
    """
    Find-or-fork the practice's unsaved rule set.

    An existing unsaved rule set is returned unchanged. Otherwise
    `source_rule_set_id` is forked: version + 1, parent_versions=[source],
    every entity copied with remapped cross references.

    Concurrent callers serialize on the practice row; a fork that loses the
    insert race anyway falls back to the winner's rule set.
    """
    practice = _lock_practice(practice_id)

    existing = _find_unsaved(practice.id)
    if existing is not None:
        return existing

    try:
        source = RuleSet.objects.get(id=source_rule_set_id)
    except (RuleSet.DoesNotExist, ValidationError):
        raise RuleSetNotFound(source_rule_set_id)
    if source.practice_id != practice.id:
        raise RuleSetPracticeMismatch(source_rule_set_id, practice_id)

    try:
        with transaction.atomic():
            fork = RuleSet.objects.create(
                practice_id=source.practice_id,
                version=source.version + 1,
                description=unsaved_description(),
                saved=False,
                is_active=False,
                parent_versions=[str(source.id)],
            )
            maps = copy_rule_set_entities(source_id=source.id, target=fork)
    except IntegrityError:
        winner = _find_unsaved(practice.id)
        if winner is None:
            raise
        return winner

    logger.info("forked rule set %s -> %s (v%s) %s", source.id, fork.id, fork.version, maps.counts())
    publish(
        RULESET_FORKED,
        {
            "practice_id": str(fork.practice_id),
            "rule_set_id": str(fork.id),
            "source_rule_set_id": str(source.id),
            "version": fork.version,
        },
    )
    return fork


def get_or_create_unsaved_rule_set(*, practice_id: UUID, source_rule_set_id: UUID) -> UUID:
    return resolve_working_rule_set(practice_id=practice_id, source_rule_set_id=source_rule_set_id).id


# -----------------------
# Entity resolution inside the working copy
# -----------------------
def resolve_entity_in_working_set(model: Type[M], *, entity_id: Any, working: RuleSet) -> M:
    """
    Locate the copy of a (possibly older) entity inside the working rule set:
    - already in the working set -> itself
    - otherwise the row with parent_id == entity_id in the working set
    A missing copy means the fork invariant is broken (DataIntegrityError).
    """
    name = model.__name__
    try:
        entity = model.objects.select_related("rule_set").get(id=entity_id)
    except (model.DoesNotExist, ValidationError):
        raise EntityNotFound(name, entity_id)

    if entity.rule_set.practice_id != working.practice_id:
        raise EntityNotFound(name, entity_id)

    if entity.rule_set_id == working.id:
        return entity

    copy = model.objects.filter(parent_id=entity.id, rule_set=working).first()
    if copy is None:
        logger.error("%s %s has no copy in working rule set %s", name, entity_id, working.id)
        raise DataIntegrityError(
            f"{name} {entity_id} has no copy in the unsaved rule set",
            details={"entity": name, "entity_id": str(entity_id), "rule_set_id": str(working.id)},
        )
    return copy


def find_entity_in_working_set(model: Type[M], *, entity_id: Any, working: RuleSet) -> Optional[M]:
    """resolve_entity_in_working_set() without the errors: None where it would raise."""
    try:
        entity = model.objects.get(id=entity_id, rule_set__practice=working.practice_id)
    except (model.DoesNotExist, ValidationError):
        return None
    if entity.rule_set_id == working.id:
        return entity
    return model.objects.filter(parent_id=entity.id, rule_set=working).first()


def ensure_mutable(rule_set: RuleSet) -> None:
    if rule_set.saved:
        raise RuleSetImmutable(rule_set.id)


# -----------------------
# Condition references written against an older rule set
# -----------------------
REFERENCE_MODELS = (Practitioner, Location, AppointmentType)


def working_set_reference_mapper(working: RuleSet) -> Callable[[str], Optional[str]]:
    """
    Mapper for map_condition_references(): an id of a practitioner, location
    or appointment type of the practice resolves to its copy in `working`.
    Strings naming no such entity, or one without a copy in `working`, map
    to None (kept verbatim).
    """
    def mapper(value: str) -> Optional[str]:
        for model in REFERENCE_MODELS:
            found = find_entity_in_working_set(model, entity_id=value, working=working)
            if found is not None:
                return str(found.id)
        return None

    return mapper
