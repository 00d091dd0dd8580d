# sched_core/entities/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from uuid import UUID

from django.db import transaction

from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.rules.engine.errors import InvalidTimeFormat
from sched_core.rules.engine.references import drop_ids, map_condition_references, map_zone_references, remap_ids
from sched_core.rules.engine.timeofday import parse_time_of_day
from sched_core.rules.models import Rule
from sched_core.rulesets.copy_on_write import (
    MutationResult,
    ensure_mutable,
    find_entity_in_working_set,
    resolve_entity_in_working_set,
    resolve_working_rule_set,
)
from sched_core.rulesets.exceptions import EntityValidationError, StaleSnapshot
from sched_core.rulesets.models import RuleSet

logger = logging.getLogger(__name__)


# -------------------------
# Validation helpers
# -------------------------
def _clean_name(name: Any, entity: str) -> str:
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise EntityValidationError(f"{entity} name is required", field="name")
    if len(cleaned) > 255:
        raise EntityValidationError(f"{entity} name must be at most 255 characters", field="name")
    return cleaned


def _clean_time(value: Any, field: str) -> str:
    try:
        parse_time_of_day(value)
    except InvalidTimeFormat:
        raise EntityValidationError(f"{field} must be HH:MM", field=field, received=value)
    return value


def _clean_break_times(break_times: Optional[Iterable[dict]]) -> list[dict]:
    out = []
    for i, b in enumerate(break_times or []):
        if not isinstance(b, dict):
            raise EntityValidationError("break time must be an object", field=f"break_times[{i}]")
        start = _clean_time(b.get("start"), f"break_times[{i}].start")
        end = _clean_time(b.get("end"), f"break_times[{i}].end")
        if parse_time_of_day(start) >= parse_time_of_day(end):
            raise EntityValidationError("break must end after it starts", field=f"break_times[{i}]")
        out.append({"start": start, "end": end})
    return out


def _working(practice_id: UUID, source_rule_set_id: UUID) -> RuleSet:
    working = resolve_working_rule_set(practice_id=practice_id, source_rule_set_id=source_rule_set_id)
    ensure_mutable(working)
    return working


def _resolve_practitioner_ids(ids: Iterable[Any], working: RuleSet) -> list[str]:
    resolved: list[str] = []
    for pid in ids:
        practitioner = resolve_entity_in_working_set(Practitioner, entity_id=pid, working=working)
        if str(practitioner.id) not in resolved:
            resolved.append(str(practitioner.id))
    return resolved



@dataclass(frozen=True)
class PractitionerDeletion:
    """
    What delete_practitioner_with_dependencies() removed or patched.
    `snapshot` is the input restore_practitioner_with_dependencies() expects.
    """
    rule_set_id: Any
    snapshot: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"ruleSetId": str(self.rule_set_id), "snapshot": self.snapshot}


@dataclass(frozen=True)
class ScheduleReplacement:
    rule_set_id: Any
    deleted_ids: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleSetId": str(self.rule_set_id),
            "deletedScheduleIds": self.deleted_ids,
            "createdScheduleIds": self.created_ids,
        }


class PractitionerService:
    @staticmethod
    @transaction.atomic
    def create_practitioner(
        *, practice_id: UUID, source_rule_set_id: UUID, name: str, tags: Optional[list[str]] = None
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        practitioner = Practitioner.objects.create(
            rule_set=working,
            name=_clean_name(name, "Practitioner"),
            tags=list(tags or []),
        )
        return MutationResult(entity_id=practitioner.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def update_practitioner(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        practitioner_id: UUID,
        name: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        practitioner = resolve_entity_in_working_set(Practitioner, entity_id=practitioner_id, working=working)

        update_fields = ["updated_at"]
        if name is not None:
            practitioner.name = _clean_name(name, "Practitioner")
            update_fields.append("name")
        if tags is not None:
            practitioner.tags = list(tags)
            update_fields.append("tags")
        practitioner.save(update_fields=update_fields)

        return MutationResult(entity_id=practitioner.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def delete_practitioner(*, practice_id: UUID, source_rule_set_id: UUID, practitioner_id: UUID) -> MutationResult:
        deletion = PractitionerService.delete_practitioner_with_dependencies(
            practice_id=practice_id, source_rule_set_id=source_rule_set_id, practitioner_id=practitioner_id
        )
        return MutationResult(entity_id=deletion.snapshot["practitioner"]["id"], rule_set_id=deletion.rule_set_id)

    @staticmethod
    @transaction.atomic
    def delete_practitioner_with_dependencies(
        *, practice_id: UUID, source_rule_set_id: UUID, practitioner_id: UUID
    ) -> PractitionerDeletion:
        """
        Delete a practitioner from the working rule set together with its
        base schedules, its entries in appointment types' allowed lists and
        its ids in rule conditions and zones (list values only).
        """
        working = _working(practice_id, source_rule_set_id)
        practitioner = resolve_entity_in_working_set(Practitioner, entity_id=practitioner_id, working=working)
        pid = str(practitioner.id)

        schedules = list(BaseSchedule.objects.filter(rule_set=working, practitioner=practitioner))
        schedule_snapshots = [
            {
                "location_id": str(s.location_id),
                "day_of_week": s.day_of_week,
                "start_time": s.start_time,
                "end_time": s.end_time,
                "break_times": list(s.break_times or []),
            }
            for s in schedules
        ]

        type_patches = []
        for at in AppointmentType.objects.filter(rule_set=working):
            if pid not in at.allowed_practitioner_ids:
                continue
            before = list(at.allowed_practitioner_ids)
            at.allowed_practitioner_ids = [x for x in before if x != pid]
            at.save(update_fields=["allowed_practitioner_ids", "updated_at"])
            type_patches.append(
                {
                    "appointment_type_id": str(at.id),
                    "before_allowed_practitioner_ids": before,
                    "after_allowed_practitioner_ids": at.allowed_practitioner_ids,
                }
            )

        strip = drop_ids([pid])
        rule_patches = []
        for rule in Rule.objects.filter(rule_set=working):
            condition = map_condition_references(rule.condition, strip)
            zones = map_zone_references(rule.zones, strip)
            if condition == rule.condition and zones == rule.zones:
                continue
            rule_patches.append(
                {"rule_id": str(rule.id), "before_condition": rule.condition, "before_zones": rule.zones}
            )
            rule.condition, rule.zones = condition, zones
            rule.save(update_fields=["condition", "zones", "updated_at"])

        for s in schedules:
            s.delete()
        snapshot = {
            "practitioner": {"id": pid, "name": practitioner.name, "tags": list(practitioner.tags or [])},
            "base_schedules": schedule_snapshots,
            "appointment_type_patches": type_patches,
            "rule_patches": rule_patches,
        }
        practitioner.delete()

        logger.info(
            "deleted practitioner %s from rule set %s (%d schedules, %d types, %d rules patched)",
            pid, working.id, len(schedules), len(type_patches), len(rule_patches),
        )
        return PractitionerDeletion(rule_set_id=working.id, snapshot=snapshot)

    @staticmethod
    @transaction.atomic
    def restore_practitioner_with_dependencies(
        *, practice_id: UUID, source_rule_set_id: UUID, snapshot: dict[str, Any]
    ) -> MutationResult:
        """
        Undo delete_practitioner_with_dependencies(). The practitioner comes
        back under a new id; appointment types and rules named in the snapshot
        must still live in the working rule set, else StaleSnapshot.
        """
        working = _working(practice_id, source_rule_set_id)
        previous = snapshot["practitioner"]
        old_id = str(previous["id"])

        name = _clean_name(previous.get("name"), "Practitioner")
        if Practitioner.objects.filter(rule_set=working, name=name).exists():
            raise EntityValidationError(
                "A practitioner with this name already exists in this rule set", field="name", name=name
            )
        restored = Practitioner.objects.create(rule_set=working, name=name, tags=list(previous.get("tags") or []))
        new_id = str(restored.id)

        for s in snapshot.get("base_schedules") or []:
            location = find_entity_in_working_set(Location, entity_id=s.get("location_id"), working=working)
            if location is None:
                raise StaleSnapshot(
                    "A location of the deleted schedules no longer exists", location_id=str(s.get("location_id"))
                )
            day, start, end = BaseScheduleService._clean_schedule(
                s.get("day_of_week"), s.get("start_time"), s.get("end_time")
            )
            BaseSchedule.objects.create(
                rule_set=working,
                practitioner=restored,
                location=location,
                day_of_week=day,
                start_time=start,
                end_time=end,
                break_times=_clean_break_times(s.get("break_times")),
            )

        for patch in snapshot.get("appointment_type_patches") or []:
            at = AppointmentType.objects.filter(id=patch["appointment_type_id"], rule_set=working).first()
            if at is None:
                raise StaleSnapshot(
                    "An appointment type changed since the practitioner was deleted",
                    appointment_type_id=str(patch["appointment_type_id"]),
                )
            allowed = [new_id if str(x) == old_id else str(x) for x in patch["before_allowed_practitioner_ids"]]
            others = [x for x in allowed if x != new_id]
            if Practitioner.objects.filter(rule_set=working, id__in=others).count() != len(set(others)):
                raise StaleSnapshot(
                    "An appointment type references a practitioner that no longer exists",
                    appointment_type_id=str(at.id),
                )
            at.allowed_practitioner_ids = allowed
            at.save(update_fields=["allowed_practitioner_ids", "updated_at"])

        back = remap_ids({old_id: new_id})
        for patch in snapshot.get("rule_patches") or []:
            rule = Rule.objects.filter(id=patch["rule_id"], rule_set=working).first()
            if rule is None:
                raise StaleSnapshot("A rule changed since the practitioner was deleted", rule_id=str(patch["rule_id"]))
            rule.condition = map_condition_references(patch["before_condition"], back)
            rule.zones = map_zone_references(patch.get("before_zones"), back)
            rule.save(update_fields=["condition", "zones", "updated_at"])

        return MutationResult(entity_id=restored.id, rule_set_id=working.id)


class LocationService:
    @staticmethod
    @transaction.atomic
    def create_location(*, practice_id: UUID, source_rule_set_id: UUID, name: str) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        location = Location.objects.create(rule_set=working, name=_clean_name(name, "Location"))
        return MutationResult(entity_id=location.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def update_location(*, practice_id: UUID, source_rule_set_id: UUID, location_id: UUID, name: str) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        location = resolve_entity_in_working_set(Location, entity_id=location_id, working=working)
        location.name = _clean_name(name, "Location")
        location.save(update_fields=["name", "updated_at"])
        return MutationResult(entity_id=location.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def delete_location(*, practice_id: UUID, source_rule_set_id: UUID, location_id: UUID) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        location = resolve_entity_in_working_set(Location, entity_id=location_id, working=working)
        entity_id = location.id
        # base schedules at this location go with it (FK cascade)
        location.delete()
        return MutationResult(entity_id=entity_id, rule_set_id=working.id)


class AppointmentTypeService:
    @staticmethod
    def _ensure_unique_name(working: RuleSet, name: str, exclude_id: Optional[UUID] = None) -> None:
        qs = AppointmentType.objects.filter(rule_set=working, name=name)
        if exclude_id is not None:
            qs = qs.exclude(id=exclude_id)
        if qs.exists():
            raise EntityValidationError(
                "Appointment type with this name already exists in this rule set", field="name", name=name
            )

    @staticmethod
    def _clean_duration(duration: Any) -> int:
        if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
            raise EntityValidationError("duration must be a positive number of minutes", field="duration")
        return duration

    @staticmethod
    @transaction.atomic
    def create_appointment_type(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        name: str,
        duration: int,
        practitioner_ids: list[Any],
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)

        name = _clean_name(name, "Appointment type")
        allowed = _resolve_practitioner_ids(practitioner_ids, working)
        if not allowed:
            raise EntityValidationError("at least one practitioner is required", field="practitioner_ids")
        AppointmentTypeService._ensure_unique_name(working, name)

        at = AppointmentType.objects.create(
            rule_set=working,
            name=name,
            duration=AppointmentTypeService._clean_duration(duration),
            allowed_practitioner_ids=allowed,
        )
        return MutationResult(entity_id=at.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def update_appointment_type(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        appointment_type_id: UUID,
        name: Optional[str] = None,
        duration: Optional[int] = None,
        practitioner_ids: Optional[list[Any]] = None,
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        at = resolve_entity_in_working_set(AppointmentType, entity_id=appointment_type_id, working=working)

        update_fields = ["updated_at"]
        if name is not None:
            name = _clean_name(name, "Appointment type")
            AppointmentTypeService._ensure_unique_name(working, name, exclude_id=at.id)
            at.name = name
            update_fields.append("name")
        if duration is not None:
            at.duration = AppointmentTypeService._clean_duration(duration)
            update_fields.append("duration")
        if practitioner_ids is not None:
            allowed = _resolve_practitioner_ids(practitioner_ids, working)
            if not allowed:
                raise EntityValidationError("at least one practitioner is required", field="practitioner_ids")
            at.allowed_practitioner_ids = allowed
            update_fields.append("allowed_practitioner_ids")

        at.save(update_fields=update_fields)
        return MutationResult(entity_id=at.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def delete_appointment_type(
        *, practice_id: UUID, source_rule_set_id: UUID, appointment_type_id: UUID
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        at = resolve_entity_in_working_set(AppointmentType, entity_id=appointment_type_id, working=working)
        entity_id = at.id
        at.delete()
        return MutationResult(entity_id=entity_id, rule_set_id=working.id)


class BaseScheduleService:
    @staticmethod
    def _clean_schedule(day_of_week: Any, start_time: Any, end_time: Any) -> tuple[int, str, str]:
        if not isinstance(day_of_week, int) or isinstance(day_of_week, bool) or not 0 <= day_of_week <= 6:
            raise EntityValidationError("day_of_week must be between 0 and 6", field="day_of_week")
        start = _clean_time(start_time, "start_time")
        end = _clean_time(end_time, "end_time")
        if parse_time_of_day(start) >= parse_time_of_day(end):
            raise EntityValidationError("end_time must be after start_time", field="end_time")
        return day_of_week, start, end

    @staticmethod
    @transaction.atomic
    def create_base_schedule(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        practitioner_id: UUID,
        location_id: UUID,
        day_of_week: int,
        start_time: str,
        end_time: str,
        break_times: Optional[list[dict]] = None,
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        day, start, end = BaseScheduleService._clean_schedule(day_of_week, start_time, end_time)

        schedule = BaseSchedule.objects.create(
            rule_set=working,
            practitioner=resolve_entity_in_working_set(Practitioner, entity_id=practitioner_id, working=working),
            location=resolve_entity_in_working_set(Location, entity_id=location_id, working=working),
            day_of_week=day,
            start_time=start,
            end_time=end,
            break_times=_clean_break_times(break_times),
        )
        return MutationResult(entity_id=schedule.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def update_base_schedule(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        base_schedule_id: UUID,
        practitioner_id: Optional[UUID] = None,
        location_id: Optional[UUID] = None,
        day_of_week: Optional[int] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        break_times: Optional[list[dict]] = None,
    ) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        schedule = resolve_entity_in_working_set(BaseSchedule, entity_id=base_schedule_id, working=working)

        if practitioner_id is not None:
            schedule.practitioner = resolve_entity_in_working_set(
                Practitioner, entity_id=practitioner_id, working=working
            )
        if location_id is not None:
            schedule.location = resolve_entity_in_working_set(Location, entity_id=location_id, working=working)

        day, start, end = BaseScheduleService._clean_schedule(
            schedule.day_of_week if day_of_week is None else day_of_week,
            schedule.start_time if start_time is None else start_time,
            schedule.end_time if end_time is None else end_time,
        )
        schedule.day_of_week, schedule.start_time, schedule.end_time = day, start, end
        if break_times is not None:
            schedule.break_times = _clean_break_times(break_times)

        schedule.save()
        return MutationResult(entity_id=schedule.id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def delete_base_schedule(*, practice_id: UUID, source_rule_set_id: UUID, base_schedule_id: UUID) -> MutationResult:
        working = _working(practice_id, source_rule_set_id)
        schedule = resolve_entity_in_working_set(BaseSchedule, entity_id=base_schedule_id, working=working)
        entity_id = schedule.id
        schedule.delete()
        return MutationResult(entity_id=entity_id, rule_set_id=working.id)

    @staticmethod
    @transaction.atomic
    def replace_base_schedule_set(
        *,
        practice_id: UUID,
        source_rule_set_id: UUID,
        expected_present_ids: list[Any],
        replacement_schedules: list[dict[str, Any]],
        expected_absent_ids: Optional[list[Any]] = None,
    ) -> ScheduleReplacement:
        """
        Swap a group of base schedules for new ones in one step.

        Every id in expected_present_ids must still resolve into the working
        rule set and none in expected_absent_ids may; otherwise the caller's
        view is out of date and nothing is written (StaleSnapshot).
        """
        if not expected_present_ids:
            raise EntityValidationError(
                "at least one base schedule to replace is required", field="expected_present_ids"
            )

        working = _working(practice_id, source_rule_set_id)

        present: list[BaseSchedule] = []
        for sid in expected_present_ids:
            schedule = find_entity_in_working_set(BaseSchedule, entity_id=sid, working=working)
            if schedule is None or schedule in present:
                raise StaleSnapshot("Base schedules changed since they were read", base_schedule_id=str(sid))
            present.append(schedule)

        for sid in expected_absent_ids or []:
            if find_entity_in_working_set(BaseSchedule, entity_id=sid, working=working) is not None:
                raise StaleSnapshot("Replacement base schedules already exist", base_schedule_id=str(sid))

        deleted_ids = [str(s.id) for s in present]
        for schedule in present:
            schedule.delete()

        created_ids = []
        for payload in replacement_schedules:
            day, start, end = BaseScheduleService._clean_schedule(
                payload.get("day_of_week"), payload.get("start_time"), payload.get("end_time")
            )
            schedule = BaseSchedule.objects.create(
                rule_set=working,
                practitioner=resolve_entity_in_working_set(
                    Practitioner, entity_id=payload.get("practitioner_id"), working=working
                ),
                location=resolve_entity_in_working_set(Location, entity_id=payload.get("location_id"), working=working),
                day_of_week=day,
                start_time=start,
                end_time=end,
                break_times=_clean_break_times(payload.get("break_times")),
            )
            created_ids.append(str(schedule.id))

        return ScheduleReplacement(rule_set_id=working.id, deleted_ids=deleted_ids, created_ids=created_ids)
