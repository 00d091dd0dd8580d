# sched_core/entities/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner


# -------------------------
# Read models
# -------------------------
class PractitionerSerializer(serializers.ModelSerializer):
    rule_set_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Practitioner
        fields = ["id", "rule_set_id", "parent_id", "name", "tags", "created_at", "updated_at"]
        read_only_fields = fields


class LocationSerializer(serializers.ModelSerializer):
    rule_set_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Location
        fields = ["id", "rule_set_id", "parent_id", "name", "created_at", "updated_at"]
        read_only_fields = fields


class AppointmentTypeSerializer(serializers.ModelSerializer):
    rule_set_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = AppointmentType
        fields = ["id", "rule_set_id", "parent_id", "name", "duration", "allowed_practitioner_ids", "created_at", "updated_at"]
        read_only_fields = fields


class BaseScheduleSerializer(serializers.ModelSerializer):
    rule_set_id = serializers.UUIDField(read_only=True)
    practitioner_id = serializers.UUIDField(read_only=True)
    location_id = serializers.UUIDField(read_only=True)
    practitioner_name = serializers.CharField(source="practitioner.name", read_only=True)
    location_name = serializers.CharField(source="location.name", read_only=True)

    class Meta:
        model = BaseSchedule
        fields = [
            "id",
            "rule_set_id",
            "parent_id",
            "practitioner_id",
            "practitioner_name",
            "location_id",
            "location_name",
            "day_of_week",
            "start_time",
            "end_time",
            "break_times",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# -------------------------
# Write payloads (scope fields are validated separately)
# -------------------------
class PractitionerWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    tags = serializers.ListField(child=serializers.CharField(), required=False)


class LocationWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)


class AppointmentTypeWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    duration = serializers.IntegerField(min_value=1)
    practitioner_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class BreakTimeSerializer(serializers.Serializer):
    start = serializers.CharField(max_length=5)
    end = serializers.CharField(max_length=5)


class BaseScheduleWriteSerializer(serializers.Serializer):
    practitioner_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    day_of_week = serializers.IntegerField(min_value=0, max_value=6)
    start_time = serializers.CharField(max_length=5)
    end_time = serializers.CharField(max_length=5)
    break_times = BreakTimeSerializer(many=True, required=False)


class PractitionerFilterSerializer(serializers.Serializer):
    practitioner_id = serializers.UUIDField(required=False)


# -------------------------
# Practitioner delete / restore with dependencies
# -------------------------
class PractitionerSnapshotEntrySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField(max_length=255)
    tags = serializers.ListField(child=serializers.CharField(), required=False)


class ScheduleSnapshotSerializer(serializers.Serializer):
    location_id = serializers.UUIDField()
    day_of_week = serializers.IntegerField(min_value=0, max_value=6)
    start_time = serializers.CharField(max_length=5)
    end_time = serializers.CharField(max_length=5)
    break_times = BreakTimeSerializer(many=True, required=False)


class AppointmentTypePatchSerializer(serializers.Serializer):
    appointment_type_id = serializers.UUIDField()
    before_allowed_practitioner_ids = serializers.ListField(child=serializers.UUIDField())
    after_allowed_practitioner_ids = serializers.ListField(child=serializers.UUIDField(), required=False)


class RulePatchSerializer(serializers.Serializer):
    rule_id = serializers.UUIDField()
    before_condition = serializers.JSONField()
    before_zones = serializers.JSONField(required=False, allow_null=True)


class PractitionerDependencySnapshotSerializer(serializers.Serializer):
    practitioner = PractitionerSnapshotEntrySerializer()
    base_schedules = ScheduleSnapshotSerializer(many=True, required=False)
    appointment_type_patches = AppointmentTypePatchSerializer(many=True, required=False)
    rule_patches = RulePatchSerializer(many=True, required=False)


class PractitionerRestoreSerializer(serializers.Serializer):
    snapshot = PractitionerDependencySnapshotSerializer()


class PractitionerDeletionSerializer(serializers.Serializer):
    ruleSetId = serializers.CharField()
    snapshot = serializers.JSONField()


# -------------------------
# Guarded base schedule replacement
# -------------------------
class BaseScheduleReplaceSerializer(serializers.Serializer):
    expected_present_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    expected_absent_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    replacement_schedules = BaseScheduleWriteSerializer(many=True)


class ScheduleReplacementSerializer(serializers.Serializer):
    ruleSetId = serializers.CharField()
    deletedScheduleIds = serializers.ListField(child=serializers.CharField())
    createdScheduleIds = serializers.ListField(child=serializers.CharField())
