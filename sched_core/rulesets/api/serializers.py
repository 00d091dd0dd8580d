# sched_core/rulesets/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from sched_core.rulesets.models import RuleSet, RuleSetEvent


class RuleSetSerializer(serializers.ModelSerializer):
    practice_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = RuleSet
        fields = [
            "id",
            "practice_id",
            "version",
            "description",
            "saved",
            "is_active",
            "parent_versions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RuleSetSaveSerializer(serializers.Serializer):
    practice_id = serializers.UUIDField()
    description = serializers.CharField(max_length=255, trim_whitespace=False, allow_blank=True)
    set_as_active = serializers.BooleanField(required=False, default=False)


class ForkSerializer(serializers.Serializer):
    practice_id = serializers.UUIDField()
    source_rule_set_id = serializers.UUIDField()


class DiscardOutcomeSerializer(serializers.Serializer):
    deleted = serializers.BooleanField()
    reason = serializers.ChoiceField(choices=["discarded", "has_changes", "no_parent", "not_unsaved", "parent_missing"])
    parentRuleSetId = serializers.CharField(required=False)


class RuleSetEventSerializer(serializers.ModelSerializer):
    practice_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = RuleSetEvent
        fields = ["id", "practice_id", "rule_set_id", "event_code", "metadata", "occurred_at"]
        read_only_fields = fields


class RuleSetEventFilterSerializer(serializers.Serializer):
    practice_id = serializers.UUIDField()
    rule_set_id = serializers.UUIDField(required=False)
