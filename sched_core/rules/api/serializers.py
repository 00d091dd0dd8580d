# sched_core/rules/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from sched_core.rules.models import Rule, RuleAction


class RuleSerializer(serializers.ModelSerializer):
    rule_set_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Rule
        fields = [
            "id",
            "rule_set_id",
            "parent_id",
            "name",
            "description",
            "priority",
            "action",
            "enabled",
            "message",
            "condition",
            "zones",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RuleWriteSerializer(serializers.Serializer):
    """
    Shape check only. The condition tree and zones are validated by the
    engine, which reports path-qualified messages.
    """
    name = serializers.CharField(max_length=255)
    action = serializers.ChoiceField(choices=RuleAction.values)
    condition = serializers.JSONField()
    priority = serializers.IntegerField(required=False, default=0)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    message = serializers.CharField(required=False, allow_blank=True, max_length=500, default="")
    enabled = serializers.BooleanField(required=False, default=True)
    zones = serializers.JSONField(required=False, allow_null=True, default=None)


class RuleListQuerySerializer(serializers.Serializer):
    rule_set_id = serializers.UUIDField()
    enabled_only = serializers.BooleanField(required=False, default=False)


class RuleCopySerializer(serializers.Serializer):
    new_name = serializers.CharField(max_length=255)


class RuleOrderItemSerializer(serializers.Serializer):
    rule_id = serializers.UUIDField()
    priority = serializers.IntegerField()


class RuleReorderSerializer(serializers.Serializer):
    practice_id = serializers.UUIDField()
    source_rule_set_id = serializers.UUIDField()
    ordering = RuleOrderItemSerializer(many=True, allow_empty=False)


class ConditionValidateSerializer(serializers.Serializer):
    condition = serializers.JSONField()
    zones = serializers.JSONField(required=False, allow_null=True, default=None)


class SlotCheckSerializer(serializers.Serializer):
    practice_id = serializers.UUIDField()
    rule_set_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    # start/end plus any attributes Property conditions may read (doctor, location, type, ...)
    slot = serializers.DictField()
    context = serializers.DictField(required=False, default=dict)

    def validate_slot(self, value):
        missing = [k for k in ("start", "end") if not value.get(k)]
        if missing:
            raise serializers.ValidationError(f"slot requires: {', '.join(missing)}")
        return value


class SlotDecisionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=RuleAction.values)
    message = serializers.CharField()
    ruleId = serializers.CharField(required=False)
    ruleName = serializers.CharField(required=False)
    zones = serializers.JSONField(required=False)
