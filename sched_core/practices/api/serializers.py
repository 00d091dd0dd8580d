# sched_core/practices/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from sched_core.practices.models import Practice


class PracticeCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)


class PracticeSerializer(serializers.ModelSerializer):
    active_rule_set_id = serializers.SerializerMethodField()

    class Meta:
        model = Practice
        fields = ["id", "name", "active_rule_set_id", "created_at", "updated_at"]
        read_only_fields = fields

    def get_active_rule_set_id(self, obj) -> str | None:
        active = obj.rule_sets.filter(is_active=True).values_list("id", flat=True).first()
        return str(active) if active else None
