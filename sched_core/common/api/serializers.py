# sched_core/common/api/serializers.py
from __future__ import annotations

from rest_framework import serializers


class MutationScopeSerializer(serializers.Serializer):
    """Fields every store mutation accepts."""
    practice_id = serializers.UUIDField()
    source_rule_set_id = serializers.UUIDField()


class PracticeScopeSerializer(serializers.Serializer):
    practice_id = serializers.UUIDField()


class RuleSetScopeSerializer(serializers.Serializer):
    rule_set_id = serializers.UUIDField()


class MutationResultSerializer(serializers.Serializer):
    entityId = serializers.CharField()
    ruleSetId = serializers.CharField()


def merged_params(request) -> dict:
    """
    request.data overlaid on the query string, so DELETE callers may pass
    scope either way.
    """
    params = {k: v for k, v in request.query_params.items()}
    if hasattr(request.data, "items"):
        params.update({k: v for k, v in request.data.items()})
    return params


def validated(serializer_class, data) -> dict:
    ser = serializer_class(data=data)
    ser.is_valid(raise_exception=True)
    return ser.validated_data
