# sched_core/rules/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from sched_core.common.api.serializers import (
    MutationResultSerializer,
    MutationScopeSerializer,
    merged_params,
    validated,
)
from sched_core.rules.api.serializers import (
    ConditionValidateSerializer,
    RuleCopySerializer,
    RuleListQuerySerializer,
    RuleReorderSerializer,
    RuleSerializer,
    RuleWriteSerializer,
    SlotCheckSerializer,
    SlotDecisionSerializer,
)
from sched_core.rules.decisions import RuleEngine
from sched_core.rules.engine import validate_condition_tree, validate_zones
from sched_core.rules.models import Rule
from sched_core.rules.selectors import RuleSelector
from sched_core.rules.services import RuleService


class RuleViewSet(viewsets.ViewSet):
    serializer_class = RuleSerializer
    queryset = Rule.objects.none()

    @extend_schema(
        parameters=[
            OpenApiParameter(name="rule_set_id", location=OpenApiParameter.QUERY, required=True, type=str),
            OpenApiParameter(name="enabled_only", location=OpenApiParameter.QUERY, required=False, type=bool),
        ],
        responses={200: RuleSerializer(many=True)},
        tags=["Rules"],
    )
    def list(self, request):
        params = validated(RuleListQuerySerializer, request.query_params)
        qs = RuleSelector.list_rules(rule_set_id=params["rule_set_id"], enabled_only=params["enabled_only"])
        return Response(RuleSerializer(qs, many=True).data)

    @extend_schema(responses={200: RuleSerializer}, tags=["Rules"])
    def retrieve(self, request, pk=None):
        return Response(RuleSerializer(RuleSelector.get_rule(rule_id=pk)).data)

    @extend_schema(request=RuleWriteSerializer, responses={201: MutationResultSerializer}, tags=["Rules"])
    def create(self, request):
        scope = validated(MutationScopeSerializer, request.data)
        payload = validated(RuleWriteSerializer, request.data)
        result = RuleService.create_rule(**scope, **payload)
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @extend_schema(request=RuleWriteSerializer, responses={200: MutationResultSerializer}, tags=["Rules"])
    def partial_update(self, request, pk=None):
        scope = validated(MutationScopeSerializer, request.data)
        ser = RuleWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        result = RuleService.update_rule(**scope, rule_id=pk, **ser.validated_data)
        return Response(result.to_dict())

    @extend_schema(responses={200: MutationResultSerializer}, tags=["Rules"])
    def destroy(self, request, pk=None):
        scope = validated(MutationScopeSerializer, merged_params(request))
        result = RuleService.delete_rule(**scope, rule_id=pk)
        return Response(result.to_dict())

    # ----------------------------
    # Rule actions
    # ----------------------------
    @extend_schema(request=MutationScopeSerializer, tags=["Rules"])
    @action(detail=True, methods=["post"])
    def toggle(self, request, pk=None):
        scope = validated(MutationScopeSerializer, request.data)
        result, enabled = RuleService.toggle_rule(**scope, rule_id=pk)
        return Response({**result.to_dict(), "enabled": enabled})

    @extend_schema(request=RuleCopySerializer, responses={201: MutationResultSerializer}, tags=["Rules"])
    @action(detail=True, methods=["post"])
    def copy(self, request, pk=None):
        scope = validated(MutationScopeSerializer, request.data)
        data = validated(RuleCopySerializer, request.data)
        result = RuleService.copy_rule(**scope, rule_id=pk, new_name=data["new_name"])
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @extend_schema(request=RuleReorderSerializer, responses={200: MutationResultSerializer(many=True)}, tags=["Rules"])
    @action(detail=False, methods=["post"])
    def reorder(self, request):
        data = validated(RuleReorderSerializer, request.data)
        results = RuleService.reorder_rules(
            practice_id=data["practice_id"],
            source_rule_set_id=data["source_rule_set_id"],
            ordering=[(item["rule_id"], item["priority"]) for item in data["ordering"]],
        )
        return Response([r.to_dict() for r in results])

    @extend_schema(request=ConditionValidateSerializer, tags=["Rules"])
    @action(detail=False, methods=["post"])
    def validate(self, request):
        """Dry-run validation for editors: never writes, always 200."""
        data = validated(ConditionValidateSerializer, request.data)
        errors = validate_condition_tree(data["condition"])
        if data["zones"] is not None:
            errors += validate_zones(data["zones"])
        return Response({"valid": not errors, "errors": errors})

    @extend_schema(request=SlotCheckSerializer, responses={200: SlotDecisionSerializer}, tags=["Rules"])
    @action(detail=False, methods=["post"], url_path="check-slot")
    def check_slot(self, request):
        data = validated(SlotCheckSerializer, request.data)
        result = RuleEngine.check_slot(
            practice_id=data["practice_id"],
            slot=data["slot"],
            rule_set_id=data["rule_set_id"],
            context=data["context"],
        )
        return Response(result.to_dict())
