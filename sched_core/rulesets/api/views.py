# sched_core/rulesets/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from sched_core.common.api.pagination import paginate
from sched_core.common.api.serializers import PracticeScopeSerializer, validated
from sched_core.rulesets.api.serializers import (
    DiscardOutcomeSerializer,
    ForkSerializer,
    RuleSetEventFilterSerializer,
    RuleSetEventSerializer,
    RuleSetSaveSerializer,
    RuleSetSerializer,
)
from sched_core.rulesets.models import RuleSet
from sched_core.rulesets.selectors import RuleSetSelector
from sched_core.rulesets.services import RuleSetService
from sched_core.rulesets.version_graph import build_version_graph, graph_style_from_settings

PRACTICE_PARAM = OpenApiParameter(name="practice_id", location=OpenApiParameter.QUERY, required=True, type=str)


class RuleSetViewSet(viewsets.ViewSet):
    """
    Thin API layer over RuleSetService (writes) and RuleSetSelector (reads).
    """

    serializer_class = RuleSetSerializer
    queryset = RuleSet.objects.none()

    def _practice_id(self, request):
        return validated(PracticeScopeSerializer, request.query_params)["practice_id"]

    # ----------------------------
    # Reads
    # ----------------------------
    @extend_schema(parameters=[PRACTICE_PARAM], responses={200: RuleSetSerializer(many=True)}, tags=["Rule sets"])
    def list(self, request):
        qs = RuleSetSelector.list_rule_sets(practice_id=self._practice_id(request))
        return paginate(request, qs, RuleSetSerializer)

    @extend_schema(responses={200: RuleSetSerializer}, tags=["Rule sets"])
    def retrieve(self, request, pk=None):
        return Response(RuleSetSerializer(RuleSetSelector.get_rule_set(rule_set_id=pk)).data)

    @extend_schema(parameters=[PRACTICE_PARAM], responses={200: RuleSetSerializer}, tags=["Rule sets"])
    @action(detail=False, methods=["get"])
    def active(self, request):
        rule_set = RuleSetSelector.get_active_rule_set(practice_id=self._practice_id(request))
        return Response(RuleSetSerializer(rule_set).data)

    @extend_schema(parameters=[PRACTICE_PARAM], responses={200: RuleSetSerializer}, tags=["Rule sets"])
    @action(detail=False, methods=["get"])
    def unsaved(self, request):
        rule_set = RuleSetSelector.get_unsaved_rule_set(practice_id=self._practice_id(request))
        return Response(RuleSetSerializer(rule_set).data if rule_set else None)

    @extend_schema(parameters=[PRACTICE_PARAM], tags=["Rule sets"])
    @action(detail=False, methods=["get"])
    def history(self, request):
        return Response(RuleSetSelector.version_history(practice_id=self._practice_id(request)))

    @extend_schema(parameters=[PRACTICE_PARAM], tags=["Rule sets"])
    @action(detail=False, methods=["get"])
    def graph(self, request):
        history = RuleSetSelector.version_history(practice_id=self._practice_id(request))
        return Response(build_version_graph(history, graph_style_from_settings()).to_dict())

    @extend_schema(
        parameters=[PRACTICE_PARAM, OpenApiParameter(name="rule_set_id", location=OpenApiParameter.QUERY, type=str)],
        responses={200: RuleSetEventSerializer(many=True)},
        tags=["Rule sets"],
    )
    @action(detail=False, methods=["get"])
    def events(self, request):
        data = validated(RuleSetEventFilterSerializer, request.query_params)
        qs = RuleSetSelector.list_events(practice_id=data["practice_id"], rule_set_id=data.get("rule_set_id"))
        return paginate(request, qs, RuleSetEventSerializer)

    # ----------------------------
    # Lifecycle
    # ----------------------------
    @extend_schema(request=ForkSerializer, responses={200: RuleSetSerializer}, tags=["Rule sets"])
    @action(detail=False, methods=["post"])
    def working(self, request):
        data = validated(ForkSerializer, request.data)
        rule_set = RuleSetService.resolve_working_rule_set(
            practice_id=data["practice_id"],
            source_rule_set_id=data["source_rule_set_id"],
        )
        return Response(RuleSetSerializer(rule_set).data)

    @extend_schema(request=RuleSetSaveSerializer, responses={200: RuleSetSerializer}, tags=["Rule sets"])
    @action(detail=False, methods=["post"])
    def save(self, request):
        data = validated(RuleSetSaveSerializer, request.data)
        rule_set = RuleSetService.save_unsaved_rule_set(
            practice_id=data["practice_id"],
            description=data["description"],
            set_as_active=data["set_as_active"],
        )
        return Response(RuleSetSerializer(rule_set).data)

    @extend_schema(request=PracticeScopeSerializer, responses={204: None}, tags=["Rule sets"])
    @action(detail=False, methods=["post"])
    def discard(self, request):
        data = validated(PracticeScopeSerializer, request.data)
        RuleSetService.discard_unsaved_rule_set(practice_id=data["practice_id"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=PracticeScopeSerializer, responses={200: RuleSetSerializer}, tags=["Rule sets"])
    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        data = validated(PracticeScopeSerializer, request.data)
        rule_set = RuleSetService.set_active_rule_set(practice_id=data["practice_id"], rule_set_id=pk)
        return Response(RuleSetSerializer(rule_set).data)

    @extend_schema(request=PracticeScopeSerializer, responses={200: DiscardOutcomeSerializer}, tags=["Rule sets"])
    @action(detail=True, methods=["post"], url_path="discard-if-unchanged")
    def discard_if_unchanged(self, request, pk=None):
        data = validated(PracticeScopeSerializer, request.data)
        outcome = RuleSetService.discard_unsaved_rule_set_if_equivalent(
            practice_id=data["practice_id"],
            rule_set_id=pk,
        )
        return Response(outcome.to_dict())
