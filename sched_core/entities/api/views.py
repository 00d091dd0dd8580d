# sched_core/entities/api/views.py
from __future__ import annotations

from typing import Any, Callable

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from sched_core.common.api.serializers import (
    MutationResultSerializer,
    MutationScopeSerializer,
    RuleSetScopeSerializer,
    merged_params,
    validated,
)
from sched_core.entities.api.serializers import (
    AppointmentTypeSerializer,
    AppointmentTypeWriteSerializer,
    BaseScheduleReplaceSerializer,
    BaseScheduleSerializer,
    BaseScheduleWriteSerializer,
    LocationSerializer,
    LocationWriteSerializer,
    PractitionerDeletionSerializer,
    PractitionerFilterSerializer,
    PractitionerRestoreSerializer,
    PractitionerSerializer,
    PractitionerWriteSerializer,
    ScheduleReplacementSerializer,
)
from sched_core.entities.models import AppointmentType, BaseSchedule, Location, Practitioner
from sched_core.entities.selectors import EntitySelector
from sched_core.entities.services import (
    AppointmentTypeService,
    BaseScheduleService,
    LocationService,
    PractitionerService,
)

RULE_SET_PARAM = OpenApiParameter(name="rule_set_id", location=OpenApiParameter.QUERY, required=True, type=str)


class EntityViewSet(viewsets.ViewSet):
    """
    Shared shape of the copy-on-write entity endpoints:
    - list reads any rule set (?rule_set_id=)
    - create / partial_update / destroy take practice_id + source_rule_set_id
      and answer {entityId, ruleSetId}
    Subclasses wire the selector and service callables.
    """

    write_serializer_class: Any = None
    id_kwarg: str = ""
    list_fn: Callable[..., Any]
    create_fn: Callable[..., Any]
    update_fn: Callable[..., Any]
    delete_fn: Callable[..., Any]

    def _list_filters(self, request) -> dict:
        return {}

    @extend_schema(parameters=[RULE_SET_PARAM])
    def list(self, request):
        rule_set_id = validated(RuleSetScopeSerializer, request.query_params)["rule_set_id"]
        qs = type(self).list_fn(rule_set_id=rule_set_id, **self._list_filters(request))
        return Response(self.serializer_class(qs, many=True).data)

    @extend_schema(responses={201: MutationResultSerializer})
    def create(self, request):
        scope = validated(MutationScopeSerializer, request.data)
        payload = validated(self.write_serializer_class, request.data)
        result = type(self).create_fn(**scope, **payload)
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: MutationResultSerializer})
    def partial_update(self, request, pk=None):
        scope = validated(MutationScopeSerializer, request.data)
        ser = self.write_serializer_class(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        result = type(self).update_fn(**scope, **{self.id_kwarg: pk}, **ser.validated_data)
        return Response(result.to_dict())

    @extend_schema(responses={200: MutationResultSerializer})
    def destroy(self, request, pk=None):
        scope = validated(MutationScopeSerializer, merged_params(request))
        result = type(self).delete_fn(**scope, **{self.id_kwarg: pk})
        return Response(result.to_dict())


@extend_schema(tags=["Entities"])
class PractitionerViewSet(EntityViewSet):
    serializer_class = PractitionerSerializer
    write_serializer_class = PractitionerWriteSerializer
    queryset = Practitioner.objects.none()
    id_kwarg = "practitioner_id"

    list_fn = EntitySelector.list_practitioners
    create_fn = PractitionerService.create_practitioner
    update_fn = PractitionerService.update_practitioner
    delete_fn = PractitionerService.delete_practitioner

    @extend_schema(responses={200: PractitionerDeletionSerializer})
    @action(detail=True, methods=["post"], url_path="delete-with-dependencies")
    def delete_with_dependencies(self, request, pk=None):
        scope = validated(MutationScopeSerializer, request.data)
        deletion = PractitionerService.delete_practitioner_with_dependencies(**scope, practitioner_id=pk)
        return Response(deletion.to_dict())

    @extend_schema(request=PractitionerRestoreSerializer, responses={201: MutationResultSerializer})
    @action(detail=False, methods=["post"])
    def restore(self, request):
        scope = validated(MutationScopeSerializer, request.data)
        data = validated(PractitionerRestoreSerializer, request.data)
        result = PractitionerService.restore_practitioner_with_dependencies(**scope, snapshot=data["snapshot"])
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)


@extend_schema(tags=["Entities"])
class LocationViewSet(EntityViewSet):
    serializer_class = LocationSerializer
    write_serializer_class = LocationWriteSerializer
    queryset = Location.objects.none()
    id_kwarg = "location_id"

    list_fn = EntitySelector.list_locations
    create_fn = LocationService.create_location
    update_fn = LocationService.update_location
    delete_fn = LocationService.delete_location


@extend_schema(tags=["Entities"])
class AppointmentTypeViewSet(EntityViewSet):
    serializer_class = AppointmentTypeSerializer
    write_serializer_class = AppointmentTypeWriteSerializer
    queryset = AppointmentType.objects.none()
    id_kwarg = "appointment_type_id"

    list_fn = EntitySelector.list_appointment_types
    create_fn = AppointmentTypeService.create_appointment_type
    update_fn = AppointmentTypeService.update_appointment_type
    delete_fn = AppointmentTypeService.delete_appointment_type


@extend_schema(tags=["Entities"])
class BaseScheduleViewSet(EntityViewSet):
    serializer_class = BaseScheduleSerializer
    write_serializer_class = BaseScheduleWriteSerializer
    queryset = BaseSchedule.objects.none()
    id_kwarg = "base_schedule_id"

    list_fn = EntitySelector.list_base_schedules
    create_fn = BaseScheduleService.create_base_schedule
    update_fn = BaseScheduleService.update_base_schedule
    delete_fn = BaseScheduleService.delete_base_schedule

    def _list_filters(self, request) -> dict:
        # optional ?practitioner_id= narrows the weekly grid to one person
        ser = PractitionerFilterSerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        return {"practitioner_id": ser.validated_data.get("practitioner_id")}

    @extend_schema(request=BaseScheduleReplaceSerializer, responses={200: ScheduleReplacementSerializer})
    @action(detail=False, methods=["post"])
    def replace(self, request):
        scope = validated(MutationScopeSerializer, request.data)
        data = validated(BaseScheduleReplaceSerializer, request.data)
        replacement = BaseScheduleService.replace_base_schedule_set(
            **scope,
            expected_present_ids=data["expected_present_ids"],
            expected_absent_ids=data.get("expected_absent_ids"),
            replacement_schedules=data["replacement_schedules"],
        )
        return Response(replacement.to_dict())
