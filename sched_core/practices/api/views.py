# sched_core/practices/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from sched_core.common.api.serializers import validated
from sched_core.practices.api.serializers import PracticeCreateSerializer, PracticeSerializer
from sched_core.practices.models import Practice
from sched_core.practices.selectors import PracticeSelector
from sched_core.practices.services import PracticeService


class PracticeViewSet(viewsets.ViewSet):
    serializer_class = PracticeSerializer
    queryset = Practice.objects.none()

    @extend_schema(request=PracticeCreateSerializer, responses={201: PracticeSerializer}, tags=["Practices"])
    def create(self, request):
        data = validated(PracticeCreateSerializer, request.data)
        practice = PracticeService.create_practice(name=data["name"])
        return Response(PracticeSerializer(practice).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: PracticeSerializer(many=True)}, tags=["Practices"])
    def list(self, request):
        return Response(PracticeSerializer(PracticeSelector.list_practices(), many=True).data)

    @extend_schema(responses={200: PracticeSerializer}, tags=["Practices"])
    def retrieve(self, request, pk=None):
        practice = PracticeSelector.get_practice(practice_id=pk)
        return Response(PracticeSerializer(practice).data)
