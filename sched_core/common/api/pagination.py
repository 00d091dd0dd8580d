# sched_core/common/api/pagination.py
from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size_query_param = "page_size"
    max_page_size = 500

    def get_page_size(self, request):
        self.page_size = getattr(settings, "SCHEDULING_PAGE_SIZE", 50)
        return super().get_page_size(request)


def paginate(request, queryset, serializer_class, *, paginator: PageNumberPagination | None = None) -> Response:
    """
    { count, next, previous, results } when the request is paginated,
    a plain list otherwise.
    """
    p = paginator or DefaultPagination()
    rows = p.paginate_queryset(queryset, request)
    if rows is None:
        return Response(serializer_class(queryset, many=True).data)
    return p.get_paginated_response(serializer_class(rows, many=True).data)
