# sched_core/common/api/exceptions.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from sched_core.rules.engine.errors import RuleEngineError, RuleNotFound
from sched_core.rulesets.exceptions import (
    DataIntegrityError,
    EntityNotFound,
    NoActiveRuleSet,
    NoUnsavedRuleSet,
    PracticeNotFound,
    RuleSetImmutable,
    RuleSetNotFound,
    RuleSetNotSaved,
    StaleSnapshot,
)

logger = logging.getLogger(__name__)

# first match wins; anything else in the domain hierarchy is a 400
DOMAIN_STATUS = (
    (DataIntegrityError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    ((PracticeNotFound, RuleSetNotFound, EntityNotFound, RuleNotFound), status.HTTP_404_NOT_FOUND),
    ((NoUnsavedRuleSet, NoActiveRuleSet, RuleSetImmutable, RuleSetNotSaved, StaleSnapshot), status.HTTP_409_CONFLICT),
)


def ensure_request_id(request) -> str:
    """Request id echoed in every error body; generated once per request."""
    if request is None:
        return uuid.uuid4().hex
    rid = getattr(request, "request_id", None)
    if not rid:
        rid = uuid.uuid4().hex
        request.request_id = rid
    return rid


def error_response(request, *, code: str, message: str, details: Any = None, http_status: int, headers=None) -> Response:
    body = {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": ensure_request_id(request),
        }
    }
    return Response(body, status=http_status, headers=headers)


def status_for_domain_error(exc: RuleEngineError) -> int:
    for types, http_status in DOMAIN_STATUS:
        if isinstance(exc, types):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def _framework_code(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return exc.default_code or "api_error"
    return "server_error" if http_status >= 500 else "error"


def _split_detail(data: Any) -> tuple[str, Optional[Any]]:
    """DRF bodies: {"detail": msg, ...} or a field -> errors mapping."""
    if isinstance(data, dict) and "detail" in data:
        rest = {k: v for k, v in data.items() if k != "detail"}
        return str(data["detail"]), rest or None
    return "Request failed.", data


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    if isinstance(exc, RuleEngineError):
        http_status = status_for_domain_error(exc)
        if http_status >= 500:
            logger.error("data integrity violation: %s %s", exc.message, exc.details)
        details = dict(exc.details)
        if exc.help:
            details["help"] = exc.help
        return error_response(
            request, code=exc.code, message=exc.message, details=details or None, http_status=http_status
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("unhandled API error", exc_info=exc)
        return error_response(
            request,
            code="server_error",
            message="Unexpected server error.",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    message, details = _split_detail(response.data)
    return error_response(
        request,
        code=_framework_code(exc, response.status_code),
        message=message,
        details=details,
        http_status=response.status_code,
        headers=response.headers,
    )
