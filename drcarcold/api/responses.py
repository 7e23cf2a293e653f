"""
JSON envelope, pagination and exception handling for the DrCarCold API.

Success: {"success": true, "data": ..., "message": ..., "timestamp": ...}
Error:   {"success": false, "error": ..., "message": ..., "statusCode": ...,
          "timestamp": ..., "path": ...}
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import ProtectedError
from django.utils import timezone
from rest_framework import exceptions, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return timezone.now().isoformat()


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
    **extra,
) -> Response:
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    body["timestamp"] = _timestamp()
    return Response(body, status=status_code)


def error_response(
    error: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    request=None,
    message: Optional[str] = None,
    details: Any = None,
) -> Response:
    body: Dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    if details is not None:
        body["details"] = details
    body["statusCode"] = status_code
    body["timestamp"] = _timestamp()
    body["path"] = request.path if request is not None else ""
    return Response(body, status=status_code)


class StandardPagination(PageNumberPagination):
    """`page` / `limit` pagination (limit 1-100, default 20)."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data, **extra):
        return success_response(
            data,
            pagination={
                "page": self.page.number,
                "limit": self.page.paginator.per_page,
                "total": self.page.paginator.count,
                "totalPages": self.page.paginator.num_pages,
            },
            **extra,
        )


def paginated_response(request, queryset, serializer_class, **extra) -> Response:
    paginator = StandardPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = serializer_class(page, many=True, context={"request": request})
    return paginator.get_paginated_response(serializer.data, **extra)


def _error_text(exc: exceptions.APIException) -> str:
    if isinstance(exc, exceptions.ValidationError):
        return "Validation failed"
    detail = exc.detail
    if isinstance(detail, (list, tuple)) and detail:
        detail = detail[0]
    if isinstance(detail, dict):
        detail = detail.get("detail", exc.default_detail)
    return str(detail)


def api_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER wrapping every error in the error envelope.

    Unhandled exceptions are logged, sent to Sentry and returned as 500.
    """
    request = context.get("request")

    if isinstance(exc, ProtectedError):
        return error_response(
            "Resource is still referenced by other records",
            status.HTTP_400_BAD_REQUEST,
            request=request,
        )
    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(
            exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        sentry_sdk.capture_exception(exc)
        return error_response(
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            request=request,
        )

    details = response.data if isinstance(exc, exceptions.ValidationError) else None
    error = error_response(_error_text(exc), response.status_code, request=request, details=details)
    for header, value in response.items():
        error[header] = value
    return error
