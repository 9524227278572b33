"""DRF exception handler producing a single error envelope.

Every error response has the shape::

    {"type": "client_error" | "server_error",
     "errors": [{"code": str, "detail": str, "attr": str | None}]}

Engine errors (``StoreError`` subclasses) and pydantic validation errors
are translated here so views can let them propagate.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import PermissionDenied
from django.http import Http404
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import set_rollback

from modules.core.exceptions import (
    DuplicateOrderCode,
    InsufficientStock,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    StorageFailure,
    StoreError,
)

logger = structlog.get_logger(__name__)

STORE_ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (InsufficientStock, status.HTTP_409_CONFLICT),
    (DuplicateOrderCode, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: StoreError) -> int:
    for exc_class, http_status in STORE_ERROR_STATUS:
        if isinstance(exc, exc_class):
            return http_status
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _envelope(http_status: int, errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    error_type = "server_error" if http_status >= 500 else "client_error"
    return {"type": error_type, "errors": errors}


def _error(code: str, detail: Any, attr: Optional[str] = None) -> Dict[str, Any]:
    return {"code": str(code), "detail": str(detail), "attr": attr}


def _flatten_drf_detail(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Walk DRF's nested ``ErrorDetail`` structure into a flat list."""
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            if key == "non_field_errors":
                child_attr = attr
            else:
                child_attr = f"{attr}.{key}" if attr else str(key)
            errors.extend(_flatten_drf_detail(value, child_attr))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                child_attr = f"{attr}.{index}" if attr else str(index)
                errors.extend(_flatten_drf_detail(value, child_attr))
            else:
                errors.extend(_flatten_drf_detail(value, attr))
        return errors
    code = getattr(detail, "code", None) or "invalid"
    return [_error(code, detail, attr)]


def _pydantic_errors(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    errors = []
    for item in exc.errors():
        attr = ".".join(str(part) for part in item.get("loc", ())) or None
        errors.append(_error(item.get("type", "invalid"), item.get("msg", ""), attr))
    return errors


def exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """Render engine, pydantic and DRF errors in one envelope.

    Returning ``None`` lets DRF re-raise anything we do not recognise, so
    unexpected failures still reach Django's 500 handling.
    """
    view = context.get("view")
    log = logger.bind(view=view.__class__.__name__ if view else None)

    if isinstance(exc, StoreError):
        http_status = status_for(exc)
        log.warning(
            "api.store_error",
            error=exc.__class__.__name__,
            code=exc.code,
            status_code=http_status,
        )
        set_rollback()
        return Response(
            _envelope(http_status, [_error(exc.code, exc)]),
            status=http_status,
        )

    if isinstance(exc, PydanticValidationError):
        log.info("api.validation_error", error_count=exc.error_count())
        set_rollback()
        return Response(
            _envelope(status.HTTP_400_BAD_REQUEST, _pydantic_errors(exc)),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    if not isinstance(exc, exceptions.APIException):
        return None

    headers = {}
    if getattr(exc, "auth_header", None):
        headers["WWW-Authenticate"] = exc.auth_header
    if getattr(exc, "wait", None):
        headers["Retry-After"] = "%d" % exc.wait

    if isinstance(exc.detail, (dict, list)):
        errors = _flatten_drf_detail(exc.detail)
    else:
        errors = [_error(exc.detail.code, exc.detail)]

    set_rollback()
    return Response(
        _envelope(exc.status_code, errors),
        status=exc.status_code,
        headers=headers,
    )
