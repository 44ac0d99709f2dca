"""DRF exception handler producing a single error body shape.

Every error response looks like::

    {
        "type": "client_error" | "validation_error" | "server_error",
        "errors": [{"code": "...", "detail": "...", "attr": "..." | None}]
    }

Domain errors (``modules.core.exceptions``) are mapped to status codes
here so views can call services without per-exception ``try`` blocks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from modules.core.exceptions import (
    DomainError,
    EmptyCart,
    FieldValidationError,
    HasDependents,
    Inactive,
    InsufficientStock,
    InvalidTransition,
    NotFound,
    ReferencedByOrders,
    StaleCartItem,
    UnsupportedOperation,
)

logger = structlog.get_logger(__name__)

DOMAIN_STATUS_CODES: Dict[type, int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Inactive: status.HTTP_400_BAD_REQUEST,
    InsufficientStock: status.HTTP_409_CONFLICT,
    EmptyCart: status.HTTP_400_BAD_REQUEST,
    StaleCartItem: status.HTTP_409_CONFLICT,
    InvalidTransition: status.HTTP_400_BAD_REQUEST,
    HasDependents: status.HTTP_409_CONFLICT,
    ReferencedByOrders: status.HTTP_409_CONFLICT,
    UnsupportedOperation: status.HTTP_405_METHOD_NOT_ALLOWED,
    FieldValidationError: status.HTTP_400_BAD_REQUEST,
}


def custom_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    if isinstance(exc, DomainError):
        return _domain_error_response(exc)

    if isinstance(exc, PydanticValidationError):
        errors = [
            _error(
                code="invalid",
                detail=err["msg"],
                attr=".".join(str(part) for part in err["loc"]) or None,
            )
            for err in exc.errors()
        ]
        return Response(
            {"type": "validation_error", "errors": errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
        errors = _flatten_validation_detail(exc.detail)
    else:
        error_type = "client_error" if response.status_code < 500 else "server_error"
        detail = exc.detail if isinstance(exc, exceptions.APIException) else str(exc)
        code = getattr(detail, "code", None) or getattr(exc, "default_code", "error")
        errors = [_error(code=code, detail=str(detail))]

    response.data = {"type": error_type, "errors": errors}
    return response


def _domain_error_response(exc: DomainError) -> Response:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_class in type(exc).__mro__:
        if error_class in DOMAIN_STATUS_CODES:
            status_code = DOMAIN_STATUS_CODES[error_class]
            break

    if isinstance(exc, FieldValidationError) and exc.errors:
        errors = [
            _error(code=exc.code, detail=message, attr=field)
            for field, message in exc.errors.items()
        ]
        error_type = "validation_error"
    else:
        errors = [_error(code=exc.code, detail=exc.message, **_extra(exc))]
        error_type = "client_error"

    logger.info("api.domain_error", code=exc.code, status_code=status_code)
    return Response({"type": error_type, "errors": errors}, status=status_code)


def _extra(exc: DomainError) -> Dict[str, Any]:
    context = {k: v for k, v in exc.context.items() if v is not None}
    return {"meta": context} if context else {}


def _error(code: str, detail: str, attr: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    return {"code": code, "detail": detail, "attr": attr, **extra}


def _flatten_validation_detail(detail: Any, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for field, value in detail.items():
            attr = f"{prefix}.{field}" if prefix else str(field)
            if field == "non_field_errors":
                attr = prefix
            errors.extend(_flatten_validation_detail(value, attr))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                attr = f"{prefix}.{index}" if prefix else str(index)
                errors.extend(_flatten_validation_detail(value, attr))
            else:
                errors.extend(_flatten_validation_detail(value, prefix))
        return errors
    return [_error(code=getattr(detail, "code", "invalid"), detail=str(detail), attr=prefix)]
