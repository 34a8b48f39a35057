"""Global exception handlers for the FastAPI application.

Domain and store errors map to status codes here and nowhere else:

- ``ValidationError`` and malformed request bodies: 400
- ``NotFoundError``: 404
- ``StoreError`` and anything unexpected: 500 with a generic message

Every response uses ``ErrorResponse`` and every error is logged with
sanitized context.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from taxman.api.constants import (
    HTTP_500_INTERNAL_SERVER_ERROR,
    INTERNAL_ERROR_MESSAGE,
    INVALID_JSON_MESSAGE,
)
from taxman.api.schemas.errors import ErrorResponse
from taxman.api.utils.responses import ORJSONResponse
from taxman.core.context import RequestContext, generate_request_id
from taxman.core.error_context import sanitize_dict, sanitize_error_context
from taxman.core.exceptions import (
    ErrorCode,
    NotFoundError,
    TaxManError,
    ValidationError,
)


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> Response:
    """Build the JSON error response for ``request``."""
    error_response = ErrorResponse(
        error=message,
        error_code=error_code,
        details=details,
        correlation_id=RequestContext.get_correlation_id(),
        request_id=getattr(request.state, "request_id", None) or generate_request_id(),
    )
    return ORJSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def _status_for(exc: TaxManError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def taxman_error_handler(request: Request, exc: Exception) -> Response:
    """Handle TaxManError exceptions.

    Client errors are returned with their message and context. Server-side
    errors are returned with their message only; the cause is logged.

    Raises:
        TypeError: If exc is not a TaxManError instance
    """
    if not isinstance(exc, TaxManError):
        raise TypeError(f"Expected TaxManError, got {type(exc).__name__}")

    status_code = _status_for(exc)
    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": request.url.path,
            "error_code": exc.error_code,
            "severity": exc.severity.value,
            "fingerprint": exc.fingerprint,
            **exc.context,
        },
    )

    if exc.is_expected:
        logger.bind(**error_context).info(
            "Request rejected: {}", exc.message, status_code=status_code
        )
        details = sanitize_dict(exc.context) if exc.context else None
    else:
        logger.bind(**error_context).error(
            "Handling {}: {}", type(exc).__name__, exc.message
        )
        details = None

    return _error_response(request, status_code, exc.error_code, exc.message, details)


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle bodies FastAPI could not parse or coerce.

    A body that is not JSON, or whose fields have the wrong JSON types, is
    reported as invalid JSON with the per-field problems as details.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field_path = error.get("loc", ())
        field_name = ".".join(str(loc) for loc in field_path[1:]) or "body"
        field_errors.setdefault(field_name, []).append(
            error.get("msg", "Invalid value")
        )

    logger.warning(
        "Request validation failed",
        method=request.method,
        path=request.url.path,
        validation_errors=field_errors,
    )

    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        ErrorCode.VALIDATION_ERROR.value,
        INVALID_JSON_MESSAGE,
        {"validation_errors": field_errors},
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException (unknown routes, wrong methods).

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    if exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorCode.NOT_FOUND.value
    elif exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        error_code = ErrorCode.INTERNAL_ERROR.value
    else:
        error_code = ErrorCode.VALIDATION_ERROR.value

    logger.warning(
        "HTTP exception",
        status=exc.status_code,
        method=request.method,
        path=request.url.path,
        detail=exc.detail,
    )

    response = _error_response(request, exc.status_code, error_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle anything else without revealing internal details."""
    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": request.url.path,
        },
    )
    logger.opt(exception=exc).bind(**error_context).error(
        "Unhandled exception: {}", type(exc).__name__
    )

    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR.value,
        INTERNAL_ERROR_MESSAGE,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(TaxManError, taxman_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
