"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module traduit les exceptions du domaine (`ValidationError`, `NotFoundError`,
`DependencyError`) et les `HTTPException` en réponses JSON `{code, message, trace_id}`.
Les erreurs de dépendance sont journalisées avec leur détail mais renvoyées de façon opaque.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from backend.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
)
from backend.domain.errors import DependencyError, NotFoundError, ValidationError

log = structlog.get_logger(__name__)

OPAQUE_SERVER_MESSAGE = "Something went wrong"


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class ErrorCodes:
    """Standard error codes for the API."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_HTTP_CODES = {
    400: ErrorCodes.BAD_REQUEST,
    401: ErrorCodes.UNAUTHORIZED,
    403: ErrorCodes.FORBIDDEN,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
    422: ErrorCodes.VALIDATION_ERROR,
    500: ErrorCodes.INTERNAL_ERROR,
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or from the request id middleware."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "request_id", None)


def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with standard envelope."""
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    response = create_error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=extract_trace_id(request),
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Corps ou paramètres de requête mal formés → 400 avec le détail des champs."""
    errors = [
        {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return create_error_response(
        HTTP_BAD_REQUEST,
        ErrorCodes.BAD_REQUEST,
        "invalid_request",
        extract_trace_id(request),
        details={"errors": errors},
    )


def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    """Payload client invalide → 400, message exposé."""
    log.info("validation_error", error=exc.message)
    return create_error_response(
        HTTP_BAD_REQUEST, ErrorCodes.BAD_REQUEST, exc.message, extract_trace_id(request)
    )


def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    """Ressource absente ou masquée → 404."""
    return create_error_response(
        HTTP_NOT_FOUND, ErrorCodes.NOT_FOUND, exc.message, extract_trace_id(request)
    )


def handle_dependency_error(request: Request, exc: DependencyError) -> JSONResponse:
    """Échec d'un collaborateur → 500 opaque; le détail reste côté serveur."""
    trace_id = extract_trace_id(request)
    log.error("dependency_error", error=exc.message, trace_id=trace_id)
    return create_error_response(
        HTTP_INTERNAL_SERVER_ERROR, ErrorCodes.INTERNAL_ERROR, OPAQUE_SERVER_MESSAGE, trace_id
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions with standard envelope."""
    trace_id = extract_trace_id(request)
    log.error(
        "unexpected_error",
        trace_id=trace_id,
        exception_type=type(exc).__name__,
        exc_info=exc,
    )
    return create_error_response(
        HTTP_INTERNAL_SERVER_ERROR, ErrorCodes.INTERNAL_ERROR, OPAQUE_SERVER_MESSAGE, trace_id
    )


def install_error_handlers(app: FastAPI) -> None:
    """Enregistre les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(DependencyError, handle_dependency_error)
    app.add_exception_handler(Exception, handle_generic_exception)
