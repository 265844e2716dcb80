"""Maps engine failures to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fieldops.domain.errors import (
    BusinessRuleViolation,
    FieldOpsError,
    InvalidStateTransition,
    NoTicketsAvailable,
    NotFound,
    PermissionDenied,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
STATUS_BY_ERROR: tuple[tuple[type[FieldOpsError], int], ...] = (
    (NotFound, 404),
    (NoTicketsAvailable, 404),
    (ValidationError, 400),
    (PermissionDenied, 403),
    (InvalidStateTransition, 409),
    (BusinessRuleViolation, 409),
)


def status_for(exc: FieldOpsError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


async def handle_fieldops_error(request: Request, exc: FieldOpsError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("Unmapped engine error on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s → %d %s: %s", request.method, request.url.path, status, type(exc).__name__, exc)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FieldOpsError, handle_fieldops_error)
