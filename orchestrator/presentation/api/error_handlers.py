"""Exception handlers mapping domain errors to the error envelope.

Collaborator failures are logged in full but answered with a generic
message so that backing-service details never reach the caller.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from orchestrator.domain.exceptions import (
    CollaboratorError,
    CollaboratorTimeoutError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
)
from orchestrator.presentation.api.responses import error_response

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "INVALID_INPUT",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    501: "NOT_IMPLEMENTED",
}


async def _invalid_input(request: Request, exc: InvalidInputError):
    return error_response(request, 400, "INVALID_INPUT", exc.message, exc.details)


async def _request_validation(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return error_response(request, 400, "INVALID_INPUT", "Request validation failed", {"errors": errors})


async def _not_found(request: Request, exc: EntityNotFoundError):
    return error_response(
        request, 404, "NOT_FOUND", str(exc), {"entity": exc.entity_type, "id": str(exc.entity_id)}
    )


async def _duplicate(request: Request, exc: DuplicateEntityError):
    return error_response(
        request, 409, "CONFLICT", str(exc), {"entity": exc.entity_type, "field": exc.field}
    )


async def _invalid_transition(request: Request, exc: InvalidTransitionError):
    return error_response(
        request, 409, "INVALID_TRANSITION", str(exc), {"from": exc.current, "to": exc.target}
    )


async def _collaborator_failure(request: Request, exc: CollaboratorError):
    logger.error("Collaborator failure on %s %s: %s", request.method, request.url.path, exc)
    return error_response(
        request, 503, "SERVICE_UNAVAILABLE", "A backing service is unavailable, please retry later"
    )


async def _collaborator_timeout(request: Request, exc: CollaboratorTimeoutError):
    logger.error("Collaborator timeout on %s %s: %s", request.method, request.url.path, exc)
    return error_response(request, 504, "TIMEOUT", "A backing service timed out, please retry later")


async def _http_exception(request: Request, exc: StarletteHTTPException):
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(request, exc.status_code, code, str(exc.detail))


async def _unhandled(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "INTERNAL_ERROR", "An internal error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidInputError, _invalid_input)
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(EntityNotFoundError, _not_found)
    app.add_exception_handler(DuplicateEntityError, _duplicate)
    app.add_exception_handler(InvalidTransitionError, _invalid_transition)
    app.add_exception_handler(CollaboratorError, _collaborator_failure)
    app.add_exception_handler(CollaboratorTimeoutError, _collaborator_timeout)
    app.add_exception_handler(StarletteHTTPException, _http_exception)
    app.add_exception_handler(Exception, _unhandled)
