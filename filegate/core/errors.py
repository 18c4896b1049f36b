"""Gateway error taxonomy and the FastAPI handler that renders it.

Every service raises one of these; the handler turns it into a JSON body
``{"detail": message}`` with the matching status code. Full error context
is logged where the error is raised, never sent to the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GatewayError):
    status_code = 400
    default_message = "invalid request"


class ConflictError(ValidationError):
    """A uniqueness constraint in the metadata store rejected a write."""

    default_message = "conflict"


class AlreadyExistsError(GatewayError):
    status_code = 409
    default_message = "user already exists"


class UnauthorizedError(GatewayError):
    status_code = 401
    default_message = "unauthorized"


class NotFoundError(GatewayError):
    status_code = 404
    default_message = "not found"


class InternalError(GatewayError):
    status_code = 500
    default_message = "internal error"


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.info(
        "request_failed method=%s path=%s status=%d error=%s",
        request.method,
        request.url.path,
        exc.status_code,
        type(exc).__name__,
    )
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info(
        "request_invalid method=%s path=%s errors=%s",
        request.method,
        request.url.path,
        exc.errors(),
    )
    return JSONResponse({"detail": ValidationError.default_message}, status_code=400)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
