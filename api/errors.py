"""Global exception handlers for FastAPI.

Every invoice engine error maps to a distinct code so clients can tell a
bad line item from a taken number from an exhausted month.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import DuplicateInvoiceNumber, NumberSpaceExhausted, ValidationError

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _json(request: Request, status_code: int, code: str, message: str, details: dict | None = None):
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details, _request_id(request)).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValidationError)
    async def invoice_validation_handler(request: Request, exc: ValidationError):
        details = {"field": exc.field}
        if exc.item_index is not None:
            details["item_index"] = exc.item_index
        return _json(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc), details)

    @app.exception_handler(DuplicateInvoiceNumber)
    async def duplicate_number_handler(request: Request, exc: DuplicateInvoiceNumber):
        return _json(
            request, 409, ErrorCodes.INVOICE_NUMBER_TAKEN, str(exc),
            {"attempted_number": exc.attempted_number},
        )

    @app.exception_handler(NumberSpaceExhausted)
    async def exhausted_handler(request: Request, exc: NumberSpaceExhausted):
        logger.error(f"Invoice numbering exhausted: {exc}")
        return _json(
            request, 409, ErrorCodes.INVOICE_NUMBER_EXHAUSTED, str(exc),
            {"seller_id": exc.seller_id, "prefix": exc.prefix},
        )

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        return _json(request, 403, ErrorCodes.ACCESS_DENIED, str(exc) or "Access denied")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _json(request, 404, ErrorCodes.NOT_FOUND, message)
        return _json(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _json(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
