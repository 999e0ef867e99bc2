"""
Domain errors and their HTTP mapping.

Services raise these exceptions; the handlers registered on the application
turn them into JSON responses of the form ``{"success": false, "message": ...}``.
"""

import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse
from loguru import logger


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    status_code = 404


class PermissionDeniedError(AppError):
    status_code = 403


class AuthenticationError(AppError):
    status_code = 401


class ValidationError(AppError):
    status_code = 400


class ConflictError(AppError):
    status_code = 400


class CouponError(AppError):
    """Coupon rejected: unknown, expired, exhausted or below the minimum."""


class PaymentError(AppError):
    """Payment gateway call failed or returned an unusable result."""

    status_code = 502


class FedExAPIError(Exception):
    """
    Error returned by the FedEx REST API.

    The message always starts with ``FedEx API Error`` and, when FedEx sent
    an error body, carries it as JSON after the prefix so the HTTP handler
    can return the structured payload.
    """

    PREFIX = "FedEx API Error"

    def __init__(
        self,
        payload: Any = None,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.payload = payload
        self.status_code = status_code
        self.code = code
        if payload is None:
            message = self.PREFIX
        elif isinstance(payload, str):
            message = f"{self.PREFIX}: {payload}"
        else:
            message = f"{self.PREFIX}: {json.dumps(payload)}"
        super().__init__(message)


def parse_fedex_error(message: str) -> dict[str, Any] | list[Any]:
    """
    Recover the FedEx payload from an error message.

    Falls back to ``{"message": message}`` when the text after the prefix
    is not JSON.
    """
    raw = message.replace(f"{FedExAPIError.PREFIX}: ", "", 1)
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {"message": message}
    if isinstance(parsed, (dict, list)):
        return parsed
    return {"message": message}


def fedex_error_response(exc: Exception) -> ORJSONResponse:
    """Build the 400 response used for any FedEx failure."""
    message = str(exc)
    logger.error(f"FedEx API Error: {message}")
    return ORJSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "FedEx API Error",
            "error": parse_fedex_error(message),
            "code": "FEDEX_API_ERROR",
        },
    )


async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, **exc.extra},
    )


async def fedex_error_handler(request: Request, exc: FedExAPIError) -> ORJSONResponse:
    return fedex_error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach domain error handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(FedExAPIError, fedex_error_handler)
