"""Application error hierarchy and the FastAPI handlers that render it."""
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# Machine readable error codes returned to clients.
NO_SUBSCRIPTION = "NO_SUBSCRIPTION"
SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"
FEATURE_DISABLED = "FEATURE_DISABLED"
PLAN_LIMIT_EXCEEDED = "PLAN_LIMIT_EXCEEDED"
CONFIG_INVALID_KEY = "CONFIG_INVALID_KEY"
CONFIG_INVALID_VALUE_TYPE = "CONFIG_INVALID_VALUE_TYPE"
INVALID_SIGNATURE = "INVALID_SIGNATURE"
AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
PLAN_NOT_PAYABLE = "PLAN_NOT_PAYABLE"
SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
SUBSCRIPTION_ALREADY_EXISTS = "SUBSCRIPTION_ALREADY_EXISTS"
PAYMENT_PROVIDER_ERROR = "PAYMENT_PROVIDER_ERROR"
MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"


class AppError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "code": self.code, "message": self.message}


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class EnforcementError(ForbiddenError):
    """Raised by the subscription gate when a request must be blocked."""


class InvalidConfigKeyError(BadRequestError):
    code = CONFIG_INVALID_KEY

    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid config key: {key}")
        self.key = key


class InvalidConfigValueError(BadRequestError):
    code = CONFIG_INVALID_VALUE_TYPE

    def __init__(self, key: str, expected: str) -> None:
        super().__init__(f"Invalid value for {key}: expected {expected}")
        self.key = key
        self.expected = expected


class PaymentProviderError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = PAYMENT_PROVIDER_ERROR


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "errors": exc.errors(),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "code": "INTERNAL_ERROR", "message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
