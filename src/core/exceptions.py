"""Billing error taxonomy and the FastAPI handlers that render it."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)


class ValidationError(BillingError):
    """Unknown catalog reference or malformed selection."""

    status_code = status.HTTP_400_BAD_REQUEST


class PaymentVerificationError(BillingError):
    """The payment gateway could not confirm a transaction reference."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class StateConflictError(BillingError):
    """Reused reference, terminal subscription, or duplicate commission."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(BillingError):
    """Unknown business, subscription, commission or catalog row."""

    status_code = status.HTTP_404_NOT_FOUND


class SubscriptionInactiveError(BillingError):
    """A billing-sensitive action needs a strictly ACTIVE subscription."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class PermissionDeniedError(BillingError):
    """Caller lacks the operator role required for the action."""

    status_code = status.HTTP_403_FORBIDDEN


class CacheError(Exception):
    """Raised by cache backends when the store is unreachable."""


def _error_body(message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
    body: Dict[str, Any] = {"message": message, "error_code": error_code}
    if details:
        body["details"] = details
    return body


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.error_code, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "HTTPException"),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            "Request validation failed",
            "RequestValidationError",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillingError, billing_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
