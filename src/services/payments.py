"""Confirmation of transaction references with the payment gateway."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import quote

import httpx

from src.core.config import settings
from src.core.exceptions import PaymentVerificationError


logger = logging.getLogger(__name__)

_client: Optional[httpx.AsyncClient] = None


@dataclass(frozen=True)
class PaymentConfirmation:
    reference: str
    amount: Decimal
    currency: str
    channel: Optional[str] = None


def get_payment_client() -> httpx.AsyncClient:
    """Create (or reuse) an HTTP client configured for the gateway."""

    global _client

    if _client is None:
        if not settings.payments.secret_key:
            raise PaymentVerificationError("Payment gateway is not configured")
        _client = httpx.AsyncClient(
            base_url=settings.payments.base_url,
            headers={"Authorization": f"Bearer {settings.payments.secret_key}"},
            timeout=settings.payments.timeout_seconds,
        )
    return _client


async def close_payment_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def verify_transaction(reference: str) -> PaymentConfirmation:
    """Ask the gateway whether ``reference`` is a successful charge."""

    client = get_payment_client()
    try:
        response = await client.get(f"/transaction/verify/{quote(reference, safe='')}")
    except httpx.HTTPError as exc:
        logger.error(f"Gateway unreachable while verifying {reference}: {exc}")
        raise PaymentVerificationError(
            f"Could not verify transaction '{reference}'"
        ) from exc

    if response.status_code != httpx.codes.OK:
        raise PaymentVerificationError(
            f"Transaction '{reference}' could not be confirmed",
            details={"gateway_status": response.status_code},
        )

    try:
        body = response.json()
    except ValueError as exc:
        raise PaymentVerificationError(
            f"Gateway returned an unreadable response for '{reference}'"
        ) from exc

    data = (body.get("data") if isinstance(body, dict) else None) or {}
    if data.get("status") != "success":
        raise PaymentVerificationError(
            f"Transaction '{reference}' is not successful",
            details={"gateway_state": data.get("status")},
        )
    if data.get("reference") != reference:
        raise PaymentVerificationError(
            f"Gateway confirmed a different transaction than '{reference}'",
            details={"gateway_reference": data.get("reference")},
        )
    try:
        amount = Decimal(str(data.get("amount", 0))) / settings.payments.minor_unit_divisor
    except InvalidOperation as exc:
        raise PaymentVerificationError(
            f"Gateway returned an invalid amount for '{reference}'"
        ) from exc

    return PaymentConfirmation(
        reference=reference,
        amount=amount,
        currency=str(data.get("currency") or settings.billing.currency).upper(),
        channel=data.get("channel"),
    )
