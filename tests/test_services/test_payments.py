from decimal import Decimal

import httpx
import pytest
from sqlalchemy import func, select

from src.cache.backends.memory import MemoryBackend
from src.core.enums import BillingCycle, PlanTier
from src.core.exceptions import PaymentVerificationError
from src.db.models import CommissionRecord, PaymentReference, Subscription
from src.services import payments
from src.services.catalog import PlanType
from src.services.status_cache import StatusCache
from src.services.subscriptions import SubscriptionService
from tests.utils import TODAY, seed_business


def _install(monkeypatch, handler):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://gateway.test"
    )
    monkeypatch.setattr(payments, "_client", client)
    return client


@pytest.mark.asyncio
async def test_successful_charge_is_converted_from_minor_units(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/transaction/verify/PSK-1"
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "status": "success",
                    "reference": "PSK-1",
                    "amount": 6330000,
                    "currency": "NGN",
                    "channel": "card",
                },
            },
        )

    client = _install(monkeypatch, handler)
    confirmation = await payments.verify_transaction("PSK-1")
    await client.aclose()

    assert confirmation.amount == Decimal("63300")
    assert confirmation.channel == "card"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"data": {"status": "abandoned", "amount": 100}}),
        httpx.Response(404, json={"status": False, "message": "Transaction reference not found"}),
    ],
)
async def test_unconfirmed_charges_are_rejected(monkeypatch, response):
    client = _install(monkeypatch, lambda request: response)

    with pytest.raises(PaymentVerificationError):
        await payments.verify_transaction("PSK-2")
    await client.aclose()


@pytest.mark.asyncio
async def test_gateway_requires_a_secret_key(monkeypatch):
    monkeypatch.setattr(payments, "_client", None)
    monkeypatch.setattr(payments.settings.payments, "secret_key", None)

    with pytest.raises(PaymentVerificationError):
        payments.get_payment_client()


def _single_charge_gateway(seen_paths: list):
    """Gateway that only knows the GROWTH monthly charge ``PSK-REAL``."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen_paths.append(request.url.raw_path)
        reference = request.url.path.rsplit("/", 1)[-1]
        if reference != "PSK-REAL":
            return httpx.Response(404, json={"status": False, "message": "Transaction reference not found"})
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "status": "success",
                    "reference": "PSK-REAL",
                    "amount": 500000,
                    "currency": "NGN",
                    "channel": "card",
                },
            },
        )

    return handler


@pytest.mark.asyncio
async def test_reference_is_sent_as_a_single_path_segment(monkeypatch):
    seen = []
    client = _install(monkeypatch, _single_charge_gateway(seen))

    with pytest.raises(PaymentVerificationError):
        await payments.verify_transaction("PSK-REAL?x=1")
    await client.aclose()

    assert seen == [b"/transaction/verify/PSK-REAL%3Fx%3D1"]


@pytest.mark.asyncio
async def test_confirmation_for_another_reference_is_rejected(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"data": {"status": "success", "reference": "PSK-OTHER", "amount": 500000}},
        )

    client = _install(monkeypatch, handler)

    with pytest.raises(PaymentVerificationError) as excinfo:
        await payments.verify_transaction("PSK-3")
    await client.aclose()

    assert excinfo.value.details == {"gateway_reference": "PSK-OTHER"}


@pytest.mark.asyncio
async def test_unreadable_gateway_body_is_rejected(monkeypatch):
    client = _install(monkeypatch, lambda request: httpx.Response(200, text="<html>busy</html>"))

    with pytest.raises(PaymentVerificationError):
        await payments.verify_transaction("PSK-4")
    await client.aclose()


@pytest.mark.asyncio
async def test_one_charge_activates_one_subscription(monkeypatch, test_db):
    seen = []
    client = _install(monkeypatch, _single_charge_gateway(seen))
    service = SubscriptionService(
        test_db,
        status_cache=StatusCache(MemoryBackend()),
        verifier=payments.verify_transaction,
    )
    plan_type = PlanType(PlanTier.GROWTH, BillingCycle.MONTHLY)
    first_id = await seed_business(test_db, name="First", installer_id=7)
    second_id = await seed_business(test_db, name="Second", installer_id=7)

    await service.subscribe(first_id, plan_type, "PSK-REAL", today=TODAY)
    with pytest.raises(PaymentVerificationError):
        await service.subscribe(first_id, plan_type, "PSK-REAL?x=1", today=TODAY)
    with pytest.raises(PaymentVerificationError):
        await service.subscribe(second_id, plan_type, "PSK-REAL#b", today=TODAY)
    await client.aclose()

    paid = await test_db.execute(
        select(func.count())
        .select_from(Subscription)
        .where(Subscription.transaction_reference.is_not(None))
    )
    assert paid.scalar_one() == 1
    assert (await test_db.execute(select(func.count()).select_from(PaymentReference))).scalar_one() == 1
    assert (await test_db.execute(select(func.count()).select_from(CommissionRecord))).scalar_one() == 1
