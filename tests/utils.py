"""Shared helpers for the test suite."""
import datetime as dt
from decimal import Decimal
from typing import Dict, List, Optional

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.enums import BillingCycle, PlanTier
from src.db.models import Bundle, Business, Module, Plan
from src.services.payments import PaymentConfirmation


API_PREFIX = f"{settings.API_PREFIX}/v1"
TODAY = dt.date(2025, 3, 1)


class FakeRedis:
    """Minimal async Redis stub for rate limiting tests."""

    def __init__(self) -> None:
        self.store: Dict[str, int] = {}

    async def incr(self, key: str) -> int:
        current = int(self.store.get(key, 0)) + 1
        self.store[key] = current
        return current

    async def expire(self, key: str, seconds: int) -> None:
        self.store.setdefault(f"{key}:ttl", seconds)


class Clock:
    """Mutable business date handed to the app in place of ``date.today``."""

    def __init__(self, today: dt.date) -> None:
        self.today = today

    def advance(self, days: int) -> dt.date:
        self.today += dt.timedelta(days=days)
        return self.today


class FakeGateway:
    """Records verification calls and confirms whatever amount is configured."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.amounts: Dict[str, Decimal] = {}
        self.currencies: Dict[str, str] = {}
        self.default_amount = Decimal("1000000")

    async def __call__(self, reference: str) -> PaymentConfirmation:
        self.calls.append(reference)
        return PaymentConfirmation(
            reference=reference,
            amount=self.amounts.get(reference, self.default_amount),
            currency=self.currencies.get(reference, "NGN"),
            channel="card",
        )


def build_auth_header(
    business_id: Optional[int] = None, role: str = "owner"
) -> Dict[str, str]:
    claims = {"role": role}
    if business_id is not None:
        claims["business_id"] = business_id
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    return {"Authorization": f"Bearer {token}"}


def operator_header() -> Dict[str, str]:
    return build_auth_header(role=settings.billing.admin_role)


async def seed_catalog(session: AsyncSession) -> None:
    prices = {
        PlanTier.GROWTH: (5000, 13500, 48000),
        PlanTier.STARTER: (2500, 6750, 24000),
    }
    cycles = (
        (BillingCycle.MONTHLY, 30),
        (BillingCycle.QUARTERLY, 90),
        (BillingCycle.ANNUAL, 365),
    )
    for tier, tier_prices in prices.items():
        for (cycle, days), price in zip(cycles, tier_prices):
            session.add(
                Plan(
                    tier=tier,
                    cycle=cycle,
                    name=f"{tier.value.title()} {cycle.value.title()}",
                    price=Decimal(price),
                    currency="NGN",
                    duration_days=days,
                    user_limit=5,
                    product_limit=500,
                )
            )
    session.add_all(
        [
            Module(code="KITCHEN_DISPLAY", name="Kitchen Display", monthly_price=Decimal("1500")),
            Module(code="RECIPE_MANAGEMENT", name="Recipe Management", monthly_price=Decimal("1000")),
            Module(code="TABLE_MANAGEMENT", name="Table Management", monthly_price=Decimal("1000")),
            Module(code="ADVANCED_REPORTS", name="Advanced Reports", monthly_price=Decimal("2000")),
            Bundle(
                code="RESTAURANT_PACK",
                name="Restaurant Pack",
                module_codes=["KITCHEN_DISPLAY", "RECIPE_MANAGEMENT", "TABLE_MANAGEMENT"],
                bundle_price=Decimal("3000"),
            ),
        ]
    )
    await session.commit()


async def seed_business(
    session: AsyncSession,
    *,
    name: str = "Mama Put Kitchen",
    tier: PlanTier = PlanTier.GROWTH,
    installer_id: Optional[int] = None,
    registered_on: dt.date = TODAY,
) -> int:
    """Insert a business and return its id."""

    business = Business(
        name=name, tier=tier, installer_id=installer_id, registered_on=registered_on
    )
    session.add(business)
    await session.commit()
    await session.refresh(business)
    return business.id
