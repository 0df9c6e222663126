"""Repository utilities for business subscriptions."""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.business import Business
from src.db.models.subscription import Subscription


class SubscriptionRepo:
    """Data-access helpers for :class:`Subscription`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_current(self, business_id: int) -> Subscription | None:
        result = await self.session.execute(
            select(Subscription)
            .where(
                Subscription.business_id == business_id,
                Subscription.is_current.is_(True),
            )
            .order_by(Subscription.id.desc())
        )
        return result.scalars().first()

    async def history(self, business_id: int) -> list[Subscription]:
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.business_id == business_id)
            .order_by(Subscription.id)
        )
        return list(result.scalars().all())

    async def list_current_with_business(self) -> list[tuple[Subscription, Business]]:
        result = await self.session.execute(
            select(Subscription, Business)
            .join(Business, Business.id == Subscription.business_id)
            .where(Subscription.is_current.is_(True))
            .order_by(Subscription.id.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def add(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def save(self, *subscriptions: Subscription) -> None:
        self.session.add_all(subscriptions)
        await self.session.flush()
        for subscription in subscriptions:
            await self.session.refresh(subscription)

    async def count_paid(self, business_id: int) -> int:
        """Number of accepted payments with a non-zero amount."""

        result = await self.session.execute(
            select(func.count())
            .select_from(Subscription)
            .where(
                Subscription.business_id == business_id,
                Subscription.transaction_reference.is_not(None),
                Subscription.amount_paid > 0,
            )
        )
        return int(result.scalar_one() or 0)
