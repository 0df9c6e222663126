"""Repository for business records."""
from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import PlanTier
from src.db.models.business import Business


class BusinessRepo:
    """Data-access helpers for :class:`Business`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, business_id: int) -> Business | None:
        result = await self.session.execute(
            select(Business).where(Business.id == business_id)
        )
        return result.scalar_one_or_none()

    async def lock(self, business_id: int) -> Business | None:
        """Load the business row with a write lock held until commit.

        Serialises subscription, grant and commission writes for one business.
        """

        result = await self.session.execute(
            select(Business).where(Business.id == business_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        tier: PlanTier,
        installer_id: Optional[int] = None,
        registered_on: Optional[dt.date] = None,
        selected_modules: Sequence[str] = (),
    ) -> Business:
        business = Business(
            name=name,
            tier=tier,
            installer_id=installer_id,
            registered_on=registered_on or dt.date.today(),
            selected_modules=list(selected_modules),
        )
        self.session.add(business)
        await self.session.flush()
        return business
