"""Repository for business module grants."""
from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.business import Business
from src.db.models.business_module import BusinessModuleGrant


class ModuleGrantRepo:
    """Data-access helpers for :class:`BusinessModuleGrant`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, grant_id: int) -> BusinessModuleGrant | None:
        return await self.session.get(BusinessModuleGrant, grant_id)

    async def get_for_business(
        self, business_id: int, module_code: str
    ) -> BusinessModuleGrant | None:
        result = await self.session.execute(
            select(BusinessModuleGrant).where(
                BusinessModuleGrant.business_id == business_id,
                BusinessModuleGrant.module_code == module_code,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_business(self, business_id: int) -> list[BusinessModuleGrant]:
        result = await self.session.execute(
            select(BusinessModuleGrant)
            .where(BusinessModuleGrant.business_id == business_id)
            .order_by(BusinessModuleGrant.module_code)
        )
        return list(result.scalars().all())

    async def list_with_business(self) -> list[tuple[BusinessModuleGrant, Business]]:
        result = await self.session.execute(
            select(BusinessModuleGrant, Business)
            .join(Business, Business.id == BusinessModuleGrant.business_id)
            .order_by(BusinessModuleGrant.id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def add(self, grant: BusinessModuleGrant) -> BusinessModuleGrant:
        self.session.add(grant)
        await self.session.flush()
        await self.session.refresh(grant)
        return grant

    async def save(self, grant: BusinessModuleGrant) -> BusinessModuleGrant:
        self.session.add(grant)
        await self.session.flush()
        await self.session.refresh(grant)
        return grant

    async def delete(self, grant: BusinessModuleGrant) -> None:
        await self.session.delete(grant)
        await self.session.flush()

    async def replace(
        self,
        business_id: int,
        module_codes: Iterable[str],
        expiry_date: Optional[dt.date],
    ) -> list[BusinessModuleGrant]:
        """Make ``module_codes`` the business's only active grants."""

        wanted = set(module_codes)
        existing = {grant.module_code: grant for grant in await self.list_for_business(business_id)}
        for code, grant in existing.items():
            if code in wanted:
                grant.is_active = True
                grant.expiry_date = expiry_date
            else:
                grant.is_active = False
        for code in sorted(wanted - existing.keys()):
            self.session.add(
                BusinessModuleGrant(
                    business_id=business_id,
                    module_code=code,
                    is_active=True,
                    expiry_date=expiry_date,
                )
            )
        await self.session.flush()
        return await self.list_for_business(business_id)

    async def extend_active(
        self, business_id: int, expiry_date: Optional[dt.date]
    ) -> list[BusinessModuleGrant]:
        """Move the expiry of every active grant to ``expiry_date``."""

        grants = await self.list_for_business(business_id)
        for grant in grants:
            if grant.is_active:
                grant.expiry_date = expiry_date
        await self.session.flush()
        return grants
