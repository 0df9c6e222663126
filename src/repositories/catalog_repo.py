"""Repository utilities for the pricing catalog."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.module import Bundle, Module
from src.db.models.plan import Plan
from src.services.catalog import PricingCatalog


class CatalogRepo:
    """Data-access helpers for :class:`Plan`, :class:`Module` and :class:`Bundle`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_plans(self) -> list[Plan]:
        result = await self.session.execute(
            select(Plan).order_by(Plan.tier, Plan.duration_days)
        )
        return list(result.scalars().all())

    async def list_modules(self) -> list[Module]:
        result = await self.session.execute(select(Module).order_by(Module.code))
        return list(result.scalars().all())

    async def list_bundles(self) -> list[Bundle]:
        result = await self.session.execute(select(Bundle).order_by(Bundle.code))
        return list(result.scalars().all())

    async def module_exists(self, code: str) -> bool:
        return await self.session.get(Module, code) is not None

    async def load_catalog(self) -> PricingCatalog:
        """Snapshot the catalog for a single quoting operation."""

        return PricingCatalog.from_rows(
            await self.list_plans(),
            await self.list_modules(),
            await self.list_bundles(),
        )
