"""Repository for promo codes."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.promo_code import PromoCode


class PromoCodeRepo:
    """Data-access helpers for :class:`PromoCode`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, promo_id: int) -> PromoCode | None:
        return await self.session.get(PromoCode, promo_id)

    async def get_by_code(self, code: str, for_update: bool = False) -> PromoCode | None:
        query = select(PromoCode).where(PromoCode.code == code.strip().upper())
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[PromoCode]:
        result = await self.session.execute(select(PromoCode).order_by(PromoCode.id))
        return list(result.scalars().all())

    async def add(self, promo: PromoCode) -> PromoCode:
        self.session.add(promo)
        await self.session.flush()
        await self.session.refresh(promo)
        return promo

    async def save(self, promo: PromoCode) -> PromoCode:
        self.session.add(promo)
        await self.session.flush()
        await self.session.refresh(promo)
        return promo

    async def delete(self, promo: PromoCode) -> None:
        await self.session.delete(promo)
        await self.session.flush()

    async def redeem(self, promo: PromoCode) -> PromoCode:
        promo.used_count += 1
        self.session.add(promo)
        await self.session.flush()
        return promo
