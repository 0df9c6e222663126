"""Repository for commission policy and commission records."""
from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import CommissionStatus
from src.db.models.commission import CommissionPolicy, CommissionRecord


POLICY_ID = 1


class CommissionRepo:
    """Data-access helpers for :class:`CommissionPolicy` and :class:`CommissionRecord`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_policy(self) -> CommissionPolicy:
        """Return the global policy row, creating it with defaults on first use."""

        policy = await self.session.get(CommissionPolicy, POLICY_ID)
        if policy is None:
            policy = CommissionPolicy(id=POLICY_ID)
            self.session.add(policy)
            await self.session.flush()
            await self.session.refresh(policy)
        return policy

    async def save_policy(self, policy: CommissionPolicy) -> CommissionPolicy:
        self.session.add(policy)
        await self.session.flush()
        await self.session.refresh(policy)
        return policy

    async def get(self, commission_id: int) -> CommissionRecord | None:
        return await self.session.get(CommissionRecord, commission_id)

    async def get_by_reference(self, reference: str) -> CommissionRecord | None:
        result = await self.session.execute(
            select(CommissionRecord).where(CommissionRecord.transaction_reference == reference)
        )
        return result.scalar_one_or_none()

    async def list_all(
        self,
        status: Optional[CommissionStatus] = None,
        installer_id: Optional[int] = None,
    ) -> list[CommissionRecord]:
        query = select(CommissionRecord).order_by(CommissionRecord.id.desc())
        if status is not None:
            query = query.where(CommissionRecord.status == status)
        if installer_id is not None:
            query = query.where(CommissionRecord.installer_id == installer_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_ids(self, ids: Iterable[int]) -> list[CommissionRecord]:
        result = await self.session.execute(
            select(CommissionRecord)
            .where(CommissionRecord.id.in_(list(ids)))
            .with_for_update()
        )
        return list(result.scalars().all())

    async def add(self, record: CommissionRecord) -> CommissionRecord:
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def save(self, *records: CommissionRecord) -> None:
        self.session.add_all(records)
        await self.session.flush()
