"""Repository for the consumed payment reference ledger."""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import PaymentSource
from src.core.exceptions import StateConflictError
from src.db.models.payment_reference import PaymentReference


class PaymentReferenceRepo:
    """Data-access helpers for :class:`PaymentReference`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, reference: str) -> PaymentReference | None:
        return await self.session.get(PaymentReference, reference)

    async def consume(
        self, reference: str, business_id: int, source: PaymentSource
    ) -> PaymentReference:
        """Record ``reference`` as used. The primary key rejects a second writer."""

        entry = PaymentReference(reference=reference, business_id=business_id, source=source)
        self.session.add(entry)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise StateConflictError(
                f"Transaction reference '{reference}' has already been used",
                error_code="ReferenceConsumed",
            ) from exc
        return entry
