"""Ledger of consumed payment transaction references."""
from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.enums import PaymentSource
from src.db.base import Base


class PaymentReference(Base):
    """A transaction reference may be consumed exactly once."""

    __tablename__ = "payment_references"

    reference: Mapped[str] = mapped_column(String(128), primary_key=True)
    business_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    source: Mapped[PaymentSource] = mapped_column(
        Enum(PaymentSource, native_enum=False, length=16), nullable=False
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<PaymentReference {self.reference} business={self.business_id}>"
