"""Installer commission policy and records."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.enums import CommissionStatus, CommissionType
from src.db.base import Base


class CommissionPolicy(Base):
    """Global payout policy; a single row with ``id == 1``."""

    __tablename__ = "commission_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    onboarding_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("20")
    )
    renewal_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("10")
    )
    enable_renewal_commission: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    # 0 disables the minimum.
    min_renewal_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 0 means renewals earn commission for the lifetime of the business.
    commission_duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CommissionRecord(Base):
    """Commission owed to an installer for one payment."""

    __tablename__ = "commissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    installer_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    business_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[CommissionType] = mapped_column(
        Enum(CommissionType, native_enum=False, length=16), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[CommissionStatus] = mapped_column(
        Enum(CommissionStatus, native_enum=False, length=16),
        nullable=False,
        default=CommissionStatus.PENDING,
    )
    transaction_reference: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    paid_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<CommissionRecord {self.id} {self.type.value} {self.status.value}>"
