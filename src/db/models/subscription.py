"""Subscription lifecycle records."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.core.enums import BillingCycle, PlanTier, SubscriptionStatus
from src.db.base import Base


class Subscription(Base):
    """One version of a business's subscription.

    Every accepted payment appends a row and retires the previous one, so the
    table doubles as the billing history. ``is_current`` marks the row the
    lifecycle rules operate on.
    """

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    plan_tier: Mapped[PlanTier] = mapped_column(
        Enum(PlanTier, native_enum=False, length=16), nullable=False
    )
    cycle: Mapped[BillingCycle] = mapped_column(
        Enum(BillingCycle, native_enum=False, length=16), nullable=False
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus, native_enum=False, length=20), nullable=False
    )
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False, default=dt.date.today)
    end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    transaction_reference: Mapped[Optional[str]] = mapped_column(
        String(128), unique=True, nullable=True
    )
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Subscription {self.id} business={self.business_id} status={self.status.value}>"
