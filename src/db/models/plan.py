"""Billing plan catalog model."""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Enum, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.enums import BillingCycle, PlanTier
from src.db.base import Base


class Plan(Base):
    """Price of a plan tier for one billing cycle."""

    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tier: Mapped[PlanTier] = mapped_column(
        Enum(PlanTier, native_enum=False, length=16), nullable=False
    )
    cycle: Mapped[BillingCycle] = mapped_column(
        Enum(BillingCycle, native_enum=False, length=16), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Cycle-scoped price, not a monthly equivalent.
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN")
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    user_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    product_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    __table_args__ = (UniqueConstraint("tier", "cycle", name="uq_plan_tier_cycle"),)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Plan {self.tier.value}_{self.cycle.value} price={self.price}>"
