"""Business (tenant) model."""
from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.enums import PlanTier
from src.db.base import Base


class Business(Base):
    """The paying customer that owns a subscription and module grants."""

    __tablename__ = "businesses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    tier: Mapped[PlanTier] = mapped_column(
        Enum(PlanTier, native_enum=False, length=16),
        nullable=False,
        default=PlanTier.GROWTH,
    )
    installer_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)
    registered_on: Mapped[dt.date] = mapped_column(
        Date, nullable=False, default=dt.date.today
    )
    # Module codes picked at registration, consumed by the first checkout.
    selected_modules: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Business {self.id} tier={self.tier.value}>"
