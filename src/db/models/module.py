"""Add-on module and bundle catalog models."""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base


class Module(Base):
    """An optional paid feature sold per month."""

    __tablename__ = "modules"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    monthly_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Module {self.code} price={self.monthly_price}>"


class Bundle(Base):
    """A set of modules sold together at a single monthly price."""

    __tablename__ = "bundles"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    module_codes: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    bundle_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Bundle {self.code} modules={self.module_codes}>"
