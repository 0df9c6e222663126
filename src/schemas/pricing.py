"""Pydantic schemas for the pricing catalog and quotes"""
from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import BillingCycle, PlanTier
from src.schemas.common import Money
from src.services.catalog import PlanType


class PlanTypeIn(BaseModel):
    """Structured plan identifier."""

    tier: PlanTier = Field(..., description="Plan tier")
    cycle: BillingCycle = Field(..., description="Billing cycle")


PlanTypeField = Union[PlanTypeIn, str]


def to_plan_type(value: PlanTypeField, default_tier: PlanTier) -> PlanType:
    """Resolve a structured or legacy token plan identifier."""

    if isinstance(value, PlanTypeIn):
        return PlanType(value.tier, value.cycle)
    return PlanType.parse(value, default_tier=default_tier)


class PlanRead(BaseModel):
    tier: PlanTier
    cycle: BillingCycle
    type: str = Field(..., description="Combined tier/cycle token")
    name: str
    price: Money
    currency: str
    duration_days: int
    user_limit: int
    product_limit: int


class ModuleRead(BaseModel):
    code: str
    name: str
    monthly_price: Money
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BundleRead(BaseModel):
    code: str
    name: str
    modules: List[str]
    bundle_price: Money
    description: Optional[str] = None


class PricingResponse(BaseModel):
    plans: List[PlanRead]
    modules: List[ModuleRead]
    bundles: List[BundleRead]


class QuoteRequest(BaseModel):
    """Selection to price."""

    plan_type: PlanTypeField = Field(..., description="Plan tier and cycle")
    modules: List[str] = Field(default_factory=list, description="Selected module codes")
    bundle_code: Optional[str] = Field(default=None, description="Selected bundle")
    promo_code: Optional[str] = Field(default=None, description="Promo code to apply")


class QuoteLineRead(BaseModel):
    kind: str
    code: str
    name: str
    original_amount: Money
    amount: Money

    model_config = ConfigDict(from_attributes=True)


class QuoteRead(BaseModel):
    plan_type: str
    duration_days: int
    plan_line: QuoteLineRead
    module_lines: List[QuoteLineRead]
    bundle_line: Optional[QuoteLineRead] = None
    promo_code: Optional[str] = None
    promo_discount: Money
    original_total: Money
    final_total: Money
    savings: Money
    discount_percent: int
    modules: List[str]


class SelectTierRequest(BaseModel):
    tier: PlanTier
    modules: List[str] = Field(default_factory=list)


class SelectTierResponse(BaseModel):
    tier: PlanTier
    modules: List[str]


class PromoValidation(BaseModel):
    success: bool
    discount_percentage: Money
