"""Pydantic schemas for subscriptions, grants and businesses"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import BillingCycle, PlanTier, SubscriptionStatus
from src.schemas.common import Money
from src.schemas.pricing import PlanTypeField


class SubscriptionRead(BaseModel):
    id: int
    business_id: int
    plan_tier: PlanTier
    cycle: BillingCycle
    plan_type: str
    status: SubscriptionStatus
    start_date: dt.date
    end_date: Optional[dt.date] = None
    amount_paid: Money
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class GrantRead(BaseModel):
    id: int
    business_id: int
    module: str = Field(..., validation_alias="module_code")
    is_active: bool
    expiry_date: Optional[dt.date] = None
    business_name: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class GrantCreate(BaseModel):
    business_id: int
    module: str
    is_active: bool = True
    expiry_date: Optional[dt.date] = None


class GrantUpdate(BaseModel):
    is_active: Optional[bool] = None
    expiry_date: Optional[dt.date] = None


class StatusResponse(BaseModel):
    """Current subscription (or ``{"status": "NONE"}``) and module grants."""

    status: SubscriptionStatus
    subscription: Optional[SubscriptionRead] = None
    modules: List[GrantRead] = Field(default_factory=list)
    active_modules: List[str] = Field(default_factory=list)
    days_remaining: int = 0


class SubscribeRequest(BaseModel):
    plan_type: PlanTypeField = Field(..., description="Plan tier and cycle")
    reference: str = Field(..., min_length=1, description="Gateway transaction reference")
    modules: Optional[List[str]] = Field(
        default=None, description="Defaults to the modules picked at registration"
    )
    bundle_code: Optional[str] = None


class EntitlementRead(BaseModel):
    module: str
    entitled: bool
    status: SubscriptionStatus


class BusinessRegister(BaseModel):
    name: str = Field(..., min_length=1)
    tier: PlanTier = PlanTier.GROWTH
    skip_trial: bool = False
    installer_id: Optional[int] = None
    modules: List[str] = Field(default_factory=list, description="Modules picked during sign-up")


class BusinessRead(BaseModel):
    id: int
    name: str
    tier: PlanTier
    installer_id: Optional[int] = None
    registered_on: dt.date
    selected_modules: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class RegistrationRead(BaseModel):
    business: BusinessRead
    subscription: SubscriptionRead
