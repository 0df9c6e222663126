"""Pydantic schemas for the admin console"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import CommissionStatus, CommissionType, SubscriptionStatus
from src.schemas.common import Money
from src.schemas.pricing import PlanTypeField


class AdminRenewRequest(BaseModel):
    business_id: int
    plan_type: PlanTypeField
    duration_days: int = Field(..., gt=0)
    amount: Decimal = Field(..., ge=0)
    reference: Optional[str] = Field(
        default=None, description="Defaults to a generated ADMIN- reference"
    )
    modules: Optional[List[str]] = Field(
        default=None, description="Replace grants; omitted keeps current grants"
    )


class AdminSubscriptionRead(BaseModel):
    id: int
    business_id: int
    business_name: str
    plan_type: str
    status: SubscriptionStatus
    start_date: dt.date
    end_date: Optional[dt.date] = None
    amount_paid: Money
    transaction_reference: Optional[str] = None


class CommissionPolicyRead(BaseModel):
    onboarding_rate: Money
    renewal_rate: Money
    enable_renewal_commission: bool
    min_renewal_days: int
    commission_duration_days: int

    model_config = ConfigDict(from_attributes=True)


class CommissionPolicyUpdate(BaseModel):
    onboarding_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    renewal_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    enable_renewal_commission: Optional[bool] = None
    min_renewal_days: Optional[int] = Field(default=None, ge=0)
    commission_duration_days: Optional[int] = Field(default=None, ge=0)


class CommissionRead(BaseModel):
    id: int
    installer_id: int
    business_id: int
    type: CommissionType
    amount: Money
    status: CommissionStatus
    transaction_reference: str
    paid_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CommissionStatusUpdate(BaseModel):
    status: CommissionStatus


class BulkMarkPaid(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class PromoCodeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    discount_percentage: Decimal = Field(..., gt=0, le=100)
    max_uses: int = Field(default=1, ge=1)
    expiry_date: Optional[dt.date] = None
    active: bool = True


class PromoCodeUpdate(BaseModel):
    discount_percentage: Optional[Decimal] = Field(default=None, gt=0, le=100)
    max_uses: Optional[int] = Field(default=None, ge=1)
    expiry_date: Optional[dt.date] = None
    active: Optional[bool] = None


class PromoCodeRead(BaseModel):
    id: int
    code: str
    discount_percentage: Money
    max_uses: int
    used_count: int
    expiry_date: Optional[dt.date] = None
    active: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
