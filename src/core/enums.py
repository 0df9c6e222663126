"""Enumerations shared by the billing models and services."""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import NamedTuple


class PlanTier(str, Enum):
    GROWTH = "GROWTH"
    STARTER = "STARTER"


class BillingCycle(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


class CycleTerms(NamedTuple):
    """Month multiplier and module discount factor for a billing cycle."""

    multiplier: int
    discount: Decimal


CYCLE_TERMS = {
    BillingCycle.MONTHLY: CycleTerms(1, Decimal("1.00")),
    BillingCycle.QUARTERLY: CycleTerms(3, Decimal("0.90")),
    BillingCycle.ANNUAL: CycleTerms(12, Decimal("0.85")),
}


class SubscriptionStatus(str, Enum):
    NONE = "NONE"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    GRACE_PERIOD = "GRACE_PERIOD"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class CommissionType(str, Enum):
    ONBOARDING = "ONBOARDING"
    RENEWAL = "RENEWAL"


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentSource(str, Enum):
    GATEWAY = "GATEWAY"
    ADMIN = "ADMIN"
