"""Subscription lifecycle transitions.

States::

    NONE -> TRIAL | PENDING_PAYMENT                  (registration)
    PENDING_PAYMENT/TRIAL/ACTIVE/GRACE/EXPIRED -> ACTIVE   (accepted payment)
    TRIAL/ACTIVE -> GRACE_PERIOD -> EXPIRED          (time, evaluated on read)
    any but NONE -> CANCELLED                        (admin action, terminal)

The functions here never touch the database; the subscription service loads
rows, applies these transitions and persists the result.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from src.core.enums import BillingCycle, PlanTier, SubscriptionStatus
from src.core.exceptions import StateConflictError, ValidationError
from src.db.models.subscription import Subscription
from src.services.catalog import PlanType


logger = logging.getLogger(__name__)

OPERATOR_END_DATE = dt.date(2099, 12, 31)
TRIAL_PAYMENT_METHOD = "TRIAL"


@dataclass(frozen=True)
class PaymentTerms:
    """What an accepted payment buys."""

    plan_type: PlanType
    duration_days: int
    amount_paid: Decimal
    reference: str
    payment_method: str = "GATEWAY"


class SubscriptionStateMachine:
    """Applies lifecycle events to :class:`Subscription` rows."""

    def __init__(self, trial_days: int = 14, grace_days: int = 3) -> None:
        self.trial_days = trial_days
        self.grace_days = grace_days

    def effective_status(
        self, subscription: Optional[Subscription], today: dt.date
    ) -> SubscriptionStatus:
        """Status of ``subscription`` as of ``today``, including time-based decay."""

        if subscription is None:
            return SubscriptionStatus.NONE
        status = subscription.status
        if status not in (
            SubscriptionStatus.TRIAL,
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.GRACE_PERIOD,
        ):
            return status
        end = subscription.end_date
        if end is None or today <= end:
            return status
        if today <= end + dt.timedelta(days=self.grace_days):
            return SubscriptionStatus.GRACE_PERIOD
        return SubscriptionStatus.EXPIRED

    def refresh(self, subscription: Optional[Subscription], today: dt.date) -> bool:
        """Write the effective status back onto the row. Returns True if it changed."""

        if subscription is None:
            return False
        effective = self.effective_status(subscription, today)
        if effective is subscription.status:
            return False
        logger.info(
            f"Subscription {subscription.id} for business {subscription.business_id} "
            f"{subscription.status.value} -> {effective.value}"
        )
        subscription.status = effective
        return True

    def register(
        self,
        business_id: int,
        tier: PlanTier,
        today: dt.date,
        skip_trial: bool = False,
        current: Optional[Subscription] = None,
    ) -> Subscription:
        """Create the first subscription row for a newly registered business."""

        if current is not None:
            raise StateConflictError(
                f"Business {business_id} already has a subscription"
            )
        if skip_trial:
            return Subscription(
                business_id=business_id,
                plan_tier=tier,
                cycle=BillingCycle.MONTHLY,
                status=SubscriptionStatus.PENDING_PAYMENT,
                start_date=today,
                end_date=None,
                amount_paid=Decimal("0"),
                is_current=True,
            )
        return Subscription(
            business_id=business_id,
            plan_tier=tier,
            cycle=BillingCycle.MONTHLY,
            status=SubscriptionStatus.TRIAL,
            start_date=today,
            end_date=today + dt.timedelta(days=self.trial_days),
            amount_paid=Decimal("0"),
            payment_method=TRIAL_PAYMENT_METHOD,
            is_current=True,
        )

    @staticmethod
    def is_trial(subscription: Optional[Subscription]) -> bool:
        return subscription is not None and subscription.payment_method == TRIAL_PAYMENT_METHOD

    def grant_expiry(self, subscription: Subscription) -> Optional[dt.date]:
        """Expiry for module grants bought with ``subscription``; covers the grace window."""

        if subscription.end_date is None:
            return None
        return subscription.end_date + dt.timedelta(days=self.grace_days)

    def ensure_accepts_payment(self, business_id: int, current: Optional[Subscription]) -> None:
        if current is not None and current.status is SubscriptionStatus.CANCELLED:
            raise StateConflictError(
                f"Subscription for business {business_id} is cancelled"
            )

    def activate(
        self,
        business_id: int,
        current: Optional[Subscription],
        terms: PaymentTerms,
        today: dt.date,
    ) -> Subscription:
        """Return the new ACTIVE row for an accepted payment and retire ``current``.

        The new period always starts today, not at the previous end date.
        """

        self.ensure_accepts_payment(business_id, current)
        if terms.duration_days <= 0:
            raise ValidationError("Subscription duration must be positive")

        if current is not None:
            current.is_current = False
        renewed = Subscription(
            business_id=business_id,
            plan_tier=terms.plan_type.tier,
            cycle=terms.plan_type.cycle,
            status=SubscriptionStatus.ACTIVE,
            start_date=today,
            end_date=today + dt.timedelta(days=terms.duration_days),
            amount_paid=terms.amount_paid,
            payment_method=terms.payment_method,
            transaction_reference=terms.reference,
            is_current=True,
        )
        previous = current.status.value if current is not None else SubscriptionStatus.NONE.value
        logger.info(
            f"Business {business_id} {previous} -> ACTIVE until {renewed.end_date} "
            f"(ref={terms.reference})"
        )
        return renewed

    def cancel(self, business_id: int, current: Optional[Subscription]) -> Subscription:
        if current is None:
            raise StateConflictError(f"Business {business_id} has no subscription to cancel")
        if current.status is SubscriptionStatus.CANCELLED:
            raise StateConflictError(
                f"Subscription for business {business_id} is already cancelled"
            )
        logger.info(f"Business {business_id} {current.status.value} -> CANCELLED")
        current.status = SubscriptionStatus.CANCELLED
        return current

    def operator_view(self, today: dt.date) -> Subscription:
        """Synthetic always-active subscription for platform operators."""

        return Subscription(
            id=0,
            business_id=0,
            plan_tier=PlanTier.GROWTH,
            cycle=BillingCycle.ANNUAL,
            status=SubscriptionStatus.ACTIVE,
            start_date=today,
            end_date=OPERATOR_END_DATE,
            amount_paid=Decimal("0"),
            payment_method="ADMIN",
            transaction_reference=None,
            is_current=True,
        )
