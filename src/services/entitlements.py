"""Module entitlement resolution."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Optional, Sequence

from src.core.enums import SubscriptionStatus
from src.core.exceptions import SubscriptionInactiveError


ENTITLED_STATUSES = frozenset(
    {SubscriptionStatus.ACTIVE, SubscriptionStatus.GRACE_PERIOD}
)


@dataclass(frozen=True)
class GrantView:
    module_code: str
    is_active: bool
    expiry_date: Optional[dt.date] = None

    @classmethod
    def from_row(cls, row) -> "GrantView":
        return cls(
            module_code=row.module_code,
            is_active=row.is_active,
            expiry_date=row.expiry_date,
        )

    def is_live(self, today: dt.date) -> bool:
        return self.is_active and (self.expiry_date is None or self.expiry_date >= today)


@dataclass(frozen=True)
class EntitlementContext:
    """Everything needed to answer entitlement questions for one business."""

    status: SubscriptionStatus
    grants: Sequence[GrantView] = field(default_factory=tuple)
    operator_bypass: bool = False
    unpaid_trial: bool = False

    @property
    def entitled(self) -> bool:
        if self.operator_bypass:
            return True
        if self.status is SubscriptionStatus.GRACE_PERIOD and self.unpaid_trial:
            return False
        return self.status in ENTITLED_STATUSES


def has_module(context: EntitlementContext, module_code: str, today: dt.date) -> bool:
    """True if the business may use ``module_code`` today.

    GRACE_PERIOD still counts as entitled, except after a lapsed trial, which
    never carried module access. Use :func:`require_active` before anything
    that bills or extends the subscription.
    """

    if context.operator_bypass:
        return True
    if not context.entitled:
        return False
    return any(
        grant.module_code == module_code and grant.is_live(today)
        for grant in context.grants
    )


def active_modules(context: EntitlementContext, today: dt.date) -> list[str]:
    if not context.entitled:
        return []
    return sorted({grant.module_code for grant in context.grants if grant.is_live(today)})


def require_active(context: EntitlementContext) -> None:
    """Raise unless the subscription is strictly ACTIVE (or operator bypass)."""

    if context.operator_bypass or context.status is SubscriptionStatus.ACTIVE:
        return
    raise SubscriptionInactiveError(
        f"Subscription is {context.status.value}; renew to continue"
    )
