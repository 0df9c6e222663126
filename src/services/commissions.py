"""Installer commission rules and bookkeeping."""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import CommissionStatus, CommissionType
from src.core.exceptions import NotFoundError, StateConflictError, ValidationError
from src.db.models.commission import CommissionPolicy, CommissionRecord
from src.repositories.commission_repo import CommissionRepo
from src.services.pricing import HUNDRED, money


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyTerms:
    onboarding_rate: Decimal
    renewal_rate: Decimal
    enable_renewal_commission: bool
    min_renewal_days: int
    commission_duration_days: int

    @classmethod
    def from_row(cls, row: CommissionPolicy) -> "PolicyTerms":
        return cls(
            onboarding_rate=Decimal(row.onboarding_rate),
            renewal_rate=Decimal(row.renewal_rate),
            enable_renewal_commission=row.enable_renewal_commission,
            min_renewal_days=row.min_renewal_days,
            commission_duration_days=row.commission_duration_days,
        )


@dataclass(frozen=True)
class PaymentEvent:
    """An accepted payment as seen by the commission rules."""

    business_id: int
    installer_id: Optional[int]
    reference: str
    amount_paid: Decimal
    duration_days: int
    is_first_payment: bool
    onboarded_on: dt.date
    paid_on: dt.date


@dataclass(frozen=True)
class CommissionDecision:
    type: CommissionType
    amount: Decimal


@dataclass(frozen=True)
class PolicyIneligibleOutcome:
    """The payment earns no commission. A normal outcome, not an error."""

    reason: str


def evaluate_commission(
    event: PaymentEvent, policy: PolicyTerms
) -> Union[CommissionDecision, PolicyIneligibleOutcome]:
    if event.installer_id is None:
        return PolicyIneligibleOutcome("business has no installer attribution")
    if event.amount_paid <= 0:
        return PolicyIneligibleOutcome("payment amount is zero")

    if event.is_first_payment:
        amount = money(event.amount_paid * policy.onboarding_rate / HUNDRED)
        if amount <= 0:
            return PolicyIneligibleOutcome("onboarding rate is zero")
        return CommissionDecision(CommissionType.ONBOARDING, amount)

    if not policy.enable_renewal_commission:
        return PolicyIneligibleOutcome("renewal commission disabled")
    if policy.min_renewal_days and event.duration_days < policy.min_renewal_days:
        return PolicyIneligibleOutcome(
            f"renewal of {event.duration_days} days is shorter than "
            f"{policy.min_renewal_days} days"
        )
    if policy.commission_duration_days:
        elapsed = (event.paid_on - event.onboarded_on).days
        if elapsed > policy.commission_duration_days:
            return PolicyIneligibleOutcome(
                f"{elapsed} days since onboarding exceeds "
                f"{policy.commission_duration_days} day commission window"
            )
    amount = money(event.amount_paid * policy.renewal_rate / HUNDRED)
    if amount <= 0:
        return PolicyIneligibleOutcome("renewal rate is zero")
    return CommissionDecision(CommissionType.RENEWAL, amount)


class CommissionEngine:
    """Creates PENDING commission records and applies admin payouts."""

    def __init__(self, session: AsyncSession) -> None:
        self.repo = CommissionRepo(session)

    async def record_payment(
        self, event: PaymentEvent
    ) -> Union[CommissionRecord, PolicyIneligibleOutcome]:
        if await self.repo.get_by_reference(event.reference) is not None:
            raise StateConflictError(
                f"Commission already recorded for reference '{event.reference}'",
                error_code="DuplicateCommission",
            )

        policy = PolicyTerms.from_row(await self.repo.get_policy())
        decision = evaluate_commission(event, policy)
        if isinstance(decision, PolicyIneligibleOutcome):
            logger.info(
                f"No commission for business {event.business_id} "
                f"(ref={event.reference}): {decision.reason}"
            )
            return decision

        record = await self.repo.add(
            CommissionRecord(
                installer_id=event.installer_id,
                business_id=event.business_id,
                type=decision.type,
                amount=decision.amount,
                status=CommissionStatus.PENDING,
                transaction_reference=event.reference,
            )
        )
        logger.info(
            f"{decision.type.value} commission {decision.amount} for installer "
            f"{event.installer_id} (business {event.business_id}, ref={event.reference})"
        )
        return record

    async def set_status(
        self, commission_id: int, status: CommissionStatus, now: Optional[dt.datetime] = None
    ) -> CommissionRecord:
        record = await self.repo.get(commission_id)
        if record is None:
            raise NotFoundError(f"Commission {commission_id} not found")
        if record.status is status:
            return record
        if status is not CommissionStatus.PAID:
            raise StateConflictError(
                f"Commission {commission_id} is already {record.status.value}"
            )
        self._mark_paid(record, now)
        await self.repo.save(record)
        return record

    async def mark_paid(
        self, commission_ids: Iterable[int], now: Optional[dt.datetime] = None
    ) -> list[CommissionRecord]:
        """Bulk payout. Already-paid records are left untouched."""

        ids = sorted(set(commission_ids))
        if not ids:
            raise ValidationError("No commission ids supplied")
        records = await self.repo.list_by_ids(ids)
        missing = set(ids) - {record.id for record in records}
        if missing:
            raise NotFoundError(f"Commissions not found: {sorted(missing)}")
        changed = [record for record in records if record.status is CommissionStatus.PENDING]
        for record in changed:
            self._mark_paid(record, now)
        await self.repo.save(*changed)
        logger.info(f"Marked {len(changed)} commissions as paid")
        return records

    @staticmethod
    def _mark_paid(record: CommissionRecord, now: Optional[dt.datetime]) -> None:
        record.status = CommissionStatus.PAID
        record.paid_at = now or dt.datetime.now(dt.timezone.utc)
