"""Subscription commands and queries.

``subscribe`` and ``admin_renew`` are commands keyed by a transaction
reference; ``get_status`` and ``entitlements`` are queries over persisted
rows. Commands lock the business row first so that concurrent payments for
the same business apply one after the other.
"""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.cache.decorators import invalidate_cache
from src.core.config import settings
from src.core.enums import PaymentSource, PlanTier, SubscriptionStatus
from src.core.exceptions import (
    NotFoundError,
    PaymentVerificationError,
    StateConflictError,
)
from src.db.models.business import Business
from src.db.models.subscription import Subscription
from src.repositories.business_repo import BusinessRepo
from src.repositories.catalog_repo import CatalogRepo
from src.repositories.module_grant_repo import ModuleGrantRepo
from src.repositories.payment_reference_repo import PaymentReferenceRepo
from src.repositories.promo_code_repo import PromoCodeRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.schemas.subscription import GrantRead, StatusResponse, SubscriptionRead
from src.services.catalog import PlanType
from src.services.commissions import CommissionEngine, PaymentEvent
from src.services.entitlements import (
    EntitlementContext,
    GrantView,
    active_modules,
    has_module,
)
from src.services.lifecycle import PaymentTerms, SubscriptionStateMachine
from src.services.payments import verify_transaction
from src.services.pricing import (
    PromoTerms,
    QuoteBreakdown,
    calculate_quote,
    select_tier,
    validate_promo,
)
from src.services.status_cache import StatusCache, status_key_pattern


logger = logging.getLogger(__name__)


def _business_pattern(self, business_id: int, *args, **kwargs) -> str:
    return status_key_pattern(business_id)


def _status_backend(self, *args, **kwargs):
    return self.status_cache.backend


def subscription_read(subscription: Subscription) -> SubscriptionRead:
    return SubscriptionRead(
        id=subscription.id,
        business_id=subscription.business_id,
        plan_tier=subscription.plan_tier,
        cycle=subscription.cycle,
        plan_type=PlanType(subscription.plan_tier, subscription.cycle).token,
        status=subscription.status,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        amount_paid=subscription.amount_paid,
        payment_method=subscription.payment_method,
        transaction_reference=subscription.transaction_reference,
        created_at=subscription.created_at,
        updated_at=subscription.updated_at,
    )


class SubscriptionService:
    """Applies lifecycle commands for one request-scoped session."""

    def __init__(
        self,
        session: AsyncSession,
        machine: Optional[SubscriptionStateMachine] = None,
        status_cache: Optional[StatusCache] = None,
        verifier=None,
    ) -> None:
        self.session = session
        self.machine = machine or SubscriptionStateMachine(
            trial_days=settings.billing.trial_days,
            grace_days=settings.billing.grace_days,
        )
        self.status_cache = status_cache or StatusCache()
        self._verifier = verifier
        self.businesses = BusinessRepo(session)
        self.catalog = CatalogRepo(session)
        self.subscriptions = SubscriptionRepo(session)
        self.grants = ModuleGrantRepo(session)
        self.references = PaymentReferenceRepo(session)
        self.promos = PromoCodeRepo(session)
        self.commissions = CommissionEngine(session)

    # Queries

    async def quote(
        self,
        plan_type: PlanType,
        modules: Iterable[str] = (),
        bundle_code: Optional[str] = None,
        promo_code: Optional[str] = None,
        today: Optional[dt.date] = None,
    ) -> QuoteBreakdown:
        today = today or dt.date.today()
        promo = await self._promo_terms(promo_code, today) if promo_code else None
        catalog = await self.catalog.load_catalog()
        return calculate_quote(catalog, plan_type, modules, bundle_code, promo, today)

    async def validate_promo_code(self, code: str, today: Optional[dt.date] = None) -> PromoTerms:
        return await self._promo_terms(code, today or dt.date.today())

    async def get_status(
        self, business_id: int, today: Optional[dt.date] = None
    ) -> Dict[str, Any]:
        """Status payload for rendering; served from the status cache when fresh."""

        today = today or dt.date.today()
        cached = await self.status_cache.get(business_id, today)
        if cached is not None:
            return cached

        current, grants = await self._load_state(business_id, today)
        context = self._context(current, grants, today)
        payload = StatusResponse(
            status=context.status,
            subscription=subscription_read(current) if current is not None else None,
            modules=[GrantRead.model_validate(grant) for grant in grants],
            active_modules=active_modules(context, today),
            days_remaining=self._days_remaining(current, today),
        ).model_dump(mode="json")
        await self.status_cache.put(business_id, today, payload)
        return payload

    def operator_status(self, today: Optional[dt.date] = None) -> Dict[str, Any]:
        today = today or dt.date.today()
        synthetic = self.machine.operator_view(today)
        return StatusResponse(
            status=SubscriptionStatus.ACTIVE,
            subscription=subscription_read(synthetic),
            modules=[],
            active_modules=[],
            days_remaining=(synthetic.end_date - today).days,
        ).model_dump(mode="json")

    async def entitlements(
        self,
        business_id: int,
        today: Optional[dt.date] = None,
        operator_bypass: bool = False,
    ) -> EntitlementContext:
        """Fresh entitlement context; never served from the status cache."""

        if operator_bypass:
            return EntitlementContext(status=SubscriptionStatus.ACTIVE, operator_bypass=True)
        today = today or dt.date.today()
        current, grants = await self._load_state(business_id, today)
        return self._context(current, grants, today)

    async def has_module(
        self,
        business_id: int,
        module_code: str,
        today: Optional[dt.date] = None,
        operator_bypass: bool = False,
    ) -> Tuple[bool, EntitlementContext]:
        today = today or dt.date.today()
        context = await self.entitlements(business_id, today, operator_bypass)
        return has_module(context, module_code, today), context

    # Commands

    @invalidate_cache(_business_pattern, backend=_status_backend)
    async def register(
        self,
        business_id: int,
        skip_trial: bool = False,
        today: Optional[dt.date] = None,
    ) -> Subscription:
        today = today or dt.date.today()
        business = await self._lock_business(business_id)
        current = await self.subscriptions.get_current(business_id)
        subscription = self.machine.register(
            business_id, business.tier, today, skip_trial=skip_trial, current=current
        )
        return await self.subscriptions.add(subscription)

    @invalidate_cache(_business_pattern, backend=_status_backend)
    async def subscribe(
        self,
        business_id: int,
        plan_type: PlanType,
        reference: str,
        modules: Optional[Iterable[str]] = None,
        bundle_code: Optional[str] = None,
        promo_code: Optional[str] = None,
        today: Optional[dt.date] = None,
    ) -> Subscription:
        """Apply a gateway payment confirmation.

        Replaying a reference already applied to this business returns the
        current subscription without changes.
        When ``modules`` is None the selection made at registration is used;
        the first accepted payment consumes it.
        """

        today = today or dt.date.today()
        reference = reference.strip()
        business = await self._lock_business(business_id)

        replay = await self._replayed(business_id, reference)
        if replay is not None:
            return replay

        current = await self.subscriptions.get_current(business_id)
        self.machine.ensure_accepts_payment(business_id, current)

        promo_row = None
        promo = None
        if promo_code:
            promo_row = await self.promos.get_by_code(promo_code, for_update=True)
            promo = validate_promo(
                PromoTerms.from_row(promo_row) if promo_row else None, today, promo_code
            )
        if modules is None:
            modules = sorted(select_tier(plan_type.tier, business.selected_modules or ()))
        catalog = await self.catalog.load_catalog()
        quote = calculate_quote(catalog, plan_type, modules, bundle_code, promo, today)

        verifier = self._verifier or verify_transaction
        confirmation = await verifier(reference)
        if confirmation.reference != reference:
            raise PaymentVerificationError(
                f"Gateway confirmed '{confirmation.reference}' instead of '{reference}'"
            )
        plan_currency = catalog.plan(plan_type).currency
        if confirmation.currency != plan_currency:
            raise PaymentVerificationError(
                f"Transaction '{reference}' was charged in {confirmation.currency}, "
                f"plan is priced in {plan_currency}",
                details={"currency": confirmation.currency, "expected": plan_currency},
            )
        if confirmation.amount < quote.final_total:
            raise PaymentVerificationError(
                f"Transaction '{reference}' paid {confirmation.amount}, "
                f"quote requires {quote.final_total}",
                details={"paid": str(confirmation.amount), "due": str(quote.final_total)},
            )

        try:
            subscription = await self._accept_payment(
                business,
                current,
                PaymentTerms(
                    plan_type=plan_type,
                    duration_days=quote.duration_days,
                    amount_paid=quote.final_total,
                    reference=reference,
                    payment_method=confirmation.channel or "GATEWAY",
                ),
                source=PaymentSource.GATEWAY,
                modules=quote.modules,
                today=today,
            )
        except StateConflictError:
            logger.error(
                f"Verified payment {reference} for business {business_id} could not be "
                f"applied; escalate for manual reconciliation"
            )
            raise

        if business.selected_modules:
            business.selected_modules = []
        if promo_row is not None:
            await self.promos.redeem(promo_row)
        return subscription

    @invalidate_cache(_business_pattern, backend=_status_backend)
    async def admin_renew(
        self,
        business_id: int,
        plan_type: PlanType,
        duration_days: int,
        amount: Decimal,
        reference: Optional[str] = None,
        modules: Optional[Iterable[str]] = None,
        today: Optional[dt.date] = None,
    ) -> Subscription:
        """Manual renewal by an operator. Skips gateway verification only."""

        today = today or dt.date.today()
        reference = (reference or f"ADMIN-{uuid.uuid4().hex}").strip()
        business = await self._lock_business(business_id)

        existing = await self.references.get(reference)
        if existing is not None:
            raise StateConflictError(
                f"Transaction reference '{reference}' has already been used",
                error_code="ReferenceConsumed",
            )

        current = await self.subscriptions.get_current(business_id)
        if plan_type.tier is PlanTier.STARTER:
            modules = select_tier(PlanTier.STARTER, modules or ())
        if modules:
            catalog = await self.catalog.load_catalog()
            for code in modules:
                catalog.module(code)

        return await self._accept_payment(
            business,
            current,
            PaymentTerms(
                plan_type=plan_type,
                duration_days=duration_days,
                amount_paid=Decimal(amount),
                reference=reference,
                payment_method="ADMIN",
            ),
            source=PaymentSource.ADMIN,
            modules=modules,
            today=today,
        )

    @invalidate_cache(_business_pattern, backend=_status_backend)
    async def cancel(self, business_id: int) -> Subscription:
        await self._lock_business(business_id)
        current = await self.subscriptions.get_current(business_id)
        cancelled = self.machine.cancel(business_id, current)
        await self.subscriptions.save(cancelled)
        return cancelled

    # Internals

    async def _lock_business(self, business_id: int) -> Business:
        business = await self.businesses.lock(business_id)
        if business is None:
            raise NotFoundError(f"Business {business_id} not found")
        return business

    async def _replayed(self, business_id: int, reference: str) -> Optional[Subscription]:
        existing = await self.references.get(reference)
        if existing is None:
            return None
        if existing.business_id != business_id:
            raise StateConflictError(
                f"Transaction reference '{reference}' belongs to another business",
                error_code="ReferenceConsumed",
            )
        logger.info(f"Replayed reference {reference} for business {business_id}")
        current = await self.subscriptions.get_current(business_id)
        if current is None:
            raise StateConflictError(
                f"Transaction reference '{reference}' was consumed without a subscription",
                error_code="ReferenceConsumed",
            )
        return current

    async def _accept_payment(
        self,
        business: Business,
        current: Optional[Subscription],
        terms: PaymentTerms,
        source: PaymentSource,
        modules: Optional[Iterable[str]],
        today: dt.date,
    ) -> Subscription:
        is_first_payment = await self.subscriptions.count_paid(business.id) == 0
        await self.references.consume(terms.reference, business.id, source)

        renewed = self.machine.activate(business.id, current, terms, today)
        if current is not None:
            await self.subscriptions.save(current)
        renewed = await self.subscriptions.add(renewed)

        grant_expiry = self.machine.grant_expiry(renewed)
        if modules is None:
            await self.grants.extend_active(business.id, grant_expiry)
        else:
            await self.grants.replace(business.id, modules, grant_expiry)

        if terms.plan_type.tier is not business.tier:
            business.tier = terms.plan_type.tier
            self.session.add(business)

        await self.commissions.record_payment(
            PaymentEvent(
                business_id=business.id,
                installer_id=business.installer_id,
                reference=terms.reference,
                amount_paid=terms.amount_paid,
                duration_days=terms.duration_days,
                is_first_payment=is_first_payment,
                onboarded_on=business.registered_on,
                paid_on=today,
            )
        )
        await self.session.flush()
        return renewed

    async def _promo_terms(self, code: str, today: dt.date) -> PromoTerms:
        row = await self.promos.get_by_code(code)
        return validate_promo(PromoTerms.from_row(row) if row else None, today, code)

    async def _load_state(self, business_id: int, today: dt.date):
        business = await self.businesses.get(business_id)
        if business is None:
            raise NotFoundError(f"Business {business_id} not found")
        current = await self.subscriptions.get_current(business_id)
        if self.machine.refresh(current, today):
            await self.subscriptions.save(current)
        grants = await self.grants.list_for_business(business_id)
        return current, grants

    def _context(self, current, grants, today: dt.date) -> EntitlementContext:
        return EntitlementContext(
            status=self.machine.effective_status(current, today),
            grants=tuple(GrantView.from_row(grant) for grant in grants),
            unpaid_trial=self.machine.is_trial(current),
        )

    @staticmethod
    def _days_remaining(current: Optional[Subscription], today: dt.date) -> int:
        if current is None or current.end_date is None:
            return 0
        return max(0, (current.end_date - today).days)
