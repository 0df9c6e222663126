"""Subscription quote calculation.

Everything here is a pure function of the catalog and the caller's selection,
so quotes can be computed concurrently and re-computed at payment time.

Cycle arithmetic::

    original = monthly_plan_price * multiplier + sum(module_price * multiplier)
    final    = cycle_plan_price + sum(module_price * multiplier * discount)

A selected bundle replaces its member modules with a single line priced at
``bundle_price * multiplier * discount``. A promo code then reduces the final
total by its percentage.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import FrozenSet, Iterable, Optional, Tuple

from src.core.enums import CYCLE_TERMS, BillingCycle, PlanTier
from src.core.exceptions import ValidationError
from src.services.catalog import PlanType, PricingCatalog


CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class QuoteLine:
    kind: str  # "plan", "module" or "bundle"
    code: str
    name: str
    original_amount: Decimal
    amount: Decimal


@dataclass(frozen=True)
class PromoTerms:
    """The parts of a promo code a quote needs."""

    code: str
    discount_percentage: Decimal
    max_uses: int
    used_count: int
    expiry_date: Optional[dt.date]
    active: bool

    @classmethod
    def from_row(cls, row) -> "PromoTerms":
        return cls(
            code=row.code,
            discount_percentage=Decimal(row.discount_percentage),
            max_uses=row.max_uses,
            used_count=row.used_count,
            expiry_date=row.expiry_date,
            active=row.active,
        )


@dataclass(frozen=True)
class QuoteBreakdown:
    plan_type: PlanType
    duration_days: int
    plan_line: QuoteLine
    module_lines: Tuple[QuoteLine, ...]
    bundle_line: Optional[QuoteLine]
    promo_code: Optional[str]
    promo_discount: Decimal
    original_total: Decimal
    final_total: Decimal
    savings: Decimal
    discount_percent: int
    modules: FrozenSet[str]

    @property
    def lines(self) -> Tuple[QuoteLine, ...]:
        extra = (self.bundle_line,) if self.bundle_line else ()
        return (self.plan_line,) + self.module_lines + extra


def select_tier(tier: PlanTier, current_modules: Iterable[str]) -> FrozenSet[str]:
    """Return the module selection that survives switching to ``tier``.

    STARTER plans cannot carry add-ons, so switching to STARTER always yields
    an empty selection; GROWTH keeps whatever was selected.
    """

    if tier is PlanTier.STARTER:
        return frozenset()
    return frozenset(current_modules)


def validate_promo(promo: Optional[PromoTerms], today: dt.date, code: str = "") -> PromoTerms:
    """Return ``promo`` if it can be redeemed today, else raise ValidationError."""

    if promo is None:
        raise ValidationError(f"Unknown promo code '{code}'")
    if not promo.active:
        raise ValidationError(f"Promo code '{promo.code}' is not active")
    if promo.expiry_date is not None and promo.expiry_date < today:
        raise ValidationError(f"Promo code '{promo.code}' has expired")
    if promo.used_count >= promo.max_uses:
        raise ValidationError(f"Promo code '{promo.code}' has been fully redeemed")
    if not (Decimal("0") < promo.discount_percentage <= HUNDRED):
        raise ValidationError(f"Promo code '{promo.code}' has an invalid discount")
    return promo


def discount_percent(original: Decimal, final: Decimal) -> int:
    if original <= 0:
        return 0
    ratio = (original - final) / original * HUNDRED
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _dedupe(codes: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for code in codes:
        if code not in seen:
            seen.append(code)
    return tuple(seen)


def calculate_quote(
    catalog: PricingCatalog,
    plan_type: PlanType,
    modules: Iterable[str] = (),
    bundle_code: Optional[str] = None,
    promo: Optional[PromoTerms] = None,
    today: Optional[dt.date] = None,
) -> QuoteBreakdown:
    """Price a plan selection. Raises ValidationError for malformed input."""

    selected = _dedupe(modules)
    if plan_type.tier is PlanTier.STARTER and (selected or bundle_code):
        raise ValidationError("STARTER plans cannot include modules or bundles")

    multiplier, discount = CYCLE_TERMS[plan_type.cycle]
    plan = catalog.plan(plan_type)
    monthly_plan = catalog.plan(PlanType(plan_type.tier, BillingCycle.MONTHLY))

    plan_original = monthly_plan.price * multiplier
    original_total = plan_original
    final_total = plan.price
    plan_line = QuoteLine(
        kind="plan",
        code=plan_type.token,
        name=plan.name,
        original_amount=money(plan_original),
        amount=money(plan.price),
    )

    bundle_line = None
    bundled: FrozenSet[str] = frozenset()
    if bundle_code:
        bundle = catalog.bundle(bundle_code)
        bundled = bundle.module_codes
        bundle_original = bundle.bundle_price * multiplier
        bundle_final = bundle_original * discount
        original_total += bundle_original
        final_total += bundle_final
        bundle_line = QuoteLine(
            kind="bundle",
            code=bundle.code,
            name=bundle.name,
            original_amount=money(bundle_original),
            amount=money(bundle_final),
        )

    module_lines = []
    for code in selected:
        module = catalog.module(code)
        if code in bundled:
            continue
        module_original = module.monthly_price * multiplier
        module_final = module_original * discount
        original_total += module_original
        final_total += module_final
        module_lines.append(
            QuoteLine(
                kind="module",
                code=module.code,
                name=module.name,
                original_amount=money(module_original),
                amount=money(module_final),
            )
        )

    promo_discount = Decimal("0")
    promo_code = None
    if promo is not None:
        validate_promo(promo, today or dt.date.today())
        promo_code = promo.code
        promo_discount = final_total * promo.discount_percentage / HUNDRED
        final_total -= promo_discount

    original_total = money(original_total)
    final_total = money(final_total)
    return QuoteBreakdown(
        plan_type=plan_type,
        duration_days=plan.duration_days,
        plan_line=plan_line,
        module_lines=tuple(module_lines),
        bundle_line=bundle_line,
        promo_code=promo_code,
        promo_discount=money(promo_discount),
        original_total=original_total,
        final_total=final_total,
        savings=original_total - final_total,
        discount_percent=discount_percent(original_total, final_total),
        modules=frozenset(selected) | bundled,
    )
