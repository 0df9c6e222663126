"""Endpoints for pricing, quotes and the caller's own subscription."""
from __future__ import annotations

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import (
    business_id_of,
    get_db_session,
    get_subscription_service,
    get_today,
)
from src.auth.jwt import require_auth
from src.cache.decorators import cached
from src.core.enums import PlanTier
from src.repositories.business_repo import BusinessRepo
from src.repositories.catalog_repo import CatalogRepo
from src.schemas.pricing import (
    BundleRead,
    ModuleRead,
    PlanRead,
    PricingResponse,
    PromoValidation,
    QuoteLineRead,
    QuoteRead,
    QuoteRequest,
    SelectTierRequest,
    SelectTierResponse,
    to_plan_type,
)
from src.schemas.subscription import (
    EntitlementRead,
    StatusResponse,
    SubscribeRequest,
    SubscriptionRead,
)
from src.services.catalog import PlanType
from src.services.limits import rate_limit
from src.services.pricing import QuoteBreakdown, select_tier
from src.services.subscriptions import SubscriptionService, subscription_read


router = APIRouter(prefix="/subscription", tags=["subscription"])


@cached(key="pricing:catalog")
async def load_pricing(db: AsyncSession) -> dict:
    catalog_repo = CatalogRepo(db)
    plans = await catalog_repo.list_plans()
    modules = await catalog_repo.list_modules()
    bundles = await catalog_repo.list_bundles()
    return PricingResponse(
        plans=[
            PlanRead(
                tier=plan.tier,
                cycle=plan.cycle,
                type=PlanType(plan.tier, plan.cycle).token,
                name=plan.name,
                price=plan.price,
                currency=plan.currency,
                duration_days=plan.duration_days,
                user_limit=plan.user_limit,
                product_limit=plan.product_limit,
            )
            for plan in plans
        ],
        modules=[ModuleRead.model_validate(module) for module in modules],
        bundles=[
            BundleRead(
                code=bundle.code,
                name=bundle.name,
                modules=sorted(bundle.module_codes or []),
                bundle_price=bundle.bundle_price,
                description=bundle.description,
            )
            for bundle in bundles
        ],
    ).model_dump(mode="json")


def quote_read(quote: QuoteBreakdown) -> QuoteRead:
    return QuoteRead(
        plan_type=quote.plan_type.token,
        duration_days=quote.duration_days,
        plan_line=QuoteLineRead.model_validate(quote.plan_line),
        module_lines=[QuoteLineRead.model_validate(line) for line in quote.module_lines],
        bundle_line=(
            QuoteLineRead.model_validate(quote.bundle_line) if quote.bundle_line else None
        ),
        promo_code=quote.promo_code,
        promo_discount=quote.promo_discount,
        original_total=quote.original_total,
        final_total=quote.final_total,
        savings=quote.savings,
        discount_percent=quote.discount_percent,
        modules=sorted(quote.modules),
    )


async def _business_tier(db: AsyncSession, auth) -> PlanTier:
    if auth["business_id"] is None:
        return PlanTier.GROWTH
    business = await BusinessRepo(db).get(auth["business_id"])
    return business.tier if business is not None else PlanTier.GROWTH


@router.get("/pricing", response_model=PricingResponse)
async def pricing(db: AsyncSession = Depends(get_db_session)):
    return await load_pricing(db)


@router.post("/select-tier", response_model=SelectTierResponse)
async def select_plan_tier(body: SelectTierRequest):
    return SelectTierResponse(
        tier=body.tier, modules=sorted(select_tier(body.tier, body.modules))
    )


@router.post("/quote", response_model=QuoteRead, dependencies=[Depends(rate_limit("quote"))])
async def quote_selection(
    body: QuoteRequest,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    plan_type = to_plan_type(body.plan_type, await _business_tier(db, auth))
    breakdown = await service.quote(
        plan_type, body.modules, body.bundle_code, body.promo_code, today
    )
    return quote_read(breakdown)


@router.get("/promo/validate", response_model=PromoValidation)
async def validate_promo(
    code: str = Query(..., min_length=1),
    auth=Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    promo = await service.validate_promo_code(code, today)
    return PromoValidation(success=True, discount_percentage=promo.discount_percentage)


@router.get("/status", response_model=StatusResponse)
async def subscription_status(
    auth=Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    if auth["is_operator"]:
        return service.operator_status(today)
    return await service.get_status(business_id_of(auth), today)


@router.get("/modules/{module_code}", response_model=EntitlementRead)
async def module_entitlement(
    module_code: str,
    auth=Depends(require_auth),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    business_id = None if auth["is_operator"] else business_id_of(auth)
    entitled, context = await service.has_module(
        business_id, module_code, today, operator_bypass=auth["is_operator"]
    )
    return EntitlementRead(module=module_code, entitled=entitled, status=context.status)


@router.post(
    "/subscribe",
    response_model=SubscriptionRead,
    dependencies=[Depends(rate_limit("subscribe"))],
)
async def subscribe(
    body: SubscribeRequest,
    promo_code: Optional[str] = Query(default=None),
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    business_id = business_id_of(auth)
    plan_type = to_plan_type(body.plan_type, await _business_tier(db, auth))
    subscription = await service.subscribe(
        business_id,
        plan_type,
        body.reference,
        modules=body.modules,
        bundle_code=body.bundle_code,
        promo_code=promo_code,
        today=today,
    )
    return subscription_read(subscription)
