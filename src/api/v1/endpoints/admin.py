"""Operator console endpoints: subscriptions, commissions, promo codes, grants."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session, get_subscription_service, get_today
from src.auth.jwt import require_admin
from src.cache.backends.base import CacheBackend
from src.cache.dependencies import get_cache
from src.core.enums import CommissionStatus
from src.core.exceptions import NotFoundError, StateConflictError, ValidationError
from src.db.models.business_module import BusinessModuleGrant
from src.db.models.promo_code import PromoCode
from src.repositories.business_repo import BusinessRepo
from src.repositories.catalog_repo import CatalogRepo
from src.repositories.commission_repo import CommissionRepo
from src.repositories.module_grant_repo import ModuleGrantRepo
from src.repositories.promo_code_repo import PromoCodeRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.schemas.admin import (
    AdminRenewRequest,
    AdminSubscriptionRead,
    BulkMarkPaid,
    CommissionPolicyRead,
    CommissionPolicyUpdate,
    CommissionRead,
    CommissionStatusUpdate,
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeUpdate,
)
from src.schemas.pricing import to_plan_type
from src.schemas.subscription import GrantCreate, GrantRead, GrantUpdate, SubscriptionRead
from src.services.catalog import PlanType
from src.services.commissions import CommissionEngine
from src.services.status_cache import StatusCache
from src.services.subscriptions import SubscriptionService, subscription_read


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# Subscriptions


@router.get("/subscriptions", response_model=List[AdminSubscriptionRead])
async def list_subscriptions(
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    rows = await SubscriptionRepo(db).list_current_with_business()
    return [
        AdminSubscriptionRead(
            id=subscription.id,
            business_id=business.id,
            business_name=business.name,
            plan_type=PlanType(subscription.plan_tier, subscription.cycle).token,
            status=service.machine.effective_status(subscription, today),
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            amount_paid=subscription.amount_paid,
            transaction_reference=subscription.transaction_reference,
        )
        for subscription, business in rows
    ]


@router.post("/subscriptions/renew", response_model=SubscriptionRead)
async def renew_subscription(
    body: AdminRenewRequest,
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    business = await BusinessRepo(db).get(body.business_id)
    if business is None:
        raise NotFoundError(f"Business {body.business_id} not found")
    subscription = await service.admin_renew(
        body.business_id,
        to_plan_type(body.plan_type, business.tier),
        body.duration_days,
        body.amount,
        reference=body.reference,
        modules=body.modules,
        today=today,
    )
    return subscription_read(subscription)


@router.get("/subscriptions/{business_id}/history", response_model=List[SubscriptionRead])
async def subscription_history(business_id: int, db: AsyncSession = Depends(get_db_session)):
    if await BusinessRepo(db).get(business_id) is None:
        raise NotFoundError(f"Business {business_id} not found")
    return [subscription_read(row) for row in await SubscriptionRepo(db).history(business_id)]


@router.post("/subscriptions/{business_id}/cancel", response_model=SubscriptionRead)
async def cancel_subscription(
    business_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    return subscription_read(await service.cancel(business_id))


# Commissions


@router.get("/commissions/settings", response_model=CommissionPolicyRead)
async def get_commission_settings(db: AsyncSession = Depends(get_db_session)):
    return await CommissionRepo(db).get_policy()


@router.put("/commissions/settings", response_model=CommissionPolicyRead)
async def update_commission_settings(
    body: CommissionPolicyUpdate, db: AsyncSession = Depends(get_db_session)
):
    repo = CommissionRepo(db)
    policy = await repo.get_policy()
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None:
            raise ValidationError(f"'{field}' cannot be null")
        setattr(policy, field, value)
    return await repo.save_policy(policy)


@router.get("/commissions", response_model=List[CommissionRead])
async def list_commissions(
    status_filter: Optional[CommissionStatus] = Query(default=None, alias="status"),
    installer_id: Optional[int] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
):
    return await CommissionRepo(db).list_all(status=status_filter, installer_id=installer_id)


@router.patch("/commissions/{commission_id}/status", response_model=CommissionRead)
async def update_commission_status(
    commission_id: int,
    body: CommissionStatusUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    return await CommissionEngine(db).set_status(commission_id, body.status)


@router.post("/commissions/mark-paid", response_model=List[CommissionRead])
async def bulk_mark_paid(body: BulkMarkPaid, db: AsyncSession = Depends(get_db_session)):
    return await CommissionEngine(db).mark_paid(body.ids)


# Promo codes

PROMO_REQUIRED_FIELDS = ("discount_percentage", "max_uses", "active")


async def _promo_or_404(repo: PromoCodeRepo, promo_id: int) -> PromoCode:
    promo = await repo.get(promo_id)
    if promo is None:
        raise NotFoundError(f"Promo code {promo_id} not found")
    return promo


@router.get("/promo-codes", response_model=List[PromoCodeRead])
async def list_promo_codes(db: AsyncSession = Depends(get_db_session)):
    return await PromoCodeRepo(db).list_all()


@router.post("/promo-codes", response_model=PromoCodeRead, status_code=status.HTTP_201_CREATED)
async def create_promo_code(body: PromoCodeCreate, db: AsyncSession = Depends(get_db_session)):
    repo = PromoCodeRepo(db)
    code = body.code.strip().upper()
    if await repo.get_by_code(code) is not None:
        raise StateConflictError(f"Promo code '{code}' already exists")
    return await repo.add(
        PromoCode(
            code=code,
            discount_percentage=body.discount_percentage,
            max_uses=body.max_uses,
            used_count=0,
            expiry_date=body.expiry_date,
            active=body.active,
        )
    )


@router.put("/promo-codes/{promo_id}", response_model=PromoCodeRead)
async def update_promo_code(
    promo_id: int, body: PromoCodeUpdate, db: AsyncSession = Depends(get_db_session)
):
    repo = PromoCodeRepo(db)
    promo = await _promo_or_404(repo, promo_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None and field in PROMO_REQUIRED_FIELDS:
            raise ValidationError(f"'{field}' cannot be null")
        setattr(promo, field, value)
    return await repo.save(promo)


@router.delete("/promo-codes/{promo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_promo_code(promo_id: int, db: AsyncSession = Depends(get_db_session)):
    repo = PromoCodeRepo(db)
    await repo.delete(await _promo_or_404(repo, promo_id))


# Module grants


async def _grant_or_404(repo: ModuleGrantRepo, grant_id: int) -> BusinessModuleGrant:
    grant = await repo.get(grant_id)
    if grant is None:
        raise NotFoundError(f"Module grant {grant_id} not found")
    return grant


@router.get("/modules", response_model=List[GrantRead])
async def list_module_grants(db: AsyncSession = Depends(get_db_session)):
    rows = await ModuleGrantRepo(db).list_with_business()
    return [
        GrantRead(
            id=grant.id,
            business_id=grant.business_id,
            module=grant.module_code,
            is_active=grant.is_active,
            expiry_date=grant.expiry_date,
            business_name=business.name,
            created_at=grant.created_at,
            updated_at=grant.updated_at,
        )
        for grant, business in rows
    ]


@router.post("/modules", response_model=GrantRead, status_code=status.HTTP_201_CREATED)
async def create_module_grant(
    body: GrantCreate,
    db: AsyncSession = Depends(get_db_session),
    cache: CacheBackend = Depends(get_cache),
):
    if await BusinessRepo(db).lock(body.business_id) is None:
        raise NotFoundError(f"Business {body.business_id} not found")
    if not await CatalogRepo(db).module_exists(body.module):
        raise ValidationError(f"Unknown module '{body.module}'")
    repo = ModuleGrantRepo(db)
    if await repo.get_for_business(body.business_id, body.module) is not None:
        raise StateConflictError(
            f"Business {body.business_id} already has a grant for '{body.module}'"
        )
    try:
        grant = await repo.add(
            BusinessModuleGrant(
                business_id=body.business_id,
                module_code=body.module,
                is_active=body.is_active,
                expiry_date=body.expiry_date,
            )
        )
    except IntegrityError as exc:
        raise StateConflictError(
            f"Business {body.business_id} already has a grant for '{body.module}'"
        ) from exc
    await StatusCache(cache).invalidate(body.business_id)
    return GrantRead.model_validate(grant)


@router.put("/modules/{grant_id}", response_model=GrantRead)
async def update_module_grant(
    grant_id: int,
    body: GrantUpdate,
    db: AsyncSession = Depends(get_db_session),
    cache: CacheBackend = Depends(get_cache),
):
    repo = ModuleGrantRepo(db)
    grant = await _grant_or_404(repo, grant_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "is_active" and value is None:
            raise ValidationError("'is_active' cannot be null")
        setattr(grant, field, value)
    grant = await repo.save(grant)
    await StatusCache(cache).invalidate(grant.business_id)
    return GrantRead.model_validate(grant)


@router.delete("/modules/{grant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module_grant(
    grant_id: int,
    db: AsyncSession = Depends(get_db_session),
    cache: CacheBackend = Depends(get_cache),
):
    repo = ModuleGrantRepo(db)
    grant = await _grant_or_404(repo, grant_id)
    business_id = grant.business_id
    await repo.delete(grant)
    await StatusCache(cache).invalidate(business_id)
