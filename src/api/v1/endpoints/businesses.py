"""Endpoints for registering businesses (bootstrap utilities)."""
from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session, get_subscription_service, get_today
from src.repositories.business_repo import BusinessRepo
from src.repositories.catalog_repo import CatalogRepo
from src.schemas.subscription import BusinessRead, BusinessRegister, RegistrationRead
from src.services.pricing import select_tier
from src.services.subscriptions import SubscriptionService, subscription_read


router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.post("/register", response_model=RegistrationRead)
async def register_business(
    body: BusinessRegister,
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
    today: dt.date = Depends(get_today),
):
    catalog = await CatalogRepo(db).load_catalog()
    for code in body.modules:
        catalog.module(code)
    business = await BusinessRepo(db).create(
        name=body.name,
        tier=body.tier,
        installer_id=body.installer_id,
        registered_on=today,
        selected_modules=sorted(select_tier(body.tier, body.modules)),
    )
    subscription = await service.register(business.id, skip_trial=body.skip_trial, today=today)
    return RegistrationRead(
        business=BusinessRead.model_validate(business),
        subscription=subscription_read(subscription),
    )
