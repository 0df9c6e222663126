"""Shared FastAPI dependencies."""
from __future__ import annotations

import datetime as dt
from typing import Any, AsyncGenerator, Callable, Dict

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.jwt import require_auth
from src.core.exceptions import PermissionDeniedError
from src.db.session import get_db
from src.services.subscriptions import SubscriptionService


async def get_db_session(
    session: AsyncSession = Depends(get_db),
) -> AsyncGenerator[AsyncSession, None]:
    yield session


def get_today() -> dt.date:
    """Current business date; overridden in tests to move the clock."""

    return dt.date.today()


def get_subscription_service(
    db: AsyncSession = Depends(get_db_session),
) -> SubscriptionService:
    return SubscriptionService(db)


def business_id_of(auth: Dict[str, Any]) -> int:
    if auth["business_id"] is None:
        raise PermissionDeniedError("This action requires a business account")
    return auth["business_id"]


def require_module(module_code: str) -> Callable:
    """Dependency guarding a protected feature.

    Always revalidates against persisted state, never the status cache.
    """

    async def _guard(
        auth=Depends(require_auth),
        service: SubscriptionService = Depends(get_subscription_service),
        today: dt.date = Depends(get_today),
    ) -> None:
        if auth["is_operator"]:
            return
        entitled, _ = await service.has_module(business_id_of(auth), module_code, today)
        if not entitled:
            raise PermissionDeniedError(
                f"Module '{module_code}' is not included in your subscription",
                error_code="ModuleNotEntitled",
            )

    return _guard
