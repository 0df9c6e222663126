"""Per-business request throttling backed by Redis counters."""
from __future__ import annotations

import logging
import time
from typing import Callable

import redis.asyncio as redis
from fastapi import Depends, HTTPException, status

from src.auth.jwt import require_auth
from src.core.config import settings


logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

_redis_client: redis.Redis | None = None


async def _get_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(str(settings.REDIS_URI), decode_responses=True)
    return _redis_client


async def check_rate_limit(business_id: int, scope: str = "default") -> None:
    """Count one request for ``business_id`` against the current minute.

    Each scope ("quote", "subscribe") has its own counter so browsing quotes
    cannot lock a business out of paying.
    """

    now = time.time()
    window = int(now // WINDOW_SECONDS)
    key = f"rate-limit:{scope}:{business_id}:{window}"

    client = await _get_client()
    hits = await client.incr(key)
    if hits == 1:
        await client.expire(key, WINDOW_SECONDS)
    if hits > settings.RATE_LIMIT_RPM:
        retry_after = WINDOW_SECONDS - int(now % WINDOW_SECONDS)
        logger.info(f"Business {business_id} throttled on '{scope}' ({hits} requests)")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after)},
        )


def rate_limit(scope: str) -> Callable:
    """Dependency throttling authenticated business callers; operators are exempt."""

    async def _limit(auth=Depends(require_auth)) -> None:
        if auth["business_id"] is not None and not auth["is_operator"]:
            await check_rate_limit(auth["business_id"], scope)

    return _limit
