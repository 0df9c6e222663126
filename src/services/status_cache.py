"""Explicit cache for subscription status reads.

Entries are keyed by business and calendar day, so a cached ACTIVE status
never survives past the day its expiry was evaluated on. Every command that
changes a business's subscription or grants invalidates all of that business's
entries. Protected-feature checks never read from here; they always
revalidate against the database.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder

from src.cache.backends.base import CacheBackend
from src.cache.backends.factory import get_cache_backend
from src.cache.decorators import delete_matching
from src.core.config import settings


logger = logging.getLogger(__name__)

KEY_PREFIX = "subscription-status"


def status_key(business_id: int, today: dt.date) -> str:
    return f"{KEY_PREFIX}:{business_id}:{today.isoformat()}"


def status_key_pattern(business_id: int) -> str:
    return f"{KEY_PREFIX}:{business_id}:*"


class StatusCache:
    def __init__(self, backend: Optional[CacheBackend] = None) -> None:
        self.backend = backend or get_cache_backend()

    async def get(self, business_id: int, today: dt.date) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.backend.get(status_key(business_id, today))
        except Exception as exc:
            logger.error(f"Status cache read failed for business {business_id}: {exc}")
            return None
        return json.loads(raw) if raw is not None else None

    async def put(self, business_id: int, today: dt.date, payload: Dict[str, Any]) -> None:
        try:
            await self.backend.set(
                status_key(business_id, today),
                json.dumps(jsonable_encoder(payload)),
                ex=settings.cache.status_ttl_seconds,
            )
        except Exception as exc:
            logger.error(f"Status cache write failed for business {business_id}: {exc}")

    async def invalidate(self, business_id: int) -> int:
        try:
            return await delete_matching(self.backend, status_key_pattern(business_id))
        except Exception as exc:
            logger.error(f"Status cache invalidation failed for business {business_id}: {exc}")
            return 0
