"""Selects the configured cache backend."""
from __future__ import annotations

import logging
from typing import Optional

from src.cache.backends.base import CacheBackend
from src.cache.backends.memory import MemoryBackend
from src.core.config import settings


logger = logging.getLogger(__name__)

_backend: Optional[CacheBackend] = None


def get_cache_backend() -> CacheBackend:
    """Return the process-wide cache backend, creating it on first use."""

    global _backend
    if _backend is None:
        if settings.cache.backend_type == "memory":
            _backend = MemoryBackend()
        else:
            from src.cache.backends.redis import RedisBackend

            _backend = RedisBackend(str(settings.REDIS_URI))
        logger.info(f"Using {type(_backend).__name__} cache backend")
    return _backend


async def reset_cache_backend() -> None:
    global _backend
    if _backend is not None:
        await _backend.close()
    _backend = None
