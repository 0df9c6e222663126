"""
Caching decorators for read-mostly lookups and command-driven invalidation
"""
import functools
import json
import logging
from typing import Any, Callable, Optional, Union

from fastapi.encoders import jsonable_encoder

from src.cache.backends.base import CacheBackend
from src.cache.backends.factory import get_cache_backend
from src.core.config import settings


logger = logging.getLogger(__name__)

KeySource = Union[str, Callable[..., str]]


def _resolve(source: KeySource, args: tuple, kwargs: dict) -> str:
    return source(*args, **kwargs) if callable(source) else source


async def delete_matching(cache_backend: CacheBackend, key_pattern: str) -> int:
    """
    Delete every key matching a glob pattern, scanning in pages
    """
    cursor: Any = "0"
    deleted_count = 0

    while True:
        cursor, keys = await cache_backend.scan(cursor=cursor, match=key_pattern, count=100)
        if keys:
            deleted_count += await cache_backend.delete(*keys)
        if str(cursor) == "0":
            break

    return deleted_count


def cached(key: KeySource, ttl: Optional[int] = None):
    """
    Cache the JSON form of an async function's result

    Args:
        key: Cache key, or a callable receiving the decorated function's
            arguments and returning one
        ttl: Time to live in seconds. Defaults to settings.CACHE_TTL_SECONDS.

    Cache failures never fail the call; the function simply runs uncached.
    Hits return the decoded JSON, so callers should return plain data.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            cache_backend = get_cache_backend()
            cache_key = _resolve(key, args, kwargs)

            try:
                hit = await cache_backend.get(cache_key)
            except Exception as cache_exc:
                logger.error(f"Cache error during get: {cache_exc}")
                hit = None
            if hit is not None:
                logger.debug(f"Cache hit for key: {cache_key}")
                return json.loads(hit)

            result = await func(*args, **kwargs)
            try:
                await cache_backend.set(
                    cache_key,
                    json.dumps(jsonable_encoder(result)),
                    ex=ttl if ttl is not None else settings.CACHE_TTL_SECONDS,
                )
            except Exception as cache_exc:
                logger.error(f"Cache error during set: {cache_exc}")
            return result

        return wrapper
    return decorator


def invalidate_cache(
    key_pattern: KeySource,
    backend: Optional[Callable[..., CacheBackend]] = None,
):
    """
    Drop cached entries matching a pattern after the wrapped command succeeds

    Args:
        key_pattern: Key pattern to match (e.g., "pricing:*"), or a callable
            receiving the decorated function's arguments and returning one
        backend: Callable receiving the same arguments and returning the cache
            backend to clear; defaults to the process-wide backend
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            result = await func(*args, **kwargs)

            cache_backend = backend(*args, **kwargs) if backend else get_cache_backend()
            pattern = _resolve(key_pattern, args, kwargs)
            try:
                deleted_count = await delete_matching(cache_backend, pattern)
                logger.info(f"Invalidated {deleted_count} cache keys matching '{pattern}'")
            except Exception as e:
                logger.error(f"Cache invalidation error: {str(e)}")

            return result

        return wrapper

    return decorator
