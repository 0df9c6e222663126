"""Redis cache backend."""
from __future__ import annotations

from typing import Any, List, Optional, Tuple

import redis.asyncio as redis

from src.cache.backends.base import CacheBackend
from src.core.exceptions import CacheError


class RedisBackend(CacheBackend):
    def __init__(self, url: str) -> None:
        self._client = redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(key)
        except redis.RedisError as exc:
            raise CacheError(str(exc)) from exc

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> Any:
        try:
            return await self._client.set(key, value, ex=ex)
        except redis.RedisError as exc:
            raise CacheError(str(exc)) from exc

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return await self._client.delete(*keys)
        except redis.RedisError as exc:
            raise CacheError(str(exc)) from exc

    async def scan(
        self, cursor: Any = "0", match: Optional[str] = None, count: Optional[int] = None
    ) -> Tuple[Any, List[str]]:
        try:
            next_cursor, keys = await self._client.scan(cursor=int(cursor), match=match, count=count)
        except redis.RedisError as exc:
            raise CacheError(str(exc)) from exc
        return str(next_cursor), list(keys)

    async def close(self) -> None:
        await self._client.aclose()
