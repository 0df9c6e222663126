"""In-process cache backend used for tests and single-node deployments."""
from __future__ import annotations

import fnmatch
import time
from typing import Dict, List, Optional, Tuple

from src.cache.backends.base import CacheBackend


class MemoryBackend(CacheBackend):
    def __init__(self) -> None:
        self._store: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        _, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._store[key]
            return False
        return True

    async def get(self, key: str) -> Optional[str]:
        if not self._live(key):
            return None
        return self._store[key][0]

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        expires_at = time.monotonic() + ex if ex else None
        self._store[key] = (value, expires_at)
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def scan(
        self, cursor="0", match: Optional[str] = None, count: Optional[int] = None
    ) -> Tuple[str, List[str]]:
        # The whole keyspace is returned in one page.
        keys = [key for key in list(self._store) if self._live(key)]
        if match:
            keys = [key for key in keys if fnmatch.fnmatchcase(key, match)]
        return "0", keys
