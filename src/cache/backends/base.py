"""Cache backend interface."""
from __future__ import annotations

import abc
from typing import Any, List, Optional, Tuple


class CacheBackend(abc.ABC):
    """Minimal async key/value interface shared by all cache stores."""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    async def set(self, key: str, value: str, ex: Optional[int] = None) -> Any:
        ...

    @abc.abstractmethod
    async def delete(self, *keys: str) -> int:
        ...

    @abc.abstractmethod
    async def scan(
        self, cursor: Any = "0", match: Optional[str] = None, count: Optional[int] = None
    ) -> Tuple[Any, List[str]]:
        ...

    async def close(self) -> None:
        return None
