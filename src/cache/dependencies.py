"""FastAPI dependency exposing the cache backend."""
from src.cache.backends.base import CacheBackend
from src.cache.backends.factory import get_cache_backend


async def get_cache() -> CacheBackend:
    return get_cache_backend()
