import datetime as dt

import pytest

from src.cache import decorators
from src.cache.backends.memory import MemoryBackend
from src.cache.decorators import cached, delete_matching, invalidate_cache
from src.services.status_cache import StatusCache


class BrokenBackend(MemoryBackend):
    async def get(self, key):
        raise RuntimeError("cache down")

    async def scan(self, cursor="0", match=None, count=None):
        raise RuntimeError("cache down")


@pytest.fixture
def backend(monkeypatch) -> MemoryBackend:
    memory = MemoryBackend()
    monkeypatch.setattr(decorators, "get_cache_backend", lambda: memory)
    return memory


@pytest.mark.asyncio
async def test_cached_result_is_reused(backend):
    calls = []

    @cached(key=lambda region: f"pricing:{region}")
    async def load(region):
        calls.append(region)
        return {"region": region}

    assert await load("lagos") == {"region": "lagos"}
    assert await load("lagos") == {"region": "lagos"}
    assert calls == ["lagos"]
    assert await backend.get("pricing:lagos") is not None


@pytest.mark.asyncio
async def test_cache_outage_falls_through(monkeypatch):
    monkeypatch.setattr(decorators, "get_cache_backend", lambda: BrokenBackend())

    @cached(key="pricing:catalog")
    async def load():
        return [1, 2]

    @invalidate_cache("pricing:*")
    async def update():
        return "done"

    assert await load() == [1, 2]
    assert await update() == "done"


@pytest.mark.asyncio
async def test_invalidation_only_after_success(backend):
    await backend.set("subscription-status:1:2025-03-01", "{}")

    @invalidate_cache(lambda business_id: f"subscription-status:{business_id}:*")
    async def fail(business_id):
        raise ValueError("boom")

    with pytest.raises(ValueError):
        await fail(1)
    assert await backend.get("subscription-status:1:2025-03-01") == "{}"


@pytest.mark.asyncio
async def test_status_cache_invalidates_every_day_for_a_business():
    memory = MemoryBackend()
    cache = StatusCache(memory)
    today = dt.date(2025, 3, 1)
    await cache.put(1, today, {"status": "ACTIVE"})
    await cache.put(1, today + dt.timedelta(days=1), {"status": "GRACE_PERIOD"})
    await cache.put(2, today, {"status": "TRIAL"})

    assert await cache.get(1, today) == {"status": "ACTIVE"}
    assert await cache.invalidate(1) == 2
    assert await cache.get(1, today) is None
    assert await cache.get(2, today) == {"status": "TRIAL"}
    assert await delete_matching(memory, "subscription-status:*") == 1
