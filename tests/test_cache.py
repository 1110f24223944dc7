"""Tests for DecryptionCache."""
import asyncio
from datetime import datetime, timedelta

import pytest

from navigator_secretstore.cache import DecryptionCache

T0 = datetime(2024, 1, 1, 12, 0, 0, 123456)
T1 = T0 + timedelta(microseconds=1)


class Loader:
    """Counting loader with an optional gate to hold decryptions in flight."""

    def __init__(self, values=None, error=None):
        self.calls = 0
        self.values = values or {"password": "12345"}
        self.error = error
        self.gate = asyncio.Event()
        self.gate.set()

    async def __call__(self):
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return dict(self.values)


class TestDecryptionCache:

    @pytest.mark.asyncio
    async def test_hit_on_same_updated(self):
        cache = DecryptionCache()
        loader = Loader()
        assert await cache.get_or_load(1, T0, loader) == {"password": "12345"}
        assert await cache.get_or_load(1, T0, loader) == {"password": "12345"}
        assert loader.calls == 1
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_stale_entry_is_replaced(self):
        cache = DecryptionCache()
        await cache.get_or_load(1, T0, Loader({"password": "old"}))
        newer = Loader({"password": "new"})
        assert await cache.get_or_load(1, T1, newer) == {"password": "new"}
        assert newer.calls == 1
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_failure_not_cached(self):
        cache = DecryptionCache()
        failing = Loader(error=ValueError("bad tag"))
        with pytest.raises(ValueError):
            await cache.get_or_load(1, T0, failing)
        assert 1 not in cache
        ok = Loader()
        assert await cache.get_or_load(1, T0, ok) == {"password": "12345"}
        assert ok.calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_decryption(self):
        cache = DecryptionCache()
        loader = Loader()
        loader.gate.clear()
        waiters = [
            asyncio.ensure_future(cache.get_or_load(1, T0, loader)) for _ in range(5)
        ]
        await asyncio.sleep(0)
        loader.gate.set()
        results = await asyncio.gather(*waiters)
        assert all(r == {"password": "12345"} for r in results)
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_decryption(self):
        cache = DecryptionCache()
        loader = Loader()
        loader.gate.clear()
        first = asyncio.ensure_future(cache.get_or_load(1, T0, loader))
        second = asyncio.ensure_future(cache.get_or_load(1, T0, loader))
        await asyncio.sleep(0)
        first.cancel()
        loader.gate.set()
        assert await second == {"password": "12345"}
        assert first.cancelled()
        assert 1 in cache

    @pytest.mark.asyncio
    async def test_lru_bound(self):
        cache = DecryptionCache(max_entries=2)
        for secret_id in (1, 2):
            await cache.get_or_load(secret_id, T0, Loader())
        # touch 1 so that 2 becomes least recently used
        await cache.get_or_load(1, T0, Loader())
        await cache.get_or_load(3, T0, Loader())
        assert 1 in cache
        assert 2 not in cache
        assert 3 in cache

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            DecryptionCache(max_entries=0)

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = DecryptionCache()
        await cache.get_or_load(1, T0, Loader())
        await cache.clear()
        assert len(cache) == 0
