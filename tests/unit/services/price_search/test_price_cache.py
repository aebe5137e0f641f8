"""Test the price cache."""

import asyncio
from decimal import Decimal

import pytest

from pricing_scout.services.price_search.cache import CacheStats, PriceCache
from pricing_scout.services.price_search.models import (
    Confidence,
    Currency,
    PricePoint,
    Store,
)
from tests.fakes import CONCRETE, FakeClock

POINT = PricePoint(
    material=CONCRETE,
    store=Store(name="Leroy Merlin"),
    price=Decimal("450.00"),
    currency=Currency.BRL,
    confidence=Confidence.STATIC,
)


class TestPriceCache:
    """Test cases for PriceCache."""

    def setup_method(self) -> None:
        """Set up test fixtures before each test method."""
        self.clock = FakeClock()
        self.cache = PriceCache(ttl_seconds=60, clock=self.clock)

    def test_rejects_non_positive_ttl(self) -> None:
        """Test that a zero TTL is refused."""
        with pytest.raises(ValueError):
            PriceCache(ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_get_returns_stored_points(self) -> None:
        """Test a set followed by a get within the TTL."""
        # Arrange
        await self.cache.set("key", [POINT])

        # Act
        result = await self.cache.get("key")

        # Assert
        assert result == (POINT,)
        assert self.cache.stats().hits == 1

    @pytest.mark.asyncio
    async def test_expired_entries_are_never_served(self) -> None:
        """Test that an entry is dropped once its TTL elapses."""
        # Arrange
        await self.cache.set("key", [POINT])
        self.clock.advance(60)

        # Act
        result = await self.cache.get("key")

        # Assert
        assert result is None
        assert len(self.cache) == 0
        assert self.cache.stats().misses == 1

    @pytest.mark.asyncio
    async def test_set_replaces_previous_value(self) -> None:
        """Test that writes replace rather than merge."""
        other = POINT.model_copy(update={"price": Decimal("435.00")})
        await self.cache.set("key", [POINT])

        await self.cache.set("key", [other])

        assert await self.cache.get("key") == (other,)

    @pytest.mark.asyncio
    async def test_custom_ttl_per_entry(self) -> None:
        """Test that set accepts a TTL override."""
        await self.cache.set("key", [POINT], ttl_seconds=5)
        self.clock.advance(6)

        assert await self.cache.peek("key") is None

    @pytest.mark.asyncio
    async def test_peek_does_not_count(self) -> None:
        """Test that peek leaves the counters untouched."""
        await self.cache.set("key", [POINT])

        assert await self.cache.peek("key") == (POINT,)
        assert await self.cache.peek("other") is None
        assert self.cache.stats().hits == 0
        assert self.cache.stats().misses == 0

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self) -> None:
        """Test the periodic sweep."""
        await self.cache.set("old", [POINT])
        self.clock.advance(30)
        await self.cache.set("new", [POINT])
        self.clock.advance(31)

        removed = await self.cache.sweep()

        assert removed == 1
        assert await self.cache.peek("new") == (POINT,)

    @pytest.mark.asyncio
    async def test_clear_empties_cache(self) -> None:
        """Test that clear drops entries and counters."""
        await self.cache.set("key", [POINT])
        await self.cache.get("key")

        await self.cache.clear()

        assert self.cache.stats() == CacheStats(hits=0, misses=0, entries=0, inflight=0)

    @pytest.mark.asyncio
    async def test_coalesce_runs_factory_once_for_concurrent_callers(self) -> None:
        """Test that concurrent callers share one in-flight fetch."""
        # Arrange
        calls = 0
        release = asyncio.Event()

        async def factory() -> str:
            nonlocal calls
            calls += 1
            await release.wait()
            return "done"

        # Act
        waiters = [asyncio.ensure_future(self.cache.coalesce("key", factory)) for _ in range(5)]
        await asyncio.sleep(0)
        assert self.cache.stats().inflight == 1
        release.set()
        results = await asyncio.gather(*waiters)

        # Assert
        assert calls == 1
        assert results == ["done"] * 5
        assert self.cache.stats().inflight == 0

    @pytest.mark.asyncio
    async def test_coalesce_survives_cancelled_caller(self) -> None:
        """Test that cancelling one waiter does not cancel the shared fetch."""
        release = asyncio.Event()

        async def factory() -> str:
            await release.wait()
            return "done"

        first = asyncio.ensure_future(self.cache.coalesce("key", factory))
        second = asyncio.ensure_future(self.cache.coalesce("key", factory))
        await asyncio.sleep(0)

        first.cancel()
        release.set()

        assert await second == "done"
        assert first.cancelled()

    @pytest.mark.asyncio
    async def test_coalesce_propagates_errors(self) -> None:
        """Test that a failing factory raises for every caller."""

        async def factory() -> str:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await self.cache.coalesce("key", factory)
        assert self.cache.stats().inflight == 0


def test_hit_rate() -> None:
    """Test the hit rate computation."""
    assert CacheStats(hits=3, misses=1, entries=0, inflight=0).hit_rate == 0.75
    assert CacheStats(hits=0, misses=0, entries=0, inflight=0).hit_rate == 0.0
