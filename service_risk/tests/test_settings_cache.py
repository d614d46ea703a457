"""
Unit tests for the settings cache.
"""

import asyncio

import pytest

from service_risk.app.caching.settings_cache import SettingsCache
from service_risk.app.domain.models import RiskSettings
from shared.metrics import MetricsCollector


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestSettingsCache:
    """Test cases for SettingsCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return SettingsCache(ttl_seconds=3600, check_period_seconds=600, clock=clock)

    @pytest.fixture
    def settings(self):
        return RiskSettings(id=42, daily_loss_auto_liq=500)

    def test_miss_on_empty(self, cache):
        assert cache.get(42) is None
        assert cache.stats()["misses"] == 1

    def test_hit_within_ttl(self, cache, clock, settings):
        cache.put(42, settings)
        clock.advance(3599)
        assert cache.get(42) == settings
        assert cache.stats()["hits"] == 1

    def test_expired_entry_is_not_returned(self, cache, clock, settings):
        cache.put(42, settings)
        clock.advance(3600)
        assert cache.get(42) is None
        assert cache.stats()["entries"] == 0

    def test_replace_installs_new_value_and_resets_ttl(self, cache, clock, settings):
        cache.put(42, settings)
        clock.advance(3000)
        updated = RiskSettings(id=42, daily_loss_auto_liq=750)
        cache.replace(42, updated)
        clock.advance(3000)
        assert cache.get(42) == updated

    def test_invalidate(self, cache, settings):
        cache.put(42, settings)
        cache.invalidate(42)
        assert cache.get(42) is None

    def test_entries_are_per_account(self, cache, settings):
        cache.put(42, settings)
        assert cache.get(43) is None

    def test_evict_expired(self, cache, clock, settings):
        cache.put(1, settings)
        clock.advance(1800)
        cache.put(2, settings)
        clock.advance(1800)

        assert cache.evict_expired() == 1
        assert cache.get(1) is None
        assert cache.get(2) == settings

    def test_lookups_are_counted_in_metrics(self, clock, settings):
        metrics = MetricsCollector("risk-test")
        cache = SettingsCache(metrics=metrics, clock=clock)
        cache.get(42)
        cache.put(42, settings)
        cache.get(42)

        assert metrics.registry.get_sample_value("settings_cache_total", {"result": "miss"}) == 1.0
        assert metrics.registry.get_sample_value("settings_cache_total", {"result": "hit"}) == 1.0

    @pytest.mark.asyncio
    async def test_background_sweep_evicts(self, clock, settings):
        cache = SettingsCache(ttl_seconds=10, check_period_seconds=0.01, clock=clock)
        cache.put(42, settings)
        clock.advance(11)

        cache.start()
        await asyncio.sleep(0.05)
        await cache.stop()

        assert cache.stats()["entries"] == 0

    @pytest.mark.asyncio
    async def test_stop_without_start(self, cache):
        await cache.stop()
