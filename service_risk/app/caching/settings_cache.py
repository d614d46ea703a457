"""
Process-local read-through cache for account risk settings.

Entries expire after a fixed TTL. Expired entries are never returned, and a
background sweep removes them periodically so accounts that are no longer
queried do not accumulate. The trading API stays the source of truth; this
cache is advisory.

Entries are keyed by account id only. A cached record is served to any
authenticated caller whose connection resolves, for that account, until it
expires; no downstream permission check runs on a hit. Deployments that serve
unrelated users against shared accounts should lower the TTL accordingly.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger

from ..domain.models import RiskSettings

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_CHECK_PERIOD_SECONDS = 600.0


@dataclass
class _CacheEntry:
    settings: RiskSettings
    expires_at: float


class SettingsCache:
    """TTL cache mapping account id to the last known risk settings."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        check_period_seconds: float = DEFAULT_CHECK_PERIOD_SECONDS,
        *,
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.check_period_seconds = check_period_seconds
        self.metrics = metrics
        self.logger = get_logger("risk.settings_cache")
        self._clock = clock
        self._entries: Dict[int, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, account_id: int) -> Optional[RiskSettings]:
        """Return the cached settings, or ``None`` on a miss or expired entry."""
        with self._lock:
            entry = self._entries.get(account_id)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[account_id]
                entry = None

            if entry is None:
                self._misses += 1
            else:
                self._hits += 1

        if self.metrics:
            self.metrics.record_cache_lookup(hit=entry is not None)
        return entry.settings if entry else None

    def put(self, account_id: int, settings: RiskSettings) -> None:
        """Install ``settings`` for the account, resetting its TTL."""
        with self._lock:
            self._entries[account_id] = _CacheEntry(settings, self._clock() + self.ttl_seconds)

    def invalidate(self, account_id: int) -> None:
        with self._lock:
            self._entries.pop(account_id, None)

    def replace(self, account_id: int, settings: RiskSettings) -> None:
        """Drop any existing entry and install ``settings`` as one atomic step."""
        with self._lock:
            self._entries.pop(account_id, None)
            self._entries[account_id] = _CacheEntry(settings, self._clock() + self.ttl_seconds)

    def evict_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> Dict[str, float]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl_seconds,
            }

    def start(self) -> None:
        """Start the background eviction sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Cancel the background sweep."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.check_period_seconds)
            evicted = self.evict_expired()
            if evicted:
                self.logger.debug("Evicted expired risk settings", count=evicted)
