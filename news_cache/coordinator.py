"""
Fetch Coordinator - per-source cache, refresh coalescing and stale fallback.

============================================================
DECISION POLICY (resolve)
============================================================
1. Read the cached entry for the source
2. Entry younger than the refresh interval and no bypass
   -> return it tagged FRESH_CACHE (no fetch)
3. A refresh for the source is already in flight
   -> wait on it and return its outcome (no second fetch)
4. Otherwise start a refresh through the Source Gateway
   - success: write a new entry, return FRESH_FETCH
   - failure with a stored entry: return the newest stored entry's
     items tagged STALE_FETCH_FALLBACK, store left unchanged
   - failure on a cold cache: raise SourceUnavailableError

force_bypass skips step 2 but never step 3.

============================================================
CONCURRENCY
============================================================
Per source there is at most one refresh task. The in-flight map is
checked and filled with no await in between, which is atomic on the
event loop. Waiters share the task through asyncio.shield(), so a
waiter that gives up never cancels a fetch other readers depend on.
Different sources share no state and resolve fully in parallel.

Concurrent waiters block until the refresh completes (wait-and-share);
the gateway timeout bounds that wait.

============================================================
"""

import asyncio
import functools
import logging
from datetime import timedelta
from typing import Any, Mapping, Optional, Union

from core.clock import ClockFactory, ClockProtocol
from news_sources.exceptions import NewsSourceError
from news_sources.gateway import SourceGateway

from .exceptions import CacheError, NewsCacheError, SourceUnavailableError
from .models import BatchResolveResult, CacheEntry, Origin, ResolveResult
from .store import CacheStore


logger = logging.getLogger(__name__)


Interval = Union[timedelta, int, float]


def _as_timedelta(interval: Interval) -> timedelta:
    if isinstance(interval, timedelta):
        return interval
    return timedelta(seconds=interval)


class FetchCoordinator:
    """
    Serves every source from one shared cache with bounded freshness.

    Usage:
        coordinator = FetchCoordinator(store=InMemoryCacheStore(), gateway=gateway)

        result = await coordinator.resolve("hackernews", timedelta(minutes=10))
        result.origin   # Origin.FRESH_FETCH / FRESH_CACHE / STALE_FETCH_FALLBACK
    """

    def __init__(
        self,
        store: CacheStore,
        gateway: SourceGateway,
        clock: Optional[ClockProtocol] = None,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._clock = clock or ClockFactory.get_clock()
        self.fetch_timeout = fetch_timeout

        # source id -> refresh task currently in flight
        self._inflight: dict[str, asyncio.Task] = {}

        self._stats = {
            "requests": 0,
            "cache_hits": 0,
            "refreshes": 0,
            "coalesced": 0,
            "fresh_fetches": 0,
            "stale_fallbacks": 0,
            "unavailable": 0,
            "write_failures": 0,
            "read_failures": 0,
        }

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def gateway(self) -> SourceGateway:
        return self._gateway

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def resolve(
        self,
        source_id: str,
        refresh_interval: Interval,
        force_bypass: bool = False,
    ) -> ResolveResult:
        """
        Resolve the current items of one source.

        Args:
            source_id: Canonical source id
            refresh_interval: Maximum age of a cached entry before refreshing
            force_bypass: Refresh even when the cached entry is fresh

        Returns:
            ResolveResult tagged with its origin

        Raises:
            SourceUnavailableError: fetch failed and nothing is cached
        """
        self._stats["requests"] += 1
        interval = _as_timedelta(refresh_interval)

        entry = await self._read_entry(source_id)
        if entry is not None and not force_bypass and self._is_fresh(entry, interval):
            self._stats["cache_hits"] += 1
            logger.debug(f"[{source_id}] Serving fresh cache")
            return ResolveResult.from_entry(entry, Origin.FRESH_CACHE)

        task = self._inflight.get(source_id)
        if task is None or task.done():
            task = asyncio.create_task(
                self._refresh(source_id, entry),
                name=f"refresh:{source_id}",
            )
            self._inflight[source_id] = task
            task.add_done_callback(functools.partial(self._on_refresh_done, source_id))
            self._stats["refreshes"] += 1
        else:
            self._stats["coalesced"] += 1
            logger.debug(f"[{source_id}] Joining in-flight refresh")

        return await asyncio.shield(task)

    async def resolve_many(
        self,
        requests: Mapping[str, Interval],
        force_bypass: bool = False,
    ) -> BatchResolveResult:
        """
        Resolve many sources concurrently.

        Each source has its own failure boundary: a slow or broken source
        never delays or fails its siblings.
        """
        source_ids = list(requests)
        outcomes = await asyncio.gather(
            *(self.resolve(sid, requests[sid], force_bypass) for sid in source_ids),
            return_exceptions=True,
        )

        batch = BatchResolveResult()
        for source_id, outcome in zip(source_ids, outcomes):
            if isinstance(outcome, ResolveResult):
                batch.results[source_id] = outcome
            elif isinstance(outcome, NewsCacheError):
                batch.failures[source_id] = outcome
            elif isinstance(outcome, Exception):
                logger.error(f"[{source_id}] Unexpected resolve error: {outcome}")
                batch.failures[source_id] = SourceUnavailableError(
                    f"Unexpected error: {outcome}",
                    source_name=source_id,
                )
            else:
                raise outcome
        return batch

    def is_refreshing(self, source_id: str) -> bool:
        task = self._inflight.get(source_id)
        return task is not None and not task.done()

    def get_stats(self) -> dict[str, Any]:
        total = self._stats["requests"]
        hit_rate = self._stats["cache_hits"] / total * 100 if total > 0 else 0
        return {
            **self._stats,
            "cache_hit_rate_pct": round(hit_rate, 2),
            "inflight": sorted(sid for sid in self._inflight if self.is_refreshing(sid)),
        }

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    def _is_fresh(self, entry: CacheEntry, interval: timedelta) -> bool:
        return self._clock.age_of(entry.fetched_at) < interval

    async def _read_entry(self, source_id: str) -> Optional[CacheEntry]:
        """Read the cached entry; an unreadable store counts as a cold cache."""
        try:
            return await self._store.read(source_id)
        except CacheError as e:
            self._stats["read_failures"] += 1
            logger.warning(f"[{source_id}] Cache read failed, treating as cold: {e.message}")
            return None

    async def _write_entry(self, source_id: str, entry: CacheEntry) -> bool:
        """Write the entry; a failing store never discards a successful fetch."""
        try:
            return await self._store.write(source_id, entry)
        except Exception as e:
            logger.error(f"[{source_id}] Cache store raised on write: {type(e).__name__}: {e}")
            return False

    async def _refresh(
        self,
        source_id: str,
        prior: Optional[CacheEntry],
    ) -> ResolveResult:
        """The single in-flight refresh for a source."""
        logger.info(f"[{source_id}] Refreshing")
        try:
            items = await self._gateway.fetch(source_id, timeout=self.fetch_timeout)
        except NewsSourceError as e:
            # Another refresh may have stored a newer entry while this one ran.
            latest = await self._read_entry(source_id)
            return self._fall_back(source_id, latest or prior, e)

        entry = CacheEntry(
            source_id=source_id,
            items=tuple(items),
            fetched_at=self._clock.now(),
        )
        if not await self._write_entry(source_id, entry):
            self._stats["write_failures"] += 1
            logger.warning(f"[{source_id}] Fetched {len(items)} items but cache write failed")

        self._stats["fresh_fetches"] += 1
        return ResolveResult.from_entry(entry, Origin.FRESH_FETCH)

    def _fall_back(
        self,
        source_id: str,
        prior: Optional[CacheEntry],
        error: NewsSourceError,
    ) -> ResolveResult:
        kind = error.kind.value if error.kind else "upstream"

        if prior is not None:
            self._stats["stale_fallbacks"] += 1
            logger.info(
                f"[{source_id}] Refresh failed ({kind}), serving cached entry "
                f"from {prior.fetched_at.isoformat()}"
            )
            return ResolveResult.from_entry(prior.as_stale_served(), Origin.STALE_FETCH_FALLBACK)

        self._stats["unavailable"] += 1
        logger.error(f"[{source_id}] Refresh failed ({kind}) with no cached entry: {error.message}")
        raise SourceUnavailableError(
            f"Source {source_id!r} is unavailable and has no cached data",
            source_name=source_id,
            failure_kind=kind,
            details={"cause": error.message},
        ) from error

    def _on_refresh_done(self, source_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(source_id) is task:
            del self._inflight[source_id]
        # Mark the outcome as retrieved even if every waiter has gone away.
        if not task.cancelled():
            task.exception()
