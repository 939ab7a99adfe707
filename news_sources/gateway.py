"""
Source Gateway - timeout and error classification around source fetches.

The gateway is the only component that talks to sources. For one fetch it:
1. Runs the source's fetch_raw() under a hard timeout
2. Classifies every failure as FetchTimeoutError, UpstreamError or ParseError
3. Normalizes the raw records into NewsItems
4. Tracks per-source health and an incident log

A caller can never block longer than the timeout on a misbehaving source.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp

from core.clock import ClockFactory, ClockProtocol

from .exceptions import (
    FetchTimeoutError,
    NewsSourceError,
    ParseError,
    UnknownSourceError,
    UpstreamError,
)
from .models import NewsItem, SourceHealth, SourceIncident, SourceStatus
from .normalizer import normalize_records
from .registry import SourceRegistry


logger = logging.getLogger(__name__)


class SourceGateway:
    """
    Bounded, classified access to every registered source.

    Usage:
        gateway = SourceGateway(registry, default_timeout=10)
        items = await gateway.fetch("hackernews")
        await gateway.close()
    """

    DEFAULT_TIMEOUT = 10.0
    UNAVAILABLE_THRESHOLD = 3  # consecutive failures before unavailable
    MAX_INCIDENTS = 100
    USER_AGENT = "news-cache/1.0 (+https://github.com)"

    def __init__(
        self,
        registry: SourceRegistry,
        default_timeout: float = DEFAULT_TIMEOUT,
        max_items: Optional[int] = 30,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._registry = registry
        self.default_timeout = default_timeout
        self.max_items = max_items
        self._session = session
        self._owns_session = session is None
        self._clock = clock or ClockFactory.get_clock()

        self._health: dict[str, SourceHealth] = {}
        self._incidents: list[SourceIncident] = []

        self._stats = {
            "total_fetches": 0,
            "successful_fetches": 0,
            "timeouts": 0,
            "upstream_errors": 0,
            "parse_errors": 0,
        }

    @property
    def registry(self) -> SourceRegistry:
        return self._registry

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None),
                headers={"User-Agent": self.USER_AGENT},
            )
            self._owns_session = True
        return self._session

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def fetch(
        self,
        source_id: str,
        timeout: Optional[float] = None,
    ) -> list[NewsItem]:
        """
        Fetch and normalize one source.

        Returns:
            Normalized items in source order (possibly empty)

        Raises:
            FetchTimeoutError: no answer within ``timeout`` seconds
            UpstreamError: upstream or transport failure
            ParseError: payload was not a list of records
            UnknownSourceError: no source registered under ``source_id``
        """
        source = self._registry.get_source(source_id)
        if source is None:
            raise UnknownSourceError(
                f"No fetch capability registered for {source_id!r}",
                source_name=source_id,
            )

        if timeout is None:
            timeout = self.default_timeout
        self._stats["total_fetches"] += 1
        started = time.monotonic()

        try:
            session = await self._get_session()
            raw = await asyncio.wait_for(source.fetch_raw(session), timeout=timeout)
            if not isinstance(raw, (list, tuple)):
                raise ParseError(
                    f"Source returned {type(raw).__name__}, expected a list of records",
                    source_name=source_id,
                    raw_data=repr(raw),
                )
        except NewsSourceError as e:
            error = self._on_failure(source_id, self._classify_source_error(source_id, e))
            if error is e:
                raise
            raise error from e
        except asyncio.TimeoutError as e:
            error = FetchTimeoutError(
                f"No response within {timeout:g}s",
                source_name=source_id,
                timeout_seconds=timeout,
            )
            raise self._on_failure(source_id, error) from e
        except aiohttp.ClientResponseError as e:
            error = UpstreamError(
                f"HTTP {e.status}: {e.message}",
                source_name=source_id,
                status_code=e.status,
                url=str(e.request_info.real_url) if e.request_info else None,
            )
            raise self._on_failure(source_id, error) from e
        except aiohttp.ClientError as e:
            error = UpstreamError(f"Network error: {e}", source_name=source_id)
            raise self._on_failure(source_id, error) from e
        except Exception as e:
            error = UpstreamError(
                f"Unexpected {type(e).__name__}: {e}",
                source_name=source_id,
            )
            raise self._on_failure(source_id, error) from e

        result = normalize_records(raw, source_name=source_id, limit=self.max_items)
        latency_ms = (time.monotonic() - started) * 1000
        self._on_success(source_id, latency_ms)
        logger.info(
            f"[{source_id}] Fetched {len(result.items)} items "
            f"({result.total} raw) in {latency_ms:.0f}ms"
        )
        return result.items

    def get_health(self, source_id: str) -> SourceHealth:
        """Health of one source (UNKNOWN until its first fetch)."""
        health = self._health.get(source_id)
        if health is None:
            health = SourceHealth(status=SourceStatus.UNKNOWN, last_check=self._clock.now())
        return health

    def get_all_health(self) -> dict[str, SourceHealth]:
        return {name: self.get_health(name) for name in self._registry.list_sources()}

    def get_incidents(
        self,
        limit: int = 20,
        source_name: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Get recent incidents."""
        incidents = self._incidents
        if source_name:
            incidents = [i for i in incidents if i.source_name == source_name]
        return [i.to_dict() for i in incidents[-limit:]]

    def get_stats(self) -> dict[str, Any]:
        return dict(self._stats)

    async def close(self) -> None:
        """Close the shared session and every registered source."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        await self._registry.close()

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    def _classify_source_error(self, source_id: str, error: NewsSourceError) -> NewsSourceError:
        """Keep classified errors; fold anything unclassified into UpstreamError."""
        if error.kind is not None:
            if not error.source_name:
                error.source_name = source_id
            return error
        return UpstreamError(error.message, source_name=source_id, details=error.details)

    def _on_success(self, source_id: str, latency_ms: float) -> None:
        now = self._clock.now()
        health = self.get_health(source_id)
        health.status = SourceStatus.HEALTHY
        health.last_check = now
        health.latency_ms = latency_ms
        health.consecutive_failures = 0
        health.last_success_time = now
        self._health[source_id] = health
        self._stats["successful_fetches"] += 1

    def _on_failure(self, source_id: str, error: NewsSourceError) -> NewsSourceError:
        now = self._clock.now()
        kind = error.kind.value if error.kind else "upstream"

        health = self.get_health(source_id)
        health.last_check = now
        health.error_count += 1
        health.consecutive_failures += 1
        health.last_error = error.message
        health.last_error_kind = kind
        health.last_error_time = now
        if health.consecutive_failures >= self.UNAVAILABLE_THRESHOLD:
            health.status = SourceStatus.UNAVAILABLE
        else:
            health.status = SourceStatus.DEGRADED
        self._health[source_id] = health

        stat_key = {
            "timeout": "timeouts",
            "parse": "parse_errors",
        }.get(kind, "upstream_errors")
        self._stats[stat_key] += 1

        self._incidents.append(SourceIncident(
            source_name=source_id,
            incident_type=kind,
            timestamp=now,
            error_message=error.message,
        ))
        if len(self._incidents) > self.MAX_INCIDENTS:
            self._incidents = self._incidents[-self.MAX_INCIDENTS:]

        logger.warning(f"[{source_id}] Fetch failed ({kind}): {error.message}")
        return error
