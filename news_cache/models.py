"""
News Cache Models - cache entries and tagged resolve results.

A CacheEntry's items are always the output of exactly one completed fetch.
Entries are never merged across fetches and never partially written.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .exceptions import NewsCacheError

from core.clock import to_epoch_ms
from news_sources.models import NewsItem


class EntryStatus(Enum):
    """Status of a cache entry."""
    FRESH = "fresh"
    STALE_SERVED = "stale-served"


class Origin(Enum):
    """Where the items of a resolve call came from."""
    FRESH_CACHE = "fresh-cache"
    FRESH_FETCH = "fresh-fetch"
    STALE_FETCH_FALLBACK = "stale-fetch-fallback"


@dataclass(frozen=True)
class CacheEntry:
    """One source's cached items. Replaced whole on every successful refresh."""
    source_id: str
    items: tuple[NewsItem, ...]
    fetched_at: datetime
    status: EntryStatus = EntryStatus.FRESH

    def as_stale_served(self) -> "CacheEntry":
        """Copy tagged as served after a failed refresh."""
        return replace(self, status=EntryStatus.STALE_SERVED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "items": [item.to_dict() for item in self.items],
            "fetched_at": to_epoch_ms(self.fetched_at),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class ResolveResult:
    """Tagged outcome of FetchCoordinator.resolve()."""
    source_id: str
    items: tuple[NewsItem, ...]
    updated_time: datetime
    origin: Origin

    @property
    def updated_time_ms(self) -> int:
        return to_epoch_ms(self.updated_time)

    @property
    def is_degraded(self) -> bool:
        """True when a refresh failed and older data is being served."""
        return self.origin == Origin.STALE_FETCH_FALLBACK

    @property
    def from_cache(self) -> bool:
        return self.origin in (Origin.FRESH_CACHE, Origin.STALE_FETCH_FALLBACK)

    @classmethod
    def from_entry(cls, entry: CacheEntry, origin: Origin) -> "ResolveResult":
        return cls(
            source_id=entry.source_id,
            items=entry.items,
            updated_time=entry.fetched_at,
            origin=origin,
        )


@dataclass
class BatchResolveResult:
    """Outcome of FetchCoordinator.resolve_many(), split per source."""
    results: dict[str, ResolveResult] = field(default_factory=dict)
    failures: dict[str, "NewsCacheError"] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures
