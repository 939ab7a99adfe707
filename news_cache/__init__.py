"""
News Cache - shared per-source cache with coalesced refreshes.

Components:
- CacheStore: durable key-value contract (in-memory and SQLAlchemy adapters)
- FetchCoordinator: freshness policy, refresh coalescing, stale fallback
"""

from .coordinator import FetchCoordinator
from .exceptions import CacheError, NewsCacheError, SourceUnavailableError
from .models import BatchResolveResult, CacheEntry, EntryStatus, Origin, ResolveResult
from .store import CacheStore, InMemoryCacheStore, SqlCacheStore, create_store


__all__ = [
    # Coordinator
    "FetchCoordinator",
    # Store
    "CacheStore",
    "InMemoryCacheStore",
    "SqlCacheStore",
    "create_store",
    # Models
    "BatchResolveResult",
    "CacheEntry",
    "EntryStatus",
    "Origin",
    "ResolveResult",
    # Exceptions
    "NewsCacheError",
    "CacheError",
    "SourceUnavailableError",
]
