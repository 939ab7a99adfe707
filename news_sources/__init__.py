"""
News Sources - pluggable content sources behind one fetch contract.

This package provides:
- NewsItem: the canonical normalized record
- Item normalizer: raw record -> NewsItem, invalid records dropped
- SourceRegistry: source id -> metadata, refresh interval, fetch capability
- SourceGateway: hard timeout + failure classification around every fetch
- Providers: RSS/Atom, RSSHub routes, Hacker News

Usage:
    from news_sources import SourceGateway, SourceRegistry, HackerNewsSource

    registry = SourceRegistry()
    registry.register(HackerNewsSource())

    gateway = SourceGateway(registry, default_timeout=10)
    items = await gateway.fetch("hackernews")
"""

from .base import BaseNewsSource, FunctionSource
from .exceptions import (
    FailureKind,
    FetchTimeoutError,
    NewsSourceError,
    NormalizationError,
    ParseError,
    UnknownSourceError,
    UpstreamError,
)
from .gateway import SourceGateway
from .models import (
    NewsItem,
    SourceHealth,
    SourceIncident,
    SourceMetadata,
    SourceStatus,
    SourceType,
)
from .normalizer import NormalizationResult, normalize_record, normalize_records
from .providers import HackerNewsSource, RssHubSource, RssSource
from .registry import PROVIDERS, SourceRegistry, register_provider


__all__ = [
    # Base
    "BaseNewsSource",
    "FunctionSource",

    # Providers
    "HackerNewsSource",
    "RssHubSource",
    "RssSource",
    "PROVIDERS",
    "register_provider",

    # Registry & Gateway
    "SourceRegistry",
    "SourceGateway",

    # Normalizer
    "NormalizationResult",
    "normalize_record",
    "normalize_records",

    # Models
    "NewsItem",
    "SourceHealth",
    "SourceIncident",
    "SourceMetadata",
    "SourceStatus",
    "SourceType",

    # Exceptions
    "FailureKind",
    "NewsSourceError",
    "FetchTimeoutError",
    "UpstreamError",
    "ParseError",
    "NormalizationError",
    "UnknownSourceError",
]
