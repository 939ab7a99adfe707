"""
Source Registry - maps a source id to its metadata and fetch capability.

The registry is the only place that knows which sources exist. The cache
layer receives the refresh interval and the source object from here and
never hardcodes source-specific logic.

Sources can be registered in code or declared in a YAML file:

    sources:
      hackernews:
        provider: hackernews
        title: Hacker News
        column: tech
        interval: 600
      bbc-world:
        provider: rss
        url: https://feeds.bbci.co.uk/news/world/rss.xml
        column: world
      hn:
        redirect: hackernews
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from .base import BaseNewsSource
from .exceptions import UnknownSourceError
from .models import SourceMetadata, SourceType
from .providers import HackerNewsSource, RssHubSource, RssSource


logger = logging.getLogger(__name__)


# Redirect chains longer than this are treated as a loop.
MAX_REDIRECTS = 5


SourceBuilder = Callable[[SourceMetadata, dict[str, Any], dict[str, Any]], BaseNewsSource]


def _build_rss(metadata: SourceMetadata, options: dict[str, Any], context: dict[str, Any]) -> BaseNewsSource:
    if not options.get("url"):
        raise ValueError(f"rss source '{metadata.name}' needs a url")
    return RssSource(metadata, options["url"])


def _build_rsshub(metadata: SourceMetadata, options: dict[str, Any], context: dict[str, Any]) -> BaseNewsSource:
    if not options.get("route"):
        raise ValueError(f"rsshub source '{metadata.name}' needs a route")
    base_url = options.get("base_url") or context.get("rsshub_base_url", "https://rsshub.app")
    return RssHubSource(metadata, options["route"], base_url=base_url)


def _build_hackernews(metadata: SourceMetadata, options: dict[str, Any], context: dict[str, Any]) -> BaseNewsSource:
    return HackerNewsSource(metadata, limit=int(options.get("limit", HackerNewsSource.DEFAULT_LIMIT)))


PROVIDERS: dict[str, SourceBuilder] = {
    "rss": _build_rss,
    "rsshub": _build_rsshub,
    "hackernews": _build_hackernews,
}


def register_provider(name: str, builder: SourceBuilder) -> None:
    """Make a provider available to YAML-declared sources."""
    if name in PROVIDERS:
        logger.warning(f"Overwriting existing provider: {name}")
    PROVIDERS[name] = builder


class SourceRegistry:
    """
    Central registry for news sources.

    Usage:
        registry = SourceRegistry()
        registry.register(HackerNewsSource())
        registry.register_alias("hn", "hackernews")

        source_id = registry.resolve_id("hn")        # "hackernews"
        interval = registry.get_interval(source_id)  # timedelta(minutes=10)
    """

    def __init__(self, default_interval_seconds: int = 600) -> None:
        self._sources: dict[str, BaseNewsSource] = {}
        self._metadata: dict[str, SourceMetadata] = {}
        self.default_interval_seconds = default_interval_seconds

    def register(self, source: BaseNewsSource) -> None:
        """Register a news source."""
        name = source.metadata.name
        if name in self._metadata:
            logger.warning(f"Overwriting existing source: {name}")

        self._sources[name] = source
        self._metadata[name] = source.metadata
        logger.info(f"Registered news source: {name}")

    def register_alias(self, name: str, target: str) -> None:
        """Register an id that redirects to another source id."""
        self._sources.pop(name, None)
        self._metadata[name] = SourceMetadata(name=name, redirect=target)

    def unregister(self, name: str) -> bool:
        """Unregister a source or alias."""
        if name in self._metadata:
            del self._metadata[name]
            self._sources.pop(name, None)
            logger.info(f"Unregistered news source: {name}")
            return True
        return False

    def __contains__(self, name: str) -> bool:
        return name in self._metadata

    def __len__(self) -> int:
        return len(self._sources)

    # ─────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────

    def resolve_id(self, source_id: str) -> str:
        """
        Map a requested id to the canonical source id.

        Follows redirect aliases.

        Raises:
            UnknownSourceError: id is unknown, disabled, or redirects in a loop
        """
        current = source_id
        for _ in range(MAX_REDIRECTS + 1):
            metadata = self._metadata.get(current) if current else None
            if metadata is None:
                raise UnknownSourceError(
                    f"Invalid source id: {source_id!r}",
                    source_name=source_id or "",
                )
            if metadata.redirect:
                current = metadata.redirect
                continue
            if metadata.disable or current not in self._sources:
                raise UnknownSourceError(
                    f"Source is not available: {source_id!r}",
                    source_name=source_id,
                )
            return current

        raise UnknownSourceError(
            f"Too many redirects resolving source id: {source_id!r}",
            source_name=source_id,
        )

    def get_source(self, source_id: str) -> Optional[BaseNewsSource]:
        return self._sources.get(source_id)

    def get_metadata(self, source_id: str) -> Optional[SourceMetadata]:
        return self._metadata.get(source_id)

    def get_interval(self, source_id: str) -> timedelta:
        """Refresh interval (TTL) for a canonical source id."""
        metadata = self._metadata.get(source_id)
        seconds = metadata.interval_seconds if metadata else self.default_interval_seconds
        return timedelta(seconds=seconds)

    def list_sources(self, include_disabled: bool = False) -> list[str]:
        """List canonical source ids (aliases excluded)."""
        return [
            name for name, meta in self._metadata.items()
            if name in self._sources and (include_disabled or not meta.disable)
        ]

    def columns(self) -> dict[str, list[str]]:
        """Enabled source ids grouped by column, in registration order."""
        grouped: dict[str, list[str]] = {}
        for name in self.list_sources():
            grouped.setdefault(self._metadata[name].column, []).append(name)
        return grouped

    # ─────────────────────────────────────────────────────────────
    # Loading
    # ─────────────────────────────────────────────────────────────

    def load_yaml(
        self,
        path: Path,
        rsshub_base_url: str = "https://rsshub.app",
    ) -> int:
        """
        Register every source declared in a YAML file.

        Entries with an unknown provider or missing options are skipped
        with a warning. Returns the number of entries registered.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        declared = data.get("sources") or {}
        context = {"rsshub_base_url": rsshub_base_url}
        loaded = 0

        for name, options in declared.items():
            options = options or {}
            if options.get("redirect"):
                self.register_alias(name, options["redirect"])
                loaded += 1
                continue

            provider = options.get("provider")
            builder = PROVIDERS.get(provider)
            if builder is None:
                logger.warning(f"Skipping source '{name}': unknown provider {provider!r}")
                continue

            try:
                metadata = SourceMetadata(
                    name=name,
                    title=options.get("title", name),
                    column=options.get("column", "general"),
                    interval_seconds=int(options.get("interval", self.default_interval_seconds)),
                    type=SourceType(options.get("type", SourceType.HOTTEST.value)),
                    home=options.get("home", ""),
                    disable=bool(options.get("disable", False)),
                )
                self.register(builder(metadata, options, context))
            except ValueError as e:
                logger.warning(f"Skipping source '{name}': {e}")
                continue
            loaded += 1

        logger.info(f"Loaded {loaded} sources from {path}")
        return loaded

    async def close(self) -> None:
        """Close all sources."""
        for source in self._sources.values():
            await source.close()
