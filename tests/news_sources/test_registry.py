"""
Source Registry Tests.

============================================================
PURPOSE
============================================================
Source ids resolve to one canonical source with its interval.

TEST CATEGORIES:
- Registration and lookup
- Alias redirects and unknown ids
- YAML loading

============================================================
"""

from datetime import timedelta

import pytest

from news_sources.exceptions import UnknownSourceError
from news_sources.models import SourceMetadata, SourceType
from news_sources.providers import HackerNewsSource, RssHubSource, RssSource
from news_sources.registry import PROVIDERS, SourceRegistry, register_provider

from tests.fakes import FakeSource


@pytest.fixture
def registry():
    registry = SourceRegistry(default_interval_seconds=300)
    registry.register(FakeSource("alpha", interval_seconds=600))
    registry.register(FakeSource("beta", interval_seconds=60))
    return registry


# ============================================================
# LOOKUP
# ============================================================

class TestLookup:
    """Tests for registration and lookup."""

    def test_register_and_get(self, registry):
        assert "alpha" in registry
        assert len(registry) == 2
        assert registry.get_source("alpha").name == "alpha"
        assert registry.get_metadata("beta").interval_seconds == 60

    def test_interval_is_timedelta(self, registry):
        assert registry.get_interval("alpha") == timedelta(minutes=10)
        assert registry.get_interval("missing") == timedelta(seconds=300)

    def test_unregister(self, registry):
        assert registry.unregister("beta") is True
        assert registry.unregister("beta") is False
        assert "beta" not in registry

    def test_columns(self):
        registry = SourceRegistry()
        registry.register(FakeSource("a"))
        registry.register(HackerNewsSource())
        assert registry.columns() == {"general": ["a"], "tech": ["hackernews"]}


# ============================================================
# RESOLVE
# ============================================================

class TestResolveId:
    """Tests for resolve_id."""

    def test_canonical_id(self, registry):
        assert registry.resolve_id("alpha") == "alpha"

    def test_alias_redirect(self, registry):
        registry.register_alias("a", "alpha")
        registry.register_alias("aa", "a")

        assert registry.resolve_id("aa") == "alpha"
        assert "aa" not in registry.list_sources()

    def test_unknown_id(self, registry):
        with pytest.raises(UnknownSourceError):
            registry.resolve_id("nope")

    def test_empty_id(self, registry):
        with pytest.raises(UnknownSourceError):
            registry.resolve_id("")

    def test_redirect_to_unknown(self, registry):
        registry.register_alias("ghost", "missing")
        with pytest.raises(UnknownSourceError):
            registry.resolve_id("ghost")

    def test_redirect_loop(self, registry):
        registry.register_alias("x", "y")
        registry.register_alias("y", "x")
        with pytest.raises(UnknownSourceError, match="Too many redirects"):
            registry.resolve_id("x")

    def test_disabled_source(self):
        registry = SourceRegistry()
        source = FakeSource("off")
        source.metadata.disable = True
        registry.register(source)

        with pytest.raises(UnknownSourceError):
            registry.resolve_id("off")
        assert registry.list_sources() == []
        assert registry.list_sources(include_disabled=True) == ["off"]


# ============================================================
# YAML
# ============================================================

SOURCES_YAML = """
sources:
  hackernews:
    provider: hackernews
    title: Hacker News
    column: tech
    interval: 600
    limit: 10
  hn:
    redirect: hackernews
  world:
    provider: rss
    url: https://feeds.example.com/world.xml
    type: realtime
    interval: 120
  trending:
    provider: rsshub
    route: /github/trending/daily
  broken:
    provider: rss
  weird:
    provider: carrier-pigeon
  badtype:
    provider: rss
    url: https://feeds.example.com/x.xml
    type: sideways
"""


class TestLoadYaml:
    """Tests for load_yaml."""

    def test_load(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text(SOURCES_YAML, encoding="utf-8")
        registry = SourceRegistry(default_interval_seconds=900)

        loaded = registry.load_yaml(path, rsshub_base_url="https://hub.example.com/")

        assert loaded == 4
        assert registry.resolve_id("hn") == "hackernews"
        assert set(registry.list_sources()) == {"hackernews", "world", "trending"}

        hn = registry.get_source("hackernews")
        assert isinstance(hn, HackerNewsSource)
        assert hn.limit == 10

        world = registry.get_source("world")
        assert isinstance(world, RssSource)
        assert world.feed_url == "https://feeds.example.com/world.xml"
        assert registry.get_metadata("world").type == SourceType.REALTIME
        assert registry.get_interval("world") == timedelta(seconds=120)

        trending = registry.get_source("trending")
        assert isinstance(trending, RssHubSource)
        assert trending.feed_url == "https://hub.example.com/github/trending/daily"
        assert registry.get_interval("trending") == timedelta(seconds=900)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("", encoding="utf-8")
        assert SourceRegistry().load_yaml(path) == 0

    def test_custom_provider(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("sources:\n  custom:\n    provider: fake\n", encoding="utf-8")

        register_provider("fake", lambda meta, options, context: FakeSource(meta.name))
        try:
            registry = SourceRegistry()
            assert registry.load_yaml(path) == 1
            assert registry.resolve_id("custom") == "custom"
        finally:
            PROVIDERS.pop("fake", None)


@pytest.mark.asyncio
async def test_close_closes_sources(registry):
    await registry.close()
    assert registry.get_source("alpha").closed
    assert registry.get_source("beta").closed


def test_metadata_defaults():
    meta = SourceMetadata(name="x")
    assert meta.interval_seconds == 600
    assert meta.to_dict()["type"] == "hottest"
