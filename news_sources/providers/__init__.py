"""
News source providers.
"""

from .hackernews import HackerNewsSource
from .rss import RssHubSource, RssSource

__all__ = ["HackerNewsSource", "RssHubSource", "RssSource"]
