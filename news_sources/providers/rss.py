"""
RSS / Atom Source - generic feed-backed news source.

Fetches the feed document over aiohttp and parses it with feedparser.
RssHubSource points the same parser at a route on an RSSHub instance.
"""

import calendar
import logging
import re
import time
from typing import Any, Optional

import aiohttp
import feedparser

from ..base import BaseNewsSource, RawRecords
from ..exceptions import ParseError
from ..models import SourceMetadata


logger = logging.getLogger(__name__)


_TAG_RE = re.compile(r"<[^>]+>")
HOVER_MAX_CHARS = 200


def _entry_timestamp(entry: Any) -> Optional[int]:
    """Entry date as epoch seconds. Priority: published -> updated -> created."""
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        value = entry.get(key)
        if isinstance(value, time.struct_time):
            return calendar.timegm(value)
    return None


def _hover_text(entry: Any) -> Optional[str]:
    summary = entry.get("summary") or entry.get("description") or ""
    text = " ".join(_TAG_RE.sub(" ", summary).split())
    if not text:
        return None
    if len(text) > HOVER_MAX_CHARS:
        text = text[: HOVER_MAX_CHARS - 1] + "…"
    return text


class RssSource(BaseNewsSource):
    """
    News source backed by an RSS or Atom feed.

    Feed entries keep feed order. Entries without a link are passed through
    with an empty url and get dropped by the normalizer.
    """

    def __init__(self, metadata: SourceMetadata, feed_url: str) -> None:
        super().__init__(metadata)
        self.feed_url = feed_url

    async def fetch_raw(self, session: aiohttp.ClientSession) -> RawRecords:
        text = await self._get_text(session, self.feed_url)
        feed = feedparser.parse(text)

        entries = getattr(feed, "entries", None)
        if getattr(feed, "bozo", 0) and not entries:
            exc = getattr(feed, "bozo_exception", None)
            raise ParseError(
                f"Invalid RSS/Atom feed: {self.feed_url} ({exc})",
                source_name=self.name,
                raw_data=text,
            )
        if not isinstance(entries, list):
            raise ParseError(
                f"Feed has no entries list: {self.feed_url}",
                source_name=self.name,
                raw_data=text,
            )

        return [self._to_record(entry) for entry in entries]

    def _to_record(self, entry: Any) -> dict[str, Any]:
        link = (entry.get("link") or "").strip()
        guid = (entry.get("id") or entry.get("guid") or "").strip()

        record: dict[str, Any] = {
            "id": guid or link,
            "title": entry.get("title") or "",
            "url": link,
        }

        published = _entry_timestamp(entry)
        if published is not None:
            record["pubDate"] = published

        hover = _hover_text(entry)
        if hover:
            record["extra"] = {"hover": hover}

        return record


class RssHubSource(RssSource):
    """RSS source served by an RSSHub instance route (e.g. ``/github/trending/daily``)."""

    def __init__(
        self,
        metadata: SourceMetadata,
        route: str,
        base_url: str = "https://rsshub.app",
    ) -> None:
        self.route = route
        self.base_url = base_url
        super().__init__(metadata, f"{base_url.rstrip('/')}/{route.lstrip('/')}")
