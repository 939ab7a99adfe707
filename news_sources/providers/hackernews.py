"""
Hacker News Source - front page via the public Firebase API.

Two-step fetch: the ranked id list, then every story concurrently.
Deleted or dead stories are skipped; the id list order is the ranking.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from ..base import BaseNewsSource, RawRecords
from ..exceptions import ParseError, UpstreamError
from ..models import SourceMetadata, SourceType


logger = logging.getLogger(__name__)


class HackerNewsSource(BaseNewsSource):
    """Hacker News top stories."""

    BASE_URL = "https://hacker-news.firebaseio.com/v0"
    ITEM_URL = "https://news.ycombinator.com/item?id={id}"
    DEFAULT_LIMIT = 30

    def __init__(
        self,
        metadata: Optional[SourceMetadata] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        super().__init__(metadata or SourceMetadata(
            name="hackernews",
            title="Hacker News",
            column="tech",
            interval_seconds=600,
            type=SourceType.HOTTEST,
            home="https://news.ycombinator.com",
        ))
        self.limit = limit

    async def fetch_raw(self, session: aiohttp.ClientSession) -> RawRecords:
        story_ids = await self._get_json(session, f"{self.BASE_URL}/topstories.json")
        if not isinstance(story_ids, list):
            raise ParseError(
                "topstories.json did not return a list",
                source_name=self.name,
                raw_data=str(story_ids),
            )

        story_ids = story_ids[: self.limit]
        results = await asyncio.gather(
            *(self._get_json(session, f"{self.BASE_URL}/item/{sid}.json") for sid in story_ids),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        if story_ids and len(failures) == len(story_ids):
            raise UpstreamError(
                f"All {len(story_ids)} story requests failed: {failures[0]}",
                source_name=self.name,
            )
        if failures:
            logger.debug(f"[{self.name}] {len(failures)} story requests failed")

        records: RawRecords = []
        for story in results:
            if isinstance(story, Exception) or not isinstance(story, dict):
                continue
            if story.get("deleted") or story.get("dead"):
                continue
            records.append(self._to_record(story))
        return records

    def _to_record(self, story: dict[str, Any]) -> dict[str, Any]:
        item_url = self.ITEM_URL.format(id=story.get("id"))
        extra: dict[str, Any] = {}
        if story.get("score") is not None:
            extra["info"] = f"{story['score']} points"
        if story.get("descendants") is not None:
            extra["hover"] = f"{story['descendants']} comments"

        return {
            "id": story.get("id"),
            "title": story.get("title") or "",
            "url": story.get("url") or item_url,
            "mobileUrl": item_url,
            "pubDate": story.get("time"),
            "extra": extra,
        }
