"""
Shared test doubles.

FakeSource counts its fetches and can be held open with a gate so that
concurrent readers pile up behind one in-flight refresh.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional
from unittest.mock import MagicMock

from core.clock import MockClock
from news_sources.base import BaseNewsSource
from news_sources.gateway import SourceGateway
from news_sources.models import SourceMetadata
from news_sources.registry import SourceRegistry


START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_records(count: int, prefix: str = "item") -> list[dict[str, Any]]:
    return [
        {
            "id": f"{prefix}-{i}",
            "title": f"Story {i}",
            "url": f"https://example.com/{prefix}/{i}",
        }
        for i in range(count)
    ]


class FakeSource(BaseNewsSource):
    """Scriptable source: returns ``records`` or raises ``error``."""

    def __init__(
        self,
        name: str = "s1",
        records: Optional[list[dict[str, Any]]] = None,
        interval_seconds: int = 600,
    ) -> None:
        super().__init__(SourceMetadata(name=name, title=name.upper(), interval_seconds=interval_seconds))
        self.records = records if records is not None else make_records(3, name)
        self.error: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls = 0
        self.closed = False

    async def fetch_raw(self, session):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def close(self) -> None:
        self.closed = True


def fake_session() -> MagicMock:
    """Stand-in aiohttp session; FakeSource never touches it."""
    session = MagicMock()
    session.closed = False
    return session


def make_gateway(
    *sources: BaseNewsSource,
    clock: Optional[MockClock] = None,
    timeout: float = 1.0,
    max_items: int = 30,
) -> SourceGateway:
    registry = SourceRegistry()
    for source in sources:
        registry.register(source)
    return SourceGateway(
        registry,
        default_timeout=timeout,
        max_items=max_items,
        session=fake_session(),
        clock=clock or MockClock(START),
    )
