"""
Base News Source - Abstract fetch capability for one content source.

The cache layer never knows which concrete source it is talking to. It
only calls fetch_raw() through the Source Gateway, which adds the timeout,
error classification and normalization.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from .exceptions import UpstreamError
from .models import SourceMetadata


logger = logging.getLogger(__name__)


RawRecords = list[dict[str, Any]]
FetchFunction = Callable[[aiohttp.ClientSession], Awaitable[RawRecords]]


class BaseNewsSource(ABC):
    """
    Abstract base class for news sources.

    Subclasses implement:
    - metadata - registry description of the source
    - fetch_raw() - return raw records in source ranking order

    fetch_raw() should raise UpstreamError / ParseError on failure.
    Anything else it raises is classified as UpstreamError by the gateway.
    """

    def __init__(self, metadata: SourceMetadata) -> None:
        self._metadata = metadata

    @property
    def metadata(self) -> SourceMetadata:
        return self._metadata

    @property
    def name(self) -> str:
        return self._metadata.name

    @abstractmethod
    async def fetch_raw(self, session: aiohttp.ClientSession) -> RawRecords:
        """Fetch raw records from the upstream."""
        pass

    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """GET a JSON document, mapping HTTP failures to UpstreamError."""
        async with session.get(url, **kwargs) as response:
            if response.status != 200:
                text = await response.text()
                raise UpstreamError(
                    f"HTTP {response.status} from upstream",
                    source_name=self.name,
                    status_code=response.status,
                    url=str(response.url),
                    details={"response": text[:500]},
                )
            return await response.json(content_type=None)

    async def _get_text(
        self,
        session: aiohttp.ClientSession,
        url: str,
        **kwargs: Any,
    ) -> str:
        """GET a text document, mapping HTTP failures to UpstreamError."""
        async with session.get(url, **kwargs) as response:
            if response.status != 200:
                raise UpstreamError(
                    f"HTTP {response.status} from upstream",
                    source_name=self.name,
                    status_code=response.status,
                    url=str(response.url),
                )
            return await response.text()

    async def close(self) -> None:
        """Cleanup resources. Override if needed."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class FunctionSource(BaseNewsSource):
    """
    Adapts a plain async function into a news source.

    Usage:
        async def fetch_example(session):
            return [{"id": "1", "title": "Hello", "url": "https://example.com/1"}]

        registry.register(FunctionSource(SourceMetadata(name="example"), fetch_example))
    """

    def __init__(
        self,
        metadata: SourceMetadata,
        fetch_fn: FetchFunction,
        close_fn: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        super().__init__(metadata)
        self._fetch_fn = fetch_fn
        self._close_fn = close_fn

    async def fetch_raw(self, session: aiohttp.ClientSession) -> RawRecords:
        return await self._fetch_fn(session)

    async def close(self) -> None:
        if self._close_fn is not None:
            await self._close_fn()
