"""
Request Facade - inbound read requests to FetchCoordinator calls.

============================================================
RESPONSIBILITY
============================================================
- Resolve requested ids (aliases included) through the registry
- Honor the bypass flag only for privileged callers
- Map ResolveResult to the outward response shape:

    {"status": "success" | "cache", "id", "updatedTime", "items"}

  "success" means the items come from a fetch made for this call;
  "cache" covers both fresh cache and stale fallback.

No caching logic lives here.
============================================================
"""

import logging
from typing import Any, Iterable, Optional

from core.config import AppConfig
from news_cache.coordinator import FetchCoordinator
from news_cache.models import Origin, ResolveResult
from news_sources.exceptions import UnknownSourceError
from news_sources.registry import SourceRegistry


logger = logging.getLogger(__name__)


def to_response(result: ResolveResult) -> dict[str, Any]:
    """Outward response dict for a resolve outcome."""
    return {
        "status": "success" if result.origin == Origin.FRESH_FETCH else "cache",
        "id": result.source_id,
        "updatedTime": result.updated_time_ms,
        "items": [item.to_dict() for item in result.items],
    }


class RequestFacade:
    """
    Entry point for HTTP-style callers.

    Usage:
        facade = RequestFacade(registry, coordinator, config)
        response = await facade.read("hn", latest=True, privileged=True)
    """

    def __init__(
        self,
        registry: SourceRegistry,
        coordinator: FetchCoordinator,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._registry = registry
        self._coordinator = coordinator
        self._config = config or AppConfig()

    @property
    def coordinator(self) -> FetchCoordinator:
        return self._coordinator

    def is_privileged(self, authorization: Optional[str]) -> bool:
        """True if the caller may bypass the cache."""
        if self._config.disable_login:
            return True
        if not authorization:
            return False
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return False
        return token.strip() in self._config.refresh_tokens

    async def read(
        self,
        source_id: str,
        latest: bool = False,
        privileged: bool = False,
    ) -> dict[str, Any]:
        """
        Read one source.

        Raises:
            UnknownSourceError: id is not a known enabled source
            SourceUnavailableError: fetch failed on a cold cache
        """
        canonical = self._registry.resolve_id(source_id)
        force_bypass = latest and privileged
        if latest and not privileged:
            logger.debug(f"[{canonical}] Ignoring latest=true from unprivileged caller")

        result = await self._coordinator.resolve(
            canonical,
            self._registry.get_interval(canonical),
            force_bypass=force_bypass,
        )
        return to_response(result)

    async def read_entire(self, source_ids: Iterable[str]) -> list[dict[str, Any]]:
        """
        Read several sources concurrently.

        Unknown and unavailable sources are left out of the result.
        Responses keep the order of the request.
        """
        canonical_ids: list[str] = []
        for source_id in source_ids:
            try:
                canonical = self._registry.resolve_id(source_id)
            except UnknownSourceError:
                logger.debug(f"Skipping unknown source id {source_id!r}")
                continue
            if canonical not in canonical_ids:
                canonical_ids.append(canonical)

        batch = await self._coordinator.resolve_many(
            {sid: self._registry.get_interval(sid) for sid in canonical_ids}
        )
        for source_id, error in batch.failures.items():
            logger.debug(f"[{source_id}] Left out of batch: {error.message}")

        return [
            to_response(batch.results[sid])
            for sid in canonical_ids
            if sid in batch.results
        ]
