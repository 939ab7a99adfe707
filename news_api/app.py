"""
News API - FastAPI application.

============================================================
ENDPOINTS
============================================================
GET  /api/s?id=<id>&latest=<bool>  Items of one source
POST /api/s/entire                 Items of several sources
GET  /api/sources                  Source metadata and columns
GET  /api/stats                    Coordinator and gateway counters
GET  /health                       Liveness and per-source health

UnknownSourceError     -> 400
SourceUnavailableError -> 503
============================================================
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.clock import ClockProtocol
from core.config import AppConfig, get_config
from news_cache.coordinator import FetchCoordinator
from news_cache.exceptions import SourceUnavailableError
from news_cache.store import CacheStore, create_store
from news_sources.exceptions import UnknownSourceError
from news_sources.gateway import SourceGateway
from news_sources.registry import SourceRegistry

from .facade import RequestFacade
from .schemas import (
    EntireRequest,
    ErrorResponse,
    HealthResponse,
    SourceInfo,
    SourceResponse,
    SourcesResponse,
)


logger = logging.getLogger(__name__)


def build_registry(config: AppConfig) -> SourceRegistry:
    """Registry loaded from the configured sources file, empty if it is missing."""
    registry = SourceRegistry(default_interval_seconds=config.default_interval_seconds)
    if config.sources_file.exists():
        registry.load_yaml(config.sources_file, rsshub_base_url=config.rsshub_base_url)
    else:
        logger.warning(f"Sources file not found: {config.sources_file}")
    return registry


def create_app(
    config: Optional[AppConfig] = None,
    registry: Optional[SourceRegistry] = None,
    store: Optional[CacheStore] = None,
    gateway: Optional[SourceGateway] = None,
    clock: Optional[ClockProtocol] = None,
) -> FastAPI:
    """
    Build the application and wire its components.

    Every component can be injected; missing ones are built from config.
    """
    config = config or get_config()
    if registry is None:
        registry = gateway.registry if gateway is not None else build_registry(config)
    if gateway is None:
        gateway = SourceGateway(
            registry,
            default_timeout=config.fetch_timeout_seconds,
            max_items=config.max_items_per_source,
            clock=clock,
        )
    if store is None:
        store = create_store(config.database_url)
    coordinator = FetchCoordinator(
        store,
        gateway,
        clock=clock,
        fetch_timeout=config.fetch_timeout_seconds,
    )
    facade = RequestFacade(registry, coordinator, config)
    started_at = datetime.now(timezone.utc)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"News API started with {len(registry)} sources")
        yield
        await gateway.close()
        await store.close()
        logger.info("News API stopped")

    app = FastAPI(
        title="News Cache API",
        description="Aggregated news sources behind a shared, coalescing cache",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.facade = facade

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================================
    # Error mapping
    # ============================================================

    @app.exception_handler(UnknownSourceError)
    async def unknown_source_handler(request: Request, exc: UnknownSourceError):
        body = ErrorResponse(error="unknown_source", id=exc.source_name, message=exc.message)
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(SourceUnavailableError)
    async def unavailable_handler(request: Request, exc: SourceUnavailableError):
        body = ErrorResponse(error="source_unavailable", id=exc.source_name, message=exc.message)
        return JSONResponse(status_code=503, content=body.model_dump())

    # ============================================================
    # Endpoints
    # ============================================================

    @app.get("/api/s", response_model=SourceResponse, tags=["News"])
    async def read_source(
        id: str = Query(..., min_length=1),
        latest: bool = Query(False),
        authorization: Optional[str] = Header(None),
    ):
        """Items of one source; latest=true bypasses the cache for privileged callers."""
        return await facade.read(id, latest=latest, privileged=facade.is_privileged(authorization))

    @app.post("/api/s/entire", response_model=List[SourceResponse], tags=["News"])
    async def read_entire(body: EntireRequest):
        return await facade.read_entire(body.sources)

    @app.get("/api/sources", response_model=SourcesResponse, tags=["News"])
    async def list_sources():
        sources = []
        for name in registry.list_sources():
            meta = registry.get_metadata(name)
            sources.append(SourceInfo(
                name=meta.name,
                title=meta.title or meta.name,
                column=meta.column,
                interval_seconds=meta.interval_seconds,
                type=meta.type.value,
                home=meta.home,
            ))
        return SourcesResponse(sources=sources, columns=registry.columns())

    @app.get("/api/stats", tags=["Status"])
    async def stats() -> dict[str, Any]:
        return {
            "coordinator": coordinator.get_stats(),
            "gateway": gateway.get_stats(),
            "incidents": gateway.get_incidents(limit=20),
        }

    @app.get("/health", response_model=HealthResponse, tags=["Status"])
    async def health():
        now = datetime.now(timezone.utc)
        source_health = {
            name: h.status.value for name, h in gateway.get_all_health().items()
        }
        degraded = any(status == "unavailable" for status in source_health.values())
        return HealthResponse(
            status="degraded" if degraded else "healthy",
            timestamp=now.isoformat(),
            uptime_seconds=(now - started_at).total_seconds(),
            sources=source_health,
        )

    return app
