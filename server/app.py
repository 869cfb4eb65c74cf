"""FastAPI diagnostics application for module discovery.

Exposes read-only views of a running `ModuleDiscovery`: search history,
factory source search, extracted module source and the reporter.

`app` is exported for `uvicorn server.app:app`; it builds its own discovery
service from DISCOVERY_* environment variables. Hosts that already own a
discovery service should call `DiscoveryServer(discovery).create_app()`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, List, Optional, Pattern

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.requests import Request

from discovery import DiscoverySettings, ModuleDiscovery
from discovery.diagnostics import run_reporter
from discovery.errors import NoModuleMatchError
from discovery.utils.loader_ref import resolve_loader
from discovery.utils.source_text import defining_text


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging for the server."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=True,
    )
    logging.getLogger("discovery").setLevel(level)
    logging.getLogger("server").setLevel(level)


logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Server health status")
    system_ready: bool = Field(..., description="Whether a loader is attached")


class StatusResponse(BaseModel):
    """Response model for discovery status."""

    initialized: bool = Field(..., description="Whether a loader is attached")
    strict: bool = Field(..., description="Whether misses raise")
    tooling_attached: bool = Field(..., description="Whether developer tooling suppresses raising")
    module_count: int = Field(..., description="Number of loaded modules")
    pending_subscriptions: int = Field(..., description="Subscriptions still waiting for a module")
    history_size: int = Field(..., description="Number of recorded searches")


class HistoryResponse(BaseModel):
    """Response model for recorded searches."""

    entries: list = Field(..., description="Recorded searches, oldest first")
    count: int = Field(..., description="Total number of entries")


class SearchRequest(BaseModel):
    """Request model for factory source search."""

    substrings: List[str] = Field(default_factory=list, description="Strings every factory must contain")
    patterns: List[str] = Field(default_factory=list, description="Regexes every factory must match")


class SearchResponse(BaseModel):
    """Response model for factory source search."""

    module_ids: list = Field(..., description="Ids of matching factories")
    count: int = Field(..., description="Number of matches")


class ModuleIdRequest(BaseModel):
    """Request model for resolving a module id by code."""

    code: List[str] = Field(..., min_length=1, description="Strings the factory must contain")


class ModuleIdResponse(BaseModel):
    """Response model for a resolved module id."""

    module_id: str = Field(..., description="Id of the first matching factory")


class ModuleSourceResponse(BaseModel):
    """Response model for an extracted module."""

    module_id: str = Field(..., description="The module id")
    source: str = Field(..., description="Extracted, inert copy of the factory source")


class ReportResponse(BaseModel):
    """Response model for a reporter run."""

    checked: int = Field(..., description="Number of searches replayed")
    ok: bool = Field(..., description="Whether every search resolved")
    failures: list = Field(..., description="Searches that did not resolve")


def _compile_patterns(patterns: List[str]) -> List[Pattern[str]]:
    try:
        return [re.compile(p) for p in patterns]
    except re.error as e:
        raise HTTPException(status_code=400, detail=f"Invalid pattern: {e}")


class DiscoveryServer:
    """Encapsulates FastAPI app + ModuleDiscovery lifecycle."""

    def __init__(
        self,
        discovery: Optional[ModuleDiscovery] = None,
        *,
        settings: Optional[DiscoverySettings] = None,
        log_level: int = logging.INFO,
    ) -> None:
        configure_logging(log_level)
        self.discovery = discovery
        if settings is not None:
            self.settings = settings
        elif discovery is not None:
            self.settings = discovery.settings
        else:
            self.settings = DiscoverySettings.from_env()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        """Lifespan event handler: attach the configured loader if needed."""
        logger.info("=" * 70)
        logger.info("🚀 MODULE DISCOVERY SERVER STARTING")
        logger.info("=" * 70)

        try:
            if self.discovery is None:
                self.discovery = ModuleDiscovery(self.settings)
            if not self.discovery.is_initialized():
                if self.settings.loader:
                    logger.info("⚙️  Attaching loader %s...", self.settings.loader)
                    self.discovery.initialize(resolve_loader(self.settings.loader))
                else:
                    logger.warning("⚠️ DISCOVERY_LOADER is not set; waiting for a host to attach a loader")
            if self.discovery.is_initialized():
                logger.info("✅ Server ready!")
        except Exception as e:
            logger.error(f"❌ Failed to attach loader: {e}")
            # Continue anyway - API will return 503 until ready.

        yield

        logger.info("👋 Server shutting down...")

    def create_app(self) -> FastAPI:
        """Create and configure a FastAPI application instance."""
        app = FastAPI(
            title="Module Discovery API",
            description="Diagnostics for module discovery inside a running bundle",
            version="1.0.0",
            lifespan=self.lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        def require_discovery() -> ModuleDiscovery:
            if self.discovery is None or not self.discovery.is_initialized():
                raise HTTPException(
                    status_code=503,
                    detail="Discovery not initialized. No bundle loader is attached yet.",
                )
            return self.discovery

        @app.get("/", tags=["General"])
        async def root() -> dict[str, Any]:
            return {
                "name": "Module Discovery API",
                "version": "1.0.0",
                "docs": "/docs",
                "health": "/health",
                "validEndpoints": [
                    "GET /health",
                    "GET /status",
                    "GET /history",
                    "GET /trace",
                    "POST /search",
                    "POST /module-id",
                    "GET /modules/{module_id}/source",
                    "GET /report",
                ],
            }

        @app.get("/health", response_model=HealthResponse, tags=["General"])
        async def health_check() -> HealthResponse:
            system_ready = self.discovery is not None and self.discovery.is_initialized()
            return HealthResponse(status="healthy", system_ready=system_ready)

        @app.get("/status", response_model=StatusResponse, tags=["General"])
        async def get_status() -> StatusResponse:
            discovery = require_discovery()
            return StatusResponse(
                initialized=discovery.is_initialized(),
                strict=discovery.policy.strict,
                tooling_attached=discovery.policy.tooling_attached,
                module_count=discovery.module_count(),
                pending_subscriptions=discovery.pending_count,
                history_size=len(discovery.history),
            )

        @app.get("/history", response_model=HistoryResponse, tags=["Diagnostics"])
        async def get_history() -> HistoryResponse:
            discovery = require_discovery()
            entries = [entry.to_serializable() for entry in discovery.history]
            return HistoryResponse(entries=entries, count=len(entries))

        @app.get("/trace", tags=["Diagnostics"])
        async def get_trace() -> dict[str, Any]:
            discovery = require_discovery()
            return {
                name: {"calls": stat.calls, "total_seconds": stat.total_seconds}
                for name, stat in discovery.tracer.stats().items()
            }

        @app.post("/search", response_model=SearchResponse, tags=["Search"])
        async def search_factories(request: SearchRequest) -> SearchResponse:
            discovery = require_discovery()
            filters = [*request.substrings, *_compile_patterns(request.patterns)]
            results = discovery.search(*filters)
            module_ids = [str(module_id) for module_id in results]
            logger.info("🔎 Search %r matched %d factories", filters, len(module_ids))
            return SearchResponse(module_ids=module_ids, count=len(module_ids))

        @app.post("/module-id", response_model=ModuleIdResponse, tags=["Search"])
        async def find_module_id(request: ModuleIdRequest) -> ModuleIdResponse:
            discovery = require_discovery()
            try:
                module_id = discovery.find_module_id(*request.code)
            except NoModuleMatchError:
                module_id = None
            if module_id is None:
                raise HTTPException(status_code=404, detail="No module factory contains all of the given code")
            return ModuleIdResponse(module_id=str(module_id))

        @app.get("/modules/{module_id}/source", response_model=ModuleSourceResponse, tags=["Search"])
        async def get_module_source(module_id: str) -> ModuleSourceResponse:
            discovery = require_discovery()
            extracted = discovery.extract(module_id)
            if extracted is None and module_id.isdigit():
                extracted = discovery.extract(int(module_id))
            if extracted is None:
                raise HTTPException(status_code=404, detail=f"Module {module_id} not found")
            return ModuleSourceResponse(module_id=module_id, source=defining_text(extracted))

        @app.get("/report", response_model=ReportResponse, tags=["Diagnostics"])
        async def get_report() -> ReportResponse:
            discovery = require_discovery()
            try:
                report = await run_reporter(discovery)
            except Exception as e:
                logger.error(f"❌ Reporter failed: {e}")
                raise HTTPException(status_code=500, detail=f"Reporter failed: {str(e)}")
            return ReportResponse(**report.to_serializable())

        @app.exception_handler(404)
        async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
            detail = getattr(exc, "detail", None) or "The requested endpoint does not exist"
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Not Found",
                    "detail": detail,
                    "docs": "/docs",
                },
            )

        @app.exception_handler(500)
        async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
            logger.exception("Internal server error")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "detail": "An unexpected error occurred"},
            )

        return app


def create_app() -> FastAPI:
    """Factory for creating an app instance (useful for tests/uvicorn)."""
    return DiscoveryServer().create_app()


app = create_app()
