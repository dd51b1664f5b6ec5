"""
FastAPI server — related-account analysis over the Solana RPC.

GET /api/tools/solana-address-analysis?address=<addr> runs (or serves from
cache) an analysis; ?cache=stats returns cache diagnostics instead. The
ledger client and result cache are created in the lifespan and torn down at
shutdown; the orchestrator lives on app.state and is injected per request.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from backend_bubbles import __version__
from backend_bubbles.analysis_engine.cache import ResultCache
from backend_bubbles.analysis_engine.orchestrator import AnalysisOrchestrator
from backend_bubbles.api_server.plugin import ANALYSIS_PATH, build_plugin_manifest
from backend_bubbles.bubbles_logging import get_logger
from backend_bubbles.bubbles_logging.logger import short_address
from backend_bubbles.config.env import mask_rpc_url
from backend_bubbles.config.settings import get_settings
from backend_bubbles.ledger.client import LedgerClient

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Response models (OpenAPI docs; payloads are built by the engine's to_dict)
# -----------------------------------------------------------------------------

class RelatedAccountResponse(BaseModel):
    address: str = Field(..., description="Counterparty address (base58)")
    totalSolVolume: str = Field(..., description="SOL + token volume in SOL equivalent, formatted")
    interactions: int | None = Field(None, description="Transactions involving this account (detailed=true)")
    lastInteraction: int | None = Field(None, description="Unix time of latest interaction (detailed=true)")
    transactionTypes: list[str] | None = Field(None, description="Observed flow types (detailed=true)")


class AnalysisResponse(BaseModel):
    address: str = Field(..., description="The analyzed address")
    isValid: bool = Field(..., description="Whether the address is a valid Solana public key")
    relatedAccounts: list[RelatedAccountResponse] = Field(default_factory=list)
    error: str | None = Field(None, description="Error message if analysis failed")


class CacheEntryResponse(BaseModel):
    address: str
    ageMinutes: int
    expiresInMinutes: int


class CacheStatsResponse(BaseModel):
    totalEntries: int
    maxSize: int
    ttlMinutes: int | float
    entries: list[CacheEntryResponse] = Field(default_factory=list)


def _error_payload(error: str) -> dict[str, Any]:
    return {"address": "", "isValid": False, "relatedAccounts": [], "error": error}


# -----------------------------------------------------------------------------
# Lifespan: ledger client + result cache owned by the app
# -----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    client = LedgerClient(settings.rpc_url, request_timeout_sec=settings.request_timeout_sec)
    cache: ResultCache = ResultCache(
        max_entries=settings.cache_max_entries,
        default_ttl_sec=settings.cache_ttl_sec,
    )
    app.state.orchestrator = AnalysisOrchestrator(client, cache, settings)
    logger.info(
        "api_started",
        rpc_url=mask_rpc_url(settings.rpc_url),
        tier=settings.provider_tier,
        cache_max_entries=settings.cache_max_entries,
    )
    try:
        yield
    finally:
        cache.clear()
        await client.aclose()
        logger.info("api_stopped")


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    """Dependency: the app-scoped orchestrator (overridden in tests)."""
    return request.app.state.orchestrator


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend Bubbles API",
    description="Related-account analysis for Solana wallets (SOL + token volume per counterparty).",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get(
    ANALYSIS_PATH,
    responses={
        200: {"model": AnalysisResponse},
        400: {"model": AnalysisResponse},
        500: {"model": AnalysisResponse},
    },
)
async def solana_address_analysis(
    address: str | None = None,
    cache: str | None = None,
    detailed: bool = False,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Analyze a Solana address: related accounts ordered by SOL-equivalent volume.

    cache=stats returns cache diagnostics instead of running an analysis.
    detailed=true adds interaction count, last interaction time and flow types.
    """
    if cache == "stats":
        return JSONResponse(orchestrator.cache_stats().to_dict())

    if not address:
        return JSONResponse(_error_payload("Address parameter is required"), status_code=400)

    started = time.perf_counter()
    try:
        result = await orchestrator.analyze(address)
    except Exception as e:
        logger.exception("analysis_endpoint_error", wallet_id=short_address(address), error=str(e))
        return JSONResponse(_error_payload("Internal server error"), status_code=500)
    logger.info(
        "analysis_request_completed",
        wallet_id=short_address(address),
        elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        is_valid=result.is_valid,
        error=result.error,
    )
    return JSONResponse(result.to_dict(detailed=detailed))


@app.get("/api/cache/stats", response_model=CacheStatsResponse)
def cache_stats(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)) -> CacheStatsResponse:
    """Same payload as ?cache=stats on the analysis endpoint."""
    return CacheStatsResponse.model_validate(orchestrator.cache_stats().to_dict())


@app.get("/api/ai-plugin")
def ai_plugin() -> dict[str, Any]:
    """OpenAPI manifest describing the analysis tool for agent runtimes."""
    return build_plugin_manifest()


@app.get("/.well-known/ai-plugin.json")
def well_known_ai_plugin(request: Request) -> RedirectResponse:
    return RedirectResponse(url=str(request.url_for("ai_plugin")))
