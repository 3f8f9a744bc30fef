"""
FastAPI server — bootstraps the ledger runtime and exposes health endpoints.

The lifespan runs initialize_ledger() once, stores the LedgerRuntime on
app.state.ledger, and closes the Redis connection on shutdown. A fatal
BootstrapError aborts startup. Business routes mount on top of this app
and read the runtime through get_ledger().
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from backend_archivenet.archivenet_logging import get_logger
from backend_archivenet.config.env import mask_url
from backend_archivenet.core.exceptions import BootstrapError
from backend_archivenet.ledger.bootstrap import LedgerRuntime, initialize_ledger

logger = get_logger(__name__)

LedgerInitializer = Callable[[], Awaitable[LedgerRuntime]]


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class CacheHealthResponse(BaseModel):
    """GET /health/cache response: memoised Redis connectivity snapshot."""

    configured: bool = Field(..., description="REDIS_URL is set")
    connected: bool = Field(..., description="Last probe got a PONG")
    status: str = Field(..., description="not_configured | ready | disconnected")
    details: str = Field("", description="Human-readable detail")
    captured_at: float = Field(..., description="Unix timestamp of the probe")


class LedgerHealthResponse(BaseModel):
    """GET /health/ledger response: selected cluster and service identity."""

    mode: str = Field(..., description="production | local_preferred | remote_fallback")
    cluster: str = Field(..., description="mainnet-beta | localnet | devnet")
    rpc_url: str = Field(..., description="RPC endpoint (credentials masked)")
    service_address: str = Field(..., description="Service wallet address (base58)")
    redis_attached: bool = Field(..., description="Redis tier attached to the state cache")


# -----------------------------------------------------------------------------
# Lifespan and dependency
# -----------------------------------------------------------------------------


def get_ledger(request: Request) -> LedgerRuntime:
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        raise HTTPException(status_code=503, detail="Ledger runtime not initialized")
    return ledger


def create_app(initializer: LedgerInitializer = initialize_ledger) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Bootstrap the ledger runtime before serving; release Redis on shutdown."""
        try:
            runtime = await initializer()
        except BootstrapError as e:
            logger.error("api_bootstrap_failed", error=str(e), error_type=type(e).__name__)
            raise
        app.state.ledger = runtime
        logger.info("api_ledger_ready", cluster=runtime.target.cluster)
        try:
            yield
        finally:
            await runtime.close()
            app.state.ledger = None
            logger.info("api_ledger_closed")

    app = FastAPI(
        title="ArchiveNET Backend API",
        description="Ledger-backed API for ArchiveNET.",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return "This is the Backend API for ArchiveNET"

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok"}

    @app.get("/health/cache", response_model=CacheHealthResponse)
    async def cache_health(request: Request) -> dict[str, Any]:
        """Redis connectivity, probed at most once per 30 seconds."""
        snapshot = await get_ledger(request).check_connectivity()
        return snapshot.to_dict()

    @app.get("/health/ledger", response_model=LedgerHealthResponse)
    def ledger_health(request: Request) -> LedgerHealthResponse:
        ledger = get_ledger(request)
        target = ledger.get_execution_target()
        return LedgerHealthResponse(
            mode=target.mode.value,
            cluster=target.cluster,
            rpc_url=mask_url(target.rpc_url),
            service_address=ledger.get_identity().address,
            redis_attached=ledger.get_cache_handle() is not None,
        )

    return app


app = create_app()
