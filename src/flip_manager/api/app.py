"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from flip_manager import __version__
from flip_manager.api.v1 import v1_router
from flip_manager.config.settings import AppConfig
from flip_manager.engine.client import FlipsEngine
from flip_manager.errors.flip_errors import FlipError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle hooks.

    Initialises the engine (store, node client, timers) on startup and
    gracefully shuts down on exit.
    """
    engine: FlipsEngine = app.state.engine
    try:
        await engine.initialize()
        logger.info("Flips engine started")
        yield
    finally:
        await engine.close()
        logger.info("Flips engine stopped")


def create_app(
    *,
    config: AppConfig | None = None,
    engine: FlipsEngine | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables (and ``FLIPS_CONFIG_PATH`` if set).
        engine: Optional pre-built, not yet initialized engine.
    """
    if config is None:
        config = engine.config if engine is not None else AppConfig()
    if engine is None:
        engine = FlipsEngine(config)

    app = FastAPI(
        title="py-flips",
        version=__version__,
        description="Flip lifecycle manager for Idena nodes",
        lifespan=_lifespan,
    )

    app.state.config = config
    app.state.engine = engine

    # -- Error handler --
    @app.exception_handler(FlipError)
    async def _flip_error_handler(request: Request, exc: FlipError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        metrics = app.state.engine.metrics
        body = generate_latest(metrics.registry) if metrics is not None else b""
        return Response(
            content=body,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Mount v1 API --
    app.include_router(v1_router)

    return app
