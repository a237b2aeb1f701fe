"""FastAPI application: Prometheus /metrics endpoint, health check, poller lifecycle."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from iss_exporter.config import Config, load_config
from iss_exporter.models import HealthResponse
from iss_exporter.position import setup_position_tracking

logger = logging.getLogger(__name__)


def create_app(
    config: Config | None = None,
    registry: CollectorRegistry | None = None,
    client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the exporter app.

    ``registry`` and ``client`` default to a fresh registry and an
    ``httpx.AsyncClient`` using the configured request timeout. A client
    passed in is left open on shutdown; the caller owns it.
    """
    config = config or load_config()
    registry = registry or CollectorRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http = client or httpx.AsyncClient(timeout=config.position_request_timeout, follow_redirects=True)
        poller, handle = setup_position_tracking(config, registry, http)
        app.state.poller = poller
        app.state.schedule = handle
        try:
            yield
        finally:
            await handle.stop()
            if client is None:
                await http.aclose()
            logger.info("ISS exporter shut down")

    app = FastAPI(
        title="ISS Position Exporter",
        description="Publishes the live ISS position as Prometheus gauges",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry
    app.state.schedule = None

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check():
        handle = app.state.schedule
        return HealthResponse(status="ok", polling=handle is not None and handle.running)

    return app
