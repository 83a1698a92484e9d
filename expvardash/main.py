"""expvardash — FastAPI application entry point."""

from __future__ import annotations

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.routing import Match, Mount
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from expvardash.api.dashboard import router as dashboard_router
from expvardash.api.health import router as health_router
from expvardash.api.stats import router as stats_router
from expvardash.config import Settings
from expvardash.history.ring import RingHistory
from expvardash.ingestion.expvar import ExpvarClient
from expvardash.logging_config import setup_logging
from expvardash.observability.metrics import InMemoryMetrics
from expvardash.workers.poller import Poller

logger = logging.getLogger("expvardash")


def _log_endpoints(settings: Settings) -> None:
    base = f"http://localhost:{settings.port}"
    logger.info(f"Monitoring application at {settings.target_url}")
    logger.info(f"Starting http server on port {settings.port}")
    logger.info(f"Raw endpoint at {base}/raw")
    logger.info(f"Processed endpoint at {base}/processed")
    logger.info(f"History endpoint at {base}/stats ({settings.history_length} samples)")
    if settings.dashboard_enabled:
        logger.info(f"Dashboard at {base}/dash")


def _route_label(app: FastAPI, request: Request) -> str:
    """Matched route template, so metrics keys stay bounded whatever paths clients send."""
    route = request.scope.get("route")
    if route is None:
        for candidate in app.router.routes:
            match, _ = candidate.matches(request.scope)
            if match == Match.FULL:
                route = candidate
                break
    if route is None:
        return "unmatched"
    if isinstance(route, Mount):
        return f"mount:{route.name}"
    return getattr(route, "path", "unmatched")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    _log_endpoints(settings)

    await app.state.poller.start()

    yield

    await app.state.poller.stop()
    logger.info("expvardash shutting down")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and the objects it owns for its lifetime."""
    settings = settings or Settings()

    app = FastAPI(
        title="expvardash",
        description="Polls a /debug/vars endpoint and serves raw, processed and historical views",
        version="0.1.0",
        lifespan=lifespan,
    )

    metrics = InMemoryMetrics()
    history = RingHistory(settings.history_length)
    client = ExpvarClient(
        settings.monitor_host,
        settings.monitor_port,
        timeout=settings.fetch_timeout_seconds,
    )
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.history = history
    app.state.expvar_client = client
    app.state.poller = Poller(client, history, interval=settings.polling_interval_seconds, metrics=metrics)

    # Rate limiting
    app.state.limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Request tracing + access log middleware
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        metrics.observe_request(_route_label(app, request), response.status_code, duration_ms)
        logger.info(
            "request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response

    # Routers
    app.include_router(stats_router)
    app.include_router(health_router)
    if settings.dashboard_enabled:
        app.include_router(dashboard_router)

    # Static files last so every route above takes precedence.
    if settings.static_dir and os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:
        logger.debug(f"Static directory {settings.static_dir!r} not found; / not served")

    return app
