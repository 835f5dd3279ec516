"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Build the FastAPI application (title, version, lifespan)
  - Open process resources (Redis + DB pool) for the app lifetime and expose
    them on app.state.resources
  - Configure middleware (CORS, request context)
  - Mount the jobs router and register exception handlers
  - Expose health, readiness and metrics endpoints

Collaborators:
  - container.open_resources: explicit resource scope (no module globals)
  - RequestContextMiddleware: Request ID and logging context
  - interfaces.api.http.router: POST /convert, GET /jobs/{id}

Notes:
  - create_app() accepts a resource opener so tests can inject in-memory
    doubles without Redis/Postgres.
  - /healthz is liveness only; /readyz pings Redis and the DB.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from ..container import Resources, open_resources
from ..crosscutting.config import Settings, get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..crosscutting.middleware import RequestContextMiddleware
from ..interfaces.api.http.router import router
from .exception_handlers import register_exception_handlers

ResourceOpener = Callable[[Settings], AsyncContextManager[Resources]]


def create_app(
    settings: Settings | None = None,
    *,
    resource_opener: ResourceOpener = open_resources,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle. Opens and releases Redis + DB pool."""
        async with resource_opener(settings) as resources:
            app.state.resources = resources
            logger.info(
                "AsyncFlow API starting up",
                extra={
                    "queue": settings.queue_name,
                    "port": settings.port,
                    "db_pool_min": settings.db_pool_min_size,
                    "db_pool_max": settings.db_pool_max_size,
                },
            )
            yield
        logger.info("AsyncFlow API shutting down")

    app = FastAPI(
        title="AsyncFlow API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "jobs", "description": "Video conversion jobs"},
        ],
    )

    # R: Middleware order (bottom = first to execute):
    # 1. CORSMiddleware - handles preflight
    # 2. RequestContextMiddleware - sets request_id
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
    )

    app.include_router(router)
    register_exception_handlers(app)

    @app.get("/healthz")
    async def healthz(request: Request) -> dict[str, Any]:
        """Liveness: the process answers."""
        return {
            "ok": True,
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/readyz")
    async def readyz(request: Request, response: Response) -> dict[str, Any]:
        """Readiness: Redis and the DB answer a ping."""
        resources: Resources = request.app.state.resources
        db_ok = await _safe_ping(resources.store.ping, "db")
        redis_ok = await _safe_ping(resources.queue.ping, "redis")
        ok = db_ok and redis_ok
        if not ok:
            response.status_code = 503
        return {
            "ok": ok,
            "db": "connected" if db_ok else "disconnected",
            "redis": "connected" if redis_ok else "disconnected",
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus text format metrics."""
        body, content_type = get_metrics_response()
        return Response(content=body, media_type=content_type)

    return app


async def _safe_ping(ping: Callable[[], Any], name: str) -> bool:
    try:
        return bool(await ping())
    except Exception as exc:
        logger.warning("Ready check: dependency unavailable", extra={"dependency": name, "error": str(exc)})
        return False
