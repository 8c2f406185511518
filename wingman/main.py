"""Wingman Backend API - FastAPI Application."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import Response

from wingman import __version__
from wingman.api.http.bot import router as bot_router
from wingman.api.http.errors import CORS_HEADERS, internal_error_response, register_error_handlers
from wingman.api.http.feedback import router as feedback_router
from wingman.api.http.profiles import router as profiles_router
from wingman.api.http.wingman import router as wingman_router
from wingman.config import Settings, get_settings
from wingman.core import Container, build_container
from wingman.infrastructure.database import close_db, get_session_factory, init_db
from wingman.infrastructure.logging import clear_request_context, set_request_context, setup_logging

logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting Wingman Backend", extra={"service": "app"})
    settings.log_config_summary()

    # A ConfigurationError here stops the service from booting
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(settings, session_factory=get_session_factory())

    await init_db(create_tables=settings.database_create_tables)

    yield

    logger.info("Shutting down Wingman Backend", extra={"service": "app"})
    await app.state.container.aclose()
    await close_db()


def create_app(settings: Settings | None = None, container: Container | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, debug_namespaces=settings.debug_namespaces)

    app = FastAPI(
        title="Wingman API",
        description="Chat reply suggestions with model fallback",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = container

    register_error_handlers(app)
    app.include_router(wingman_router)
    app.include_router(bot_router)
    app.include_router(feedback_router)
    app.include_router(profiles_router)

    @app.middleware("http")
    async def _cors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001
            logger.error(
                "Unhandled request error",
                exc_info=True,
                extra={"service": "http", "metadata": {"path": request.url.path}},
            )
            return internal_error_response()
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.middleware("http")
    async def _http_request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id")
        if not request_id:
            request_id = str(uuid4())

        set_request_context(request_id=request_id)
        start = time.time()
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response
        finally:
            duration_ms = int((time.time() - start) * 1000)
            logger.info(
                "HTTP request completed",
                extra={
                    "service": "http",
                    "duration_ms": duration_ms,
                    "metadata": {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                    },
                },
            )
            clear_request_context()

    @app.get("/health")
    async def health_check(request: Request):
        """Liveness check with the running generation counters."""
        container: Container | None = request.app.state.container
        return {
            "status": "ok",
            "version": __version__,
            "stats": container.stats.snapshot() if container is not None else None,
        }

    return app


app = create_app()
