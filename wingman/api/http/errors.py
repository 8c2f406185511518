"""Error responses for the HTTP surface.

Every failure body carries an ``error`` field; a half-populated success
payload is never returned.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from wingman.exceptions import AppError, RequestValidationFailed

logger = logging.getLogger("http")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

AVAILABLE_ENDPOINTS = ["/init", "/", "/bot", "/config", "/feedback", "/profiles"]

# Added implicitly by the router; not listed in Allow
_IMPLICIT_METHODS = {"HEAD", "OPTIONS"}


def error_body(exc: AppError) -> dict[str, Any]:
    body: dict[str, Any] = {"error": exc.message, "code": exc.code}
    if isinstance(exc, RequestValidationFailed):
        body["details"] = exc.errors
    elif exc.details:
        body["details"] = exc.details
    return body


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
        headers=CORS_HEADERS,
    )


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    level = logging.WARNING if exc.http_status < 500 else logging.ERROR
    logger.log(
        level,
        "Request failed",
        extra={"service": "http", "error_code": exc.code, "status_code": exc.http_status, "error": exc.message},
    )
    return JSONResponse(status_code=exc.http_status, content=error_body(exc), headers=CORS_HEADERS)


def method_not_allowed(method: str, allowed: str = "POST") -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={
            "error": "Method not allowed",
            "message": f"This endpoint only accepts {allowed} requests",
            "method": method,
            "availableEndpoints": AVAILABLE_ENDPOINTS,
        },
        headers={"Allow": f"{allowed}, OPTIONS", **CORS_HEADERS},
    )


def allowed_methods(request: Request) -> list[str]:
    """Methods routed for the request path, across every route that matches it."""
    methods: set[str] = set()
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match is not Match.NONE:
            methods |= getattr(route, "methods", None) or set()
    return sorted(methods - _IMPLICIT_METHODS)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path, wrong method) in the same envelope as AppError."""
    if exc.status_code == 405:
        return method_not_allowed(request.method, ", ".join(allowed_methods(request)) or "POST")
    logger.info(
        "Request rejected by router",
        extra={"service": "http", "status_code": exc.status_code, "metadata": {"path": request.url.path}},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers={**(exc.headers or {}), **CORS_HEADERS},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
