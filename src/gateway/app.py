"""FastAPI application factory.

- JWT auth runs as HTTP middleware on every matched, non-exempt route and
  attaches request.state.user
- OrgAccessGuard / UsageEnforcer run per route as dependencies
- healthz, metrics, docs: exempt from auth
- Every QuotaguardError maps to one status with a {error, message} body
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from src.gateway.middleware.auth import JWTAuthMiddleware
from src.shared.errors import (
    AuthenticationError,
    AuthorizationError,
    QuotaExceededError,
    QuotaguardError,
    ValidationError,
)
from src.shared.trace_context import trace_context

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from src.shared.types import Identity

logger = logging.getLogger(__name__)

_EXEMPT_PATHS = frozenset(
    {
        "/healthz",
        "/metrics",
        "/docs",
        "/openapi.json",
        "/redoc",
    }
)

_REQUEST_ID_HEADER = "X-Request-ID"


def resolve_jwt_secret(explicit: str | None = None) -> str:
    """Explicit secret, else JWT_SECRET_KEY, else JWT_SECRET. Empty if none set."""
    return explicit or os.environ.get("JWT_SECRET_KEY", "") or os.environ.get("JWT_SECRET", "")


def error_response(status_code: int, exc: QuotaguardError) -> JSONResponse:
    """Uniform error envelope."""
    content: dict[str, Any] = {"error": exc.code, "message": str(exc)}
    if isinstance(exc, QuotaExceededError):
        plan = getattr(exc, "plan", None)
        if plan is not None:
            content["plan"] = plan
        content["limit"] = exc.limit
        content["current"] = exc.current
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    *,
    jwt_secret: str | None = None,
    cors_origins: list[str] | None = None,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        jwt_secret: JWT signing secret. Falls back to JWT_SECRET_KEY / JWT_SECRET env vars.
        cors_origins: Allowed CORS origins. Falls back to CORS_ORIGINS env var.
        lifespan: Async context manager factory for startup/shutdown lifecycle.

    Returns:
        Configured FastAPI application. Business routers are mounted by the caller.
    """
    secret = resolve_jwt_secret(jwt_secret)
    if not secret:
        msg = "JWT_SECRET_KEY must be provided via argument or environment variable"
        raise ValueError(msg)

    origins = cors_origins or [
        o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
    ]

    app = FastAPI(
        title="Quotaguard Gateway",
        description="Tenant access control and plan-based usage metering",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    jwt_auth = JWTAuthMiddleware(secret=secret, exempt_paths=list(_EXEMPT_PATHS))
    app.state.jwt_secret = secret
    app.state.jwt_middleware = jwt_auth

    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
            allow_headers=["Authorization", "Content-Type", _REQUEST_ID_HEADER],
        )

    # -- Error handlers --

    @app.exception_handler(AuthenticationError)
    async def _auth_error(_: Request, exc: AuthenticationError) -> JSONResponse:
        return error_response(401, exc)

    @app.exception_handler(AuthorizationError)
    async def _authz_error(_: Request, exc: AuthorizationError) -> JSONResponse:
        return error_response(403, exc)

    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return error_response(400, exc)

    @app.exception_handler(QuotaExceededError)
    async def _quota_exceeded(_: Request, exc: QuotaExceededError) -> JSONResponse:
        return error_response(402, exc)

    @app.exception_handler(QuotaguardError)
    async def _quotaguard_error(_: Request, exc: QuotaguardError) -> JSONResponse:
        return error_response(500, exc)

    # Uniform {error, message} schema for Starlette's own HTTP errors
    @app.exception_handler(StarletteHTTPException)
    async def _http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        code_map = {
            404: "NOT_FOUND",
            405: "METHOD_NOT_ALLOWED",
        }
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": code_map.get(exc.status_code, "HTTP_ERROR"),
                "message": exc.detail or f"HTTP {exc.status_code}",
            },
        )

    # -- Auth middleware (ASGI) --

    async def _authenticate(request: Request, call_next: Any) -> Response:
        path = request.url.path

        # CORS preflight (OPTIONS) must pass through to CORSMiddleware
        if request.method == "OPTIONS" or path in _EXEMPT_PATHS:
            return await call_next(request)

        # Unknown paths should return 404, not 401.
        route_matched = any(route.matches(request.scope)[0] != Match.NONE for route in app.routes)
        if not route_matched:
            return await call_next(request)

        try:
            identity: Identity | None = jwt_auth.authenticate(
                authorization=request.headers.get("authorization"),
                path=path,
            )
        except AuthenticationError as exc:
            return error_response(401, exc)

        request.state.user = identity
        return await call_next(request)

    @app.middleware("http")
    async def jwt_auth_middleware(request: Request, call_next: Any) -> Response:
        with trace_context(request.headers.get(_REQUEST_ID_HEADER)) as trace_id:
            response = await _authenticate(request, call_next)
            response.headers[_REQUEST_ID_HEADER] = trace_id
            return response

    # -- Exempt routes --

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    # -- Authenticated routes --

    @app.get("/api/v1/me", tags=["user"])
    async def get_me(request: Request) -> dict[str, str]:
        """Return the authenticated identity."""
        identity: Identity = request.state.user
        return {"user_id": identity.user_id, "email": identity.email}

    return app
