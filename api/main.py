"""
api/main.py -- FastAPI application entry point for the portfolio backend.

Exposes the admin auth core over HTTP. Content routes (projects, skills,
education, personal details, contact) are separate routers that depend on
auth.dependencies.get_current_admin for their write endpoints.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for the admin frontend origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the AdminStore, TokenSigner and AuthService from Settings on
startup and disposes the store's engine on shutdown. The auth core never
reads configuration itself; everything it needs is passed in here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import (
    AccountLocked,
    AuthError,
    DuplicateEmail,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    SigningKeyMissing,
    TokenExpired,
)
from auth.service import AuthService
from auth.store import DEFAULT_DB_URL, AdminStore
from auth.tokens import TokenSigner
from core.config import get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("portfolio.api")

# Domain error -> HTTP status. AuthError subclasses not listed here are 500.
_AUTH_ERROR_STATUS: dict[type[AuthError], int] = {
    InvalidInput: 400,
    DuplicateEmail: 400,
    InvalidCredentials: 401,
    InvalidToken: 401,
    TokenExpired: 401,
    AccountLocked: 423,
}


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


def build_auth_service(store: AdminStore) -> AuthService:
    """Wire an AuthService for the given store from the process Settings."""
    settings = get_settings()
    signer = TokenSigner(secret_key=settings.jwt_secret, expire_seconds=settings.jwt_expire_seconds)
    return AuthService(store, signer)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. get_settings() raises here, before the first request, if
    JWT_SECRET is missing outside DEBUG mode.
    """
    logger.info("Portfolio API starting up")
    settings = get_settings()
    app.state.admin_store = AdminStore(settings.database_url or DEFAULT_DB_URL)
    app.state.auth_service = build_auth_service(app.state.admin_store)
    if not app.state.admin_store.has_admins():
        logger.warning("No admin account exists -- run `python main.py init-admin`")
    logger.info("Auth initialized (token window %ds)", app.state.auth_service.signer.expire_seconds)

    yield

    app.state.admin_store.close()
    logger.info("Portfolio API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Portfolio API",
    description="Portfolio content backend with a single password-protected admin account.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them: CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Translate auth domain errors into their HTTP status and error envelope.

    SigningKeyMissing and any unmapped AuthError are server faults: logged
    in full, surfaced as an opaque 500.
    """
    status = _AUTH_ERROR_STATUS.get(type(exc))
    if status is None or isinstance(exc, SigningKeyMissing):
        logger.error("Auth failure on %s %s: %s", request.method, request.url.path, type(exc).__name__)
        status = 500
        error = ErrorDetail(code="internal_error", message="An unexpected error occurred.")
    else:
        error = ErrorDetail(code=exc.code, message=exc.message)
    return JSONResponse(status_code=status, content=ErrorResponse(error=error).model_dump())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the server log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable regardless of router
# registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and a database probe."""
    try:
        request.app.state.admin_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check: database probe failed")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
