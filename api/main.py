"""
api/main.py -- FastAPI application entry point for Keeper.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Starlette wraps each added middleware around the ones added before it, so a
request meets them in reverse registration order:
  access_log            -- one log line per request, never headers or bodies
  SlowAPIMiddleware     -- per-route limits declared with @limiter.limit()
  CORSMiddleware        -- browser origins from CORS_ORIGINS
  TrustedHostMiddleware -- 400 for a Host header outside ALLOWED_HOSTS

Lifespan builds every service in dependency order on startup and disposes of
the DB engines on shutdown.

Every failure leaves the API in one ErrorResponse envelope. KeeperError
subclasses carry their own status and code; nothing else about an internal
failure (stack trace, key material, SQL) is ever written to a response.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, FieldErrorDetail, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.items import router as items_router
from api.wiring import Services, attach, build_services
from core.config import get_settings
from core.database import check_db_connected
from core.errors import KeeperError, UnauthorizedError, ValidationError

VERSION = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("keeper.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build services on startup and dispose of them on shutdown.

    A misconfigured signing key or unreachable database raises here, so the
    server never starts accepting requests in a half-wired state.
    """
    services: Services = build_services(get_settings())
    attach(app, services)
    logger.info("Keeper API ready (accounts_present=%s)", services.accounts.has_accounts())

    yield

    services.close()
    logger.info("Keeper API stopped")


app = FastAPI(
    title="Keeper API",
    description="JWT-secured CRUD API for owned items.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware (innermost first; see module docstring)
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)
app.state.limiter = limiter  # SlowAPIMiddleware reads it from app.state


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    # Load balancers poll /health constantly; keep it out of INFO.
    level = logging.DEBUG if request.url.path.endswith("/health") else logging.INFO
    logger.log(
        level,
        "%s %s -> %d (%.1fms) from %s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request.client.host if request.client else "-",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(items_router, prefix="/api/v1", tags=["Items"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, detail: ErrorDetail, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(),
        headers=headers,
    )


@app.exception_handler(KeeperError)
async def keeper_error_handler(request: Request, exc: KeeperError) -> JSONResponse:
    """Render a typed domain failure.

    Every 401 carries WWW-Authenticate: Bearer and the same generic message,
    whatever the internal cause (invalid vs expired token).
    """
    headers = None
    message = exc.message
    if exc.status_code == 401 and exc.code == UnauthorizedError.code:
        headers = {"WWW-Authenticate": "Bearer"}
        message = UnauthorizedError.message
    if exc.status_code >= 500:
        logger.error("Internal failure on %s %s: %s", request.method, request.url.path, type(exc).__name__)
        message = KeeperError.message
    fields = [FieldErrorDetail.from_field_error(e) for e in exc.errors] if isinstance(exc, ValidationError) else []
    return _error_response(exc.status_code, ErrorDetail(code=exc.code, message=message, fields=fields), headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body or params do not fit the schema.

    Same status and code as policy violations from core/validation.py, so a
    client sees one "validation_error" shape for any malformed input.
    """
    fields = [
        FieldErrorDetail(field=".".join(str(p) for p in err.get("loc", ()) if p != "body"), message=err.get("msg", ""))
        for err in exc.errors()
    ]
    return _error_response(
        400,
        ErrorDetail(code="validation_error", message="Request validation failed.", fields=fields),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 routes, 405, ...)."""
    return _error_response(
        exc.status_code,
        ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
        getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything that is not a KeeperError.

    The traceback goes to the log; the client gets a generic 500.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health
#
# Public and unlimited: no token and no rate limit, so probes never need
# credentials. Reports "degraded" rather than failing when the DB is down.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    services: Services = request.app.state.services
    db_ok = check_db_connected(services.accounts.engine)
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
