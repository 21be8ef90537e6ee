"""
SpotMap Backend: FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
Why:   One place to see every middleware, router and error mapping the
       service runs with.
How:   create_app() registers middleware, exception handlers and routers and
       returns the app; the module-level `app` is what uvicorn serves
       (uvicorn spotmap.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: RateLimit → RequestID → Logging → GZip/CORS │
    │                                                          │
    │  Routes:                                                 │
    │    /api/views/*     pages (home, map, create, detail)    │
    │    /api/spots/*     spot repository                      │
    │    /api/auth/*      sessions                             │
    │    /api/location/*  location + directions                │
    │    /health                                               │
    │                                                          │
    │  Exception handlers: SpotMapError family → JSON errors   │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, log ready
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from spotmap import __version__
from spotmap.config import settings
from spotmap.database import dispose_engine
from spotmap.exceptions import (
    AuthenticationError,
    DatabaseError,
    LocationPermissionError,
    LocationUnavailableError,
    MediaProcessingError,
    NotFoundError,
    RateLimitExceededError,
    RequestCancelledError,
    RequestTimeoutError,
    SpotMapError,
    ValidationError,
)
from spotmap.middleware.logging import RequestLoggingMiddleware
from spotmap.middleware.rate_limit import RateLimitMiddleware
from spotmap.middleware.request_id import RequestIDMiddleware, request_id_var
from spotmap.routes import auth, health, location, spots, views

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Level:  LOG_LEVEL (default INFO)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("SpotMap Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so health checks and the error itself stay visible.
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Location lookup %s; featured spot strategy: %s",
        "enabled" if settings.location_lookup_enabled else "disabled",
        settings.featured_strategy,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SpotMap Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the SpotMapError family to HTTP responses.

    Handler table:
        ValidationError          → 400
        AuthenticationError      → 401
        LocationPermissionError  → 403
        NotFoundError            → 404
        RateLimitExceededError   → 429 (Retry-After)
        MediaProcessingError     → 500
        DatabaseError            → 503 (retryable, generic message)
        LocationUnavailableError → 503
        RequestTimeoutError      → 504 (retryable)
        RequestCancelledError    → 503
        SpotMapError / Exception → 500

    Internal details (driver errors, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(
            401,
            "authentication_error",
            exc.message,
            {"reason": exc.reason},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(LocationPermissionError)
    async def handle_location_permission(request: Request, exc: LocationPermissionError):
        return _error_response(403, "location_permission_denied", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(MediaProcessingError)
    async def handle_media_error(request: Request, exc: MediaProcessingError):
        logger.error(
            "[%s] Media processing error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "media_processing_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(503, "service_unavailable", exc.message, {"retryable": True})

    @app.exception_handler(LocationUnavailableError)
    async def handle_location_unavailable(request: Request, exc: LocationUnavailableError):
        return _error_response(503, "location_unavailable", exc.message, {"retryable": True})

    @app.exception_handler(RequestTimeoutError)
    async def handle_timeout(request: Request, exc: RequestTimeoutError):
        logger.warning("[%s] Request timed out after %.1fs", request_id_var.get(""), exc.timeout)
        return _error_response(
            504,
            "request_timeout",
            exc.message,
            {"retryable": True, "timeout_seconds": exc.timeout},
        )

    @app.exception_handler(RequestCancelledError)
    async def handle_cancelled(request: Request, exc: RequestCancelledError):
        return _error_response(503, "request_cancelled", exc.message, {"retryable": True})

    @app.exception_handler(SpotMapError)
    async def handle_spotmap_error(request: Request, exc: SpotMapError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="SpotMap API",
        description=(
            "Share and discover places on a map: spots with photos, categories, "
            "visits and comments."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Starlette runs middleware in reverse order of addition.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(views.router)
    app.include_router(spots.router)
    app.include_router(auth.router)
    app.include_router(location.router)
    app.include_router(health.router)

    return app


app = create_app()
