"""
Memeflix Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware, routers, exception handlers
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn memeflix.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  RequestID → AccessLog → RateLimit → GZip   │
    │               → CORS                                     │
    │                                                          │
    │  Routers:     /api/auth   /api/memes   /api/votes        │
    │               /api/tags   /api/favorites  /api/history   │
    │               /media      /health                        │
    │                                                          │
    │  Errors:      400 validation  401 auth  403 token        │
    │               404 missing     409 conflict  500 server   │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration warnings → schema → media dir check
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from memeflix import __version__
from memeflix.config import settings
from memeflix.database import create_schema, dispose_engine
from memeflix.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    MediaFileError,
    MemeflixError,
    NotFoundError,
    ValidationError,
)
from memeflix.middleware.logging import RequestLoggingMiddleware
from memeflix.middleware.rate_limit import RateLimitMiddleware
from memeflix.middleware.request_id import RequestIDMiddleware, request_id_var
from memeflix.routes import auth, favorites, health, history, media, memes, tags

logger = logging.getLogger(__name__)

PAGINATION_FIELDS = {"page", "limit"}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2026-01-15T12:00:00 [INFO] memeflix.access: GET /api/memes 200 4.2ms [a1b2c3d4] ...
    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access middleware replaces uvicorn's access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
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
    logger.info("Memeflix Backend %s starting up...", __version__)

    settings.validate_required_for_production()

    await create_schema()

    media_root = Path(settings.media_root).resolve()
    if media_root.is_dir():
        logger.info("Media directory: %s", media_root)
    else:
        # Not fatal: the API works, every /media request answers 404
        logger.warning("Media directory %s does not exist", media_root)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Memeflix Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: dict | None = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exception types to HTTP status codes and the shared error body.

    Handler table:
        ValidationError, RequestValidationError  → 400
        AuthenticationError                      → 401
        ForbiddenError                           → 403
        NotFoundError                            → 404
        ConflictError                            → 409
        MediaFileError, DatabaseError            → 500 (generic message)
        MemeflixError (other)                    → 500
        Exception (fallback)                     → 500

    Security: handlers never put stack traces, SQL or filesystem paths in
    the response; those go to the server log only.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """
        FastAPI's schema validation, answered with 400 instead of 422 so
        malformed query strings and bodies share one status with our own
        ValidationError.
        """
        problems = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or None,
                "message": error.get("msg", "Invalid value"),
            }
            for error in exc.errors()
        ]
        fields = {problem["field"] for problem in problems}
        if fields and fields <= PAGINATION_FIELDS:
            message = "Invalid page or limit parameter."
        else:
            message = "Request validation failed"
        logger.warning("[%s] %s: %s", request_id_var.get(""), message, problems)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, {"errors": problems}),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthenticated", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return JSONResponse(status_code=403, content=_error_body("forbidden", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(MediaFileError)
    async def handle_media_error(request: Request, exc: MediaFileError):
        logger.error("[%s] Media error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(MemeflixError)
    async def handle_app_error(request: Request, exc: MemeflixError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: full traceback to the log, generic message to the client."""
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Memeflix API",
        description=(
            "Browse, search and vote on a catalogue of memes. Per-user favorites "
            "and viewing history require a bearer token from /api/auth/login."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → RateLimit → GZip → CORS
    # RequestID must wrap RateLimit: 429 bodies carry the request ID.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(memes.router)
    app.include_router(tags.router)
    app.include_router(favorites.router)
    app.include_router(history.router)
    app.include_router(media.router)
    app.include_router(health.router)

    return app


app = create_app()
