"""
SoulSocial Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  Req ID → Logging → No-Cache → GZip → CORS           │
    │                                                      │
    │  Routes:                                             │
    │  /api/users  /api/profile  /api/posts  /api/files    │
    │  WS /ws      GET /health   GET /* (frontend)         │
    │                                                      │
    │  State:                                              │
    │  app.state.broadcaster (realtime connections)        │
    │                                                      │
    │  Exception Handlers:                                 │
    │  SoulSocialError → kind/status │ DB → 500 │ * → 500  │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Create storage directory
    4. Create missing tables (retried while the database comes up)

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine, init_models
from app.exceptions import DatabaseError, ErrorKind, SoulSocialError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.no_cache import NoCacheMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import files, health, posts, profile, realtime, spa, users
from app.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] app.services.post_service: Post ... created

    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],  # Docker captures stdout
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("SoulSocial Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: a development setup should still come up
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Frontend directory: %s", Path(settings.static_root).resolve())

    await init_models()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SoulSocial Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the standard error body:

        {"error": <kind>, "message": str, "details": dict?, "request_id": str}

    Handler hierarchy (most specific class wins):
        DatabaseError     → 500, generic message (details stay in the log)
        SoulSocialError   → exc.status_code / exc.kind
        Exception         → 500 internal_server_error

    Security: handlers never put stack traces, SQL or file system paths in
    the response; 5xx and auth context is logged server-side only.
    """

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.kind.value,
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(SoulSocialError)
    async def handle_app_error(request: Request, exc: SoulSocialError):
        rid = request_id_var.get("")
        content = {
            "error": exc.kind.value,
            "message": exc.message,
            "request_id": rid,
        }
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.kind.value, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s | Context: %s", rid, exc.kind.value, exc.message, exc.context)
            if exc.context and exc.expose_context:
                content["details"] = exc.context
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": ErrorKind.INTERNAL.value,
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Each call builds an independent app with its own Broadcaster, so tests
    can create fresh instances without sharing realtime state.
    """
    app = FastAPI(
        title="SoulSocial API",
        description=(
            "Backend of the SoulSocial mini social network: accounts, profiles, "
            "posts with images, likes and comments, with realtime feed updates."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.broadcaster = Broadcaster()

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in REVERSE order of addition: RequestID runs first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(NoCacheMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(profile.router)
    app.include_router(posts.router)
    app.include_router(files.router)
    app.include_router(realtime.router)
    app.include_router(health.router)
    app.include_router(spa.router)  # catch-all, must stay last

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `app.main:app` to be importable
app = create_app()
