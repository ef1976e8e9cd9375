"""
WaifuPicks Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       that owns one Database handle.
Who:   Called by uvicorn (uvicorn waifupicks.main:app) or `run()`.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐        │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│ CORS │        │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘        │
    │                                                     │
    │  Routes:                                            │
    │  GET /  GET /health  GET /items                     │
    │  POST /waifu/update  POST /waifu/compare            │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ Auth→401/403 │ NotFound→404 │ DB→500 │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration
    3. Ping the database (failure aborts startup)
    4. Optionally create missing tables

    Shutdown:
    1. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from waifupicks import __version__
from waifupicks.config import settings
from waifupicks.database import Database
from waifupicks.exceptions import (
    AuthenticationError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    WaifuPicksError,
)
from waifupicks.middleware.logging import RequestLoggingMiddleware
from waifupicks.middleware.request_id import RequestIDMiddleware, request_id_var
from waifupicks.routes import health, items, root, waifu

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, before any other startup work."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Per-request noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle.

    A configuration error or an unreachable database raises out of startup,
    so the server exits before it accepts any traffic.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("WaifuPicks Backend starting up...")

    settings.validate_required_for_production()

    database: Database = app.state.database
    try:
        await database.ping()
    except Exception as e:
        logger.error("Failed to connect to the database: %s", str(e))
        await database.dispose()
        raise
    logger.info("Connected to database (%s)", database.dialect_name)

    if settings.db_create_schema:
        await database.create_schema()
        logger.info("Ensured table '%s' exists", settings.collection_name)

    if settings.auth_enabled:
        logger.info("Token checks enabled for POST /waifu/update")
    else:
        logger.info("Token checks disabled (TOKEN_SECRET not set)")

    logger.info("Server ready at http://%s:%d", settings.host, settings.port)
    logger.info("=" * 60)

    yield

    logger.info("WaifuPicks Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details: Optional[dict] = None, headers: Optional[dict] = None) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        AuthenticationError                      → 401
        ForbiddenError                           → 403
        NotFoundError                            → 404
        DatabaseError                            → 500
        WaifuPicksError (base)                   → 500
        Exception (fallback)                     → 500

    Responses never carry driver messages or stack traces.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # FastAPI reports schema failures as 422; the API contract is 400
        errors = exc.errors()
        details = {}
        if errors:
            details["field"] = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        logger.warning("[%s] Validation error: %s %s", request_id_var.get(""), "Invalid request body", details)
        return _error_response(400, "validation_error", "Invalid request body", details=details)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, "not_authenticated", exc.message, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(WaifuPicksError)
    async def handle_application_error(request: Request, exc: WaifuPicksError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
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
            "An unexpected error occurred. Please try again later.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Connection handle to own. Defaults to one built from
                  settings; tests pass an in-memory database instead.
    """
    app = FastAPI(
        title="WaifuPicks API",
        description="Win/loss bookkeeping for pairwise waifu comparisons.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.database = database or Database.from_settings(settings)

    # Last added runs first: RequestID → Logging → GZip → CORS
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(items.router)
    app.include_router(waifu.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve on HOST:PORT (default 0.0.0.0:8080)."""
    uvicorn.run(
        "waifupicks.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
