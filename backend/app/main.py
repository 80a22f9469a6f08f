"""
Shelfmark Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers, routes and
       telemetry; lifespan() builds the shared MongoStore and BookService.
Who:   uvicorn (`uvicorn app.main:app`) and the test suite.

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
    │  ┌────────────────────────┐ ┌──────────────┐        │
    │  │ /api/books/...         │ │ GET /health  │        │
    │  └────────────────────────┘ └──────────────┘        │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌────────────────────────────────────────────────┐ │
    │  │ Validation→400 │ NotFound→404 │ Store→503/500  │ │
    │  └────────────────────────────────────────────────┘ │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report configuration problems (does not stop the server)
    3. Build MongoStore (no connection yet) and BookService on app.state
    Shutdown:
    1. Close the MongoDB client
    2. Flush and shut down telemetry providers
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import MongoStore
from app.exceptions import (
    NotFoundError,
    StoreConnectivityError,
    StoreProtocolError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    internal_error_response,
    request_id_var,
)
from app.routes import books, health
from app.services.book_service import BookService
from app.telemetry import configure_telemetry, instrument_app, shutdown_telemetry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging() -> None:
    """
    Configure stdlib logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] app.services.book_service [1f2e3d4c]: ...

    The stdout handler carries RequestIDLogFilter so every line names the
    request it belongs to ("-" outside requests).

    Why not basicConfig(force=True): create_app() runs configure_telemetry()
    first, and its OTel LoggingHandler on the root logger must survive this
    call or no log record reaches the collector.
    """
    root_logger = logging.getLogger()

    otel_handlers = [
        h for h in root_logger.handlers if "LoggingHandler" in type(h).__name__
    ]
    root_logger.handlers.clear()
    for h in otel_handlers:
        root_logger.addHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(RequestIDLogFilter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build the long-lived store and service, and release them on shutdown.

    The MongoStore does not connect here; the first book operation creates
    the client, so a bad MONGODB_URL surfaces as a 503 on that request.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Shelfmark Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Book operations will fail until the configuration is fixed.")

    store = MongoStore(
        url=settings.mongodb_url,
        database_name=settings.mongodb_database,
        timeout_ms=settings.mongodb_timeout_ms,
    )
    app.state.store = store
    app.state.book_service = BookService(
        store.collection_provider(settings.mongodb_collection)
    )

    logger.info(
        "Document store: database=%s collection=%s",
        settings.mongodb_database,
        settings.mongodb_collection,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shelfmark Backend shutting down...")
    await store.close()
    shutdown_telemetry()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

        ValidationError         → 400 Bad Request
        NotFoundError           → 404 Not Found
        StoreProtocolError      → 500 Internal Server Error
        StoreConnectivityError  → 503 Service Unavailable
        Exception (fallback)    → 500 Internal Server Error

    5xx bodies never include driver details; those are logged server-side.
    Unhandled exceptions inside a request are answered by RequestIDMiddleware
    with the same body; the Exception handler covers anything outside it.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(StoreConnectivityError)
    async def handle_store_connectivity(request: Request, exc: StoreConnectivityError):
        rid = request_id_var.get("")
        logger.error("Store connectivity error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=503,
            content={
                "error": "store_unavailable",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(StoreProtocolError)
    async def handle_store_protocol(request: Request, exc: StoreProtocolError):
        rid = request_id_var.get("")
        logger.error("Store error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all; the stack trace is logged, never returned."""
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return internal_error_response(request_id_var.get(""))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Configured FastAPI instance. State (store, service) is attached
    by the lifespan, or directly by tests.
    """
    app = FastAPI(
        title="Shelfmark API",
        description=(
            "Book catalogue backed by MongoDB: full and partial upserts, "
            "soft delete with audit fields, and restore."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(books.router)
    app.include_router(health.router)

    # ── Telemetry ─────────────────────────────────────────────────────────
    configure_telemetry(settings.otlp_endpoint, settings.otel_service_name)
    instrument_app(app)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
