"""
Sentry Dashboard Relay - Backend API
====================================
FastAPI application that relays dashboard widget requests to Sentry.

ARCHITECTURE:
    The dashboard never talks to Sentry directly. It sends the plugin's
    settings here, we call the Sentry REST API with the plugin's token and
    send back JSON the widget can render.

    [Dashboard Widget] --POST--> [This Backend] --GET (Bearer token)--> [Sentry API]
                                       |
                                       | unhandled errors
                                       v
                                 [Error Reporter]

ENDPOINTS:
    POST /orgs      - Organization picker ([{name: id}, ...])
    POST /projects  - Project picker ([{name: id}, ...])
    POST /data      - Widget data (errors, events, user_misery_apdex, organizations)

HOW TO RUN:
    # Install dependencies
    pip install -e .

    # Copy environment config
    cp backend/env.example.txt backend/.env
    # Edit .env with your settings

    # Run the server
    cd backend
    uvicorn app.main:app --reload --port 8000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.models import JoinMode
from app.routers import sentry_router
from app.services import LoggingErrorReporter, SentryService


# Load environment variables from .env file
load_dotenv()


# =============================================================================
# CONFIGURATION
# =============================================================================

def _parse_join_mode(value: str) -> JoinMode:
    try:
        return JoinMode(value.strip().lower())
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Unknown JOIN_MODE {value!r}, using {JoinMode.ALL_OR_NOTHING.value}"
        )
        return JoinMode.ALL_OR_NOTHING


class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        CORS_ORIGINS: Comma-separated allowed origins (default: *)
        UPSTREAM_TIMEOUT: Seconds to wait for each Sentry call (default: 30)
        JOIN_MODE: all_or_nothing or best_effort (default: all_or_nothing)
        LOG_LEVEL: Logging level (default: INFO)
        RELEASE: Release identifier attached to error reports (default: dev)
    """

    # Allowed CORS origins
    # The dashboard calls us from its own domain, so allow everyone by default
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # Per-call timeout for Sentry requests, in seconds
    UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", "30"))

    # What /data does when one of its Sentry calls fails
    JOIN_MODE = _parse_join_mode(os.getenv("JOIN_MODE", JoinMode.ALL_OR_NOTHING.value))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    RELEASE = os.getenv("RELEASE", "dev")


# =============================================================================
# LOGGING
# =============================================================================

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Log the effective configuration

    SHUTDOWN:
        1. Close the Sentry HTTP client
    """
    # ========== STARTUP ==========
    logger.info("Sentry Dashboard Relay starting")
    logger.info(f"Upstream timeout: {Config.UPSTREAM_TIMEOUT}s")
    logger.info(f"Join mode: {app.state.join_mode.value}")
    logger.info(f"CORS origins: {', '.join(Config.CORS_ORIGINS)}")

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info("Shutting down...")
    await app.state.sentry_service.close()
    logger.info("Shutdown complete")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Bad request body: 400 with the list of failing fields."""
    logger.info(f"Rejected {request.method} {request.url.path}: {len(exc.errors())} validation error(s)")
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def report_exception(request: Request, exc: BaseException) -> None:
    """Hand an exception to the app's error reporter, never failing the request."""
    reporter = getattr(request.app.state, "error_reporter", None)
    if reporter is None:
        return
    try:
        reporter.capture_exception(exc, request)
    except Exception:
        logger.exception("Error reporter failed")


async def reported_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    HTTPExceptions keep their status and detail.

    Server-side ones (5xx) are reported; routing 404/405s are not.
    """
    if exc.status_code >= 500:
        report_exception(request, exc)
    return await http_exception_handler(request, exc)


async def unhandled_exception_middleware(request: Request, call_next):
    """
    Anything nobody else caught: report it, answer 500.

    Runs inside CORSMiddleware so the 500 still carries CORS headers.
    The caller only ever sees a generic message.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        report_exception(request, exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

def create_app(
    sentry_service: Optional[SentryService] = None,
    error_reporter=None,
    join_mode: Optional[JoinMode] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        sentry_service: Service used for Sentry calls (default: a new one
                        with Config.UPSTREAM_TIMEOUT)
        error_reporter: Receives unhandled exceptions (default: a
                        LoggingErrorReporter for Config.RELEASE)
        join_mode: How /data joins its calls (default: Config.JOIN_MODE)
    """
    app = FastAPI(
        title="Sentry Dashboard Relay API",
        description="""
## Overview

Relays dashboard widget requests to the Sentry REST API and reshapes the
answers into something a small widget can render.

## Endpoints

| Endpoint | Body | Returns |
|----------|------|---------|
| **POST /orgs** | Plugin settings (JSON) | `[{"<org name>": "<org id>"}, ...]` |
| **POST /projects** | Plugin settings (JSON) | `[{"<project name>": "<project id>"}, ...]` |
| **POST /data** | Form fields | `errors`, `events`, `user_misery_apdex`, `organizations` |

## Errors

- Invalid body: `400` with the failing fields
- Anything else: `500` with `{"error": "Internal server error"}`
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.sentry_service = sentry_service or SentryService(request_timeout=Config.UPSTREAM_TIMEOUT)
    app.state.error_reporter = error_reporter or LoggingErrorReporter(release=Config.RELEASE)
    app.state.join_mode = join_mode or Config.JOIN_MODE

    # ========== ERROR MIDDLEWARE ==========
    # Added before CORS so CORSMiddleware wraps it
    app.middleware("http")(unhandled_exception_middleware)

    # ========== CORS MIDDLEWARE ==========
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========== ERROR HANDLERS ==========
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, reported_http_exception_handler)

    # ========== ROUTERS ==========
    app.include_router(sentry_router)

    # ========== ROOT ENDPOINTS ==========
    @app.get(
        "/",
        summary="API Information",
        description="Get basic API information and available endpoints."
    )
    async def root():
        """Root endpoint with API overview."""
        return {
            "name": "Sentry Dashboard Relay API",
            "version": "1.0.0",
            "documentation": {
                "swagger": "/docs",
                "redoc": "/redoc",
                "openapi": "/openapi.json"
            },
            "endpoints": {
                "organizations": "POST /orgs",
                "projects": "POST /projects",
                "dashboard_data": "POST /data"
            }
        }

    @app.get(
        "/health",
        summary="Health Check",
        description="Check if the backend is running."
    )
    async def health(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "upstream_timeout": Config.UPSTREAM_TIMEOUT,
            "join_mode": request.app.state.join_mode.value
        }

    return app


app = create_app()
