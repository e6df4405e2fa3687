"""
FastAPI application entry point for the Ledger History API.

This module provides the main FastAPI application with:
- Health and readiness endpoints
- Deposit history, login and admin listing routers
- Request/response logging with correlation IDs
- Prometheus metrics
- CORS and security headers
- Document store client management
- Graceful startup and shutdown
"""

import time
import uuid
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from prometheus_client import CONTENT_TYPE_LATEST
from pymongo.errors import PyMongoError

from ledger_api.src.config import get_settings, Settings
from ledger_api.src.dependencies import close_mongo_client, get_mongo_client, init_mongo_client
from ledger_api.src.exceptions import LedgerAPIError
from ledger_api.src.routers import admin, deposits
from shared.logging import bind_context, clear_context, configure_logging, get_logger
from shared.metrics import get_metrics_handler, setup_metrics
from shared.models import HealthStatus

# Get settings
settings: Settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.log_format == "json",
    service_name=settings.app_name,
    environment=settings.environment,
)

# Initialize logger
logger = get_logger(__name__)

metrics = setup_metrics()
render_metrics = get_metrics_handler()

# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Handles:
    - Document store client initialization
    - Graceful shutdown and resource cleanup
    """
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    try:
        await init_mongo_client()

        logger.info(
            "application_started",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment
        )

        yield

    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    finally:
        logger.info("application_shutting_down")
        await close_mongo_client()
        logger.info("application_shutdown_complete")

# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Paginated, authenticated access to deposit and withdrawal records "
        "stored in MongoDB."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

# ============================================================================
# Middleware Configuration
# ============================================================================

# CORS Middleware
if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )


def internal_error_response() -> JSONResponse:
    """Generic 500 envelope; details stay in the logs."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    async def dispatch(self, request: Request, call_next):
        """Process request and log details."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        clear_context()
        bind_context(correlation_id=correlation_id)

        metrics.http.requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "request_failed",
                    method=method,
                    path=path,
                    error=str(e),
                    duration=f"{time.perf_counter() - start_time:.3f}s",
                    exc_info=True
                )
                # Answered here so the outer middleware still decorates the 500
                response = internal_error_response()

            duration = time.perf_counter() - start_time

            metrics.http.requests_total.labels(
                method=method,
                endpoint=path,
                status=response.status_code
            ).inc()
            metrics.http.request_duration.labels(
                method=method,
                endpoint=path
            ).observe(duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s"
            )

            response.headers["X-Correlation-ID"] = correlation_id
            return response

        finally:
            metrics.http.requests_in_progress.labels(method=method, endpoint=path).dec()
            clear_context()

app.add_middleware(RequestLoggingMiddleware)


def apply_security_headers(response: Response) -> Response:
    """Add the configured security headers to a response."""
    if settings.security_headers_enabled:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        if settings.security_require_https:
            response.headers["Strict-Transport-Security"] = (
                f"max-age={settings.security_hsts_max_age}; includeSubDomains"
            )

    return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", path=request.url.path, error=str(e), exc_info=True)
            response = internal_error_response()

        return apply_security_headers(response)

app.add_middleware(SecurityHeadersMiddleware)

# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(LedgerAPIError)
async def ledger_exception_handler(request: Request, exc: LedgerAPIError):
    """Map taxonomy errors to their status and public message."""
    logger.warning(
        "ledger_api_error",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message}
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=errors
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "details": errors}
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return apply_security_headers(internal_error_response())

# ============================================================================
# Health and Readiness Endpoints
# ============================================================================

@app.get("/health", tags=["Health"], response_class=JSONResponse)
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns basic health status without checking dependencies.
    Use for container health checks.
    """
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }

@app.get("/ready", tags=["Health"], response_class=JSONResponse)
async def readiness_check() -> JSONResponse:
    """
    Readiness check endpoint.

    Pings the document store; reports 503 when it is unreachable.
    """
    checks = {
        "document_store": HealthStatus.UNHEALTHY.value,
    }

    try:
        await get_mongo_client().admin.command("ping")
        checks["document_store"] = HealthStatus.HEALTHY.value
    except (PyMongoError, RuntimeError) as e:
        logger.error("document_store_health_check_failed", error=str(e))

    all_healthy = all(value == HealthStatus.HEALTHY.value for value in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "service": settings.app_name,
            "version": settings.app_version,
            "checks": checks
        }
    )

# ============================================================================
# Metrics Endpoint
# ============================================================================

if settings.metrics_enabled:
    @app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=render_metrics(),
            media_type=CONTENT_TYPE_LATEST
        )

# ============================================================================
# API Router Registration
# ============================================================================

app.include_router(deposits.router, prefix=settings.api_prefix)
app.include_router(admin.auth_router, prefix=settings.api_prefix)
app.include_router(admin.admin_router, prefix=settings.api_prefix)

# ============================================================================
# Application Entry Point
# ============================================================================

if __name__ == "__main__":
    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        "ledger_api.src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
