"""
FastAPI Application Factory

Creates and configures the reporting API application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from retail_analytics.config import get_settings
from retail_analytics.exceptions import ReportFilterError, UnknownReportError, ValidationError
from .middleware import RequestLoggingMiddleware
from .routes import health_router, reports_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    from retail_analytics.config.logging import configure_logging
    configure_logging()

    logger.info("Starting Retail Reporting API")
    yield
    logger.info("Shutting down...")


async def unknown_report_handler(request: Request, exc: UnknownReportError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "available": exc.available},
    )


async def report_filter_handler(request: Request, exc: ReportFilterError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Record store unavailable", error=str(exc))
    return JSONResponse(
        status_code=503,
        content={"detail": "Record store unavailable", "error": str(exc)},
    )


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Retail Reporting API",
        description="Sales rollups, trends and benchmarks over the retail star schema",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(UnknownReportError, unknown_report_handler)
    app.add_exception_handler(ReportFilterError, report_filter_handler)
    app.add_exception_handler(ValidationError, store_unavailable_handler)
    app.add_exception_handler(FileNotFoundError, store_unavailable_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Retail Reporting API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
