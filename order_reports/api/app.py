"""
FastAPI Application Factory

Creates and configures the report API. The connection pool is built here,
opened in the lifespan and handed to the report gateway on ``app.state``.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import structlog

from order_reports.config import Settings, get_settings
from order_reports.config.logging import configure_logging
from order_reports.database.connection import ReportDatabase
from order_reports.reports.exceptions import (
    FilterValidationError,
    ReportQueryError,
    UnknownReportError,
)
from order_reports.reports.gateway import ReportGateway
from order_reports.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from order_reports.api.routes import health_router, reports_router

logger = structlog.get_logger(__name__)


async def filter_validation_handler(request: Request, exc: FilterValidationError) -> JSONResponse:
    logger.info("Rejected report parameters", path=request.url.path, errors=exc.errors)
    return JSONResponse(
        status_code=422,
        content={
            "error": "invalid_parameters",
            "message": "One or more report parameters are invalid.",
            "details": [
                {"param": e["param"], "message": e["message"], "value": str(e["value"])}
                for e in exc.errors
            ],
        },
    )


async def report_query_handler(request: Request, exc: ReportQueryError) -> JSONResponse:
    logger.warning("Report unavailable", path=request.url.path, query=exc.query)
    return JSONResponse(
        status_code=503,
        content={
            "error": "report_unavailable",
            "message": "The report could not be loaded. Check that the database is reachable.",
            "report": exc.query,
        },
    )


async def unknown_report_handler(request: Request, exc: UnknownReportError) -> JSONResponse:
    logger.error("Query outside the report catalog", path=request.url.path, name=str(exc.name))
    return JSONResponse(status_code=404, content={"error": "unknown_report"})


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[ReportDatabase] = None,
) -> FastAPI:
    """
    Create and configure the report API.

    Args:
        settings: Application settings, cached settings if omitted
        database: Pre-built connection pool, built from settings if omitted

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()
    database = database or ReportDatabase(settings.database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings=settings)
        logger.info("Starting Order Reports API", app=settings.app_name, environment=settings.app_env)

        # A failed connection is reported by /health; report endpoints answer 503.
        try:
            await database.init()
        except Exception as e:
            logger.warning("Database init failed", error=str(e))

        yield

        logger.info("Shutting down...")
        await database.close()

    app = FastAPI(
        title="Order Reports API",
        description="Read-only analytical reports over order data",
        version=settings.version,
        debug=settings.debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.gateway = ReportGateway(database)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(FilterValidationError, filter_validation_handler)
    app.add_exception_handler(ReportQueryError, report_query_handler)
    app.add_exception_handler(UnknownReportError, unknown_report_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Order Reports API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs" if settings.is_development else None,
        }

    if settings.monitoring.enable_metrics:
        @app.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            """Prometheus scrape endpoint."""
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
