"""
FastAPI Application Factory

Creates and configures the retention analytics API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import structlog

from retention_analytics.config import get_settings
from retention_analytics.serving.api.middleware import RequestLoggingMiddleware
from retention_analytics.serving.api.routes import (
    analytics_router,
    datasets_router,
    health_router,
)
from retention_analytics.serving.api.store import DatasetStore

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    from retention_analytics.config.logging import configure_logging
    configure_logging()

    logger.info("Starting Retention Analytics API", environment=settings.app_env)
    yield
    logger.info("Shutting down...")
    app.state.datasets.clear()


def create_api_app(store: Optional[DatasetStore] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        store: Dataset store to serve (a fresh one by default)

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Salon Retention Analytics API",
        description="Retention, churn and provider KPIs for service transactions",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.datasets = store or DatasetStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(datasets_router, prefix="/api/v1/datasets", tags=["Datasets"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    return app
