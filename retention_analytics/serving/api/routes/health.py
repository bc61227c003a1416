"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from retention_analytics.config import get_settings

settings = get_settings()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Reports whether a transaction report has been loaded.
    """
    store = request.app.state.datasets
    checks = {
        "transactions": {"status": "loaded" if store.has_data else "empty"},
        "member_import": {"members": len(store.member_import)},
    }
    return HealthResponse(
        status="healthy",
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.utcnow(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """
    Readiness probe endpoint.

    Returns 503 until a transaction report has been loaded.
    """
    if not request.app.state.datasets.has_data:
        response.status_code = 503
        return {"status": "not_ready", "reason": "no_transactions_loaded"}
    return {"status": "ready"}
