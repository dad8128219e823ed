"""
Health Check Endpoints
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from retail_analytics.config import get_settings
from retail_analytics.ingestion.store import RecordStore
from .reports import get_store

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health", response_model=HealthResponse)
def health_check(store: RecordStore = Depends(get_store)) -> HealthResponse:
    """
    Health check including the record store.

    The store is loaded on first use; a failed load is answered with 503
    by the application's error handlers.
    """
    settings = get_settings()
    checks = {
        "record_store": {
            "status": "healthy",
            "facts": len(store),
            "stores": len(store.stores),
            "dates": len(store.dates),
        }
    }
    return HealthResponse(
        status="healthy",
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )
