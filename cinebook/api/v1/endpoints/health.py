"""
Health check endpoints
"""

from typing import Any
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from cinebook.core.database import db_manager
from cinebook.core.metrics import HealthChecker

router = APIRouter()


@router.get("/ready")
async def readiness() -> Any:
    """
    Kubernetes readiness check against the database
    """
    health = await HealthChecker(db_manager).get_system_health()
    status_code = 200 if health["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health)
