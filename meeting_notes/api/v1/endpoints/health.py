"""
Health check endpoint.
"""

from typing import Any, Dict

from fastapi import APIRouter

from meeting_notes.api.v1.schemas.meeting import HealthCheckResponse
from meeting_notes.core.dependencies import ContainerDep, ServiceContainer
from meeting_notes.domain.models import utcnow

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse, tags=["Health"])
async def health_check(container: ServiceContainer = ContainerDep) -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status with timestamp and version
    """
    return {
        "status": "ok",
        "timestamp": utcnow(),
        "version": container.settings.version,
    }
