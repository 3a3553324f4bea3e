"""
Health Check API
"""
from fastapi import APIRouter

from lecture_qa.models.schemas import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Does not touch upstream services."""
    return HealthResponse(status="ok")
