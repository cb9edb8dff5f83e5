from fastapi import APIRouter

from live_adapter.models.config import SERVICE_NAME
from live_adapter.models.responses import HealthResponse


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Exempt from the IP allow-list."""
    return HealthResponse(status="ok", service=SERVICE_NAME)
