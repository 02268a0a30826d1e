"""Health check endpoints."""

from fastapi import APIRouter

from ..schemas import HealthResponse
from ...config import config

router = APIRouter()

RUNTIME = "office-orchestrator"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report that the server is up and which gateway and model it uses.",
)
def health_check() -> HealthResponse:
    """Return health status of the API server."""
    return HealthResponse(
        status="ok",
        gateway=config.gateway.url,
        model=config.model.model,
        runtime=RUNTIME,
    )
