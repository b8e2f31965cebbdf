"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from chatcast.dependencies import ConnectionManagerDep
from chatcast.utils.metrics import get_websocket_health_info

router = APIRouter()


class WebSocketHealthInfo(BaseModel):
    """WebSocket health information."""

    status: str
    active_connections: int


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    websocket: WebSocketHealthInfo


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(manager: ConnectionManagerDep) -> HealthResponse:
    """
    Check health status of the service.

    Reports the number of connections currently registered for broadcast.

    Returns:
        HealthResponse: Health status of the service.
    """
    ws_health = WebSocketHealthInfo(**get_websocket_health_info(manager.count))

    return HealthResponse(status=ws_health.status, websocket=ws_health)
