"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics endpoint",
    tags=["metrics"],
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics in the text exposition format.

    Example:
        ```
        # HELP ws_connections_active Number of registered WebSocket connections
        # TYPE ws_connections_active gauge
        ws_connections_active 2.0
        ```
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
