"""
Prometheus metrics for WebSocket connection monitoring.

This module defines metrics for tracking WebSocket connections, message rates,
broadcast failures and broadcast sweep durations.
"""

from chatcast.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
    _get_or_create_histogram,
)

# WebSocket Connection Metrics
ws_connections_active = _get_or_create_gauge(
    "ws_connections_active", "Number of registered WebSocket connections"
)

ws_connections_total = _get_or_create_counter(
    "ws_connections_total",
    "Total WebSocket connections",
    ["status"],  # accepted, closed
)

ws_messages_received_total = _get_or_create_counter(
    "ws_messages_received_total", "Total WebSocket messages received"
)

ws_messages_sent_total = _get_or_create_counter(
    "ws_messages_sent_total", "Total WebSocket frames written to clients"
)

ws_broadcast_failures_total = _get_or_create_counter(
    "ws_broadcast_failures_total",
    "Connections dropped during a broadcast sweep",
    ["reason"],  # overflow, closed
)

ws_broadcast_duration_seconds = _get_or_create_histogram(
    "ws_broadcast_duration_seconds",
    "Time spent enqueueing one broadcast to all members",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


def get_websocket_health_info(active_connections: int) -> dict[str, int | str]:
    """
    Get WebSocket health information.

    Args:
        active_connections: Current registry size.

    Returns:
        dict[str, int | str]: Dictionary with WebSocket health status:
            - status: "healthy"
            - active_connections: Current active connections count
    """
    return {
        "status": "healthy",
        "active_connections": active_connections,
    }


__all__ = [
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "ws_broadcast_failures_total",
    "ws_broadcast_duration_seconds",
    "get_websocket_health_info",
]
