"""
Prometheus metrics definitions and utilities.

All metrics are re-exported here so callers can import them from a single
place:

    from chatcast.utils.metrics import ws_connections_active
"""

from chatcast.utils.metrics._helpers import _get_or_create_gauge
from chatcast.utils.metrics.websocket import (
    get_websocket_health_info,
    ws_broadcast_duration_seconds,
    ws_broadcast_failures_total,
    ws_connections_active,
    ws_connections_total,
    ws_messages_received_total,
    ws_messages_sent_total,
)

app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)

__all__ = [
    # WebSocket metrics
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "ws_broadcast_failures_total",
    "ws_broadcast_duration_seconds",
    "get_websocket_health_info",
    # Application metrics
    "app_info",
]
