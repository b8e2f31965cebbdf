"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the connection registry, the
application and in-process WebSocket clients.
"""

import os
import tempfile

import pytest

# Keep error log files out of the working tree during tests
os.environ.setdefault(
    "LOG_FILE_PATH",
    os.path.join(tempfile.gettempdir(), "chatcast-tests", "errors.log"),
)


@pytest.fixture
def connection_manager():
    """
    Provides a fresh ConnectionManager instance for each test.

    Returns:
        ConnectionManager: Empty registry
    """
    from chatcast.managers.websocket_connection_manager import (
        ConnectionManager,
    )

    return ConnectionManager()


@pytest.fixture
def app():
    """
    Provides a freshly built application with its own registry.

    Returns:
        FastAPI: Application instance
    """
    from chatcast import application

    return application()


@pytest.fixture
def ws_client(app):
    """
    Factory for in-process WebSocket clients bound to the ``app`` fixture.

    Returns:
        Callable[[str], ASGIWebSocketClient]: Creates a client for a client id
    """
    from tests.mocks.asgi_client import ASGIWebSocketClient

    def factory(client_id: str) -> ASGIWebSocketClient:
        return ASGIWebSocketClient(app, f"/ws/{client_id}")

    return factory
