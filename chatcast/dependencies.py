"""
Dependency injection configuration for FastAPI.

The connection registry lives on ``app.state`` so that every application
instance (and every test app) owns its own registry and lock.

Example:
    ```python
    from fastapi import APIRouter
    from chatcast.dependencies import ConnectionManagerDep

    router = APIRouter()

    @router.get("/clients")
    async def clients(manager: ConnectionManagerDep) -> list[str]:
        return manager.client_ids()
    ```
"""

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from chatcast.managers.websocket_connection_manager import ConnectionManager


def get_connection_manager(conn: HTTPConnection) -> ConnectionManager:
    """
    Get the connection registry of the running application.

    Works for both HTTP requests and WebSocket connections.

    Returns:
        ConnectionManager attached to ``app.state``.
    """
    return conn.app.state.connection_manager


ConnectionManagerDep = Annotated[
    ConnectionManager, Depends(get_connection_manager)
]
