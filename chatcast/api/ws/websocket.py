import asyncio
from typing import Any

from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket, WebSocketDisconnect

from chatcast.api.ws.connection import Connection
from chatcast.constants import WS_UNSUPPORTED_DATA_CODE
from chatcast.dependencies import get_connection_manager
from chatcast.logging import clear_log_context, logger, set_log_context
from chatcast.middlewares.correlation_id import (
    new_correlation_id,
    set_correlation_id,
)
from chatcast.schemas.message import DepartureNotice
from chatcast.settings import app_settings
from chatcast.utils.metrics import ws_connections_total


class UnsupportedFrameError(ValueError):
    """Received a frame the endpoint does not accept (binary data)."""


class BroadcastWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint owning one connection's lifecycle.

    CONNECTING -> OPEN on accept (the connection is registered), OPEN -> OPEN
    for every received text frame (``on_receive``), OPEN -> CLOSING on peer
    close, read error or unsupported frame, and CLOSING -> CLOSED once the
    connection is unregistered, its transport closed and the departure
    notice broadcast to the remaining members.
    """

    encoding = "text"

    async def dispatch(self) -> None:
        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        await self.on_connect(websocket)

        close_code = status.WS_1000_NORMAL_CLOSURE
        transport_closed = asyncio.create_task(
            self.connection.transport_closed.wait()
        )

        try:
            while True:
                message = await self._next_message(websocket, transport_closed)
                if message is None or not self.connection.is_open:
                    # Closed from the send side (overflow, failed write, shutdown)
                    close_code = (
                        self.connection.close_code or status.WS_1011_INTERNAL_ERROR
                    )
                    break
                if message["type"] == "websocket.receive":
                    data = await self.decode(websocket, message)
                    await self.on_receive(websocket, data)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(
                        message.get("code") or status.WS_1000_NORMAL_CLOSURE
                    )
                    break
        except UnsupportedFrameError as exc:
            logger.info(f"Closing client #{self.client_id}: {exc}")
            close_code = WS_UNSUPPORTED_DATA_CODE
        except WebSocketDisconnect as exc:
            close_code = exc.code
        except (OSError, RuntimeError) as exc:
            # OSError: Network errors
            # RuntimeError: WebSocket in invalid state
            logger.warning(f"Read from client #{self.client_id} failed: {exc}")
            close_code = status.WS_1011_INTERNAL_ERROR
        except Exception as exc:
            # Unexpected errors end this connection only
            close_code = status.WS_1011_INTERNAL_ERROR
            raise exc
        finally:
            transport_closed.cancel()
            await self.on_disconnect(websocket, close_code)

    @staticmethod
    async def _next_message(
        websocket: WebSocket, transport_closed: asyncio.Task[Any]
    ) -> dict[str, Any] | None:
        """
        Wait for the next inbound message.

        Returns None when the transport gets closed from the send side
        before the peer sends anything.
        """
        receiver = asyncio.create_task(websocket.receive())
        try:
            await asyncio.wait(
                {receiver, transport_closed}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            receiver.cancel()
            raise

        if receiver.done():
            return receiver.result()

        receiver.cancel()
        await asyncio.gather(receiver, return_exceptions=True)
        return None

    async def decode(self, websocket: WebSocket, message: dict[str, Any]) -> str:
        """
        Extract the text payload of a received frame.

        Payloads of any size are accepted as-is.

        Raises:
            UnsupportedFrameError: If the frame carries bytes instead of text.
        """
        text = message.get("text")
        if text is None:
            raise UnsupportedFrameError(
                "Expected text websocket messages, but got bytes"
            )
        return text

    async def on_connect(self, websocket: WebSocket) -> None:
        """
        Accept the upgrade and register the connection.

        The ``client_id`` path segment becomes the connection's identifier;
        uniqueness is not enforced.
        """
        await super().on_connect(websocket)

        self.client_id: str = websocket.path_params["client_id"]
        self.manager = get_connection_manager(websocket)

        set_correlation_id(
            websocket.headers.get("x-correlation-id") or new_correlation_id()
        )
        set_log_context(client_id=self.client_id)

        self.connection = Connection(
            self.client_id,
            websocket,
            queue_size=app_settings.WS_SEND_QUEUE_SIZE,
        )
        self.connection.open()
        await self.manager.register(self.connection)

        ws_connections_total.labels(status="accepted").inc()
        logger.debug(
            f"Client #{self.client_id} connected "
            f"(connection: {self.connection.key[:8]})"
        )

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        """
        Finish CLOSING -> CLOSED and notify the remaining members.

        The departing connection is unregistered before the notice is
        broadcast, so it never receives its own departure notice.
        """
        self.connection.begin_closing()
        await self.manager.unregister(self.connection)
        await self.connection.close_transport(close_code)
        self.connection.mark_closed()

        ws_connections_total.labels(status="closed").inc()
        logger.info(
            f"Client #{self.client_id} disconnected with code {close_code}"
        )

        notice = DepartureNotice(client_id=self.client_id)
        await self.manager.broadcast(notice.render())

        clear_log_context()
