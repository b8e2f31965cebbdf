import asyncio
import uuid
from enum import Enum

from starlette import status
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from chatcast.exceptions import ConnectionClosedError, SendQueueFullError
from chatcast.logging import logger
from chatcast.schemas.broadcast import SendResult, SendStatus
from chatcast.settings import app_settings
from chatcast.utils.metrics import ws_messages_sent_total


class ConnectionState(str, Enum):
    """
    Lifecycle of a single client connection.

    Transitions only move forward:
    CONNECTING -> OPEN -> CLOSING -> CLOSED (terminal).
    """

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """
    One live client session.

    Outbound frames go through a bounded queue drained by a dedicated writer
    task, so handing a frame to ``send`` never waits on the peer. A full queue
    or a failed write is reported as an explicit ``SendResult`` instead of an
    exception.
    """

    def __init__(
        self,
        client_id: str,
        websocket: WebSocket,
        queue_size: int | None = None,
    ) -> None:
        self.key = str(uuid.uuid4())
        self.client_id = client_id
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING

        self._outbound: asyncio.Queue[str] = asyncio.Queue(
            maxsize=queue_size or app_settings.WS_SEND_QUEUE_SIZE
        )
        self.close_code: int | None = None
        self.transport_closed = asyncio.Event()

        self._writer: asyncio.Task[None] | None = None
        self._closer: asyncio.Task[None] | None = None
        self._closing_started = False

    def __repr__(self) -> str:
        return (
            f"Connection(client_id={self.client_id!r}, key={self.key[:8]}, "
            f"state={self.state.value})"
        )

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def open(self) -> None:
        """
        Move CONNECTING -> OPEN and start the writer task.

        Must be called from inside a running event loop, after the upgrade
        handshake has completed.
        """
        if self.state is not ConnectionState.CONNECTING:
            return

        self.state = ConnectionState.OPEN
        self._writer = asyncio.create_task(
            self._write_loop(), name=f"ws-writer-{self.key[:8]}"
        )

    def begin_closing(self) -> None:
        if self.state is ConnectionState.OPEN:
            self.state = ConnectionState.CLOSING

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED

    def send(self, text: str) -> SendResult:
        """
        Hand a text frame to the outbound buffer without blocking.

        Args:
            text: Frame payload.

        Returns:
            SendResult: ``QUEUED`` on success, ``OVERFLOW`` when the buffer is
            full (the connection starts closing), ``CLOSED`` when the
            connection is no longer open.
        """
        if not self.is_open:
            return self._result(SendStatus.CLOSED)

        try:
            self._outbound.put_nowait(text)
        except asyncio.QueueFull:
            self.begin_closing()
            return self._result(SendStatus.OVERFLOW)

        return self._result(SendStatus.QUEUED)

    def send_or_raise(self, text: str) -> None:
        """
        Same as ``send`` but raises on failure.

        Raises:
            SendQueueFullError: Outbound buffer is full.
            ConnectionClosedError: Connection is closing or closed.
        """
        result = self.send(text)

        if result.status is SendStatus.OVERFLOW:
            raise SendQueueFullError(
                f"Outbound buffer full for client #{self.client_id}"
            )
        if result.status is SendStatus.CLOSED:
            raise ConnectionClosedError(
                f"Connection of client #{self.client_id} is {self.state.value}"
            )

    async def drain(self) -> None:
        """Wait until every queued frame has been written to the transport."""
        if self._writer is None or self._writer.done():
            return

        await self._outbound.join()

    def abort(self, code: int = status.WS_1011_INTERNAL_ERROR) -> None:
        """
        Schedule closing of the transport from synchronous code.

        Used when the connection is dropped from outside its own endpoint
        loop: outbound buffer overflow or a failed write. The endpoint loop
        wakes up on ``transport_closed`` and finishes the CLOSING -> CLOSED
        transition with ``close_code``.
        """
        if self._closing_started or self._closer is not None:
            return

        self.close_code = code
        self.begin_closing()
        self._closer = asyncio.create_task(
            self.close_transport(code), name=f"ws-closer-{self.key[:8]}"
        )

    async def close_transport(
        self, code: int = status.WS_1000_NORMAL_CLOSURE, reason: str | None = None
    ) -> None:
        """
        Stop the writer and close the transport if both sides still hold it.

        Only the first call does any work, later calls wait for it to finish.
        ``transport_closed`` is set once the close frame has been handed to
        the transport or skipped.
        """
        if self._closing_started:
            await self.transport_closed.wait()
            return

        self._closing_started = True
        if self.close_code is None:
            self.close_code = code
        self.begin_closing()

        try:
            if self._writer is not None and not self._writer.done():
                self._writer.cancel()
                await asyncio.gather(self._writer, return_exceptions=True)

            if (
                self.websocket.client_state is WebSocketState.CONNECTED
                and self.websocket.application_state is WebSocketState.CONNECTED
            ):
                try:
                    await self.websocket.close(code=self.close_code, reason=reason)
                except (WebSocketDisconnect, OSError, RuntimeError) as ex:
                    logger.debug(
                        f"Transport of client #{self.client_id} already gone: {ex}"
                    )
        finally:
            self.transport_closed.set()

    async def _write_loop(self) -> None:
        while True:
            text = await self._outbound.get()
            try:
                await self.websocket.send_text(text)
            except (WebSocketDisconnect, OSError, RuntimeError) as ex:
                # WebSocketDisconnect: Client disconnected
                # OSError: Network errors (uvicorn ClientDisconnected included)
                # RuntimeError: WebSocket in invalid state
                logger.warning(f"Write to client #{self.client_id} failed: {ex}")
                self._stop_writing()
                return
            except Exception as ex:
                logger.error(
                    f"Unexpected error writing to client #{self.client_id}: {ex}",
                    exc_info=True,
                )
                self._stop_writing()
                return
            finally:
                self._outbound.task_done()

            ws_messages_sent_total.inc()

    def _stop_writing(self) -> None:
        if dropped := self._outbound.qsize():
            logger.debug(
                f"Dropping {dropped} pending frames of client #{self.client_id}"
            )
        self._discard_pending()
        self.abort(status.WS_1011_INTERNAL_ERROR)

    def _discard_pending(self) -> None:
        while not self._outbound.empty():
            self._outbound.get_nowait()
            self._outbound.task_done()

    def _result(self, send_status: SendStatus) -> SendResult:
        return SendResult(
            connection_key=self.key,
            client_id=self.client_id,
            status=send_status,
        )
