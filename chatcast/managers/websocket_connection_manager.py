import asyncio
import time

from chatcast.api.ws.connection import Connection
from chatcast.constants import WS_GOING_AWAY_CODE, WS_TRY_AGAIN_LATER_CODE
from chatcast.logging import logger
from chatcast.schemas.broadcast import BroadcastReport, SendResult, SendStatus
from chatcast.settings import app_settings
from chatcast.utils.metrics import (
    ws_broadcast_duration_seconds,
    ws_broadcast_failures_total,
    ws_connections_active,
)


class ConnectionManager:
    """
    Registry of active WebSocket connections.

    Members are keyed by the connection's unique key, so two clients using
    the same client id are still two distinct members. Every mutation and
    every broadcast sweep runs under a single ``asyncio.Lock``; a broadcast
    therefore sees a member either fully registered or not at all.
    """

    def __init__(self) -> None:
        self.connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self.connections)

    @property
    def count(self) -> int:
        return len(self.connections)

    def client_ids(self) -> list[str]:
        """Client ids of current members, duplicates included."""
        return [conn.client_id for conn in self.connections.values()]

    async def register(self, connection: Connection) -> None:
        """
        Adds a connection to the active set.

        Registering the same connection object twice is a no-op.

        Args:
            connection: An open connection.
        """
        async with self._lock:
            if connection.key in self.connections:
                return

            self.connections[connection.key] = connection
            ws_connections_active.set(len(self.connections))

        logger.debug(
            f"Connection {connection.key[:8]} of client #{connection.client_id} "
            f"registered ({len(self.connections)} active)"
        )

    async def unregister(self, connection: Connection) -> bool:
        """
        Removes a connection if present.

        Idempotent: disconnects can be detected both by the owning endpoint
        and by a failed broadcast, removing an absent member does nothing.

        Returns:
            bool: True if the connection was a member and has been removed.
        """
        async with self._lock:
            removed = self._remove(connection)

        if removed:
            logger.debug(
                f"Connection {connection.key[:8]} of client "
                f"#{connection.client_id} unregistered "
                f"({len(self.connections)} active)"
            )
        return removed

    async def broadcast(self, message: str) -> BroadcastReport:
        """
        Delivers ``message`` to every current member's send path.

        Each member gets the frame appended to its own outbound buffer, so
        sequential broadcasts keep their order per connection and no member
        can stall the others. A member whose send fails is unregistered at
        the end of the sweep; failures never short-circuit the sweep and
        never raise to the caller.

        Args:
            message: Rendered text frame.

        Returns:
            BroadcastReport: Delivered count and the failed send results.
        """
        start_time = time.perf_counter()
        delivered = 0
        failed: list[tuple[Connection, SendResult]] = []

        async with self._lock:
            for connection in self.connections.values():
                result = connection.send(message)
                if result.ok:
                    delivered += 1
                else:
                    failed.append((connection, result))

            for connection, _ in failed:
                self._remove(connection)

        ws_broadcast_duration_seconds.observe(time.perf_counter() - start_time)

        for connection, result in failed:
            ws_broadcast_failures_total.labels(reason=result.status.value).inc()
            if result.status is SendStatus.OVERFLOW:
                connection.abort(WS_TRY_AGAIN_LATER_CODE)

        if failed:
            logger.warning(
                f"Broadcast dropped {len(failed)} of {delivered + len(failed)} "
                f"connections: "
                + ", ".join(
                    f"#{result.client_id} ({result.status.value})"
                    for _, result in failed
                )
            )

        return BroadcastReport(
            delivered=delivered, failed=[result for _, result in failed]
        )

    async def close_all(self, code: int = WS_GOING_AWAY_CODE) -> int:
        """
        Unregisters every member and closes its transport.

        Pending outbound frames are flushed first. Flushing and closing are
        each bounded by ``WS_CLOSE_TIMEOUT_SECONDS``.

        Args:
            code: Close code sent to the peers.

        Returns:
            int: Number of connections closed.
        """
        async with self._lock:
            connections = list(self.connections.values())
            self.connections.clear()
            ws_connections_active.set(0)

        if not connections:
            return 0

        timeout = app_settings.WS_CLOSE_TIMEOUT_SECONDS
        try:
            await asyncio.wait_for(
                asyncio.gather(*[conn.drain() for conn in connections]),
                timeout=timeout,
            )
        except TimeoutError:
            logger.warning(
                f"Timed out flushing outbound frames of {len(connections)} "
                f"connections"
            )

        try:
            await asyncio.wait_for(
                asyncio.gather(
                    *[conn.close_transport(code) for conn in connections],
                    return_exceptions=True,
                ),
                timeout=timeout,
            )
        except TimeoutError:
            logger.warning(
                f"Timed out closing {len(connections)} connections, "
                f"abandoning remaining transports"
            )

        logger.info(f"Closed {len(connections)} connections with code {code}")
        return len(connections)

    def _remove(self, connection: Connection) -> bool:
        if self.connections.get(connection.key) is not connection:
            return False

        del self.connections[connection.key]
        ws_connections_active.set(len(self.connections))
        return True
