"""
WebSocket endpoint tests.

Covers the connection lifecycle of the ``/ws/{client_id}`` endpoint:
registration on connect, rebroadcast of received messages, departure
notices and handling of unsupported frames.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from tests.mocks.websocket_mocks import wait_until


def registry(app):
    return app.state.connection_manager


class TestConnectionLifecycle:
    """Registration and unregistration driven by the endpoint."""

    @pytest.mark.asyncio
    async def test_connect_registers(self, app, ws_client):
        client = await ws_client("1").connect()

        await wait_until(lambda: len(registry(app)) == 1)
        assert registry(app).client_ids() == ["1"]

        await client.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_unregisters(self, app, ws_client):
        client = await ws_client("1").connect()
        await wait_until(lambda: len(registry(app)) == 1)

        await client.disconnect()

        assert len(registry(app)) == 0

    @pytest.mark.asyncio
    async def test_duplicate_client_ids_allowed(self, app, ws_client):
        first = await ws_client("same").connect()
        second = await ws_client("same").connect()
        await wait_until(lambda: len(registry(app)) == 2)

        await first.send_text("hello")

        assert await first.receive_text() == "Client #same: hello"
        assert await second.receive_text() == "Client #same: hello"

        await first.disconnect()
        await second.disconnect()


class TestBroadcastScenarios:
    """End-to-end fan-out behavior."""

    @pytest.mark.asyncio
    async def test_message_reaches_all_including_sender(self, app, ws_client):
        """Connections 1 and 2; 1 sends "hi"; both receive it."""
        c1 = await ws_client("1").connect()
        c2 = await ws_client("2").connect()
        await wait_until(lambda: len(registry(app)) == 2)

        await c1.send_text("hi")

        assert await c1.receive_text() == "Client #1: hi"
        assert await c2.receive_text() == "Client #1: hi"

        await c1.disconnect()
        await c2.disconnect()

    @pytest.mark.asyncio
    async def test_departure_notice_to_remaining(self, app, ws_client):
        """2 leaves; 1 and 3 each get exactly one notice, 2 gets nothing."""
        c1 = await ws_client("1").connect()
        c2 = await ws_client("2").connect()
        c3 = await ws_client("3").connect()
        await wait_until(lambda: len(registry(app)) == 3)

        await c2.disconnect()

        assert await c1.receive_text() == "Client #2 has left the chat"
        assert await c3.receive_text() == "Client #2 has left the chat"
        await asyncio.sleep(0.05)
        assert c1.pending_texts() == []
        assert c3.pending_texts() == []
        assert c2.pending_texts() == []
        assert registry(app).client_ids() == ["1", "3"]

        await c1.disconnect()
        await c3.disconnect()

    @pytest.mark.asyncio
    async def test_messages_keep_send_order(self, app, ws_client):
        c1 = await ws_client("1").connect()
        c2 = await ws_client("2").connect()
        await wait_until(lambda: len(registry(app)) == 2)

        for i in range(5):
            await c1.send_text(f"line {i}")

        received = [await c2.receive_text() for _ in range(5)]
        assert received == [f"Client #1: line {i}" for i in range(5)]

        await c1.disconnect()
        await c2.disconnect()

    @pytest.mark.asyncio
    async def test_large_message_accepted(self, app, ws_client):
        c1 = await ws_client("1").connect()
        await wait_until(lambda: len(registry(app)) == 1)
        payload = "ž" * 200_000

        await c1.send_text(payload)

        assert await c1.receive_text() == f"Client #1: {payload}"
        await c1.disconnect()

    @pytest.mark.asyncio
    async def test_last_client_leaving(self, app, ws_client):
        """Departure notice with no remaining members is a no-op."""
        c1 = await ws_client("1").connect()
        await wait_until(lambda: len(registry(app)) == 1)

        await c1.disconnect()

        assert len(registry(app)) == 0
        assert c1.pending_texts() == []


class TestUnsupportedFrames:
    """Binary frames are a format violation."""

    @pytest.mark.asyncio
    async def test_binary_frame_closes_connection(self, app, ws_client):
        c1 = await ws_client("1").connect()
        c2 = await ws_client("2").connect()
        await wait_until(lambda: len(registry(app)) == 2)

        await c2.send_bytes(b"\x00\x01")

        close = await c2.receive()
        assert close["type"] == "websocket.close"
        assert close["code"] == 1003
        await c2.wait_closed()

        assert await c1.receive_text() == "Client #2 has left the chat"
        assert registry(app).client_ids() == ["1"]

        await c1.disconnect()


class TestTransportFailures:
    """Read and write errors end the connection like a peer close."""

    @pytest.mark.asyncio
    async def test_read_error_closes_with_internal_error(self, app, ws_client):
        c1 = await ws_client("1").connect()
        c2 = await ws_client("2").connect()
        await wait_until(lambda: len(registry(app)) == 2)

        await c2.fail_next_read(OSError("connection reset"))

        close = await c2.receive()
        assert close["type"] == "websocket.close"
        assert close["code"] == 1011
        await c2.wait_closed()

        assert await c1.receive_text() == "Client #2 has left the chat"
        await asyncio.sleep(0.05)
        assert c1.pending_texts() == []
        assert registry(app).client_ids() == ["1"]

        await c1.disconnect()

    @pytest.mark.asyncio
    async def test_write_error_ends_connection(self, app, ws_client):
        """A member whose writes fail stops relaying and is announced as gone."""
        good = await ws_client("good").connect()
        bad = await ws_client("bad").connect()
        await wait_until(lambda: len(registry(app)) == 2)
        bad.write_error = OSError("connection reset")

        await bad.send_text("first")

        assert await good.receive_text() == "Client #bad: first"
        await bad.wait_closed()
        await bad.send_text("second")

        assert await good.receive_text() == "Client #bad has left the chat"
        await asyncio.sleep(0.05)
        assert good.pending_texts() == []
        assert registry(app).client_ids() == ["good"]

        await good.disconnect()


class TestShutdown:
    """Lifespan shutdown closes every open connection."""

    @pytest.mark.asyncio
    async def test_shutdown_closes_with_going_away(self, app, ws_client):
        async with app.router.lifespan_context(app):
            c1 = await ws_client("1").connect()
            c2 = await ws_client("2").connect()
            await wait_until(lambda: len(registry(app)) == 2)

        for client in (c1, c2):
            close = await client.receive()
            assert close["type"] == "websocket.close"
            assert close["code"] == 1001
            await client.wait_closed()
            assert client.pending_texts() == []

        assert len(registry(app)) == 0


class TestWithTestClient:
    """Same scenarios through Starlette's TestClient and the full lifespan."""

    def test_broadcast_and_departure(self, app):
        with TestClient(app) as client:
            with client.websocket_connect("/ws/1") as ws1:
                with client.websocket_connect("/ws/2") as ws2:
                    ws1.send_text("hi")

                    assert ws1.receive_text() == "Client #1: hi"
                    assert ws2.receive_text() == "Client #1: hi"

                    ws2.close()
                    assert ws1.receive_text() == "Client #2 has left the chat"

                ws1.send_text("anyone?")
                assert ws1.receive_text() == "Client #1: anyone?"
                ws1.close()
