from fastapi import APIRouter
from starlette.websockets import WebSocket

from chatcast.api.ws.websocket import BroadcastWebSocketEndpoint
from chatcast.logging import logger
from chatcast.schemas.message import ChatMessage
from chatcast.utils.metrics import ws_messages_received_total

router = APIRouter()


@router.websocket_route("/ws/{client_id}")
class Chat(BroadcastWebSocketEndpoint):
    """
    Fan-out chat endpoint.

    Every received text frame is rebroadcast to all registered connections,
    the sender included, as ``"Client #{client_id}: {data}"``.
    """

    async def on_receive(self, websocket: WebSocket, data: str) -> None:
        ws_messages_received_total.inc()

        message = ChatMessage(client_id=self.client_id, data=data)
        report = await self.manager.broadcast(message.render())

        logger.debug(
            f"Relayed {len(data)} chars from client #{self.client_id} "
            f"to {report.delivered} connections"
        )
