from pydantic import BaseModel, ConfigDict

from chatcast.constants import CHAT_MESSAGE_FORMAT, DEPARTURE_NOTICE_FORMAT


class ChatMessage(BaseModel):  # type: ignore[misc]
    """
    Text payload received from a connection, tagged with its client id.

    Constructed at receive time, rendered once for broadcast and discarded.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    data: str

    def render(self) -> str:
        return CHAT_MESSAGE_FORMAT.format(
            client_id=self.client_id, data=self.data
        )


class DepartureNotice(BaseModel):  # type: ignore[misc]
    """Synthetic notice announcing that a connection has closed."""

    model_config = ConfigDict(frozen=True)

    client_id: str

    def render(self) -> str:
        return DEPARTURE_NOTICE_FORMAT.format(client_id=self.client_id)
