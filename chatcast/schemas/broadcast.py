from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated


class SendStatus(str, Enum):
    """
    Outcome of handing one frame to a connection's send path.

    Attributes:
        QUEUED: Frame accepted into the outbound buffer
        OVERFLOW: Outbound buffer full, peer is too slow
        CLOSED: Connection already closing or closed
    """

    QUEUED = "queued"
    OVERFLOW = "overflow"
    CLOSED = "closed"


class SendResult(BaseModel):  # type: ignore[misc]
    model_config = ConfigDict(frozen=True)

    connection_key: str
    client_id: str
    status: SendStatus

    @property
    def ok(self) -> bool:
        return self.status is SendStatus.QUEUED


class BroadcastReport(BaseModel):  # type: ignore[misc]
    """
    Summary of one broadcast sweep.

    Failed connections are unregistered by the sweep itself, so every entry in
    ``failed`` refers to a connection that is no longer a registry member.
    """

    delivered: Annotated[int, Field(ge=0)] = 0
    failed: list[SendResult] = Field(default_factory=list)

    @property
    def recipients(self) -> int:
        return self.delivered + len(self.failed)

    @property
    def failed_client_ids(self) -> list[str]:
        return [result.client_id for result in self.failed]
