import base64
import binascii
from typing import Dict, Mapping, Optional, Protocol

import pydantic


class Message(Protocol):
    @property
    def attributes(self) -> Mapping[str, str]:
        ...

    @property
    def payload(self) -> bytes:
        ...

    @property
    def id(self) -> str:
        ...

    async def ack(self) -> None:
        ...

    async def nack(self) -> None:
        ...


class PushBody(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    attributes: Dict[str, str] = pydantic.Field(default_factory=dict)
    data: str = ""
    message_id: str = pydantic.Field(
        "", validation_alias=pydantic.AliasChoices("messageId", "message_id")
    )


class PushRequest(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")

    message: PushBody
    subscription: str


class PushMessage:
    """A message delivered through a push subscription.

    The delivery is settled by the HTTP response: a success status acks, any
    other status makes the transport redeliver.
    """

    acked: Optional[bool]

    def __init__(self, request: PushRequest):
        try:
            self._payload = base64.b64decode(request.message.data, validate=True)
        except binascii.Error as e:
            raise ValueError(f"message data is not valid base64: {e}") from e
        self._attributes = dict(request.message.attributes)
        self._id = request.message.message_id
        self.subscription = request.subscription
        self.acked = None

    @classmethod
    def from_json(cls, body: bytes) -> "PushMessage":
        return cls(PushRequest.model_validate_json(body))

    @property
    def attributes(self) -> Mapping[str, str]:
        return self._attributes

    @property
    def payload(self) -> bytes:
        return self._payload

    @property
    def id(self) -> str:
        return self._id

    def _settle(self, acked: bool) -> None:
        if self.acked is not None:
            raise RuntimeError(f"message {self._id} was already settled")
        self.acked = acked

    async def ack(self) -> None:
        self._settle(True)

    async def nack(self) -> None:
        self._settle(False)
