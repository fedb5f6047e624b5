"""Wire events exchanged over the real-time channel.

Every event carries a ``type`` discriminator and is serialized with camelCase
keys. Server events form a closed union; anything a client sends besides a
``message`` event is rejected with an ``ErrorEvent``.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from app.core.messages import AI_SENDER_ID, AI_SENDER_NAME
from .models import Message


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SenderInfo(WireModel):
    id: str
    name: str
    image_url: Optional[str] = None


AI_SENDER = SenderInfo(id=AI_SENDER_ID, name=AI_SENDER_NAME)


class MessagePayload(WireModel):
    id: int
    session_id: int
    sender_id: Optional[str] = None
    is_ai: bool
    content: str
    created_at: Optional[datetime] = None
    sender: Optional[SenderInfo] = None

    @classmethod
    def from_message(cls, message: Message, sender: SenderInfo | None = None) -> "MessagePayload":
        return cls(
            id=message.id,
            session_id=message.session_id,
            sender_id=message.sender_id,
            is_ai=bool(message.is_ai),
            content=message.content,
            created_at=message.created_at,
            sender=sender,
        )


class MessageEvent(WireModel):
    type: Literal["message"] = "message"
    message: MessagePayload


class StreamEvent(WireModel):
    type: Literal["stream"] = "stream"
    message_id: int
    session_id: int
    content: str
    full_content: str


class StreamCompleteEvent(WireModel):
    type: Literal["stream_complete"] = "stream_complete"
    message_id: int
    session_id: int
    full_content: str


class TitleUpdateEvent(WireModel):
    type: Literal["title_update"] = "title_update"
    session_id: int
    title: str
    is_final: bool = True


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str


ServerEvent = Annotated[
    Union[MessageEvent, StreamEvent, StreamCompleteEvent, TitleUpdateEvent, ErrorEvent],
    Field(discriminator="type"),
]

_server_event_adapter: TypeAdapter[ServerEvent] = TypeAdapter(ServerEvent)


def parse_server_event(data: dict[str, Any]) -> ServerEvent:
    """Parse a server event as a client would receive it."""
    return _server_event_adapter.validate_python(data)


class ClientMessageEvent(WireModel):
    """Inbound chat message from a connected client."""

    type: Literal["message"] = "message"
    session_id: int
    content: str
    sender: SenderInfo

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content is required")
        return value
