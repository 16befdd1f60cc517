"""Message request/response schemas."""

from datetime import datetime
from typing import Literal

from messaging.schemas.common import CamelModel


class MessageSendRequest(CamelModel):
    """Text message payload."""

    content: str


class MessageEditRequest(CamelModel):
    """Replacement text for an existing message."""

    content: str


class MessageRead(CamelModel):
    """Serialized message with sender display fields.

    Deleted messages carry no content or attachment fields.
    """

    id: int
    content: str | None
    sender_id: str
    is_read: bool
    created_at: datetime
    edited_at: datetime | None
    is_deleted: bool
    attachment_url: str | None
    attachment_type: Literal["image", "video", "audio"] | None
    attachment_name: str | None
    sender_username: str
    sender_display_name: str | None
    sender_avatar_url: str | None


class MessageEnvelope(CamelModel):
    message: MessageRead


class MessageListResponse(CamelModel):
    messages: list[MessageRead]


class MessageEditRead(CamelModel):
    """One edit history entry."""

    previous_content: str
    edited_at: datetime


class MessageHistoryResponse(CamelModel):
    history: list[MessageEditRead]
