"""Conversation request/response schemas."""

from datetime import datetime

from pydantic import Field

from messaging.schemas.common import CamelModel


class ConversationStartRequest(CamelModel):
    """Start or resume a conversation with another user."""

    user_id: str = Field(min_length=1)


class ConversationStartResponse(CamelModel):
    conversation_id: str


class ConversationSummary(CamelModel):
    """Conversation list row from the requester's point of view."""

    id: str
    other_user_id: str
    other_username: str
    other_display_name: str | None
    other_avatar_url: str | None
    other_user_tags: list[str] = Field(default_factory=list)
    last_message: str
    last_message_at: datetime
    created_at: datetime
    unread_count: int


class ConversationListResponse(CamelModel):
    conversations: list[ConversationSummary]


class UnreadCountResponse(CamelModel):
    unread_count: int
