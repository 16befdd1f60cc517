"""Conversation and message delivery routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from sqlalchemy.orm import Session

from messaging.config import Settings
from messaging.db.dependencies import get_db
from messaging.dependencies import get_app_settings, get_attachment_store, get_current_user_id
from messaging.schemas.conversation import (
    ConversationListResponse,
    ConversationStartRequest,
    ConversationStartResponse,
)
from messaging.schemas.message import MessageEnvelope, MessageListResponse, MessageSendRequest
from messaging.services.attachments import AttachmentStore, send_attachment_message
from messaging.services.conversations import get_or_create_conversation, list_conversations_for_user
from messaging.services.messages import append_message, list_message_page

router = APIRouter(prefix="/conversations")


@router.get("", response_model=ConversationListResponse)
def get_conversations(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ConversationListResponse:
    """List the caller's conversations, most recently active first."""

    return ConversationListResponse(conversations=list_conversations_for_user(db, user_id))


@router.post("", response_model=ConversationStartResponse)
def start_conversation(
    payload: ConversationStartRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ConversationStartResponse:
    """Return the conversation with another user, creating it if needed."""

    conversation = get_or_create_conversation(db, user_id, payload.user_id)
    return ConversationStartResponse(conversation_id=conversation.id)


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
def get_messages(
    conversation_id: str = Path(..., min_length=1),
    before: datetime | None = Query(default=None),
    before_id: int | None = Query(default=None, alias="beforeId", ge=1),
    limit: int | None = Query(default=None, ge=1),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> MessageListResponse:
    """Page backwards through a conversation and mark it read for the caller."""

    page_limit = min(limit or settings.default_page_limit, settings.max_page_limit)
    messages = list_message_page(
        db,
        conversation_id,
        user_id,
        before=before,
        before_id=before_id,
        limit=page_limit,
    )
    return MessageListResponse(messages=messages)


@router.post("/{conversation_id}/messages", response_model=MessageEnvelope)
def send_message(
    payload: MessageSendRequest,
    conversation_id: str = Path(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> MessageEnvelope:
    """Send a text message."""

    message = append_message(
        db,
        conversation_id,
        user_id,
        content=payload.content,
        max_length=settings.max_message_length,
    )
    return MessageEnvelope(message=message)


@router.post("/{conversation_id}/attachment", response_model=MessageEnvelope)
def send_attachment(
    file: UploadFile = File(...),
    content: str | None = Form(default=None),
    conversation_id: str = Path(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_app_settings),
    store: AttachmentStore = Depends(get_attachment_store),
    db: Session = Depends(get_db),
) -> MessageEnvelope:
    """Send an image, video or audio file with optional caption text."""

    message = send_attachment_message(
        db,
        store,
        conversation_id,
        user_id,
        stream=file.file,
        mime_type=file.content_type,
        original_name=file.filename,
        content=content,
        declared_size=file.size,
        max_bytes=settings.max_attachment_bytes,
        max_length=settings.max_message_length,
    )
    return MessageEnvelope(message=message)
