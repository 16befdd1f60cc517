"""Message ledger: append, paginate, edit, soft delete and read tracking."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session

from messaging.models.base import as_utc, utcnow
from messaging.models.conversation import Conversation
from messaging.models.message import Attachment, Message
from messaging.models.message_edit import MessageEdit
from messaging.models.user import User
from messaging.schemas.message import MessageEditRead, MessageRead
from messaging.services.conversations import require_participant
from messaging.services.errors import (
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 2000
DEFAULT_PAGE_LIMIT = 50
CREATED_AT_STEP = timedelta(microseconds=1)


def clean_content(content: str | None, *, max_length: int = DEFAULT_MAX_MESSAGE_LENGTH) -> str | None:
    """Trim message text; blank text becomes ``None``."""

    if content is None:
        return None
    trimmed = content.strip()
    if not trimmed:
        return None
    if len(trimmed) > max_length:
        raise ValidationError(f"Message too long (max {max_length} characters)")
    return trimmed


def append_message(
    db: Session,
    conversation_id: str,
    sender_id: str,
    *,
    content: str | None = None,
    attachment: Attachment | None = None,
    max_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
) -> MessageRead:
    """Insert a message and bump the conversation's activity time in one commit."""

    trimmed = clean_content(content, max_length=max_length)
    if trimmed is None and attachment is None:
        raise ValidationError("Message content is required")

    # Row lock serializes appends per conversation; created_at strictly increases within it.
    conversation = require_participant(db, conversation_id, sender_id, for_update=True)
    created_at = max(utcnow(), as_utc(conversation.last_activity_at) + CREATED_AT_STEP)

    message = Message(
        conversation_id=conversation.id,
        sender_id=sender_id,
        content=trimmed,
        created_at=created_at,
    )
    message.attachment = attachment
    db.add(message)
    conversation.last_activity_at = created_at
    db.commit()

    logger.info(
        "messaging.message_sent conversation_id=%s message_id=%d attachment_type=%s",
        conversation.id,
        message.id,
        message.attachment_type,
    )
    return get_message(db, message.id)


def get_message(db: Session, message_id: int) -> MessageRead:
    """Load one message hydrated with its sender's display fields."""

    row = db.execute(
        select(Message, User).join(User, User.id == Message.sender_id).where(Message.id == message_id)
    ).first()
    if row is None:
        raise NotFoundError("Message not found")
    message, sender = row
    return to_message_read(message, sender)


def list_message_page(
    db: Session,
    conversation_id: str,
    requester_id: str,
    *,
    before: datetime | None = None,
    before_id: int | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> list[MessageRead]:
    """Return one page of messages in chronological order.

    Opening a conversation marks every message from the other participant as
    read, not only the ones on the returned page. Polling clients rely on this.
    """

    if limit < 1:
        raise ValidationError("limit must be at least 1")
    if before_id is not None and before is None:
        raise ValidationError("beforeId requires before")

    require_participant(db, conversation_id, requester_id)

    marked = db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != requester_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    ).rowcount

    stmt = (
        select(Message, User)
        .join(User, User.id == Message.sender_id)
        .where(Message.conversation_id == conversation_id)
    )
    if before is not None:
        cursor = as_utc(before)
        if before_id is None:
            stmt = stmt.where(Message.created_at < cursor)
        else:
            stmt = stmt.where(
                or_(
                    Message.created_at < cursor,
                    and_(Message.created_at == cursor, Message.id < before_id),
                )
            )
    stmt = (
        stmt.order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )

    rows = db.execute(stmt).all()
    db.commit()

    if marked:
        logger.info(
            "messaging.read_sweep conversation_id=%s reader_id=%s marked=%d",
            conversation_id,
            requester_id,
            marked,
        )
    return [to_message_read(message, sender) for message, sender in reversed(rows)]


def edit_message(
    db: Session,
    message_id: int,
    requester_id: str,
    new_content: str,
    *,
    max_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
) -> MessageRead:
    """Replace a text message's content, recording what it replaced.

    Submitting the current content again changes nothing.
    """

    message = db.scalar(select(Message).where(Message.id == message_id).with_for_update())
    _require_visible(db, message, requester_id)
    if message.sender_id != requester_id:
        raise ForbiddenError("You can only edit your own messages")
    if message.is_deleted:
        raise InvalidOperationError("Deleted messages cannot be edited")
    if message.content is None:
        raise InvalidOperationError("Attachment-only messages cannot be edited")

    trimmed = clean_content(new_content, max_length=max_length)
    if trimmed is None:
        raise ValidationError("Message content is required")

    if trimmed != message.content:
        edited_at = utcnow()
        db.add(MessageEdit(message_id=message.id, previous_content=message.content, edited_at=edited_at))
        message.content = trimmed
        message.edited_at = edited_at
        logger.info("messaging.message_edited message_id=%d editor_id=%s", message.id, requester_id)
    db.commit()
    return get_message(db, message_id)


def soft_delete_message(db: Session, message_id: int, requester_id: str) -> None:
    """Hide a message's content from clients while keeping the row and its history."""

    message = db.scalar(select(Message).where(Message.id == message_id))
    _require_visible(db, message, requester_id)
    if message.sender_id != requester_id:
        raise ForbiddenError("You can only delete your own messages")
    if message.is_deleted:
        return

    message.is_deleted = True
    db.commit()
    logger.info("messaging.message_deleted message_id=%d", message_id)


def get_edit_history(db: Session, message_id: int, requester_id: str) -> list[MessageEditRead]:
    """Return prior contents of a message, oldest first. Either participant may read it."""

    message = db.scalar(select(Message).where(Message.id == message_id))
    _require_visible(db, message, requester_id)

    edits = db.scalars(
        select(MessageEdit)
        .where(MessageEdit.message_id == message_id)
        .order_by(MessageEdit.edited_at.asc(), MessageEdit.id.asc())
    ).all()
    return [
        MessageEditRead(previous_content=edit.previous_content, edited_at=as_utc(edit.edited_at))
        for edit in edits
    ]


def count_unread(db: Session, user_id: str) -> int:
    """Count messages from other participants the user has not read yet."""

    stmt = (
        select(func.count(Message.id))
        .join(Conversation, Conversation.id == Message.conversation_id)
        .where(
            or_(Conversation.participant_a == user_id, Conversation.participant_b == user_id),
            Message.sender_id != user_id,
            Message.is_read.is_(False),
        )
    )
    return int(db.scalar(stmt) or 0)


def to_message_read(message: Message, sender: User) -> MessageRead:
    """Serialize a message, suppressing content and attachment once deleted."""

    attachment = None if message.is_deleted else message.attachment
    return MessageRead(
        id=message.id,
        content=None if message.is_deleted else message.content,
        sender_id=message.sender_id,
        is_read=message.is_read,
        created_at=as_utc(message.created_at),
        edited_at=as_utc(message.edited_at) if message.edited_at is not None else None,
        is_deleted=message.is_deleted,
        attachment_url=attachment.url if attachment else None,
        attachment_type=attachment.kind.value if attachment else None,
        attachment_name=attachment.name if attachment else None,
        sender_username=sender.username,
        sender_display_name=sender.display_name,
        sender_avatar_url=sender.avatar_url,
    )


def _require_visible(db: Session, message: Message | None, requester_id: str) -> None:
    if message is None:
        raise NotFoundError("Message not found")
    conversation = db.get(Conversation, message.conversation_id)
    if conversation is None or not conversation.has_participant(requester_id):
        raise NotFoundError("Message not found")
