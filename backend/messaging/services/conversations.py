"""Conversation directory: pair resolution and per-user listings."""

from __future__ import annotations

import logging

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messaging.models.base import as_utc
from messaging.models.conversation import Conversation, canonical_pair
from messaging.models.message import AttachmentKind, Message
from messaging.models.user import User
from messaging.schemas.conversation import ConversationSummary
from messaging.services.errors import InvalidOperationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DELETED_PREVIEW = "Message deleted"

def get_or_create_conversation(db: Session, user_id: str, other_user_id: str) -> Conversation:
    """Return the single conversation between two users, creating it on first use.

    The unique constraint on the canonical pair arbitrates concurrent creators:
    the loser of the race rolls back and reads the winner's row.
    """

    clean_other_id = other_user_id.strip()
    if not clean_other_id:
        raise ValidationError("User ID is required")
    if clean_other_id == user_id:
        raise InvalidOperationError("Cannot message yourself")

    active_ids = set(
        db.scalars(
            select(User.id).where(User.id.in_([user_id, clean_other_id]), User.is_active.is_(True))
        ).all()
    )
    if active_ids != {user_id, clean_other_id}:
        raise NotFoundError("User not found")

    participant_a, participant_b = canonical_pair(user_id, clean_other_id)
    existing = _find_conversation_by_pair(db, participant_a, participant_b)
    if existing is not None:
        return existing

    conversation = Conversation(participant_a=participant_a, participant_b=participant_b)
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = _find_conversation_by_pair(db, participant_a, participant_b)
        if existing is None:
            raise
        return existing

    db.refresh(conversation)
    logger.info(
        "messaging.conversation_created conversation_id=%s participant_a=%s participant_b=%s",
        conversation.id,
        participant_a,
        participant_b,
    )
    return conversation


def require_participant(
    db: Session,
    conversation_id: str,
    user_id: str,
    *,
    for_update: bool = False,
) -> Conversation:
    """Load a conversation the user belongs to.

    Missing conversations and conversations of other users are reported the
    same way so callers cannot probe who talks to whom.
    """

    stmt = select(Conversation).where(
        Conversation.id == conversation_id,
        or_(Conversation.participant_a == user_id, Conversation.participant_b == user_id),
    )
    if for_update:
        stmt = stmt.with_for_update()
    conversation = db.scalar(stmt)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    return conversation


def list_conversations_for_user(db: Session, user_id: str) -> list[ConversationSummary]:
    """Return the user's conversations, most recently active first."""

    other_user_id = case(
        (Conversation.participant_a == user_id, Conversation.participant_b),
        else_=Conversation.participant_a,
    )

    ranked = select(
        Message.conversation_id.label("conversation_id"),
        Message.content.label("content"),
        Message.attachment_type.label("attachment_type"),
        Message.is_deleted.label("is_deleted"),
        func.row_number()
        .over(
            partition_by=Message.conversation_id,
            order_by=(Message.created_at.desc(), Message.id.desc()),
        )
        .label("position"),
    ).subquery()
    latest = (
        select(
            ranked.c.conversation_id,
            ranked.c.content,
            ranked.c.attachment_type,
            ranked.c.is_deleted,
        )
        .where(ranked.c.position == 1)
        .subquery()
    )
    unread = (
        select(
            Message.conversation_id.label("conversation_id"),
            func.count(Message.id).label("unread_count"),
        )
        .where(Message.sender_id != user_id, Message.is_read.is_(False))
        .group_by(Message.conversation_id)
        .subquery()
    )

    stmt = (
        select(
            Conversation,
            User,
            latest.c.content,
            latest.c.attachment_type,
            latest.c.is_deleted,
            func.coalesce(unread.c.unread_count, 0).label("unread_count"),
        )
        .join(User, User.id == other_user_id)
        .outerjoin(latest, latest.c.conversation_id == Conversation.id)
        .outerjoin(unread, unread.c.conversation_id == Conversation.id)
        .where(or_(Conversation.participant_a == user_id, Conversation.participant_b == user_id))
        .order_by(
            Conversation.last_activity_at.desc(),
            Conversation.created_at.desc(),
            Conversation.id.desc(),
        )
    )

    return [
        ConversationSummary(
            id=conversation.id,
            other_user_id=other.id,
            other_username=other.username,
            other_display_name=other.display_name,
            other_avatar_url=other.avatar_url,
            other_user_tags=list(other.tags_json or []),
            last_message=message_preview(content, attachment_type, bool(is_deleted)),
            last_message_at=as_utc(conversation.last_activity_at),
            created_at=as_utc(conversation.created_at),
            unread_count=int(unread_count),
        )
        for conversation, other, content, attachment_type, is_deleted, unread_count in db.execute(stmt).all()
    ]


def message_preview(content: str | None, attachment_type: str | None, is_deleted: bool) -> str:
    """One-line text shown for a conversation's latest message."""

    if is_deleted:
        return DELETED_PREVIEW
    if content:
        return content
    if attachment_type is None:
        return ""
    return AttachmentKind(attachment_type).preview_label


def _find_conversation_by_pair(db: Session, participant_a: str, participant_b: str) -> Conversation | None:
    return db.scalar(
        select(Conversation).where(
            Conversation.participant_a == participant_a,
            Conversation.participant_b == participant_b,
        )
    )
