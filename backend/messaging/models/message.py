"""Message and attachment ORM model."""

import enum
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from messaging.models.base import Base, IdMixin, utcnow


class AttachmentKind(str, enum.Enum):
    """Media categories accepted as message attachments."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"

    @property
    def preview_label(self) -> str:
        return _PREVIEW_LABELS[self]


_PREVIEW_LABELS = {
    AttachmentKind.IMAGE: "📷 Image",
    AttachmentKind.VIDEO: "🎬 Video",
    AttachmentKind.AUDIO: "🎵 Audio",
}


@dataclass(frozen=True, slots=True)
class Attachment:
    """Stored attachment reference carried by a message."""

    kind: AttachmentKind
    url: str
    name: str


class Message(Base, IdMixin):
    """One text and/or attachment message inside a conversation."""

    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint(
            "content IS NOT NULL OR attachment_url IS NOT NULL",
            name="ck_messages_content_or_attachment",
        ),
        CheckConstraint(
            "attachment_type IN ('image', 'video', 'audio')",
            name="ck_messages_attachment_type",
        ),
        Index("ix_messages_conversation_created_id", "conversation_id", "created_at", "id"),
        Index("ix_messages_conversation_sender_read", "conversation_id", "sender_id", "is_read"),
    )

    conversation_id: Mapped[str] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    attachment_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    attachment_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    @property
    def attachment(self) -> Attachment | None:
        if self.attachment_url is None or self.attachment_type is None:
            return None
        return Attachment(
            kind=AttachmentKind(self.attachment_type),
            url=self.attachment_url,
            name=self.attachment_name or "",
        )

    @attachment.setter
    def attachment(self, value: Attachment | None) -> None:
        if value is None:
            self.attachment_url = None
            self.attachment_type = None
            self.attachment_name = None
            return
        self.attachment_url = value.url
        self.attachment_type = value.kind.value
        self.attachment_name = value.name
