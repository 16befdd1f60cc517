"""Two-party conversation ORM model."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from messaging.models.base import Base, CreatedAtMixin, utcnow


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order two user ids so an unordered pair maps to one row."""

    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


class Conversation(Base, CreatedAtMixin):
    """Direct conversation between exactly two users."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("participant_a", "participant_b", name="uq_conversations_participant_pair"),
        CheckConstraint("participant_a < participant_b", name="ck_conversations_canonical_pair"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    participant_a: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_b: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    last_activity_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
        nullable=False,
    )

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant_a, self.participant_b)
