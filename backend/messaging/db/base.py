"""SQLAlchemy metadata registry import for Alembic."""

from messaging.models import Conversation, Message, MessageEdit, User
from messaging.models.base import Base

__all__ = ["Base", "Conversation", "Message", "MessageEdit", "User"]
