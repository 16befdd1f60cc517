"""ORM models package exports."""

from messaging.models.conversation import Conversation
from messaging.models.message import Attachment, AttachmentKind, Message
from messaging.models.message_edit import MessageEdit
from messaging.models.user import User

__all__ = [
    "Attachment",
    "AttachmentKind",
    "Conversation",
    "Message",
    "MessageEdit",
    "User",
]
