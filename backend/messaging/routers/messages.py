"""Message-scoped edit, delete and history routes, plus unread totals."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from messaging.config import Settings
from messaging.db.dependencies import get_db
from messaging.dependencies import get_app_settings, get_current_user_id
from messaging.schemas.common import DeleteResult
from messaging.schemas.conversation import UnreadCountResponse
from messaging.schemas.message import MessageEditRequest, MessageHistoryResponse, MessageRead
from messaging.services.messages import count_unread, edit_message, get_edit_history, soft_delete_message

router = APIRouter()


@router.patch("/messages/{message_id}", response_model=MessageRead)
def patch_message(
    payload: MessageEditRequest,
    message_id: int = Path(..., ge=1),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> MessageRead:
    """Edit the text of one of the caller's messages."""

    return edit_message(
        db,
        message_id,
        user_id,
        payload.content,
        max_length=settings.max_message_length,
    )


@router.delete("/messages/{message_id}", response_model=DeleteResult)
def remove_message(
    message_id: int = Path(..., ge=1),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> DeleteResult:
    """Soft-delete one of the caller's messages."""

    soft_delete_message(db, message_id, user_id)
    return DeleteResult(id=message_id, deleted=True)


@router.get("/messages/{message_id}/history", response_model=MessageHistoryResponse)
def get_message_history(
    message_id: int = Path(..., ge=1),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> MessageHistoryResponse:
    """List earlier versions of a message."""

    return MessageHistoryResponse(history=get_edit_history(db, message_id, user_id))


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> UnreadCountResponse:
    """Total unread messages across the caller's conversations."""

    return UnreadCountResponse(unread_count=count_unread(db, user_id))
