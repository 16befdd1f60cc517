"""FastAPI dependencies for settings, storage and the requesting user."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from messaging.auth import IdentityError, decode_identity_token
from messaging.config import Settings
from messaging.db.dependencies import get_db
from messaging.models.user import User
from messaging.services.attachments import AttachmentStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_attachment_store(request: Request) -> AttachmentStore:
    return request.app.state.attachment_store


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> str:
    """Resolve the authenticated user from a bearer token or session cookie."""

    token = credentials.credentials if credentials else request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise _unauthorized("Authentication required")

    try:
        user_id = decode_identity_token(token, settings)
    except IdentityError as exc:
        raise _unauthorized(str(exc)) from exc

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("Invalid or expired session")
    return user.id


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
