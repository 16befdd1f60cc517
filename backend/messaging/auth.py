"""Identity token verification for requests from the authentication service."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from messaging.config import Settings


class IdentityError(Exception):
    """Raised when a token does not identify a user."""


def decode_identity_token(token: str, settings: Settings) -> str:
    """Return the user id carried by a signed session token."""

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise IdentityError("Session expired, please login again") from exc
    except jwt.InvalidTokenError as exc:
        raise IdentityError("Invalid token") from exc

    user_id = payload.get(settings.jwt_user_claim) or payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise IdentityError("Invalid token")
    return user_id


def issue_identity_token(user_id: str, settings: Settings, *, expires_in: timedelta = timedelta(days=7)) -> str:
    """Sign a session token the way the authentication service does."""

    payload = {
        settings.jwt_user_claim: user_id,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
