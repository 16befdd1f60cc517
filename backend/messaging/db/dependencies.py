"""Request-scoped database dependencies."""

from collections.abc import Iterator

from fastapi import Request
from sqlalchemy.orm import Session

from messaging.db.session import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """Yield one session per request from the application's database client."""

    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
