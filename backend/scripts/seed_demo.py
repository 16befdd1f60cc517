"""Seed two demo users with a short conversation and print their tokens.

Usage (from repository root):
    python backend/scripts/seed_demo.py

Usage (from backend directory):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy import delete

# Make `messaging` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from messaging.auth import issue_identity_token
from messaging.config import get_settings
from messaging.db.session import Database
from messaging.models.conversation import Conversation, canonical_pair
from messaging.models.user import User
from messaging.services.conversations import get_or_create_conversation
from messaging.services.messages import append_message, edit_message


DEMO_USERS = [
    ("demo-alice", "alice", "Alice", ["photography"]),
    ("demo-bob", "bob", "Bob", ["travel", "street"]),
]


def build_demo_messages() -> list[tuple[str, str]]:
    """Return a deterministic (sender_id, content) exchange."""

    return [
        ("demo-alice", "hi"),
        ("demo-bob", "Hey Alice, loved your latest upload."),
        ("demo-alice", "Thanks! Shot it at golden hour."),
    ]


def ensure_users(db) -> None:
    """Insert demo users that are missing."""

    for user_id, username, display_name, tags in DEMO_USERS:
        if db.get(User, user_id) is None:
            db.add(User(id=user_id, username=username, display_name=display_name, tags_json=tags))
    db.commit()


def reset_conversation(db) -> None:
    """Remove the existing demo conversation and its messages."""

    participant_a, participant_b = canonical_pair(DEMO_USERS[0][0], DEMO_USERS[1][0])
    db.execute(
        delete(Conversation).where(
            Conversation.participant_a == participant_a,
            Conversation.participant_b == participant_b,
        )
    )
    db.commit()


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Seed a demo direct conversation.")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables directly instead of relying on Alembic migrations.",
    )
    parser.add_argument(
        "--no-reset",
        action="store_true",
        help="Keep an existing demo conversation and append to it.",
    )
    return parser.parse_args()


def main() -> None:
    """Seed demo data and print a short summary."""

    args = parse_args()
    settings = get_settings()
    database = Database(settings.database_url)
    try:
        if args.create_tables:
            database.create_all()
        with database.session() as db:
            ensure_users(db)
            if not args.no_reset:
                reset_conversation(db)

            conversation_id = get_or_create_conversation(db, DEMO_USERS[0][0], DEMO_USERS[1][0]).id
            created = [
                append_message(db, conversation_id, sender_id, content=content)
                for sender_id, content in build_demo_messages()
            ]
            edit_message(db, created[-1].id, DEMO_USERS[0][0], "Thanks! Shot it at golden hour in Lisbon.")
    finally:
        database.dispose()

    print("Seed complete")
    print(f"conversation_id={conversation_id}")
    print(f"messages_created={len(created)}")
    print()
    for user_id, username, _, _ in DEMO_USERS:
        print(f"{username} token: {issue_identity_token(user_id, settings)}")
    print()
    print("Inspect (Authorization: Bearer <token>):")
    print("  GET /conversations")
    print(f"  GET /conversations/{conversation_id}/messages")
    print("  GET /unread-count")


if __name__ == "__main__":
    main()
