"""HTTP-level tests for the messaging API."""

from __future__ import annotations

import tempfile
import unittest
from datetime import timedelta
from pathlib import Path

from fastapi.testclient import TestClient

from messaging.auth import issue_identity_token
from messaging.config import Settings
from messaging.db.session import Database
from messaging.main import create_app
from messaging.models.user import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 2040


class MessagingApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = Settings(
            database_url="sqlite+pysqlite:///:memory:",
            storage_path=Path(self._tmp.name),
            jwt_secret="messaging-test-secret-0123456789abcdef",
            max_attachment_bytes=64 * 1024,
        )
        self.database = Database(self.settings.database_url)
        self.database.create_all()
        with self.database.session() as db:
            db.add_all(
                [
                    User(id="alice", username="alice", display_name="Alice"),
                    User(id="bob", username="bob", display_name="Bob"),
                    User(id="mallory", username="mallory"),
                    User(id="ghost", username="ghost", is_active=False),
                ]
            )
            db.commit()

        self.app = create_app(self.settings, database=self.database)
        self.client = TestClient(self.app)
        self.client.__enter__()

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)
        self.database.drop_all()
        self.database.dispose()
        self._tmp.cleanup()

    def _auth(self, user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_identity_token(user_id, self.settings)}"}

    def _start(self, user_id: str, other_user_id: str) -> str:
        response = self.client.post("/conversations", json={"userId": other_user_id}, headers=self._auth(user_id))
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["conversationId"]

    def test_alice_and_bob_scenario(self) -> None:
        conversation_id = self._start("alice", "bob")
        self.assertEqual(self._start("bob", "alice"), conversation_id)

        sent = self.client.post(
            f"/conversations/{conversation_id}/messages",
            json={"content": "hi"},
            headers=self._auth("alice"),
        )
        self.assertEqual(sent.status_code, 200, sent.text)
        message = sent.json()["message"]
        self.assertEqual(message["content"], "hi")
        self.assertEqual(message["senderId"], "alice")
        self.assertEqual(message["senderDisplayName"], "Alice")
        self.assertFalse(message["isRead"])
        self.assertIsNone(message["attachmentUrl"])

        unread = self.client.get("/unread-count", headers=self._auth("bob"))
        self.assertEqual(unread.json(), {"unreadCount": 1})

        listed = self.client.get(f"/conversations/{conversation_id}/messages", headers=self._auth("bob"))
        self.assertEqual(listed.status_code, 200)
        messages = listed.json()["messages"]
        self.assertEqual([m["id"] for m in messages], [message["id"]])
        self.assertTrue(messages[0]["isRead"])

        self.assertEqual(self.client.get("/unread-count", headers=self._auth("bob")).json()["unreadCount"], 0)

        conversations = self.client.get("/conversations", headers=self._auth("bob")).json()["conversations"]
        self.assertEqual(len(conversations), 1)
        self.assertEqual(conversations[0]["id"], conversation_id)
        self.assertEqual(conversations[0]["otherUserId"], "alice")
        self.assertEqual(conversations[0]["lastMessage"], "hi")
        self.assertEqual(conversations[0]["unreadCount"], 0)

    def test_paging_with_query_cursor(self) -> None:
        conversation_id = self._start("alice", "bob")
        url = f"/conversations/{conversation_id}/messages"
        for i in range(5):
            sent = self.client.post(url, json={"content": f"m{i}"}, headers=self._auth("alice"))
            self.assertEqual(sent.status_code, 200, sent.text)

        newest = self.client.get(url, params={"limit": 2}, headers=self._auth("bob")).json()["messages"]
        self.assertEqual([m["content"] for m in newest], ["m3", "m4"])

        older = self.client.get(
            url,
            params={"before": newest[0]["createdAt"], "limit": 2},
            headers=self._auth("bob"),
        )
        self.assertEqual(older.status_code, 200, older.text)
        older_messages = older.json()["messages"]
        self.assertEqual([m["content"] for m in older_messages], ["m1", "m2"])

        oldest = self.client.get(
            url,
            params={"before": older_messages[0]["createdAt"], "beforeId": older_messages[0]["id"], "limit": 2},
            headers=self._auth("bob"),
        ).json()["messages"]
        self.assertEqual([m["content"] for m in oldest], ["m0"])

        orphan_cursor = self.client.get(url, params={"beforeId": newest[0]["id"]}, headers=self._auth("bob"))
        self.assertEqual(orphan_cursor.status_code, 400)
        self.assertEqual(orphan_cursor.json()["kind"], "validation_error")

    def test_attachment_scenario(self) -> None:
        conversation_id = self._start("alice", "bob")

        sent = self.client.post(
            f"/conversations/{conversation_id}/attachment",
            files={"file": ("photo.png", PNG_BYTES, "image/png")},
            headers=self._auth("alice"),
        )
        self.assertEqual(sent.status_code, 200, sent.text)
        message = sent.json()["message"]
        self.assertIsNone(message["content"])
        self.assertEqual(message["attachmentType"], "image")
        self.assertEqual(message["attachmentName"], "photo.png")

        served = self.client.get(message["attachmentUrl"])
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, PNG_BYTES)

        conversations = self.client.get("/conversations", headers=self._auth("bob")).json()["conversations"]
        self.assertEqual(conversations[0]["lastMessage"], "📷 Image")

    def test_attachment_rejections(self) -> None:
        conversation_id = self._start("alice", "bob")
        unsupported = self.client.post(
            f"/conversations/{conversation_id}/attachment",
            files={"file": ("notes.pdf", b"%PDF-1.7", "application/pdf")},
            headers=self._auth("alice"),
        )
        self.assertEqual(unsupported.status_code, 415)
        self.assertEqual(unsupported.json()["kind"], "unsupported_media_type")

        oversized = self.client.post(
            f"/conversations/{conversation_id}/attachment",
            files={"file": ("big.png", b"\x00" * (64 * 1024 + 1), "image/png")},
            headers=self._auth("alice"),
        )
        self.assertEqual(oversized.status_code, 413)
        self.assertEqual(list(self.settings.uploads_dir.iterdir()), [])

    def test_edit_delete_and_history_routes(self) -> None:
        conversation_id = self._start("alice", "bob")
        message_id = self.client.post(
            f"/conversations/{conversation_id}/messages",
            json={"content": "A"},
            headers=self._auth("alice"),
        ).json()["message"]["id"]

        for content in ("B", "C"):
            edited = self.client.patch(
                f"/messages/{message_id}",
                json={"content": content},
                headers=self._auth("alice"),
            )
            self.assertEqual(edited.status_code, 200, edited.text)
        self.assertEqual(edited.json()["content"], "C")
        self.assertIsNotNone(edited.json()["editedAt"])

        forbidden = self.client.patch(
            f"/messages/{message_id}",
            json={"content": "D"},
            headers=self._auth("bob"),
        )
        self.assertEqual(forbidden.status_code, 403)
        self.assertEqual(forbidden.json()["kind"], "forbidden")

        history = self.client.get(f"/messages/{message_id}/history", headers=self._auth("bob"))
        self.assertEqual([entry["previousContent"] for entry in history.json()["history"]], ["A", "B"])

        self.assertEqual(self.client.delete(f"/messages/{message_id}", headers=self._auth("bob")).status_code, 403)
        for _ in range(2):
            deleted = self.client.delete(f"/messages/{message_id}", headers=self._auth("alice"))
            self.assertEqual(deleted.status_code, 200)
            self.assertEqual(deleted.json(), {"id": message_id, "deleted": True})

        [tombstone] = self.client.get(
            f"/conversations/{conversation_id}/messages",
            headers=self._auth("bob"),
        ).json()["messages"]
        self.assertTrue(tombstone["isDeleted"])
        self.assertIsNone(tombstone["content"])
        self.assertIsNotNone(tombstone["editedAt"])

        after_delete = self.client.patch(
            f"/messages/{message_id}",
            json={"content": "E"},
            headers=self._auth("alice"),
        )
        self.assertEqual(after_delete.status_code, 400)
        self.assertEqual(after_delete.json()["kind"], "invalid_operation")

    def test_outsiders_get_not_found(self) -> None:
        conversation_id = self._start("alice", "bob")
        listed = self.client.get(f"/conversations/{conversation_id}/messages", headers=self._auth("mallory"))
        self.assertEqual(listed.status_code, 404)
        self.assertEqual(listed.json()["kind"], "not_found")

        sent = self.client.post(
            f"/conversations/{conversation_id}/messages",
            json={"content": "hi"},
            headers=self._auth("mallory"),
        )
        self.assertEqual(sent.status_code, 404)

    def test_start_conversation_errors(self) -> None:
        yourself = self.client.post("/conversations", json={"userId": "alice"}, headers=self._auth("alice"))
        self.assertEqual(yourself.status_code, 400)
        self.assertEqual(yourself.json()["kind"], "invalid_operation")

        unknown = self.client.post("/conversations", json={"userId": "nobody"}, headers=self._auth("alice"))
        self.assertEqual(unknown.status_code, 404)

        missing = self.client.post("/conversations", json={}, headers=self._auth("alice"))
        self.assertEqual(missing.status_code, 422)

    def test_send_validation_errors(self) -> None:
        conversation_id = self._start("alice", "bob")
        for content in ("   ", "x" * 2001):
            response = self.client.post(
                f"/conversations/{conversation_id}/messages",
                json={"content": content},
                headers=self._auth("alice"),
            )
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["kind"], "validation_error")

    def test_authentication_is_required(self) -> None:
        self.assertEqual(self.client.get("/conversations").status_code, 401)
        self.assertEqual(
            self.client.get("/conversations", headers={"Authorization": "Bearer not-a-token"}).status_code,
            401,
        )
        expired = issue_identity_token("alice", self.settings, expires_in=timedelta(seconds=-60))
        self.assertEqual(
            self.client.get("/conversations", headers={"Authorization": f"Bearer {expired}"}).status_code,
            401,
        )
        self.assertEqual(self.client.get("/unread-count", headers=self._auth("ghost")).status_code, 401)

        self.client.cookies.set("token", issue_identity_token("alice", self.settings))
        try:
            self.assertEqual(self.client.get("/conversations").status_code, 200)
        finally:
            self.client.cookies.clear()

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
