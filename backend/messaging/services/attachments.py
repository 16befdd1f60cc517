"""Attachment ingestion: type allow-list, bounded storage, message creation."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Protocol

from sqlalchemy.orm import Session

from messaging.models.message import Attachment, AttachmentKind
from messaging.schemas.message import MessageRead
from messaging.services.conversations import require_participant
from messaging.services.errors import PayloadTooLargeError, StorageError, UnsupportedMediaTypeError
from messaging.services.messages import DEFAULT_MAX_MESSAGE_LENGTH, append_message, clean_content

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTACHMENT_BYTES = 50 * 1024 * 1024
MAX_ORIGINAL_NAME_LENGTH = 255

# MIME type -> stored file extension, per attachment kind.
ALLOWED_MIME_TYPES: dict[AttachmentKind, dict[str, str]] = {
    AttachmentKind.IMAGE: {
        "image/jpeg": "jpg",
        "image/png": "png",
        "image/gif": "gif",
        "image/webp": "webp",
    },
    AttachmentKind.VIDEO: {
        "video/mp4": "mp4",
        "video/webm": "webm",
        "video/quicktime": "mov",
    },
    AttachmentKind.AUDIO: {
        "audio/mpeg": "mp3",
        "audio/wav": "wav",
        "audio/ogg": "ogg",
        "audio/webm": "weba",
        "audio/mp4": "m4a",
    },
}


@dataclass(frozen=True, slots=True)
class StoredFile:
    """Result of persisting one attachment."""

    filename: str
    url: str
    size: int


class AttachmentStore(Protocol):
    """Durable file storage for message attachments."""

    def save(self, stream: BinaryIO, *, extension: str, max_bytes: int) -> StoredFile:
        """Persist the stream under a generated name, or raise without leaving a file."""

    def delete(self, filename: str) -> None:
        """Remove a previously stored file."""


@dataclass(slots=True)
class LocalAttachmentStore:
    """Stores attachments as UUID-named files under one directory."""

    directory: Path
    url_prefix: str = "/uploads"
    chunk_size: int = 1024 * 1024

    def save(self, stream: BinaryIO, *, extension: str, max_bytes: int) -> StoredFile:
        filename = f"{uuid.uuid4()}.{extension}"
        final_path = self.directory / filename
        partial_path = self.directory / f".{filename}.part"

        written = 0
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with partial_path.open("wb") as handle:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise PayloadTooLargeError(_too_large_message(max_bytes))
                    handle.write(chunk)
            partial_path.replace(final_path)
        except PayloadTooLargeError:
            partial_path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            if partial_path.exists():
                partial_path.unlink()
            raise StorageError("Failed to store attachment") from exc

        return StoredFile(
            filename=filename,
            url=f"{self.url_prefix.rstrip('/')}/{filename}",
            size=written,
        )

    def delete(self, filename: str) -> None:
        (self.directory / filename).unlink(missing_ok=True)


def classify_mime_type(mime_type: str | None) -> AttachmentKind:
    """Map a MIME type onto an attachment kind or reject it."""

    normalized = _normalize_mime_type(mime_type)
    for kind, mime_types in ALLOWED_MIME_TYPES.items():
        if normalized in mime_types:
            return kind
    raise UnsupportedMediaTypeError("Unsupported file type. Allowed: images, videos, audio files.")


def send_attachment_message(
    db: Session,
    store: AttachmentStore,
    conversation_id: str,
    sender_id: str,
    *,
    stream: BinaryIO,
    mime_type: str | None,
    original_name: str | None,
    content: str | None = None,
    declared_size: int | None = None,
    max_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
    max_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
) -> MessageRead:
    """Validate and store an upload, then append a message referencing it.

    The file is written before the message row; if the insert fails the file
    is removed again so no message ever points at a missing file.
    """

    kind = classify_mime_type(mime_type)
    if declared_size is not None and declared_size > max_bytes:
        raise PayloadTooLargeError(_too_large_message(max_bytes))
    clean_content(content, max_length=max_length)
    require_participant(db, conversation_id, sender_id)

    extension = ALLOWED_MIME_TYPES[kind][_normalize_mime_type(mime_type)]
    stored = store.save(stream, extension=extension, max_bytes=max_bytes)
    attachment = Attachment(
        kind=kind,
        url=stored.url,
        name=_clean_original_name(original_name) or stored.filename,
    )
    try:
        return append_message(
            db,
            conversation_id,
            sender_id,
            content=content,
            attachment=attachment,
            max_length=max_length,
        )
    except Exception:
        db.rollback()
        _discard_stored_file(store, stored)
        raise


def _discard_stored_file(store: AttachmentStore, stored: StoredFile) -> None:
    try:
        store.delete(stored.filename)
    except OSError:
        logger.exception("messaging.attachment_cleanup_failed filename=%s", stored.filename)


def _normalize_mime_type(mime_type: str | None) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def _clean_original_name(original_name: str | None) -> str:
    if not original_name:
        return ""
    basename = PurePosixPath(original_name.replace("\\", "/")).name.strip()
    return basename[:MAX_ORIGINAL_NAME_LENGTH]


def _too_large_message(max_bytes: int) -> str:
    return f"File too large (max {max_bytes // (1024 * 1024)}MB)"
