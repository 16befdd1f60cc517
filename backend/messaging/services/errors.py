"""Domain errors raised by messaging services."""


class MessagingError(Exception):
    """Base class for failures surfaced to API callers."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MessagingError):
    """Input failed a content or attachment rule."""

    kind = "validation_error"
    status_code = 400


class UnsupportedMediaTypeError(ValidationError):
    """Attachment MIME type is outside the allow-list."""

    kind = "unsupported_media_type"
    status_code = 415


class PayloadTooLargeError(ValidationError):
    """Attachment exceeds the configured size limit."""

    kind = "payload_too_large"
    status_code = 413


class NotFoundError(MessagingError):
    """Target does not exist or is not visible to the requester."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(MessagingError):
    """Requester may see the target but not change it."""

    kind = "forbidden"
    status_code = 403


class InvalidOperationError(MessagingError):
    """Operation is not allowed in the target's current state."""

    kind = "invalid_operation"
    status_code = 400


class StorageError(MessagingError):
    """Attachment persistence failed."""

    kind = "internal"
    status_code = 500
