"""Error taxonomy shared by the API and the background worker."""

from fastapi import status


class DigestError(Exception):
    """Base class for errors that map to an HTTP status and a message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DigestError):
    """Client-correctable request problem."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payload"


class AuthError(DigestError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(DigestError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class PersistenceError(DigestError):
    """Store unreachable or a write failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to persist report"


class DeliveryError(DigestError):
    """
    A delivery transport failed.

    Never surfaced to API callers: the dispatcher converts it into a
    ``failed`` delivery status. ``retryable`` marks transient failures
    (network errors, 429 and 5xx responses).
    """

    default_message = "Delivery failed"

    def __init__(self, message: str | None = None, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable
