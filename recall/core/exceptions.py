"""
Exception hierarchy for the Recall Context backend.

Every error raised by the ingestion pipeline derives from RecallError so the
HTTP layer can map it to a response in one place (see recall/main.py).

Hierarchy:
    RecallError
    ├── InvalidFilenameError
    ├── ApiKeyNotConfiguredError
    ├── CredentialCryptoError
    ├── ExternalServiceError
    │   └── ExternalServiceTimeout
    ├── MalformedResponseError
    ├── TranscriptProcessingError
    ├── InvalidStatusTransition
    └── NotFoundError
        ├── MeetingNotFoundError
        └── ActionItemNotFoundError
"""

from typing import Any, Dict, Optional


class RecallError(Exception):
    """
    Base exception for all Recall Context errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidFilenameError(RecallError):
    """Filename does not follow YYYY-MM-DD_HHmm_MeetingType_SeriesName.txt."""


class ApiKeyNotConfiguredError(RecallError):
    """No usable Anthropic API key is stored for the current user."""


class CredentialCryptoError(RecallError):
    """
    Encrypting or decrypting a stored credential failed.

    The message never contains key material or plaintext.
    """


class ExternalServiceError(RecallError):
    """
    The Anthropic API call failed.

    Attributes:
        kind: One of "unauthorized", "rate_limited", "bad_request", "other"
        status_code: Status reported by the remote service (500 for transport errors)
    """

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    OTHER = "other"

    def __init__(self, message: str, status_code: int, kind: str = OTHER):
        self.status_code = status_code
        self.kind = kind
        super().__init__(message, {"status_code": status_code, "kind": kind})

    @classmethod
    def kind_for_status(cls, status_code: int) -> str:
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 429:
            return cls.RATE_LIMITED
        if status_code == 400:
            return cls.BAD_REQUEST
        return cls.OTHER


class ExternalServiceTimeout(ExternalServiceError):
    """The Anthropic API did not answer within the configured timeout."""

    def __init__(self, message: str):
        super().__init__(message, status_code=504, kind=ExternalServiceError.OTHER)


class MalformedResponseError(RecallError):
    """The Anthropic response could not be turned into an analysis result."""


class TranscriptProcessingError(RecallError):
    """Unexpected failure while processing a transcript."""


class InvalidStatusTransition(RecallError):
    """A meeting was asked to move to a processing status it cannot reach."""


class NotFoundError(RecallError):
    """Requested record does not exist."""


class MeetingNotFoundError(NotFoundError):
    def __init__(self, meeting_id: int):
        self.meeting_id = meeting_id
        super().__init__(f"Meeting not found with ID: {meeting_id}", {"meeting_id": meeting_id})


class ActionItemNotFoundError(NotFoundError):
    def __init__(self, action_id: int):
        self.action_id = action_id
        super().__init__(f"Action not found with ID: {action_id}", {"action_id": action_id})
