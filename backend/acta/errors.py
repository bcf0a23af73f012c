"""Error taxonomy shared by the services and the HTTP layer.

Every error carries enough information for a client to tell apart
"retry is safe" (collaborator failures), "input must change" (validation)
and "this meeting isn't accessible" (not found).
"""
from typing import Any, Optional


class ActaError(Exception):
    code = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "detail": self.detail,
            "retryable": self.retryable,
        }


class ValidationError(ActaError):
    code = "validation_error"
    status_code = 400


class NotFoundError(ActaError):
    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Meeting not found", detail: Optional[Any] = None):
        super().__init__(message, detail)


class ConflictError(ActaError):
    code = "conflict"
    status_code = 409


class CollaboratorError(ActaError):
    """A third-party call failed (network, quota, unsupported input)."""

    code = "collaborator_error"
    status_code = 502
    retryable = True


class TranscriptionError(CollaboratorError):
    code = "transcription_failed"


class DraftingError(CollaboratorError):
    code = "drafting_failed"


class DeliveryError(CollaboratorError):
    code = "delivery_failed"
