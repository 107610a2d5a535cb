"""
Error taxonomy shared by the generation pipeline and the HTTP service.

Every error carries the HTTP status the service answers with and a payload
builder, so the API layer can translate any pipeline failure with a single
exception handler.
"""
from typing import Any

DEFAULT_RETRY_DELAY_SECONDS = 60


class TenderError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class AuthError(TenderError):
    """No verified caller identity."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(TenderError):
    """Missing project, work package, organization or document."""

    status_code = 404

    def __init__(self, resource: str, resource_id: str | None = None):
        message = f"{resource} not found" if resource_id is None else f"{resource} not found: {resource_id}"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(TenderError):
    """Missing required field or malformed input."""

    status_code = 400


class InvalidActionError(ValidationError):
    """Unrecognized editor action name."""

    def __init__(self, action: str):
        super().__init__(f"Invalid action: {action}")
        self.action = action


class PreconditionError(TenderError):
    """A stage was requested out of order."""

    status_code = 400


class NoSourceTextError(PreconditionError):
    """No RFT document has extracted text to work from."""

    def __init__(self, message: str = "No RFT documents with extracted text available"):
        super().__init__(message)


class NoContentError(PreconditionError):
    """Nothing to export."""

    def __init__(self, message: str = "No content to export"):
        super().__init__(message)


class ContextTooLargeError(TenderError):
    """Assembled context exceeds the model input budget."""

    status_code = 400

    def __init__(self, token_count: int, warning: str | None = None):
        super().__init__(warning or f"Context too large: {token_count} tokens")
        self.token_count = token_count
        self.warning = warning

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["tokenCount"] = self.token_count
        if self.warning:
            payload["warning"] = self.warning
        return payload


class RateLimitError(TenderError):
    """Provider throttling; carries a suggested retry delay."""

    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please wait before trying again.",
        retry_delay_seconds: float | None = None,
    ):
        super().__init__(message)
        if retry_delay_seconds is None:
            retry_delay_seconds = DEFAULT_RETRY_DELAY_SECONDS
        self.retry_delay_seconds = retry_delay_seconds

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["isRateLimitError"] = True
        payload["retryDelaySeconds"] = self.retry_delay_seconds
        return payload


class UpstreamGenerationError(TenderError):
    """The model call failed for any reason other than throttling."""

    status_code = 500


class StorageError(TenderError):
    """A persistence or file storage write failed."""

    status_code = 500


class BatchSchemaError(UpstreamGenerationError):
    """A batch response did not match the requested work packages."""
