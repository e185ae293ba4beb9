"""Exception hierarchy for talos."""

from __future__ import annotations


class TalosError(Exception):
    """Base exception for all talos errors."""

    kind = "error"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def describe(self) -> str:
        """Human-readable, single-line description for callers."""
        text = f"Error ({self.kind}): {self}"
        if self.hint:
            text += f" Hint: {self.hint}"
        return text


class StorageError(TalosError):
    """The conversation database could not be read or written."""

    kind = "storage"


class InvalidIdentifier(TalosError):
    """A conversation or message identifier is malformed."""

    kind = "invalid-identifier"


class CompletionError(TalosError):
    """A call to the completion service failed."""

    kind = "completion"


class ServiceUnavailable(CompletionError):
    """The completion service could not be reached (or timed out)."""

    kind = "service-unavailable"


class ServiceError(CompletionError):
    """The completion service answered with a non-success status."""

    kind = "service-error"

    def __init__(
        self, message: str, *, hint: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code


class ProtocolError(CompletionError):
    """The completion service answered with a payload of the wrong shape."""

    kind = "protocol"


class EmptyResponse(CompletionError):
    """The completion service reported success but sent no message."""

    kind = "empty-response"
