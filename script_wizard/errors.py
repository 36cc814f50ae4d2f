"""Error types raised by the wizard engine."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of a failed generation call."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER = "server"
    UNKNOWN = "unknown"


class GenerationError(Exception):
    """A classified failure of a call to the generation service.

    Attributes:
        kind: What went wrong (network, timeout, server, unknown).
        message: Human readable description.
        retryable: Whether offering the user a retry makes sense.
        status_code: HTTP status when the failure came from a response.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retryable: bool,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.retryable = retryable
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"GenerationError(kind={self.kind.value!r}, message={self.message!r}, "
            f"retryable={self.retryable}, status_code={self.status_code})"
        )


class WizardError(Exception):
    """Base class for invalid use of the wizard engine."""


class TransitionError(WizardError):
    """Raised when a step transition is requested from the wrong step."""


class RefinementBusyError(WizardError):
    """Raised when user input arrives while a question is loading or typing."""
