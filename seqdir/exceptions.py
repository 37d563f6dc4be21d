"""Exception hierarchy for seqdir.

Every error carries a machine-readable code and a details mapping so it can be
emitted alongside serialized states by event consumers.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

if TYPE_CHECKING:
    from seqdir.run_completion import CompletionStatus


class SeqDirException(Exception):
    """Base exception for all seqdir errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code (e.g., "NOT_FOUND")
        details: Additional error context
    """

    default_code: str = "SEQDIR_ERROR"
    default_message: str = "A sequencing directory error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to an event-friendly mapping."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class SeqDirNotFoundError(SeqDirException):
    """A run root or one of its documents does not resolve."""

    default_code = "NOT_FOUND"
    default_message = "Path not found"

    def __init__(self, path: Union[str, Path], message: Optional[str] = None):
        self.path = Path(path)
        super().__init__(
            message or f"cannot find {self.path} or it is not readable",
            details={"path": str(self.path)},
        )


class MalformedStatusDocumentError(SeqDirException):
    """RunCompletionStatus.xml exists but could not be parsed."""

    default_code = "MALFORMED_STATUS_DOCUMENT"
    default_message = "Run completion status document is malformed"

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(
            f"{self.path}: {reason}",
            details={"path": str(self.path), "reason": reason},
        )


class UnexpectedCompletionStatusError(SeqDirException):
    """A completed run reported something other than CompletedAsPlanned."""

    default_code = "UNEXPECTED_COMPLETION_STATUS"
    default_message = "Unexpected run completion status"

    def __init__(self, status: "CompletionStatus"):
        self.status = status
        super().__init__(
            f"unexpected run completion status: {status}",
            details=status.to_dict(),
        )


class InvalidStateTransitionError(SeqDirException):
    """A transition rule produced a phase that is not a legal successor."""

    default_code = "INVALID_STATE_TRANSITION"
    default_message = "Invalid state transition"


class ManagerClosedError(SeqDirException):
    """The manager was used after its directory was unwrapped."""

    default_code = "MANAGER_CLOSED"
    default_message = "DirManager has been unwrapped and can no longer be used"
