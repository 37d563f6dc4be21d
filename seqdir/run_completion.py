"""Parse RunCompletionStatus.xml.

Illumina instruments may write RunCompletionStatus.xml at the end of a run. The
document classifies how the run ended and, when it ended early, usually carries
an ErrorDescription. Only three elements are read; everything else is ignored:

- RunId (required)
- CompletionStatus (required)
- ErrorDescription (optional, the literal text "None" means no message)
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from seqdir.exceptions import MalformedStatusDocumentError, SeqDirNotFoundError

LOGGER = logging.getLogger("seqdir.run_completion")

RUN_ID = "RunId"
COMPLETION_STATUS = "CompletionStatus"
ERROR_DESCRIPTION = "ErrorDescription"


class CompletionKind(str, Enum):
    """How a run ended, as reported by the instrument."""
    COMPLETED_AS_PLANNED = "CompletedAsPlanned"
    EXCEPTION_ENDED_EARLY = "ExceptionEndedEarly"
    USER_ENDED_EARLY = "UserEndedEarly"
    OTHER = "Other"

    @classmethod
    def from_text(cls, text: str) -> "CompletionKind":
        for kind in cls:
            if kind is not cls.OTHER and kind.value == text:
                return kind
        return cls.OTHER


@dataclass(frozen=True)
class Message:
    """A run id and optional message content."""

    run_id: str
    message: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.run_id} : {self.message if self.message is not None else 'None'}"


@dataclass(frozen=True)
class CompletionStatus:
    """The completion status of a run as extracted from RunCompletionStatus.xml."""

    kind: CompletionKind
    message: Message

    @property
    def is_completed_as_planned(self) -> bool:
        return self.kind is CompletionKind.COMPLETED_AS_PLANNED

    @property
    def run_id(self) -> str:
        return self.message.run_id

    def __str__(self) -> str:
        return f"{self.kind.value} : {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "completion_status": self.kind.value,
            "run_id": self.message.run_id,
            "message": self.message.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionStatus":
        return cls(
            kind=CompletionKind(data["completion_status"]),
            message=Message(run_id=data["run_id"], message=data.get("message")),
        )


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _find_text(root: ET.Element, name: str) -> Tuple[bool, Optional[str]]:
    """Return (found, stripped text) for the first element named ``name``."""
    for elem in root.iter():
        if _local_name(elem.tag) == name:
            text = (elem.text or "").strip()
            return True, text or None
    return False, None


def parse_run_completion(path: Union[str, Path]) -> CompletionStatus:
    """Parse a file in the format of RunCompletionStatus.xml.

    Args:
        path: Path to the document.

    Returns:
        CompletionStatus wrapping the associated Message.

    Raises:
        SeqDirNotFoundError: The document cannot be opened or read.
        MalformedStatusDocumentError: The document is not XML or lacks a
            required element.
    """
    path = Path(path)
    try:
        raw_contents = path.read_bytes()
    except OSError as e:
        raise SeqDirNotFoundError(path, f"cannot read {path}: {e}") from e

    try:
        root = ET.fromstring(raw_contents)
    except ET.ParseError as e:
        raise MalformedStatusDocumentError(path, f"could not parse as XML: {e}") from e

    found, run_id = _find_text(root, RUN_ID)
    if not found:
        raise MalformedStatusDocumentError(path, "missing RunId tag")
    if run_id is None:
        raise MalformedStatusDocumentError(path, "RunId tag is empty")

    _, description = _find_text(root, ERROR_DESCRIPTION)
    if description == "None":
        description = None
    message = Message(run_id=run_id, message=description)

    found, status_text = _find_text(root, COMPLETION_STATUS)
    if not found:
        raise MalformedStatusDocumentError(path, "missing CompletionStatus tag")
    if status_text is None:
        raise MalformedStatusDocumentError(path, "CompletionStatus tag is empty")

    status = CompletionStatus(kind=CompletionKind.from_text(status_text), message=message)
    LOGGER.debug("Parsed %s: %s", path, status)
    return status
