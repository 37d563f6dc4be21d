"""Illumina sequencing directory handle.

A SeqDir is an immutable set of resolved paths plus predicates that classify
the instrument's progress from marker files. No predicate caches anything:
every call goes back to the filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from seqdir.exceptions import (
    SeqDirNotFoundError,
    UnexpectedCompletionStatusError,
)
from seqdir.run_completion import CompletionStatus, parse_run_completion

COPY_COMPLETE_TXT = "CopyComplete.txt"
RTA_COMPLETE_TXT = "RTAComplete.txt"
SEQUENCE_COMPLETE_TXT = "SequenceComplete.txt"
SAMPLESHEET_CSV = "SampleSheet.csv"
RUN_INFO_XML = "RunInfo.xml"
RUN_PARAMS_XML = "RunParameters.xml"
RUN_COMPLETION_STATUS_XML = "RunCompletionStatus.xml"

PathLike = Union[str, Path]


def path_is_dir(path: PathLike) -> bool:
    """Path.is_dir() that treats any OSError (e.g. EACCES) as absent."""
    try:
        return Path(path).is_dir()
    except OSError:
        return False


def path_is_file(path: PathLike) -> bool:
    try:
        return Path(path).is_file()
    except OSError:
        return False


def path_exists(path: PathLike) -> bool:
    try:
        return Path(path).exists()
    except OSError:
        return False


@dataclass(frozen=True)
class SeqDir:
    """An Illumina sequencing directory."""

    root: Path
    samplesheet_path: Path = field(repr=False)
    run_info_path: Path = field(repr=False)
    run_params_path: Path = field(repr=False)
    run_completion_path: Path = field(repr=False)

    @classmethod
    def for_root(cls, path: PathLike) -> "SeqDir":
        """Build a handle for ``path`` without checking that it exists."""
        root = Path(path)
        return cls(
            root=root,
            samplesheet_path=root / SAMPLESHEET_CSV,
            run_info_path=root / RUN_INFO_XML,
            run_params_path=root / RUN_PARAMS_XML,
            run_completion_path=root / RUN_COMPLETION_STATUS_XML,
        )

    @classmethod
    def from_path(cls, path: PathLike) -> "SeqDir":
        """Create a new SeqDir.

        Succeeds as long as ``path`` is a directory. To enforce that the
        directory is a completed sequencing directory, use ``from_completed``.

        Raises:
            SeqDirNotFoundError: ``path`` is not a directory.
        """
        if not path_is_dir(path):
            raise SeqDirNotFoundError(path)
        return cls.for_root(path)

    @classmethod
    def from_completed(cls, path: PathLike) -> "SeqDir":
        """Create a new SeqDir from a completed sequencing directory.

        Completion is determined by the following:
        1. CopyComplete.txt is present
        2. RunCompletionStatus.xml, if present, is CompletedAsPlanned

        Not every platform writes RunCompletionStatus.xml, so its absence is
        accepted.

        Raises:
            SeqDirNotFoundError: ``path`` is not a directory or CopyComplete.txt
                is missing.
            MalformedStatusDocumentError: RunCompletionStatus.xml cannot be parsed.
            UnexpectedCompletionStatusError: The run did not complete as planned.
        """
        seq_dir = cls.from_path(path)
        if not seq_dir.is_copy_complete():
            raise SeqDirNotFoundError(seq_dir.root / COPY_COMPLETE_TXT)

        status = seq_dir.get_completion_status()
        if status is not None and not status.is_completed_as_planned:
            raise UnexpectedCompletionStatusError(status)
        return seq_dir

    def try_root(self) -> Path:
        """Return the root, or raise SeqDirNotFoundError if it is not a directory."""
        if not path_is_dir(self.root):
            raise SeqDirNotFoundError(self.root)
        return self.root

    def is_available(self) -> bool:
        """Returns True if the root directory resolves."""
        return path_is_dir(self.root)

    def is_unavailable(self) -> bool:
        return not self.is_available()

    def is_copy_complete(self) -> bool:
        return path_exists(self.root / COPY_COMPLETE_TXT)

    def is_rta_complete(self) -> bool:
        return path_exists(self.root / RTA_COMPLETE_TXT)

    def is_sequence_complete(self) -> bool:
        return path_exists(self.root / SEQUENCE_COMPLETE_TXT)

    def is_sequencing(self) -> bool:
        """Returns True if SequenceComplete.txt is not present."""
        return not self.is_sequence_complete()

    def get_file(self, path: PathLike) -> Path:
        """Get an arbitrary file rooted at the base of the sequencing directory.

        Raises:
            SeqDirNotFoundError: The file does not exist.
        """
        candidate = self.root / path
        if not path_is_file(candidate):
            raise SeqDirNotFoundError(candidate)
        return candidate

    def samplesheet(self) -> Path:
        return self._require_file(self.samplesheet_path)

    def run_info(self) -> Path:
        return self._require_file(self.run_info_path)

    def run_params(self) -> Path:
        return self._require_file(self.run_params_path)

    def run_completion_status(self) -> Optional[Path]:
        """Path to RunCompletionStatus.xml, or None if it has not been written.

        Not all sequencers or platform versions generate this file.
        """
        if path_is_file(self.run_completion_path):
            return self.run_completion_path
        return None

    def get_completion_status(self) -> Optional[CompletionStatus]:
        """Parse RunCompletionStatus.xml if it exists.

        Returns:
            None when the document is absent, else the parsed status.

        Raises:
            SeqDirNotFoundError: The document vanished or could not be read.
            MalformedStatusDocumentError: The document could not be parsed.
        """
        path = self.run_completion_status()
        if path is None:
            return None
        return parse_run_completion(path)

    def is_failed(self) -> bool:
        """Determine whether the run has failed sequencing.

        Unlike the other predicates this is fallible, because it must parse a
        file. A missing RunCompletionStatus.xml means the run has not failed.
        """
        status = self.get_completion_status()
        if status is None:
            return False
        return not status.is_completed_as_planned

    def to_dict(self) -> Dict[str, Any]:
        """Fields flattened into serialized states; the other paths derive from root."""
        return {"root": str(self.root)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeqDir":
        return cls.for_root(data["root"])

    @staticmethod
    def _require_file(path: Path) -> Path:
        if not path_is_file(path):
            raise SeqDirNotFoundError(path)
        return path
