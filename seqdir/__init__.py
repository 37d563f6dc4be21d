"""
seqdir - Monitor Illumina sequencing run directories.

This package provides:
- A handle over a run directory and its marker-file predicates
- A parser for RunCompletionStatus.xml
- A poll-driven state machine reporting Sequencing / Transferring / Complete / Failed
"""

__version__ = "0.1.0"

from seqdir.exceptions import (
    MalformedStatusDocumentError,
    SeqDirException,
    SeqDirNotFoundError,
    UnexpectedCompletionStatusError,
)
from seqdir.manager import (
    Availability,
    DirManager,
    Phase,
    SeqDirState,
    StatusErrorPolicy,
)
from seqdir.run_completion import (
    CompletionKind,
    CompletionStatus,
    Message,
    parse_run_completion,
)
from seqdir.seq_dir import SeqDir

__all__ = [
    "__version__",
    "Availability",
    "CompletionKind",
    "CompletionStatus",
    "DirManager",
    "MalformedStatusDocumentError",
    "Message",
    "Phase",
    "SeqDir",
    "SeqDirException",
    "SeqDirNotFoundError",
    "SeqDirState",
    "StatusErrorPolicy",
    "UnexpectedCompletionStatusError",
    "parse_run_completion",
]
