"""Monitor the state of a sequencing directory.

The manager implements a state machine over four phases::

    Sequencing   -> Sequencing | Failed | Transferring | Complete
    Transferring -> Transferring | Failed | Complete
    Complete     -> Complete
    Failed       -> Failed

Self-transitions are explicit because even the terminal phases (Complete and
Failed) still refresh their Availability on every call to
``DirManager.advance()``.

States are frozen values. Each advance consumes the current state and builds a
brand-new one through the rule registered for its phase. The rules rely
entirely on the predicates of the wrapped SeqDir.

The state machine only moves when it is advanced. It never progresses on its
own, and it never writes to the directory.

All states serialize to a flat, tagged record so they can be emitted as events.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Optional, Union

from seqdir.exceptions import (
    InvalidStateTransitionError,
    ManagerClosedError,
    SeqDirException,
)
from seqdir.seq_dir import SeqDir, path_is_dir

LOGGER = logging.getLogger("seqdir.manager")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _format_timestamp(value: dt.datetime) -> str:
    return value.astimezone(dt.timezone.utc).isoformat()


def _parse_timestamp(value: str) -> dt.datetime:
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


class StatusErrorPolicy(str, Enum):
    """What advance() does when RunCompletionStatus.xml cannot be read or parsed."""
    IGNORE = "ignore"  # Log and treat the run as not failed
    RAISE = "raise"  # Propagate the error; stored state is left untouched


class AvailabilityStatus(str, Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"


@dataclass(frozen=True)
class Availability:
    """The availability of a directory.

    Determined by whether the root resolves to a directory. ``changed_at`` is
    when the availability last flipped, in UTC.
    """

    status: AvailabilityStatus
    changed_at: dt.datetime

    @classmethod
    def available(cls, at: Optional[dt.datetime] = None) -> "Availability":
        return cls(AvailabilityStatus.AVAILABLE, at or _utcnow())

    @classmethod
    def unavailable(cls, at: Optional[dt.datetime] = None) -> "Availability":
        return cls(AvailabilityStatus.UNAVAILABLE, at or _utcnow())

    @property
    def is_available(self) -> bool:
        return self.status is AvailabilityStatus.AVAILABLE

    def check(self, path: Union[str, Path]) -> "Availability":
        """Compare self to the current availability of ``path``.

        If it differs, return the other variant stamped with the current time.
        Otherwise return self, original timestamp included.
        """
        exists = path_is_dir(path)
        if exists == self.is_available:
            return self
        if exists:
            return Availability.available()
        return Availability.unavailable()

    def to_dict(self) -> Dict[str, str]:
        return {self.status.value: _format_timestamp(self.changed_at)}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Availability":
        if len(data) != 1:
            raise ValueError(f"expected a single availability tag, got {sorted(data)}")
        ((tag, timestamp),) = data.items()
        return cls(AvailabilityStatus(tag), _parse_timestamp(timestamp))

    def __str__(self) -> str:
        return f"{self.status.value} since {_format_timestamp(self.changed_at)}"


class Phase(str, Enum):
    """Lifecycle phase of a sequencing run."""
    SEQUENCING = "Sequencing"
    TRANSFERRING = "Transferring"
    COMPLETE = "Complete"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.COMPLETE, Phase.FAILED)


LEGAL_SUCCESSORS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.SEQUENCING: frozenset(
        {Phase.SEQUENCING, Phase.FAILED, Phase.TRANSFERRING, Phase.COMPLETE}
    ),
    Phase.TRANSFERRING: frozenset({Phase.TRANSFERRING, Phase.FAILED, Phase.COMPLETE}),
    Phase.COMPLETE: frozenset({Phase.COMPLETE}),
    Phase.FAILED: frozenset({Phase.FAILED}),
}


def is_legal_transition(current: Phase, target: Phase) -> bool:
    return target in LEGAL_SUCCESSORS[current]


@dataclass(frozen=True)
class SeqDirState:
    """The current state of a SeqDir.

    ``since`` is when the phase was entered. ``availability`` tracks the root
    independently of the phase.
    """

    phase: Phase
    seq_dir: SeqDir
    since: dt.datetime
    availability: Availability

    def dir(self) -> SeqDir:
        return self.seq_dir

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal

    @property
    def available(self) -> bool:
        """True if the stored Availability is Available. Does not re-check."""
        return self.availability.is_available

    def refresh_availability(self) -> "SeqDirState":
        """Return this state with availability re-checked; phase and since are kept."""
        availability = self.availability.check(self.seq_dir.root)
        if availability is self.availability:
            return self
        return replace(self, availability=availability)

    def transition(
        self, status_error_policy: StatusErrorPolicy = StatusErrorPolicy.IGNORE
    ) -> "SeqDirState":
        """Consume this state and produce the next one."""
        return _TRANSITIONS[self.phase](self, status_error_policy)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as a flat record tagged by ``state``."""
        record: Dict[str, Any] = {"state": self.phase.value}
        record.update(self.seq_dir.to_dict())
        record["since"] = _format_timestamp(self.since)
        record["availability"] = self.availability.to_dict()
        return record

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeqDirState":
        try:
            phase = Phase(data["state"])
        except ValueError as e:
            raise ValueError(f"unknown state tag: {data['state']!r}") from e
        return cls(
            phase=phase,
            seq_dir=SeqDir.from_dict(data),
            since=_parse_timestamp(data["since"]),
            availability=Availability.from_dict(data["availability"]),
        )

    @classmethod
    def from_json(cls, payload: str) -> "SeqDirState":
        return cls.from_dict(json.loads(payload))


def _enter(state: SeqDirState, phase: Phase) -> SeqDirState:
    """Move into a new phase: since resets, availability is refreshed."""
    return SeqDirState(
        phase=phase,
        seq_dir=state.seq_dir,
        since=_utcnow(),
        availability=state.availability.check(state.seq_dir.root),
    )


def _is_failed(seq_dir: SeqDir, policy: StatusErrorPolicy) -> bool:
    try:
        return seq_dir.is_failed()
    except SeqDirException as e:
        if policy is StatusErrorPolicy.RAISE:
            raise
        LOGGER.warning(
            "Ignoring unreadable completion status for %s: %s", seq_dir.root, e.message
        )
        return False


def _from_sequencing(state: SeqDirState, policy: StatusErrorPolicy) -> SeqDirState:
    """Sequencing may move to any other phase.

    Availability is checked first; an unavailable directory does not move.
    A failed completion status moves to Failed. While SequenceComplete.txt is
    absent the state is returned as-is, availability included. With
    CopyComplete.txt present the run is Complete; otherwise it is Transferring.
    """
    seq_dir = state.seq_dir
    if seq_dir.is_unavailable():
        return state.refresh_availability()
    if _is_failed(seq_dir, policy):
        return _enter(state, Phase.FAILED)
    if seq_dir.is_sequencing():
        # Availability is not refreshed while sequencing.
        # TODO: confirm with dashboard consumers whether this branch should refresh it too
        return state
    if seq_dir.is_copy_complete():
        return _enter(state, Phase.COMPLETE)
    return _enter(state, Phase.TRANSFERRING)


def _from_transferring(state: SeqDirState, policy: StatusErrorPolicy) -> SeqDirState:
    """Transferring may move to Complete or Failed.

    CopyComplete.txt wins over a failed completion status.
    """
    seq_dir = state.seq_dir
    if seq_dir.is_unavailable():
        return state.refresh_availability()
    if seq_dir.is_copy_complete():
        return _enter(state, Phase.COMPLETE)
    if _is_failed(seq_dir, policy):
        return _enter(state, Phase.FAILED)
    return state.refresh_availability()


def _terminal(state: SeqDirState, policy: StatusErrorPolicy) -> SeqDirState:
    return state.refresh_availability()


_TRANSITIONS: Dict[Phase, Callable[[SeqDirState, StatusErrorPolicy], SeqDirState]] = {
    Phase.SEQUENCING: _from_sequencing,
    Phase.TRANSFERRING: _from_transferring,
    Phase.COMPLETE: _terminal,
    Phase.FAILED: _terminal,
}


class DirManager:
    """State machine managing a single SeqDir.

    Once a directory has gone to Complete or Failed it cannot move to another
    phase, but its Availability may still change on every advance().

    Not thread-safe: callers sharing a manager must serialize access.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        status_error_policy: Optional[StatusErrorPolicy] = None,
        require_complete: bool = False,
    ):
        """Construct a new DirManager from a path.

        The initial phase is always Sequencing, but advance() is called before
        returning, so the state reflects the directory.

        Args:
            path: Root of the sequencing directory.
            status_error_policy: How advance() treats an unreadable
                RunCompletionStatus.xml. Defaults to IGNORE.
            require_complete: Refuse directories that are not complete, see
                SeqDir.from_completed.

        Raises:
            SeqDirNotFoundError: ``path`` is not a directory.
        """
        if require_complete:
            seq_dir = SeqDir.from_completed(path)
        else:
            seq_dir = SeqDir.from_path(path)
        self.status_error_policy = StatusErrorPolicy(
            status_error_policy or StatusErrorPolicy.IGNORE
        )
        now = _utcnow()
        self._state: Optional[SeqDirState] = SeqDirState(
            phase=Phase.SEQUENCING,
            seq_dir=seq_dir,
            since=now,
            availability=Availability.available(now),
        )
        self.advance()
        LOGGER.info("Managing %s (%s)", seq_dir.root, self.current().phase.value)

    @classmethod
    def from_completed(
        cls,
        path: Union[str, Path],
        *,
        status_error_policy: Optional[StatusErrorPolicy] = None,
    ) -> "DirManager":
        """Construct a manager over a directory that must already be complete."""
        return cls(path, status_error_policy=status_error_policy, require_complete=True)

    def _require_state(self) -> SeqDirState:
        if self._state is None:
            raise ManagerClosedError()
        return self._state

    def advance(self) -> SeqDirState:
        """Perform a transition, possibly updating the state.

        Returns the new state. The next state is fully built before it replaces
        the current one, so an error leaves the manager unchanged.
        """
        current = self._require_state()
        new_state = current.transition(self.status_error_policy)
        if not is_legal_transition(current.phase, new_state.phase):
            raise InvalidStateTransitionError(
                f"{current.phase.value} -> {new_state.phase.value} is not a legal transition",
                details={"from": current.phase.value, "to": new_state.phase.value},
            )
        self._state = new_state
        self._log_change(current, new_state)
        return new_state

    def current(self) -> SeqDirState:
        """The present state. Does not advance anything."""
        return self._require_state()

    @property
    def state(self) -> SeqDirState:
        return self.current()

    def since(self) -> dt.datetime:
        """Timestamp of when the SeqDir entered its current phase."""
        return self._require_state().since

    def inner(self) -> SeqDir:
        """The SeqDir being managed."""
        return self._require_state().seq_dir

    def check_available(self) -> bool:
        """Re-check availability only, possibly updating it, and return it."""
        current = self._require_state()
        new_state = current.refresh_availability()
        self._state = new_state
        self._log_change(current, new_state)
        return new_state.available

    def unwrap(self) -> SeqDir:
        """Give up the manager, returning the SeqDir regardless of phase.

        Discards the phase and its timestamps. Any further use of the manager
        raises ManagerClosedError.
        """
        seq_dir = self._require_state().seq_dir
        self._state = None
        return seq_dir

    def __repr__(self) -> str:
        if self._state is None:
            return "DirManager(<unwrapped>)"
        return f"DirManager({self._state.seq_dir.root!s}, {self._state.phase.value})"

    @staticmethod
    def _log_change(old: SeqDirState, new: SeqDirState) -> None:
        root = new.seq_dir.root
        if old.phase is not new.phase:
            LOGGER.info("%s: %s -> %s", root, old.phase.value, new.phase.value)
        if old.availability.status is not new.availability.status:
            if new.available:
                LOGGER.info("%s is reachable again", root)
            else:
                LOGGER.warning("%s is unreachable", root)
        LOGGER.debug("Polled %s: %s, %s", root, new.phase.value, new.availability)
