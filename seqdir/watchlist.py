"""Watchlist loader for ~/.config/seqdir/watchlist.yaml.

The watchlist names the run directories `seqdir watch` should follow when no
paths are given on the command line. Two entry formats are accepted::

    runs:
      - /data/runs/20231231_foo_ABCXYZ
      - path: /data/runs/20240101_bar_DEFGHI
        label: bar
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml  # type: ignore[import-untyped]

LOGGER = logging.getLogger("seqdir.watchlist")

DEFAULT_WATCHLIST_PATH = Path.home() / ".config" / "seqdir" / "watchlist.yaml"
WATCHLIST_ENV_VAR = "SEQDIR_WATCHLIST_PATH"

# Expected schema fields
VALID_FIELDS = {
    "runs": (list, "List of run directories to watch"),
}
VALID_ENTRY_FIELDS = {"path", "label"}


def validate_watchlist_file(path: Path) -> Tuple[bool, List[str], List[str]]:
    """Validate a watchlist file for correct YAML format and schema.

    Args:
        path: Path to the watchlist file.

    Returns:
        Tuple of (is_valid, errors, warnings).
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not path.exists():
        errors.append(f"Watchlist file not found: {path}")
        return False, errors, warnings

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        errors.append(f"Invalid YAML syntax: {e}")
        return False, errors, warnings
    except UnicodeDecodeError as e:
        errors.append(f"Watchlist file is not valid UTF-8: {e}")
        return False, errors, warnings

    if data is None:
        errors.append("Watchlist file is empty")
        return False, errors, warnings

    if not isinstance(data, dict):
        errors.append(f"Watchlist must be a YAML mapping, got {type(data).__name__}")
        return False, errors, warnings

    for key in data.keys():
        if key not in VALID_FIELDS:
            warnings.append(f"Unknown field '{key}' (will be ignored)")

    runs = data.get("runs", [])
    if not isinstance(runs, list):
        errors.append(f"'runs' must be a list, got {type(runs).__name__}")
        return False, errors, warnings

    for i, entry in enumerate(runs):
        if isinstance(entry, str):
            if not entry.strip():
                errors.append(f"runs[{i}] is an empty path")
        elif isinstance(entry, dict):
            run_path = entry.get("path")
            if not isinstance(run_path, str) or not run_path.strip():
                errors.append(f"runs[{i}] must have a non-empty 'path' string")
            label = entry.get("label")
            if label is not None and not isinstance(label, str):
                errors.append(f"runs[{i}]['label'] must be a string, got {type(label).__name__}")
            for key in entry.keys():
                if key not in VALID_ENTRY_FIELDS:
                    warnings.append(f"runs[{i}] has unknown field '{key}' (will be ignored)")
        else:
            errors.append(f"runs[{i}] must be a string or mapping, got {type(entry).__name__}")

    return len(errors) == 0, errors, warnings


@dataclass
class WatchTarget:
    """A run directory to watch.

    Attributes:
        path: Root of the run directory, with ~ expanded.
        label: Display name; defaults to the directory name.
    """

    path: Path
    label: str = ""

    def __post_init__(self):
        self.path = Path(self.path).expanduser()
        if not self.label:
            self.label = self.path.name or str(self.path)


@dataclass
class Watchlist:
    """Run directories loaded from a watchlist YAML file."""

    targets: List[WatchTarget] = field(default_factory=list)
    config_path: Optional[Path] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Watchlist":
        """Load the watchlist.

        Resolution order: explicit ``path``, then SEQDIR_WATCHLIST_PATH, then
        ~/.config/seqdir/watchlist.yaml. A missing or invalid file yields an
        empty watchlist; the problems are logged.
        """
        if path is None:
            env_path = os.environ.get(WATCHLIST_ENV_VAR)
            path = Path(env_path).expanduser() if env_path else DEFAULT_WATCHLIST_PATH

        if not path.exists():
            LOGGER.warning("Watchlist not found at %s", path)
            return cls(config_path=path)

        is_valid, errors, warnings = validate_watchlist_file(path)
        for warn in warnings:
            LOGGER.warning("%s: %s", path, warn)
        if not is_valid:
            for err in errors:
                LOGGER.error("%s: %s", path, err)
            return cls(config_path=path)

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        targets: List[WatchTarget] = []
        for entry in data.get("runs", []):
            if isinstance(entry, str):
                targets.append(WatchTarget(path=Path(entry.strip())))
            else:
                targets.append(
                    WatchTarget(path=Path(entry["path"].strip()), label=entry.get("label") or "")
                )

        LOGGER.info("Loaded watchlist from %s with %d runs", path, len(targets))
        return cls(targets=targets, config_path=path)

    @property
    def is_configured(self) -> bool:
        return len(self.targets) > 0

    def paths(self) -> List[Path]:
        return [t.path for t in self.targets]
