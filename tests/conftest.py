"""Pytest configuration and shared fixtures."""

import datetime as dt
import itertools
import os

import pytest

from seqdir.config import clear_settings_cache

RUN_NAME = "20231231_foo_ABCXYZ"


def completion_xml(
    status: str = "CompletedAsPlanned",
    run_id: str = RUN_NAME,
    description: str = "None",
) -> str:
    """Render a RunCompletionStatus.xml document as written by the instrument."""
    return (
        '<?xml version="1.0"?>\n'
        '<RunCompletionStatus xmlns:xsd="http://www.w3.org/2001/XMLSchema" '
        'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">\n'
        f"  <CompletionStatus>{status}</CompletionStatus>\n"
        f"  <RunId>{run_id}</RunId>\n"
        f"  <ErrorDescription>{description}</ErrorDescription>\n"
        "  <CalculatedCycles>318</CalculatedCycles>\n"
        "</RunCompletionStatus>\n"
    )


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep SEQDIR_* variables and stray .env files out of every test."""
    for key in list(os.environ):
        if key.startswith("SEQDIR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def make_run(tmp_path):
    """Factory building a run directory under tmp_path.

    Args (of the returned callable):
        name: Directory name.
        markers: Marker files to create (e.g. "SequenceComplete.txt").
        status: CompletionStatus text to write into RunCompletionStatus.xml.
        raw_status: Raw RunCompletionStatus.xml contents (overrides ``status``).
    """
    def _make(
        name=RUN_NAME,
        markers=(),
        status=None,
        description="None",
        raw_status=None,
    ):
        root = tmp_path / "runs" / name
        root.mkdir(parents=True)
        (root / "SampleSheet.csv").write_text("[Header]\nIEMFileVersion,5\n")
        (root / "RunInfo.xml").write_text('<?xml version="1.0"?><RunInfo/>')
        (root / "RunParameters.xml").write_text('<?xml version="1.0"?><RunParameters/>')
        for marker in markers:
            (root / marker).touch()
        if raw_status is not None:
            (root / "RunCompletionStatus.xml").write_text(raw_status)
        elif status is not None:
            (root / "RunCompletionStatus.xml").write_text(
                completion_xml(status=status, run_id=name, description=description)
            )
        return root

    return _make


@pytest.fixture
def clock(monkeypatch):
    """Deterministic UTC clock for the manager: every reading is one second later."""
    start = dt.datetime(2024, 1, 1, 12, 0, 0, tzinfo=dt.timezone.utc)
    ticks = itertools.count()

    def _now():
        return start + dt.timedelta(seconds=next(ticks))

    monkeypatch.setattr("seqdir.manager._utcnow", _now)
    return start
