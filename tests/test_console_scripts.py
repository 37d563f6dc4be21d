from __future__ import annotations

import importlib
from pathlib import Path


def _read_project_scripts(pyproject: Path) -> dict[str, str]:
    """Parse the [project.scripts] table from pyproject.toml.

    The section only holds plain string entries, so a line scan is enough.
    """

    scripts: dict[str, str] = {}
    in_section = False
    for raw_line in pyproject.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("[") and line.endswith("]"):
            in_section = line == "[project.scripts]"
            continue
        if not in_section or "=" not in line:
            continue
        key, value = line.split("=", 1)
        scripts[key.strip()] = value.strip().strip('"')
    return scripts


def test_console_script_entrypoints_are_importable_and_callable():
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    scripts = _read_project_scripts(pyproject)
    assert scripts == {"seqdir": "seqdir.cli:main"}

    for name, target in scripts.items():
        module_name, func_name = target.split(":", 1)
        module = importlib.import_module(module_name)
        func = getattr(module, func_name)
        assert callable(func), f"Console script {name!r} target is not callable: {target!r}"


def test_main_runs_typer_app(monkeypatch):
    import seqdir.cli as cli_mod

    calls = []
    monkeypatch.setattr(cli_mod, "app", lambda: calls.append("app"))
    cli_mod.main()
    assert calls == ["app"]
