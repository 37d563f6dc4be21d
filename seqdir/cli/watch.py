"""Watch command for seqdir CLI.

Polls one or more run directories on a fixed interval and reports every phase
or availability change. The loop lives here; the managers never poll on their
own.
"""

import json
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console

from seqdir.cli.run import format_availability, format_phase
from seqdir.exceptions import SeqDirException
from seqdir.manager import DirManager, SeqDirState
from seqdir.watchlist import Watchlist, WatchTarget

LOGGER = logging.getLogger("seqdir.cli.watch")

console = Console()


def _changed(old: SeqDirState, new: SeqDirState) -> bool:
    return old.phase is not new.phase or old.availability != new.availability


def _emit(label: str, state: SeqDirState, as_json: bool) -> None:
    if as_json:
        record = {"label": label}
        record.update(state.to_dict())
        typer.echo(json.dumps(record))
        return
    console.print(
        f"[bold]{label}[/bold]  {format_phase(state.phase)}  {format_availability(state)}"
    )


def _resolve_targets(paths: Optional[List[Path]], watchlist: Optional[Path]) -> List[WatchTarget]:
    if paths:
        return [WatchTarget(path=p) for p in paths]

    from seqdir.config import get_settings

    return Watchlist.load(watchlist or get_settings().get_watchlist_path()).targets


def watch_command(
    paths: Optional[List[Path]] = typer.Argument(None, help="Run directories to watch"),
    watchlist: Optional[Path] = typer.Option(None, "--watchlist", "-w", help="Watchlist YAML (used when no paths are given)"),
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Seconds between polls (default from settings)"),
    max_polls: Optional[int] = typer.Option(None, "--max-polls", "-n", help="Stop after this many polls"),
    until_terminal: bool = typer.Option(False, "--until-terminal", help="Stop once every run is Complete or Failed"),
    as_json: bool = typer.Option(False, "--json", help="Emit one JSON record per change"),
):
    """Poll run directories and report phase changes (Ctrl+C to stop)."""
    from seqdir.config import get_settings

    settings = get_settings()
    policy = settings.get_status_error_policy()
    poll_interval = interval if interval is not None else settings.poll_interval_seconds

    targets = _resolve_targets(paths, watchlist)
    if not targets:
        console.print("[red]✗[/red]  No run directories to watch")
        console.print("   Pass paths: [cyan]seqdir watch /path/to/run[/cyan]")
        console.print("   Or list them in a watchlist: [cyan]seqdir watch --watchlist runs.yaml[/cyan]")
        raise typer.Exit(1)

    managers: List[Tuple[str, DirManager]] = []
    for target in targets:
        try:
            managers.append((target.label, DirManager(target.path, status_error_policy=policy)))
        except SeqDirException as e:
            console.print(f"[yellow]⚠[/yellow]  Skipping {target.label}: {e.message}")

    if not managers:
        console.print("[red]✗[/red]  None of the run directories could be opened")
        raise typer.Exit(1)

    for label, manager in managers:
        _emit(label, manager.current(), as_json)

    polls = 0
    try:
        while True:
            if until_terminal and all(m.current().is_terminal for _, m in managers):
                LOGGER.info("All %d runs are terminal", len(managers))
                break
            if max_polls is not None and polls >= max_polls:
                break
            time.sleep(poll_interval)
            for label, manager in managers:
                previous = manager.current()
                try:
                    state = manager.advance()
                except SeqDirException as e:
                    LOGGER.error("Failed to poll %s: %s", label, e.message)
                    continue
                except Exception:
                    LOGGER.exception("Failed to poll %s", label)
                    continue
                if _changed(previous, state):
                    _emit(label, state, as_json)
            polls += 1
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠[/yellow]  Watch stopped")
