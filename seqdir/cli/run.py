"""Single-run inspection commands for seqdir CLI."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from seqdir.exceptions import SeqDirException
from seqdir.manager import DirManager, Phase, SeqDirState
from seqdir.seq_dir import SeqDir

run_app = typer.Typer(help="Single run directory commands")
console = Console()

PHASE_STYLES = {
    Phase.SEQUENCING: "yellow",
    Phase.TRANSFERRING: "cyan",
    Phase.COMPLETE: "green",
    Phase.FAILED: "red",
}


def format_phase(phase: Phase) -> str:
    style = PHASE_STYLES[phase]
    return f"[{style}]{phase.value}[/{style}]"


def format_availability(state: SeqDirState) -> str:
    availability = state.availability
    stamp = availability.changed_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    if state.available:
        return f"[green]Available[/green] [dim](since {stamp})[/dim]"
    return f"[red]Unavailable[/red] [dim](since {stamp})[/dim]"


def _marker(present: bool) -> str:
    return "[green]✓[/green]" if present else "[dim]–[/dim]"


def _open_manager(path: Path) -> DirManager:
    from seqdir.config import get_settings

    settings = get_settings()
    try:
        return DirManager(path, status_error_policy=settings.get_status_error_policy())
    except SeqDirException as e:
        console.print(f"[red]✗[/red]  {e.message}")
        raise typer.Exit(1)


@run_app.command("status")
def status(
    path: Path = typer.Argument(..., help="Run directory"),
    as_json: bool = typer.Option(False, "--json", help="Print the serialized state"),
):
    """Show the lifecycle phase of a run directory."""
    manager = _open_manager(path)
    state = manager.current()

    if as_json:
        typer.echo(state.to_json())
        return

    seq_dir = state.dir()
    table = Table(title=f"Run {seq_dir.root.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Root", str(seq_dir.root))
    table.add_row("Phase", format_phase(state.phase))
    table.add_row("Since", state.since.strftime("%Y-%m-%d %H:%M:%S UTC"))
    table.add_row("Availability", format_availability(state))
    table.add_row("RTAComplete.txt", _marker(seq_dir.is_rta_complete()))
    table.add_row("SequenceComplete.txt", _marker(seq_dir.is_sequence_complete()))
    table.add_row("CopyComplete.txt", _marker(seq_dir.is_copy_complete()))

    try:
        completion = seq_dir.get_completion_status()
    except SeqDirException as e:
        table.add_row("Completion Status", f"[yellow]unreadable[/yellow] [dim]({e.message})[/dim]")
    else:
        if completion is None:
            table.add_row("Completion Status", "[dim]not present[/dim]")
        else:
            table.add_row("Completion Status", str(completion))

    console.print(table)


@run_app.command("completion")
def completion(
    path: Path = typer.Argument(..., help="Run directory"),
    as_json: bool = typer.Option(False, "--json", help="Print the serialized completion status"),
):
    """Parse RunCompletionStatus.xml for a run directory."""
    try:
        seq_dir = SeqDir.from_path(path)
        status = seq_dir.get_completion_status()
    except SeqDirException as e:
        console.print(f"[red]✗[/red]  {e.message}")
        raise typer.Exit(1)

    if status is None:
        console.print(f"[yellow]⚠[/yellow]  No completion status found for {seq_dir.root}")
        return

    if as_json:
        typer.echo(json.dumps(status.to_dict()))
        return

    style = "green" if status.is_completed_as_planned else "red"
    console.print(f"[{style}]{status.kind.value}[/{style}]  {status.run_id}")
    if status.message.message:
        console.print(f"   [dim]{status.message.message}[/dim]")


@run_app.command("check-complete")
def check_complete(
    path: Path = typer.Argument(..., help="Run directory"),
):
    """Exit 0 only if the run is copied and completed as planned."""
    try:
        seq_dir = SeqDir.from_completed(path)
    except SeqDirException as e:
        console.print(f"[red]✗[/red]  {e.message}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green]  {seq_dir.root} is complete")
