"""seqdir CLI - sequencing run directory monitor using Typer."""

import logging
import sys
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from seqdir.cli.run import run_app
from seqdir.cli.watch import watch_command

console = Console()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    from seqdir.config import get_settings

    try:
        settings = get_settings()
    except ValidationError as e:
        console.print("[red bold]✗ Configuration Error[/red bold]\n")
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"])
            console.print(f"  • SEQDIR_{field.upper()}: {err['msg']}")
        raise typer.Exit(1)

    level = logging.DEBUG if verbose else settings.get_log_level()
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Validate settings and configure logging before commands."""
    _configure_logging(verbose)


app = typer.Typer(
    name="seqdir",
    help="seqdir - Sequencing run directory monitor",
    add_completion=True,
    no_args_is_help=True,
    callback=_main_callback,
)

# Register subcommand groups
app.add_typer(run_app, name="run", help="Inspect a single run directory")
app.command("watch")(watch_command)


@app.command("version")
def version():
    """Show seqdir version."""
    from seqdir import __version__
    console.print(f"seqdir [cyan]{__version__}[/cyan]")


def _format_optional(value: Optional[object]) -> str:
    if value is None or value == "":
        return "[dim]not set[/dim]"
    return str(value)


@app.command("info")
def info():
    """Show seqdir configuration."""
    from rich.table import Table

    from seqdir import __version__
    from seqdir.config import get_settings
    from seqdir.watchlist import DEFAULT_WATCHLIST_PATH

    settings = get_settings()

    table = Table(title="seqdir Info")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Version", __version__)
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Poll Interval", f"{settings.poll_interval_seconds:g}s")
    table.add_row("Status Error Policy", settings.status_error_policy)
    table.add_row("Log Level", settings.log_level)

    watchlist_path = settings.get_watchlist_path() or DEFAULT_WATCHLIST_PATH
    if watchlist_path.exists():
        table.add_row("Watchlist", f"[green]{watchlist_path}[/green]")
    else:
        table.add_row("Watchlist", f"[yellow]not found[/yellow] [dim]({watchlist_path})[/dim]")
    table.add_row("Watchlist Override", _format_optional(settings.watchlist_path))

    console.print(table)


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    raise SystemExit(main())
