"""Main CLI application for scm-migrate."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from scm_migrate import __version__
from scm_migrate.cli import export as export_cmd
from scm_migrate.cli import incremental as incremental_cmd
from scm_migrate.config import get_settings
from scm_migrate.logging import setup_logging

app = typer.Typer(
    name="scm-migrate",
    help="Resumable migration of source-control organizations.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"scm-migrate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """scm-migrate - Export organizations and merge incremental migrations."""
    settings = get_settings()
    log_config = settings.logging

    # Setup logging with CLI overrides
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(export_cmd.app, name="export")
app.add_typer(incremental_cmd.app, name="incremental")


if __name__ == "__main__":
    app()
