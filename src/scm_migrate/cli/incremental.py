"""Incremental migration commands for scm-migrate."""

import json
from pathlib import Path

import typer

from scm_migrate.cli.common import OutputFormat, OutputFormatOption, console, run_async_command
from scm_migrate.importer import IncrementalMigrationHandler, RemapResult, TargetClient

app = typer.Typer(help="Prepare a second migration pass for an existing target repository")


@app.command("remap")
def remap(
    repo_ref: str = typer.Argument(..., help="Target repository reference (e.g. space/repo)"),
    git_dir: Path = typer.Argument(  # noqa: B008
        ...,
        help="Local clone whose refs/pullreq/* are renumbered",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Renumber pull request refs above the target's highest PR number.

    Examples:
        scm-migrate incremental remap acme/widgets ./export/acme/widgets/git
        scm-migrate incremental remap acme/widgets ./clone --format json
    """

    async def _remap() -> RemapResult:
        async with TargetClient() as client:
            handler = IncrementalMigrationHandler(client, repo_ref)
            await handler.check_repository_exists()
            offset = await handler.get_pr_offset()
            return await handler.update_pr_references(git_dir, offset)

    result = run_async_command(_remap(), error_prefix="Remap failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result.to_dict()))
        return

    if not result.moved:
        console.print("[yellow]No pull request references were renumbered.[/yellow]")
    else:
        console.print(
            f"[green]Renumbered {len(result.moved)} pull request refs[/green] "
            f"(offset {result.offset}: {result.first_number}..{result.last_number})"
        )
    for ref in result.skipped:
        console.print(f"  [yellow]Skipped:[/yellow] {ref}")
