"""Export commands for scm-migrate."""

import json

import typer

from scm_migrate.cli.common import (
    ExportDirOption,
    NoCommentOption,
    NoLabelOption,
    NoLFSOption,
    NoPROption,
    NoRuleOption,
    NoWebhookOption,
    OutputFormat,
    OutputFormatOption,
    ResumeOption,
    console,
    run_async_command,
)
from scm_migrate.export import Exporter, ExportFlags, ExportReport
from scm_migrate.providers import GitHubProvider

app = typer.Typer(help="Export an organization into an interchange archive")


@app.command("github")
def export_github(
    org: str = typer.Argument(..., help="GitHub organization to export"),
    resume: ResumeOption = False,
    no_pr: NoPROption = False,
    no_webhook: NoWebhookOption = False,
    no_rule: NoRuleOption = False,
    no_comment: NoCommentOption = False,
    no_lfs: NoLFSOption = False,
    no_label: NoLabelOption = False,
    export_dir: ExportDirOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Export a GitHub organization.

    Examples:
        scm-migrate export github acme
        scm-migrate export github acme --resume
        scm-migrate export github acme --no-comment --no-lfs --format json
    """
    flags = ExportFlags(
        resume=resume,
        no_pr=no_pr,
        no_webhook=no_webhook,
        no_rule=no_rule,
        no_comment=no_comment,
        no_lfs=no_lfs,
        no_label=no_label,
    )

    async def _export() -> ExportReport:
        async with GitHubProvider() as provider:
            exporter = Exporter(provider, org, export_dir=export_dir, flags=flags)
            return await exporter.export()

    if output_format == OutputFormat.TEXT:
        mode = "resuming" if resume else "starting"
        console.print(f"[dim]Export of {org} {mode}...[/dim]")

    report = run_async_command(_export(), error_prefix="Export failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(report.to_dict()))
        return

    report.publish(console)
