"""Common CLI option factories and helpers.

This module centralizes reusable CLI options to reduce duplication
and consolidate noqa comments for Typer's required function call pattern.

It also provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- `OutputFormat`: text or JSON output selection
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from enum import Enum
from typing import Annotated, TypeVar

import typer
from rich.console import Console

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints the error chain, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _export() -> ExportReport:
            async with GitHubProvider() as provider:
                return await Exporter(provider, "acme").export()

        report = run_async_command(_export(), error_prefix="Export failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {format_error_chain(e)}")
        raise typer.Exit(1) from None


def format_error_chain(error: BaseException) -> str:
    """Join an exception with its explicit causes, outermost first."""
    messages: list[str] = []
    current: BaseException | None = error
    while current is not None:
        message = str(current)
        if message and not any(message in m for m in messages):
            messages.append(message)
        current = current.__cause__
    return ": ".join(messages) or type(error).__name__


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

ResumeOption = Annotated[
    bool,
    typer.Option(
        "--resume",
        help="Continue an interrupted export from its checkpoint",
    ),
]

ExportDirOption = Annotated[
    str | None,
    typer.Option(
        "--export-dir",
        "-o",
        help="Working directory for the export (default: EXPORT__EXPORT_DIR)",
    ),
]

# -----------------------------------------------------------------------------
# Skip Flags
# -----------------------------------------------------------------------------

NoPROption = Annotated[bool, typer.Option("--no-pr", help="Skip pull requests")]
NoWebhookOption = Annotated[bool, typer.Option("--no-webhook", help="Skip webhooks")]
NoRuleOption = Annotated[bool, typer.Option("--no-rule", help="Skip branch rules")]
NoCommentOption = Annotated[
    bool, typer.Option("--no-comment", help="Export pull requests without comments")
]
NoLFSOption = Annotated[bool, typer.Option("--no-lfs", help="Skip git-lfs objects")]
NoLabelOption = Annotated[bool, typer.Option("--no-label", help="Skip labels")]
