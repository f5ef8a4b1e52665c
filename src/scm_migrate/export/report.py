"""Per-run export metrics.

The exporter owns one ExportReport per run and passes it down explicitly;
it is published once, after the archive is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console
from rich.table import Table


@dataclass
class RepoReport:
    """Metrics collected for one repository."""

    repo_slug: str
    """Repository slug (namespace/name)."""

    pull_requests: int = 0
    """Pull requests exported."""

    comments: int = 0
    """Comments exported across all pull requests."""

    reviews: int = 0
    """Submitted reviews exported across all pull requests."""

    branch_rules: int = 0
    """Branch rules exported."""

    webhooks: int = 0
    """Webhooks exported."""

    labels: int = 0
    """Labels exported."""

    users: int = 0
    """Distinct users with a resolved email."""

    unknown_users: int = 0
    """Distinct users that got a fallback email."""

    lfs_objects: int = 0
    """LFS objects fetched with the clone."""

    skipped: bool = False
    """True if the repository was empty and only info.json was written."""

    errors: list[str] = field(default_factory=list)
    """Non-fatal problems recorded while exporting."""

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dict with all metrics
        """
        return {
            "repo": self.repo_slug,
            "pull_requests": self.pull_requests,
            "comments": self.comments,
            "reviews": self.reviews,
            "branch_rules": self.branch_rules,
            "webhooks": self.webhooks,
            "labels": self.labels,
            "users": self.users,
            "unknown_users": self.unknown_users,
            "lfs_objects": self.lfs_objects,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class ExportReport:
    """Metrics for a whole export run."""

    org: str
    """Organization that was exported."""

    repos: dict[str, RepoReport] = field(default_factory=dict)
    """Per-repository metrics in discovery order."""

    archive_path: str | None = None
    """Location of the archive (None until zipped)."""

    duration_seconds: float = 0.0
    """Wall-clock duration of the run."""

    def repo(self, repo_slug: str) -> RepoReport:
        """Get or create the record of a repository."""
        if repo_slug not in self.repos:
            self.repos[repo_slug] = RepoReport(repo_slug=repo_slug)
        return self.repos[repo_slug]

    @property
    def total_pull_requests(self) -> int:
        return sum(r.pull_requests for r in self.repos.values())

    @property
    def total_unknown_users(self) -> int:
        return sum(r.unknown_users for r in self.repos.values())

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "org": self.org,
            "archive": self.archive_path,
            "duration_seconds": round(self.duration_seconds, 2),
            "total_repositories": len(self.repos),
            "total_pull_requests": self.total_pull_requests,
            "total_unknown_users": self.total_unknown_users,
            "repositories": [r.to_dict() for r in self.repos.values()],
        }

    def to_table(self) -> Table:
        """Render the per-repository metrics as a rich table."""
        table = Table(title=f"Export of {self.org}")
        table.add_column("Repository", style="cyan")
        table.add_column("PRs", justify="right")
        table.add_column("Comments", justify="right")
        table.add_column("Reviews", justify="right")
        table.add_column("Branch rules", justify="right")
        table.add_column("Webhooks", justify="right")
        table.add_column("Labels", justify="right")
        table.add_column("Users", justify="right")
        table.add_column("Unknown users", justify="right", style="yellow")
        table.add_column("LFS", justify="right")

        for r in self.repos.values():
            name = f"{r.repo_slug} [dim](empty)[/dim]" if r.skipped else r.repo_slug
            table.add_row(
                name,
                str(r.pull_requests),
                str(r.comments),
                str(r.reviews),
                str(r.branch_rules),
                str(r.webhooks),
                str(r.labels),
                str(r.users),
                str(r.unknown_users),
                str(r.lfs_objects),
            )
        return table

    def publish(self, console: Console) -> None:
        """Print the report table followed by any recorded errors."""
        console.print(self.to_table())
        for r in self.repos.values():
            for error in r.errors:
                console.print(f"[yellow]Warning:[/yellow] {r.repo_slug}: {error}")
        if self.archive_path:
            console.print(f"[green]Archive:[/green] {self.archive_path}")
