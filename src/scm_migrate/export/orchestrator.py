"""Export orchestrator - one resumable export run of an organization.

Sequence of a run:

    list repositories
      -> per repository: clone -> webhooks -> branch rules -> labels
                         -> pull requests (+ comments and reviews via the task pool)
      -> resolve user emails -> write interchange files -> zip
      -> remove checkpoint -> remove working tree

Every listing goes through ``paginate_with_checkpoint``, so an interrupted
run resumed with ``resume=True`` continues where it stopped and produces the
same archive as an uninterrupted one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from scm_migrate.checkpoint import (
    CheckpointError,
    CheckpointStore,
    Page,
    ResourceKind,
    pull_request_scope,
    paginate_with_checkpoint,
)
from scm_migrate.config import ExportConfig, GitConfig, get_settings
from scm_migrate.git import (
    GitCommandError,
    GitVersionError,
    check_git_installation,
    check_git_lfs_installation,
    clone_repository,
)
from scm_migrate.logging import bind_pr, bind_repo, get_logger
from scm_migrate.pacing import Task, TaskCancelledError, TaskPoolError, execute_tasks
from scm_migrate.providers import ListOptions, OpNotSupportedError, ProviderError, SourceProvider
from scm_migrate.schemas import (
    BranchRule,
    Comment,
    Label,
    PullRequest,
    PullRequestData,
    RepoData,
    Repository,
    Review,
    Webhook,
)

from .exceptions import ExportError
from .file_logger import ExporterLog, ExporterLogError
from .report import ExportReport
from .users import UserResolver, is_fallback_email
from .writer import ARCHIVE_NAME, delete_except, repo_path, write_repo_data, write_users, zip_folder

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class ExportFlags:
    """Switches selected on the command line."""

    resume: bool = False
    """Load the checkpoint of a previous, interrupted run."""

    no_pr: bool = False
    """Skip pull requests (and therefore comments)."""

    no_webhook: bool = False
    """Skip webhooks."""

    no_rule: bool = False
    """Skip branch rules."""

    no_comment: bool = False
    """Export pull requests without their comments."""

    no_lfs: bool = False
    """Skip the git-lfs check and LFS object download."""

    no_label: bool = False
    """Skip labels."""


class Exporter:
    """Export an organization into a single interchange archive.

    Usage:
        async with GitHubProvider() as provider:
            exporter = Exporter(provider, "acme", flags=ExportFlags(resume=True))
            report = await exporter.export()
            report.publish(console)
    """

    def __init__(
        self,
        provider: SourceProvider,
        org: str,
        *,
        export_dir: str | Path | None = None,
        flags: ExportFlags | None = None,
        config: ExportConfig | None = None,
        git_config: GitConfig | None = None,
        clone_username: str | None = None,
        clone_token: str | None = None,
        check_tools: bool = True,
    ) -> None:
        """Initialize the exporter.

        Args:
            provider: Source platform adapter
            org: Organization to export
            export_dir: Working directory (defaults to ExportConfig.export_dir)
            flags: Resume and skip switches
            config: Export configuration (defaults to settings)
            git_config: Git configuration (defaults to settings)
            clone_username: Login for authenticated clones (defaults to GITHUB_USERNAME)
            clone_token: Token for authenticated clones (defaults to GITHUB_TOKEN)
            check_tools: Verify git/git-lfs versions before starting
        """
        settings = get_settings()
        self._provider = provider
        self._org = org
        self._flags = flags or ExportFlags()
        self._config = config or settings.export
        self._git_config = git_config or settings.git
        self._export_dir = Path(export_dir or self._config.export_dir)
        self._clone_username = (
            clone_username if clone_username is not None else settings.github_username
        )
        self._clone_token = clone_token if clone_token is not None else settings.github_token
        self._check_tools = check_tools

        self._store = CheckpointStore(self._export_dir)
        self._exporter_log = ExporterLog(self._export_dir)
        self._reviewers_supported = True
        self._unsupported: set[ResourceKind] = set()

    @property
    def export_dir(self) -> Path:
        return self._export_dir

    @property
    def archive_path(self) -> Path:
        """Location of the archive written by a successful run."""
        return self._export_dir / ARCHIVE_NAME

    async def export(self) -> ExportReport:
        """Run the whole export.

        Returns:
            Metrics of the run, with the archive location set

        Raises:
            ExportError: If any step fails; the checkpoint is kept
            CheckpointError: If the checkpoint of a resumed run is unreadable
        """
        start = time.monotonic()
        report = ExportReport(org=self._org)

        try:
            self._export_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportError(f"cannot create export directory {self._export_dir}: {e}") from e

        if self._flags.resume:
            self._store.load()

        if self._check_tools:
            await self._check_tool_versions()

        repositories = await self._paginate(
            self._org,
            ResourceKind.REPOSITORIES,
            lambda opts: self._provider.list_repositories(self._org, opts),
            Repository,
        )
        logger.info("Found {} repositories in {}", len(repositories), self._org)

        data: list[RepoData] = []
        for repository in repositories:
            report.repo(repository.slug)
            data.append(await self._export_repository(repository, report))

        users = UserResolver(self._provider, self._store, self._exporter_log)
        emails = await self._resolve_users(data, users, report)

        try:
            for repo_data in data:
                write_repo_data(repo_data, self._export_dir, self._config.max_chunk_size_bytes)
            write_users(self._export_dir, emails)
        except OSError as e:
            raise ExportError(f"cannot write interchange files: {e}") from e

        try:
            archive = zip_folder(self._export_dir, self.archive_path)
        except OSError as e:
            raise ExportError(f"cannot create archive {self.archive_path}: {e}") from e

        try:
            CheckpointStore.cleanup(self._export_dir)
        except CheckpointError as e:
            logger.warning("Error cleaning checkpoint: {}", e)

        failures = delete_except(self._export_dir, archive)
        if failures:
            logger.warning("{} entries could not be removed from {}", failures, self._export_dir)

        report.archive_path = str(archive)
        report.duration_seconds = time.monotonic() - start
        logger.info(
            "Exported {} repositories of {} in {:.1f}s",
            len(data),
            self._org,
            report.duration_seconds,
        )
        return report

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------
    async def _check_tool_versions(self) -> None:
        try:
            await check_git_installation(self._git_config.min_git_version)
            if not self._flags.no_lfs:
                await check_git_lfs_installation(self._git_config.min_lfs_version)
        except GitVersionError as e:
            raise ExportError(str(e)) from e

    async def _export_repository(self, repository: Repository, report: ExportReport) -> RepoData:
        """Clone one repository and collect its metadata."""
        slug = repository.slug
        repo_log = bind_repo(slug)
        repo_report = report.repo(slug)
        folder = repo_path(self._export_dir, slug)

        try:
            folder.mkdir(parents=True, exist_ok=True)
            clone = await clone_repository(
                repository.clone_url,
                folder,
                repo_slug=slug,
                pull_request_refspecs=self._provider.pull_request_refs(),
                username=self._clone_username,
                token=self._clone_token,
                with_lfs=not self._flags.no_lfs,
                timeout=self._git_config.command_timeout,
            )
        except (GitCommandError, OSError) as e:
            raise ExportError(f"cannot clone the git repo for {slug}: {e}") from e

        repo_report.lfs_objects = clone.lfs_objects
        repo_data = RepoData(repository=repository.model_copy(update={"is_empty": clone.is_empty}))

        if clone.is_empty:
            repo_log.info("Repository is empty, skipping metadata")
            repo_report.skipped = True
            self._log_event("repository %s is empty, only info.json is exported", slug)
            return repo_data

        if not self._flags.no_webhook:
            repo_data.webhooks = await self._paginate(
                slug,
                ResourceKind.WEBHOOKS,
                lambda opts: self._provider.list_webhooks(slug, opts),
                Webhook,
            )
            repo_report.webhooks = len(repo_data.webhooks)

        if not self._flags.no_rule:
            repo_data.branch_rules = await self._paginate(
                slug,
                ResourceKind.BRANCH_RULES,
                lambda opts: self._provider.list_branch_rules(slug, opts),
                BranchRule,
            )
            repo_report.branch_rules = len(repo_data.branch_rules)

        if not self._flags.no_label:
            repo_data.labels = await self._paginate(
                slug,
                ResourceKind.LABELS,
                lambda opts: self._provider.list_labels(slug, opts),
                Label,
            )
            repo_report.labels = len(repo_data.labels)

        if not self._flags.no_pr:
            repo_data.pull_request_data = await self._paginate(
                slug,
                ResourceKind.PULL_REQUESTS,
                lambda opts: self._pull_request_page(slug, opts),
                PullRequestData,
            )
            repo_report.pull_requests = len(repo_data.pull_request_data)
            repo_report.comments = sum(len(d.comments) for d in repo_data.pull_request_data)
            repo_report.reviews = sum(len(d.reviews) for d in repo_data.pull_request_data)

        repo_log.info(
            "Collected {} pull requests, {} webhooks, {} branch rules, {} labels",
            repo_report.pull_requests,
            repo_report.webhooks,
            repo_report.branch_rules,
            repo_report.labels,
        )
        return repo_data

    async def _pull_request_page(self, slug: str, opts: ListOptions) -> Page[PullRequestData]:
        """Fetch one page of pull requests and expand each through the task pool."""
        page = await self._provider.list_pull_requests(slug, opts)

        tasks = [
            Task(id=i, execute=self._pull_request_expander(slug, pr))
            for i, pr in enumerate(page.items)
        ]
        try:
            expanded = await execute_tasks(tasks, self._config.parallelism)
        except TaskPoolError as e:
            raise ExportError(f"cannot fetch pull request details for {slug}: {e}") from e

        return Page(items=expanded, next_page=page.next_page)

    def _pull_request_expander(
        self, slug: str, pr: PullRequest
    ) -> Callable[[asyncio.Event], Awaitable[PullRequestData]]:
        async def expand(cancel: asyncio.Event) -> PullRequestData:
            scope = pull_request_scope(slug, pr.number)
            comments: list[Comment] = []
            reviews: list[Review] = []
            if not self._flags.no_comment:
                if cancel.is_set():
                    raise TaskCancelledError("export cancelled")
                comments = await self._paginate(
                    scope,
                    ResourceKind.COMMENTS,
                    lambda opts: self._provider.list_pull_request_comments(
                        slug, pr.number, opts
                    ),
                    Comment,
                )

                if cancel.is_set():
                    raise TaskCancelledError("export cancelled")
                reviews = await self._paginate(
                    scope,
                    ResourceKind.REVIEWS,
                    lambda opts: self._provider.list_pull_request_reviews(
                        slug, pr.number, opts
                    ),
                    Review,
                )

            if cancel.is_set():
                raise TaskCancelledError("export cancelled")
            reviewers = await self._reviewers(slug, pr)
            return PullRequestData(
                pull_request=pr.model_copy(update={"reviewers": reviewers}),
                comments=comments,
                reviews=reviews,
            )

        return expand

    async def _reviewers(self, slug: str, pr: PullRequest) -> list[str]:
        """Merge provider-reported reviewers into the PR's own list."""
        reviewers = list(pr.reviewers)
        if not self._reviewers_supported:
            return reviewers

        try:
            extra = await self._provider.pull_request_reviewers(slug, pr.number)
        except OpNotSupportedError as e:
            if self._reviewers_supported:
                self._reviewers_supported = False
                logger.info("Reviewers are not exported: {}", e)
            return reviewers
        except ProviderError as e:
            raise ExportError(f"cannot list reviewers of {slug}#{pr.number}: {e}") from e

        bind_pr(slug, pr.number).debug("{} requested reviewers", len(extra))
        for login in extra:
            if login not in reviewers:
                reviewers.append(login)
        return reviewers

    async def _resolve_users(
        self,
        data: list[RepoData],
        users: UserResolver,
        report: ExportReport,
    ) -> set[str]:
        """Fill in author emails and collect every email of the run."""
        emails: set[str] = set()

        for repo_data in data:
            repo_emails: set[str] = set()
            for pr_data in repo_data.pull_request_data:
                authors = [
                    pr_data.pull_request.author,
                    *(c.author for c in pr_data.comments),
                    *(r.author for r in pr_data.reviews),
                ]
                for author in authors:
                    try:
                        author.email = await users.resolve(author.login, author.email)
                    except ProviderError as e:
                        raise ExportError(f"cannot resolve email of {author.login}: {e}") from e
                    repo_emails.add(author.email)
            for rule in repo_data.branch_rules:
                repo_emails.update(e for e in rule.bypass_users if e)

            repo_report = report.repo(repo_data.repository.slug)
            repo_report.unknown_users = sum(1 for e in repo_emails if is_fallback_email(e))
            repo_report.users = len(repo_emails) - repo_report.unknown_users
            emails |= repo_emails

        logger.info("Resolved {} distinct user emails", len(emails))
        return emails

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    async def _paginate(
        self,
        scope: str,
        kind: ResourceKind,
        list_page: Callable[[ListOptions], Awaitable[Page[T]]],
        item_type: type[T] | Any,
    ) -> list[T]:
        """Run a provider listing through the checkpointed pagination."""

        async def fetch(page_number: int) -> Page[T]:
            return await list_page(ListOptions(page=page_number, size=self._config.page_size))

        if kind in self._unsupported:
            return []

        try:
            return await paginate_with_checkpoint(self._store, scope, kind, fetch, item_type)
        except OpNotSupportedError as e:
            # The provider lacks the listing altogether; stop asking for it
            if kind not in self._unsupported:
                self._unsupported.add(kind)
                logger.info("Not exporting {}: {}", kind.name.lower().replace("_", " "), e)
            return []
        except ProviderError as e:
            raise ExportError(f"cannot list {kind.value} for {scope}: {e}") from e

    def _log_event(self, message: str, *args: object) -> None:
        try:
            self._exporter_log.log(message, *args)
        except ExporterLogError as e:
            logger.warning("{}", e)
