"""Provider adapter contract.

The exporter talks to every source platform through ``SourceProvider``.
Each listing call takes ``ListOptions`` and returns a single ``Page``;
pagination and checkpointing are driven by the caller, and
``Page.next_page == 0`` means the listing is exhausted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from scm_migrate.checkpoint import Page

from .exceptions import OpNotSupportedError

if TYPE_CHECKING:
    from scm_migrate.schemas import (
        BranchRule,
        Comment,
        Label,
        PullRequest,
        Repository,
        Review,
        Webhook,
    )

DEFAULT_PAGE_SIZE = 25

# GitHub-style pull request heads, stored under refs/pullreq/<n>/head
PULL_REQUEST_REF_PREFIX = "refs/pullreq"


class ListOptions(BaseModel):
    """Page selection for a listing call."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=100, description="Items per page")


class SourceProvider(ABC):
    """Capabilities the exporter needs from a source platform.

    Adapters translate platform responses into the interchange schemas.
    They do not paginate internally and never touch the checkpoint store.
    """

    name: str = "provider"

    @abstractmethod
    async def list_repositories(self, org: str, opts: ListOptions) -> Page[Repository]:
        """List one page of an organization's repositories."""

    @abstractmethod
    async def list_pull_requests(self, repo_slug: str, opts: ListOptions) -> Page[PullRequest]:
        """List one page of pull requests (open and closed)."""

    @abstractmethod
    async def list_pull_request_comments(
        self, repo_slug: str, pr_number: int, opts: ListOptions
    ) -> Page[Comment]:
        """List one page of comments of a pull request."""

    @abstractmethod
    async def list_branch_rules(self, repo_slug: str, opts: ListOptions) -> Page[BranchRule]:
        """List one page of branch protection rules."""

    @abstractmethod
    async def list_webhooks(self, repo_slug: str, opts: ListOptions) -> Page[Webhook]:
        """List one page of webhooks."""

    @abstractmethod
    async def list_labels(self, repo_slug: str, opts: ListOptions) -> Page[Label]:
        """List one page of labels."""

    async def pull_request_reviewers(self, repo_slug: str, pr_number: int) -> list[str]:
        """List requested reviewers of a pull request.

        Raises:
            OpNotSupportedError: If the platform has no reviewer concept
        """
        raise OpNotSupportedError("pull_request_reviewers", self.name)

    async def list_pull_request_reviews(
        self, repo_slug: str, pr_number: int, opts: ListOptions
    ) -> Page[Review]:
        """List one page of submitted reviews of a pull request.

        Raises:
            OpNotSupportedError: If the platform has no review concept
        """
        raise OpNotSupportedError("list_pull_request_reviews", self.name)

    @abstractmethod
    def pull_request_refs(self) -> list[str]:
        """Ref-specs fetched when cloning, mapping PR heads to refs/pullreq/*/head."""

    @abstractmethod
    async def find_user_email(self, username: str) -> str | None:
        """Look up a user's email.

        Returns:
            The email, "" if the user has none, or None if the user is unknown
        """

    async def close(self) -> None:
        """Release client resources."""
        return None

    async def __aenter__(self) -> SourceProvider:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
