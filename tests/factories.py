"""Factory functions and fakes for creating test data.

This module provides:
- Schema factories (Repository, PullRequest, Comment, ...)
- FakeProvider: an in-memory SourceProvider serving canned pages

Design principles:
- Factories provide sensible defaults that can be overridden
- FakeProvider records every listing call so tests can assert on
  what was (and was not) fetched
"""

from collections import defaultdict
from typing import Any, TypeVar

from scm_migrate.checkpoint import Page
from scm_migrate.providers import (
    ListOptions,
    OpNotSupportedError,
    ProviderError,
    SourceProvider,
)
from scm_migrate.schemas import (
    BranchRule,
    Comment,
    Label,
    PullRequest,
    PullRequestData,
    Repository,
    Review,
    ReviewState,
    User,
    Webhook,
)

# Import test timeline constants
from tests.conftest import JAN_10, JAN_15, TEST_ORG

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Schema Factories
# -----------------------------------------------------------------------------
def make_repository(
    name: str = "widgets",
    *,
    namespace: str = TEST_ORG,
    clone_url: str | None = None,
    **overrides: Any,
) -> Repository:
    """Create a Repository schema.

    Args:
        name: Repository name
        namespace: Owning organization
        clone_url: Clone URL (defaults to a GitHub-style https URL)
        **overrides: Additional field overrides

    Returns:
        Repository instance
    """
    return Repository(
        namespace=namespace,
        name=name,
        slug=f"{namespace}/{name}",
        clone_url=clone_url or f"https://github.com/{namespace}/{name}.git",
        **overrides,
    )


def make_user(login: str = "alice", email: str = "") -> User:
    """Create a User schema."""
    return User(login=login, email=email)


def make_pull_request(
    number: int = 1,
    *,
    author: str = "alice",
    author_email: str = "",
    **overrides: Any,
) -> PullRequest:
    """Create a PullRequest schema."""
    defaults: dict[str, Any] = {
        "title": f"Pull request {number}",
        "source_branch": f"feature-{number}",
        "target_branch": "main",
        "created_at": JAN_10,
    }
    defaults.update(overrides)
    return PullRequest(number=number, author=make_user(author, author_email), **defaults)


def make_comment(
    comment_id: int = 1,
    *,
    author: str = "bob",
    body: str | None = None,
    **overrides: Any,
) -> Comment:
    """Create a Comment schema."""
    return Comment(
        id=comment_id,
        body=body if body is not None else f"comment {comment_id}",
        author=make_user(author),
        created_at=JAN_15,
        **overrides,
    )


def make_review(
    review_id: int = 1,
    *,
    author: str = "carol",
    state: ReviewState = ReviewState.APPROVED,
    **overrides: Any,
) -> Review:
    """Create a Review schema."""
    return Review(
        id=review_id,
        author=make_user(author),
        state=state,
        submitted_at=JAN_15,
        **overrides,
    )


def make_pull_request_data(number: int = 1, comments: int = 0, body: str = "") -> PullRequestData:
    """Create a PullRequestData record with generated comments."""
    return PullRequestData(
        pull_request=make_pull_request(number, body=body),
        comments=[make_comment(number * 1000 + i) for i in range(comments)],
    )


def make_webhook(target: str = "https://hooks.example.com/ci", **overrides: Any) -> Webhook:
    """Create a Webhook schema."""
    return Webhook(id="1", name="ci", target=target, events=["push"], **overrides)


def make_branch_rule(name: str = "protect-main", **overrides: Any) -> BranchRule:
    """Create a BranchRule schema."""
    return BranchRule(name=name, branches=["main"], **overrides)


def make_label(name: str = "bug", **overrides: Any) -> Label:
    """Create a Label schema."""
    return Label(name=name, color="d73a4a", **overrides)


# -----------------------------------------------------------------------------
# Fake Provider
# -----------------------------------------------------------------------------
def _page(items: list[T], opts: ListOptions) -> Page[T]:
    start = (opts.page - 1) * opts.size
    end = start + opts.size
    next_page = opts.page + 1 if end < len(items) else 0
    return Page(items=list(items[start:end]), next_page=next_page)


class FakeProvider(SourceProvider):
    """In-memory provider serving canned data one page at a time.

    ``calls`` records ``(operation, scope, page)`` for every listing call.
    ``failures`` maps ``(operation, scope, page)`` to an exception raised
    once, the next time that exact call is made.
    """

    name = "fake"

    def __init__(self) -> None:
        self.repositories: list[Repository] = []
        self.pull_requests: dict[str, list[PullRequest]] = defaultdict(list)
        self.comments: dict[tuple[str, int], list[Comment]] = defaultdict(list)
        self.webhooks: dict[str, list[Webhook]] = defaultdict(list)
        self.branch_rules: dict[str, list[BranchRule]] = defaultdict(list)
        self.labels: dict[str, list[Label]] = defaultdict(list)
        self.reviews: dict[tuple[str, int], list[Review]] = defaultdict(list)
        self.reviewers: dict[tuple[str, int], list[str]] = {}
        self.emails: dict[str, str | None] = {}
        self.supports_reviewers = False
        self.supports_reviews = True

        self.calls: list[tuple[str, str, int]] = []
        self.email_lookups: list[str] = []
        self.failures: dict[tuple[str, str, int], Exception] = {}
        self.closed = False

    def add_repository(self, repository: Repository) -> Repository:
        self.repositories.append(repository)
        return repository

    def calls_for(self, operation: str, scope: str | None = None) -> list[tuple[str, str, int]]:
        """Recorded calls of one operation, optionally for one scope."""
        return [
            c for c in self.calls if c[0] == operation and (scope is None or c[1] == scope)
        ]

    def _record(self, operation: str, scope: str, page: int) -> None:
        key = (operation, scope, page)
        self.calls.append(key)
        if key in self.failures:
            raise self.failures.pop(key)

    async def list_repositories(self, org: str, opts: ListOptions) -> Page[Repository]:
        self._record("list_repositories", org, opts.page)
        return _page([r for r in self.repositories if r.namespace == org], opts)

    async def list_pull_requests(self, repo_slug: str, opts: ListOptions) -> Page[PullRequest]:
        self._record("list_pull_requests", repo_slug, opts.page)
        return _page(self.pull_requests[repo_slug], opts)

    async def list_pull_request_comments(
        self, repo_slug: str, pr_number: int, opts: ListOptions
    ) -> Page[Comment]:
        self._record("list_pull_request_comments", f"{repo_slug}#{pr_number}", opts.page)
        return _page(self.comments[(repo_slug, pr_number)], opts)

    async def list_branch_rules(self, repo_slug: str, opts: ListOptions) -> Page[BranchRule]:
        self._record("list_branch_rules", repo_slug, opts.page)
        return _page(self.branch_rules[repo_slug], opts)

    async def list_webhooks(self, repo_slug: str, opts: ListOptions) -> Page[Webhook]:
        self._record("list_webhooks", repo_slug, opts.page)
        return _page(self.webhooks[repo_slug], opts)

    async def list_labels(self, repo_slug: str, opts: ListOptions) -> Page[Label]:
        self._record("list_labels", repo_slug, opts.page)
        return _page(self.labels[repo_slug], opts)

    async def pull_request_reviewers(self, repo_slug: str, pr_number: int) -> list[str]:
        if not self.supports_reviewers:
            raise OpNotSupportedError("pull_request_reviewers", self.name)
        self._record("pull_request_reviewers", f"{repo_slug}#{pr_number}", 0)
        return self.reviewers.get((repo_slug, pr_number), [])

    async def list_pull_request_reviews(
        self, repo_slug: str, pr_number: int, opts: ListOptions
    ) -> Page[Review]:
        if not self.supports_reviews:
            return await super().list_pull_request_reviews(repo_slug, pr_number, opts)
        self._record("list_pull_request_reviews", f"{repo_slug}#{pr_number}", opts.page)
        return _page(self.reviews[(repo_slug, pr_number)], opts)

    def pull_request_refs(self) -> list[str]:
        return ["refs/pull/*/head:refs/pullreq/*/head"]

    async def find_user_email(self, username: str) -> str | None:
        self.email_lookups.append(username)
        if username not in self.emails:
            return None
        return self.emails[username]

    async def close(self) -> None:
        self.closed = True


def provider_error(message: str = "boom") -> ProviderError:
    """Create a transient provider failure."""
    return ProviderError(message)
