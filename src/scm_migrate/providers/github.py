"""GitHub provider adapter using githubkit.

Maps GitHub REST responses onto the interchange schemas, one page per
call. Pull request heads are cloned via ``refs/pull/*/head``.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from githubkit import GitHub
from githubkit.exception import RequestFailed

from scm_migrate.checkpoint import Page
from scm_migrate.config import get_settings
from scm_migrate.logging import get_logger
from scm_migrate.schemas import (
    BranchRule,
    CodeComment,
    Comment,
    Label,
    PullRequest,
    Repository,
    Review,
    ReviewState,
    User,
    Webhook,
    parse_repo_slug,
)

from .base import PULL_REQUEST_REF_PREFIX, ListOptions, SourceProvider
from .exceptions import (
    ProviderAuthenticationError,
    ProviderError,
    ProviderNotFoundError,
    ProviderRateLimitError,
)

logger = get_logger(__name__)

_NEXT_LINK = re.compile(r'<([^>]+)>;\s*rel="next"')
_PAGE_PARAM = re.compile(r"[?&]page=(\d+)")

_REVIEW_STATES = {
    "APPROVED": ReviewState.APPROVED,
    "CHANGES_REQUESTED": ReviewState.CHANGES_REQUESTED,
    "COMMENTED": ReviewState.REVIEWED,
    "PENDING": ReviewState.PENDING,
}


def next_page_from_link(link_header: str | None) -> int:
    """Extract the next page number from a GitHub ``Link`` header.

    Returns:
        The next page number, or 0 if there is no next page
    """
    if not link_header:
        return 0
    match = _NEXT_LINK.search(link_header)
    if match is None:
        return 0
    page = _PAGE_PARAM.search(match.group(1))
    return int(page.group(1)) if page else 0


def _user(data: dict[str, Any] | None) -> User:
    # Deleted accounts come back as null
    if not data:
        return User(login="ghost")
    return User(login=data.get("login") or "ghost", email=data.get("email") or "")


class GitHubProvider(SourceProvider):
    """Source provider backed by the GitHub REST API.

    Usage:
        async with GitHubProvider() as provider:
            page = await provider.list_repositories("acme", ListOptions(page=1))
            for repo in page.items:
                print(repo.slug)
    """

    name = "github"

    def __init__(self, token: str | None = None, base_url: str | None = None) -> None:
        """Initialize the GitHub provider.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
            base_url: API root for GitHub Enterprise. Defaults to GITHUB_BASE_URL.

        Raises:
            ProviderAuthenticationError: If no token is available.
        """
        settings = get_settings()
        self._token = token or settings.github_token
        if not self._token:
            raise ProviderAuthenticationError(
                "GitHub token required. Set GITHUB_TOKEN environment variable."
            )
        self._base_url = base_url or settings.github_base_url
        self._client: GitHub[Any] | None = None

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            if self._base_url:
                self._client = GitHub(self._token, base_url=self._base_url)
            else:
                self._client = GitHub(self._token)
        return self._client

    async def close(self) -> None:
        """Drop the underlying client."""
        self._client = None

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------
    async def list_repositories(self, org: str, opts: ListOptions) -> Page[Repository]:
        """List one page of an organization's repositories."""
        try:
            resp = await self._github.rest.repos.async_list_for_org(
                org, type="all", per_page=opts.size, page=opts.page
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"organization {org}") from e

        repos = [self._map_repository(r.model_dump()) for r in resp.parsed_data]
        return Page(repos, next_page_from_link(resp.headers.get("link")))

    async def list_pull_requests(self, repo_slug: str, opts: ListOptions) -> Page[PullRequest]:
        """List one page of pull requests in every state."""
        owner, repo = parse_repo_slug(repo_slug)
        try:
            resp = await self._github.rest.pulls.async_list(
                owner,
                repo,
                state="all",
                sort="created",
                direction="asc",
                per_page=opts.size,
                page=opts.page,
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"pull requests of {repo_slug}") from e

        prs = [self._map_pull_request(p.model_dump()) for p in resp.parsed_data]
        return Page(prs, next_page_from_link(resp.headers.get("link")))

    async def list_pull_request_comments(
        self, repo_slug: str, pr_number: int, opts: ListOptions
    ) -> Page[Comment]:
        """List one page of conversation comments and one page of review comments.

        Both listings advance together; the page continues while either has more.
        """
        owner, repo = parse_repo_slug(repo_slug)
        try:
            issue_resp = await self._github.rest.issues.async_list_comments(
                owner, repo, pr_number, per_page=opts.size, page=opts.page
            )
            review_resp = await self._github.rest.pulls.async_list_review_comments(
                owner, repo, pr_number, per_page=opts.size, page=opts.page
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"comments of {repo_slug}#{pr_number}") from e

        comments = [self._map_issue_comment(c.model_dump()) for c in issue_resp.parsed_data]
        comments.extend(self._map_review_comment(c.model_dump()) for c in review_resp.parsed_data)

        next_page = max(
            next_page_from_link(issue_resp.headers.get("link")),
            next_page_from_link(review_resp.headers.get("link")),
        )
        return Page(comments, next_page)

    async def list_branch_rules(self, repo_slug: str, opts: ListOptions) -> Page[BranchRule]:
        """List protected branches as branch rules."""
        owner, repo = parse_repo_slug(repo_slug)
        try:
            resp = await self._github.rest.repos.async_list_branches(
                owner, repo, protected=True, per_page=opts.size, page=opts.page
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"branch rules of {repo_slug}") from e

        rules = [
            BranchRule(name=f"protect-{b.name}", branches=[b.name]) for b in resp.parsed_data
        ]
        return Page(rules, next_page_from_link(resp.headers.get("link")))

    async def list_webhooks(self, repo_slug: str, opts: ListOptions) -> Page[Webhook]:
        """List one page of repository webhooks."""
        owner, repo = parse_repo_slug(repo_slug)
        try:
            resp = await self._github.rest.repos.async_list_webhooks(
                owner, repo, per_page=opts.size, page=opts.page
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"webhooks of {repo_slug}") from e

        hooks = [self._map_webhook(h.model_dump()) for h in resp.parsed_data]
        return Page(hooks, next_page_from_link(resp.headers.get("link")))

    async def list_labels(self, repo_slug: str, opts: ListOptions) -> Page[Label]:
        """List one page of repository labels."""
        owner, repo = parse_repo_slug(repo_slug)
        try:
            resp = await self._github.rest.issues.async_list_labels_for_repo(
                owner, repo, per_page=opts.size, page=opts.page
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"labels of {repo_slug}") from e

        labels = [
            Label(name=lb.name, color=lb.color or "", description=lb.description or "")
            for lb in resp.parsed_data
        ]
        return Page(labels, next_page_from_link(resp.headers.get("link")))

    async def pull_request_reviewers(self, repo_slug: str, pr_number: int) -> list[str]:
        """List logins of requested reviewers."""
        owner, repo = parse_repo_slug(repo_slug)
        try:
            resp = await self._github.rest.pulls.async_list_requested_reviewers(
                owner, repo, pr_number
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"reviewers of {repo_slug}#{pr_number}") from e
        return [u.login for u in resp.parsed_data.users]

    async def list_pull_request_reviews(
        self, repo_slug: str, pr_number: int, opts: ListOptions
    ) -> Page[Review]:
        """List one page of submitted reviews."""
        owner, repo = parse_repo_slug(repo_slug)
        try:
            resp = await self._github.rest.pulls.async_list_reviews(
                owner, repo, pr_number, per_page=opts.size, page=opts.page
            )
        except RequestFailed as e:
            raise self._handle_error(e, f"reviews of {repo_slug}#{pr_number}") from e

        reviews = [self._map_review(r.model_dump()) for r in resp.parsed_data]
        return Page(reviews, next_page_from_link(resp.headers.get("link")))

    def pull_request_refs(self) -> list[str]:
        """Fetch GitHub's pull request heads into refs/pullreq/*/head."""
        return [f"refs/pull/*/head:{PULL_REQUEST_REF_PREFIX}/*/head"]

    async def find_user_email(self, username: str) -> str | None:
        """Look up a user's public email (None if the user does not exist)."""
        try:
            resp = await self._github.rest.users.async_get_by_username(username)
        except RequestFailed as e:
            if e.response.status_code == 404:
                return None
            raise self._handle_error(e, f"user {username}") from e
        return getattr(resp.parsed_data, "email", None) or ""

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------
    @staticmethod
    def _map_repository(data: dict[str, Any]) -> Repository:
        owner = (data.get("owner") or {}).get("login", "")
        return Repository(
            id=str(data.get("id", "")),
            namespace=owner,
            name=data["name"],
            slug=data.get("full_name") or f"{owner}/{data['name']}",
            clone_url=data.get("clone_url") or "",
            default_branch=data.get("default_branch") or "main",
            description=data.get("description") or "",
            private=bool(data.get("private")),
            link=data.get("html_url") or "",
        )

    @staticmethod
    def _map_pull_request(data: dict[str, Any]) -> PullRequest:
        head = data.get("head") or {}
        base = data.get("base") or {}
        return PullRequest(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body") or "",
            source_branch=head.get("ref", ""),
            target_branch=base.get("ref", ""),
            source_sha=head.get("sha", ""),
            merge_sha=data.get("merge_commit_sha") or "",
            author=_user(data.get("user")),
            closed=data.get("state") == "closed",
            merged=data.get("merged_at") is not None,
            draft=bool(data.get("draft")),
            labels=[lb["name"] for lb in data.get("labels") or []],
            reviewers=[u["login"] for u in data.get("requested_reviewers") or []],
            link=data.get("html_url") or "",
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            merged_at=data.get("merged_at"),
        )

    @staticmethod
    def _map_issue_comment(data: dict[str, Any]) -> Comment:
        return Comment(
            id=data["id"],
            body=data.get("body") or "",
            author=_user(data.get("user")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    @staticmethod
    def _map_review_comment(data: dict[str, Any]) -> Comment:
        line = data.get("line") or data.get("original_line") or 0
        start_line = data.get("start_line") or data.get("original_start_line") or line
        hunk = (data.get("diff_hunk") or "").split("\n", 1)[0]
        return Comment(
            id=data["id"],
            body=data.get("body") or "",
            author=_user(data.get("user")),
            parent_id=data.get("in_reply_to_id"),
            code_comment=CodeComment(
                path=data.get("path") or "",
                line=line,
                line_span=max(line - start_line + 1, 1),
                side=data.get("side") or "RIGHT",
                hunk_header=hunk,
                source_sha=data.get("commit_id") or "",
                merge_base_sha=data.get("original_commit_id") or "",
            ),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    @staticmethod
    def _map_review(data: dict[str, Any]) -> Review:
        return Review(
            id=data["id"],
            body=data.get("body") or "",
            author=_user(data.get("user")),
            state=_REVIEW_STATES.get(data.get("state") or "", ReviewState.REVIEWED),
            commit_sha=data.get("commit_id") or "",
            submitted_at=data.get("submitted_at"),
        )

    @staticmethod
    def _map_webhook(data: dict[str, Any]) -> Webhook:
        config = data.get("config") or {}
        return Webhook(
            id=str(data.get("id", "")),
            name=data.get("name") or "web",
            target=config.get("url") or "",
            events=list(data.get("events") or []),
            active=bool(data.get("active", True)),
            skip_verify=str(config.get("insecure_ssl", "0")) == "1",
        )

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed, what: str) -> ProviderError:
        """Convert githubkit exceptions to provider exceptions."""
        status = error.response.status_code

        if status == 401:
            return ProviderAuthenticationError("Invalid GitHub token")
        elif status in (403, 429):
            headers = error.response.headers
            if headers.get("x-ratelimit-remaining") == "0":
                reset_ts = int(headers.get("x-ratelimit-reset", "0"))
                reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None
                return ProviderRateLimitError("GitHub rate limit exceeded", reset_at=reset_at)
            return ProviderError(f"Access forbidden to {what}: {error}")
        elif status == 404:
            return ProviderNotFoundError(f"{what} not found")
        else:
            return ProviderError(f"GitHub API error ({status}) for {what}: {error}")
