"""Test fixtures for scm-migrate."""

from .github_responses import (
    GITHUB_GHOST_PR_RESPONSE,
    GITHUB_ISSUE_COMMENT_RESPONSE,
    GITHUB_PR_RESPONSE,
    GITHUB_REPO_RESPONSE,
    GITHUB_REVIEW_COMMENT_RESPONSE,
    GITHUB_REVIEW_RESPONSE,
    GITHUB_REVIEWER_RESPONSE,
    GITHUB_USER_RESPONSE,
    GITHUB_WEBHOOK_RESPONSE,
    LINK_HEADER_LAST_PAGE,
    LINK_HEADER_WITH_NEXT,
)

__all__ = [
    # Mock GitHub API responses
    "GITHUB_GHOST_PR_RESPONSE",
    "GITHUB_ISSUE_COMMENT_RESPONSE",
    "GITHUB_PR_RESPONSE",
    "GITHUB_REPO_RESPONSE",
    "GITHUB_REVIEW_COMMENT_RESPONSE",
    "GITHUB_REVIEW_RESPONSE",
    "GITHUB_REVIEWER_RESPONSE",
    "GITHUB_USER_RESPONSE",
    "GITHUB_WEBHOOK_RESPONSE",
    # Pagination
    "LINK_HEADER_LAST_PAGE",
    "LINK_HEADER_WITH_NEXT",
]
