"""Pydantic schemas for scm-migrate.

This module provides the interchange data model (what ends up in the
archive) and target-system response models.
"""

from .base import SchemaBase
from .export import RepoData, UsersFile
from .pull_request import (
    CodeComment,
    Comment,
    PullRequest,
    PullRequestData,
    Review,
    ReviewState,
    User,
)
from .repository import (
    BranchRule,
    Label,
    Repository,
    Webhook,
    WebhookData,
    parse_repo_slug,
)
from .target import RepoSettings, TargetRepository

__all__ = [
    "SchemaBase",
    # Export aggregates
    "RepoData",
    "UsersFile",
    # Pull requests
    "CodeComment",
    "Comment",
    "PullRequest",
    "PullRequestData",
    "Review",
    "ReviewState",
    "User",
    # Repository resources
    "BranchRule",
    "Label",
    "Repository",
    "Webhook",
    "WebhookData",
    "parse_repo_slug",
    # Target
    "RepoSettings",
    "TargetRepository",
]
