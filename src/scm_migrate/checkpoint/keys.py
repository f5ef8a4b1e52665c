"""Namespaced checkpoint keys.

Every paginated resource owns two keys: a page cursor and the data
accumulated so far. Keys are plain strings so the checkpoint file stays
readable, and are built only through this module.
"""

from __future__ import annotations

from enum import StrEnum

# Cursor value marking a resource whose pagination is fully drained
CURSOR_DONE = -1

# Cursor value used when a resource has never been fetched
CURSOR_START = 1

USERS_KEY = "users"


class ResourceKind(StrEnum):
    """Kinds of paginated resources tracked in the checkpoint table."""

    REPOSITORIES = "repos"
    PULL_REQUESTS = "pr"
    COMMENTS = "comment"
    LABELS = "labels"
    WEBHOOKS = "webhook"
    BRANCH_RULES = "rule"
    REVIEWS = "review"


def page_key(scope: str, kind: ResourceKind) -> str:
    """Key holding the next page cursor for a resource.

    Args:
        scope: Owning namespace, e.g. "acme/widgets" or "acme/widgets/12"
        kind: Resource kind

    Returns:
        Key such as "acme/widgets/pr"
    """
    return f"{scope}/{kind.value}"


def data_key(scope: str, kind: ResourceKind) -> str:
    """Key holding the accumulated items for a resource."""
    return f"{page_key(scope, kind)}/data"


def pull_request_scope(repo_slug: str, pr_number: int) -> str:
    """Scope used for the comments and reviews of one pull request."""
    return f"{repo_slug}/{pr_number}"
