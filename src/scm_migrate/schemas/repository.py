"""Pydantic schemas for repositories and their per-repository resources."""

from pydantic import Field

from .base import SchemaBase


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """
    Parse a repository slug into namespace and name.

    Args:
        slug: Repository slug like 'acme/widgets'

    Returns:
        Tuple of (namespace, name)

    Raises:
        ValueError: If the slug is not in namespace/name format
    """
    namespace, sep, name = slug.partition("/")
    if not sep or not namespace or not name or "/" in name:
        raise ValueError(f"Repository must be in namespace/name format: {slug!r}")
    return namespace, name


class Repository(SchemaBase):
    """A source repository, written to info.json."""

    id: str = Field(default="", description="Provider repository ID")
    namespace: str = Field(description="Organization or owner (e.g., 'acme')")
    name: str = Field(description="Repository name (e.g., 'widgets')")
    slug: str = Field(description="Full repository path (e.g., 'acme/widgets')")
    clone_url: str = Field(description="HTTP(S) clone URL")
    default_branch: str = Field(default="main", description="Default branch name")
    description: str = Field(default="", description="Repository description")
    private: bool = Field(default=False, description="Whether the repository is private")
    link: str = Field(default="", description="Web URL of the repository")
    is_empty: bool = Field(default=False, description="Repository has no git history")


class BranchRule(SchemaBase):
    """A branch protection rule.

    ``bypass_users`` holds emails so the target can resolve its own users.
    """

    id: int = Field(default=0, description="Provider rule ID")
    name: str = Field(description="Rule name")
    type: str = Field(default="branch", description="Rule type")
    include_default: bool = Field(default=False, description="Rule applies to default branch")
    branches: list[str] = Field(default_factory=list, description="Explicit branch names")
    included_patterns: list[str] = Field(default_factory=list, description="Include globs")
    excluded_patterns: list[str] = Field(default_factory=list, description="Exclude globs")
    bypass_users: list[str] = Field(default_factory=list, description="Bypass user emails")
    bypass_groups: list[str] = Field(default_factory=list, description="Bypass groups")
    bypass_keys: list[str] = Field(default_factory=list, description="Bypass deploy keys")


class Webhook(SchemaBase):
    """A repository webhook."""

    id: str = Field(default="", description="Provider webhook ID")
    name: str = Field(default="", description="Display name")
    target: str = Field(description="Delivery URL")
    events: list[str] = Field(default_factory=list, description="Subscribed events")
    active: bool = Field(default=True, description="Whether deliveries are enabled")
    skip_verify: bool = Field(default=False, description="TLS verification disabled")


class WebhookData(SchemaBase):
    """Envelope written to webhooks.json."""

    hooks: list[Webhook] = Field(default_factory=list, description="Repository webhooks")


class Label(SchemaBase):
    """A repository label."""

    name: str = Field(description="Label name")
    color: str = Field(default="", description="Label color (hex without #)")
    description: str = Field(default="", description="Label description")
