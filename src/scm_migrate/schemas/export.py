"""Aggregates built during an export run."""

from pydantic import Field

from .base import SchemaBase
from .pull_request import PullRequestData
from .repository import BranchRule, Label, Repository, Webhook


class RepoData(SchemaBase):
    """Everything exported for one repository.

    Owned by the exporter for the duration of the run; written out as
    info.json, webhooks.json, branchrules.json, labels.json and pr/pr<N>.json.
    """

    repository: Repository
    webhooks: list[Webhook] = Field(default_factory=list)
    branch_rules: list[BranchRule] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    pull_request_data: list[PullRequestData] = Field(default_factory=list)


class UsersFile(SchemaBase):
    """Top-level users.json."""

    emails: list[str] = Field(default_factory=list, description="Deduplicated user emails")
