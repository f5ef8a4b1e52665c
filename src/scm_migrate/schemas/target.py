"""Pydantic schemas for target-system API responses."""

from pydantic import Field

from .base import SchemaBase


class RepoSettings(SchemaBase):
    """General settings of a target repository."""

    file_size_limit: int | None = Field(default=None, description="Max file size in bytes")
    git_lfs_enabled: bool | None = Field(default=None, description="LFS enabled on target")


class TargetRepository(SchemaBase):
    """Repository metadata on the target system."""

    identifier: str = Field(default="", description="Repository identifier")
    path: str = Field(default="", description="Full repository path")
    default_branch: str = Field(default="", description="Default branch")
    pull_request_number: int = Field(
        default=0,
        ge=0,
        validation_alias="num_pulls",
        description="Highest pull request number already on the target",
    )
