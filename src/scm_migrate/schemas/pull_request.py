"""Pydantic schemas for pull requests and their comments."""

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from .base import SchemaBase


class User(SchemaBase):
    """Author of a pull request or comment."""

    login: str = Field(description="Provider username")
    name: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Resolved email (may be a fallback)")


class PullRequest(SchemaBase):
    """A pull request as exported to pr<N>.json."""

    number: int = Field(description="Pull request number")
    title: str = Field(default="", description="Title")
    body: str = Field(default="", description="Description")
    source_branch: str = Field(default="", description="Head branch")
    target_branch: str = Field(default="", description="Base branch")
    source_sha: str = Field(default="", description="Head commit SHA")
    merge_sha: str = Field(default="", description="Merge commit SHA")
    author: User = Field(description="Author")
    closed: bool = Field(default=False, description="Pull request is closed")
    merged: bool = Field(default=False, description="Pull request was merged")
    draft: bool = Field(default=False, description="Pull request is a draft")
    labels: list[str] = Field(default_factory=list, description="Label names")
    reviewers: list[str] = Field(default_factory=list, description="Requested reviewer logins")
    link: str = Field(default="", description="Web URL")
    created_at: datetime | None = Field(default=None, description="Creation time (UTC)")
    updated_at: datetime | None = Field(default=None, description="Last update (UTC)")
    merged_at: datetime | None = Field(default=None, description="Merge time (UTC)")


class CodeComment(SchemaBase):
    """Position metadata of an inline (diff) comment."""

    path: str = Field(description="File path")
    line: int = Field(default=0, description="Line in the new file")
    line_span: int = Field(default=1, description="Number of lines covered")
    side: str = Field(default="RIGHT", description="Diff side (LEFT or RIGHT)")
    hunk_header: str = Field(default="", description="Diff hunk header")
    source_sha: str = Field(default="", description="Commit the comment was made on")
    merge_base_sha: str = Field(default="", description="Merge base at comment time")


class Comment(SchemaBase):
    """A pull request comment."""

    id: int = Field(description="Provider comment ID")
    body: str = Field(default="", description="Comment text")
    author: User = Field(description="Author")
    parent_id: int | None = Field(default=None, description="Replied-to comment ID")
    code_comment: CodeComment | None = Field(default=None, description="Inline position")
    created_at: datetime | None = Field(default=None, description="Creation time (UTC)")
    updated_at: datetime | None = Field(default=None, description="Last update (UTC)")


class ReviewState(StrEnum):
    """Outcome of a submitted review."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changereq"


class Review(SchemaBase):
    """A submitted pull request review."""

    id: int = Field(description="Provider review ID")
    body: str = Field(default="", description="Review summary")
    author: User = Field(description="Reviewer")
    state: ReviewState = Field(default=ReviewState.REVIEWED, description="Review outcome")
    commit_sha: str = Field(default="", description="Commit the review was made on")
    submitted_at: datetime | None = Field(default=None, description="Submission time (UTC)")


class PullRequestData(SchemaBase):
    """A pull request with its comments and reviews; one record of pr<N>.json."""

    pull_request: PullRequest
    comments: list[Comment] = Field(default_factory=list)
    reviews: list[Review] = Field(default_factory=list)
