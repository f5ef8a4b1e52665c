"""Bare clone of a source repository for the interchange archive.

The clone lives in ``<repo_dir>/git`` and carries branches, tags and the
provider's pull request refs (e.g. ``refs/pull/*/head:refs/pullreq/*/head``).
Its ``config`` file is removed afterwards so no credential ends up in the
archive.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from scm_migrate.logging import get_logger

from .command import (
    GitCommandError,
    count_lfs_objects,
    fetch_lfs_objects,
    run_git_command,
)

logger = get_logger(__name__)

GIT_DIR_NAME = "git"

BASE_REFSPECS = ("refs/heads/*:refs/heads/*", "refs/tags/*:refs/tags/*")


class CloneStatus(StrEnum):
    """Outcome of a clone attempt."""

    CLONED = "cloned"
    EMPTY = "empty"
    ALREADY_CLONED = "already_cloned"


@dataclass
class CloneResult:
    """Result of cloning one repository."""

    status: CloneStatus
    """What happened to the clone."""

    git_dir: Path
    """Location of the bare clone."""

    lfs_objects: int = 0
    """LFS objects found (0 when LFS is skipped)."""

    @property
    def is_empty(self) -> bool:
        """True if the source repository has no refs."""
        return self.status == CloneStatus.EMPTY


def authenticated_url(clone_url: str, username: str, token: str) -> str:
    """Embed credentials into an http(s) clone URL.

    Other schemes (ssh, file paths) are returned unchanged.
    """
    if not token:
        return clone_url
    for prefix in ("https://", "http://"):
        if clone_url.startswith(prefix):
            return f"{prefix}{username}:{token}@{clone_url.removeprefix(prefix)}"
    return clone_url


def is_populated_clone(git_dir: Path) -> bool:
    """True if a previous run finished a bare clone here.

    A finished clone has had its config removed; a clone that still has a
    config was interrupted and is redone.
    """
    return (
        (git_dir / "HEAD").is_file()
        and (git_dir / "objects").is_dir()
        and not (git_dir / "config").exists()
    )


async def _has_refs(git_dir: Path) -> bool:
    try:
        output = await run_git_command(git_dir, "show-ref")
    except GitCommandError:
        # show-ref exits 1 when there are no refs at all
        return False
    return bool(output.strip())


async def clone_repository(
    clone_url: str,
    repo_dir: str | Path,
    *,
    repo_slug: str,
    pull_request_refspecs: Sequence[str] = (),
    username: str = "",
    token: str = "",
    with_lfs: bool = True,
    timeout: float | None = None,
) -> CloneResult:
    """Clone a repository as a bare mirror with its pull request refs.

    Args:
        clone_url: HTTP(S) or local clone URL
        repo_dir: Repository folder of the export tree
        repo_slug: Repository slug (for logging)
        pull_request_refspecs: Provider ref-specs mapping PR heads to refs/pullreq/*
        username: Login embedded into http(s) URLs
        token: Token embedded into http(s) URLs
        with_lfs: Fetch and count LFS objects after cloning
        timeout: Per-command timeout in seconds

    Returns:
        CloneResult describing the outcome

    Raises:
        GitCommandError: If clone, fetch or LFS commands fail for a non-empty repository
        OSError: If the clone directory cannot be prepared
    """
    git_dir = Path(repo_dir) / GIT_DIR_NAME

    if is_populated_clone(git_dir):
        logger.info("{}: repository already cloned, skipping clone", repo_slug)
        if not await _has_refs(git_dir):
            return CloneResult(CloneStatus.EMPTY, git_dir)
        lfs_objects = await count_lfs_objects(git_dir, timeout=timeout) if with_lfs else 0
        return CloneResult(CloneStatus.ALREADY_CLONED, git_dir, lfs_objects=lfs_objects)

    if git_dir.exists():
        # Leftover from an interrupted clone
        shutil.rmtree(git_dir)
    git_dir.mkdir(parents=True)
    url = authenticated_url(clone_url, username, token)

    logger.info("{}: cloning repository", repo_slug)
    await run_git_command(git_dir, "clone", "--bare", url, ".", timeout=timeout)

    if not await _has_refs(git_dir):
        logger.info("{}: repository is empty", repo_slug)
        (git_dir / "config").unlink(missing_ok=True)
        return CloneResult(CloneStatus.EMPTY, git_dir)

    await run_git_command(
        git_dir,
        "fetch",
        "origin",
        *BASE_REFSPECS,
        *pull_request_refspecs,
        timeout=timeout,
    )

    lfs_objects = 0
    if with_lfs:
        await fetch_lfs_objects(git_dir, timeout=timeout)
        lfs_objects = await count_lfs_objects(git_dir, timeout=timeout)
        logger.debug("{}: {} LFS objects", repo_slug, lfs_objects)

    # The remote URL in config carries the credentials
    (git_dir / "config").unlink()

    logger.info("{}: clone complete", repo_slug)
    return CloneResult(CloneStatus.CLONED, git_dir, lfs_objects=lfs_objects)
