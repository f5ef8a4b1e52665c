"""Incremental migration: renumber pull request refs of a second pass.

A target repository that already received a migration holds pull requests
1..N. Before pushing a second pass, every ``refs/pullreq/<n>/head`` of the
local clone is renumbered to ``n + N``. The move goes through a staging
range first so that no rename can overwrite a ref that has not been moved
yet, whatever order the refs are processed in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from scm_migrate.git import GitCommandError, run_git_command
from scm_migrate.logging import get_logger
from scm_migrate.providers import PULL_REQUEST_REF_PREFIX

from .target_client import TargetClient, TargetClientError, TargetNotFoundError

logger = get_logger(__name__)

# Lower bound of the staging range
MIN_STAGING_OFFSET = 10_000_000


class IncrementalMigrationError(Exception):
    """Raised when the incremental remap cannot run."""

    pass


def pr_ref(number: int) -> str:
    """Ref name of a pull request head."""
    return f"{PULL_REQUEST_REF_PREFIX}/{number}/head"


def extract_pr_number(ref: str) -> int:
    """Get the pull request number from ``refs/pullreq/<n>/head``.

    Raises:
        ValueError: If the ref does not have exactly that shape
    """
    parts = ref.split("/")
    if len(parts) != 4 or parts[0] != "refs" or parts[1] != "pullreq" or parts[3] != "head":
        raise ValueError(f"invalid PR reference format: {ref}")
    if not parts[2].isdigit():
        raise ValueError(f"invalid PR number in reference {ref}")
    return int(parts[2])


def staging_offset(numbers: list[int], offset: int) -> int:
    """Offset of the staging range for a remap.

    The staging range must not overlap the original numbers nor the final
    ones, so it starts above ``max(numbers) + offset``.
    """
    highest = max([offset, *numbers], default=0)
    return max(MIN_STAGING_OFFSET, 2 * highest + 1)


@dataclass
class RemapResult:
    """Outcome of renumbering the pull request refs of one clone."""

    offset: int
    """Offset added to every pull request number."""

    staging_offset: int = 0
    """Offset of the temporary range used between the two phases."""

    moved: list[int] = field(default_factory=list)
    """Final numbers of the refs that were renumbered."""

    skipped: list[str] = field(default_factory=list)
    """Refs left untouched because a step failed or the ref was malformed."""

    @property
    def first_number(self) -> int | None:
        return min(self.moved) if self.moved else None

    @property
    def last_number(self) -> int | None:
        return max(self.moved) if self.moved else None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "offset": self.offset,
            "staging_offset": self.staging_offset,
            "moved": len(self.moved),
            "skipped": list(self.skipped),
            "first_number": self.first_number,
            "last_number": self.last_number,
        }


class IncrementalMigrationHandler:
    """Prepare a local clone for an incremental push to the target.

    Usage:
        async with TargetClient() as client:
            handler = IncrementalMigrationHandler(client, "acme/widgets")
            await handler.check_repository_exists()
            offset = await handler.get_pr_offset()
            result = await handler.update_pr_references(git_dir, offset)
    """

    def __init__(self, client: TargetClient, repo_ref: str) -> None:
        self._client = client
        self._repo_ref = repo_ref

    @property
    def repo_ref(self) -> str:
        return self._repo_ref

    async def check_repository_exists(self) -> None:
        """Fail fast if the target repository is missing.

        Raises:
            IncrementalMigrationError: If the repository cannot be found
        """
        try:
            await self._client.find_repo_settings(self._repo_ref)
        except TargetNotFoundError as e:
            raise IncrementalMigrationError(
                f"repository {self._repo_ref} does not exist on target server"
            ) from e
        except TargetClientError as e:
            raise IncrementalMigrationError(
                f"repository {self._repo_ref} could not be checked on target server: {e}"
            ) from e

    async def get_pr_offset(self) -> int:
        """Get the highest pull request number already on the target.

        Raises:
            IncrementalMigrationError: If the repository metadata cannot be read
        """
        try:
            repository = await self._client.get_repository(self._repo_ref)
        except TargetClientError as e:
            raise IncrementalMigrationError(f"failed to get repository metadata: {e}") from e
        return repository.pull_request_number

    async def update_pr_references(self, git_dir: str | Path, offset: int) -> RemapResult:
        """Renumber every pull request ref of a clone by ``offset``.

        Phase 1 moves each ref to the staging range, phase 2 moves it to its
        final number. Existing target refs are never overwritten. A ref whose
        move fails is logged and skipped, as is any staging ref it leaves behind.

        Args:
            git_dir: Local clone (bare or not)
            offset: Number added to every pull request number

        Returns:
            RemapResult with the moved and skipped refs

        Raises:
            ValueError: If offset is negative
            IncrementalMigrationError: If the refs cannot be listed
        """
        if offset < 0:
            raise ValueError("offset must be >= 0")

        try:
            refs = await self._list_pr_references(git_dir)
        except GitCommandError as e:
            raise IncrementalMigrationError(f"failed to list PR references: {e}") from e

        result = RemapResult(offset=offset)
        if not refs:
            logger.info("No PR references found to update")
            return result

        numbers: list[int] = []
        for ref in refs:
            try:
                numbers.append(extract_pr_number(ref))
            except ValueError as e:
                logger.warning("Skipping invalid reference {}: {}", ref, e)
                result.skipped.append(ref)

        result.staging_offset = staging_offset(numbers, offset)

        staged = await self._move_references(git_dir, numbers, 0, result.staging_offset, result)
        final = await self._move_references(
            git_dir, staged, result.staging_offset, offset, result
        )
        result.moved = [n + offset for n in final]

        # Anything still in the staging range was left behind by a failed step
        try:
            leftover = await self._list_pr_references(git_dir)
        except GitCommandError as e:
            raise IncrementalMigrationError(f"failed to list PR references: {e}") from e
        for ref in leftover:
            try:
                number = extract_pr_number(ref)
            except ValueError:
                continue
            if number >= result.staging_offset and ref not in result.skipped:
                logger.warning("Staging reference {} was left behind", ref)
                result.skipped.append(ref)

        if result.moved:
            logger.info(
                "Updated PR references with offset {}: {}..{} ({} skipped)",
                offset,
                result.first_number,
                result.last_number,
                len(result.skipped),
            )
        return result

    async def _list_pr_references(self, git_dir: str | Path) -> list[str]:
        output = await run_git_command(
            git_dir, "for-each-ref", "--format=%(refname)", f"{PULL_REQUEST_REF_PREFIX}/*/head"
        )
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def _move_references(
        self,
        git_dir: str | Path,
        numbers: list[int],
        src_offset: int,
        target_offset: int,
        result: RemapResult,
    ) -> list[int]:
        """Move ``n + src_offset`` to ``n + target_offset`` for each number.

        Returns:
            Numbers whose ref was moved
        """
        moved: list[int] = []
        for number in numbers:
            src_ref = pr_ref(number + src_offset)
            target_ref = pr_ref(number + target_offset)

            try:
                commit = (await run_git_command(git_dir, "rev-parse", src_ref)).strip()
            except GitCommandError as e:
                logger.warning("Failed to get commit for {}: {}", src_ref, e)
                result.skipped.append(src_ref)
                continue

            try:
                # Empty old value: refuse to overwrite an existing ref
                await run_git_command(git_dir, "update-ref", target_ref, commit, "")
            except GitCommandError as e:
                logger.warning("Failed to create target ref {}: {}", target_ref, e)
                result.skipped.append(src_ref)
                continue

            try:
                await run_git_command(git_dir, "update-ref", "-d", src_ref)
            except GitCommandError as e:
                logger.warning("Failed to delete source ref {}: {}", src_ref, e)
                result.skipped.append(src_ref)
                continue

            moved.append(number)
        return moved
