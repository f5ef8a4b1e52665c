"""Tests for the incremental pull request ref remap."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from scm_migrate.git import GitCommandError
from scm_migrate.importer import (
    MIN_STAGING_OFFSET,
    IncrementalMigrationError,
    IncrementalMigrationHandler,
    RemapResult,
    TargetClientError,
    TargetNotFoundError,
    extract_pr_number,
    staging_offset,
)
from scm_migrate.importer import incremental
from scm_migrate.schemas import RepoSettings, TargetRepository
from tests.conftest import commit_file, git, requires_git


def pr_refs(repo: Path) -> dict[str, str]:
    """Map every refs/pullreq ref to its commit."""
    output = git(repo, "for-each-ref", "--format=%(refname) %(objectname)", "refs/pullreq")
    return dict(line.split(" ") for line in output.splitlines() if line)


def handler_for(client: MagicMock | None = None) -> IncrementalMigrationHandler:
    return IncrementalMigrationHandler(client or MagicMock(), "acme/widgets")


@pytest.fixture
def pr_repo(git_repo: Path) -> tuple[Path, dict[int, str]]:
    """Repository with refs/pullreq/{1,2,3}/head on distinct commits."""
    commits: dict[int, str] = {}
    for number in (1, 2, 3):
        commits[number] = commit_file(git_repo, f"pr{number}.txt", f"change {number}\n")
        git(git_repo, "update-ref", f"refs/pullreq/{number}/head", commits[number])
    return git_repo, commits


class TestExtractPrNumber:
    """Tests for ref parsing."""

    def test_valid(self):
        assert extract_pr_number("refs/pullreq/42/head") == 42

    @pytest.mark.parametrize(
        "ref",
        [
            "refs/pullreq/42",
            "refs/pull/42/head",
            "refs/pullreq/abc/head",
            "refs/pullreq/42/merge",
            "refs/pullreq/-1/head",
            "refs/pullreq/1/head/extra",
        ],
    )
    def test_invalid(self, ref):
        with pytest.raises(ValueError):
            extract_pr_number(ref)


class TestStagingOffset:
    """Tests for the staging range computation."""

    def test_minimum(self):
        assert staging_offset([1, 2, 3], 50) == MIN_STAGING_OFFSET

    def test_large_numbers(self):
        offset = staging_offset([30_000_000], 5)
        assert offset > 30_000_000 + 5

    def test_no_overlap(self):
        numbers = [7_000_000, 9_000_000]
        offset = 4_000_000
        staging = staging_offset(numbers, offset)
        staged = {n + staging for n in numbers}
        assert staged.isdisjoint(numbers)
        assert staged.isdisjoint({n + offset for n in numbers})


class TestRemapResult:
    """Tests for RemapResult."""

    def test_first_and_last(self):
        result = RemapResult(offset=10, moved=[13, 11, 12])
        assert result.first_number == 11
        assert result.last_number == 13

    def test_empty(self):
        result = RemapResult(offset=10)
        assert result.first_number is None
        assert result.to_dict()["moved"] == 0


@requires_git
class TestUpdatePrReferences:
    """Tests against a real repository."""

    async def test_refs_shifted_by_offset(self, pr_repo):
        repo, commits = pr_repo

        result = await handler_for().update_pr_references(repo, 50)

        assert sorted(result.moved) == [51, 52, 53]
        assert result.skipped == []
        assert pr_refs(repo) == {
            "refs/pullreq/51/head": commits[1],
            "refs/pullreq/52/head": commits[2],
            "refs/pullreq/53/head": commits[3],
        }

    async def test_overlapping_ranges(self, pr_repo):
        """Offset 1 moves 1->2, 2->3, 3->4 without clobbering."""
        repo, commits = pr_repo

        result = await handler_for().update_pr_references(repo, 1)

        assert sorted(result.moved) == [2, 3, 4]
        assert pr_refs(repo) == {
            "refs/pullreq/2/head": commits[1],
            "refs/pullreq/3/head": commits[2],
            "refs/pullreq/4/head": commits[3],
        }

    async def test_zero_offset_keeps_refs(self, pr_repo):
        repo, commits = pr_repo

        await handler_for().update_pr_references(repo, 0)

        assert pr_refs(repo) == {f"refs/pullreq/{n}/head": sha for n, sha in commits.items()}

    async def test_malformed_ref_skipped(self, pr_repo):
        repo, commits = pr_repo
        git(repo, "update-ref", "refs/pullreq/latest/head", commits[1])

        result = await handler_for().update_pr_references(repo, 10)

        assert "refs/pullreq/latest/head" in result.skipped
        refs = pr_refs(repo)
        assert refs["refs/pullreq/latest/head"] == commits[1]
        assert refs["refs/pullreq/11/head"] == commits[1]

    async def test_failed_delete_never_overwrites(self, pr_repo, monkeypatch):
        """A source ref that survives phase 1 is not clobbered in phase 2."""
        repo, commits = pr_repo
        real_run = incremental.run_git_command

        async def flaky_run(directory, *args, **kwargs):
            if args == ("update-ref", "-d", "refs/pullreq/2/head"):
                raise GitCommandError(args, 1, "cannot lock ref")
            return await real_run(directory, *args, **kwargs)

        monkeypatch.setattr("scm_migrate.importer.incremental.run_git_command", flaky_run)

        result = await handler_for().update_pr_references(repo, 1)

        staging = result.staging_offset
        assert staging == MIN_STAGING_OFFSET
        assert result.moved == [4]
        refs = pr_refs(repo)
        # Ref 2 still points at its own commit instead of pull request 1's
        assert refs["refs/pullreq/2/head"] == commits[2]
        assert refs["refs/pullreq/4/head"] == commits[3]
        assert refs[f"refs/pullreq/{staging + 1}/head"] == commits[1]
        assert sorted(result.skipped) == sorted(
            [
                "refs/pullreq/2/head",
                f"refs/pullreq/{staging + 1}/head",
                f"refs/pullreq/{staging + 2}/head",
            ]
        )

    async def test_no_refs(self, git_repo: Path):
        result = await handler_for().update_pr_references(git_repo, 5)

        assert result.moved == []
        assert result.staging_offset == 0

    async def test_negative_offset(self, pr_repo):
        repo, _ = pr_repo
        with pytest.raises(ValueError):
            await handler_for().update_pr_references(repo, -1)

    async def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(IncrementalMigrationError, match="failed to list PR references"):
            await handler_for().update_pr_references(tmp_path / "missing", 5)


class TestTargetChecks:
    """Tests for the target-system preflight calls."""

    async def test_repository_exists(self):
        client = MagicMock()
        client.find_repo_settings = AsyncMock(return_value=RepoSettings())

        await handler_for(client).check_repository_exists()

        client.find_repo_settings.assert_awaited_once_with("acme/widgets")

    async def test_repository_missing(self):
        client = MagicMock()
        client.find_repo_settings = AsyncMock(
            side_effect=TargetNotFoundError("not found", status_code=404)
        )

        with pytest.raises(IncrementalMigrationError, match="does not exist on target server"):
            await handler_for(client).check_repository_exists()

    async def test_repository_check_failure(self):
        client = MagicMock()
        client.find_repo_settings = AsyncMock(side_effect=TargetClientError("boom", 500))

        with pytest.raises(IncrementalMigrationError, match="could not be checked"):
            await handler_for(client).check_repository_exists()

    async def test_pr_offset(self):
        client = MagicMock()
        client.get_repository = AsyncMock(
            return_value=TargetRepository.model_validate({"num_pulls": 42})
        )

        assert await handler_for(client).get_pr_offset() == 42

    async def test_pr_offset_failure(self):
        client = MagicMock()
        client.get_repository = AsyncMock(side_effect=TargetClientError("boom", 500))

        with pytest.raises(IncrementalMigrationError, match="failed to get repository metadata"):
            await handler_for(client).get_pr_offset()
