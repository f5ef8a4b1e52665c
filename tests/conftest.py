"""Pytest configuration and shared fixtures.

Usage Guide:
- For interchange schema tests: use the factories in tests.factories
- For export runs: use FakeProvider from tests.factories with export_dir
- For GitHub adapter tests: use payloads from tests.fixtures.github_responses
- For git-level tests: use the git_repo fixture (skipped without git)
"""

import os
import shutil
import subprocess
from datetime import UTC, datetime
from pathlib import Path

import pytest

from scm_migrate.config import get_settings

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# All hardcoded dates should reference these constants for consistency.
# -----------------------------------------------------------------------------

# Base dates (datetime objects for Pydantic)
JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)   # PR opened
JAN_12 = datetime(2024, 1, 12, 16, 0, 0, tzinfo=UTC)  # PR merged
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)  # Comment posted

# ISO 8601 strings (for GitHub API mocks)
JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_12_ISO = "2024-01-12T16:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_16_ISO = "2024-01-16T14:00:00Z"

# Organization used across export tests
TEST_ORG = "acme"

GIT_AVAILABLE = shutil.which("git") is not None

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git is not installed")


# -----------------------------------------------------------------------------
# Settings Isolation
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep real credentials and cached settings out of tests."""
    for name in ("GITHUB_TOKEN", "GITHUB_USERNAME", "TARGET_ENDPOINT", "TARGET_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Filesystem Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    """Empty export working directory."""
    path = tmp_path / "export"
    path.mkdir()
    return path


# -----------------------------------------------------------------------------
# Git Fixtures
# -----------------------------------------------------------------------------
def git(cwd: Path, *args: str) -> str:
    """Run git synchronously in a test repository."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        env={
            "GIT_AUTHOR_NAME": "Test",
            "GIT_AUTHOR_EMAIL": "test@example.com",
            "GIT_COMMITTER_NAME": "Test",
            "GIT_COMMITTER_EMAIL": "test@example.com",
            "GIT_CONFIG_NOSYSTEM": "1",
            "HOME": str(cwd),
            "PATH": os.environ.get("PATH", ""),
        },
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str) -> str:
    """Write a file, commit it, and return the commit SHA."""
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", f"add {name}")
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Non-bare repository with one commit on main."""
    if not GIT_AVAILABLE:
        pytest.skip("git is not installed")
    repo = tmp_path / "source"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "main")
    commit_file(repo, "README.md", "hello\n")
    return repo
