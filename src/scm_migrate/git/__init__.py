"""Git command helper and repository cloning.

Components:
- run_git_command: combined-output git execution shared by export and import
- check_git_installation / check_git_lfs_installation: tool version gates
- clone_repository: bare clone with pull request refs and LFS objects
"""

from .clone import (
    GIT_DIR_NAME,
    CloneResult,
    CloneStatus,
    authenticated_url,
    clone_repository,
    is_populated_clone,
)
from .command import (
    GitCommandError,
    GitVersionError,
    check_git_installation,
    check_git_lfs_installation,
    count_lfs_objects,
    fetch_lfs_objects,
    parse_version,
    run_git_command,
    run_git_lfs_command,
)

__all__ = [
    # Clone
    "GIT_DIR_NAME",
    "CloneResult",
    "CloneStatus",
    "authenticated_url",
    "clone_repository",
    "is_populated_clone",
    # Commands
    "GitCommandError",
    "GitVersionError",
    "check_git_installation",
    "check_git_lfs_installation",
    "count_lfs_objects",
    "fetch_lfs_objects",
    "parse_version",
    "run_git_command",
    "run_git_lfs_command",
]
