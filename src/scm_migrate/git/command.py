"""Shared git command execution.

Every git interaction (clone, fetch, LFS, reference rewrites) goes through
``run_git_command`` so failures are reported uniformly with the command's
combined output.
"""

from __future__ import annotations

import asyncio
import os
import re
from collections.abc import Mapping
from pathlib import Path

from scm_migrate.logging import get_logger

logger = get_logger(__name__)

# Handles both "git version 2.45.1" and "git-lfs/3.6.1 (GitHub; linux amd64; go 1.22)"
VERSION_PATTERN = re.compile(r"(?:version\s+|/)((?:\d+\.){1,2}\d+)")


class GitCommandError(Exception):
    """Raised when a git command exits non-zero or cannot be started."""

    def __init__(
        self,
        args: tuple[str, ...],
        returncode: int | None,
        output: str = "",
    ) -> None:
        command = " ".join(("git", *args))
        detail = output.strip() or "no output"
        super().__init__(f"`{command}` failed (exit {returncode}): {detail}")
        self.git_args = args
        self.returncode = returncode
        self.output = output


class GitVersionError(Exception):
    """Raised when git or git-lfs is missing or older than required."""

    pass


async def run_git_command(
    directory: str | Path,
    *args: str,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> str:
    """Run ``git <args>`` in a directory and return its combined output.

    Args:
        directory: Working directory for the command
        *args: Arguments passed to git
        env: Extra environment variables layered over the process environment
        timeout: Seconds before the process is killed (None = wait forever)

    Returns:
        Combined stdout/stderr, decoded as UTF-8

    Raises:
        GitCommandError: If git cannot be started, times out, or exits non-zero
    """
    full_env = {**os.environ, **(env or {})}
    safe_args = tuple(_mask_credentials(a) for a in args)
    logger.debug("git {} (cwd={})", " ".join(safe_args), directory)

    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(directory),
            env=full_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise GitCommandError(safe_args, None, str(e)) from e

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError as e:
        process.kill()
        await process.wait()
        raise GitCommandError(safe_args, None, f"timed out after {timeout}s") from e

    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    if process.returncode != 0:
        raise GitCommandError(safe_args, process.returncode, _mask_credentials(output))
    return output


async def run_git_lfs_command(
    directory: str | Path,
    *args: str,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> str:
    """Run ``git lfs <args>``; see run_git_command."""
    return await run_git_command(directory, "lfs", *args, env=env, timeout=timeout)


def _mask_credentials(arg: str) -> str:
    """Hide the userinfo part of an http(s) URL argument."""
    return re.sub(r"(https?://)[^/@\s]+@", r"\1***@", arg)


# -----------------------------------------------------------------------------
# LFS
# -----------------------------------------------------------------------------
async def fetch_lfs_objects(git_dir: str | Path, timeout: float | None = None) -> None:
    """Download every LFS object reachable from any ref of the clone."""
    await run_git_lfs_command(git_dir, "fetch", "--all", timeout=timeout)


async def count_lfs_objects(git_dir: str | Path, timeout: float | None = None) -> int:
    """Count LFS-tracked files (one line of ``git lfs ls-files`` each)."""
    output = await run_git_lfs_command(git_dir, "ls-files", "--all", timeout=timeout)
    return output.count("\n")


# -----------------------------------------------------------------------------
# Version Checks
# -----------------------------------------------------------------------------
def parse_version(text: str) -> tuple[int, int] | None:
    """Extract (major, minor) from ``git version`` style output.

    Returns:
        Tuple of (major, minor), or None if no version is present
    """
    match = VERSION_PATTERN.search(text)
    if match is None:
        return None
    parts = match.group(1).split(".")
    return int(parts[0]), int(parts[1])


def _required(minimum: str) -> tuple[int, int]:
    major, _, minor = minimum.partition(".")
    return int(major), int(minor or 0)


async def _tool_version(*commands: tuple[str, ...]) -> tuple[int, int] | None:
    """Return the first parseable version among alternative commands."""
    for command in commands:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await process.communicate()
        except OSError:
            continue
        if process.returncode == 0:
            version = parse_version(stdout.decode("utf-8", errors="replace"))
            if version is not None:
                return version
    return None


async def check_git_installation(minimum: str = "2.45") -> tuple[int, int]:
    """Verify git is installed and recent enough.

    Raises:
        GitVersionError: If git is missing or older than ``minimum``
    """
    version = await _tool_version(("git", "version"))
    if version is None:
        raise GitVersionError("git is not installed")
    if version < _required(minimum):
        raise GitVersionError(
            f"git version must be {minimum} or higher (found {version[0]}.{version[1]})"
        )
    return version


async def check_git_lfs_installation(minimum: str = "3.5") -> tuple[int, int]:
    """Verify git-lfs is installed and recent enough.

    Raises:
        GitVersionError: If git-lfs is missing or older than ``minimum``
    """
    version = await _tool_version(("git-lfs", "version"), ("git", "lfs", "version"))
    if version is None:
        raise GitVersionError("git-lfs is not installed")
    if version < _required(minimum):
        raise GitVersionError(
            f"git-lfs version must be {minimum} or higher (found {version[0]}.{version[1]})"
        )
    return version
