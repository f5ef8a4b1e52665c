"""Interchange tree writer.

Layout of an export directory before archiving::

    <export_dir>/
      ExporterLogs.log
      users.json
      <namespace>/<name>/
        info.json
        webhooks.json
        branchrules.json
        labels.json
        pr/pr0.json, pr/pr1.json, ...
        git/                 (bare clone)

All JSON is written compactly; chunk sizes are measured on exactly the
bytes that end up in the file.
"""

from __future__ import annotations

import json
import shutil
import zipfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python

from scm_migrate.checkpoint import CHECKPOINT_FILE_NAME
from scm_migrate.logging import get_logger
from scm_migrate.schemas import PullRequestData, RepoData, UsersFile, WebhookData

logger = get_logger(__name__)

INFO_FILE_NAME = "info.json"
WEBHOOKS_FILE_NAME = "webhooks.json"
BRANCH_RULES_FILE_NAME = "branchrules.json"
LABELS_FILE_NAME = "labels.json"
USERS_FILE_NAME = "users.json"
PR_DIR_NAME = "pr"
PR_FILE_TEMPLATE = "pr%d.json"
ARCHIVE_NAME = "export.zip"


def dump_json(data: Any) -> bytes:
    """Serialize models, dataclasses or plain values to compact JSON bytes."""
    return json.dumps(to_jsonable_python(data), separators=(",", ":")).encode("utf-8")


def write_json(path: Path, data: Any) -> None:
    """Write a JSON file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dump_json(data))


def split_chunks(
    items: Sequence[PullRequestData], max_bytes: int
) -> list[list[PullRequestData]]:
    """Split pull request records into chunks whose JSON array fits max_bytes.

    Records keep their order. A chunk is closed as soon as the next record
    would push it past the bound; a single record larger than the bound
    still gets a chunk of its own.

    Args:
        items: Records in export order
        max_bytes: Upper bound for one serialized chunk

    Returns:
        Non-empty chunks whose concatenation equals ``items``
    """
    chunks: list[list[PullRequestData]] = []
    current: list[PullRequestData] = []
    # "[" and "]"
    current_size = 2

    for item in items:
        item_size = len(dump_json(item))
        added = item_size + (1 if current else 0)
        if current and current_size + added > max_bytes:
            chunks.append(current)
            current = []
            current_size = 2
            added = item_size
        current.append(item)
        current_size += added

    if current:
        chunks.append(current)
    return chunks


def repo_path(export_dir: Path, repo_slug: str) -> Path:
    """Folder of one repository inside the export tree."""
    return export_dir.joinpath(*repo_slug.split("/"))


def write_repo_data(repo_data: RepoData, export_dir: Path, max_chunk_bytes: int) -> int:
    """Write every interchange file of one repository.

    Resource files are only written when the resource is non-empty.

    Returns:
        Number of pr<N>.json files written

    Raises:
        OSError: If a file cannot be written
    """
    folder = repo_path(export_dir, repo_data.repository.slug)
    write_json(folder / INFO_FILE_NAME, repo_data.repository)

    if repo_data.webhooks:
        write_json(folder / WEBHOOKS_FILE_NAME, WebhookData(hooks=repo_data.webhooks))
    if repo_data.branch_rules:
        write_json(folder / BRANCH_RULES_FILE_NAME, repo_data.branch_rules)
    if repo_data.labels:
        write_json(folder / LABELS_FILE_NAME, repo_data.labels)

    if not repo_data.pull_request_data:
        return 0

    chunks = split_chunks(repo_data.pull_request_data, max_chunk_bytes)
    for index, chunk in enumerate(chunks):
        write_json(folder / PR_DIR_NAME / (PR_FILE_TEMPLATE % index), chunk)
    logger.debug(
        "{}: wrote {} pull requests in {} files",
        repo_data.repository.slug,
        len(repo_data.pull_request_data),
        len(chunks),
    )
    return len(chunks)


def write_users(export_dir: Path, emails: Iterable[str]) -> Path:
    """Write the top-level users.json with sorted, deduplicated emails."""
    path = export_dir / USERS_FILE_NAME
    write_json(path, UsersFile(emails=sorted(set(emails))))
    return path


# -----------------------------------------------------------------------------
# Archive
# -----------------------------------------------------------------------------
def zip_folder(source: Path, destination: Path) -> Path:
    """Zip the export tree into destination.

    Paths inside the archive are relative to ``source``. Other zip files
    and the checkpoint are left out.

    Raises:
        OSError: If the archive cannot be written
    """
    skipped = {CHECKPOINT_FILE_NAME, CHECKPOINT_FILE_NAME + ".tmp"}
    tmp_destination = destination.with_name(destination.name + ".partial")

    with zipfile.ZipFile(tmp_destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(source.rglob("*")):
            relative = path.relative_to(source)
            if path.is_dir():
                archive.write(path, f"{relative.as_posix()}/")
                continue
            if path.suffix in (".zip", ".partial") or relative.as_posix() in skipped:
                continue
            archive.write(path, relative.as_posix())

    tmp_destination.replace(destination)
    logger.info("Archive written to {}", destination)
    return destination


def delete_except(root: Path, keep: Path) -> int:
    """Delete every entry of root except keep.

    Failures are logged and skipped.

    Returns:
        Number of entries that could not be removed
    """
    failures = 0
    for entry in root.iterdir():
        if entry == keep:
            continue
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            failures += 1
            logger.warning("Could not remove {}: {}", entry, e)
    return failures
