"""Durable key/value checkpoint store.

The whole table is one JSON object persisted to ``<export_dir>/checkpoint.ckpt``.
It is loaded once at the start of a resumed run and rewritten in full on every
save, so a crash between saves loses at most the latest page of work.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

from scm_migrate.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CHECKPOINT_FILE_NAME = "checkpoint.ckpt"


class CheckpointError(Exception):
    """Raised when the checkpoint file cannot be read or written."""

    pass


class CheckpointDecodeError(CheckpointError):
    """Raised when a stored value does not match the requested shape."""

    pass


def checkpoint_path(directory: str | Path) -> Path:
    """Path of the checkpoint file inside an export directory."""
    return Path(directory) / CHECKPOINT_FILE_NAME


class CheckpointStore:
    """Lock-protected checkpoint table backed by a single JSON file.

    Usage:
        store = CheckpointStore(export_dir)
        if resume:
            store.load()

        cursor, found = store.get("acme/widgets/pr")
        store.save("acme/widgets/pr", 3)
        prs, found = store.get_data("acme/widgets/pr/data", list[PullRequest])

        # After a fully successful export
        CheckpointStore.cleanup(export_dir)
    """

    def __init__(self, directory: str | Path) -> None:
        """Initialize an empty store.

        Args:
            directory: Export directory holding the checkpoint file
        """
        self._path = checkpoint_path(directory)
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the checkpoint file."""
        return self._path

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    def load(self) -> None:
        """Load the checkpoint file into memory.

        A missing file is a first run and leaves the table empty.

        Raises:
            CheckpointError: If the file exists but is not a JSON object
        """
        with self._lock:
            if not self._path.exists():
                logger.debug("No checkpoint at {}, starting fresh", self._path)
                self._data = {}
                return

            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise CheckpointError(f"cannot read checkpoint {self._path}: {e}") from e

            if not isinstance(raw, dict):
                raise CheckpointError(f"checkpoint {self._path} is not a JSON object")

            self._data = raw
            logger.info("Loaded {} checkpoint entries from {}", len(raw), self._path)

    def save(self, key: str, value: Any) -> None:
        """Set a value and rewrite the whole checkpoint file.

        Args:
            key: Namespaced checkpoint key
            value: Any JSON-compatible value, pydantic model or dataclass

        Raises:
            CheckpointError: If the value cannot be serialized or the file written
        """
        self.save_many({key: value})

    def save_many(self, values: Mapping[str, Any]) -> None:
        """Set several values and rewrite the checkpoint file once.

        Either every value reaches the file or none does, so related keys
        (a page cursor and its accumulated data) never disagree on disk.

        Args:
            values: Checkpoint keys and their new values

        Raises:
            CheckpointError: If a value cannot be serialized or the file written
        """
        with self._lock:
            updated = dict(self._data)
            try:
                for key, value in values.items():
                    updated[key] = to_jsonable_python(value)
                payload = json.dumps(updated)
            except (TypeError, ValueError) as e:
                keys = ", ".join(values)
                raise CheckpointError(f"cannot serialize checkpoint {keys}: {e}") from e

            self._data = updated
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(payload, encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as e:
                raise CheckpointError(f"cannot write checkpoint {self._path}: {e}") from e

    def try_save(self, key: str, value: Any) -> bool:
        """Save a value, logging instead of raising on failure.

        Losing the latest checkpoint only costs redundant work on resume.

        Returns:
            True if the value was persisted
        """
        return self.try_save_many({key: value})

    def try_save_many(self, values: Mapping[str, Any]) -> bool:
        """Save several values at once, logging instead of raising on failure.

        Returns:
            True if the values were persisted
        """
        try:
            self.save_many(values)
        except CheckpointError as e:
            logger.warning("Checkpoint save failed for {}: {}", ", ".join(values), e)
            return False
        return True

    @staticmethod
    def cleanup(directory: str | Path) -> None:
        """Delete the checkpoint file of an export directory.

        Only called after a fully successful export.

        Raises:
            CheckpointError: If the file exists but cannot be removed
        """
        path = checkpoint_path(directory)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise CheckpointError(f"cannot remove checkpoint {path}: {e}") from e

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def get(self, key: str) -> tuple[Any, bool]:
        """Read a raw value.

        Returns:
            Tuple of (value, found). found=False means never checkpointed,
            which is distinct from a stored cursor of 0.
        """
        with self._lock:
            if key not in self._data:
                return None, False
            return self._data[key], True

    def get_data(self, key: str, type_: type[T] | Any) -> tuple[T | None, bool]:
        """Read a value and re-decode it into a typed structure.

        Args:
            key: Namespaced checkpoint key
            type_: Target type, e.g. ``list[PullRequest]`` or ``dict[str, User]``

        Returns:
            Tuple of (decoded value, found)

        Raises:
            CheckpointDecodeError: If the stored value does not fit ``type_``
        """
        raw, found = self.get(key)
        if not found or raw is None:
            return None, found

        try:
            return TypeAdapter(type_).validate_python(raw), True
        except ValidationError as e:
            raise CheckpointDecodeError(f"checkpoint {key!r} has unexpected shape: {e}") from e
