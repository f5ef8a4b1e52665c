"""Checkpoint store and checkpointed pagination.

Components:
- CheckpointStore: lock-protected JSON table persisted to checkpoint.ckpt
- ResourceKind / page_key / data_key: namespaced key builders
- paginate_with_checkpoint: resumable pagination for any resource
"""

from .keys import (
    CURSOR_DONE,
    CURSOR_START,
    USERS_KEY,
    ResourceKind,
    pull_request_scope,
    data_key,
    page_key,
)
from .pagination import Page, PageFetcher, is_drained, load_cursor, paginate_with_checkpoint
from .store import (
    CHECKPOINT_FILE_NAME,
    CheckpointDecodeError,
    CheckpointError,
    CheckpointStore,
    checkpoint_path,
)

__all__ = [
    # Keys
    "CURSOR_DONE",
    "CURSOR_START",
    "USERS_KEY",
    "ResourceKind",
    "pull_request_scope",
    "data_key",
    "page_key",
    # Pagination
    "Page",
    "PageFetcher",
    "is_drained",
    "load_cursor",
    "paginate_with_checkpoint",
    # Store
    "CHECKPOINT_FILE_NAME",
    "CheckpointDecodeError",
    "CheckpointError",
    "CheckpointStore",
    "checkpoint_path",
]
