"""Import-side helpers.

This module provides:
- TargetClient: read access to the target system's REST API
- IncrementalMigrationHandler: pull request ref renumbering for a second pass
"""

from .incremental import (
    MIN_STAGING_OFFSET,
    IncrementalMigrationError,
    IncrementalMigrationHandler,
    RemapResult,
    extract_pr_number,
    pr_ref,
    staging_offset,
)
from .target_client import TargetClient, TargetClientError, TargetNotFoundError, encode_repo_ref

__all__ = [
    # Incremental
    "MIN_STAGING_OFFSET",
    "IncrementalMigrationError",
    "IncrementalMigrationHandler",
    "RemapResult",
    "extract_pr_number",
    "pr_ref",
    "staging_offset",
    # Target client
    "TargetClient",
    "TargetClientError",
    "TargetNotFoundError",
    "encode_repo_ref",
]
