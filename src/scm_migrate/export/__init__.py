"""Export of an organization into an interchange archive.

This module provides:
- Exporter / ExportFlags: the resumable export run
- ExportReport / RepoReport: per-run metrics
- Writer helpers: chunking, interchange files, archive
- UserResolver: email resolution with fallback synthesis
"""

from .exceptions import ExportError
from .file_logger import EXPORTER_LOG_FILE_NAME, ExporterLog, ExporterLogError
from .orchestrator import Exporter, ExportFlags
from .report import ExportReport, RepoReport
from .users import UNKNOWN_EMAIL_SUFFIX, UserResolver, fallback_email, is_fallback_email
from .writer import (
    ARCHIVE_NAME,
    BRANCH_RULES_FILE_NAME,
    INFO_FILE_NAME,
    LABELS_FILE_NAME,
    PR_DIR_NAME,
    USERS_FILE_NAME,
    WEBHOOKS_FILE_NAME,
    delete_except,
    dump_json,
    split_chunks,
    write_repo_data,
    write_users,
    zip_folder,
)

__all__ = [
    # Orchestration
    "ExportError",
    "ExportFlags",
    "Exporter",
    # Report
    "ExportReport",
    "RepoReport",
    # Exporter log
    "EXPORTER_LOG_FILE_NAME",
    "ExporterLog",
    "ExporterLogError",
    # Users
    "UNKNOWN_EMAIL_SUFFIX",
    "UserResolver",
    "fallback_email",
    "is_fallback_email",
    # Writer
    "ARCHIVE_NAME",
    "BRANCH_RULES_FILE_NAME",
    "INFO_FILE_NAME",
    "LABELS_FILE_NAME",
    "PR_DIR_NAME",
    "USERS_FILE_NAME",
    "WEBHOOKS_FILE_NAME",
    "delete_except",
    "dump_json",
    "split_chunks",
    "write_repo_data",
    "write_users",
    "zip_folder",
]
