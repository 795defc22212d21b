"""
Core data models API surface for RepoSync.

This file re-exports model classes from domain-specific modules so that
callers can write `from reposync.models import X`.
"""

from .github import (
    RepositoryConfig,
    RepositoryInfo,
    TreeEntry,
    CommitSummary,
)
from .transfer import (
    FileEncoding,
    FileStatus,
    UploadStrategy,
    ChunkStrategy,
    FileBlob,
    FileComparison,
    TransferBatch,
    ProgressEvent,
    FileResult,
    UploadResult,
    TransferOptions,
    TransferResult,
)
from .config import KB, MB, SyncConfig

__all__ = [
    # GitHub models
    "RepositoryConfig",
    "RepositoryInfo",
    "TreeEntry",
    "CommitSummary",
    # Transfer models
    "FileEncoding",
    "FileStatus",
    "UploadStrategy",
    "ChunkStrategy",
    "FileBlob",
    "FileComparison",
    "TransferBatch",
    "ProgressEvent",
    "FileResult",
    "UploadResult",
    "TransferOptions",
    "TransferResult",
    # Config models
    "KB",
    "MB",
    "SyncConfig",
]
