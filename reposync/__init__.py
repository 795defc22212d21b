"""
RepoSync: commit files and mirror repositories through the GitHub REST API.
"""

__version__ = "1.0.0"

from .interfaces.api import RepoSyncClient
from .models import (
    RepositoryConfig,
    SyncConfig,
    TransferOptions,
    TransferResult,
    UploadResult,
)

__all__ = [
    "__version__",
    "RepoSyncClient",
    "RepositoryConfig",
    "SyncConfig",
    "TransferOptions",
    "TransferResult",
    "UploadResult",
]
