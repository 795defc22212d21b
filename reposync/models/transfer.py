"""
Transfer domain models for RepoSync.

This module contains data classes and enums representing staged files,
comparison results, batches, progress events and operation results.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class FileEncoding(Enum):
    """Encoding of a staged file's content."""

    UTF8 = "utf8"
    BASE64 = "base64"

    @property
    def api_value(self) -> str:
        # the git data API spells it "utf-8"
        return "utf-8" if self is FileEncoding.UTF8 else "base64"


class FileStatus(Enum):
    """Classification of a path when two repositories are compared."""

    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


class UploadStrategy(Enum):
    """Execution strategies for multi-file uploads."""

    SEQUENTIAL = "sequential"
    SMALL_BATCH = "small_batch"
    PARALLEL = "parallel"


class ChunkStrategy(Enum):
    """Chunking strategies for oversized single files, in escalation order."""

    STRUCTURE = "structure"
    ULTRA_SMALL = "ultra-small"
    LINE_COUNT = "line-count"


@dataclass
class FileBlob:
    """One file's full content staged in memory between download and upload."""

    path: str
    content: str
    encoding: FileEncoding = FileEncoding.UTF8
    size: int = 0

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("File path is required")
        if self.size < 0:
            raise ValueError("File size cannot be negative")

    @classmethod
    def from_text(cls, path: str, text: str) -> FileBlob:
        return cls(path, text, FileEncoding.UTF8, len(text.encode("utf-8")))

    @classmethod
    def from_bytes(cls, path: str, data: bytes) -> FileBlob:
        return cls(
            path,
            base64.b64encode(data).decode("ascii"),
            FileEncoding.BASE64,
            len(data),
        )


@dataclass(frozen=True)
class FileComparison:
    """Comparison outcome for a single path."""

    path: str
    status: FileStatus
    source_hash: Optional[str] = None
    target_hash: Optional[str] = None
    size_diff: Optional[int] = None


@dataclass
class TransferBatch:
    """Ordered group of files bounded by a file-count and a byte cap."""

    files: List[FileBlob] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(blob.size for blob in self.files)

    @property
    def paths(self) -> List[str]:
        return [blob.path for blob in self.files]

    def __len__(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification emitted by long-running operations."""

    percent: int
    message: str
    detail: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class FileResult:
    """Outcome of one file within a multi-file operation."""

    path: str
    success: bool
    error: Optional[str] = None


@dataclass
class UploadResult:
    """Result of a multi-file upload; success iff every file succeeded."""

    success: bool
    results: List[FileResult] = field(default_factory=list)
    strategy: Optional[UploadStrategy] = None

    @property
    def failed(self) -> List[FileResult]:
        return [result for result in self.results if not result.success]


@dataclass
class TransferOptions:
    """Which comparison statuses a selective transfer applies."""

    include_new: bool = True
    include_modified: bool = True
    include_deleted: bool = False

    @property
    def statuses(self) -> List[FileStatus]:
        selected = []
        if self.include_new:
            selected.append(FileStatus.NEW)
        if self.include_modified:
            selected.append(FileStatus.MODIFIED)
        if self.include_deleted:
            selected.append(FileStatus.DELETED)
        return selected


@dataclass
class TransferResult:
    """Comprehensive result of a tree-based transfer."""

    success: bool = False
    commits: List[str] = field(default_factory=list)
    transferred: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: Dict[str, str] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def head_sha(self) -> Optional[str]:
        return self.commits[-1] if self.commits else None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def mark_completed(self) -> None:
        self.completed_at = datetime.now()
        self.success = not self.failed and not self.skipped


__all__ = [
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
]
