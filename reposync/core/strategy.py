"""
Size-aware planning: which upload strategy to run and how files are
grouped into batches before any network call.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple, TypeVar

from ..models import FileBlob, SyncConfig, TransferBatch, UploadStrategy

T = TypeVar("T")

# (path, content) pairs as accepted by multi-file uploads
FilePayload = Tuple[str, str]


def content_size(content: str) -> int:
    return len(content.encode("utf-8"))


def payload_size(files: Sequence[FilePayload]) -> int:
    """Total UTF-8 byte size of every file's content."""

    return sum(content_size(content) for _, content in files)


def select_upload_strategy(files: Sequence[FilePayload], config: SyncConfig) -> UploadStrategy:
    """
    Choose how a multi-file upload is executed.

    Large payloads go one file at a time, many files go in small batches,
    and everything else runs in a single bounded-parallel pass.
    """
    if payload_size(files) > config.sequential_threshold:
        return UploadStrategy.SEQUENTIAL
    if len(files) > config.small_batch_threshold:
        return UploadStrategy.SMALL_BATCH
    return UploadStrategy.PARALLEL


def plan_small_batches(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split ``items`` into consecutive groups of at most ``batch_size``."""

    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


def plan_transfer_batches(
    blobs: Sequence[FileBlob],
    max_files: int,
    max_bytes: int,
) -> List[TransferBatch]:
    """
    Group blobs in order so that no batch exceeds either cap.

    A blob larger than ``max_bytes`` on its own always travels as a
    singleton batch.
    """
    if max_files < 1 or max_bytes < 1:
        raise ValueError("Batch caps must be positive")

    batches: List[TransferBatch] = []
    current = TransferBatch()
    current_bytes = 0

    for blob in blobs:
        if blob.size > max_bytes:
            if current.files:
                batches.append(current)
                current, current_bytes = TransferBatch(), 0
            batches.append(TransferBatch([blob]))
            continue

        if current.files and (
            len(current.files) >= max_files or current_bytes + blob.size > max_bytes
        ):
            batches.append(current)
            current, current_bytes = TransferBatch(), 0

        current.files.append(blob)
        current_bytes += blob.size

    if current.files:
        batches.append(current)
    return batches


__all__ = [
    "FilePayload",
    "content_size",
    "payload_size",
    "select_upload_strategy",
    "plan_small_batches",
    "plan_transfer_batches",
]
