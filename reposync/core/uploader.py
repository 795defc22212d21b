"""
Single-file and multi-file uploads through the create-or-update primitive.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..infrastructure.logger import logger
from ..infrastructure.retry_manager import RetryManager
from ..models import FileResult, SyncConfig, UploadResult, UploadStrategy
from ..services.remote import RemoteRepository
from .committer import ChunkedCommitBuilder, encode_content
from .filter import FilterEngine
from .progress import ProgressReporter
from .strategy import (
    FilePayload,
    content_size,
    payload_size,
    plan_small_batches,
    select_upload_strategy,
)

FileInput = Union[FilePayload, Mapping[str, Any]]


def _normalize(files: Iterable[FileInput]) -> List[FilePayload]:
    normalized = []
    for item in files:
        if isinstance(item, Mapping):
            normalized.append((item["path"], item["content"]))
        else:
            path, content = item
            normalized.append((path, content))
    return normalized


class FileUploader:
    """Uploads files to one remote repository, choosing a strategy by size."""

    def __init__(
        self,
        remote: RemoteRepository,
        retry_manager: Optional[RetryManager] = None,
        config: Optional[SyncConfig] = None,
        committer: Optional[ChunkedCommitBuilder] = None,
        filter_engine: Optional[FilterEngine] = None,
    ):
        self.remote = remote
        self.config = config or SyncConfig()
        self.retry_manager = retry_manager or RetryManager(max_retries=self.config.max_retries)
        self.committer = committer or ChunkedCommitBuilder(remote, self.retry_manager, self.config)
        self.filter_engine = filter_engine or FilterEngine(self.config.ignore_patterns)

    ####
    ##      SINGLE FILE
    #####
    async def update_file(
        self,
        path: str,
        content: str,
        message: str,
        progress: Optional[ProgressReporter] = None,
    ) -> bool:
        """
        Commit one file, switching to chunked commits when it is too large.

        Oversized content is detected up front; a size rejection from the
        remote on the standard path escalates to chunked commits as well.

        Returns:
            True on success (ignored paths succeed without a remote call)
        """
        if not self.filter_engine.should_include_file(path):
            logger.info(f"{path} matches an ignore pattern, skipping")
            return True

        size = content_size(content)
        logger.debug(f"Processing {path} ({round(size / 1024)}KB)")

        async def chunked() -> bool:
            return await self.committer.commit(path, content, message, progress)

        if size > self.config.max_file_size:
            logger.info(f"{path} is too large for a single write, using incremental strategy")
            return await chunked()

        async def standard() -> bool:
            sha = await self.remote.get_file_sha(path)
            await self.remote.put_file(path, encode_content(content), message, sha)
            logger.debug(f"{path} updated")
            return True

        return await self.retry_manager.execute(standard, fallback=chunked)

    async def _upload_one(self, path: str, content: str, message: str) -> FileResult:
        try:
            success = await self.update_file(path, content, f"{message} - {path}")
            return FileResult(path, success)
        except Exception as e:
            logger.error(f"Error processing {path}: {e}")
            return FileResult(path, False, str(e))

    ####
    ##      MULTIPLE FILES
    #####
    async def upload_multiple_files(
        self,
        files: Iterable[FileInput],
        message: str,
        progress: Optional[ProgressReporter] = None,
    ) -> UploadResult:
        """
        Upload many files, reporting failures per file.

        Args:
            files: ``(path, content)`` pairs or mappings with those keys
            message: Base commit message; each file appends its path
            progress: Optional progress reporter

        Returns:
            UploadResult whose ``success`` is True iff every file succeeded
        """
        reporter = ProgressReporter.wrap(progress)
        reporter.report(5, "Starting batch upload...")

        all_files = _normalize(files)
        filtered = self.filter_engine.filter_files(all_files)
        valid = filtered.included_files
        ignored = filtered.total_files - filtered.filtered_files
        if ignored:
            logger.info(f"{ignored} files ignored by exclusion patterns")

        reporter.report(10, f"Processing {len(valid)} valid files...")
        strategy = select_upload_strategy(valid, self.config)
        logger.info(
            f"Uploading {len(valid)} files ({round(payload_size(valid) / 1024)}KB) "
            f"with {strategy.value} strategy"
        )

        if strategy is UploadStrategy.SEQUENTIAL:
            results = await self._upload_sequential(valid, message, reporter)
        elif strategy is UploadStrategy.SMALL_BATCH:
            results = await self._upload_small_batches(valid, message, reporter)
        else:
            results = await self._upload_parallel(valid, message, reporter)

        succeeded = sum(1 for result in results if result.success)
        reporter.report(
            100,
            f"Upload completed: {succeeded}/{len(valid)} files",
            {"succeeded": succeeded, "total": len(valid)},
        )
        return UploadResult(succeeded == len(valid), results, strategy)

    async def _upload_sequential(
        self, files: List[FilePayload], message: str, reporter: ProgressReporter
    ) -> List[FileResult]:
        reporter.report(15, "Using sequential strategy (safest)...")
        results = []
        for index, (path, content) in enumerate(files):
            reporter.report(
                15 + round(index / len(files) * 80),
                f"Processing {path} ({index + 1}/{len(files)})...",
            )
            results.append(await self._upload_one(path, content, message))
            if index < len(files) - 1 and self.config.file_delay > 0:
                await asyncio.sleep(self.config.file_delay)
        return results

    async def _upload_small_batches(
        self, files: List[FilePayload], message: str, reporter: ProgressReporter
    ) -> List[FileResult]:
        size = self.config.files_per_batch
        batches = plan_small_batches(files, size)
        reporter.report(15, f"Using small batches ({size} files at a time)...")

        results: List[FileResult] = []
        for number, batch in enumerate(batches, start=1):
            done = (number - 1) * size
            reporter.report(
                15 + round(done / len(files) * 80),
                f"Processing batch {number} ({len(batch)} files)...",
                {"batch": number, "batches": len(batches)},
            )
            results.extend(
                await asyncio.gather(
                    *(self._upload_one(path, content, message) for path, content in batch)
                )
            )
            if number < len(batches) and self.config.batch_delay > 0:
                await asyncio.sleep(self.config.batch_delay)
        return results

    async def _upload_parallel(
        self, files: List[FilePayload], message: str, reporter: ProgressReporter
    ) -> List[FileResult]:
        reporter.report(15, "Using optimized strategy for few files...")
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        finished = 0

        async def run(path: str, content: str) -> FileResult:
            nonlocal finished
            async with semaphore:
                result = await self._upload_one(path, content, message)
            finished += 1
            reporter.report(20 + round(finished / len(files) * 70), f"Processed {path}")
            return result

        return list(await asyncio.gather(*(run(path, content) for path, content in files)))


__all__ = ["FileUploader"]
