"""
Chunked commit builder for files too large for a single remote write.
"""

from __future__ import annotations

import asyncio
import base64
from typing import List, Optional

from ..infrastructure.error_handler import PermissionDeniedError, SyncError
from ..infrastructure.logger import logger
from ..infrastructure.retry_manager import RetryManager
from ..models import ChunkStrategy, SyncConfig
from ..services.remote import RemoteRepository
from .chunking import plan_chunks
from .progress import ProgressReporter
from .strategy import content_size

ESCALATION_ORDER = (
    ChunkStrategy.STRUCTURE,
    ChunkStrategy.ULTRA_SMALL,
    ChunkStrategy.LINE_COUNT,
)


def encode_content(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


class ChunkedCommitBuilder:
    """
    Commits one file as a sequence of growing snapshots.

    Each chunk is written with the create-or-update primitive using the
    sha returned by the previous write, so the steps are strictly
    sequential. Already-committed chunks are never rolled back.
    """

    def __init__(
        self,
        remote: RemoteRepository,
        retry_manager: Optional[RetryManager] = None,
        config: Optional[SyncConfig] = None,
    ):
        self.remote = remote
        self.config = config or SyncConfig()
        self.retry_manager = retry_manager or RetryManager(max_retries=self.config.max_retries)

    def strategy_order(self, content: str) -> List[ChunkStrategy]:
        """Initial strategy chosen by size, followed by the remaining ones."""

        if content_size(content) > self.config.ultra_small_threshold:
            first = ChunkStrategy.ULTRA_SMALL
        else:
            first = ChunkStrategy.STRUCTURE
        return [first] + [s for s in ESCALATION_ORDER if s is not first]

    async def commit(
        self,
        path: str,
        content: str,
        message: str,
        progress: Optional[ProgressReporter] = None,
        branch: Optional[str] = None,
    ) -> bool:
        """
        Commit ``content`` to ``path`` incrementally.

        Args:
            path: Repository-relative file path
            content: Complete file content
            message: Commit message used verbatim for the final chunk
            progress: Optional progress reporter
            branch: Target branch (defaults to the remote's configured branch)

        Returns:
            True once the final chunk carrying the complete content is committed

        Raises:
            PermissionDeniedError: The token cannot write; never escalated
            SyncError: Every strategy failed
        """
        reporter = ProgressReporter.wrap(progress)
        reporter.report(10, "Starting incremental upload...")

        last_error: Optional[BaseException] = None
        for strategy in self.strategy_order(content):
            try:
                await self._commit_with(strategy, path, content, message, reporter, branch)
                return True
            except PermissionDeniedError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Incremental upload of {path} with {strategy.value} strategy failed: {e}"
                )

        raise SyncError(f"Incremental upload of {path} failed with every strategy", last_error)

    async def _commit_with(
        self,
        strategy: ChunkStrategy,
        path: str,
        content: str,
        message: str,
        reporter: ProgressReporter,
        branch: Optional[str],
    ) -> None:
        chunks = plan_chunks(content, strategy, self.config)
        total = len(chunks)
        name = strategy.value

        current_sha = await self.retry_manager.execute(
            lambda: self.remote.get_file_sha(path, branch)
        )
        if current_sha is None:
            logger.debug(f"{path} does not exist yet, it will be created incrementally")

        reporter.report(30, f"Processing {total} parts ({name})...")

        for index, chunk in enumerate(chunks):
            number = index + 1
            is_last = number == total
            reporter.report(
                30 + round(index / total * 60),
                f"Sending part {number} of {total} ({name})...",
                {"chunk": number, "total": total},
            )

            chunk_message = message if is_last else f"{message} ({name} {number}/{total})"
            encoded = encode_content(chunk)
            sha = current_sha

            try:
                current_sha = await self.retry_manager.execute(
                    lambda: self.remote.put_file(path, encoded, chunk_message, sha, branch)
                )
            except PermissionDeniedError:
                raise
            except Exception as e:
                raise SyncError(f"Failed to commit chunk {number} of {total} for {path}", e) from e

            if not is_last and self.config.chunk_delay > 0:
                await asyncio.sleep(self.config.chunk_delay)

        reporter.report(100, f"Incremental {name} upload completed")
        logger.info(f"{path} committed incrementally ({name}, {total} parts)")


__all__ = ["ChunkedCommitBuilder", "encode_content", "ESCALATION_ORDER"]
