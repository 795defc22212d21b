"""
Orchestrator for tree-based bulk transfers between two repositories,
landing one commit per batch on the destination branch.
"""

import asyncio
import base64
from typing import List, Optional, Sequence, Tuple

from ..infrastructure.error_handler import (
    NotFoundError,
    PayloadTooLargeError,
    TransferAborted,
    TreeTooLargeError,
)
from ..infrastructure.logger import logger
from ..infrastructure.retry_manager import RetryManager
from ..models import (
    FileBlob,
    FileComparison,
    FileStatus,
    SyncConfig,
    TransferBatch,
    TransferOptions,
    TransferResult,
    TreeEntry,
)
from ..services.remote import RemoteRepository
from .committer import encode_content
from .comparison import select_for_transfer
from .filter import FilterEngine, is_binary_path
from .progress import ProgressReporter
from .strategy import plan_transfer_batches

PLACEHOLDER_PATH = "README.md"

# (path, blob sha on the source)
SourceFile = Tuple[str, str]


####
##      TRANSFER ORCHESTRATOR
#####
class TransferOrchestrator:
    """
    Copies files from a source repository to a destination branch.

    Blob creation inside a batch is concurrent; batches themselves are
    strictly sequential because each commit's parent and base tree are the
    previous batch's commit and tree. Commits that already landed are never
    rolled back.
    """

    def __init__(
        self,
        source: RemoteRepository,
        destination: RemoteRepository,
        retry_manager: Optional[RetryManager] = None,
        config: Optional[SyncConfig] = None,
    ):
        self.source = source
        self.destination = destination
        self.config = config or SyncConfig()
        self.retry_manager = retry_manager or RetryManager(max_retries=self.config.max_retries)
        self.filter_engine = FilterEngine(self.config.ignore_patterns)

    async def _retry(self, operation):
        return await self.retry_manager.execute(operation)

    ####
    ##      PUBLIC ENTRY POINTS
    #####
    async def transfer_repository(
        self,
        message: str,
        progress: Optional[ProgressReporter] = None,
        replace: bool = False,
        source_branch: Optional[str] = None,
    ) -> TransferResult:
        """
        Copy every non-ignored file of the source branch.

        Args:
            message: Commit message for the landed commits
            progress: Optional progress reporter
            replace: Commit an empty tree first so the destination ends up
                holding only the source's files
            source_branch: Source branch; the default branch when omitted

        Returns:
            TransferResult describing landed commits and per-file outcomes

        Raises:
            TreeTooLargeError: The remote refused a tree as too large
            TransferAborted: Any other step failed; carries the partial result
        """
        reporter = ProgressReporter.wrap(progress)
        result = TransferResult()
        reporter.report(0, "Reading source tree...")
        try:
            files = await self._read_source_tree(source_branch)
        except Exception as e:
            raise TransferAborted(f"Could not read {self.source.config.full_name}", result, e) from e

        logger.info(
            f"Transferring {len(files)} files from {self.source.config.full_name} "
            f"to {self.destination.config.full_name}@{self.destination.config.branch}"
        )
        return await self._run(files, [], message, reporter, result, replace)

    async def transfer_selected(
        self,
        comparisons: Sequence[FileComparison],
        message: str,
        options: Optional[TransferOptions] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> TransferResult:
        """
        Copy only the comparison entries selected by ``options``.

        Deleted paths are removed from the destination only when
        ``options.include_deleted`` is set.
        """
        options = options or TransferOptions()
        reporter = ProgressReporter.wrap(progress)
        result = TransferResult()

        selected = select_for_transfer(comparisons, options)
        files = [
            (item.path, item.source_hash)
            for item in selected
            if item.status in (FileStatus.NEW, FileStatus.MODIFIED) and item.source_hash
        ]
        deletions = [item.path for item in selected if item.status is FileStatus.DELETED]

        if not files and not deletions:
            reporter.report(100, "No changes to transfer")
            result.mark_completed()
            return result

        logger.info(
            f"Selective transfer: {len(files)} files to copy, {len(deletions)} to delete"
        )
        return await self._run(files, deletions, message, reporter, result, replace=False)

    ####
    ##      PIPELINE
    #####
    async def _run(
        self,
        files: List[SourceFile],
        deletions: List[str],
        message: str,
        reporter: ProgressReporter,
        result: TransferResult,
        replace: bool,
    ) -> TransferResult:
        try:
            reporter.report(5, "Preparing destination branch...")
            head_sha = await self._resolve_destination_head()
            base_tree = await self._retry(
                lambda: self.destination.get_commit_tree_sha(head_sha)
            )

            if replace:
                head_sha, base_tree = await self._clear_destination(head_sha, message)
                result.commits.append(head_sha)

            blobs = await self._download_files(files, reporter.span(10, 40), result)
            batches = plan_transfer_batches(
                blobs, self.config.tree_batch_files, self.config.tree_batch_bytes
            )
            if not batches and deletions:
                batches = [TransferBatch()]

            await self._commit_batches(
                batches, deletions, message, head_sha, base_tree, reporter.span(40, 95), result
            )
        except TreeTooLargeError:
            raise
        except Exception as e:
            logger.error(f"Transfer aborted after {len(result.commits)} commits: {e}")
            raise TransferAborted("Transfer aborted", result, e) from e

        result.mark_completed()
        reporter.report(
            100,
            f"Transfer completed: {len(result.transferred)} files in {len(result.commits)} commits",
            {"transferred": len(result.transferred), "commits": len(result.commits)},
        )
        return result

    async def _read_source_tree(self, branch: Optional[str]) -> List[SourceFile]:
        branch = branch or await self._retry(self.source.get_default_branch)
        commit_sha = await self._retry(lambda: self.source.get_branch_sha(branch))
        if commit_sha is None:
            raise NotFoundError(f"Branch {branch} not found in {self.source.config.full_name}")
        tree_sha = await self._retry(lambda: self.source.get_commit_tree_sha(commit_sha))
        items = await self._retry(lambda: self.source.get_tree(tree_sha, recursive=True))

        filtered = self.filter_engine.filter_files(
            item for item in items if item.get("type") == "blob"
        )
        if filtered.excluded_files:
            logger.info(f"{len(filtered.excluded_files)} source files ignored by exclusion patterns")
        return [(item["path"], item["sha"]) for item in filtered.included_files]

    async def _resolve_destination_head(self) -> str:
        """
        Return the destination branch tip, creating a first commit when the
        branch (or the whole repository) does not exist yet.
        """
        branch = self.destination.config.branch
        head = await self._retry(lambda: self.destination.get_branch_sha(branch))
        if head is not None:
            return head

        logger.info(f"Branch {branch} missing on destination, creating initial commit")
        placeholder = encode_content(f"# {self.destination.config.repo}\n")
        try:
            await self._retry(
                lambda: self.destination.put_file(
                    PLACEHOLDER_PATH, placeholder, "Initial commit", None, branch
                )
            )
            head = await self._retry(lambda: self.destination.get_branch_sha(branch))
        except NotFoundError:
            head = None

        if head is None:
            # repository has history but not this branch: start an orphan root
            empty_tree = await self._retry(lambda: self.destination.create_tree([], None))
            head = await self._retry(
                lambda: self.destination.create_commit("Initial commit", empty_tree, [])
            )
            await self._retry(lambda: self.destination.create_ref(branch, head))
        return head

    async def _clear_destination(self, head_sha: str, message: str) -> Tuple[str, str]:
        branch = self.destination.config.branch
        empty_tree = await self._retry(lambda: self.destination.create_tree([], None))
        commit_sha = await self._retry(
            lambda: self.destination.create_commit(
                f"{message} (clear destination)", empty_tree, [head_sha]
            )
        )
        await self._retry(lambda: self.destination.update_ref(branch, commit_sha, True))
        logger.info(f"Cleared {self.destination.config.full_name}@{branch}")
        return commit_sha, empty_tree

    ####
    ##      DOWNLOAD
    #####
    async def _download_files(
        self,
        files: List[SourceFile],
        reporter: ProgressReporter,
        result: TransferResult,
    ) -> List[FileBlob]:
        """
        Download blobs in paced groups; failed downloads are skipped.
        """
        blobs: List[FileBlob] = []
        total = len(files)
        group = max(1, self.config.download_pause_every)
        reporter.report(0, f"Downloading {total} files...", {"transferred": 0, "total": total})

        for start in range(0, total, group):
            chunk = files[start:start + group]
            outcomes = await asyncio.gather(
                *(self._download_one(path, sha) for path, sha in chunk),
                return_exceptions=True,
            )
            for (path, _), outcome in zip(chunk, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(f"Skipping {path}, download failed: {outcome}")
                    result.skipped[path] = str(outcome)
                else:
                    blobs.append(outcome)

            done = min(start + group, total)
            reporter.report(
                done / total * 100,
                f"Downloaded {done}/{total} files",
                {"transferred": done, "total": total},
            )
            if done < total and self.config.download_pause > 0:
                await asyncio.sleep(self.config.download_pause)

        return blobs

    async def _download_one(self, path: str, sha: str) -> FileBlob:
        content_b64 = await self._retry(lambda: self.source.get_blob(sha))
        raw = base64.b64decode(content_b64)
        if is_binary_path(path):
            return FileBlob.from_bytes(path, raw)
        try:
            return FileBlob.from_text(path, raw.decode("utf-8"))
        except UnicodeDecodeError:
            return FileBlob.from_bytes(path, raw)

    ####
    ##      COMMIT
    #####
    async def _commit_batches(
        self,
        batches: List[TransferBatch],
        deletions: List[str],
        message: str,
        head_sha: str,
        base_tree: str,
        reporter: ProgressReporter,
        result: TransferResult,
    ) -> None:
        branch = self.destination.config.branch
        total = len(batches)

        for index, batch in enumerate(batches):
            number = index + 1
            reporter.report(
                index / total * 100,
                f"Creating blobs for batch {number}/{total} "
                f"({len(batch)} files, {round(batch.total_bytes / 1024)}KB)...",
                {"batch": number, "batches": total},
            )
            entries, uploaded = await self._create_blobs(batch, result)
            if index == 0 and deletions:
                entries.extend(TreeEntry(path, None) for path in deletions)
            if not entries:
                logger.warning(
                    f"Batch {number}/{total} has no files left, skipping commit: "
                    f"{', '.join(batch.paths)}"
                )
                continue

            reporter.report((index + 0.5) / total * 100, f"Assembling tree {number}/{total}...")
            tree_sha = await self._create_tree(entries, base_tree)

            batch_message = message if total == 1 else f"{message} (batch {number}/{total})"
            parent = head_sha
            commit_sha = await self._retry(
                lambda: self.destination.create_commit(batch_message, tree_sha, [parent])
            )
            await self._retry(lambda: self.destination.update_ref(branch, commit_sha))

            head_sha, base_tree = commit_sha, tree_sha
            result.commits.append(commit_sha)
            result.transferred.extend(uploaded)
            if index == 0:
                result.deleted.extend(deletions)
            logger.debug(f"Batch {number}/{total} committed as {commit_sha[:7]}")

            reporter.report(
                number / total * 100,
                f"Committed batch {number}/{total}",
                {"transferred": len(result.transferred), "commit": commit_sha},
            )

    async def _create_blobs(
        self, batch: TransferBatch, result: TransferResult
    ) -> Tuple[List[TreeEntry], List[str]]:
        outcomes = await asyncio.gather(
            *(
                self._retry(lambda blob=blob: self.destination.create_blob(blob.content, blob.encoding))
                for blob in batch.files
            ),
            return_exceptions=True,
        )
        entries: List[TreeEntry] = []
        uploaded: List[str] = []
        for blob, outcome in zip(batch.files, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Failed to create blob for {blob.path}: {outcome}")
                result.failed[blob.path] = str(outcome)
                continue
            entries.append(TreeEntry(blob.path, outcome))
            uploaded.append(blob.path)
        return entries, uploaded

    async def _create_tree(self, entries: List[TreeEntry], base_tree: str) -> str:
        try:
            return await self._retry(
                lambda: self.destination.create_tree(entries, base_tree)
            )
        except PayloadTooLargeError as e:
            raise TreeTooLargeError(
                f"Tree with {len(entries)} entries is too large for the remote. "
                "Reduce the number of files per batch or split the repository.",
                e,
            ) from e


__all__ = ["TransferOrchestrator", "PLACEHOLDER_PATH"]
