"""
High-level Python API for RepoSync.

``RepoSyncClient`` keeps the active repository configuration (persisted per
user in a document store) and exposes uploads, comparisons and transfers
against it.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Iterable, List, Optional

from ..core.comparison import ComparisonEngine
from ..core.filter import FilterEngine
from ..core.orchestrator import TransferOrchestrator
from ..core.progress import ProgressCallback, ProgressReporter
from ..core.uploader import FileInput, FileUploader
from ..infrastructure.error_handler import NotConfiguredError, NotFoundError, SyncError
from ..infrastructure.logger import logger
from ..infrastructure.rate_limiter import RateLimiter
from ..infrastructure.retry_manager import RetryManager
from ..models import (
    CommitSummary,
    FileComparison,
    RepositoryConfig,
    SyncConfig,
    TransferOptions,
    TransferResult,
    UploadResult,
)
from ..services.document_store import ConfigStore, DocumentStore, InMemoryDocumentStore
from ..services.github_api import GitHubAPIService
from ..services.remote import RemoteRepository

RemoteFactory = Callable[..., RemoteRepository]


class RepoSyncClient:
    """
    Facade over uploads, comparisons and transfers for one user.

    The active repository is the destination of every write. Transfer
    sources are addressed by owner and name and reuse the active token.
    """

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        user_id: str = "default",
        config: Optional[SyncConfig] = None,
        verbose: bool = False,
        remote_factory: RemoteFactory = GitHubAPIService,
    ):
        """
        Initialize the client.

        Args:
            store: Document store holding persisted configurations
            user_id: Owner of the persisted configuration document
            config: Tuning for sizes, batching, pacing and retries
            verbose: Enable DEBUG logging
            remote_factory: Builds a remote for a ``RepositoryConfig``
        """
        self.config_store = ConfigStore(store or InMemoryDocumentStore())
        self.user_id = user_id
        self.sync_config = config or SyncConfig()
        self.verbose = verbose
        self.remote_factory = remote_factory

        self.rate_limiter = RateLimiter()
        self.retry_manager = RetryManager(max_retries=self.sync_config.max_retries)

        self._active: Optional[RepositoryConfig] = None
        self._config_id: Optional[str] = None

        logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        if verbose:
            logger.debug("Verbose logging enabled")

    ####
    ##      CONFIGURATION
    #####
    def configure(
        self, token: str, owner: str, repo: str, branch: str = "main"
    ) -> RepositoryConfig:
        """Persist and activate a repository configuration."""

        config = RepositoryConfig(token=token, owner=owner, repo=repo, branch=branch)
        self._config_id = self.config_store.save(self.user_id, config)
        self._active = config
        logger.info(f"Configured {config.full_name}@{config.branch}")
        return config

    def load_config(self) -> Optional[RepositoryConfig]:
        """Activate the persisted configuration, if there is one."""

        found = self.config_store.load(self.user_id)
        if found is None:
            self._active, self._config_id = None, None
            return None
        self._config_id, self._active = found
        logger.debug(f"Loaded configuration {self._config_id} for {self.user_id}")
        return self._active

    def reload_config(self) -> Optional[RepositoryConfig]:
        return self.load_config()

    def is_configured(self) -> bool:
        return self._active is not None

    def get_config(self) -> Optional[RepositoryConfig]:
        return self._active

    def disconnect(self) -> bool:
        """Forget the active repository, its persisted document and its keyring token."""

        removed = self.config_store.delete(self.user_id)
        self._active, self._config_id = None, None
        logger.info("Repository configuration removed" if removed else "Nothing to disconnect")
        return removed

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        logger.debug("Verbose logging enabled")

    def _require_config(self) -> RepositoryConfig:
        if self._active is None:
            raise NotConfiguredError(
                "No repository configured; call configure() or load_config() first"
            )
        return self._active

    def _source_config(
        self, owner: str, repo: str, branch: Optional[str] = None
    ) -> RepositoryConfig:
        active = self._require_config()
        return RepositoryConfig(
            token=active.token, owner=owner, repo=repo, branch=branch or "main"
        )

    @asynccontextmanager
    async def _open(self, config: RepositoryConfig) -> AsyncIterator[RemoteRepository]:
        remote = self.remote_factory(
            config,
            rate_limiter=self.rate_limiter,
            timeout=self.sync_config.timeout,
            base_url=self.sync_config.api_url,
        )
        try:
            yield remote
        finally:
            await remote.close()

    ####
    ##      SINGLE-REPOSITORY OPERATIONS
    #####
    async def test_connection(self) -> bool:
        """Return True when the active token can push to the repository."""

        config = self._require_config()
        async with self._open(config) as remote:
            try:
                info = await remote.get_repository()
            except SyncError as e:
                logger.error(f"Connection test for {config.full_name} failed: {e}")
                return False
        if not info.can_push:
            logger.warning(f"Token has no push access to {info.display_name}")
        return info.can_push

    async def update_file(
        self,
        path: str,
        content: str,
        message: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        config = self._require_config()
        async with self._open(config) as remote:
            uploader = FileUploader(remote, self.retry_manager, self.sync_config)
            return await uploader.update_file(
                path, content, message, ProgressReporter.wrap(progress_callback)
            )

    async def delete_file(self, path: str, message: str) -> bool:
        config = self._require_config()
        async with self._open(config) as remote:
            sha = await self.retry_manager.execute(lambda: remote.get_file_sha(path))
            if sha is None:
                raise NotFoundError(f"{path} does not exist in {config.full_name}")
            await self.retry_manager.execute(lambda: remote.delete_file(path, message, sha))
        logger.info(f"Deleted {path}")
        return True

    async def get_file_content(self, path: str) -> str:
        config = self._require_config()
        async with self._open(config) as remote:
            return await self.retry_manager.execute(lambda: remote.get_file_content(path))

    async def upload_multiple_files(
        self,
        files: Iterable[FileInput],
        message: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        config = self._require_config()
        async with self._open(config) as remote:
            uploader = FileUploader(remote, self.retry_manager, self.sync_config)
            return await uploader.upload_multiple_files(
                files, message, ProgressReporter.wrap(progress_callback)
            )

    async def get_commit_history(self, limit: int = 10) -> List[CommitSummary]:
        config = self._require_config()
        async with self._open(config) as remote:
            return await self.retry_manager.execute(lambda: remote.list_commits(limit))

    ####
    ##      CROSS-REPOSITORY OPERATIONS
    #####
    async def compare_repositories(
        self,
        source_owner: str,
        source_repo: str,
        source_branch: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[FileComparison]:
        """
        Compare a source repository against the active repository.

        Raises:
            ComparisonError: Either tree could not be read
        """
        destination_config = self._require_config()
        source_config = self._source_config(source_owner, source_repo, source_branch)
        async with self._open(source_config) as source, self._open(destination_config) as dest:
            engine = ComparisonEngine(
                source, dest, FilterEngine(self.sync_config.ignore_patterns)
            )
            return await engine.compare(
                ProgressReporter.wrap(progress_callback), source_branch=source_branch
            )

    async def transfer_modified_files(
        self,
        comparisons: List[FileComparison],
        source_owner: str,
        source_repo: str,
        source_branch: Optional[str],
        message: str,
        options: Optional[TransferOptions] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        """Apply selected comparison entries; True iff every file landed."""

        destination_config = self._require_config()
        source_config = self._source_config(source_owner, source_repo, source_branch)
        async with self._open(source_config) as source, self._open(destination_config) as dest:
            orchestrator = TransferOrchestrator(source, dest, self.retry_manager, self.sync_config)
            result = await orchestrator.transfer_selected(
                comparisons, message, options, ProgressReporter.wrap(progress_callback)
            )
        return result.success

    async def transfer_repository(
        self,
        source_owner: str,
        source_repo: str,
        message: str,
        source_branch: Optional[str] = None,
        replace: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TransferResult:
        """
        Copy a whole source repository into the active repository.

        Raises:
            TreeTooLargeError: A batch tree was refused as too large
            TransferAborted: A step failed; already landed commits are kept
        """
        destination_config = self._require_config()
        source_config = self._source_config(source_owner, source_repo, source_branch)
        async with self._open(source_config) as source, self._open(destination_config) as dest:
            orchestrator = TransferOrchestrator(source, dest, self.retry_manager, self.sync_config)
            return await orchestrator.transfer_repository(
                message,
                ProgressReporter.wrap(progress_callback),
                replace=replace,
                source_branch=source_branch,
            )


__all__ = ["RepoSyncClient", "RemoteFactory"]
