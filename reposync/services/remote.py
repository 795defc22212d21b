"""Abstract interface for a remote code repository."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from ..models import CommitSummary, FileEncoding, RepositoryConfig, RepositoryInfo, TreeEntry


class RemoteRepository(ABC):
    """
    Git data and contents operations against one repository.

    Each instance is bound to a single ``RepositoryConfig``; source and
    destination of a transfer are two separate instances.
    """

    def __init__(self, config: RepositoryConfig):
        self.config = config

    @abstractmethod
    async def get_repository(self) -> RepositoryInfo:
        """Return repository metadata."""

    async def get_default_branch(self) -> str:
        info = await self.get_repository()
        return info.default_branch

    @abstractmethod
    async def get_branch_sha(self, branch: str) -> Optional[str]:
        """Return the tip commit sha of ``branch`` or None when it does not exist."""

    @abstractmethod
    async def get_commit_tree_sha(self, commit_sha: str) -> str:
        """Return the root tree sha of a commit."""

    @abstractmethod
    async def get_tree(self, tree_sha: str, recursive: bool = True) -> List[Dict[str, Any]]:
        """Return tree items as dicts with path, type, sha and (for blobs) size."""

    @abstractmethod
    async def get_blob(self, sha: str) -> str:
        """Return a blob's content, base64 encoded."""

    @abstractmethod
    async def create_blob(self, content: str, encoding: FileEncoding) -> str:
        """Create a blob and return its sha."""

    @abstractmethod
    async def create_tree(
        self, entries: Sequence[TreeEntry], base_tree: Optional[str] = None
    ) -> str:
        """Create a tree on top of ``base_tree`` and return its sha."""

    @abstractmethod
    async def create_commit(self, message: str, tree_sha: str, parents: Sequence[str]) -> str:
        """Create a commit and return its sha."""

    @abstractmethod
    async def update_ref(self, branch: str, sha: str, force: bool = False) -> None:
        """Move ``branch`` to ``sha``."""

    @abstractmethod
    async def create_ref(self, branch: str, sha: str) -> None:
        """Create ``branch`` pointing at ``sha``."""

    @abstractmethod
    async def get_file_sha(self, path: str, branch: Optional[str] = None) -> Optional[str]:
        """Return the content sha of a file or None when absent."""

    @abstractmethod
    async def get_file_content(self, path: str, branch: Optional[str] = None) -> str:
        """Return a file's decoded text content."""

    @abstractmethod
    async def put_file(
        self,
        path: str,
        content_b64: str,
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> str:
        """Create or update one file in a single commit; return the new content sha."""

    @abstractmethod
    async def delete_file(
        self, path: str, message: str, sha: str, branch: Optional[str] = None
    ) -> None:
        """Delete one file in a single commit."""

    @abstractmethod
    async def list_commits(self, limit: int = 10) -> List[CommitSummary]:
        """Return the most recent commits of the configured branch."""

    async def close(self) -> None:
        """Release network resources."""

    async def __aenter__(self) -> RemoteRepository:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
