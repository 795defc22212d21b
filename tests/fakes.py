"""
In-memory stand-in for a remote repository, emulating git objects.
"""

import base64
import hashlib
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from reposync.infrastructure.error_handler import (
    NotFoundError,
    PayloadTooLargeError,
    RemoteAPIError,
)
from reposync.models import (
    CommitSummary,
    FileEncoding,
    RepositoryConfig,
    RepositoryInfo,
    TreeEntry,
)
from reposync.services.remote import RemoteRepository


def _sha(*parts: Any) -> str:
    digest = hashlib.sha1()
    for part in parts:
        digest.update(part if isinstance(part, bytes) else repr(part).encode("utf-8"))
    return digest.hexdigest()


class FakeRemoteRepository(RemoteRepository):
    """
    Keeps blobs, flat trees, commits and refs in dicts.

    ``failures`` maps a method name to exceptions raised by its next calls,
    one per call, before the method behaves normally again. A ``None``
    entry lets that call succeed.
    """

    def __init__(
        self,
        config: RepositoryConfig,
        default_branch: str = "main",
        can_push: bool = True,
        **kwargs: Any,
    ):
        super().__init__(config)
        self.default_branch = default_branch
        self.can_push = can_push
        self.factory_kwargs = kwargs

        self.blobs: Dict[str, bytes] = {}
        self.trees: Dict[str, Dict[str, str]] = {}
        self.commits: Dict[str, Dict[str, Any]] = {}
        self.refs: Dict[str, str] = {}

        self.failures: Dict[str, List[Optional[Exception]]] = {}
        self.reject_put_over: Optional[int] = None
        self.reject_tree_over: Optional[int] = None
        self.fail_paths: Dict[str, Exception] = {}

        self.calls: List[str] = []
        self.put_calls: List[Dict[str, Any]] = []
        self.tree_calls: List[Dict[str, Any]] = []
        self.commit_calls: List[Dict[str, Any]] = []
        self.closed = False
        self._counter = 0

    ####
    ##      TEST HELPERS
    #####
    def seed(self, files: Dict[str, Union[str, bytes]], branch: Optional[str] = None) -> str:
        """Create a commit holding exactly ``files`` on ``branch``."""

        branch = branch or self.default_branch
        tree = {path: self._store_blob(self._as_bytes(data)) for path, data in files.items()}
        tree_sha = self._store_tree(tree)
        parents = [self.refs[branch]] if branch in self.refs else []
        commit_sha = self._store_commit("seed", tree_sha, parents)
        self.refs[branch] = commit_sha
        return commit_sha

    def files(self, branch: Optional[str] = None) -> Dict[str, bytes]:
        """Return ``path -> content`` at the tip of ``branch``."""

        head = self.refs.get(branch or self.config.branch)
        if head is None:
            return {}
        tree = self.trees[self.commits[head]["tree"]]
        return {path: self.blobs[sha] for path, sha in tree.items()}

    def text(self, path: str, branch: Optional[str] = None) -> str:
        return self.files(branch)[path].decode("utf-8")

    def history(self, branch: Optional[str] = None) -> List[str]:
        """Commit shas from the tip of ``branch`` back to the root."""

        shas = []
        current = self.refs.get(branch or self.config.branch)
        while current is not None:
            shas.append(current)
            parents = self.commits[current]["parents"]
            current = parents[0] if parents else None
        return shas

    @staticmethod
    def _as_bytes(data: Union[str, bytes]) -> bytes:
        return data.encode("utf-8") if isinstance(data, str) else data

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        pending = self.failures.get(name)
        if pending:
            error = pending.pop(0)
            # None lets one call through
            if error is not None:
                raise error

    def _store_blob(self, data: bytes) -> str:
        sha = _sha(b"blob", data)
        self.blobs[sha] = data
        return sha

    def _store_tree(self, tree: Dict[str, str]) -> str:
        sha = _sha("tree", sorted(tree.items()))
        self.trees[sha] = dict(tree)
        return sha

    def _store_commit(self, message: str, tree_sha: str, parents: Sequence[str]) -> str:
        self._counter += 1
        sha = _sha("commit", message, tree_sha, list(parents), self._counter)
        self.commits[sha] = {"message": message, "tree": tree_sha, "parents": list(parents)}
        return sha

    def _tree_at(self, branch: str) -> Optional[Dict[str, str]]:
        head = self.refs.get(branch)
        if head is None:
            return None
        return self.trees[self.commits[head]["tree"]]

    ####
    ##      REMOTE REPOSITORY INTERFACE
    #####
    async def get_repository(self) -> RepositoryInfo:
        self._maybe_fail("get_repository")
        return RepositoryInfo(
            owner=self.config.owner,
            name=self.config.repo,
            default_branch=self.default_branch,
            can_push=self.can_push,
        )

    async def get_branch_sha(self, branch: str) -> Optional[str]:
        self._maybe_fail("get_branch_sha")
        return self.refs.get(branch)

    async def get_commit_tree_sha(self, commit_sha: str) -> str:
        self._maybe_fail("get_commit_tree_sha")
        if commit_sha not in self.commits:
            raise NotFoundError(f"Commit {commit_sha} not found")
        return self.commits[commit_sha]["tree"]

    async def get_tree(self, tree_sha: str, recursive: bool = True) -> List[Dict[str, Any]]:
        self._maybe_fail("get_tree")
        items: List[Dict[str, Any]] = []
        directories = set()
        for path, sha in sorted(self.trees[tree_sha].items()):
            parts = path.split("/")[:-1]
            for depth in range(1, len(parts) + 1):
                directories.add("/".join(parts[:depth]))
            items.append(
                {"path": path, "type": "blob", "sha": sha, "size": len(self.blobs[sha])}
            )
        items.extend({"path": d, "type": "tree", "sha": _sha("dir", d)} for d in sorted(directories))
        return items

    async def get_blob(self, sha: str) -> str:
        self._maybe_fail("get_blob")
        if sha not in self.blobs:
            raise NotFoundError(f"Blob {sha} not found")
        return base64.b64encode(self.blobs[sha]).decode("ascii")

    async def create_blob(self, content: str, encoding: FileEncoding) -> str:
        self._maybe_fail("create_blob")
        if encoding is FileEncoding.BASE64:
            data = base64.b64decode(content)
        else:
            data = content.encode("utf-8")
        return self._store_blob(data)

    async def create_tree(
        self, entries: Sequence[TreeEntry], base_tree: Optional[str] = None
    ) -> str:
        self._maybe_fail("create_tree")
        self.tree_calls.append({"base_tree": base_tree, "entries": list(entries)})
        if self.reject_tree_over is not None and len(entries) > self.reject_tree_over:
            raise PayloadTooLargeError("Payload too large: tree is too large")
        tree = dict(self.trees[base_tree]) if base_tree else {}
        for entry in entries:
            if entry.sha is None:
                tree.pop(entry.path, None)
            else:
                tree[entry.path] = entry.sha
        return self._store_tree(tree)

    async def create_commit(self, message: str, tree_sha: str, parents: Sequence[str]) -> str:
        self._maybe_fail("create_commit")
        self.commit_calls.append({"message": message, "tree": tree_sha, "parents": list(parents)})
        return self._store_commit(message, tree_sha, parents)

    async def update_ref(self, branch: str, sha: str, force: bool = False) -> None:
        self._maybe_fail("update_ref")
        if branch not in self.refs:
            raise NotFoundError(f"Reference heads/{branch} not found")
        self.refs[branch] = sha

    async def create_ref(self, branch: str, sha: str) -> None:
        self._maybe_fail("create_ref")
        self.refs[branch] = sha

    async def get_file_sha(self, path: str, branch: Optional[str] = None) -> Optional[str]:
        self._maybe_fail("get_file_sha")
        tree = self._tree_at(branch or self.config.branch) or {}
        return tree.get(path)

    async def get_file_content(self, path: str, branch: Optional[str] = None) -> str:
        self._maybe_fail("get_file_content")
        tree = self._tree_at(branch or self.config.branch) or {}
        if path not in tree:
            raise NotFoundError(f"Not found: {path}")
        return self.blobs[tree[path]].decode("utf-8")

    async def put_file(
        self,
        path: str,
        content_b64: str,
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> str:
        self._maybe_fail("put_file")
        branch = branch or self.config.branch
        data = base64.b64decode(content_b64)
        self.put_calls.append({"path": path, "content": data, "message": message, "sha": sha})
        if path in self.fail_paths:
            raise self.fail_paths[path]

        if self.reject_put_over is not None and len(data) > self.reject_put_over:
            raise PayloadTooLargeError("Payload too large: content is too large")

        tree = self._tree_at(branch)
        if tree is None and self.refs:
            raise NotFoundError(f"Branch {branch} not found")
        tree = dict(tree or {})
        if tree.get(path) != sha:
            raise RemoteAPIError(f"{path} does not match {sha}", 409)

        blob_sha = self._store_blob(data)
        tree[path] = blob_sha
        parents = [self.refs[branch]] if branch in self.refs else []
        self.refs[branch] = self._store_commit(message, self._store_tree(tree), parents)
        return blob_sha

    async def delete_file(
        self, path: str, message: str, sha: str, branch: Optional[str] = None
    ) -> None:
        self._maybe_fail("delete_file")
        branch = branch or self.config.branch
        tree = dict(self._tree_at(branch) or {})
        if tree.get(path) != sha:
            raise RemoteAPIError(f"{path} does not match {sha}", 409)
        del tree[path]
        self.refs[branch] = self._store_commit(
            message, self._store_tree(tree), [self.refs[branch]]
        )

    async def list_commits(self, limit: int = 10) -> List[CommitSummary]:
        self._maybe_fail("list_commits")
        return [
            CommitSummary(
                sha=sha,
                message=self.commits[sha]["message"],
                author="Test Author",
                date="2026-01-01T00:00:00Z",
                url=f"https://github.com/{self.config.full_name}/commit/{sha}",
            )
            for sha in self.history()[:limit]
        ]

    async def close(self) -> None:
        self.closed = True


class FakeRemoteRegistry:
    """
    Remote factory handing out pre-built fakes keyed by ``owner/repo``.

    Each call rebinds the fake to the requested config, so the branch and
    token seen by the code under test are the ones it asked for.
    """

    def __init__(self) -> None:
        self.remotes: Dict[str, FakeRemoteRepository] = {}
        self.opened: List[RepositoryConfig] = []

    def add(self, owner: str, repo: str, **kwargs: Any) -> FakeRemoteRepository:
        remote = FakeRemoteRepository(RepositoryConfig("seed-token", owner, repo), **kwargs)
        self.remotes[f"{owner}/{repo}"] = remote
        return remote

    def __call__(self, config: RepositoryConfig, **kwargs: Any) -> FakeRemoteRepository:
        remote = self.remotes[config.full_name]
        remote.config = config
        remote.factory_kwargs = kwargs
        self.opened.append(config)
        return remote


class MemoryKeyring(KeyringBackend):
    """Keyring backend holding passwords in a dict for the test run."""

    priority = 1

    def __init__(self) -> None:
        super().__init__()
        self.passwords: Dict[Tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.passwords:
            raise PasswordDeleteError(f"No password for {username}")
        del self.passwords[(service, username)]
