"""GitHub REST API implementation of the remote repository interface."""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from ..infrastructure.error_handler import (
    NotFoundError,
    TreeTooLargeError,
    handle_api_error,
    raise_for_response,
)
from ..infrastructure.rate_limiter import RateLimiter
from ..models import CommitSummary, FileEncoding, RepositoryConfig, RepositoryInfo, TreeEntry
from .remote import RemoteRepository


class GitHubAPIService(RemoteRepository):
    """Async GitHub client built on ``httpx.AsyncClient``."""

    API_BASE = "https://api.github.com"
    USER_AGENT = "RepoSync/1.0"

    def __init__(
        self,
        config: RepositoryConfig,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self.rate_limiter = rate_limiter or RateLimiter()
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.AsyncClient(
            base_url=base_url or self.API_BASE,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self.api_calls = 0

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.repo}"

    @handle_api_error
    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        await self.rate_limiter.acquire()
        response = await self._client.request(method, path, params=params, json=json)
        self.api_calls += 1
        await self.rate_limiter.update_rate_limit_info(response.headers)
        raise_for_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_repository(self) -> RepositoryInfo:
        data = await self._request("GET", self._repo_path)
        permissions = data.get("permissions") or {}
        return RepositoryInfo(
            owner=data.get("owner", {}).get("login", self.config.owner),
            name=data.get("name", self.config.repo),
            default_branch=data.get("default_branch", "main"),
            private=bool(data.get("private", False)),
            can_push=bool(permissions.get("push", False)),
        )

    async def get_branch_sha(self, branch: str) -> Optional[str]:
        try:
            data = await self._request("GET", f"{self._repo_path}/git/ref/heads/{branch}")
        except NotFoundError:
            return None
        return data["object"]["sha"]

    async def get_commit_tree_sha(self, commit_sha: str) -> str:
        data = await self._request("GET", f"{self._repo_path}/git/commits/{commit_sha}")
        return data["tree"]["sha"]

    async def get_tree(self, tree_sha: str, recursive: bool = True) -> List[Dict[str, Any]]:
        params = {"recursive": "1"} if recursive else None
        data = await self._request(
            "GET", f"{self._repo_path}/git/trees/{tree_sha}", params=params
        )
        if data.get("truncated"):
            raise TreeTooLargeError(
                f"Tree {tree_sha} of {self.config.full_name} is too large for a "
                "recursive listing; the API returned a truncated tree"
            )
        return list(data.get("tree", []))

    async def get_blob(self, sha: str) -> str:
        data = await self._request("GET", f"{self._repo_path}/git/blobs/{sha}")
        if data.get("encoding") == "base64":
            return "".join(data.get("content", "").split())
        # utf-8 blobs are rare but allowed by the API
        return base64.b64encode(data.get("content", "").encode("utf-8")).decode("ascii")

    async def create_blob(self, content: str, encoding: FileEncoding) -> str:
        data = await self._request(
            "POST",
            f"{self._repo_path}/git/blobs",
            json={"content": content, "encoding": encoding.api_value},
        )
        return data["sha"]

    async def create_tree(
        self, entries: Sequence[TreeEntry], base_tree: Optional[str] = None
    ) -> str:
        payload: Dict[str, Any] = {"tree": [entry.to_payload() for entry in entries]}
        if base_tree:
            payload["base_tree"] = base_tree
        data = await self._request("POST", f"{self._repo_path}/git/trees", json=payload)
        return data["sha"]

    async def create_commit(self, message: str, tree_sha: str, parents: Sequence[str]) -> str:
        data = await self._request(
            "POST",
            f"{self._repo_path}/git/commits",
            json={"message": message, "tree": tree_sha, "parents": list(parents)},
        )
        return data["sha"]

    async def update_ref(self, branch: str, sha: str, force: bool = False) -> None:
        await self._request(
            "PATCH",
            f"{self._repo_path}/git/refs/heads/{branch}",
            json={"sha": sha, "force": force},
        )

    async def create_ref(self, branch: str, sha: str) -> None:
        await self._request(
            "POST",
            f"{self._repo_path}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    def _contents_path(self, path: str) -> str:
        return f"{self._repo_path}/contents/{quote(path)}"

    async def get_file_sha(self, path: str, branch: Optional[str] = None) -> Optional[str]:
        try:
            data = await self._request(
                "GET",
                self._contents_path(path),
                params={"ref": branch or self.config.branch},
            )
        except NotFoundError:
            return None
        if isinstance(data, list):
            raise NotFoundError(f"{path} is a directory, not a file")
        return data.get("sha")

    async def get_file_content(self, path: str, branch: Optional[str] = None) -> str:
        data = await self._request(
            "GET",
            self._contents_path(path),
            params={"ref": branch or self.config.branch},
        )
        if isinstance(data, list) or "content" not in data:
            raise NotFoundError(f"{path} is not a file")
        raw = base64.b64decode("".join(data["content"].split()))
        return raw.decode("utf-8", errors="replace")

    async def put_file(
        self,
        path: str,
        content_b64: str,
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> str:
        payload: Dict[str, Any] = {
            "message": message,
            "content": content_b64,
            "branch": branch or self.config.branch,
        }
        if sha:
            payload["sha"] = sha
        data = await self._request("PUT", self._contents_path(path), json=payload)
        return data["content"]["sha"]

    async def delete_file(
        self, path: str, message: str, sha: str, branch: Optional[str] = None
    ) -> None:
        await self._request(
            "DELETE",
            self._contents_path(path),
            json={"message": message, "sha": sha, "branch": branch or self.config.branch},
        )

    async def list_commits(self, limit: int = 10) -> List[CommitSummary]:
        data = await self._request(
            "GET",
            f"{self._repo_path}/commits",
            params={"sha": self.config.branch, "per_page": limit},
        )
        commits = []
        for item in data or []:
            commit = item.get("commit", {})
            author = commit.get("author") or {}
            commits.append(
                CommitSummary(
                    sha=item["sha"],
                    message=commit.get("message", ""),
                    author=author.get("name") or "Unknown",
                    date=author.get("date") or "",
                    url=item.get("html_url", ""),
                )
            )
        return commits

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["GitHubAPIService"]
