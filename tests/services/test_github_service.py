"""
Tests for GitHubAPIService against an httpx mock transport.
"""

import base64
import json

import httpx
import pytest

from reposync.infrastructure.error_handler import (
    AuthenticationError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
    TreeTooLargeError,
)
from reposync.infrastructure.rate_limiter import RateLimiter
from reposync.models import FileEncoding, RepositoryConfig, TreeEntry
from reposync.services.github_api import GitHubAPIService

pytestmark = pytest.mark.asyncio

CONFIG = RepositoryConfig(token="ghp_test", owner="me", repo="repo", branch="main")


def make_service(handler):
    requests = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    service = GitHubAPIService(
        CONFIG, rate_limiter=RateLimiter(), transport=httpx.MockTransport(record)
    )
    return service, requests


def body(request: httpx.Request):
    return json.loads(request.content.decode("utf-8"))


async def test_headers_and_repository_info():
    def handler(request):
        return httpx.Response(200, json={
            "name": "repo",
            "owner": {"login": "me"},
            "default_branch": "develop",
            "private": True,
            "permissions": {"push": True},
        })

    service, requests = make_service(handler)
    async with service:
        info = await service.get_repository()

    assert info.default_branch == "develop"
    assert info.can_push is True
    assert info.private is True
    assert requests[0].url.path == "/repos/me/repo"
    assert requests[0].headers["Authorization"] == "Bearer ghp_test"
    assert requests[0].headers["Accept"] == "application/vnd.github+json"
    assert service.api_calls == 1


async def test_get_branch_sha_returns_none_when_missing():
    def handler(request):
        return httpx.Response(404, json={"message": "Not Found"})

    service, _ = make_service(handler)
    async with service:
        assert await service.get_branch_sha("feature") is None


async def test_get_branch_sha():
    def handler(request):
        assert request.url.path == "/repos/me/repo/git/ref/heads/main"
        return httpx.Response(200, json={"object": {"sha": "abc123"}})

    service, _ = make_service(handler)
    async with service:
        assert await service.get_branch_sha("main") == "abc123"


async def test_get_tree_requests_recursive_listing():
    def handler(request):
        assert request.url.params["recursive"] == "1"
        return httpx.Response(200, json={
            "sha": "t1",
            "tree": [
                {"path": "src", "type": "tree", "sha": "d1"},
                {"path": "src/app.py", "type": "blob", "sha": "b1", "size": 12},
            ],
            "truncated": False,
        })

    service, _ = make_service(handler)
    async with service:
        items = await service.get_tree("t1")

    assert [item["path"] for item in items] == ["src", "src/app.py"]


async def test_truncated_tree_is_an_error():
    def handler(request):
        return httpx.Response(200, json={
            "sha": "t1",
            "tree": [{"path": "src/app.py", "type": "blob", "sha": "b1", "size": 12}],
            "truncated": True,
        })

    service, requests = make_service(handler)
    async with service:
        with pytest.raises(TreeTooLargeError, match="truncated"):
            await service.get_tree("t1")

    assert len(requests) == 1


async def test_get_blob_strips_line_breaks():
    encoded = base64.b64encode(b"hello world").decode("ascii")

    def handler(request):
        return httpx.Response(200, json={
            "content": encoded[:8] + "\n" + encoded[8:] + "\n",
            "encoding": "base64",
        })

    service, _ = make_service(handler)
    async with service:
        assert await service.get_blob("b1") == encoded


async def test_create_blob_sends_api_encoding():
    def handler(request):
        assert body(request) == {"content": "hello", "encoding": "utf-8"}
        return httpx.Response(201, json={"sha": "b1"})

    service, _ = make_service(handler)
    async with service:
        assert await service.create_blob("hello", FileEncoding.UTF8) == "b1"


async def test_create_tree_with_base_and_deletion():
    def handler(request):
        payload = body(request)
        assert payload["base_tree"] == "base"
        assert payload["tree"] == [
            {"path": "a.txt", "mode": "100644", "type": "blob", "sha": "b1"},
            {"path": "old.txt", "mode": "100644", "type": "blob", "sha": None},
        ]
        return httpx.Response(201, json={"sha": "t2"})

    service, _ = make_service(handler)
    async with service:
        sha = await service.create_tree(
            [TreeEntry("a.txt", "b1"), TreeEntry("old.txt", None)], base_tree="base"
        )

    assert sha == "t2"


async def test_create_commit_and_update_ref():
    def handler(request):
        if request.method == "POST":
            assert body(request) == {"message": "sync", "tree": "t2", "parents": ["c1"]}
            return httpx.Response(201, json={"sha": "c2"})
        assert request.method == "PATCH"
        assert request.url.path == "/repos/me/repo/git/refs/heads/main"
        assert body(request) == {"sha": "c2", "force": False}
        return httpx.Response(200, json={"object": {"sha": "c2"}})

    service, requests = make_service(handler)
    async with service:
        commit = await service.create_commit("sync", "t2", ["c1"])
        await service.update_ref("main", commit)

    assert commit == "c2"
    assert len(requests) == 2


async def test_put_file_sends_sha_precondition():
    def handler(request):
        assert request.method == "PUT"
        assert request.url.path == "/repos/me/repo/contents/docs/read me.md"
        payload = body(request)
        assert payload["sha"] == "old"
        assert payload["branch"] == "main"
        assert base64.b64decode(payload["content"]) == b"# Title\n"
        return httpx.Response(200, json={"content": {"sha": "new"}})

    service, _ = make_service(handler)
    async with service:
        encoded = base64.b64encode(b"# Title\n").decode("ascii")
        assert await service.put_file("docs/read me.md", encoded, "Update", "old") == "new"


async def test_put_file_omits_sha_for_new_files():
    def handler(request):
        assert "sha" not in body(request)
        return httpx.Response(201, json={"content": {"sha": "new"}})

    service, _ = make_service(handler)
    async with service:
        await service.put_file("new.txt", "aGk=", "Create")


async def test_get_file_sha_missing_file():
    def handler(request):
        return httpx.Response(404, json={"message": "Not Found"})

    service, _ = make_service(handler)
    async with service:
        assert await service.get_file_sha("missing.txt") is None


async def test_get_file_content_decodes_base64():
    def handler(request):
        assert request.url.params["ref"] == "main"
        return httpx.Response(200, json={
            "sha": "s1",
            "content": base64.b64encode("héllo".encode("utf-8")).decode("ascii"),
            "encoding": "base64",
        })

    service, _ = make_service(handler)
    async with service:
        assert await service.get_file_content("a.txt") == "héllo"


async def test_list_commits():
    def handler(request):
        assert request.url.params["per_page"] == "2"
        return httpx.Response(200, json=[
            {
                "sha": "abcdef1234567",
                "html_url": "https://github.com/me/repo/commit/abcdef1",
                "commit": {
                    "message": "Initial commit",
                    "author": {"name": "Ada", "date": "2026-01-01T00:00:00Z"},
                },
            },
        ])

    service, _ = make_service(handler)
    async with service:
        commits = await service.list_commits(limit=2)

    assert commits[0].short_sha == "abcdef1"
    assert commits[0].author == "Ada"


@pytest.mark.parametrize("status, message, headers, expected", [
    (401, "Bad credentials", {}, AuthenticationError),
    (403, "API rate limit exceeded", {"x-ratelimit-remaining": "0"}, RateLimitError),
    (422, "tree is too large", {}, PayloadTooLargeError),
    (404, "Not Found", {}, NotFoundError),
])
async def test_error_responses_are_mapped(status, message, headers, expected):
    def handler(request):
        return httpx.Response(status, json={"message": message}, headers=headers)

    service, _ = make_service(handler)
    async with service:
        with pytest.raises(expected):
            await service.get_commit_tree_sha("c1")


async def test_rate_limit_headers_update_limiter():
    def handler(request):
        return httpx.Response(
            200,
            json={"tree": {"sha": "t1"}},
            headers={"x-ratelimit-limit": "5000", "x-ratelimit-remaining": "4321"},
        )

    service, _ = make_service(handler)
    async with service:
        assert await service.get_commit_tree_sha("c1") == "t1"

    assert service.rate_limiter.rate_limit_info.remaining == 4321
