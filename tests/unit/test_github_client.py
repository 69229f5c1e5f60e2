"""Unit tests for the GitHub REST commit client."""

from __future__ import annotations

import typing as typ

import httpx
import pytest

from gitrelay.github.client import GitHubRestClient, GitHubRestConfig
from gitrelay.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
)
from gitrelay.github.ratelimit import RateLimiter
from gitrelay.registry import Credential
from tests.helpers.routing_fakes import MutableClock

CREDENTIAL = Credential(id=7, token="ghp-test", is_default=True)
RATE_HEADERS = {"X-RateLimit-Remaining": "4999", "X-RateLimit-Reset": "0"}


def _commit_json(sha: str) -> dict[str, typ.Any]:
    return {
        "sha": sha,
        "html_url": f"https://github.com/octo/reef/commit/{sha}",
        "commit": {
            "message": f"Commit {sha}",
            "author": {"name": "Ada", "email": "ada@example.com"},
        },
        "author": {"login": "ada", "html_url": "https://github.com/ada"},
    }


class _Server:
    """MockTransport handler serving a newest-first commit history."""

    def __init__(
        self, history: list[str], *, status: int = 200, body: bytes | None = None
    ) -> None:
        self.history = history
        self.status = status
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is not None:
            return httpx.Response(self.status, content=self.body, headers=RATE_HEADERS)
        per_page = int(request.url.params.get("per_page", "30"))
        commits = [_commit_json(sha) for sha in self.history[:per_page]]
        return httpx.Response(self.status, json=commits, headers=RATE_HEADERS)


def _client(server: _Server, limiter: RateLimiter | None = None) -> GitHubRestClient:
    return GitHubRestClient(
        GitHubRestConfig(base_url="https://api.github.test"),
        limiter or RateLimiter(clock=MutableClock()),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(server)),
    )


class TestFetchLatestCommit:
    """Tests for reading the branch head."""

    @pytest.mark.asyncio
    async def test_requests_single_commit_on_branch(self) -> None:
        """The head is read with per_page=1 and the branch as sha."""
        server = _Server(["c3", "c2", "c1"])
        client = _client(server)

        commit = await client.fetch_latest_commit(
            "octo", "reef", CREDENTIAL, branch="main"
        )

        assert commit is not None
        assert commit.sha == "c3"
        assert commit.author_login == "ada"
        request = server.requests[0]
        assert request.url.path == "/repos/octo/reef/commits"
        assert request.url.params["per_page"] == "1"
        assert request.url.params["sha"] == "main"
        assert request.headers["Authorization"] == "Bearer ghp-test"

    @pytest.mark.asyncio
    async def test_updates_rate_limiter(self) -> None:
        """Quota headers are recorded under the credential key."""
        limiter = RateLimiter(clock=MutableClock())
        client = _client(_Server(["c1"]), limiter)

        await client.fetch_latest_commit("octo", "reef", CREDENTIAL)

        assert limiter.get_remaining(CREDENTIAL.key) == 4999

    @pytest.mark.asyncio
    async def test_empty_repository_returns_none(self) -> None:
        """GitHub answers 409 for repositories without commits."""
        client = _client(_Server([], status=409, body=b'{"message": "empty"}'))

        assert await client.fetch_latest_commit("octo", "reef", CREDENTIAL) is None

    @pytest.mark.asyncio
    async def test_not_found_raises(self) -> None:
        """Error statuses raise GitHubAPIError with the status code."""
        limiter = RateLimiter(clock=MutableClock())
        client = _client(_Server([], status=404, body=b'{"message": "Not Found"}'), limiter)

        with pytest.raises(GitHubAPIError) as excinfo:
            await client.fetch_latest_commit("octo", "reef", CREDENTIAL)

        assert excinfo.value.status_code == 404
        assert "not found" in str(excinfo.value)
        assert limiter.get_remaining(CREDENTIAL.key) == 4999, (
            "error responses still report quota"
        )

    @pytest.mark.asyncio
    async def test_malformed_body_raises_shape_error(self) -> None:
        """Bodies that are not a commit list raise GitHubResponseShapeError."""
        client = _client(_Server([], body=b'{"sha": "not-a-list"}'))

        with pytest.raises(GitHubResponseShapeError):
            await client.fetch_latest_commit("octo", "reef", CREDENTIAL)

    @pytest.mark.asyncio
    async def test_blank_token_rejected(self) -> None:
        """Credentials with an empty token never reach the network."""
        server = _Server(["c1"])
        client = _client(server)

        with pytest.raises(GitHubConfigError):
            await client.fetch_latest_commit(
                "octo", "reef", Credential(id=1, token=" ")
            )

        assert server.requests == []


class TestFetchCommitsSince:
    """Tests for reading the commits newer than a checkpoint."""

    @pytest.mark.asyncio
    async def test_checkpoint_inside_window(self) -> None:
        """Only commits newer than the checkpoint are returned."""
        history = [f"c{i}" for i in range(30, 0, -1)]
        client = _client(_Server(history))

        delta = await client.fetch_commits_since("octo", "reef", CREDENTIAL, "c27")

        assert delta.checkpoint_found
        assert [c.sha for c in delta.commits] == ["c30", "c29", "c28"]
        assert delta.window_size == 30

    @pytest.mark.asyncio
    async def test_checkpoint_outside_window(self) -> None:
        """A missing checkpoint returns the whole window unflagged."""
        history = [f"c{i}" for i in range(40, 0, -1)]
        server = _Server(history)
        client = _client(server)

        delta = await client.fetch_commits_since("octo", "reef", CREDENTIAL, "zzz999")

        assert not delta.checkpoint_found
        assert len(delta.commits) == 30
        assert delta.commits[0].sha == "c40"
        assert server.requests[0].url.params["per_page"] == "30"

    @pytest.mark.asyncio
    async def test_checkpoint_is_head(self) -> None:
        """A checkpoint equal to the head yields no commits."""
        client = _client(_Server(["c2", "c1"]))

        delta = await client.fetch_commits_since("octo", "reef", CREDENTIAL, "c2")

        assert delta.checkpoint_found
        assert delta.commits == []


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """The API URL and timeout are read from the environment."""
    monkeypatch.setenv("GITRELAY_GITHUB_API_URL", "https://ghe.example/api/v3")
    monkeypatch.setenv("GITRELAY_GITHUB_TIMEOUT_SECONDS", "5")

    config = GitHubRestConfig.from_env()

    assert config.base_url == "https://ghe.example/api/v3"
    assert config.timeout_s == 5.0
