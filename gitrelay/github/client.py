"""GitHub REST client used by the polling scheduler."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from gitrelay.common.env import env_positive_float, env_str

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import CommitDelta, CommitSummary

if typ.TYPE_CHECKING:
    from gitrelay.registry.models import Credential

    from .ratelimit import RateLimiter

DEFAULT_API_URL = "https://api.github.com"
HISTORY_WINDOW = 30
_HTTP_ERROR_STATUS_THRESHOLD = 400
_COMMIT_LIST = msgspec.json.Decoder(list[CommitSummary])


class CommitSource(typ.Protocol):
    """Interface for reading a repository's recent commit history."""

    async def fetch_latest_commit(
        self,
        owner: str,
        name: str,
        credential: Credential,
        *,
        branch: str | None = None,
    ) -> CommitSummary | None:
        """Return the head commit of ``branch``, or ``None`` when empty."""
        ...

    async def fetch_commits_since(
        self,
        owner: str,
        name: str,
        credential: Credential,
        since_sha: str,
        *,
        branch: str | None = None,
    ) -> CommitDelta:
        """Return commits newer than ``since_sha`` within the history window."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST API client."""

    base_url: str = DEFAULT_API_URL
    timeout_s: float = 20.0
    user_agent: str = "gitrelay/0.1"
    api_version: str = "2022-11-28"
    history_window: int = HISTORY_WINDOW

    @classmethod
    def from_env(cls) -> GitHubRestConfig:
        """Read ``GITRELAY_GITHUB_API_URL`` and ``GITRELAY_GITHUB_TIMEOUT_SECONDS``."""
        return cls(
            base_url=env_str("GITRELAY_GITHUB_API_URL") or DEFAULT_API_URL,
            timeout_s=env_positive_float("GITRELAY_GITHUB_TIMEOUT_SECONDS", 20.0),
        )


class GitHubRestClient:
    """GitHub REST implementation of :class:`CommitSource`.

    Every response, successful or not, is reported to the rate limiter
    under the credential's key before its status is examined.
    """

    def __init__(
        self,
        config: GitHubRestConfig,
        rate_limiter: RateLimiter,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._rate_limiter = rate_limiter
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": config.api_version,
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_latest_commit(
        self,
        owner: str,
        name: str,
        credential: Credential,
        *,
        branch: str | None = None,
    ) -> CommitSummary | None:
        """Return the newest commit on ``branch`` (default branch if omitted)."""
        commits = await self._list_commits(owner, name, credential, branch, per_page=1)
        return commits[0] if commits else None

    async def fetch_commits_since(
        self,
        owner: str,
        name: str,
        credential: Credential,
        since_sha: str,
        *,
        branch: str | None = None,
    ) -> CommitDelta:
        """Return the commits newer than ``since_sha``, newest first.

        Only the most recent ``history_window`` commits are examined. When
        ``since_sha`` is not among them the whole window is returned with
        ``checkpoint_found`` unset.
        """
        window = await self._list_commits(
            owner, name, credential, branch, per_page=self._config.history_window
        )
        newer: list[CommitSummary] = []
        for commit in window:
            if commit.sha == since_sha:
                return CommitDelta(
                    commits=newer, checkpoint_found=True, window_size=len(window)
                )
            newer.append(commit)
        return CommitDelta(commits=window, checkpoint_found=False, window_size=len(window))

    async def _list_commits(
        self,
        owner: str,
        name: str,
        credential: Credential,
        branch: str | None,
        *,
        per_page: int,
    ) -> list[CommitSummary]:
        if not credential.token.strip():
            raise GitHubConfigError.empty_token()
        endpoint = f"/repos/{owner}/{name}/commits"
        params: dict[str, str | int] = {"per_page": per_page}
        if branch:
            params["sha"] = branch
        response = await self._client.get(
            f"{self._config.base_url.rstrip('/')}{endpoint}",
            params=params,
            headers={"Authorization": f"Bearer {credential.token}"},
        )
        self._rate_limiter.update_from_headers(credential.key, response.headers)
        # An empty repository answers 409 on the commits endpoint.
        if response.status_code == httpx.codes.CONFLICT:
            return []
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code, response.text)
        try:
            return _COMMIT_LIST.decode(response.content)
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.unexpected(endpoint, exc) from exc
