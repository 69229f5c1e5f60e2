"""GitHub REST API errors."""

from __future__ import annotations

_MESSAGES = {
    401: "Unauthorized - check the API token",
    403: "Forbidden - possibly rate limited",
    404: "Repository not found or is private",
}


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, detail: str = "") -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        message = _MESSAGES.get(status_code) or detail or "Unknown error"
        return cls(f"GitHub REST HTTP {status_code}: {message}", status_code=status_code)


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub REST responses are missing expected fields."""

    @classmethod
    def unexpected(cls, endpoint: str, detail: object) -> GitHubResponseShapeError:
        """Return an error for a response body that does not decode."""
        return cls(f"GitHub REST response for {endpoint} has unexpected shape: {detail}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")
