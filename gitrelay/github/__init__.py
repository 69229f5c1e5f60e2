"""GitHub REST client, quota tracking and polling scheduler."""

from __future__ import annotations

from .client import CommitSource, GitHubRestClient, GitHubRestConfig
from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import CommitDelta, CommitSummary
from .observability import (
    ErrorCategory,
    PollingEventLogger,
    PollingEventType,
    categorize_error,
)
from .polling import PollingConfig, PollingScheduler, PollResult, PollStatus
from .ratelimit import RateLimiter, RateState

__all__ = [
    "CommitDelta",
    "CommitSource",
    "CommitSummary",
    "ErrorCategory",
    "GitHubAPIError",
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "GitHubRestConfig",
    "PollResult",
    "PollStatus",
    "PollingConfig",
    "PollingEventLogger",
    "PollingEventType",
    "PollingScheduler",
    "RateLimiter",
    "RateState",
    "categorize_error",
]
