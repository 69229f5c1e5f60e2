"""Observability primitives for GitHub polling.

Provides structured logging and error categorisation for scheduler ticks,
per-repository polls and API quota. All events are emitted as
``[event.type] key=value`` log lines suitable for log aggregators.
"""

from __future__ import annotations

import enum
import typing as typ

import httpx
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from gitrelay.logging import get_logger, log_error, log_info, log_warning

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)

# HTTP status code threshold for server errors (5xx)
_HTTP_SERVER_ERROR_THRESHOLD = 500


class PollingEventType(enum.StrEnum):
    """Structured log event types for polling observability."""

    SCHEDULER_STARTED = "polling.scheduler.started"
    SCHEDULER_STOPPED = "polling.scheduler.stopped"
    TICK_FAILED = "polling.tick.failed"
    POLL_SKIPPED = "polling.repo.skipped"
    BASELINE_ADOPTED = "polling.repo.baseline"
    COMMITS_DETECTED = "polling.repo.commits"
    GAP_DETECTED = "polling.repo.gap"
    POLL_FAILED = "polling.repo.failed"
    QUOTA_LOW = "polling.quota.low"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (GitHubConfigError, ErrorCategory.CONFIGURATION),
    (httpx.HTTPError, ErrorCategory.TRANSIENT),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorise an exception for alerting purposes.

    Returns
    -------
    ErrorCategory
        The type of failure, for alert routing.

    """
    if isinstance(exc, GitHubAPIError):
        if (
            exc.status_code is not None
            and exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class PollingEventLogger:
    """Emit structured polling events via femtologging.

    Successful polls log at INFO, skips and quota or gap warnings at
    WARNING, and failures at ERROR.
    """

    def log_scheduler_started(self, *, interval_seconds: float) -> None:
        """Log the scheduler loop starting."""
        log_info(
            logger,
            "[%s] interval_seconds=%.1f",
            PollingEventType.SCHEDULER_STARTED,
            interval_seconds,
        )

    def log_scheduler_stopped(self) -> None:
        """Log the scheduler loop stopping."""
        log_info(logger, "[%s]", PollingEventType.SCHEDULER_STOPPED)

    def log_tick_failed(self, error: BaseException) -> None:
        """Log a tick that failed before reaching individual repositories."""
        log_error(
            logger,
            "[%s] error_type=%s error_category=%s error_message=%s",
            PollingEventType.TICK_FAILED,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_poll_skipped(self, *, repo_slug: str, reason: str) -> None:
        """Log a repository skipped this tick (no credential or rate limited)."""
        log_warning(
            logger,
            "[%s] repo_slug=%s reason=%s",
            PollingEventType.POLL_SKIPPED,
            repo_slug,
            reason,
        )

    def log_baseline_adopted(self, *, repo_slug: str, sha: str) -> None:
        """Log the first checkpoint recorded for a repository."""
        log_info(
            logger,
            "[%s] repo_slug=%s sha=%s",
            PollingEventType.BASELINE_ADOPTED,
            repo_slug,
            sha[:7],
        )

    def log_commits_detected(
        self, *, repo_slug: str, new_commits: int, synthesized: int
    ) -> None:
        """Log new commits found since the checkpoint."""
        log_info(
            logger,
            "[%s] repo_slug=%s new_commits=%d synthesized=%d",
            PollingEventType.COMMITS_DETECTED,
            repo_slug,
            new_commits,
            synthesized,
        )

    def log_gap_detected(
        self, *, repo_slug: str, checkpoint: str, window: int, skipped: int
    ) -> None:
        """Log a checkpoint that fell outside the fetched history window."""
        log_warning(
            logger,
            "[%s] repo_slug=%s checkpoint=%s window=%d skipped_commits=%d",
            PollingEventType.GAP_DETECTED,
            repo_slug,
            checkpoint[:7],
            window,
            skipped,
        )

    def log_poll_failed(self, *, repo_slug: str, error: BaseException) -> None:
        """Log a failed poll with error categorisation."""
        log_error(
            logger,
            "[%s] repo_slug=%s error_type=%s error_category=%s error_message=%s",
            PollingEventType.POLL_FAILED,
            repo_slug,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def log_quota_low(
        self, *, credential_id: str, remaining: int, reset_at: dt.datetime
    ) -> None:
        """Log a credential running low on API quota."""
        log_warning(
            logger,
            "[%s] credential_id=%s remaining=%d reset_at=%s",
            PollingEventType.QUOTA_LOW,
            credential_id,
            remaining,
            reset_at.isoformat(),
        )
