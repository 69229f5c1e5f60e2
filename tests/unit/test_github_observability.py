"""Unit tests for polling observability."""

from __future__ import annotations

import datetime as dt

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from gitrelay.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
)
from gitrelay.github.observability import (
    ErrorCategory,
    PollingEventLogger,
    PollingEventType,
    categorize_error,
)
from tests.helpers.femtologging_capture import capture_logs


class TestCategorizeError:
    """Tests for error categorisation."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (GitHubAPIError.http_error(502), ErrorCategory.TRANSIENT),
            (GitHubAPIError.http_error(404), ErrorCategory.CLIENT_ERROR),
            (GitHubAPIError("no status"), ErrorCategory.CLIENT_ERROR),
            (
                GitHubResponseShapeError.unexpected("/repos/o/n/commits", "bad"),
                ErrorCategory.SCHEMA_DRIFT,
            ),
            (GitHubConfigError.empty_token(), ErrorCategory.CONFIGURATION),
            (httpx.ConnectTimeout("slow"), ErrorCategory.TRANSIENT),
            (
                OperationalError("connect", None, Exception("down")),
                ErrorCategory.DATABASE_CONNECTIVITY,
            ),
            (
                IntegrityError("dup", None, Exception("dup")),
                ErrorCategory.DATA_INTEGRITY,
            ),
            (ValueError("other"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, exc: BaseException, expected: ErrorCategory) -> None:
        """Exceptions map onto alerting categories."""
        assert categorize_error(exc) == expected


class TestGitHubAPIErrorMessages:
    """Tests for status-specific error messages."""

    def test_known_status_message(self) -> None:
        """Known statuses get an explanatory message."""
        exc = GitHubAPIError.http_error(401, "Bad credentials")

        assert str(exc) == "GitHub REST HTTP 401: Unauthorized - check the API token"
        assert exc.status_code == 401

    def test_unknown_status_uses_detail(self) -> None:
        """Other statuses fall back to the response text."""
        assert str(GitHubAPIError.http_error(422, "nope")) == "GitHub REST HTTP 422: nope"


class TestPollingEventLogger:
    """Tests for structured polling log lines."""

    def test_gap_detected_warns(self) -> None:
        """Gaps are logged at WARN with the skipped count."""
        with capture_logs("gitrelay.github.observability") as capture:
            PollingEventLogger().log_gap_detected(
                repo_slug="octo/reef",
                checkpoint="zzz9990000",
                window=30,
                skipped=25,
            )
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "WARN"
        assert PollingEventType.GAP_DETECTED in record.message
        assert "checkpoint=zzz9990" in record.message
        assert "skipped_commits=25" in record.message

    def test_poll_failed_includes_category(self) -> None:
        """Failures carry their error category."""
        with capture_logs("gitrelay.github.observability") as capture:
            PollingEventLogger().log_poll_failed(
                repo_slug="octo/reef", error=GitHubAPIError.http_error(503)
            )
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "ERROR"
        assert "error_category=transient" in record.message

    def test_quota_low(self) -> None:
        """Low quota warnings include the reset instant."""
        reset_at = dt.datetime(2026, 1, 1, 13, 0, tzinfo=dt.UTC)

        with capture_logs("gitrelay.github.observability") as capture:
            PollingEventLogger().log_quota_low(
                credential_id="7", remaining=12, reset_at=reset_at
            )
            capture.wait_for_count(1)

        message = capture.records[0].message
        assert "credential_id=7" in message
        assert "remaining=12" in message
        assert reset_at.isoformat() in message
