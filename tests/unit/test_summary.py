"""Unit tests for digest summaries."""

from __future__ import annotations

import pytest

from gitrelay.delivery.summary import SUMMARY_CLIP, EventSummary, clip, summarize

SENDER = {"login": "ada"}
REPO = {"full_name": "octo/reef", "html_url": "https://github.com/octo/reef"}


class TestClip:
    """Tests for newline collapsing and truncation."""

    def test_collapses_newlines(self) -> None:
        """CRLF and LF become single spaces."""
        assert clip("fix\r\nthe\nbuild") == "fix the build"

    def test_truncates_with_ellipsis(self) -> None:
        """Long text is cut to the limit including the ellipsis."""
        result = clip("x" * 80)

        assert len(result) == SUMMARY_CLIP
        assert result.endswith("…")

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty_input(self, text: str | None) -> None:
        """Missing text clips to an empty string."""
        assert clip(text) == ""


class TestSummarize:
    """Tests for per-kind summary templates."""

    def test_push(self) -> None:
        """Push summaries count commits and name the branch."""
        payload = {
            "ref": "refs/heads/main",
            "compare": "https://github.com/octo/reef/compare/a...b",
            "commits": [{"id": "a"}, {"id": "b"}],
            "sender": SENDER,
            "repository": REPO,
        }

        assert summarize("push", payload) == EventSummary(
            "ada pushed 2 commit(s) to `main`",
            "https://github.com/octo/reef/compare/a...b",
        )

    def test_pull_request(self) -> None:
        """Pull request summaries include action, number and title."""
        payload = {
            "action": "opened",
            "pull_request": {
                "number": 7,
                "title": "Add relay",
                "html_url": "https://github.com/octo/reef/pull/7",
            },
            "sender": SENDER,
        }

        summary = summarize("pull_request", payload)

        assert summary.text == "ada opened PR #7: Add relay"
        assert summary.link == "https://github.com/octo/reef/pull/7"

    def test_issue_comment_clips_body(self) -> None:
        """Comment bodies are flattened and clipped."""
        payload = {
            "action": "created",
            "issue": {"number": 3},
            "comment": {"body": "line one\n" + "y" * 100, "html_url": "u"},
            "sender": SENDER,
        }

        summary = summarize("issue_comment", payload)

        assert summary.text.startswith("ada commented on #3: line one y")
        assert summary.text.endswith("…")

    def test_workflow_run_uses_conclusion(self) -> None:
        """Workflow summaries report the conclusion and branch."""
        payload = {
            "action": "completed",
            "workflow_run": {"name": "CI", "conclusion": "failure", "head_branch": "main"},
        }

        assert summarize("workflow_run", payload).text == (
            'Workflow "CI" failure on `main`'
        )

    def test_ping_without_hook(self) -> None:
        """Pings without a hook id use a placeholder."""
        assert summarize("ping", {}).text == "Webhook ping received (hook ?)"

    def test_unknown_kind_with_action(self) -> None:
        """Unknown event types fall back to the type and action."""
        payload = {"action": "created", "repository": REPO}

        assert summarize("discussion", payload) == EventSummary(
            "discussion (created)", "https://github.com/octo/reef"
        )

    def test_malformed_payload_degrades(self) -> None:
        """Validation failures yield the bare event type."""
        assert summarize("issues", {"issue": {"number": "seven"}}) == EventSummary(
            "issues"
        )

    def test_missing_payload(self) -> None:
        """A missing payload never raises."""
        assert summarize("release", None) == EventSummary("release")
