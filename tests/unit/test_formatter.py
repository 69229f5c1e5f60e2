"""Unit tests for the embed formatter."""

from __future__ import annotations

import typing as typ

import pytest

from gitrelay.delivery.formatter import (
    GREEN,
    PURPLE,
    RED,
    DeliveryArtifact,
    EmbedFormatter,
    truncate,
)

SENDER = {"login": "ada", "html_url": "https://github.com/ada"}
REPO = {"full_name": "octo/reef", "html_url": "https://github.com/octo/reef"}


def _with_envelope(**fields: typ.Any) -> dict[str, typ.Any]:
    return {"sender": SENDER, "repository": REPO, **fields}


@pytest.fixture
def formatter() -> EmbedFormatter:
    """Return the default formatter."""
    return EmbedFormatter()


class TestTruncate:
    """Tests for description truncation."""

    def test_placeholder_for_empty(self) -> None:
        """Empty text renders as a placeholder."""
        assert truncate(None) == "_No description_"
        assert truncate("") == "_No description_"

    def test_cuts_long_text(self) -> None:
        """Text over the limit is cut with an ellipsis."""
        assert truncate("abcdef", 4) == "abc…"
        assert truncate("abcd", 4) == "abcd"


class TestEmbedFormatterBuild:
    """Tests for per-kind artifacts and decline rules."""

    def test_push_lists_commits(self, formatter: EmbedFormatter) -> None:
        """Push artifacts title the branch and list short shas."""
        payload = _with_envelope(
            ref="refs/heads/main",
            compare="https://github.com/octo/reef/compare/a...b",
            commits=[
                {
                    "id": "abcdef1234567",
                    "message": "Fix relay\n\nLonger body",
                    "url": "https://github.com/octo/reef/commit/abcdef1",
                    "author": {"name": "Ada"},
                }
            ],
        )

        artifact = formatter.build("push", payload)

        assert isinstance(artifact, DeliveryArtifact)
        assert artifact.title == "Push to `main`"
        assert artifact.color == GREEN
        assert artifact.description is not None
        assert "`abcdef1`" in artifact.description
        assert "Longer body" not in artifact.description
        assert artifact.author is not None
        assert artifact.author.name == "ada"

    def test_forced_push_title(self, formatter: EmbedFormatter) -> None:
        """Force pushes are labelled as such."""
        payload = _with_envelope(ref="refs/heads/main", forced=True, commits=[])

        artifact = formatter.build("push", payload)

        assert artifact is not None
        assert artifact.title == "Force pushed to `main`"
        assert artifact.description == "_No commits_"

    @pytest.mark.parametrize(
        ("merged", "title_prefix", "color"),
        [(True, "PR Merged", PURPLE), (False, "PR Closed", RED)],
    )
    def test_closed_pull_request(
        self,
        formatter: EmbedFormatter,
        *,
        merged: bool,
        title_prefix: str,
        color: int,
    ) -> None:
        """Closed pull requests distinguish merges from closures."""
        payload = _with_envelope(
            action="closed",
            pull_request={"number": 9, "title": "Relay", "merged": merged},
        )

        artifact = formatter.build("pull_request", payload)

        assert artifact is not None
        assert artifact.title == f"{title_prefix}: #9 Relay"
        assert artifact.color == color

    @pytest.mark.parametrize(
        ("event_type", "payload"),
        [
            (
                "issue_comment",
                {"action": "edited", "issue": {"number": 1}, "comment": {}},
            ),
            (
                "pull_request_review",
                {"action": "dismissed", "pull_request": {"number": 1}, "review": {}},
            ),
            ("release", {"action": "created", "release": {"tag_name": "v1"}}),
            ("star", {"action": "deleted"}),
            ("workflow_run", {"action": "in_progress", "workflow_run": {}}),
            (
                "check_run",
                {"action": "completed", "check_run": {"conclusion": "success"}},
            ),
            ("check_run", {"action": "created", "check_run": {}}),
        ],
    )
    def test_declined_actions(
        self,
        formatter: EmbedFormatter,
        event_type: str,
        payload: dict[str, typ.Any],
    ) -> None:
        """Quiet actions produce no artifact."""
        assert formatter.build(event_type, _with_envelope(**payload)) is None

    def test_failed_check_run_is_posted(self, formatter: EmbedFormatter) -> None:
        """Unsuccessful completed check runs are reported."""
        payload = _with_envelope(
            action="completed",
            check_run={"name": "lint", "conclusion": "failure"},
        )

        artifact = formatter.build("check_run", payload)

        assert artifact is not None
        assert artifact.title == "Check: lint — failure"

    @pytest.mark.parametrize("event_type", ["ping", "discussion", "gollum"])
    def test_unknown_or_unformatted_kinds(
        self, formatter: EmbedFormatter, event_type: str
    ) -> None:
        """Kinds without a builder are declined."""
        assert formatter.build(event_type, _with_envelope()) is None

    def test_invalid_payload_declined(self, formatter: EmbedFormatter) -> None:
        """Payloads failing validation are declined, not raised."""
        assert formatter.build("issues", {"issue": {"title": "no number"}}) is None

    def test_footer_applied(self, formatter: EmbedFormatter) -> None:
        """A footer is attached to the built artifact."""
        payload = _with_envelope(
            action="opened", issue={"number": 4, "title": "Bug"}
        )

        artifact = formatter.build("issues", payload, footer="Repository: octo/reef")

        assert artifact is not None
        assert artifact.footer == "Repository: octo/reef"


class TestEmbedFormatterPing:
    """Tests for ping confirmation artifacts."""

    def test_ping_artifact(self, formatter: EmbedFormatter) -> None:
        """Ping confirmations name the repository and hook."""
        artifact = formatter.build_ping("octo/reef", {"hook_id": 99, "repository": REPO})

        assert artifact.title == "GitHub Ping Received"
        assert artifact.color == GREEN
        assert [f.name for f in artifact.fields] == ["Repository", "Hook ID"]
        assert artifact.fields[0].value == "[octo/reef](https://github.com/octo/reef)"
        assert artifact.fields[1].value == "99"

    def test_ping_without_repository_uses_slug_url(
        self, formatter: EmbedFormatter
    ) -> None:
        """A missing repository URL is derived from the slug."""
        artifact = formatter.build_ping("octo/reef", {})

        assert artifact.fields[0].value == "[octo/reef](https://github.com/octo/reef)"
        assert artifact.fields[1].value == "—"
