"""Typed views over GitHub webhook payloads.

Webhook bodies arrive as untyped JSON. Each known event kind gets a
``msgspec.Struct`` describing the fields gitrelay reads, and
:func:`decode_payload` converts the raw mapping into that view. Missing or
mistyped fields raise ``msgspec.ValidationError`` here, at the boundary,
instead of surfacing as ``KeyError`` deep inside formatting code. Unknown
keys are ignored.
"""

from __future__ import annotations

import enum
import typing as typ

import msgspec


class EventKind(enum.StrEnum):
    """GitHub event types gitrelay understands."""

    PING = "ping"
    PUSH = "push"
    PULL_REQUEST = "pull_request"
    ISSUES = "issues"
    ISSUE_COMMENT = "issue_comment"
    PULL_REQUEST_REVIEW = "pull_request_review"
    RELEASE = "release"
    STAR = "star"
    FORK = "fork"
    CREATE = "create"
    DELETE = "delete"
    WORKFLOW_RUN = "workflow_run"
    CHECK_RUN = "check_run"
    DEPLOYMENT_STATUS = "deployment_status"

    @classmethod
    def parse(cls, event_type: str) -> EventKind | None:
        """Return the kind for ``event_type`` or ``None`` when unknown."""
        try:
            return cls(event_type)
        except ValueError:
            return None


class Actor(msgspec.Struct, kw_only=True):
    """A GitHub user as embedded in ``sender`` and ``author`` fields."""

    login: str | None = None
    html_url: str | None = None
    avatar_url: str | None = None


class RepositoryRef(msgspec.Struct, kw_only=True):
    """The ``repository`` (or ``forkee``) object."""

    full_name: str | None = None
    html_url: str | None = None
    stargazers_count: int | None = None
    owner: Actor | None = None


class Envelope(msgspec.Struct, kw_only=True):
    """Fields common to every webhook payload."""

    action: str | None = None
    sender: Actor | None = None
    repository: RepositoryRef | None = None

    @property
    def actor(self) -> str:
        """Return the sender login, or ``someone`` when absent."""
        if self.sender is not None and self.sender.login:
            return self.sender.login
        return "someone"

    @property
    def repository_url(self) -> str | None:
        """Return the repository web URL when present."""
        return self.repository.html_url if self.repository is not None else None

    @property
    def repository_name(self) -> str | None:
        """Return ``owner/name`` when present."""
        return self.repository.full_name if self.repository is not None else None


class CommitAuthor(msgspec.Struct, kw_only=True):
    """Author block of a pushed commit."""

    name: str | None = None
    email: str | None = None


class PushedCommit(msgspec.Struct, kw_only=True):
    """One entry of ``push.commits``."""

    id: str
    message: str = ""
    url: str | None = None
    author: CommitAuthor | None = None


class PushPayload(Envelope, kw_only=True):
    """``push`` event."""

    ref: str
    compare: str | None = None
    forced: bool = False
    commits: list[PushedCommit] = msgspec.field(default_factory=list)

    @property
    def branch(self) -> str:
        """Return the ref without its ``refs/heads/`` or ``refs/tags/`` prefix."""
        return self.ref.removeprefix("refs/heads/").removeprefix("refs/tags/")

    @property
    def is_tag(self) -> bool:
        """Return whether the push targeted a tag."""
        return self.ref.startswith("refs/tags/")


class BranchRef(msgspec.Struct, kw_only=True):
    """``head`` / ``base`` of a pull request."""

    ref: str | None = None


class PullRequest(msgspec.Struct, kw_only=True):
    """The ``pull_request`` object."""

    number: int
    title: str | None = None
    body: str | None = None
    html_url: str | None = None
    merged: bool | None = None
    additions: int | None = None
    deletions: int | None = None
    head: BranchRef | None = None
    base: BranchRef | None = None


class PullRequestPayload(Envelope, kw_only=True):
    """``pull_request`` event."""

    pull_request: PullRequest


class Issue(msgspec.Struct, kw_only=True):
    """The ``issue`` object."""

    number: int
    title: str | None = None
    body: str | None = None
    html_url: str | None = None


class IssuesPayload(Envelope, kw_only=True):
    """``issues`` event."""

    issue: Issue


class Comment(msgspec.Struct, kw_only=True):
    """The ``comment`` object of ``issue_comment``."""

    body: str | None = None
    html_url: str | None = None


class IssueCommentPayload(Envelope, kw_only=True):
    """``issue_comment`` event."""

    issue: Issue
    comment: Comment


class Review(msgspec.Struct, kw_only=True):
    """The ``review`` object of ``pull_request_review``."""

    state: str | None = None
    body: str | None = None
    html_url: str | None = None


class PullRequestReviewPayload(Envelope, kw_only=True):
    """``pull_request_review`` event."""

    pull_request: PullRequest
    review: Review


class Release(msgspec.Struct, kw_only=True):
    """The ``release`` object."""

    tag_name: str
    name: str | None = None
    body: str | None = None
    html_url: str | None = None
    prerelease: bool = False


class ReleasePayload(Envelope, kw_only=True):
    """``release`` event."""

    release: Release


class StarPayload(Envelope, kw_only=True):
    """``star`` event; the count lives on ``repository.stargazers_count``."""


class ForkPayload(Envelope, kw_only=True):
    """``fork`` event."""

    forkee: RepositoryRef


class RefPayload(Envelope, kw_only=True):
    """``create`` and ``delete`` events."""

    ref: str
    ref_type: str


class WorkflowRun(msgspec.Struct, kw_only=True):
    """The ``workflow_run`` object."""

    name: str | None = None
    conclusion: str | None = None
    head_branch: str | None = None
    html_url: str | None = None
    event: str | None = None


class WorkflowRunPayload(Envelope, kw_only=True):
    """``workflow_run`` event."""

    workflow_run: WorkflowRun


class CheckSuite(msgspec.Struct, kw_only=True):
    """The ``check_suite`` object nested in a check run."""

    head_branch: str | None = None


class CheckOutput(msgspec.Struct, kw_only=True):
    """The ``output`` object of a check run."""

    summary: str | None = None


class CheckApp(msgspec.Struct, kw_only=True):
    """The GitHub App that reported a check run."""

    name: str | None = None


class CheckRun(msgspec.Struct, kw_only=True):
    """The ``check_run`` object."""

    name: str | None = None
    conclusion: str | None = None
    html_url: str | None = None
    output: CheckOutput | None = None
    check_suite: CheckSuite | None = None
    app: CheckApp | None = None


class CheckRunPayload(Envelope, kw_only=True):
    """``check_run`` event."""

    check_run: CheckRun


class Deployment(msgspec.Struct, kw_only=True):
    """The ``deployment`` object."""

    environment: str | None = None
    ref: str | None = None


class DeploymentStatus(msgspec.Struct, kw_only=True):
    """The ``deployment_status`` object."""

    state: str | None = None
    target_url: str | None = None
    description: str | None = None


class DeploymentStatusPayload(Envelope, kw_only=True):
    """``deployment_status`` event."""

    deployment: Deployment
    deployment_status: DeploymentStatus


class PingPayload(Envelope, kw_only=True):
    """``ping`` event sent when a webhook is first saved."""

    hook_id: int | None = None
    zen: str | None = None


_VIEW_TYPES: dict[EventKind, type[Envelope]] = {
    EventKind.PING: PingPayload,
    EventKind.PUSH: PushPayload,
    EventKind.PULL_REQUEST: PullRequestPayload,
    EventKind.ISSUES: IssuesPayload,
    EventKind.ISSUE_COMMENT: IssueCommentPayload,
    EventKind.PULL_REQUEST_REVIEW: PullRequestReviewPayload,
    EventKind.RELEASE: ReleasePayload,
    EventKind.STAR: StarPayload,
    EventKind.FORK: ForkPayload,
    EventKind.CREATE: RefPayload,
    EventKind.DELETE: RefPayload,
    EventKind.WORKFLOW_RUN: WorkflowRunPayload,
    EventKind.CHECK_RUN: CheckRunPayload,
    EventKind.DEPLOYMENT_STATUS: DeploymentStatusPayload,
}


def decode_payload(kind: EventKind, payload: typ.Mapping[str, typ.Any]) -> Envelope:
    """Convert a raw payload into the typed view for ``kind``.

    Raises
    ------
    msgspec.ValidationError
        If a required field is missing or a field has the wrong type.

    """
    return msgspec.convert(payload, type=_VIEW_TYPES[kind])
