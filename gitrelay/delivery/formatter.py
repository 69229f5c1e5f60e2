"""Default formatting collaborator: GitHub events to chat embeds.

The router treats delivery artifacts as opaque; it only needs a formatter
that returns an artifact or ``None`` when an event should not be posted.
:class:`EmbedFormatter` produces :class:`DeliveryArtifact` values shaped like
Discord embeds. Some actions are silent on purpose (in-progress workflow
runs, successful check runs, edited comments) and yield ``None``.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import msgspec

from gitrelay.delivery.payloads import (
    CheckRunPayload,
    DeploymentStatusPayload,
    Envelope,
    EventKind,
    ForkPayload,
    IssueCommentPayload,
    IssuesPayload,
    PingPayload,
    PullRequestPayload,
    PullRequestReviewPayload,
    PushPayload,
    RefPayload,
    ReleasePayload,
    StarPayload,
    WorkflowRunPayload,
    decode_payload,
)
from gitrelay.logging import get_logger, log_warning

logger = get_logger(__name__)

GREEN = 0x2ECC71
BLUE = 0x3498DB
PURPLE = 0x9B59B6
RED = 0xE74C3C
ORANGE = 0xF39C12
GREY = 0x95A5A6
YELLOW = 0xF1C40F
BLURPLE = 0x5865F2

_MAX_LISTED_COMMITS = 5


class ArtifactAuthor(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Author line of an embed."""

    name: str
    url: str | None = None
    icon_url: str | None = None


class ArtifactField(msgspec.Struct, kw_only=True):
    """Inline name/value pair."""

    name: str
    value: str
    inline: bool = True


class DeliveryArtifact(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Channel-ready representation of one event."""

    title: str
    color: int = BLURPLE
    url: str | None = None
    description: str | None = None
    author: ArtifactAuthor | None = None
    fields: list[ArtifactField] = msgspec.field(default_factory=list)
    footer: str | None = None


class ArtifactFormatter(typ.Protocol):
    """Builds delivery artifacts; ``None`` means nothing should be posted."""

    def build(
        self,
        event_type: str,
        payload: cabc.Mapping[str, typ.Any],
        *,
        footer: str | None = None,
    ) -> object | None:
        """Return an artifact for the event or ``None`` to decline."""
        ...

    def build_ping(
        self, slug: str, payload: cabc.Mapping[str, typ.Any]
    ) -> object:
        """Return the confirmation artifact posted for ``ping`` events."""
        ...


def truncate(text: str | None, limit: int = 100) -> str:
    """Cut ``text`` to ``limit`` characters with an ellipsis.

    Empty input becomes an italic placeholder.
    """
    if not text:
        return "_No description_"
    return text[: limit - 1] + "…" if len(text) > limit else text


def _author(view: Envelope) -> ArtifactAuthor | None:
    if view.sender is None or not view.sender.login:
        return None
    return ArtifactAuthor(
        name=view.sender.login,
        url=view.sender.html_url,
        icon_url=view.sender.avatar_url,
    )


def _repo_field(view: Envelope) -> ArtifactField:
    name = view.repository_name or "unknown"
    url = view.repository_url
    return ArtifactField(name="Repo", value=f"[{name}]({url})" if url else name)


def _push(view: PushPayload) -> DeliveryArtifact:
    lines = [
        f"[`{commit.id[:7]}`]({commit.url}) "
        f"{truncate(commit.message.split(chr(10))[0], 60)}"
        f" — *{commit.author.name if commit.author else 'unknown'}*"
        for commit in view.commits[:_MAX_LISTED_COMMITS]
    ]
    if view.forced:
        label = "Force pushed"
    elif view.is_tag:
        label = "Tag pushed"
    else:
        label = "Push"
    return DeliveryArtifact(
        title=f"{label} to `{view.branch}`",
        color=GREEN,
        url=view.compare,
        description="\n".join(lines) or "_No commits_",
        author=_author(view),
        fields=[
            _repo_field(view),
            ArtifactField(name="Branch", value=f"`{view.branch}`"),
            ArtifactField(name="Commits", value=str(len(view.commits))),
        ],
    )


def _pull_request(view: PullRequestPayload) -> DeliveryArtifact:
    pr = view.pull_request
    labels = {
        "opened": ("PR Opened", BLUE),
        "reopened": ("PR Reopened", BLUE),
        "review_requested": ("Review Requested", BLURPLE),
        "ready_for_review": ("Ready for Review", BLUE),
    }
    if view.action == "closed":
        label, color = ("PR Merged", PURPLE) if pr.merged else ("PR Closed", RED)
    else:
        label, color = labels.get(view.action or "", (f"PR {view.action}", BLURPLE))

    head = pr.head.ref if pr.head else "?"
    base = pr.base.ref if pr.base else "?"
    fields = [_repo_field(view), ArtifactField(name="Branch", value=f"`{head}` → `{base}`")]
    if pr.additions is not None and pr.deletions is not None:
        fields.append(
            ArtifactField(name="Changes", value=f"+{pr.additions} / -{pr.deletions}")
        )
    return DeliveryArtifact(
        title=f"{label}: #{pr.number} {truncate(pr.title, 80)}",
        color=color,
        url=pr.html_url,
        description=truncate(pr.body, 300),
        author=_author(view),
        fields=fields,
    )


def _issues(view: IssuesPayload) -> DeliveryArtifact:
    is_open = view.action in {"opened", "reopened"}
    return DeliveryArtifact(
        title=f"Issue {view.action}: #{view.issue.number} {truncate(view.issue.title, 80)}",
        color=ORANGE if is_open else GREY,
        url=view.issue.html_url,
        description=truncate(view.issue.body, 300),
        author=_author(view),
        fields=[_repo_field(view)],
    )


def _issue_comment(view: IssueCommentPayload) -> DeliveryArtifact | None:
    if view.action != "created":
        return None
    return DeliveryArtifact(
        title=f"Comment on #{view.issue.number} {truncate(view.issue.title, 80)}",
        color=BLURPLE,
        url=view.comment.html_url,
        description=truncate(view.comment.body, 300),
        author=_author(view),
        fields=[_repo_field(view)],
    )


def _review(view: PullRequestReviewPayload) -> DeliveryArtifact | None:
    if view.action != "submitted":
        return None
    state = (view.review.state or "commented").lower()
    colors = {"approved": GREEN, "changes_requested": RED}
    return DeliveryArtifact(
        title=f"Review {state.replace('_', ' ')}: PR #{view.pull_request.number}",
        color=colors.get(state, BLURPLE),
        url=view.review.html_url,
        description=truncate(view.review.body, 300),
        author=_author(view),
        fields=[_repo_field(view)],
    )


def _ref(verb: str, color: int) -> cabc.Callable[[RefPayload], DeliveryArtifact]:
    def build(view: RefPayload) -> DeliveryArtifact:
        return DeliveryArtifact(
            title=f"{view.ref_type.capitalize()} {verb}: `{view.ref}`",
            color=color,
            url=view.repository_url,
            author=_author(view),
            fields=[_repo_field(view)],
        )

    return build


def _release(view: ReleasePayload) -> DeliveryArtifact | None:
    if view.action not in {"published", "released", "prereleased"}:
        return None
    release = view.release
    return DeliveryArtifact(
        title=f"Release {release.tag_name}" + (" (pre-release)" if release.prerelease else ""),
        color=YELLOW,
        url=release.html_url,
        description=truncate(release.body, 300),
        author=_author(view),
        fields=[_repo_field(view)],
    )


def _star(view: StarPayload) -> DeliveryArtifact | None:
    if view.action != "created":
        return None
    total = view.repository.stargazers_count if view.repository else None
    return DeliveryArtifact(
        title=f"New star ({total} total)",
        color=YELLOW,
        url=view.repository_url,
        author=_author(view),
        fields=[_repo_field(view)],
    )


def _fork(view: ForkPayload) -> DeliveryArtifact:
    return DeliveryArtifact(
        title=f"Forked to {view.forkee.full_name}",
        color=BLURPLE,
        url=view.forkee.html_url,
        author=_author(view),
        fields=[_repo_field(view)],
    )


def _workflow_run(view: WorkflowRunPayload) -> DeliveryArtifact | None:
    if view.action != "completed":
        return None
    run = view.workflow_run
    colors = {"success": GREEN, "failure": RED, "cancelled": GREY}
    return DeliveryArtifact(
        title=f"Workflow: {run.name} — {run.conclusion}",
        color=colors.get(run.conclusion or "", ORANGE),
        url=run.html_url,
        fields=[
            _repo_field(view),
            ArtifactField(name="Branch", value=f"`{run.head_branch}`"),
            ArtifactField(name="Trigger", value=run.event or "unknown"),
        ],
    )


def _check_run(view: CheckRunPayload) -> DeliveryArtifact | None:
    run = view.check_run
    if view.action != "completed" or run.conclusion == "success":
        return None
    colors = {"failure": RED, "cancelled": GREY, "timed_out": ORANGE}
    branch = run.check_suite.head_branch if run.check_suite else None
    return DeliveryArtifact(
        title=f"Check: {run.name} — {run.conclusion}",
        color=colors.get(run.conclusion or "", BLURPLE),
        url=run.html_url,
        description=truncate(run.output.summary if run.output else None, 200),
        fields=[
            _repo_field(view),
            ArtifactField(name="Branch", value=f"`{branch or 'unknown'}`"),
            ArtifactField(name="App", value=(run.app.name if run.app else None) or "_unknown_"),
        ],
    )


def _deployment_status(view: DeploymentStatusPayload) -> DeliveryArtifact:
    status = view.deployment_status
    colors = {"success": GREEN, "failure": RED, "error": RED, "pending": ORANGE}
    return DeliveryArtifact(
        title=f"Deployment {status.state}: {view.deployment.environment}",
        color=colors.get(status.state or "", BLURPLE),
        url=status.target_url or view.repository_url,
        description=truncate(status.description, 200),
        author=_author(view),
        fields=[
            _repo_field(view),
            ArtifactField(name="Environment", value=f"`{view.deployment.environment}`"),
            ArtifactField(name="Ref", value=f"`{view.deployment.ref}`"),
        ],
    )


_BUILDERS: dict[EventKind, cabc.Callable[[typ.Any], DeliveryArtifact | None]] = {
    EventKind.PUSH: _push,
    EventKind.PULL_REQUEST: _pull_request,
    EventKind.ISSUES: _issues,
    EventKind.ISSUE_COMMENT: _issue_comment,
    EventKind.PULL_REQUEST_REVIEW: _review,
    EventKind.CREATE: _ref("created", GREEN),
    EventKind.DELETE: _ref("deleted", RED),
    EventKind.RELEASE: _release,
    EventKind.STAR: _star,
    EventKind.FORK: _fork,
    EventKind.WORKFLOW_RUN: _workflow_run,
    EventKind.CHECK_RUN: _check_run,
    EventKind.DEPLOYMENT_STATUS: _deployment_status,
}


class EmbedFormatter:
    """Build :class:`DeliveryArtifact` embeds for known GitHub events."""

    def build(
        self,
        event_type: str,
        payload: cabc.Mapping[str, typ.Any],
        *,
        footer: str | None = None,
    ) -> DeliveryArtifact | None:
        """Return an embed for the event, or ``None`` to skip posting.

        Unknown event types and payloads that fail validation are declined.
        """
        kind = EventKind.parse(event_type)
        builder = _BUILDERS.get(kind) if kind is not None else None
        if kind is None or builder is None:
            return None
        try:
            artifact = builder(decode_payload(kind, payload))
        except msgspec.ValidationError as exc:
            log_warning(logger, "Cannot format %s payload: %s", event_type, exc)
            return None
        if artifact is None or footer is None:
            return artifact
        return msgspec.structs.replace(artifact, footer=footer)

    def build_ping(
        self, slug: str, payload: cabc.Mapping[str, typ.Any]
    ) -> DeliveryArtifact:
        """Return the confirmation posted when GitHub pings a new webhook."""
        try:
            view = decode_payload(EventKind.PING, payload)
        except msgspec.ValidationError:
            view = PingPayload()
        hook_id = view.hook_id if isinstance(view, PingPayload) else None
        repo_url = view.repository_url or f"https://github.com/{slug}"
        return DeliveryArtifact(
            title="GitHub Ping Received",
            color=GREEN,
            description=(
                f"GitHub successfully reached the webhook for **{slug}**.\n\n"
                "The connection is live — events will now appear in this channel."
            ),
            fields=[
                ArtifactField(name="Repository", value=f"[{slug}]({repo_url})"),
                ArtifactField(name="Hook ID", value=str(hook_id or "—")),
            ],
        )
