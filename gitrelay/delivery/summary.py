"""One-line summaries and canonical links for digest entries.

:func:`summarize` sits on the path of every processed event, so it never
raises: a payload that does not match the expected shape degrades to the bare
event type with no link.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import re
import typing as typ

from gitrelay.delivery.payloads import (
    CheckRunPayload,
    DeploymentStatusPayload,
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

SUMMARY_CLIP = 55
_NEWLINES = re.compile(r"\r?\n")


@dataclasses.dataclass(frozen=True, slots=True)
class EventSummary:
    """Human-readable line plus the most relevant GitHub URL."""

    text: str
    link: str | None = None


def clip(text: str | None, limit: int = SUMMARY_CLIP) -> str:
    """Collapse newlines and cut ``text`` to ``limit`` characters.

    Examples
    --------
    >>> clip("fix\\nthe build")
    'fix the build'
    >>> clip("x" * 60, 10)
    'xxxxxxxxx…'

    """
    if not text:
        return ""
    flat = _NEWLINES.sub(" ", text).strip()
    if len(flat) > limit:
        return flat[: limit - 1] + "…"
    return flat


def _ping(view: PingPayload) -> EventSummary:
    hook = view.hook_id if view.hook_id is not None else "?"
    return EventSummary(f"Webhook ping received (hook {hook})", view.repository_url)


def _push(view: PushPayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} pushed {len(view.commits)} commit(s) to `{view.branch}`",
        view.compare or view.repository_url,
    )


def _pull_request(view: PullRequestPayload) -> EventSummary:
    pr = view.pull_request
    return EventSummary(
        f"{view.actor} {view.action} PR #{pr.number}: {clip(pr.title)}",
        pr.html_url,
    )


def _issues(view: IssuesPayload) -> EventSummary:
    issue = view.issue
    return EventSummary(
        f"{view.actor} {view.action} issue #{issue.number}: {clip(issue.title)}",
        issue.html_url,
    )


def _issue_comment(view: IssueCommentPayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} commented on #{view.issue.number}: {clip(view.comment.body)}",
        view.comment.html_url,
    )


def _review(view: PullRequestReviewPayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} reviewed PR #{view.pull_request.number} ({view.review.state})",
        view.review.html_url,
    )


def _release(view: ReleasePayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} {view.action} release {view.release.tag_name}",
        view.release.html_url,
    )


def _star(view: StarPayload) -> EventSummary:
    verb = "starred" if view.action == "created" else "unstarred"
    total = view.repository.stargazers_count if view.repository is not None else None
    return EventSummary(
        f"{view.actor} {verb} the repo ({total} total)", view.repository_url
    )


def _fork(view: ForkPayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} forked → {view.forkee.full_name}",
        view.forkee.html_url or view.repository_url,
    )


def _create(view: RefPayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} created {view.ref_type} `{view.ref}`", view.repository_url
    )


def _delete(view: RefPayload) -> EventSummary:
    return EventSummary(
        f"{view.actor} deleted {view.ref_type} `{view.ref}`", view.repository_url
    )


def _workflow_run(view: WorkflowRunPayload) -> EventSummary:
    run = view.workflow_run
    return EventSummary(
        f'Workflow "{run.name}" {run.conclusion or view.action} '
        f"on `{run.head_branch}`",
        run.html_url,
    )


def _check_run(view: CheckRunPayload) -> EventSummary:
    run = view.check_run
    return EventSummary(
        f'Check "{run.name}" → {run.conclusion or view.action}', run.html_url
    )


def _deployment_status(view: DeploymentStatusPayload) -> EventSummary:
    status = view.deployment_status
    return EventSummary(
        f"Deploy to `{view.deployment.environment}` → {status.state}",
        status.target_url or view.repository_url,
    )


_SUMMARIZERS: dict[EventKind, cabc.Callable[[typ.Any], EventSummary]] = {
    EventKind.PING: _ping,
    EventKind.PUSH: _push,
    EventKind.PULL_REQUEST: _pull_request,
    EventKind.ISSUES: _issues,
    EventKind.ISSUE_COMMENT: _issue_comment,
    EventKind.PULL_REQUEST_REVIEW: _review,
    EventKind.RELEASE: _release,
    EventKind.STAR: _star,
    EventKind.FORK: _fork,
    EventKind.CREATE: _create,
    EventKind.DELETE: _delete,
    EventKind.WORKFLOW_RUN: _workflow_run,
    EventKind.CHECK_RUN: _check_run,
    EventKind.DEPLOYMENT_STATUS: _deployment_status,
}


def _summarize_unknown(
    event_type: str, payload: typ.Mapping[str, typ.Any]
) -> EventSummary:
    action = payload.get("action")
    text = f"{event_type} ({action})" if isinstance(action, str) and action else event_type
    repository = payload.get("repository")
    link = repository.get("html_url") if isinstance(repository, dict) else None
    return EventSummary(text, link if isinstance(link, str) else None)


def summarize(
    event_type: str, payload: typ.Mapping[str, typ.Any] | None
) -> EventSummary:
    """Summarise one event for the digest.

    Parameters
    ----------
    event_type:
        Value of the ``X-GitHub-Event`` header.
    payload:
        Decoded JSON body.

    Returns
    -------
    EventSummary
        The summary line and link, or ``EventSummary(event_type)`` when the
        payload cannot be read.

    """
    try:
        data = payload if payload is not None else {}
        kind = EventKind.parse(event_type)
        if kind is None:
            return _summarize_unknown(event_type, data)
        return _SUMMARIZERS[kind](decode_payload(kind, data))
    except Exception:  # noqa: BLE001 - summaries degrade instead of failing
        return EventSummary(event_type)
