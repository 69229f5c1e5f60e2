"""Polling fallback for repositories that cannot deliver webhooks.

:class:`PollingScheduler` wakes on a fixed interval and walks every active
repository in polling mode, one at a time. For each it compares the head
commit with the stored checkpoint and turns new commits into synthetic
``push`` events routed through
:meth:`gitrelay.delivery.router.WebhookRouter.deliver_polled`.

Per repository the checkpoint moves through three states: no checkpoint
(the first successful poll only records a baseline), tracking, and error
(the last poll failed; ``error_message`` is set and the checkpoint is left
alone until a later poll succeeds).

Usage
-----
Run the scheduler alongside the HTTP app::

    scheduler = PollingScheduler(
        registry, GitHubRestClient(config, limiter), router, rate_limiter=limiter
    )
    scheduler.start()
    ...
    await scheduler.stop()

"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import enum
import typing as typ

from gitrelay.common.env import env_positive_float
from gitrelay.common.time import utcnow
from gitrelay.delivery.payloads import EventKind
from gitrelay.registry.errors import PollingNotEnabledError, RepositoryNotFoundError
from gitrelay.registry.models import DeliveryMode

from .observability import PollingEventLogger

if typ.TYPE_CHECKING:
    from gitrelay.common.time import Clock
    from gitrelay.delivery.router import WebhookRouter
    from gitrelay.registry import Credential, RoutingEntry, RoutingStore

    from .client import CommitSource
    from .models import CommitSummary
    from .ratelimit import RateLimiter

DEFAULT_INTERVAL_SECONDS = 60.0
MAX_EVENTS_PER_POLL = 5


@dataclasses.dataclass(frozen=True, slots=True)
class PollingConfig:
    """Scheduler settings."""

    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    max_events_per_poll: int = MAX_EVENTS_PER_POLL

    @classmethod
    def from_env(cls) -> PollingConfig:
        """Read ``GITRELAY_POLL_INTERVAL_SECONDS``."""
        return cls(
            interval_seconds=env_positive_float(
                "GITRELAY_POLL_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS
            )
        )


class PollStatus(enum.StrEnum):
    """What a single repository poll did."""

    SKIPPED = "skipped"
    EMPTY = "empty"
    BASELINE = "baseline"
    UNCHANGED = "unchanged"
    ADVANCED = "advanced"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True, slots=True)
class PollResult:
    """Outcome of polling one repository."""

    repo_slug: str
    status: PollStatus
    checkpoint: str | None = None
    synthesized: int = 0
    skipped_commits: int = 0
    reason: str | None = None

    def as_dict(self) -> dict[str, typ.Any]:
        """Return a JSON-ready representation."""
        return dataclasses.asdict(self)


def build_push_payload(
    entry: RoutingEntry, commit: CommitSummary, *, before: str, after: str
) -> dict[str, typ.Any]:
    """Shape one polled commit like a webhook ``push`` payload."""
    html_url = f"https://github.com/{entry.slug}"
    return {
        "repository": {
            "full_name": entry.slug,
            "html_url": html_url,
            "owner": {"login": entry.owner},
            "name": entry.name,
        },
        "sender": {
            "login": commit.author_login,
            "html_url": commit.author.html_url if commit.author is not None else None,
        },
        "commits": [commit.as_push_commit()],
        "ref": f"refs/heads/{entry.default_branch}",
        "compare": f"{html_url}/compare/{before}...{after}",
    }


class PollingScheduler:
    """Interval-driven poller over every pollable routing entry."""

    def __init__(  # noqa: PLR0913
        self,
        store: RoutingStore,
        source: CommitSource,
        router: WebhookRouter,
        *,
        rate_limiter: RateLimiter,
        config: PollingConfig | None = None,
        clock: Clock = utcnow,
        event_logger: PollingEventLogger | None = None,
    ) -> None:
        """Create a stopped scheduler."""
        cfg = config or PollingConfig()
        self._store = store
        self._source = source
        self._router = router
        self._rate_limiter = rate_limiter
        self._interval = cfg.interval_seconds
        self._max_events = cfg.max_events_per_poll
        self._clock = clock
        self._event_logger = event_logger or PollingEventLogger()
        self._task: asyncio.Task[None] | None = None
        self._locks: dict[int, asyncio.Lock] = {}

    @property
    def running(self) -> bool:
        """Return whether the interval loop is active."""
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        """Return the delay between ticks."""
        return self._interval

    def start(self) -> None:
        """Start the loop on the running event loop; a no-op when running.

        The first tick runs immediately.
        """
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="gitrelay-poller")
        self._event_logger.log_scheduler_started(interval_seconds=self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait until it has finished."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._event_logger.log_scheduler_stopped()

    async def set_interval(self, seconds: float) -> None:
        """Change the tick interval, restarting the loop if it is running.

        Raises
        ------
        ValueError
            If ``seconds`` is not positive.

        """
        if seconds <= 0:
            msg = f"poll interval must be positive, got {seconds}"
            raise ValueError(msg)
        was_running = self.running
        if was_running:
            await self.stop()
        self._interval = float(seconds)
        if was_running:
            self.start()

    async def tick(self) -> list[PollResult]:
        """Poll every pollable repository once, sequentially."""
        try:
            entries = await self._store.list_pollable()
        except Exception as exc:  # noqa: BLE001 - the loop must survive store outages
            self._event_logger.log_tick_failed(exc)
            return []
        return [await self.poll_repository(entry) for entry in entries]

    async def poll_now(self, slug: str) -> PollResult:
        """Poll one repository immediately.

        Raises
        ------
        RepositoryNotFoundError
            If no routing entry matches ``slug``.
        PollingNotEnabledError
            If the entry is not in polling mode.

        """
        entry = await self._store.get_by_slug(slug)
        if entry is None:
            raise RepositoryNotFoundError(slug)
        if entry.delivery_mode is not DeliveryMode.POLLING:
            raise PollingNotEnabledError(entry.slug)
        return await self.poll_repository(entry)

    async def poll_repository(self, entry: RoutingEntry) -> PollResult:
        """Poll one repository; failures are recorded, never raised."""
        async with self._locks.setdefault(entry.id, asyncio.Lock()):
            current = entry
            try:
                # Re-read under the lock: a concurrent poll may have moved the checkpoint.
                reread = await self._store.get_by_id(entry.id)
                if reread is None:
                    return PollResult(entry.slug, PollStatus.SKIPPED, reason="removed")
                current = reread
                return await self._poll(current)
            except Exception as exc:  # noqa: BLE001 - one repository must not stop the tick
                return await self._record_failure(current, exc)

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as exc:  # noqa: BLE001 - the loop outlives any one tick
                self._event_logger.log_tick_failed(exc)
            await asyncio.sleep(self._interval)

    async def _resolve_credential(self, entry: RoutingEntry) -> Credential | None:
        if entry.credential_id is not None:
            credential = await self._store.get_credential(entry.credential_id)
            if credential is not None:
                return credential
        return await self._store.get_default_credential()

    async def _poll(self, entry: RoutingEntry) -> PollResult:
        credential = await self._resolve_credential(entry)
        if credential is None:
            return self._skip(entry, "no credential")
        if self._rate_limiter.is_rate_limited(credential.key):
            return self._skip(entry, "rate limited")

        latest = await self._source.fetch_latest_commit(
            entry.owner, entry.name, credential, branch=entry.default_branch
        )
        if latest is None:
            return PollResult(entry.slug, PollStatus.EMPTY, checkpoint=entry.last_commit_sha)

        checkpoint = entry.last_commit_sha
        if checkpoint is None:
            await self._store.update(
                entry.id,
                {
                    "last_commit_sha": latest.sha,
                    "last_polled_at": self._clock(),
                    "error_message": None,
                },
            )
            self._event_logger.log_baseline_adopted(repo_slug=entry.slug, sha=latest.sha)
            return PollResult(entry.slug, PollStatus.BASELINE, checkpoint=latest.sha)

        if latest.sha == checkpoint:
            await self._store.update(entry.id, {"last_polled_at": self._clock()})
            return PollResult(entry.slug, PollStatus.UNCHANGED, checkpoint=checkpoint)

        return await self._advance(entry, credential, checkpoint, latest.sha)

    async def _advance(
        self,
        entry: RoutingEntry,
        credential: Credential,
        checkpoint: str,
        latest_sha: str,
    ) -> PollResult:
        delta = await self._source.fetch_commits_since(
            entry.owner, entry.name, credential, checkpoint, branch=entry.default_branch
        )
        selected = delta.commits[: self._max_events]
        skipped = len(delta.commits) - len(selected)
        if not delta.checkpoint_found or skipped:
            self._event_logger.log_gap_detected(
                repo_slug=entry.slug,
                checkpoint=checkpoint,
                window=delta.window_size,
                skipped=skipped,
            )

        newest = delta.commits[0].sha if delta.commits else latest_sha
        for commit in reversed(selected):
            payload = build_push_payload(entry, commit, before=checkpoint, after=newest)
            await self._router.deliver_polled(entry, EventKind.PUSH, payload)

        await self._store.update(
            entry.id,
            {
                "last_commit_sha": newest,
                "last_polled_at": self._clock(),
                "error_message": None,
            },
        )
        self._event_logger.log_commits_detected(
            repo_slug=entry.slug,
            new_commits=len(delta.commits),
            synthesized=len(selected),
        )
        return PollResult(
            entry.slug,
            PollStatus.ADVANCED,
            checkpoint=newest,
            synthesized=len(selected),
            skipped_commits=skipped,
        )

    def _skip(self, entry: RoutingEntry, reason: str) -> PollResult:
        self._event_logger.log_poll_skipped(repo_slug=entry.slug, reason=reason)
        return PollResult(
            entry.slug, PollStatus.SKIPPED, checkpoint=entry.last_commit_sha, reason=reason
        )

    async def _record_failure(self, entry: RoutingEntry, exc: Exception) -> PollResult:
        self._event_logger.log_poll_failed(repo_slug=entry.slug, error=exc)
        try:
            await self._store.update(entry.id, {"error_message": str(exc)})
        except Exception as store_exc:  # noqa: BLE001 - keep the tick going
            self._event_logger.log_poll_failed(repo_slug=entry.slug, error=store_exc)
        return PollResult(
            entry.slug,
            PollStatus.FAILED,
            checkpoint=entry.last_commit_sha,
            reason=str(exc),
        )
