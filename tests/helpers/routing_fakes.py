"""In-memory collaborators for router and poller tests."""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

from gitrelay.delivery.dispatcher import DeliveryError
from gitrelay.github.models import (
    CommitDelta,
    CommitSummary,
    GitAuthor,
    GitCommit,
    RestUser,
)
from gitrelay.registry import Credential, DeliveryMode, RoutingEntry

if typ.TYPE_CHECKING:
    import collections.abc as cabc

EPOCH = dt.datetime(2026, 1, 1, 12, 0, tzinfo=dt.UTC)


class MutableClock:
    """Clock whose current instant tests advance by hand."""

    def __init__(self, start: dt.datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += dt.timedelta(**delta)


def make_entry(**overrides: typ.Any) -> RoutingEntry:
    """Return a routing entry for ``octo/reef`` with ``overrides`` applied."""
    fields: dict[str, typ.Any] = {
        "id": 1,
        "owner": "octo",
        "name": "reef",
        "channel_id": "chan-1",
    }
    fields.update(overrides)
    return RoutingEntry(**fields)


def make_polling_entry(**overrides: typ.Any) -> RoutingEntry:
    """Return a polling-mode entry with a linked credential."""
    fields: dict[str, typ.Any] = {
        "delivery_mode": DeliveryMode.POLLING,
        "credential_id": 7,
    }
    fields.update(overrides)
    return make_entry(**fields)


def make_commit(sha: str, message: str = "Update docs") -> CommitSummary:
    """Return a REST commit listing item."""
    return CommitSummary(
        sha=sha,
        html_url=f"https://github.com/octo/reef/commit/{sha}",
        commit=GitCommit(
            message=message, author=GitAuthor(name="Ada", email="ada@example.com")
        ),
        author=RestUser(login="ada", html_url="https://github.com/ada"),
    )


class InMemoryRoutingStore:
    """Dict-backed implementation of ``RoutingStore``."""

    def __init__(
        self,
        entries: cabc.Iterable[RoutingEntry] = (),
        credentials: cabc.Iterable[Credential] = (),
    ) -> None:
        self.entries = {entry.id: entry for entry in entries}
        self.credentials = {cred.id: cred for cred in credentials}
        self.updates: list[tuple[int, dict[str, object]]] = []

    async def get_by_id(self, entry_id: int) -> RoutingEntry | None:
        return self.entries.get(entry_id)

    async def get_by_slug(self, slug: str) -> RoutingEntry | None:
        return next((e for e in self.entries.values() if e.slug == slug), None)

    async def list_all(self) -> list[RoutingEntry]:
        return list(self.entries.values())

    async def list_active(self) -> list[RoutingEntry]:
        return [e for e in self.entries.values() if e.is_active]

    async def list_pollable(self) -> list[RoutingEntry]:
        return [e for e in self.entries.values() if e.is_pollable]

    async def update(self, entry_id: int, changes: cabc.Mapping[str, object]) -> None:
        self.updates.append((entry_id, dict(changes)))
        self.entries[entry_id] = dataclasses.replace(
            self.entries[entry_id],
            **changes,  # type: ignore[arg-type]
        )

    async def get_credential(self, credential_id: int) -> Credential | None:
        return self.credentials.get(credential_id)

    async def get_default_credential(self) -> Credential | None:
        defaults = [c for c in self.credentials.values() if c.is_default]
        return max(defaults, key=lambda c: c.id) if defaults else None


class RecordingDispatcher:
    """Dispatcher that records calls and optionally fails."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, object]] = []

    async def dispatch(self, channel_id: str, artifact: object) -> None:
        self.calls.append((channel_id, artifact))
        if self.fail:
            msg = f"channel {channel_id} unavailable"
            raise DeliveryError(msg)


class FakeCommitSource:
    """Commit source serving a fixed newest-first history."""

    def __init__(
        self,
        history: cabc.Sequence[str] = (),
        *,
        window: int = 30,
        error: Exception | None = None,
    ) -> None:
        self.history = list(history)
        self.window = window
        self.error = error
        self.latest_calls = 0
        self.since_calls: list[str] = []

    async def fetch_latest_commit(
        self,
        owner: str,
        name: str,
        credential: Credential,
        *,
        branch: str | None = None,
    ) -> CommitSummary | None:
        self.latest_calls += 1
        if self.error is not None:
            raise self.error
        return make_commit(self.history[0]) if self.history else None

    async def fetch_commits_since(
        self,
        owner: str,
        name: str,
        credential: Credential,
        since_sha: str,
        *,
        branch: str | None = None,
    ) -> CommitDelta:
        self.since_calls.append(since_sha)
        window = [make_commit(sha) for sha in self.history[: self.window]]
        shas = [commit.sha for commit in window]
        if since_sha in shas:
            return CommitDelta(
                commits=window[: shas.index(since_sha)],
                checkpoint_found=True,
                window_size=len(window),
            )
        return CommitDelta(commits=window, checkpoint_found=False, window_size=len(window))
