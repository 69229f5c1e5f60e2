"""Bounded live feed of recently processed events.

Every event the router or poller records ends up here, whatever its outcome,
so operators can see what arrived and why it was or was not posted. The
buffer keeps the last :data:`DIGEST_CAPACITY` entries in arrival order and is
not persisted.
"""

from __future__ import annotations

import collections
import collections.abc as cabc
import dataclasses
import typing as typ

from gitrelay.common.time import utcnow
from gitrelay.delivery.summary import summarize

if typ.TYPE_CHECKING:
    import datetime as dt

    from gitrelay.common.time import Clock
    from gitrelay.delivery.outcomes import Outcome

DIGEST_CAPACITY = 50


@dataclasses.dataclass(frozen=True, slots=True)
class DigestEntry:
    """Immutable record of one processed event."""

    event_type: str
    summary: str
    url: str | None
    actor: str | None
    repo: str | None
    timestamp: dt.datetime
    outcome: Outcome

    def as_dict(self) -> dict[str, str | None]:
        """Return a JSON-ready representation."""
        return {
            "event_type": self.event_type,
            "summary": self.summary,
            "url": self.url,
            "actor": self.actor,
            "repo": self.repo,
            "timestamp": self.timestamp.isoformat(),
            "outcome": str(self.outcome),
        }


def _nested_str(
    payload: typ.Mapping[str, typ.Any] | None, parent: str, key: str
) -> str | None:
    if not isinstance(payload, cabc.Mapping):
        return None
    container = payload.get(parent)
    if not isinstance(container, cabc.Mapping):
        return None
    value = container.get(key)
    return value if isinstance(value, str) and value else None


class DigestBuffer:
    """Fixed-capacity FIFO ring of :class:`DigestEntry` values."""

    def __init__(
        self, *, capacity: int = DIGEST_CAPACITY, clock: Clock = utcnow
    ) -> None:
        """Create an empty buffer holding at most ``capacity`` entries."""
        if capacity < 1:
            msg = f"digest capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._clock = clock
        self._ring: collections.deque[DigestEntry] = collections.deque(
            maxlen=capacity
        )

    @property
    def capacity(self) -> int:
        """Return the maximum number of retained entries."""
        return self._capacity

    def push(
        self,
        event_type: str,
        payload: typ.Mapping[str, typ.Any] | None,
        outcome: Outcome,
        *,
        repo: str | None = None,
    ) -> DigestEntry:
        """Summarise an event and append it, evicting the oldest when full.

        Parameters
        ----------
        event_type:
            GitHub event name.
        payload:
            Decoded event body; only read, never retained.
        outcome:
            How the event was handled.
        repo:
            ``owner/name`` of the routing entry; defaults to the payload's
            ``repository.full_name``.

        """
        summary = summarize(event_type, payload)
        entry = DigestEntry(
            event_type=event_type,
            summary=summary.text,
            url=summary.link,
            actor=_nested_str(payload, "sender", "login"),
            repo=repo or _nested_str(payload, "repository", "full_name"),
            timestamp=self._clock(),
            outcome=outcome,
        )
        self._ring.append(entry)
        return entry

    def recent(self, limit: int = 10) -> list[DigestEntry]:
        """Return up to ``limit`` newest entries, oldest first."""
        count = min(limit, self._capacity, len(self._ring))
        if count <= 0:
            return []
        return list(self._ring)[-count:]

    def size(self) -> int:
        """Return how many entries are currently held."""
        return len(self._ring)

    def __len__(self) -> int:
        """Return how many entries are currently held."""
        return len(self._ring)
