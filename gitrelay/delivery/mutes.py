"""Time-bounded suppression of event types.

A muted event type is still received, verified and recorded in the digest;
it is only withheld from the chat channel. Mutes live in process memory and
expire lazily: every read treats an entry past its expiry as absent and
evicts it, so no background timer is needed.

Usage
-----
>>> import datetime as dt
>>> registry = MuteRegistry()
>>> _ = registry.mute("push", dt.timedelta(minutes=30), muted_by="42")
>>> registry.is_muted("push")
True

"""

from __future__ import annotations

import dataclasses
import typing as typ

from gitrelay.common.time import utcnow

if typ.TYPE_CHECKING:
    import datetime as dt

    from gitrelay.common.time import Clock


@dataclasses.dataclass(frozen=True, slots=True)
class MuteEntry:
    """An active mute for one event type."""

    event_type: str
    expires_at: dt.datetime
    muted_by: str
    reason: str = ""

    def is_expired(self, now: dt.datetime) -> bool:
        """Return whether the mute has lapsed at ``now``."""
        return now >= self.expires_at


class MuteRegistry:
    """In-memory mute table keyed by event type.

    Operations never await, so under a single event loop they are atomic
    with respect to each other.
    """

    def __init__(self, *, clock: Clock = utcnow) -> None:
        """Create an empty registry reading time from ``clock``."""
        self._clock = clock
        self._entries: dict[str, MuteEntry] = {}

    def mute(
        self,
        event_type: str,
        duration: dt.timedelta,
        muted_by: str,
        reason: str = "",
    ) -> MuteEntry:
        """Mute ``event_type`` for ``duration``, replacing any existing mute.

        Raises
        ------
        ValueError
            If ``duration`` is not positive.

        """
        if duration.total_seconds() <= 0:
            msg = f"mute duration must be positive, got {duration}"
            raise ValueError(msg)

        entry = MuteEntry(
            event_type=event_type,
            expires_at=self._clock() + duration,
            muted_by=muted_by,
            reason=reason or "",
        )
        self._entries.pop(event_type, None)
        self._entries[event_type] = entry
        return entry

    def unmute(self, event_type: str) -> bool:
        """Lift a mute early; return whether one was present."""
        return self._entries.pop(event_type, None) is not None

    def get(self, event_type: str) -> MuteEntry | None:
        """Return the active mute for ``event_type``, evicting it if expired."""
        entry = self._entries.get(event_type)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[event_type]
            return None
        return entry

    def is_muted(self, event_type: str) -> bool:
        """Return whether ``event_type`` is currently muted."""
        return self.get(event_type) is not None

    def list_active(self) -> list[MuteEntry]:
        """Return unexpired mutes in the order they were installed.

        Expired entries found during the sweep are evicted.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return list(self._entries.values())
