"""Per-credential mirror of GitHub's API quota headers.

GitHub reports the remaining quota and the reset instant on every response.
:class:`RateLimiter` stores the latest pair per credential and the poller
consults it before each call. Nothing is estimated locally: while a stored
reset instant lies in the future the credential counts as limited, whatever
the remaining count says.

Usage
-----
>>> limiter = RateLimiter()
>>> state = limiter.update_from_headers(
...     "1", {"X-RateLimit-Remaining": "4999", "X-RateLimit-Reset": "0"}
... )
>>> limiter.get_remaining("1")
4999

"""

from __future__ import annotations

import dataclasses
import typing as typ

from gitrelay.common.time import from_epoch_seconds, utcnow

from .observability import PollingEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from gitrelay.common.time import Clock

REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"
DEFAULT_REMAINING = 5000
LOW_QUOTA_THRESHOLD = 100


@dataclasses.dataclass(frozen=True, slots=True)
class RateState:
    """Quota reported by the most recent response for one credential."""

    remaining: int
    reset_at: dt.datetime

    def as_dict(self) -> dict[str, int | str]:
        """Return a JSON-ready representation."""
        return {"remaining": self.remaining, "reset_at": self.reset_at.isoformat()}


def _header_int(headers: cabc.Mapping[str, str], name: str, default: int) -> int:
    raw = headers.get(name)
    if raw is None:
        raw = headers.get(name.lower())
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


class RateLimiter:
    """Track GitHub API quota per credential identifier."""

    def __init__(
        self,
        *,
        clock: Clock = utcnow,
        low_quota_threshold: int = LOW_QUOTA_THRESHOLD,
        default_remaining: int = DEFAULT_REMAINING,
        event_logger: PollingEventLogger | None = None,
    ) -> None:
        """Create an empty limiter."""
        self._clock = clock
        self._low_quota_threshold = low_quota_threshold
        self._default_remaining = default_remaining
        self._event_logger = event_logger or PollingEventLogger()
        self._states: dict[str, RateState] = {}

    def is_rate_limited(self, credential_id: str) -> bool:
        """Return whether the stored reset instant is still in the future."""
        state = self._states.get(credential_id)
        if state is None:
            return False
        return self._clock() < state.reset_at

    def update_from_headers(
        self, credential_id: str, headers: cabc.Mapping[str, str]
    ) -> RateState:
        """Record the quota reported by a response.

        Parameters
        ----------
        credential_id:
            Identifier of the credential the request was made with.
        headers:
            Response headers. Missing or unparseable values fall back to
            5000 remaining and a reset at the epoch.

        Returns
        -------
        RateState
            The state now stored for ``credential_id``.

        """
        remaining = _header_int(headers, REMAINING_HEADER, self._default_remaining)
        reset_epoch = _header_int(headers, RESET_HEADER, 0)
        try:
            reset_at = from_epoch_seconds(reset_epoch)
        except (OverflowError, OSError, ValueError):
            reset_at = from_epoch_seconds(0)
        state = RateState(remaining=remaining, reset_at=reset_at)
        self._states[credential_id] = state
        if remaining < self._low_quota_threshold:
            self._event_logger.log_quota_low(
                credential_id=credential_id,
                remaining=remaining,
                reset_at=state.reset_at,
            )
        return state

    def get_remaining(self, credential_id: str) -> int:
        """Return the last reported remaining quota, or the default."""
        state = self._states.get(credential_id)
        return state.remaining if state is not None else self._default_remaining

    def snapshot(self) -> dict[str, RateState]:
        """Return a copy of every stored state."""
        return dict(self._states)
