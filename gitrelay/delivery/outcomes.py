"""Outcome tags recorded for every processed event, plus running counters."""

from __future__ import annotations

import dataclasses
import enum


class Outcome(enum.StrEnum):
    """Terminal state of one inbound or polled event."""

    SENT = "sent"
    DROPPED = "dropped"
    IGNORED = "ignored"
    MUTED = "muted"


@dataclasses.dataclass(slots=True)
class DeliveryStats:
    """Cumulative counters exposed on ``/health``.

    ``received`` counts every recorded event; the other fields partition it
    by outcome.
    """

    received: int = 0
    sent: int = 0
    dropped: int = 0
    ignored: int = 0
    muted: int = 0

    def record(self, outcome: Outcome) -> None:
        """Count one event with ``outcome``."""
        self.received += 1
        match outcome:
            case Outcome.SENT:
                self.sent += 1
            case Outcome.DROPPED:
                self.dropped += 1
            case Outcome.MUTED:
                self.muted += 1
            case Outcome.IGNORED:
                self.ignored += 1

    def as_dict(self) -> dict[str, int]:
        """Return the counters as a JSON-ready mapping."""
        return dataclasses.asdict(self)
