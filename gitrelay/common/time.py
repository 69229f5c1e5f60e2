"""Clock helpers shared by the delivery and polling layers."""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt

type Clock = cabc.Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    """Return the current instant as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def from_epoch_seconds(seconds: int) -> dt.datetime:
    """Convert POSIX epoch seconds into an aware UTC datetime."""
    return dt.datetime.fromtimestamp(seconds, tz=dt.UTC)
