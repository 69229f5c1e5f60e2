"""Legacy single-target routing.

Before per-repository routing existed, every webhook was posted to
``POST /webhook`` and signed with one global secret; a JSON file mapped event
types to channel ids::

    {"channels": {"push": "1234", "pull_request": "5678"}}

The file is read on every request so edits apply without a restart.
"""

from __future__ import annotations

import dataclasses
import pathlib

import msgspec

from gitrelay.common.env import env_str
from gitrelay.logging import get_logger, log_warning

logger = get_logger(__name__)


class LegacyChannelMap(msgspec.Struct, kw_only=True):
    """Decoded legacy configuration file."""

    channels: dict[str, str] = msgspec.field(default_factory=dict)


@dataclasses.dataclass(frozen=True, slots=True)
class LegacyRoutingConfig:
    """Global secret and channel map location for ``POST /webhook``."""

    secret: str | None = dataclasses.field(default=None, repr=False)
    channels_path: pathlib.Path | None = None

    @classmethod
    def from_env(cls) -> LegacyRoutingConfig:
        """Read ``GITRELAY_LEGACY_WEBHOOK_SECRET`` and ``GITRELAY_LEGACY_CHANNELS_PATH``."""
        path = env_str("GITRELAY_LEGACY_CHANNELS_PATH")
        return cls(
            secret=env_str("GITRELAY_LEGACY_WEBHOOK_SECRET"),
            channels_path=pathlib.Path(path) if path is not None else None,
        )

    @property
    def enabled(self) -> bool:
        """Return whether a channel map is configured."""
        return self.channels_path is not None

    def load_channels(self) -> dict[str, str]:
        """Read the channel map from disk.

        A missing or malformed file yields an empty map and a warning, so the
        request is ignored instead of failing.
        """
        if self.channels_path is None:
            return {}
        try:
            raw = self.channels_path.read_bytes()
        except OSError as exc:
            log_warning(
                logger, "Cannot read legacy channel map %s: %s", self.channels_path, exc
            )
            return {}
        try:
            return msgspec.json.decode(raw, type=LegacyChannelMap).channels
        except msgspec.DecodeError as exc:
            log_warning(
                logger, "Invalid legacy channel map %s: %s", self.channels_path, exc
            )
            return {}

    def channel_for(self, event_type: str) -> str | None:
        """Return the channel mapped to ``event_type`` in the current file."""
        return self.load_channels().get(event_type)
