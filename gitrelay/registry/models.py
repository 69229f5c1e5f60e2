"""Transient views of routing entries and API credentials."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from gitrelay.common.slug import repo_slug

if typ.TYPE_CHECKING:
    import datetime as dt


class DeliveryMode(enum.StrEnum):
    """How events for a repository reach gitrelay."""

    WEBHOOK = "webhook"
    POLLING = "polling"


@dataclasses.dataclass(slots=True, frozen=True)
class RoutingEntry:
    """Snapshot of one monitored repository.

    The store owns the row; callers hold a copy for the duration of one
    operation and re-read it rather than assume it is current.
    """

    id: int
    owner: str
    name: str
    channel_id: str | None = None
    webhook_secret: str | None = None
    is_active: bool = True
    delivery_mode: DeliveryMode = DeliveryMode.WEBHOOK
    credential_id: int | None = None
    default_branch: str = "main"
    last_commit_sha: str | None = None
    last_polled_at: dt.datetime | None = None
    error_message: str | None = None
    created_by: str | None = None

    @property
    def slug(self) -> str:
        """Return ``owner/name``."""
        return repo_slug(self.owner, self.name)

    @property
    def is_pollable(self) -> bool:
        """Return whether the scheduler should poll this repository."""
        return self.is_active and self.delivery_mode is DeliveryMode.POLLING


@dataclasses.dataclass(slots=True, frozen=True)
class Credential:
    """GitHub API token used for polling."""

    id: int
    token: str = dataclasses.field(repr=False)
    description: str | None = None
    is_default: bool = False

    @property
    def key(self) -> str:
        """Return the identifier rate limits are tracked under."""
        return str(self.id)
