"""Route inbound and polled GitHub events to chat channels.

:class:`WebhookRouter` owns the per-event pipeline that runs after the HTTP
response has gone out: resolve the routing entry, verify the signature,
apply activity and mute rules, format, dispatch, then record the outcome in
the digest and the counters. Every path ends in exactly one
:class:`~gitrelay.delivery.outcomes.Outcome`; nothing escapes
:meth:`WebhookRouter.handle`.

Usage
-----
Build a router from its collaborators and hand it accepted deliveries::

    router = WebhookRouter(
        RouterDependencies(
            store=registry,
            formatter=EmbedFormatter(),
            dispatcher=DiscordChannelDispatcher(discord_config),
        )
    )
    outcome = await router.handle(
        InboundDelivery(event_type="push", raw_body=body, payload=payload)
    )

"""

from __future__ import annotations

import dataclasses
import typing as typ

from gitrelay.delivery.digest import DigestBuffer
from gitrelay.delivery.mutes import MuteRegistry
from gitrelay.delivery.observability import DeliveryEventLogger
from gitrelay.delivery.outcomes import DeliveryStats, Outcome
from gitrelay.delivery.payloads import EventKind
from gitrelay.delivery.signature import verify_signature

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitrelay.delivery.dispatcher import ChannelDispatcher
    from gitrelay.delivery.formatter import ArtifactFormatter
    from gitrelay.delivery.legacy import LegacyRoutingConfig
    from gitrelay.registry import RoutingEntry, RoutingStore


@dataclasses.dataclass(frozen=True, slots=True)
class InboundDelivery:
    """A structurally valid webhook request, captured before processing.

    ``raw_body`` holds the exact bytes GitHub signed. ``repo_id`` and
    ``slug`` carry the routing hint taken from the request path, if any.
    """

    event_type: str
    raw_body: bytes
    payload: cabc.Mapping[str, typ.Any]
    signature: str | None = None
    repo_id: int | None = None
    slug: str | None = None


@dataclasses.dataclass(slots=True)
class RouterDependencies:
    """Collaborators and process-wide state used by :class:`WebhookRouter`.

    Attributes
    ----------
    store
        Routing registry; ``None`` leaves only legacy routing available.
    formatter
        Builds delivery artifacts, or declines with ``None``.
    dispatcher
        Posts artifacts to channels.
    mutes, digest, stats
        Volatile process state shared with the HTTP surface and the poller.
    legacy
        Global secret and channel map for requests that match no entry.
    event_logger
        Structured logging sink.

    """

    store: RoutingStore | None
    formatter: ArtifactFormatter
    dispatcher: ChannelDispatcher
    mutes: MuteRegistry = dataclasses.field(default_factory=MuteRegistry)
    digest: DigestBuffer = dataclasses.field(default_factory=DigestBuffer)
    stats: DeliveryStats = dataclasses.field(default_factory=DeliveryStats)
    legacy: LegacyRoutingConfig | None = None
    event_logger: DeliveryEventLogger = dataclasses.field(
        default_factory=DeliveryEventLogger
    )


def _payload_full_name(payload: cabc.Mapping[str, typ.Any]) -> str | None:
    repository = payload.get("repository")
    if not isinstance(repository, dict):
        return None
    full_name = repository.get("full_name")
    return full_name if isinstance(full_name, str) and full_name else None


class WebhookRouter:
    """Per-event routing pipeline shared by webhooks and the poller."""

    def __init__(self, dependencies: RouterDependencies) -> None:
        """Create a router over ``dependencies``."""
        self._deps = dependencies

    @property
    def mutes(self) -> MuteRegistry:
        """Return the mute registry consulted before every dispatch."""
        return self._deps.mutes

    @property
    def digest(self) -> DigestBuffer:
        """Return the digest every outcome is recorded in."""
        return self._deps.digest

    @property
    def stats(self) -> DeliveryStats:
        """Return the cumulative outcome counters."""
        return self._deps.stats

    async def resolve(self, delivery: InboundDelivery) -> RoutingEntry | None:
        """Find the routing entry a delivery targets.

        Tried in order: the numeric id from the path, the ``owner/name``
        from the path, then ``repository.full_name`` from the payload. The
        first hit wins; ``None`` means legacy routing applies.
        """
        store = self._deps.store
        if store is None:
            return None
        if delivery.repo_id is not None:
            entry = await store.get_by_id(delivery.repo_id)
            if entry is not None:
                return entry
        if delivery.slug is not None:
            entry = await store.get_by_slug(delivery.slug)
            if entry is not None:
                return entry
        full_name = _payload_full_name(delivery.payload)
        if full_name is not None:
            return await store.get_by_slug(full_name)
        return None

    async def handle(self, delivery: InboundDelivery) -> Outcome:
        """Process one accepted webhook and return its outcome.

        Unexpected failures are logged and recorded as ``dropped``.
        """
        try:
            entry = await self.resolve(delivery)
            if entry is None:
                return await self._handle_legacy(delivery)
            return await self._handle_entry(entry, delivery)
        except Exception as exc:  # noqa: BLE001 - every event must end in an outcome
            self._deps.event_logger.log_handler_failed(
                event_type=delivery.event_type, error=exc
            )
            slug = delivery.slug or _payload_full_name(delivery.payload)
            return self._record(delivery.event_type, delivery.payload, Outcome.DROPPED, slug)

    async def deliver_polled(
        self,
        entry: RoutingEntry,
        event_type: str,
        payload: cabc.Mapping[str, typ.Any],
    ) -> Outcome:
        """Route a polling-synthesised event.

        Skips signature verification and the ping shortcut; every other rule
        applies as for webhooks.
        """
        if not entry.is_active:
            return self._record(event_type, payload, Outcome.IGNORED, entry.slug)
        return await self._deliver(
            event_type,
            payload,
            slug=entry.slug,
            channel_id=entry.channel_id,
            footer=f"Repository: {entry.slug} (polled)",
        )

    async def _handle_entry(
        self, entry: RoutingEntry, delivery: InboundDelivery
    ) -> Outcome:
        event_type = delivery.event_type
        if not entry.is_active:
            return self._record(event_type, delivery.payload, Outcome.IGNORED, entry.slug)

        if not self._signature_ok(delivery, entry.webhook_secret, entry.slug):
            return self._record(event_type, delivery.payload, Outcome.IGNORED, entry.slug)

        if event_type == EventKind.PING:
            await self._confirm_ping(entry, delivery.payload)
            return self._record(event_type, delivery.payload, Outcome.SENT, entry.slug)

        return await self._deliver(
            event_type,
            delivery.payload,
            slug=entry.slug,
            channel_id=entry.channel_id,
            footer=f"Repository: {entry.slug}",
        )

    async def _handle_legacy(self, delivery: InboundDelivery) -> Outcome:
        event_type = delivery.event_type
        legacy = self._deps.legacy
        if legacy is None or not legacy.enabled:
            self._deps.event_logger.log_routing_miss(
                event_type=event_type, reason="no routing entry and no legacy map"
            )
            return self._record(event_type, delivery.payload, Outcome.IGNORED, None)

        if not self._signature_ok(delivery, legacy.secret, None):
            return self._record(event_type, delivery.payload, Outcome.IGNORED, None)

        channel_id = legacy.channel_for(event_type)
        if channel_id is None:
            self._deps.event_logger.log_routing_miss(
                event_type=event_type, reason="event type not mapped"
            )
            return self._record(event_type, delivery.payload, Outcome.IGNORED, None)

        return await self._deliver(
            event_type, delivery.payload, slug=None, channel_id=channel_id, footer=None
        )

    def _signature_ok(
        self, delivery: InboundDelivery, secret: str | None, slug: str | None
    ) -> bool:
        logger = self._deps.event_logger
        if not secret:
            logger.log_unsigned_accepted(event_type=delivery.event_type, repo_slug=slug)
            return True
        if verify_signature(delivery.raw_body, delivery.signature, secret):
            return True
        logger.log_signature_rejected(event_type=delivery.event_type, repo_slug=slug)
        return False

    async def _confirm_ping(
        self, entry: RoutingEntry, payload: cabc.Mapping[str, typ.Any]
    ) -> None:
        if entry.channel_id is None:
            return
        artifact = self._deps.formatter.build_ping(entry.slug, payload)
        try:
            await self._deps.dispatcher.dispatch(entry.channel_id, artifact)
        except Exception as exc:  # noqa: BLE001 - ping confirmation is best effort
            self._deps.event_logger.log_dispatch_failed(
                event_type=EventKind.PING,
                repo_slug=entry.slug,
                channel_id=entry.channel_id,
                error=exc,
            )

    async def _deliver(
        self,
        event_type: str,
        payload: cabc.Mapping[str, typ.Any],
        *,
        slug: str | None,
        channel_id: str | None,
        footer: str | None,
    ) -> Outcome:
        if self._deps.mutes.is_muted(event_type):
            return self._record(event_type, payload, Outcome.MUTED, slug)

        artifact = self._deps.formatter.build(event_type, payload, footer=footer)
        if artifact is None:
            return self._record(event_type, payload, Outcome.IGNORED, slug)

        if not channel_id:
            return self._record(event_type, payload, Outcome.DROPPED, slug)

        try:
            await self._deps.dispatcher.dispatch(channel_id, artifact)
        except Exception as exc:  # noqa: BLE001 - dispatch failures are recorded, not retried
            self._deps.event_logger.log_dispatch_failed(
                event_type=event_type, repo_slug=slug, channel_id=channel_id, error=exc
            )
            return self._record(event_type, payload, Outcome.DROPPED, slug)
        return self._record(event_type, payload, Outcome.SENT, slug)

    def _record(
        self,
        event_type: str,
        payload: cabc.Mapping[str, typ.Any],
        outcome: Outcome,
        slug: str | None,
    ) -> Outcome:
        self._deps.digest.push(event_type, payload, outcome, repo=slug)
        self._deps.stats.record(outcome)
        self._deps.event_logger.log_outcome(
            event_type=event_type, repo_slug=slug, outcome=outcome
        )
        return outcome
