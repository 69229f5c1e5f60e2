"""Webhook routing, muting, digest and dispatch primitives."""

from __future__ import annotations

from .digest import DIGEST_CAPACITY, DigestBuffer, DigestEntry
from .dispatcher import (
    ChannelDispatcher,
    DeliveryError,
    DiscordChannelDispatcher,
    DiscordConfig,
    NullDispatcher,
)
from .formatter import ArtifactFormatter, DeliveryArtifact, EmbedFormatter
from .legacy import LegacyRoutingConfig
from .mutes import MuteEntry, MuteRegistry
from .observability import DeliveryEventLogger, DeliveryEventType
from .outcomes import DeliveryStats, Outcome
from .payloads import EventKind
from .router import InboundDelivery, RouterDependencies, WebhookRouter
from .signature import SIGNATURE_HEADER, compute_signature, verify_signature
from .summary import EventSummary, summarize

__all__ = [
    "DIGEST_CAPACITY",
    "SIGNATURE_HEADER",
    "ArtifactFormatter",
    "ChannelDispatcher",
    "DeliveryArtifact",
    "DeliveryError",
    "DeliveryEventLogger",
    "DeliveryEventType",
    "DeliveryStats",
    "DigestBuffer",
    "DigestEntry",
    "DiscordChannelDispatcher",
    "DiscordConfig",
    "EmbedFormatter",
    "EventKind",
    "EventSummary",
    "InboundDelivery",
    "LegacyRoutingConfig",
    "MuteEntry",
    "MuteRegistry",
    "NullDispatcher",
    "Outcome",
    "RouterDependencies",
    "WebhookRouter",
    "compute_signature",
    "summarize",
    "verify_signature",
]
