"""Emit structured observability events for webhook delivery.

Usage
-----
>>> event_logger = DeliveryEventLogger()
>>> event_logger.log_outcome(
...     event_type="push", repo_slug="octo/reef", outcome=Outcome.SENT
... )

"""

from __future__ import annotations

import enum
import typing as typ

from gitrelay.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    from gitrelay.delivery.outcomes import Outcome

logger = get_logger(__name__)


class DeliveryEventType(enum.StrEnum):
    """Structured log event types for the routing pipeline."""

    OUTCOME_RECORDED = "delivery.outcome.recorded"
    SIGNATURE_REJECTED = "delivery.signature.rejected"
    UNSIGNED_ACCEPTED = "delivery.signature.unsigned"
    ROUTING_MISS = "delivery.routing.miss"
    DISPATCH_FAILED = "delivery.dispatch.failed"
    HANDLER_FAILED = "delivery.handler.failed"


class DeliveryEventLogger:
    """Emit structured delivery events via femtologging."""

    def log_outcome(
        self, *, event_type: str, repo_slug: str | None, outcome: Outcome
    ) -> None:
        """Log the terminal outcome of one event."""
        log_info(
            logger,
            "[%s] event_type=%s repo_slug=%s outcome=%s",
            DeliveryEventType.OUTCOME_RECORDED,
            event_type,
            repo_slug,
            outcome,
        )

    def log_signature_rejected(self, *, event_type: str, repo_slug: str | None) -> None:
        """Log a delivery whose signature did not verify."""
        log_warning(
            logger,
            "[%s] event_type=%s repo_slug=%s",
            DeliveryEventType.SIGNATURE_REJECTED,
            event_type,
            repo_slug,
        )

    def log_unsigned_accepted(self, *, event_type: str, repo_slug: str | None) -> None:
        """Log a delivery accepted because no secret is configured."""
        log_info(
            logger,
            "[%s] event_type=%s repo_slug=%s",
            DeliveryEventType.UNSIGNED_ACCEPTED,
            event_type,
            repo_slug,
        )

    def log_routing_miss(self, *, event_type: str, reason: str) -> None:
        """Log a delivery that matched no routing entry."""
        log_info(
            logger,
            "[%s] event_type=%s reason=%s",
            DeliveryEventType.ROUTING_MISS,
            event_type,
            reason,
        )

    def log_dispatch_failed(
        self,
        *,
        event_type: str,
        repo_slug: str | None,
        channel_id: str,
        error: BaseException,
    ) -> None:
        """Log a channel dispatch failure."""
        log_error(
            logger,
            "[%s] event_type=%s repo_slug=%s channel_id=%s "
            "error_type=%s error_message=%s",
            DeliveryEventType.DISPATCH_FAILED,
            event_type,
            repo_slug,
            channel_id,
            type(error).__name__,
            str(error),
        )

    def log_handler_failed(self, *, event_type: str, error: BaseException) -> None:
        """Log an unexpected failure inside the routing pipeline."""
        log_error(
            logger,
            "[%s] event_type=%s error_type=%s error_message=%s",
            DeliveryEventType.HANDLER_FAILED,
            event_type,
            type(error).__name__,
            str(error),
            exc_info=error,
        )
