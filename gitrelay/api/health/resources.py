"""Health probe resources.

``/ready`` is a bare readiness probe. ``/health`` reports routing state:
registered and pollable repository counts, active mutes, outcome counters
and the poller status. In health-only mode (no registry configured) the
counts are zero and the poller is reported as stopped.

Usage
-----
Register health endpoints on the Falcon app::

    from gitrelay.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource(router=router, store=registry))
    app.add_route("/ready", ReadyResource())

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from gitrelay.delivery.router import WebhookRouter
    from gitrelay.github.polling import PollingScheduler
    from gitrelay.github.ratelimit import RateLimiter
    from gitrelay.registry import RoutingStore

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource reporting routing state.

    Always responds with HTTP 200 while the process can serve requests.

    """

    def __init__(
        self,
        *,
        router: WebhookRouter | None = None,
        store: RoutingStore | None = None,
        scheduler: PollingScheduler | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """Capture the optional sources reported on."""
        self._router = router
        self._store = store
        self._scheduler = scheduler
        self._rate_limiter = rate_limiter

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with the health document.

        """
        repositories = 0
        polling = 0
        if self._store is not None:
            repositories = len(await self._store.list_all())
            polling = len(await self._store.list_pollable())

        mutes: list[dict[str, str]] = []
        stats = {"received": 0, "sent": 0, "dropped": 0, "ignored": 0, "muted": 0}
        if self._router is not None:
            mutes = [
                {
                    "event": mute.event_type,
                    "expires_at": mute.expires_at.isoformat(),
                    "reason": mute.reason,
                }
                for mute in self._router.mutes.list_active()
            ]
            stats = self._router.stats.as_dict()

        scheduler = self._scheduler
        media: dict[str, typ.Any] = {
            "status": "ok",
            "repositories": repositories,
            "polling": polling,
            "mutes": mutes,
            "stats": stats,
            "poller": {
                "running": scheduler.running if scheduler is not None else False,
                "interval_seconds": (
                    scheduler.interval_seconds if scheduler is not None else None
                ),
            },
        }
        if self._rate_limiter is not None:
            media["rate_limits"] = {
                key: state.as_dict()
                for key, state in self._rate_limiter.snapshot().items()
            }
        resp.media = media
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource returning ``{"status": "ready"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        resp.media = {"status": "ready"}
        resp.status = HTTPStatus.OK
