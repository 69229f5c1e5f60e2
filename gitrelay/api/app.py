"""Application factory for the gitrelay Falcon ASGI application.

This module provides ``create_app()`` which builds and configures the
Falcon ASGI application with health endpoints and, when routing
dependencies are available, the webhook intake and admin endpoints.

Usage
-----
Create a health-only app (no registry)::

    app = create_app()

Create a full app with webhook routing::

    from gitrelay.api.app import AppDependencies, create_app

    deps = AppDependencies(router=router, store=registry, scheduler=scheduler)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from gitrelay.api.errors import register_error_handlers
from gitrelay.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitrelay.delivery.router import WebhookRouter
    from gitrelay.github.polling import PollingScheduler
    from gitrelay.github.ratelimit import RateLimiter
    from gitrelay.registry import RoutingStore

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    When ``router`` is provided the webhook routes are registered. Admin
    routes additionally require ``admin_token``.

    Attributes
    ----------
    router
        Webhook router shared with the polling scheduler.
    store
        Routing registry used for slug lookups and health counts.
    scheduler
        Polling scheduler started and stopped with the app.
    rate_limiter
        Quota tracker reported on ``/health``.
    admin_token
        Bearer token protecting the admin routes.
    on_startup
        Async callables run before the scheduler starts, such as table creation.
    on_shutdown
        Async callables run on shutdown, typically ``aclose`` of HTTP clients.

    """

    router: WebhookRouter | None = None
    store: RoutingStore | None = None
    scheduler: PollingScheduler | None = None
    rate_limiter: RateLimiter | None = None
    admin_token: str | None = dc.field(default=None, repr=False)
    on_startup: cabc.Sequence[cabc.Callable[[], cabc.Awaitable[None]]] = ()
    on_shutdown: cabc.Sequence[cabc.Callable[[], cabc.Awaitable[None]]] = ()


def _register_webhook_routes(app: falcon.asgi.App, deps: AppDependencies) -> None:
    from gitrelay.api.webhooks.resources import WebhookResource

    router = typ.cast("WebhookRouter", deps.router)
    resource = WebhookResource(router=router, store=deps.store)
    app.add_route("/webhook", resource)
    app.add_route("/webhook/{repo_id}", resource, suffix="by_id")
    app.add_route("/webhook/{owner}/{name}", resource, suffix="by_slug")


def _register_admin_routes(app: falcon.asgi.App, deps: AppDependencies) -> None:
    from gitrelay.api.admin.resources import (
        AdminResourceDependencies,
        DigestResource,
        MuteCollectionResource,
        MuteResource,
        PollResource,
    )

    admin = AdminResourceDependencies(
        router=typ.cast("WebhookRouter", deps.router),
        admin_token=typ.cast("str", deps.admin_token),
        scheduler=deps.scheduler,
    )
    app.add_route("/digest", DigestResource(admin))
    app.add_route("/mutes", MuteCollectionResource(admin))
    app.add_route("/mutes/{event_type}", MuteResource(admin))
    app.add_route("/repositories/{owner}/{name}/poll", PollResource(admin))


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies.  When ``None``, only health
        endpoints are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []

    if deps.scheduler is not None or deps.on_startup or deps.on_shutdown:
        from gitrelay.api.middleware import BackgroundServices

        middleware.append(
            BackgroundServices(
                scheduler=deps.scheduler,
                on_startup=deps.on_startup,
                on_shutdown=deps.on_shutdown,
            )
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    # Health endpoints are always available
    app.add_route(
        "/health",
        HealthResource(
            router=deps.router,
            store=deps.store,
            scheduler=deps.scheduler,
            rate_limiter=deps.rate_limiter,
        ),
    )
    app.add_route("/ready", ReadyResource())

    if deps.router is not None:
        _register_webhook_routes(app, deps)
        if deps.admin_token:
            _register_admin_routes(app, deps)

    register_error_handlers(app)

    return app
