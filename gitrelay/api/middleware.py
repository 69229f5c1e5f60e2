"""ASGI lifespan middleware for background services.

Falcon calls ``process_startup`` and ``process_shutdown`` once per server
process. The polling scheduler needs a running event loop, so it is started
here rather than at import time, and outbound HTTP clients are closed on the
way down.

Usage
-----
Register the middleware when creating the Falcon app::

    lifecycle = BackgroundServices(
        scheduler=scheduler,
        on_startup=(create_tables,),
        on_shutdown=(client.aclose,),
    )
    app = falcon.asgi.App(middleware=[lifecycle])

"""

from __future__ import annotations

import typing as typ

from gitrelay.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitrelay.github.polling import PollingScheduler

__all__ = ["BackgroundServices"]

type Hook = cabc.Callable[[], cabc.Awaitable[None]]

logger = get_logger(__name__)


class BackgroundServices:
    """Start the poller on startup; stop it and close clients on shutdown.

    Parameters
    ----------
    scheduler
        Polling scheduler to run for the lifetime of the app, if any.
    on_startup
        Async callables awaited in order before the scheduler starts, such
        as table creation.
    on_shutdown
        Async callables releasing outbound resources, awaited in order after
        the scheduler stops.

    """

    def __init__(
        self,
        *,
        scheduler: PollingScheduler | None = None,
        on_startup: cabc.Sequence[Hook] = (),
        on_shutdown: cabc.Sequence[Hook] = (),
    ) -> None:
        """Initialize the middleware with the services it manages."""
        self._scheduler = scheduler
        self._on_startup = tuple(on_startup)
        self._on_shutdown = tuple(on_shutdown)

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Run startup hooks, then start the polling scheduler."""
        for hook in self._on_startup:
            await hook()
        if self._scheduler is not None:
            self._scheduler.start()
            log_info(logger, "Polling scheduler started")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop the scheduler, then run the shutdown hooks.

        A failing hook is logged and the remaining hooks still run.
        """
        if self._scheduler is not None:
            await self._scheduler.stop()
        for hook in self._on_shutdown:
            try:
                await hook()
            except Exception as exc:  # noqa: BLE001 - shutdown must finish
                log_error(logger, "Shutdown hook failed: %s", exc, exc_info=exc)
