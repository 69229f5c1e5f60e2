"""gitrelay runtime entrypoint.

This module provides the ASGI application factory used by Granian. It
delegates to :func:`gitrelay.api.app.create_app` for application
construction while keeping the ``gitrelay.runtime:create_app`` entrypoint
stable.

When ``GITRELAY_DATABASE_URL`` is set, the runtime builds the full routing
stack (registry, router, GitHub client, poller) so the app serves webhooks.
Without a database, a legacy channel map alone enables ``POST /webhook``;
with neither, it starts in health-only mode.

Configuration is driven by environment variables:

- ``GITRELAY_HOST``: Bind address (default ``0.0.0.0``)
- ``GITRELAY_PORT``: Listen port (default ``8080``)
- ``GITRELAY_LOG_LEVEL``: Log level (default ``INFO``)
- ``GITRELAY_DATABASE_URL``: Registry database URL (optional; enables routing)
- ``GITRELAY_POLL_INTERVAL_SECONDS``: Poll interval (default ``60``)
- ``GITRELAY_GITHUB_API_URL`` / ``GITRELAY_GITHUB_TIMEOUT_SECONDS``
- ``GITRELAY_LEGACY_WEBHOOK_SECRET`` / ``GITRELAY_LEGACY_CHANNELS_PATH``
- ``GITRELAY_DISCORD_TOKEN`` / ``GITRELAY_DISCORD_API_URL``
- ``GITRELAY_ADMIN_TOKEN``: Enables the admin routes when set

Run the service directly with ``python -m gitrelay.runtime``.
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

from gitrelay.common.env import env_str
from gitrelay.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

    from gitrelay.api.app import AppDependencies
    from gitrelay.delivery import (
        DiscordChannelDispatcher,
        LegacyRoutingConfig,
        NullDispatcher,
    )

__all__ = [
    "RuntimeConfig",
    "build_dependencies",
    "build_legacy_dependencies",
    "create_app",
    "main",
]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid GITRELAY_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


@dataclasses.dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Process-level settings read from the environment."""

    database_url: str | None = None
    admin_token: str | None = dataclasses.field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> RuntimeConfig:
        """Read ``GITRELAY_DATABASE_URL`` and ``GITRELAY_ADMIN_TOKEN``."""
        return cls(
            database_url=env_str("GITRELAY_DATABASE_URL"),
            admin_token=env_str("GITRELAY_ADMIN_TOKEN"),
        )


def _build_dispatcher() -> DiscordChannelDispatcher | NullDispatcher:
    from gitrelay.delivery import (
        DiscordChannelDispatcher,
        DiscordConfig,
        NullDispatcher,
    )

    discord_config = DiscordConfig.from_env()
    if discord_config is None:
        log_warning(
            logger, "GITRELAY_DISCORD_TOKEN is not set; deliveries will be dropped"
        )
        return NullDispatcher()
    return DiscordChannelDispatcher(discord_config)


def build_legacy_dependencies(
    config: RuntimeConfig, legacy: LegacyRoutingConfig
) -> AppDependencies:
    """Wire a registry-free router that serves ``POST /webhook`` only.

    Used when no database is configured but a legacy channel map is, so
    single-target deployments keep relaying without the registry.
    """
    from gitrelay.api.app import AppDependencies
    from gitrelay.delivery import (
        DiscordChannelDispatcher,
        EmbedFormatter,
        RouterDependencies,
        WebhookRouter,
    )

    dispatcher = _build_dispatcher()
    router = WebhookRouter(
        RouterDependencies(
            store=None,
            formatter=EmbedFormatter(),
            dispatcher=dispatcher,
            legacy=legacy,
        )
    )
    shutdown = (
        (dispatcher.aclose,) if isinstance(dispatcher, DiscordChannelDispatcher) else ()
    )
    return AppDependencies(
        router=router, admin_token=config.admin_token, on_shutdown=shutdown
    )


def build_dependencies(config: RuntimeConfig) -> AppDependencies:
    """Wire the routing stack for ``config.database_url``.

    Nothing here touches the network or the database; tables are created
    and the poller started from the ASGI lifespan startup event.
    """
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from gitrelay.api.app import AppDependencies
    from gitrelay.delivery import (
        DiscordChannelDispatcher,
        EmbedFormatter,
        LegacyRoutingConfig,
        RouterDependencies,
        WebhookRouter,
    )
    from gitrelay.github import (
        GitHubRestClient,
        GitHubRestConfig,
        PollingConfig,
        PollingScheduler,
        RateLimiter,
    )
    from gitrelay.registry import RoutingRegistryService, init_registry_storage

    database_url = typ.cast("str", config.database_url)
    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    registry = RoutingRegistryService(session_factory)
    dispatcher = _build_dispatcher()

    router = WebhookRouter(
        RouterDependencies(
            store=registry,
            formatter=EmbedFormatter(),
            dispatcher=dispatcher,
            legacy=LegacyRoutingConfig.from_env(),
        )
    )

    rate_limiter = RateLimiter()
    github = GitHubRestClient(GitHubRestConfig.from_env(), rate_limiter)
    scheduler = PollingScheduler(
        registry,
        github,
        router,
        rate_limiter=rate_limiter,
        config=PollingConfig.from_env(),
    )

    async def _create_tables() -> None:
        await init_registry_storage(engine)

    shutdown = [github.aclose]
    if isinstance(dispatcher, DiscordChannelDispatcher):
        shutdown.append(dispatcher.aclose)
    shutdown.append(engine.dispose)

    return AppDependencies(
        router=router,
        store=registry,
        scheduler=scheduler,
        rate_limiter=rate_limiter,
        admin_token=config.admin_token,
        on_startup=(_create_tables,),
        on_shutdown=tuple(shutdown),
    )


def create_app() -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    When ``GITRELAY_DATABASE_URL`` is set, builds the routing stack so the
    app includes the webhook routes. Without it, a configured legacy
    channel map still enables ``POST /webhook``; otherwise only
    ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    from gitrelay.api.app import create_app as _create_api_app
    from gitrelay.delivery import LegacyRoutingConfig

    config = RuntimeConfig.from_env()
    if config.database_url is None:
        legacy = LegacyRoutingConfig.from_env()
        if legacy.enabled:
            return _create_api_app(build_legacy_dependencies(config, legacy))
        return _create_api_app()
    return _create_api_app(build_dependencies(config))


def main() -> None:
    """Start the gitrelay server using Granian.

    Reads ``GITRELAY_HOST``, ``GITRELAY_PORT``, and ``GITRELAY_LOG_LEVEL``
    from the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("GITRELAY_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port_str = os.environ.get("GITRELAY_PORT", "8080")
    port = _parse_port(port_str)
    log_level_str = os.environ.get("GITRELAY_LOG_LEVEL", "INFO")

    # Configure logging - validate log level and warn on invalid values
    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid GITRELAY_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting gitrelay on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "gitrelay.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
