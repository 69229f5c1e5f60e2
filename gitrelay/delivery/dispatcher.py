"""Delivery collaborator: post artifacts to chat channels."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from gitrelay.common.env import ConfigError, env_str

_HTTP_ERROR_STATUS_THRESHOLD = 400
DEFAULT_DISCORD_API_URL = "https://discord.com/api/v10"


class DeliveryError(RuntimeError):
    """Raised when an artifact could not be posted to a channel."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, channel_id: str, status_code: int) -> DeliveryError:
        """Return an error for a non-2xx response from the chat API."""
        return cls(
            f"Posting to channel {channel_id} failed with HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def transport(cls, channel_id: str, exc: httpx.HTTPError) -> DeliveryError:
        """Return an error for a network-level failure."""
        return cls(f"Posting to channel {channel_id} failed: {exc}")


class ChannelDispatcher(typ.Protocol):
    """Posts an opaque artifact to a channel; raises on failure."""

    async def dispatch(self, channel_id: str, artifact: object) -> None:
        """Deliver ``artifact`` to ``channel_id``."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class DiscordConfig:
    """Configuration for the Discord REST dispatcher."""

    token: str = dataclasses.field(repr=False)
    api_url: str = DEFAULT_DISCORD_API_URL
    timeout_s: float = 10.0
    user_agent: str = "gitrelay/0.1"

    @classmethod
    def from_env(cls) -> DiscordConfig | None:
        """Read ``GITRELAY_DISCORD_TOKEN`` and ``GITRELAY_DISCORD_API_URL``.

        Returns ``None`` when no token is configured.
        """
        token = env_str("GITRELAY_DISCORD_TOKEN")
        if token is None:
            return None
        return cls(
            token=token,
            api_url=env_str("GITRELAY_DISCORD_API_URL") or DEFAULT_DISCORD_API_URL,
        )


class DiscordChannelDispatcher:
    """Post artifacts as embeds through the Discord REST API."""

    def __init__(
        self,
        config: DiscordConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the dispatcher; an owned client is created if needed."""
        if not config.token.strip():
            msg = "Discord bot token must be non-empty"
            raise ConfigError(msg)
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={"User-Agent": config.user_agent},
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def dispatch(self, channel_id: str, artifact: object) -> None:
        """Post ``artifact`` as a single embed message.

        Raises
        ------
        DeliveryError
            On transport errors or a non-2xx response.

        """
        url = f"{self._config.api_url.rstrip('/')}/channels/{channel_id}/messages"
        body = {"embeds": [msgspec.to_builtins(artifact)]}
        try:
            response = await self._client.post(
                url,
                content=msgspec.json.encode(body),
                headers={
                    "Authorization": f"Bot {self._config.token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise DeliveryError.transport(channel_id, exc) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise DeliveryError.http_error(channel_id, response.status_code)


class NullDispatcher:
    """Dispatcher used when no chat credentials are configured."""

    async def dispatch(self, channel_id: str, artifact: object) -> None:
        """Refuse every delivery so the router records ``dropped``."""
        msg = f"No chat dispatcher configured; cannot post to {channel_id}"
        raise DeliveryError(msg)
