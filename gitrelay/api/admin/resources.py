"""Operator endpoints: digest, mutes and manual polls.

Every resource here requires ``Authorization: Bearer <token>`` matching the
configured admin token; the routes are not registered at all without one.

Usage
-----
Register the admin routes::

    deps = AdminResourceDependencies(router=router, admin_token=token)
    app.add_route("/digest", DigestResource(deps))
    app.add_route("/mutes", MuteCollectionResource(deps))
    app.add_route("/mutes/{event_type}", MuteResource(deps))

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import hmac
import typing as typ
from http import HTTPStatus

import falcon
import msgspec

from gitrelay.api.errors import InvalidInputError
from gitrelay.common.slug import repo_slug

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from gitrelay.delivery.mutes import MuteEntry
    from gitrelay.delivery.router import WebhookRouter
    from gitrelay.github.polling import PollingScheduler

__all__ = [
    "AdminResourceDependencies",
    "DigestResource",
    "MuteCollectionResource",
    "MuteResource",
    "PollResource",
]

_BEARER_PREFIX = "Bearer "
_DEFAULT_DIGEST_LIMIT = 10


@dc.dataclass(frozen=True, slots=True)
class AdminResourceDependencies:
    """Collaborators shared by the admin resources.

    Attributes
    ----------
    router
        Router whose digest and mute registry are exposed.
    admin_token
        Bearer token every request must present.
    scheduler
        Polling scheduler for manual polls; optional.

    """

    router: WebhookRouter
    admin_token: str = dc.field(repr=False)
    scheduler: PollingScheduler | None = None


class MuteRequest(msgspec.Struct, kw_only=True):
    """Body of ``PUT /mutes/{event_type}``."""

    minutes: float
    reason: str = ""
    muted_by: str = "admin"


async def require_admin_token(
    req: Request,
    _resp: Response,
    resource: _AdminResource,
    _params: dict[str, typ.Any],
) -> None:
    """Reject requests without the configured bearer token."""
    header = req.get_header("Authorization") or ""
    presented = header.removeprefix(_BEARER_PREFIX) if header.startswith(_BEARER_PREFIX) else ""
    expected = resource.admin_token
    if not presented or not hmac.compare_digest(
        presented.encode("utf-8"), expected.encode("utf-8")
    ):
        raise falcon.HTTPUnauthorized(
            title="Unauthorized",
            description="A valid admin bearer token is required.",
            challenges=["Bearer"],
        )


def _serialize_mute(entry: MuteEntry) -> dict[str, str]:
    return {
        "event_type": entry.event_type,
        "expires_at": entry.expires_at.isoformat(),
        "muted_by": entry.muted_by,
        "reason": entry.reason,
    }


class _AdminResource:
    """Shared constructor for admin resources."""

    def __init__(self, dependencies: AdminResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._deps = dependencies

    @property
    def admin_token(self) -> str:
        """Return the token requests are checked against."""
        return self._deps.admin_token


@falcon.before(require_admin_token)
class DigestResource(_AdminResource):
    """``GET /digest?limit=`` returns the newest digest entries."""

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return up to ``limit`` entries, oldest first."""
        limit = req.get_param_as_int("limit", default=_DEFAULT_DIGEST_LIMIT)
        digest = self._deps.router.digest
        resp.media = {
            "entries": [entry.as_dict() for entry in digest.recent(limit)],
            "size": digest.size(),
            "capacity": digest.capacity,
        }
        resp.status = HTTPStatus.OK


@falcon.before(require_admin_token)
class MuteCollectionResource(_AdminResource):
    """``GET /mutes`` lists active mutes."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Return every unexpired mute."""
        resp.media = {
            "mutes": [
                _serialize_mute(entry)
                for entry in self._deps.router.mutes.list_active()
            ]
        }
        resp.status = HTTPStatus.OK


@falcon.before(require_admin_token)
class MuteResource(_AdminResource):
    """``PUT`` and ``DELETE /mutes/{event_type}``."""

    async def on_put(self, req: Request, resp: Response, *, event_type: str) -> None:
        """Install or replace a mute.

        Raises
        ------
        InvalidInputError
            If the body is malformed or ``minutes`` is not positive.

        """
        raw = await req.stream.read()
        try:
            body = msgspec.json.decode(raw, type=MuteRequest)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc), field="body") from exc
        if body.minutes <= 0:
            raise InvalidInputError("must be positive", field="minutes")

        entry = self._deps.router.mutes.mute(
            event_type,
            dt.timedelta(minutes=body.minutes),
            muted_by=body.muted_by,
            reason=body.reason,
        )
        resp.media = _serialize_mute(entry)
        resp.status = HTTPStatus.OK

    async def on_delete(self, _req: Request, resp: Response, *, event_type: str) -> None:
        """Lift a mute early."""
        removed = self._deps.router.mutes.unmute(event_type)
        resp.media = {"event_type": event_type, "removed": removed}
        resp.status = HTTPStatus.OK


@falcon.before(require_admin_token)
class PollResource(_AdminResource):
    """``POST /repositories/{owner}/{name}/poll`` triggers a manual poll."""

    async def on_post(
        self, _req: Request, resp: Response, *, owner: str, name: str
    ) -> None:
        """Poll one repository now and return what happened.

        Unknown repositories map to 404 and webhook-mode repositories to
        409 through the registered error handlers.
        """
        scheduler = self._deps.scheduler
        if scheduler is None:
            raise falcon.HTTPServiceUnavailable(
                title="Polling disabled", description="No polling scheduler is running."
            )
        result = await scheduler.poll_now(repo_slug(owner, name))
        resp.media = result.as_dict()
        resp.status = HTTPStatus.OK
