"""Webhook intake resources.

Each request is validated structurally (event header present, body is a
JSON object, path identifiers well formed), answered with 200 straight
away, and then processed by :class:`~gitrelay.delivery.router.WebhookRouter`
once Falcon has sent the response. The routing outcome is never reflected
in the HTTP status; GitHub only needs to know the delivery arrived.

Usage
-----
Register the three intake routes on one resource instance::

    resource = WebhookResource(router=router, store=registry)
    app.add_route("/webhook", resource)
    app.add_route("/webhook/{repo_id}", resource, suffix="by_id")
    app.add_route("/webhook/{owner}/{name}", resource, suffix="by_slug")

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import msgspec

from gitrelay.api.errors import InvalidInputError
from gitrelay.common.slug import repo_slug
from gitrelay.delivery.router import InboundDelivery
from gitrelay.delivery.signature import SIGNATURE_HEADER
from gitrelay.registry.errors import RepositoryNotFoundError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from gitrelay.delivery.router import WebhookRouter
    from gitrelay.registry import RoutingStore

__all__ = ["EVENT_HEADER", "WebhookResource"]

EVENT_HEADER = "X-GitHub-Event"


class WebhookResource:
    """Accept GitHub deliveries on the legacy, id and slug routes."""

    def __init__(self, *, router: WebhookRouter, store: RoutingStore | None) -> None:
        """Configure the resource with the router and registry."""
        self._router = router
        self._store = store

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle ``POST /webhook`` (payload identity or legacy routing)."""
        delivery = await self._read_delivery(req)
        self._accept(resp, delivery)

    async def on_post_by_id(self, req: Request, resp: Response, *, repo_id: str) -> None:
        """Handle ``POST /webhook/{repo_id}``.

        Raises
        ------
        InvalidInputError
            If ``repo_id`` is not a decimal integer.

        """
        if not repo_id.isdecimal():
            raise InvalidInputError("must be a decimal integer", field="repo_id")
        delivery = await self._read_delivery(req, repo_id=int(repo_id))
        self._accept(resp, delivery)

    async def on_post_by_slug(
        self, req: Request, resp: Response, *, owner: str, name: str
    ) -> None:
        """Handle ``POST /webhook/{owner}/{name}``.

        Raises
        ------
        RepositoryNotFoundError
            If ``owner/name`` is not registered.

        """
        slug = repo_slug(owner, name)
        if self._store is None or await self._store.get_by_slug(slug) is None:
            raise RepositoryNotFoundError(slug)
        delivery = await self._read_delivery(req, slug=slug)
        self._accept(resp, delivery)

    async def _read_delivery(
        self,
        req: Request,
        *,
        repo_id: int | None = None,
        slug: str | None = None,
    ) -> InboundDelivery:
        event_type = (req.get_header(EVENT_HEADER) or "").strip()
        if not event_type:
            raise InvalidInputError("header is required", field=EVENT_HEADER)

        raw_body = await req.stream.read()
        try:
            payload = msgspec.json.decode(raw_body)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(f"invalid JSON: {exc}", field="body") from exc
        if not isinstance(payload, dict):
            raise InvalidInputError("must be a JSON object", field="body")

        return InboundDelivery(
            event_type=event_type,
            raw_body=raw_body,
            payload=payload,
            signature=req.get_header(SIGNATURE_HEADER),
            repo_id=repo_id,
            slug=slug,
        )

    def _accept(self, resp: Response, delivery: InboundDelivery) -> None:
        router = self._router

        async def _process() -> None:
            await router.handle(delivery)

        resp.media = {"status": "accepted"}
        resp.status = HTTPStatus.OK
        resp.schedule(_process)
