"""Falcon error handlers for webhook intake and admin routes.

Resources raise domain errors directly; the handlers installed by
:func:`register_error_handlers` turn them into JSON bodies of the form
``{"title": ..., "description": ..., "field": ...}``.

Usage
-----
::

    from gitrelay.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from gitrelay.registry.errors import PollingNotEnabledError, RepositoryNotFoundError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import falcon.asgi
    from falcon.asgi import Request, Response

    ErrorHandler = cabc.Callable[
        [Request, Response, Exception, dict[str, typ.Any]],
        cabc.Awaitable[None],
    ]

__all__ = [
    "InvalidInputError",
    "error_handler",
    "register_error_handlers",
]


class InvalidInputError(Exception):
    """Raised when a request is structurally unusable (HTTP 400).

    Attributes
    ----------
    reason
        What was wrong with the input.
    field
        Header, path parameter or body part the reason applies to.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        self.reason = reason
        self.field = field
        super().__init__(reason if field is None else f"{field}: {reason}")


def error_handler(status: str, title: str) -> ErrorHandler:
    """Build a handler that renders an exception as a JSON error body.

    ``InvalidInputError`` contributes its bare reason and the offending
    field; other exceptions contribute ``str(ex)``.
    """

    async def handle(
        _req: Request,
        resp: Response,
        ex: Exception,
        _params: dict[str, typ.Any],
    ) -> None:
        media: dict[str, str] = {"title": title}
        if isinstance(ex, InvalidInputError):
            media["description"] = ex.reason
            if ex.field is not None:
                media["field"] = ex.field
        else:
            media["description"] = str(ex)
        resp.status = status
        resp.media = media

    return handle


_HANDLERS: tuple[tuple[type[Exception], str, str], ...] = (
    (RepositoryNotFoundError, falcon.HTTP_404, "Repository not found"),
    (PollingNotEnabledError, falcon.HTTP_409, "Polling not enabled"),
    (InvalidInputError, falcon.HTTP_400, "Invalid input"),
)


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Install the domain error handlers on ``app``."""
    for exc_type, status, title in _HANDLERS:
        app.add_error_handler(exc_type, error_handler(status, title))
