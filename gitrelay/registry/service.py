"""Routing registry backed by SQLAlchemy.

The registry is the only owner of routing entries and credentials. The
webhook router and the polling scheduler depend on the narrow
:class:`RoutingStore` protocol; :class:`RoutingRegistryService` implements it
on top of an async session factory and adds the management operations used by
operators.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from gitrelay.common.slug import parse_repo_slug, repo_slug
from gitrelay.registry.errors import (
    DuplicateRepositoryError,
    RepositoryNotFoundError,
    UnknownFieldError,
)
from gitrelay.registry.models import Credential, DeliveryMode, RoutingEntry
from gitrelay.registry.storage import GitHubCredential, RepositoryRoute

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

type SessionFactory = async_sessionmaker[AsyncSession]

MUTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "channel_id",
        "webhook_secret",
        "is_active",
        "delivery_mode",
        "credential_id",
        "default_branch",
        "last_commit_sha",
        "last_polled_at",
        "error_message",
    }
)


class RoutingStore(typ.Protocol):
    """Persistence operations the delivery core relies on."""

    async def get_by_id(self, entry_id: int) -> RoutingEntry | None:
        """Return the entry with ``entry_id`` or ``None``."""
        ...

    async def get_by_slug(self, slug: str) -> RoutingEntry | None:
        """Return the entry registered as ``owner/name`` or ``None``."""
        ...

    async def list_all(self) -> list[RoutingEntry]:
        """Return every entry, active or not."""
        ...

    async def list_active(self) -> list[RoutingEntry]:
        """Return entries whose activity flag is set."""
        ...

    async def list_pollable(self) -> list[RoutingEntry]:
        """Return active entries in polling mode."""
        ...

    async def update(
        self, entry_id: int, changes: cabc.Mapping[str, object]
    ) -> None:
        """Apply a partial update to one entry."""
        ...

    async def get_credential(self, credential_id: int) -> Credential | None:
        """Return a stored credential or ``None``."""
        ...

    async def get_default_credential(self) -> Credential | None:
        """Return the default credential or ``None``."""
        ...


class RoutingRegistryService:
    """SQLAlchemy implementation of :class:`RoutingStore`.

    Parameters
    ----------
    session_factory:
        Async session factory bound to the registry database.

    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the service to a session factory."""
        self._session_factory = session_factory

    async def get_by_id(self, entry_id: int) -> RoutingEntry | None:
        """Return the entry with ``entry_id`` or ``None``."""
        async with self._session_factory() as session:
            row = await session.get(RepositoryRoute, entry_id)
            return _to_entry(row) if row is not None else None

    async def get_by_slug(self, slug: str) -> RoutingEntry | None:
        """Return the entry registered as ``owner/name`` or ``None``.

        Malformed slugs are treated as a miss rather than an error because
        they usually come straight from request paths and payloads.
        """
        try:
            owner, name = parse_repo_slug(slug)
        except ValueError:
            return None

        async with self._session_factory() as session:
            row = await session.scalar(
                select(RepositoryRoute).where(
                    RepositoryRoute.owner == owner,
                    RepositoryRoute.name == name,
                )
            )
            return _to_entry(row) if row is not None else None

    async def list_all(self) -> list[RoutingEntry]:
        """Return every entry ordered by slug."""
        return await self._list()

    async def list_active(self) -> list[RoutingEntry]:
        """Return active entries ordered by slug."""
        return await self._list(active_only=True)

    async def list_pollable(self) -> list[RoutingEntry]:
        """Return active entries in polling mode ordered by slug."""
        return await self._list(active_only=True, mode=DeliveryMode.POLLING)

    async def _list(
        self,
        *,
        active_only: bool = False,
        mode: DeliveryMode | None = None,
    ) -> list[RoutingEntry]:
        query = select(RepositoryRoute)
        if active_only:
            query = query.where(RepositoryRoute.is_active.is_(True))
        if mode is not None:
            query = query.where(RepositoryRoute.delivery_mode == mode.value)
        query = query.order_by(RepositoryRoute.owner, RepositoryRoute.name)

        async with self._session_factory() as session:
            rows = await session.scalars(query)
            return [_to_entry(row) for row in rows]

    async def update(
        self, entry_id: int, changes: cabc.Mapping[str, object]
    ) -> None:
        """Apply a partial update to one entry.

        Raises
        ------
        UnknownFieldError
            If ``changes`` names a field outside :data:`MUTABLE_FIELDS`.
        RepositoryNotFoundError
            If no entry has ``entry_id``.

        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise UnknownFieldError(unknown)
        if not changes:
            return

        values = dict(changes)
        mode = values.get("delivery_mode")
        if isinstance(mode, DeliveryMode):
            values["delivery_mode"] = mode.value

        async with self._session_factory() as session, session.begin():
            row = await session.get(RepositoryRoute, entry_id)
            if row is None:
                raise RepositoryNotFoundError(entry_id)
            for field, value in values.items():
                setattr(row, field, value)

    async def get_credential(self, credential_id: int) -> Credential | None:
        """Return a stored credential or ``None``."""
        async with self._session_factory() as session:
            row = await session.get(GitHubCredential, credential_id)
            return _to_credential(row) if row is not None else None

    async def get_default_credential(self) -> Credential | None:
        """Return the most recently designated default credential."""
        async with self._session_factory() as session:
            row = await session.scalar(
                select(GitHubCredential)
                .where(GitHubCredential.is_default.is_(True))
                .order_by(GitHubCredential.id.desc())
                .limit(1)
            )
            return _to_credential(row) if row is not None else None

    async def add_repository(  # noqa: PLR0913
        self,
        owner: str,
        name: str,
        *,
        channel_id: str | None = None,
        webhook_secret: str | None = None,
        delivery_mode: DeliveryMode = DeliveryMode.WEBHOOK,
        credential_id: int | None = None,
        default_branch: str = "main",
        created_by: str | None = None,
    ) -> RoutingEntry:
        """Register a repository and return the stored entry.

        Raises
        ------
        DuplicateRepositoryError
            If ``owner/name`` is already registered.

        """
        slug = repo_slug(owner, name)
        row = RepositoryRoute(
            owner=owner,
            name=name,
            full_name=slug,
            channel_id=channel_id,
            webhook_secret=webhook_secret,
            is_active=True,
            delivery_mode=delivery_mode.value,
            credential_id=credential_id,
            default_branch=default_branch,
            last_commit_sha=None,
            last_polled_at=None,
            error_message=None,
            created_by=created_by,
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
                await session.flush()
                entry = _to_entry(row)
        except IntegrityError as exc:
            raise DuplicateRepositoryError(slug) from exc
        return entry

    async def set_active(self, slug: str, *, active: bool) -> bool:
        """Flip the activity flag; return whether anything changed.

        Raises
        ------
        RepositoryNotFoundError
            If ``slug`` is not registered.

        """
        entry = await self.get_by_slug(slug)
        if entry is None:
            raise RepositoryNotFoundError(slug)
        if entry.is_active == active:
            return False
        await self.update(entry.id, {"is_active": active})
        return True

    async def remove_repository(self, slug: str) -> None:
        """Delete a routing entry permanently.

        Raises
        ------
        RepositoryNotFoundError
            If ``slug`` is not registered.

        """
        entry = await self.get_by_slug(slug)
        if entry is None:
            raise RepositoryNotFoundError(slug)
        async with self._session_factory() as session, session.begin():
            row = await session.get(RepositoryRoute, entry.id)
            if row is not None:
                await session.delete(row)

    async def add_credential(
        self,
        token: str,
        *,
        description: str | None = None,
        is_default: bool = False,
    ) -> Credential:
        """Store a GitHub token, optionally making it the default."""
        async with self._session_factory() as session, session.begin():
            if is_default:
                await session.execute(
                    update(GitHubCredential)
                    .where(GitHubCredential.is_default.is_(True))
                    .values(is_default=False)
                )
            row = GitHubCredential(
                token=token, description=description, is_default=is_default
            )
            session.add(row)
            await session.flush()
            return _to_credential(row)


def _to_entry(row: RepositoryRoute) -> RoutingEntry:
    return RoutingEntry(
        id=row.id,
        owner=row.owner,
        name=row.name,
        channel_id=row.channel_id,
        webhook_secret=row.webhook_secret,
        is_active=bool(row.is_active),
        delivery_mode=DeliveryMode(row.delivery_mode),
        credential_id=row.credential_id,
        default_branch=row.default_branch,
        last_commit_sha=row.last_commit_sha,
        last_polled_at=row.last_polled_at,
        error_message=row.error_message,
        created_by=row.created_by,
    )


def _to_credential(row: GitHubCredential) -> Credential:
    return Credential(
        id=row.id,
        token=row.token,
        description=row.description,
        is_default=bool(row.is_default),
    )
