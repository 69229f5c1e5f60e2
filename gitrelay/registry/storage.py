"""SQLAlchemy models for repository routing entries and API credentials."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from gitrelay.common.time import utcnow
from gitrelay.registry.errors import TimezoneAwareRequiredError

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Declarative base for registry tables."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime column that always stores and returns aware UTC values."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Reject naive datetimes and normalise aware ones to UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError.for_column()
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Attach UTC to values SQLite hands back without tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class GitHubCredential(Base):
    """Stored GitHub API token."""

    __tablename__ = "github_credentials"
    __table_args__ = (Index("ix_github_credentials_default", "is_default"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(Text())
    description: Mapped[str | None] = mapped_column(String(255), default=None)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


class RepositoryRoute(Base):
    """Routing entry for one monitored repository."""

    __tablename__ = "repositories"
    __table_args__ = (
        UniqueConstraint("owner", "name", name="uq_repositories_owner_name"),
        Index("ix_repositories_active", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(511), unique=True)
    channel_id: Mapped[str | None] = mapped_column(String(64), default=None)
    webhook_secret: Mapped[str | None] = mapped_column(Text(), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    delivery_mode: Mapped[str] = mapped_column(String(16), default="webhook")
    credential_id: Mapped[int | None] = mapped_column(
        ForeignKey("github_credentials.id", ondelete="SET NULL"), default=None
    )
    default_branch: Mapped[str] = mapped_column(String(255), default="main")
    last_commit_sha: Mapped[str | None] = mapped_column(String(64), default=None)
    last_polled_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    error_message: Mapped[str | None] = mapped_column(Text(), default=None)
    created_by: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


async def init_registry_storage(engine: AsyncEngine) -> None:
    """Create the registry tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
