"""Errors raised by the routing registry."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for routing registry errors."""


class RepositoryNotFoundError(RegistryError):
    """Raised when no routing entry matches a slug or identifier."""

    def __init__(self, key: str | int) -> None:
        """Initialise with the slug or numeric id that missed."""
        self.key = key
        super().__init__(f"Repository not found: {key}")


class DuplicateRepositoryError(RegistryError):
    """Raised when registering a slug that already has a routing entry."""

    def __init__(self, slug: str) -> None:
        """Initialise with the conflicting slug."""
        self.slug = slug
        super().__init__(f"Repository already registered: {slug}")


class UnknownFieldError(RegistryError):
    """Raised when an update names a field routing entries do not allow."""

    def __init__(self, fields: set[str]) -> None:
        """Initialise with the rejected field names."""
        self.fields = frozenset(fields)
        super().__init__(f"Unknown routing entry fields: {', '.join(sorted(fields))}")


class PollingNotEnabledError(RegistryError):
    """Raised when a manual poll targets a repository in webhook mode."""

    def __init__(self, slug: str) -> None:
        """Initialise with the repository slug."""
        self.slug = slug
        super().__init__(f"Repository {slug} is not enabled for polling")


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime is bound to a UTC column."""

    @classmethod
    def for_column(cls) -> TimezoneAwareRequiredError:
        """Return the error for a naive value bound to ``UTCDateTime``."""
        return cls("registry timestamps must be timezone-aware")
