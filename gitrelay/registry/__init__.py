"""Routing registry: the persistence collaborator for gitrelay.

The registry stores one routing entry per monitored repository (delivery
channel, webhook secret, delivery mode and polling checkpoint) plus the
GitHub API credentials used for polling.

Usage
-----
Create the tables and register a repository::

    from gitrelay.registry import RoutingRegistryService, init_registry_storage

    await init_registry_storage(engine)
    registry = RoutingRegistryService(session_factory)
    entry = await registry.add_repository("octo", "reef", channel_id="1234")

Look up the entry a webhook targets::

    entry = await registry.get_by_slug("octo/reef")

"""

from gitrelay.registry.errors import (
    DuplicateRepositoryError,
    PollingNotEnabledError,
    RegistryError,
    RepositoryNotFoundError,
    UnknownFieldError,
)
from gitrelay.registry.models import Credential, DeliveryMode, RoutingEntry
from gitrelay.registry.service import RoutingRegistryService, RoutingStore
from gitrelay.registry.storage import init_registry_storage

__all__ = [
    "Credential",
    "DeliveryMode",
    "DuplicateRepositoryError",
    "PollingNotEnabledError",
    "RegistryError",
    "RepositoryNotFoundError",
    "RoutingEntry",
    "RoutingRegistryService",
    "RoutingStore",
    "UnknownFieldError",
    "init_registry_storage",
]
