"""External collaborators: repository host, messaging network, inbox index."""

from .did_resolver import DidResolver
from .index import HttpInboxIndex, InboxIndex, InMemoryInboxIndex
from .messaging import (
    InboxState,
    InMemoryMessagingNetwork,
    Installation,
    InstallationSource,
    MessagingNetworkClient,
)
from .repository import (
    AtprotoRepositoryClient,
    InMemoryRepository,
    RepositoryCredential,
    RepositoryError,
    RepositoryService,
)

__all__ = [
    "DidResolver",
    "RepositoryService",
    "RepositoryCredential",
    "RepositoryError",
    "AtprotoRepositoryClient",
    "InMemoryRepository",
    "InstallationSource",
    "Installation",
    "InboxState",
    "MessagingNetworkClient",
    "InMemoryMessagingNetwork",
    "InboxIndex",
    "HttpInboxIndex",
    "InMemoryInboxIndex",
]
