"""
Remote Store Package

Abstract interface to the finance backend, with an httpx implementation
and an in-memory one.
"""

from fintrack.services.remote.interface import (
    NotFoundError,
    RemoteConnectionError,
    RemoteResponseError,
    RemoteStoreError,
    RemoteStoreInterface,
    UnauthorizedError,
)
from fintrack.services.remote.http_client import (
    FinanceApiClient,
    HttpRemoteStore,
    TokenProvider,
)
from fintrack.services.remote.memory import (
    InMemoryRemoteStore,
    RecordedRequest,
)

__all__ = [
    # Interface
    "RemoteStoreInterface",
    # Exceptions
    "NotFoundError",
    "RemoteConnectionError",
    "RemoteResponseError",
    "RemoteStoreError",
    "UnauthorizedError",
    # HTTP implementation
    "FinanceApiClient",
    "HttpRemoteStore",
    "TokenProvider",
    # In-memory implementation
    "InMemoryRemoteStore",
    "RecordedRequest",
]
