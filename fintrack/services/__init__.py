"""Services package."""

from fintrack.services.remote import (
    FinanceApiClient,
    HttpRemoteStore,
    InMemoryRemoteStore,
    NotFoundError,
    RecordedRequest,
    RemoteConnectionError,
    RemoteResponseError,
    RemoteStoreError,
    RemoteStoreInterface,
    TokenProvider,
    UnauthorizedError,
)

__all__ = [
    # Remote store
    "FinanceApiClient",
    "HttpRemoteStore",
    "InMemoryRemoteStore",
    "RecordedRequest",
    "RemoteStoreInterface",
    "TokenProvider",
    # Exceptions
    "NotFoundError",
    "RemoteConnectionError",
    "RemoteResponseError",
    "RemoteStoreError",
    "UnauthorizedError",
]
