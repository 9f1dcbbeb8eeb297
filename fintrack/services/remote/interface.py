"""
Abstract Remote Store Interface

The finance backend owns shopping lists, items, accounts and transactions.
Business logic only talks to it through this interface, so that:
1. The HTTP client can be replaced by an in-memory store in tests
2. Failures can be injected around any call
3. Sessions stay decoupled from transport details

The operations mirror the backend's REST endpoints one to one.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fintrack.errors import FinTrackError
from fintrack.models.shopping import (
    Account,
    ListStatus,
    ShoppingItem,
    ShoppingList,
    ShoppingListCreate,
    Transaction,
)


class RemoteStoreInterface(ABC):
    """
    Abstract interface for the finance backend.

    Every method is a single request. Implementations raise a
    RemoteStoreError subclass for any non-success outcome.
    """

    # -- shopping lists ------------------------------------------------------

    @abstractmethod
    async def list_shopping_lists(
        self,
        status: Optional[ListStatus] = None,
        month: Optional[str] = None,
    ) -> list[ShoppingList]:
        """
        GET /shopping-lists?status&month

        Args:
            status: Only lists with this status
            month: Only lists for this YYYY-MM month
        """

    @abstractmethod
    async def get_shopping_list(self, list_id: int) -> ShoppingList:
        """
        GET /shopping-lists/{id}

        Raises:
            NotFoundError: If the list doesn't exist
        """

    @abstractmethod
    async def create_shopping_list(self, data: ShoppingListCreate) -> ShoppingList:
        """POST /shopping-lists"""

    @abstractmethod
    async def update_shopping_list(
        self,
        list_id: int,
        data: dict,
        create_transactions: Optional[bool] = None,
        account_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> ShoppingList:
        """
        PUT /shopping-lists/{id}?create_transactions&account_id

        Args:
            list_id: List to update
            data: Partial list fields
            create_transactions: Ask the backend to materialize one expense
                per category of purchased items. Omitted from the request
                when None.
            account_id: Account to deduct the expenses from. Omitted from
                the request when None.
            idempotency_key: Sent as the Idempotency-Key header when set
        """

    @abstractmethod
    async def delete_shopping_list(self, list_id: int) -> None:
        """DELETE /shopping-lists/{id}"""

    @abstractmethod
    async def duplicate_shopping_list(
        self,
        list_id: int,
        new_name: str,
        new_month: Optional[str] = None,
    ) -> ShoppingList:
        """POST /shopping-lists/{id}/duplicate?new_name&new_month"""

    # -- items ---------------------------------------------------------------

    @abstractmethod
    async def create_item(self, list_id: int, data: dict) -> ShoppingItem:
        """POST /shopping-lists/{id}/items"""

    @abstractmethod
    async def update_item(self, list_id: int, item_id: int, data: dict) -> ShoppingItem:
        """PUT /shopping-lists/{id}/items/{itemId}"""

    @abstractmethod
    async def delete_item(self, list_id: int, item_id: int) -> None:
        """DELETE /shopping-lists/{id}/items/{itemId}"""

    # -- ledger --------------------------------------------------------------

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """GET /accounts"""

    @abstractmethod
    async def create_transaction(
        self,
        data: dict,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        """POST /transactions"""

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""


class RemoteStoreError(FinTrackError):
    """Base exception for remote store operations."""

    user_message = "Could not reach the server"

    def __init__(self, message: str = "", status_code: Optional[int] = None, user_message: Optional[str] = None):
        super().__init__(message, user_message)
        self.status_code = status_code


class RemoteConnectionError(RemoteStoreError):
    """Could not connect to the backend (network, timeout)."""


class NotFoundError(RemoteStoreError):
    """Entity not found on the backend."""

    user_message = "Not found"


class UnauthorizedError(RemoteStoreError):
    """The backend rejected the session token."""

    user_message = "Your session has expired, please log in again"


class RemoteResponseError(RemoteStoreError):
    """The backend answered with a non-success status."""
