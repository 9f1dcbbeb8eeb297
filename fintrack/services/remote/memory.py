"""
In-Memory Remote Store

A process-local stand-in for the finance backend. It reproduces the
backend's observable behaviour closely enough to drive sessions and flows
without a network:

- server-assigned IDs and server-maintained list totals
- completed_at set on completion, cleared on reopen
- expense materialization on PUT ?create_transactions=true, one expense per
  category of purchased items, deducted from the account when given
- shell duplication (no items copied)
- Idempotency-Key replay: a repeated key returns the first result

For tests it also records every request and can inject failures or hold a
request until released.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from fintrack.models.shopping import (
    Account,
    ListStatus,
    ShoppingItem,
    ShoppingList,
    ShoppingListCreate,
    Transaction,
    TransactionType,
)
from fintrack.services.remote.interface import (
    NotFoundError,
    RemoteStoreError,
    RemoteStoreInterface,
)


@dataclass
class RecordedRequest:
    """One call made against the store."""

    operation: str
    method: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class InMemoryRemoteStore(RemoteStoreInterface):
    """In-memory implementation of the remote store."""

    def __init__(
        self,
        lists: Optional[list[ShoppingList]] = None,
        accounts: Optional[list[Account]] = None,
        today: Optional[date] = None,
    ):
        self._lists: dict[int, ShoppingList] = {}
        self._accounts: dict[int, Account] = {}
        self._transactions: dict[int, Transaction] = {}
        self._idempotent_results: dict[str, Any] = {}
        self._failures: dict[str, list[Exception]] = {}
        self._gates: dict[str, asyncio.Event] = {}
        self._next_list_id = 1
        self._next_item_id = 1
        self._next_transaction_id = 1
        self._today = today
        self.requests: list[RecordedRequest] = []

        for lst in lists or []:
            self.seed_list(lst)
        for account in accounts or []:
            self._accounts[account.id] = account.model_copy(deep=True)

    # -- test hooks ----------------------------------------------------------

    def seed_list(self, lst: ShoppingList) -> ShoppingList:
        """Insert a list as-is, keeping its IDs."""
        stored = lst.model_copy(deep=True)
        self._lists[stored.id] = self._with_totals(stored)
        self._next_list_id = max(self._next_list_id, stored.id + 1)
        for item in stored.items:
            self._next_item_id = max(self._next_item_id, item.id + 1)
        return stored.model_copy(deep=True)

    def fail_next(self, operation: str, error: Optional[Exception] = None) -> None:
        """Make the next call to `operation` raise `error`."""
        self._failures.setdefault(operation, []).append(
            error or RemoteStoreError(f"Injected failure in {operation}", status_code=500)
        )

    def gate(self, operation: str) -> asyncio.Event:
        """Hold calls to `operation` until the returned event is set."""
        event = asyncio.Event()
        self._gates[operation] = event
        return event

    def requests_for(self, operation: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.operation == operation]

    @property
    def transactions(self) -> list[Transaction]:
        return [t.model_copy() for t in self._transactions.values()]

    @property
    def accounts(self) -> dict[int, Account]:
        return {k: v.model_copy() for k, v in self._accounts.items()}

    # -- internals -----------------------------------------------------------

    async def _enter(self, request: RecordedRequest) -> None:
        self.requests.append(request)
        gate = self._gates.get(request.operation)
        if gate is not None:
            await gate.wait()
        pending = self._failures.get(request.operation)
        if pending:
            raise pending.pop(0)

    def _today_date(self) -> date:
        return self._today or date.today()

    def _get(self, list_id: int) -> ShoppingList:
        try:
            return self._lists[list_id]
        except KeyError:
            raise NotFoundError(f"Shopping list not found: {list_id}", status_code=404)

    @staticmethod
    def _with_totals(lst: ShoppingList) -> ShoppingList:
        lst.total_estimated = sum((i.estimated_price for i in lst.items), Decimal("0"))
        lst.total_spent = sum(
            (i.effective_price for i in lst.items if i.is_purchased),
            Decimal("0"),
        )
        return lst

    def _materialize_expenses(self, lst: ShoppingList, account_id: Optional[int]) -> None:
        totals: dict[str, Decimal] = {}
        for item in lst.items:
            if item.is_purchased:
                totals[item.category] = totals.get(item.category, Decimal("0")) + item.effective_price
        if account_id is not None and account_id not in self._accounts:
            raise NotFoundError(f"Account not found: {account_id}", status_code=404)
        for category, amount in totals.items():
            self._record_transaction({
                "description": f"{lst.name} - {category}",
                "category": category,
                "date": self._today_date().isoformat(),
                "amount": amount,
                "type": TransactionType.EXPENSE.value,
                "account_id": account_id,
            })

    def _record_transaction(self, data: dict) -> Transaction:
        transaction = Transaction(id=self._next_transaction_id, **data)
        account = None
        if transaction.account_id is not None:
            account = self._accounts.get(transaction.account_id)
            if account is None:
                raise NotFoundError(f"Account not found: {transaction.account_id}", status_code=404)
        self._next_transaction_id += 1
        self._transactions[transaction.id] = transaction
        if account is not None:
            sign = -1 if transaction.type == TransactionType.EXPENSE else 1
            account.balance = account.balance + sign * transaction.amount
        return transaction

    # -- shopping lists ------------------------------------------------------

    async def list_shopping_lists(
        self,
        status: Optional[ListStatus] = None,
        month: Optional[str] = None,
    ) -> list[ShoppingList]:
        await self._enter(RecordedRequest(
            "list_shopping_lists", "GET", "/shopping-lists",
            params={k: v for k, v in {"status": status, "month": month}.items() if v is not None},
        ))
        return [
            lst.model_copy(deep=True)
            for lst in self._lists.values()
            if (status is None or lst.status == status)
            and (month is None or lst.month == month)
        ]

    async def get_shopping_list(self, list_id: int) -> ShoppingList:
        await self._enter(RecordedRequest("get_shopping_list", "GET", f"/shopping-lists/{list_id}"))
        return self._get(list_id).model_copy(deep=True)

    async def create_shopping_list(self, data: ShoppingListCreate) -> ShoppingList:
        body = data.model_dump(mode="json")
        await self._enter(RecordedRequest("create_shopping_list", "POST", "/shopping-lists", body=body))
        now = datetime.now(timezone.utc)
        lst = ShoppingList(
            id=self._next_list_id,
            name=data.name,
            month=data.month,
            status=data.status,
            created_at=now,
            updated_at=now,
        )
        self._next_list_id += 1
        self._lists[lst.id] = lst
        return lst.model_copy(deep=True)

    async def update_shopping_list(
        self,
        list_id: int,
        data: dict,
        create_transactions: Optional[bool] = None,
        account_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> ShoppingList:
        params = {
            k: v
            for k, v in {"create_transactions": create_transactions, "account_id": account_id}.items()
            if v is not None
        }
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        await self._enter(RecordedRequest(
            "update_shopping_list", "PUT", f"/shopping-lists/{list_id}",
            params=params, body=dict(data), headers=headers,
        ))
        if idempotency_key and idempotency_key in self._idempotent_results:
            return self._idempotent_results[idempotency_key].model_copy(deep=True)

        lst = self._get(list_id)
        updated = lst.model_copy(update={k: v for k, v in data.items() if k in {"name", "month", "status"}})
        updated = ShoppingList.model_validate(updated.model_dump())

        if updated.status == ListStatus.COMPLETED and lst.status != ListStatus.COMPLETED:
            if create_transactions:
                self._materialize_expenses(updated, account_id)
            updated.completed_at = datetime.now(timezone.utc)
        elif updated.status != ListStatus.COMPLETED:
            updated.completed_at = None

        updated.updated_at = datetime.now(timezone.utc)
        self._lists[list_id] = updated
        if idempotency_key:
            self._idempotent_results[idempotency_key] = updated.model_copy(deep=True)
        return updated.model_copy(deep=True)

    async def delete_shopping_list(self, list_id: int) -> None:
        await self._enter(RecordedRequest("delete_shopping_list", "DELETE", f"/shopping-lists/{list_id}"))
        self._get(list_id)
        del self._lists[list_id]

    async def duplicate_shopping_list(
        self,
        list_id: int,
        new_name: str,
        new_month: Optional[str] = None,
    ) -> ShoppingList:
        params = {"new_name": new_name}
        if new_month is not None:
            params["new_month"] = new_month
        await self._enter(RecordedRequest(
            "duplicate_shopping_list", "POST", f"/shopping-lists/{list_id}/duplicate", params=params,
        ))
        self._get(list_id)
        now = datetime.now(timezone.utc)
        copy = ShoppingList(
            id=self._next_list_id,
            name=new_name,
            month=new_month,
            status=ListStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        self._next_list_id += 1
        self._lists[copy.id] = copy
        return copy.model_copy(deep=True)

    # -- items ---------------------------------------------------------------

    async def create_item(self, list_id: int, data: dict) -> ShoppingItem:
        await self._enter(RecordedRequest(
            "create_item", "POST", f"/shopping-lists/{list_id}/items", body=dict(data),
        ))
        lst = self._get(list_id)
        item = ShoppingItem(id=self._next_item_id, shopping_list_id=list_id, **data)
        self._next_item_id += 1
        lst.items.append(item)
        self._with_totals(lst)
        return item.model_copy()

    async def update_item(self, list_id: int, item_id: int, data: dict) -> ShoppingItem:
        await self._enter(RecordedRequest(
            "update_item", "PUT", f"/shopping-lists/{list_id}/items/{item_id}", body=dict(data),
        ))
        lst = self._get(list_id)
        for index, item in enumerate(lst.items):
            if item.id == item_id:
                merged = {**item.model_dump(), **data}
                updated = ShoppingItem.model_validate(merged)
                lst.items[index] = updated
                self._with_totals(lst)
                return updated.model_copy()
        raise NotFoundError(f"Item not found: {item_id}", status_code=404)

    async def delete_item(self, list_id: int, item_id: int) -> None:
        await self._enter(RecordedRequest(
            "delete_item", "DELETE", f"/shopping-lists/{list_id}/items/{item_id}",
        ))
        lst = self._get(list_id)
        remaining = [item for item in lst.items if item.id != item_id]
        if len(remaining) == len(lst.items):
            raise NotFoundError(f"Item not found: {item_id}", status_code=404)
        lst.items = remaining
        self._with_totals(lst)

    # -- ledger --------------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        await self._enter(RecordedRequest("list_accounts", "GET", "/accounts"))
        return [account.model_copy() for account in self._accounts.values()]

    async def create_transaction(
        self,
        data: dict,
        idempotency_key: Optional[str] = None,
    ) -> Transaction:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        await self._enter(RecordedRequest(
            "create_transaction", "POST", "/transactions", body=dict(data), headers=headers,
        ))
        if idempotency_key and idempotency_key in self._idempotent_results:
            return self._idempotent_results[idempotency_key].model_copy()
        transaction = self._record_transaction(dict(data))
        if idempotency_key:
            self._idempotent_results[idempotency_key] = transaction.model_copy()
        return transaction.model_copy()
