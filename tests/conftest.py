"""
Shared fixtures.

No test talks to a real backend: sessions and flows run against the
in-memory store, the HTTP client against httpx.MockTransport.
"""

from datetime import date
from decimal import Decimal

import pytest

from fintrack.audit import AuditLogger
from fintrack.context import Notifier
from fintrack.models.shopping import Account, ListStatus, ShoppingItem, ShoppingList
from fintrack.services.remote import InMemoryRemoteStore

TODAY = date(2025, 3, 15)


def make_item(
    item_id: int,
    name: str,
    category: str = "Outros",
    estimated: str = "10",
    actual: str = None,
    purchased: bool = False,
    order: int = 0,
    list_id: int = 1,
) -> ShoppingItem:
    return ShoppingItem(
        id=item_id,
        shopping_list_id=list_id,
        name=name,
        category=category,
        quantity="1 un",
        estimated_price=Decimal(estimated),
        actual_price=Decimal(actual) if actual is not None else None,
        is_purchased=purchased,
        order=order,
    )


@pytest.fixture
def groceries() -> ShoppingList:
    """
    Frutas: two purchased items (10, 20) and one not purchased.
    Limpeza: one purchased item (estimated 15, actual 12).
    """
    return ShoppingList(
        id=1,
        name="Mercado",
        month="2025-03",
        status=ListStatus.ACTIVE,
        items=[
            make_item(1, "Banana", "Frutas", "10", purchased=True, order=0),
            make_item(2, "Maçã", "Frutas", "20", purchased=True, order=1),
            make_item(3, "Detergente", "Limpeza", "15", actual="12", purchased=True, order=2),
            make_item(4, "Uva", "Frutas", "8", order=3),
        ],
    )


@pytest.fixture
def account() -> Account:
    return Account(id=7, name="Conta Corrente", bank="Banco", balance=Decimal("1000"))


@pytest.fixture
def store(groceries, account) -> InMemoryRemoteStore:
    return InMemoryRemoteStore(lists=[groceries], accounts=[account], today=TODAY)


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(buffer_size=100)


@pytest.fixture
def invalidations() -> list:
    return []
