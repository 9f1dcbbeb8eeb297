"""
Core Data Models for FinTrack

These models define the schemas for everything exchanged with the finance
backend: shopping lists and their items, accounts and transactions.

They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the JSON shape the backend expects (money as numbers)

Money is held as Decimal in memory and written as a JSON number on the wire.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Categories offered by the new item form. Any other string is accepted.
SUGGESTED_CATEGORIES: tuple[str, ...] = (
    "Frutas",
    "Verduras e Legumes",
    "Carnes e Peixes",
    "Laticínios",
    "Padaria",
    "Bebidas",
    "Limpeza",
    "Higiene Pessoal",
    "Mercearia",
    "Congelados",
    "Outros",
)

DEFAULT_CATEGORY = "Outros"


def _normalize_month(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if not MONTH_PATTERN.match(v):
        raise ValueError(f"Month must be in YYYY-MM format, got {v!r}")
    return v


# =============================================================================
# ENUMS
# =============================================================================

class ListStatus(str, Enum):
    """
    Shopping list status.

    The field holds a single value: a list is never completed and archived
    at the same time.
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TransactionType(str, Enum):
    """Ledger transaction direction."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# SHOPPING LIST AGGREGATE
# =============================================================================

class ShoppingItem(BaseModel):
    """
    A single purchasable entry within a shopping list.

    actual_price stays None until the item is bought; effective_price
    falls back to the estimate in that case.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        ...,
        description="Item ID, unique within its list"
    )
    shopping_list_id: int = Field(
        ...,
        description="Owning list"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    category: str = Field(
        default=DEFAULT_CATEGORY,
        min_length=1,
        max_length=100,
    )
    quantity: str = Field(
        default="",
        max_length=50,
        description="Freeform quantity, e.g. '5kg' or '2 un'"
    )
    estimated_price: Money = Field(
        default=Decimal("0"),
        ge=0,
    )
    actual_price: Optional[Money] = Field(
        default=None,
        ge=0,
        description="Price actually paid, set when purchased"
    )
    is_purchased: bool = False
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    order: int = Field(
        default=0,
        description="Display position within the list"
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_price(self) -> Decimal:
        """Actual price if known, estimated price otherwise."""
        if self.actual_price is not None:
            return self.actual_price
        return self.estimated_price


class ItemDraft(BaseModel):
    """
    Content of the "new item" form before it is submitted.

    Deliberately permissive: an empty name or quantity is representable here
    and rejected by ItemDraftValidator, so the form can hold what the user
    typed while showing the error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    category: str = DEFAULT_CATEGORY
    quantity: str = ""
    estimated_price: Money = Field(
        default=Decimal("0"),
        ge=0,
    )

    def to_create_payload(self, order: int) -> dict:
        """Body for POST /shopping-lists/{id}/items."""
        return {
            "name": self.name,
            "category": self.category or DEFAULT_CATEGORY,
            "quantity": self.quantity,
            "estimated_price": float(self.estimated_price),
            "actual_price": None,
            "is_purchased": False,
            "notes": None,
            "order": order,
        }


class ShoppingList(BaseModel):
    """
    A named, month-scoped shopping list.

    total_estimated and total_spent are maintained by the server and are for
    display only. Client-side totals are always derived from items.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    month: Optional[str] = Field(
        default=None,
        description="Month the list belongs to, YYYY-MM"
    )
    status: ListStatus = ListStatus.ACTIVE
    total_estimated: Money = Decimal("0")
    total_spent: Money = Decimal("0")
    items: list[ShoppingItem] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('month', mode='before')
    @classmethod
    def validate_month(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_month(v)

    def estimated_total(self) -> Decimal:
        """Sum of estimated prices of all items."""
        return sum((item.estimated_price for item in self.items), Decimal("0"))

    def spent_total(self) -> Decimal:
        """Sum of effective prices of purchased items."""
        return sum(
            (item.effective_price for item in self.items if item.is_purchased),
            Decimal("0"),
        )


class ShoppingListCreate(BaseModel):
    """Body for POST /shopping-lists."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    month: Optional[str] = None
    status: ListStatus = ListStatus.ACTIVE
    total_estimated: Money = Decimal("0")
    total_spent: Money = Decimal("0")
    items: list[dict] = Field(default_factory=list)

    @field_validator('month', mode='before')
    @classmethod
    def validate_month(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_month(v)


# =============================================================================
# LEDGER (external aggregates)
# =============================================================================

class Account(BaseModel):
    """Bank account, owned by the backend. Used as expense deduction target."""

    id: int
    name: str = ""
    bank: str = ""
    balance: Money = Decimal("0")
    investments: Money = Decimal("0")
    color: Optional[str] = None


class Transaction(BaseModel):
    """Ledger entry, owned by the backend."""

    id: int
    description: str
    category: str
    date: date
    amount: Money
    type: TransactionType
    account_id: Optional[int] = None


class ExpenseDraft(BaseModel):
    """
    One materialized expense, aggregated from the purchased items of a
    single category.
    """

    category: str
    amount: Money = Field(..., ge=0)
    item_count: int = Field(..., ge=1)
    description: str
    account_id: Optional[int] = None

    def to_transaction_payload(self, on: date) -> dict:
        """Body for POST /transactions. account_id is only sent when set."""
        payload = {
            "description": self.description,
            "category": self.category,
            "date": on.isoformat(),
            "amount": float(self.amount),
            "type": TransactionType.EXPENSE.value,
        }
        if self.account_id is not None:
            payload["account_id"] = self.account_id
        return payload


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
    )


class ValidationResult(BaseModel):
    """Result of validating a form before it reaches the backend."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    def summary(self) -> str:
        """One line suitable for a toast."""
        return "; ".join(issue.message for issue in self.issues if issue.severity == "error")
