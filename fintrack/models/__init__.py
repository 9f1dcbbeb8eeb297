"""
Data Models Package

This package contains all Pydantic models used in FinTrack.
All data exchanged with the backend must conform to these schemas.
"""

from fintrack.models.shopping import (
    DEFAULT_CATEGORY,
    SUGGESTED_CATEGORIES,
    Account,
    ExpenseDraft,
    ItemDraft,
    ListStatus,
    ShoppingItem,
    ShoppingList,
    ShoppingListCreate,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Shopping models
    "DEFAULT_CATEGORY",
    "SUGGESTED_CATEGORIES",
    "Account",
    "ExpenseDraft",
    "ItemDraft",
    "ListStatus",
    "ShoppingItem",
    "ShoppingList",
    "ShoppingListCreate",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
