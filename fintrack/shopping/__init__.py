"""Shopping list workflows: item mutations, grouping and completion."""

from fintrack.shopping.commands import (
    AddItemCommand,
    DeleteItemCommand,
    ItemCommand,
    TogglePurchasedCommand,
    UpdateItemCommand,
)
from fintrack.shopping.completion import (
    Closed,
    CompletionDialog,
    CompletionFailedError,
    CompletionResult,
    CompletionWorkflow,
    Confirming,
    DialogState,
    ExpenseMode,
    Failed,
    InvalidDialogStateError,
    Submitting,
    idempotency_key,
    plan_expenses,
)
from fintrack.shopping.grouping import (
    category_progress,
    category_totals,
    group_by_category,
    overall_progress,
    purchased_totals_by_category,
    toggle_category,
)
from fintrack.shopping.session import ListDetailSession, MutationOutcome
from fintrack.shopping.state import LocalListState
from fintrack.shopping.status import (
    InvalidTransitionError,
    archive_target,
    can_transition,
    ensure_transition,
)

__all__ = [
    # Commands
    "AddItemCommand",
    "DeleteItemCommand",
    "ItemCommand",
    "TogglePurchasedCommand",
    "UpdateItemCommand",
    # Completion
    "Closed",
    "CompletionDialog",
    "CompletionFailedError",
    "CompletionResult",
    "CompletionWorkflow",
    "Confirming",
    "DialogState",
    "ExpenseMode",
    "Failed",
    "InvalidDialogStateError",
    "Submitting",
    "idempotency_key",
    "plan_expenses",
    # Grouping
    "category_progress",
    "category_totals",
    "group_by_category",
    "overall_progress",
    "purchased_totals_by_category",
    "toggle_category",
    # Session
    "ListDetailSession",
    "LocalListState",
    "MutationOutcome",
    # Status
    "InvalidTransitionError",
    "archive_target",
    "can_transition",
    "ensure_transition",
]
