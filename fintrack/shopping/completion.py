"""
List Completion and Expense Materialization

Completing a list turns shopping activity into ledger entries. With
create_transactions set, the purchased items are grouped by category and
each category becomes one expense, optionally deducted from an account.

Two materialization modes:

- "server": one PUT /shopping-lists/{id}?create_transactions=true
  [&account_id=N]. The backend creates the expenses and completes the list
  in one step.
- "client": one POST /transactions per category, then the status PUT with no
  query parameters. The status is only sent once every expense exists, so a
  completed list never lacks its expenses.

Either way, a failure leaves the list active and surfaces one
CompletionFailedError. Each attempt carries an Idempotency-Key derived from
the list, the plan and the account, so a retry with the same inputs is
recognisable by the backend.
"""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date
from typing import Annotated, Iterable, Literal, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field

from fintrack.audit import AuditLogger, create_correlation_id
from fintrack.errors import FinTrackError
from fintrack.models.shopping import (
    ExpenseDraft,
    ListStatus,
    ShoppingItem,
    ShoppingList,
    Transaction,
)
from fintrack.services.remote import RemoteStoreError, RemoteStoreInterface
from fintrack.shopping.grouping import purchased_totals_by_category
from fintrack.shopping.status import InvalidTransitionError, ensure_transition

ExpenseMode = Literal["server", "client"]

logger = structlog.get_logger(__name__)


class CompletionFailedError(FinTrackError):
    """Completing a list failed; the list is still active."""

    user_message = "Error completing list"

    def __init__(self, message: str, expenses_created: int = 0, user_message: Optional[str] = None):
        super().__init__(message, user_message)
        self.expenses_created = expenses_created


# =============================================================================
# EXPENSE PLAN
# =============================================================================

def expense_description(list_name: str, category: str) -> str:
    return f"{list_name} - {category}"


def plan_expenses(
    list_name: str,
    items: Iterable[ShoppingItem],
    account_id: Optional[int] = None,
) -> list[ExpenseDraft]:
    """
    One expense per category with at least one purchased item.

    amount = sum of (actual_price, else estimated_price) over the category's
    purchased items. Unpurchased items never contribute. Categories come out
    in order of first appearance.
    """
    items = list(items)
    counts: dict[str, int] = {}
    for item in items:
        if item.is_purchased:
            counts[item.category] = counts.get(item.category, 0) + 1

    return [
        ExpenseDraft(
            category=category,
            amount=amount,
            item_count=counts[category],
            description=expense_description(list_name, category),
            account_id=account_id,
        )
        for category, amount in purchased_totals_by_category(items).items()
    ]


def idempotency_key(list_id: int, plan: list[ExpenseDraft], account_id: Optional[int]) -> str:
    """Stable key for one completion attempt with these inputs."""
    canonical = json.dumps(
        {
            "list_id": list_id,
            "account_id": account_id,
            "plan": [[d.category, str(d.amount), d.item_count] for d in plan],
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:32]
    return f"complete-{list_id}-{digest}"


# =============================================================================
# WORKFLOW
# =============================================================================

@dataclass
class CompletionResult:
    """A successfully completed list and the expenses it produced."""

    shopping_list: ShoppingList
    plan: list[ExpenseDraft] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    mode: Optional[ExpenseMode] = None
    idempotency_key: Optional[str] = None

    @property
    def expense_count(self) -> int:
        return len(self.plan)


class CompletionWorkflow:
    """Completes a list, optionally materializing its expenses."""

    def __init__(
        self,
        store: RemoteStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        expense_mode: ExpenseMode = "server",
        today: Optional[date] = None,
    ):
        self._store = store
        self._audit = audit_logger
        self._mode = expense_mode
        self._today = today

    @property
    def expense_mode(self) -> ExpenseMode:
        return self._mode

    async def complete_list(
        self,
        shopping_list: ShoppingList,
        create_transactions: bool = True,
        account_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CompletionResult:
        """
        Mark an active list completed.

        Args:
            shopping_list: The list with its current local items
            create_transactions: Materialize one expense per category
            account_id: Account the expenses are deducted from; None records
                the expenses without touching any balance

        Raises:
            InvalidTransitionError: The list is not active
            CompletionFailedError: Any remote step failed
        """
        correlation_id = correlation_id or create_correlation_id()
        ensure_transition(shopping_list.status, ListStatus.COMPLETED)

        if not create_transactions:
            updated = await self._mark_completed(shopping_list, correlation_id, expenses_created=0)
            if self._audit:
                self._audit.log_list_completed(shopping_list.id, 0, None, correlation_id)
            return CompletionResult(shopping_list=updated)

        plan = plan_expenses(shopping_list.name, shopping_list.items, account_id)
        key = idempotency_key(shopping_list.id, plan, account_id)
        if self._audit:
            self._audit.log_expenses_planned(
                shopping_list.id,
                {draft.category: draft.amount for draft in plan},
                account_id,
                correlation_id,
            )

        if self._mode == "server":
            updated = await self._mark_completed(
                shopping_list,
                correlation_id,
                expenses_created=0,
                create_transactions=True,
                account_id=account_id,
                key=key,
            )
            result = CompletionResult(
                shopping_list=updated, plan=plan, mode="server", idempotency_key=key,
            )
        else:
            transactions = await self._create_expenses(shopping_list, plan, key, correlation_id)
            updated = await self._mark_completed(
                shopping_list,
                correlation_id,
                expenses_created=len(transactions),
                key=key,
            )
            result = CompletionResult(
                shopping_list=updated,
                plan=plan,
                transactions=transactions,
                mode="client",
                idempotency_key=key,
            )

        if self._audit:
            self._audit.log_list_completed(shopping_list.id, len(plan), account_id, correlation_id)
        return result

    async def _create_expenses(
        self,
        shopping_list: ShoppingList,
        plan: list[ExpenseDraft],
        key: str,
        correlation_id: UUID,
    ) -> list[Transaction]:
        on = self._today or date.today()
        created: list[Transaction] = []
        for index, draft in enumerate(plan):
            try:
                transaction = await self._store.create_transaction(
                    draft.to_transaction_payload(on),
                    idempotency_key=f"{key}-{index}",
                )
            except RemoteStoreError as e:
                raise self._failed(shopping_list, e, len(created), correlation_id) from e
            created.append(transaction)
            if self._audit:
                self._audit.log_expense_created(
                    shopping_list.id, transaction.id, draft.category,
                    draft.amount, draft.account_id, correlation_id,
                )
        return created

    async def _mark_completed(
        self,
        shopping_list: ShoppingList,
        correlation_id: UUID,
        expenses_created: int,
        create_transactions: Optional[bool] = None,
        account_id: Optional[int] = None,
        key: Optional[str] = None,
    ) -> ShoppingList:
        try:
            return await self._store.update_shopping_list(
                shopping_list.id,
                {"status": ListStatus.COMPLETED.value},
                create_transactions=create_transactions,
                account_id=account_id,
                idempotency_key=key,
            )
        except RemoteStoreError as e:
            raise self._failed(shopping_list, e, expenses_created, correlation_id) from e

    def _failed(
        self,
        shopping_list: ShoppingList,
        error: RemoteStoreError,
        expenses_created: int,
        correlation_id: UUID,
    ) -> CompletionFailedError:
        logger.warning(
            "list_completion_failed",
            list_id=shopping_list.id,
            expenses_created=expenses_created,
            error=str(error),
        )
        if self._audit:
            self._audit.log_completion_failed(
                shopping_list.id, expenses_created, str(error), correlation_id,
            )
        if expenses_created:
            user_message = (
                f"Error completing list: {expenses_created} expense(s) were recorded "
                "but the list is still active. Try again to finish."
            )
        else:
            user_message = "Error completing list"
        return CompletionFailedError(
            f"Completion of list {shopping_list.id} failed: {error}",
            expenses_created=expenses_created,
            user_message=user_message,
        )


# =============================================================================
# DIALOG STATE
# =============================================================================

class _DialogState(BaseModel):
    model_config = ConfigDict(frozen=True)


class Closed(_DialogState):
    kind: Literal["closed"] = "closed"


class Confirming(_DialogState):
    """Open, waiting for the user. Defaults: record expenses, no account."""

    kind: Literal["confirming"] = "confirming"
    create_transactions: bool = True
    account_id: Optional[int] = None


class Submitting(_DialogState):
    kind: Literal["submitting"] = "submitting"
    create_transactions: bool
    account_id: Optional[int] = None


class Failed(_DialogState):
    """Submission failed; the user may retry with the same choices."""

    kind: Literal["failed"] = "failed"
    reason: str
    create_transactions: bool = True
    account_id: Optional[int] = None


DialogState = Annotated[
    Union[Closed, Confirming, Submitting, Failed],
    Field(discriminator="kind"),
]


class CompletionDialog:
    """
    State machine behind the "complete list" dialog.

        Closed --open--> Confirming --submit--> Submitting --succeed--> Closed
                             ^                      |
                             +------ choose --- Failed <--fail--+
    """

    def __init__(self) -> None:
        self.state: DialogState = Closed()

    @property
    def is_open(self) -> bool:
        return not isinstance(self.state, Closed)

    @property
    def is_busy(self) -> bool:
        return isinstance(self.state, Submitting)

    def open(self, shopping_list: ShoppingList) -> Confirming:
        ensure_transition(shopping_list.status, ListStatus.COMPLETED)
        self.state = Confirming()
        return self.state

    def choose(
        self,
        create_transactions: bool,
        account_id: Optional[int] = None,
    ) -> Confirming:
        """Record the user's choices. The account only applies when recording expenses."""
        if not isinstance(self.state, (Confirming, Failed)):
            raise InvalidDialogStateError(self.state, "choose")
        self.state = Confirming(
            create_transactions=create_transactions,
            account_id=account_id if create_transactions else None,
        )
        return self.state

    def submit(self) -> Submitting:
        if not isinstance(self.state, (Confirming, Failed)):
            raise InvalidDialogStateError(self.state, "submit")
        self.state = Submitting(
            create_transactions=self.state.create_transactions,
            account_id=self.state.account_id,
        )
        return self.state

    def fail(self, reason: str) -> Failed:
        if not isinstance(self.state, Submitting):
            raise InvalidDialogStateError(self.state, "fail")
        self.state = Failed(
            reason=reason,
            create_transactions=self.state.create_transactions,
            account_id=self.state.account_id,
        )
        return self.state

    def succeed(self) -> Closed:
        if not isinstance(self.state, Submitting):
            raise InvalidDialogStateError(self.state, "succeed")
        self.state = Closed()
        return self.state

    def cancel(self) -> Closed:
        if isinstance(self.state, Submitting):
            raise InvalidDialogStateError(self.state, "cancel")
        self.state = Closed()
        return self.state


class InvalidDialogStateError(FinTrackError):
    """A dialog action that doesn't apply to the dialog's current state."""

    def __init__(self, state: _DialogState, action: str):
        super().__init__(f"Cannot {action} while the completion dialog is {state.kind}")
        self.state = state
        self.action = action


__all__ = [
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
    "InvalidTransitionError",
    "Submitting",
    "expense_description",
    "idempotency_key",
    "plan_expenses",
]
