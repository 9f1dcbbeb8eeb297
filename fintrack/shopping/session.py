"""
List Detail Session

Drives item mutations for one open shopping list:

1. apply the command to local state (the UI updates immediately)
2. await the remote call
3. on success fold the server answer in, notify, invalidate caches
4. on failure invert the command and notify

Remote failures never escape a mutation; the caller receives a
MutationOutcome instead. Local validation failures are raised before
anything is applied.

Mutations may overlap. Nothing here serializes them: each one rolls back
only its own change. After close(), late results are discarded.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional
from uuid import UUID

import structlog

from fintrack.audit import AuditLogger, create_correlation_id
from fintrack.context import Notifier
from fintrack.models.shopping import ItemDraft, ShoppingItem, ShoppingList
from fintrack.services.remote import RemoteStoreError, RemoteStoreInterface
from fintrack.shopping.commands import (
    AddItemCommand,
    DeleteItemCommand,
    ItemCommand,
    TogglePurchasedCommand,
    UpdateItemCommand,
)
from fintrack.shopping.grouping import (
    category_progress,
    category_totals,
    group_by_category,
    overall_progress,
    toggle_category,
)
from fintrack.shopping.state import LocalListState
from fintrack.validation import ItemDraftValidator, ItemValidationError

InvalidateCallback = Callable[[tuple[str, ...]], None]

SHOPPING_LISTS_KEY = "shopping-lists"


@dataclass
class MutationOutcome:
    """What happened to one mutation."""

    command: ItemCommand
    applied: bool
    succeeded: bool = False
    result: Any = None
    error: Optional[RemoteStoreError] = None
    discarded: bool = False
    correlation_id: Optional[UUID] = None


class ListDetailSession:
    """
    Owns the local reconciliation state of one shopping list.

    Construct it from the list as last fetched; call sync() whenever a fresh
    server snapshot arrives.
    """

    def __init__(
        self,
        shopping_list: ShoppingList,
        store: RemoteStoreInterface,
        notifier: Optional[Notifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_invalidate: Optional[InvalidateCallback] = None,
        validator: Optional[ItemDraftValidator] = None,
        default_category: Optional[str] = None,
    ):
        self._list = shopping_list
        self._store = store
        self._notifier = notifier or Notifier()
        self._audit = audit_logger
        self._on_invalidate = on_invalidate
        self._validator = validator or ItemDraftValidator()
        self._logger = structlog.get_logger("fintrack.session").bind(list_id=shopping_list.id)
        self._closed = False
        if default_category:
            self.state = LocalListState.from_list(shopping_list, default_category=default_category)
        else:
            self.state = LocalListState.from_list(shopping_list)

    # -- snapshot ------------------------------------------------------------

    @property
    def list_id(self) -> int:
        return self._list.id

    @property
    def shopping_list(self) -> ShoppingList:
        """The list as last received from the server."""
        return self._list

    @property
    def items(self) -> list[ShoppingItem]:
        return list(self.state.items)

    @property
    def closed(self) -> bool:
        return self._closed

    def sync(self, shopping_list: ShoppingList) -> None:
        """Adopt a fresh server snapshot, dropping local projections."""
        self._list = shopping_list
        self.state.load_items(shopping_list.items)

    def snapshot(self) -> ShoppingList:
        """The list with local items and purchased flags, for completion."""
        return self._list.model_copy(update={"items": self.items})

    def close(self) -> None:
        self._closed = True
        self._logger.debug("session_closed", in_flight=len(self.state.pending_ids))

    # -- derived view --------------------------------------------------------

    def grouped(self) -> dict[str, list[ShoppingItem]]:
        return group_by_category(self.state.items)

    def category_progress(self, category: str) -> tuple[int, int]:
        return category_progress(self.grouped().get(category, []), self.state.purchased_ids)

    def category_totals(self) -> dict[str, tuple[Decimal, Decimal]]:
        return category_totals(self.state.items, self.state.purchased_ids)

    @property
    def progress(self) -> float:
        return overall_progress(len(self.state.items), self.state.purchased_count)

    def is_pending(self, item_id: int) -> bool:
        return item_id in self.state.pending_ids

    # -- form ----------------------------------------------------------------

    def open_form(self) -> None:
        self.state.form_open = True

    def cancel_form(self) -> None:
        self.state.reset_draft()
        self.state.form_open = False

    def edit_draft(self, **fields: Any) -> ItemDraft:
        self.state.draft = ItemDraft.model_validate({**self.state.draft.model_dump(), **fields})
        return self.state.draft

    def toggle_category(self, category: str) -> bool:
        """Expand or collapse a category. Returns True if now expanded."""
        self.state.expanded_categories = set(
            toggle_category(self.state.expanded_categories, category)
        )
        return category in self.state.expanded_categories

    def settle_feedback(self, item_ids: Optional[Iterable[int]] = None) -> None:
        """Clear the pending visual feedback of the given items (all by default)."""
        if item_ids is None:
            self.state.pending_ids.clear()
        else:
            self.state.pending_ids.difference_update(item_ids)

    # -- mutations -----------------------------------------------------------

    async def add_item(self, draft: Optional[ItemDraft] = None) -> MutationOutcome:
        """
        Submit the new item form (or an explicit draft).

        Raises:
            ItemValidationError: name or quantity missing. Nothing is sent
                and the form keeps its content.
        """
        draft = draft if draft is not None else self.state.draft
        try:
            self._validator.ensure_valid(draft)
        except ItemValidationError as e:
            self.state.draft = draft
            self.state.form_open = True
            self._notifier.error(e.user_message)
            if self._audit:
                self._audit.log_validation_failed(
                    self.list_id,
                    [issue.model_dump() for issue in e.issues],
                    create_correlation_id(),
                )
            raise
        return await self.execute(AddItemCommand(draft))

    async def toggle_purchased(self, item_id: int) -> MutationOutcome:
        return await self.execute(TogglePurchasedCommand(item_id))

    async def delete_item(self, item_id: int) -> MutationOutcome:
        return await self.execute(DeleteItemCommand(item_id))

    async def update_item(self, item_id: int, **fields: Any) -> MutationOutcome:
        return await self.execute(UpdateItemCommand(item_id, **fields))

    async def execute(self, command: ItemCommand) -> MutationOutcome:
        """Apply, commit, then reconcile or invert a command."""
        correlation_id = create_correlation_id()
        outcome = MutationOutcome(command=command, applied=False, correlation_id=correlation_id)

        if self._closed:
            self._logger.debug("mutation_ignored_after_close", command=command.describe())
            outcome.discarded = True
            return outcome

        if not command.apply(self.state):
            self._logger.debug("mutation_not_applicable", command=command.describe())
            return outcome
        outcome.applied = True

        try:
            result = await command.commit(self._store, self.list_id)
        except RemoteStoreError as e:
            outcome.error = e
            if self._closed:
                outcome.discarded = True
                return outcome
            self.state.pending_ids.discard(command.item_id)
            command.invert(self.state)
            self._logger.warning(
                "mutation_reverted",
                command=command.describe(),
                error=str(e),
                status_code=e.status_code,
            )
            if self._audit:
                self._audit_revert(command, e, correlation_id)
            self._notifier.error(command.failure_message)
            return outcome

        outcome.result = result
        outcome.succeeded = True
        if self._closed:
            outcome.discarded = True
            return outcome

        self.state.pending_ids.discard(command.item_id)
        command.reconcile(self.state, result)
        self._logger.info("mutation_committed", command=command.describe())
        if self._audit:
            self._audit_commit(command, correlation_id)
        if command.success_message:
            self._notifier.success(command.success_message)
        if self._on_invalidate:
            self._on_invalidate((SHOPPING_LISTS_KEY,))
        return outcome

    # -- audit helpers -------------------------------------------------------

    def _audit_commit(self, command: ItemCommand, correlation_id: UUID) -> None:
        if isinstance(command, AddItemCommand):
            self._audit.log_item_added(
                self.list_id, command.item_id, command.draft.name,
                command.draft.category, correlation_id,
            )
            return
        details = {"shopping_list_id": self.list_id}
        if isinstance(command, TogglePurchasedCommand):
            details["is_purchased"] = command.will_be_purchased
        self._audit.log_committed(
            command.committed_event,
            command.item_id,
            f"{command.committed_event.value.replace('_', ' ').capitalize()}",
            correlation_id,
            details,
        )

    def _audit_revert(self, command: ItemCommand, error: RemoteStoreError, correlation_id: UUID) -> None:
        if isinstance(command, AddItemCommand):
            self._audit.log_item_add_failed(self.list_id, command.draft.name, str(error), correlation_id)
            return
        self._audit.log_reverted(
            command.reverted_event,
            command.item_id,
            f"Rolled back {type(command).__name__}",
            str(error),
            correlation_id,
        )
