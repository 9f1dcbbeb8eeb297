"""
Main Orchestrator for FinTrack

Ties the components together and defines the list-level flows:
1. Browse (fetch, filter, summarize)
2. Lifecycle (create, rename, change month, reopen, archive, duplicate, delete)
3. Completion (dialog → plan → materialize expenses → completed)

Item edits inside an open list go through a ListDetailSession, created here
so it shares the flow's notifier, audit logger and cache invalidation.

Every operation notifies the user. Failures are notified and then re-raised,
so the caller can keep a dialog or form open.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

import httpx
import structlog

from fintrack.audit import AuditLogger, configure_logging, create_correlation_id
from fintrack.config import get_settings
from fintrack.context import AppContext, Notifier
from fintrack.errors import FinTrackError
from fintrack.models.audit import AuditEventType
from fintrack.models.shopping import (
    Account,
    ListStatus,
    ShoppingList,
    ShoppingListCreate,
)
from fintrack.services.remote import (
    FinanceApiClient,
    HttpRemoteStore,
    InMemoryRemoteStore,
    RemoteStoreError,
    RemoteStoreInterface,
)
from fintrack.shopping.completion import (
    CompletionDialog,
    CompletionFailedError,
    CompletionResult,
    CompletionWorkflow,
    ExpenseMode,
    Submitting,
)
from fintrack.shopping.session import (
    SHOPPING_LISTS_KEY,
    InvalidateCallback,
    ListDetailSession,
)
from fintrack.shopping.status import (
    InvalidTransitionError,
    archive_target,
    ensure_transition,
)
from fintrack.validation import (
    ListValidationError,
    current_month,
    validate_list_name,
    validate_month,
)

TRANSACTIONS_KEY = "transactions"
ACCOUNTS_KEY = "accounts"


@dataclass(frozen=True)
class ListSummary:
    """List counts for the status filter bar."""

    total: int = 0
    active: int = 0
    completed: int = 0
    archived: int = 0

    def count(self, status: Optional[ListStatus] = None) -> int:
        if status is None:
            return self.total
        return getattr(self, status.value)


def summarize_lists(lists: Iterable[ShoppingList]) -> ListSummary:
    counts = {status: 0 for status in ListStatus}
    for lst in lists:
        counts[lst.status] += 1
    return ListSummary(
        total=sum(counts.values()),
        active=counts[ListStatus.ACTIVE],
        completed=counts[ListStatus.COMPLETED],
        archived=counts[ListStatus.ARCHIVED],
    )


class ShoppingListFlow:
    """
    Orchestrates everything done to shopping lists as a whole.

    Status changes follow the lifecycle in fintrack.shopping.status and are
    checked before any request is sent.
    """

    def __init__(
        self,
        store: RemoteStoreInterface,
        notifier: Optional[Notifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_invalidate: Optional[InvalidateCallback] = None,
        expense_mode: Optional[ExpenseMode] = None,
        default_category: Optional[str] = None,
        duplicate_suffix: Optional[str] = None,
        today: Optional[date] = None,
    ):
        shopping = get_settings().shopping
        self._store = store
        self._notifier = notifier or Notifier()
        self._audit_logger = audit_logger
        self._on_invalidate = on_invalidate
        self._default_category = default_category or shopping.default_category
        self._duplicate_suffix = (
            duplicate_suffix if duplicate_suffix is not None else shopping.duplicate_suffix
        )
        self._today = today
        self._completion = CompletionWorkflow(
            store,
            audit_logger=audit_logger,
            expense_mode=expense_mode or shopping.expense_mode,
            today=today,
        )
        self._logger = structlog.get_logger("fintrack.flow")

    @property
    def store(self) -> RemoteStoreInterface:
        return self._store

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def expense_mode(self) -> ExpenseMode:
        return self._completion.expense_mode

    # -- browse --------------------------------------------------------------

    async def fetch_lists(
        self,
        status: Optional[ListStatus] = None,
        month: Optional[str] = None,
    ) -> list[ShoppingList]:
        return await self._store.list_shopping_lists(status=status, month=validate_month(month))

    async def get_list(self, list_id: int) -> ShoppingList:
        return await self._store.get_shopping_list(list_id)

    async def fetch_accounts(self) -> list[Account]:
        """Accounts the completion dialog offers as deduction targets."""
        return await self._store.list_accounts()

    def summarize_lists(self, lists: Iterable[ShoppingList]) -> ListSummary:
        return summarize_lists(lists)

    # -- detail --------------------------------------------------------------

    def open_session(self, shopping_list: ShoppingList) -> ListDetailSession:
        """Start editing the items of a list."""
        return ListDetailSession(
            shopping_list,
            self._store,
            notifier=self._notifier,
            audit_logger=self._audit_logger,
            on_invalidate=self._on_invalidate,
            default_category=self._default_category,
        )

    # -- lifecycle -----------------------------------------------------------

    async def create_list(self, name: str, month: Optional[str] = None) -> ShoppingList:
        """Create an empty active list."""
        correlation_id = create_correlation_id()
        try:
            data = ShoppingListCreate(name=validate_list_name(name), month=validate_month(month))
        except ListValidationError as e:
            self._notifier.error(e.user_message)
            raise

        try:
            created = await self._store.create_shopping_list(data)
        except RemoteStoreError as e:
            self._remote_failed("create_shopping_list", e, "Error creating list", correlation_id)
            raise

        self._changed(
            AuditEventType.LIST_CREATED, created.id, f"Created list {created.name!r}",
            correlation_id, "List created successfully!",
        )
        return created

    async def rename_list(self, shopping_list: ShoppingList, name: str) -> ShoppingList:
        try:
            name = validate_list_name(name)
        except ListValidationError as e:
            self._notifier.error(e.user_message)
            raise
        return await self._update(
            shopping_list,
            {"name": name},
            AuditEventType.LIST_RENAMED,
            "Name updated!",
            "Error updating name",
        )

    async def change_month(self, shopping_list: ShoppingList, month: Optional[str]) -> ShoppingList:
        """Move a list to another month. Blank clears it."""
        try:
            month = validate_month(month)
        except ListValidationError as e:
            self._notifier.error(e.user_message)
            raise
        return await self._update(
            shopping_list,
            {"month": month},
            AuditEventType.LIST_MONTH_CHANGED,
            "Month updated!",
            "Error updating month",
        )

    async def reopen_list(self, shopping_list: ShoppingList) -> ShoppingList:
        """completed → active. No dialog, no ledger effect."""
        if shopping_list.status != ListStatus.COMPLETED:
            error = InvalidTransitionError(shopping_list.status, ListStatus.ACTIVE)
            self._notifier.error(error.user_message)
            raise error
        return await self._update(
            shopping_list,
            {"status": ListStatus.ACTIVE.value},
            AuditEventType.LIST_REOPENED,
            "List reopened!",
            "Error reopening list",
        )

    async def toggle_archive(self, shopping_list: ShoppingList) -> ShoppingList:
        """active ⇄ archived."""
        target = archive_target(shopping_list.status)
        try:
            ensure_transition(shopping_list.status, target)
        except InvalidTransitionError as e:
            self._notifier.error(e.user_message)
            raise
        archiving = target == ListStatus.ARCHIVED
        return await self._update(
            shopping_list,
            {"status": target.value},
            AuditEventType.LIST_ARCHIVED if archiving else AuditEventType.LIST_UNARCHIVED,
            "List archived!" if archiving else "List unarchived!",
            "Error archiving list",
        )

    async def duplicate_list(
        self,
        shopping_list: ShoppingList,
        new_name: Optional[str] = None,
        new_month: Optional[str] = None,
    ) -> ShoppingList:
        """
        Create a new active list from an existing one.

        Only the list itself is copied, not its items. The name defaults to
        "<name> (Cópia)" and the month to the current one; a blank month
        gives a list with no month.
        """
        correlation_id = create_correlation_id()
        try:
            name = validate_list_name(
                new_name if new_name is not None
                else f"{shopping_list.name}{self._duplicate_suffix}"
            )
            month = (
                current_month(self._today) if new_month is None
                else validate_month(new_month)
            )
        except ListValidationError as e:
            self._notifier.error(e.user_message)
            raise

        try:
            copy = await self._store.duplicate_shopping_list(shopping_list.id, name, month)
        except RemoteStoreError as e:
            self._remote_failed("duplicate_shopping_list", e, "Error duplicating list", correlation_id)
            raise

        self._changed(
            AuditEventType.LIST_DUPLICATED, copy.id, f"Duplicated list {shopping_list.id}",
            correlation_id, "List duplicated successfully!",
            details={"source_list_id": shopping_list.id, "month": month},
        )
        return copy

    async def delete_list(self, list_id: int) -> None:
        correlation_id = create_correlation_id()
        try:
            await self._store.delete_shopping_list(list_id)
        except RemoteStoreError as e:
            self._remote_failed("delete_shopping_list", e, "Error deleting list", correlation_id)
            raise
        self._changed(
            AuditEventType.LIST_DELETED, list_id, f"Deleted list {list_id}",
            correlation_id, "List deleted successfully!",
        )

    # -- completion ----------------------------------------------------------

    async def complete_list(
        self,
        shopping_list: ShoppingList,
        create_transactions: bool = True,
        account_id: Optional[int] = None,
    ) -> CompletionResult:
        """
        Complete an active list, optionally recording its expenses.

        Pass the list with its current local items (ListDetailSession.snapshot()).

        Raises:
            InvalidTransitionError: The list is not active
            CompletionFailedError: The list is still active; nothing to undo
                locally
        """
        try:
            result = await self._completion.complete_list(
                shopping_list,
                create_transactions=create_transactions,
                account_id=account_id,
            )
        except (InvalidTransitionError, CompletionFailedError) as e:
            self._notifier.error(e.user_message)
            raise

        if create_transactions:
            self._notifier.success("List completed and expenses recorded!")
        else:
            self._notifier.success("List completed!")
        self._invalidate(SHOPPING_LISTS_KEY, TRANSACTIONS_KEY, ACCOUNTS_KEY)
        return result

    async def submit_completion(
        self,
        dialog: CompletionDialog,
        shopping_list: ShoppingList,
    ) -> CompletionResult:
        """
        Submit the completion dialog with the choices it holds.

        The dialog closes on success. On failure it moves to Failed with the
        user-facing reason and the error is re-raised.
        """
        state: Submitting = dialog.submit()
        try:
            result = await self.complete_list(
                shopping_list,
                create_transactions=state.create_transactions,
                account_id=state.account_id,
            )
        except FinTrackError as e:
            dialog.fail(e.user_message)
            raise
        dialog.succeed()
        return result

    # -- resources -----------------------------------------------------------

    async def aclose(self) -> None:
        await self._store.aclose()

    # -- helpers -------------------------------------------------------------

    async def _update(
        self,
        shopping_list: ShoppingList,
        data: dict,
        event_type: AuditEventType,
        success_message: str,
        failure_message: str,
    ) -> ShoppingList:
        correlation_id = create_correlation_id()
        try:
            updated = await self._store.update_shopping_list(shopping_list.id, data)
        except RemoteStoreError as e:
            self._remote_failed("update_shopping_list", e, failure_message, correlation_id)
            raise
        self._changed(
            event_type, shopping_list.id,
            f"{event_type.value.replace('_', ' ').capitalize()}",
            correlation_id, success_message, details=data,
        )
        return updated

    def _changed(
        self,
        event_type: AuditEventType,
        list_id: int,
        description: str,
        correlation_id: UUID,
        success_message: str,
        details: Optional[dict] = None,
    ) -> None:
        self._logger.info(event_type.value, list_id=list_id)
        if self._audit_logger:
            self._audit_logger.log_list_changed(
                event_type, list_id, description, correlation_id, details,
            )
        self._notifier.success(success_message)
        self._invalidate(SHOPPING_LISTS_KEY)

    def _remote_failed(
        self,
        operation: str,
        error: RemoteStoreError,
        failure_message: str,
        correlation_id: UUID,
    ) -> None:
        self._logger.warning(
            "remote_operation_failed",
            operation=operation,
            error=str(error),
            status_code=error.status_code,
        )
        if self._audit_logger:
            self._audit_logger.log_remote_error(
                operation, error.status_code, str(error), correlation_id,
            )
        self._notifier.error(failure_message)

    def _invalidate(self, *keys: str) -> None:
        if self._on_invalidate:
            self._on_invalidate(keys)


def create_app_components(
    context: Optional[AppContext] = None,
    use_memory_store: bool = False,
    http_client: Optional[httpx.AsyncClient] = None,
    on_invalidate: Optional[InvalidateCallback] = None,
) -> tuple[ShoppingListFlow, AppContext]:
    """
    Factory function to create all application components.

    Args:
        context: Session context; a fresh one is created when omitted.
        use_memory_store: Run against the in-memory store instead of the
            backend. For tests and offline runs.
        http_client: httpx client to send requests through.
        on_invalidate: Called with cache keys after successful changes.

    Returns:
        (shopping_list_flow, context)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    audit_logger = AuditLogger(buffer_size=settings.app.audit_buffer_size)
    if context is None:
        context = AppContext(audit_logger=audit_logger)
    elif context.audit_logger is None:
        context.audit_logger = audit_logger

    if use_memory_store:
        store: RemoteStoreInterface = InMemoryRemoteStore()
    else:
        store = HttpRemoteStore(FinanceApiClient(
            token_provider=context.get_token,
            on_unauthorized=context.handle_unauthorized,
            http_client=http_client,
        ))

    flow = ShoppingListFlow(
        store,
        notifier=context.notifier,
        audit_logger=context.audit_logger,
        on_invalidate=on_invalidate,
    )
    return flow, context
