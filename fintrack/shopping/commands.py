"""
Item Mutation Commands

Each user edit to a list item is a command with four steps:

    apply(state)              optimistic local change, before any request
    commit(store, list_id)    the single remote call
    reconcile(state, result)  fold the server's answer into local state
    invert(state)             undo exactly what apply did, after a failure

The session driver runs them in that order. A command's invert only touches
the item it applied to, so a failure never undoes a later command's change.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

from fintrack.models.audit import AuditEventType
from fintrack.models.shopping import ItemDraft, ShoppingItem
from fintrack.services.remote import RemoteStoreInterface
from fintrack.shopping.state import LocalListState


class ItemCommand(ABC):
    """Base class for optimistic item mutations."""

    committed_event: AuditEventType
    reverted_event: AuditEventType
    success_message: Optional[str] = None
    failure_message: str = "Error updating item"

    def __init__(self) -> None:
        self.item_id: Optional[int] = None

    @abstractmethod
    def apply(self, state: LocalListState) -> bool:
        """
        Apply the optimistic change.

        Returns False when there is nothing to do (e.g. the item is already
        gone); the command is then dropped without a request.
        """

    @abstractmethod
    async def commit(self, store: RemoteStoreInterface, list_id: int) -> Any:
        """Issue the remote call."""

    def reconcile(self, state: LocalListState, result: Any) -> None:
        """Fold the server result into local state. No-op by default."""

    @abstractmethod
    def invert(self, state: LocalListState) -> None:
        """Undo apply()."""

    def describe(self) -> str:
        return f"{type(self).__name__}(item_id={self.item_id})"


class AddItemCommand(ItemCommand):
    """
    Create an item from the new-item form.

    The form is cleared and closed on apply; the item only enters local state
    once the server has assigned its ID, so a failure leaves no ghost item.
    """

    committed_event = AuditEventType.ITEM_ADDED
    reverted_event = AuditEventType.ITEM_ADD_FAILED
    success_message = "Item added!"
    failure_message = "Error adding item"

    def __init__(self, draft: ItemDraft):
        super().__init__()
        self.draft = draft
        self.order = 0
        self.created: Optional[ShoppingItem] = None
        self._previous_form_open = False

    def apply(self, state: LocalListState) -> bool:
        self._previous_form_open = state.form_open
        self.order = len(state.items)
        state.reset_draft()
        state.form_open = False
        state.expanded_categories.add(self.draft.category)
        return True

    async def commit(self, store: RemoteStoreInterface, list_id: int) -> ShoppingItem:
        return await store.create_item(list_id, self.draft.to_create_payload(self.order))

    def reconcile(self, state: LocalListState, result: ShoppingItem) -> None:
        self.created = result
        self.item_id = result.id
        if not state.contains(result.id):
            state.items.append(result)
        if result.is_purchased:
            state.purchased_ids.add(result.id)

    def invert(self, state: LocalListState) -> None:
        # Restore what the user typed so they can retry
        state.draft = self.draft
        state.form_open = True


class TogglePurchasedCommand(ItemCommand):
    """
    Flip an item's purchased flag.

    Becoming purchased with no actual price projects the estimate as the
    actual price. On failure only the purchased flag is reverted; the
    projected actual price is kept.
    """

    committed_event = AuditEventType.ITEM_TOGGLED
    reverted_event = AuditEventType.ITEM_TOGGLE_REVERTED
    failure_message = "Error updating item"

    def __init__(self, item_id: int):
        super().__init__()
        self.item_id = item_id
        self.was_purchased = False
        self.will_be_purchased = True
        self.payload: dict = {}

    def apply(self, state: LocalListState) -> bool:
        found = state.find(self.item_id)
        if found is None:
            return False
        index, item = found

        self.was_purchased = self.item_id in state.purchased_ids
        self.will_be_purchased = not self.was_purchased
        self.payload = {
            "is_purchased": self.will_be_purchased,
            "actual_price": (
                float(item.estimated_price)
                if self.will_be_purchased
                else _as_number(item.actual_price)
            ),
        }

        if self.will_be_purchased and item.actual_price is None:
            state.items[index] = item.model_copy(update={"actual_price": item.estimated_price})

        state.set_purchased(self.item_id, self.will_be_purchased)
        state.pending_ids.add(self.item_id)
        return True

    async def commit(self, store: RemoteStoreInterface, list_id: int) -> ShoppingItem:
        return await store.update_item(list_id, self.item_id, self.payload)

    def reconcile(self, state: LocalListState, result: ShoppingItem) -> None:
        # Membership stays whatever the latest toggle made it
        purchased = self.item_id in state.purchased_ids
        state.replace(result.model_copy(update={"is_purchased": purchased}))

    def invert(self, state: LocalListState) -> None:
        if state.contains(self.item_id):
            state.set_purchased(self.item_id, self.was_purchased)


class DeleteItemCommand(ItemCommand):
    """
    Remove an item.

    On failure the item is put back where ascending `order` places it, and
    regains its purchased mark if it had one.
    """

    committed_event = AuditEventType.ITEM_DELETED
    reverted_event = AuditEventType.ITEM_DELETE_REVERTED
    success_message = "Item removed!"
    failure_message = "Error removing item"

    def __init__(self, item_id: int):
        super().__init__()
        self.item_id = item_id
        self.removed: Optional[ShoppingItem] = None
        self.removed_index: Optional[int] = None
        self.was_purchased = False

    def apply(self, state: LocalListState) -> bool:
        found = state.find(self.item_id)
        if found is None:
            return False
        self.removed_index, self.removed = found
        self.was_purchased = self.item_id in state.purchased_ids
        del state.items[self.removed_index]
        state.purchased_ids.discard(self.item_id)
        state.pending_ids.discard(self.item_id)
        return True

    async def commit(self, store: RemoteStoreInterface, list_id: int) -> None:
        await store.delete_item(list_id, self.item_id)

    def invert(self, state: LocalListState) -> None:
        if self.removed is None or state.contains(self.item_id):
            return
        state.insert_by_order(self.removed)
        if self.was_purchased:
            state.purchased_ids.add(self.item_id)


class UpdateItemCommand(ItemCommand):
    """Edit an item's descriptive fields (name, category, quantity, price, notes)."""

    committed_event = AuditEventType.ITEM_UPDATED
    reverted_event = AuditEventType.ITEM_UPDATE_REVERTED
    success_message = "Item updated!"
    failure_message = "Error updating item"

    EDITABLE_FIELDS = frozenset({"name", "category", "quantity", "estimated_price", "notes", "order"})

    def __init__(self, item_id: int, **fields: Any):
        super().__init__()
        unknown = set(fields) - self.EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited this way: {sorted(unknown)}")
        self.item_id = item_id
        self.fields = fields
        self.previous: Optional[ShoppingItem] = None

    def apply(self, state: LocalListState) -> bool:
        found = state.find(self.item_id)
        if found is None:
            return False
        index, self.previous = found
        edited = ShoppingItem.model_validate({**self.previous.model_dump(), **self.fields})
        state.items[index] = edited
        if "category" in self.fields:
            state.expanded_categories.add(edited.category)
        return True

    async def commit(self, store: RemoteStoreInterface, list_id: int) -> ShoppingItem:
        payload = {key: _as_number(value) for key, value in self.fields.items()}
        return await store.update_item(list_id, self.item_id, payload)

    def reconcile(self, state: LocalListState, result: ShoppingItem) -> None:
        purchased = self.item_id in state.purchased_ids
        state.replace(result.model_copy(update={"is_purchased": purchased}))

    def invert(self, state: LocalListState) -> None:
        if self.previous is not None:
            purchased = self.item_id in state.purchased_ids
            state.replace(self.previous.model_copy(update={"is_purchased": purchased}))


def _as_number(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value
