"""
Local reconciliation state of one list-detail session.

This is the UI's source of truth between a user action and the server's
answer. It is owned by a single ListDetailSession and mutated only by
commands.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from fintrack.models.shopping import (
    DEFAULT_CATEGORY,
    SUGGESTED_CATEGORIES,
    ItemDraft,
    ShoppingItem,
    ShoppingList,
)


@dataclass
class LocalListState:
    """Working copy of a list's items plus the client-only UI sets."""

    items: list[ShoppingItem] = field(default_factory=list)
    purchased_ids: set[int] = field(default_factory=set)
    pending_ids: set[int] = field(default_factory=set)
    expanded_categories: set[str] = field(default_factory=lambda: set(SUGGESTED_CATEGORIES))
    draft: ItemDraft = field(default_factory=ItemDraft)
    form_open: bool = False
    default_category: str = DEFAULT_CATEGORY

    @classmethod
    def from_list(
        cls,
        shopping_list: ShoppingList,
        default_category: str = DEFAULT_CATEGORY,
        expanded: Optional[Iterable[str]] = None,
    ) -> "LocalListState":
        state = cls(
            draft=ItemDraft(category=default_category),
            default_category=default_category,
        )
        if expanded is not None:
            state.expanded_categories = set(expanded)
        state.load_items(shopping_list.items)
        return state

    def load_items(self, items: Iterable[ShoppingItem]) -> None:
        """Replace the working copy with a fresh server snapshot."""
        self.items = [item.model_copy() for item in items]
        self.purchased_ids = {item.id for item in self.items if item.is_purchased}
        self.pending_ids &= {item.id for item in self.items}

    def find(self, item_id: int) -> Optional[tuple[int, ShoppingItem]]:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index, item
        return None

    def contains(self, item_id: int) -> bool:
        return self.find(item_id) is not None

    def replace(self, item: ShoppingItem) -> bool:
        """Swap in a new version of an item still present; False if it is gone."""
        found = self.find(item.id)
        if found is None:
            return False
        self.items[found[0]] = item
        return True

    def set_purchased(self, item_id: int, purchased: bool) -> None:
        """Set membership and keep the item's own flag in step."""
        if purchased:
            self.purchased_ids.add(item_id)
        else:
            self.purchased_ids.discard(item_id)
        found = self.find(item_id)
        if found is not None and found[1].is_purchased != purchased:
            self.items[found[0]] = found[1].model_copy(update={"is_purchased": purchased})

    def insert_by_order(self, item: ShoppingItem) -> int:
        """Insert before the first item with a greater order. Returns the index."""
        for index, existing in enumerate(self.items):
            if existing.order > item.order:
                self.items.insert(index, item)
                return index
        self.items.append(item)
        return len(self.items) - 1

    def reset_draft(self) -> None:
        self.draft = ItemDraft(category=self.default_category)

    @property
    def purchased_count(self) -> int:
        return len(self.purchased_ids)
