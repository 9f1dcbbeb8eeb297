"""
Category grouping and progress.

Pure functions over the session's local item collection. They are always fed
the optimistic local state, never the server snapshot, so in-flight mutations
show up in the counts immediately.
"""

from decimal import Decimal
from typing import AbstractSet, Iterable

from fintrack.models.shopping import ShoppingItem


def group_by_category(items: Iterable[ShoppingItem]) -> dict[str, list[ShoppingItem]]:
    """
    Group items by category.

    Categories appear in order of first appearance; items keep their
    relative order within a category.
    """
    grouped: dict[str, list[ShoppingItem]] = {}
    for item in items:
        grouped.setdefault(item.category, []).append(item)
    return grouped


def category_progress(
    items: Iterable[ShoppingItem],
    purchased_ids: AbstractSet[int],
) -> tuple[int, int]:
    """(purchased, total) for one category's items."""
    purchased = 0
    total = 0
    for item in items:
        total += 1
        if item.id in purchased_ids:
            purchased += 1
    return purchased, total


def overall_progress(total_items: int, purchased_count: int) -> float:
    """Percentage of purchased items, 0 for an empty list."""
    if total_items <= 0:
        return 0.0
    return purchased_count / total_items * 100


def category_totals(
    items: Iterable[ShoppingItem],
    purchased_ids: AbstractSet[int],
) -> dict[str, tuple[Decimal, Decimal]]:
    """
    Per category (estimated, spent).

    spent counts only purchased items, at actual price when known.
    """
    totals: dict[str, tuple[Decimal, Decimal]] = {}
    for item in items:
        estimated, spent = totals.get(item.category, (Decimal("0"), Decimal("0")))
        estimated += item.estimated_price
        if item.id in purchased_ids:
            spent += item.effective_price
        totals[item.category] = (estimated, spent)
    return totals


def purchased_totals_by_category(items: Iterable[ShoppingItem]) -> dict[str, Decimal]:
    """
    Sum of effective prices of purchased items, per category.

    Categories without a purchased item are absent. This is the basis for
    expense materialization and reads the items' own is_purchased flag.
    """
    totals: dict[str, Decimal] = {}
    for item in items:
        if not item.is_purchased:
            continue
        totals[item.category] = totals.get(item.category, Decimal("0")) + item.effective_price
    return totals


def toggle_category(expanded: AbstractSet[str], category: str) -> frozenset[str]:
    """Return a new expanded-set with `category` flipped."""
    if category in expanded:
        return frozenset(expanded - {category})
    return frozenset(expanded | {category})
