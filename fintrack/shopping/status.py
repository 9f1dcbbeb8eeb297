"""
Shopping list status transitions.

    active    -> completed   (complete, confirmed through the dialog)
    completed -> active      (reopen)
    active    -> archived    (archive)
    archived  -> active      (unarchive)

Anything else is rejected before a request is made.
"""

from fintrack.errors import FinTrackError
from fintrack.models.shopping import ListStatus


ALLOWED_TRANSITIONS: frozenset[tuple[ListStatus, ListStatus]] = frozenset({
    (ListStatus.ACTIVE, ListStatus.COMPLETED),
    (ListStatus.COMPLETED, ListStatus.ACTIVE),
    (ListStatus.ACTIVE, ListStatus.ARCHIVED),
    (ListStatus.ARCHIVED, ListStatus.ACTIVE),
})


class InvalidTransitionError(FinTrackError):
    """A status change the list lifecycle does not allow."""

    user_message = "This action is not available for the list's current status"

    def __init__(self, current: ListStatus, target: ListStatus):
        super().__init__(f"Cannot move a list from {current.value} to {target.value}")
        self.current = current
        self.target = target


def can_transition(current: ListStatus, target: ListStatus) -> bool:
    return (current, target) in ALLOWED_TRANSITIONS


def ensure_transition(current: ListStatus, target: ListStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def archive_target(current: ListStatus) -> ListStatus:
    """Status the archive toggle moves to."""
    return ListStatus.ACTIVE if current == ListStatus.ARCHIVED else ListStatus.ARCHIVED
