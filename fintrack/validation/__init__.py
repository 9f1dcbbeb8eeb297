"""Form validation package."""

from fintrack.validation.validator import (
    FormValidationError,
    ItemDraftValidator,
    ItemValidationError,
    ListValidationError,
    current_month,
    validate_list_name,
    validate_month,
)

__all__ = [
    "current_month",
    "FormValidationError",
    "ItemDraftValidator",
    "ItemValidationError",
    "ListValidationError",
    "validate_list_name",
    "validate_month",
]
