"""
Form Validation

Local checks that run before anything is sent to the backend. A form that
fails validation stays open with what the user typed; no request is made.

Validation never fixes input silently. It reports issues for the user.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.errors import FinTrackError
from fintrack.models.shopping import (
    MONTH_PATTERN,
    ItemDraft,
    ValidationIssue,
    ValidationResult,
)


class FormValidationError(FinTrackError):
    """A form was rejected locally."""

    user_message = "Please fix the highlighted fields"

    def __init__(self, result: ValidationResult, user_message: Optional[str] = None):
        super().__init__(result.summary(), user_message)
        self.result = result

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


class ItemValidationError(FormValidationError):
    """The new item form is missing required fields."""

    user_message = "Fill in name and quantity"


class ListValidationError(FormValidationError):
    """A list name or month is invalid."""

    user_message = "Name cannot be empty"


def _result(issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
    )


class ItemDraftValidator:
    """Validates the new item form."""

    def validate(self, draft: ItemDraft) -> ValidationResult:
        """
        Check a draft.

        Name and quantity are required. A zero estimate is allowed but
        flagged as a warning since it produces zero-value expenses.
        """
        issues = []

        if not draft.name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Item name is required",
            ))

        if not draft.quantity.strip():
            issues.append(ValidationIssue(
                field="quantity",
                issue_type="missing",
                message="Quantity is required",
            ))

        if draft.estimated_price == Decimal("0"):
            issues.append(ValidationIssue(
                field="estimated_price",
                issue_type="zero_value",
                message="Estimated price is zero",
                severity="warning",
            ))

        return _result(issues)

    def ensure_valid(self, draft: ItemDraft) -> None:
        """Raise ItemValidationError if the draft has errors."""
        result = self.validate(draft)
        if not result.is_valid:
            raise ItemValidationError(result)


def validate_list_name(name: str) -> str:
    """Return the stripped name, or raise ListValidationError if it is empty."""
    stripped = (name or "").strip()
    if not stripped:
        raise ListValidationError(_result([ValidationIssue(
            field="name",
            issue_type="missing",
            message="List name cannot be empty",
        )]))
    return stripped


def validate_month(month: Optional[str]) -> Optional[str]:
    """Return a YYYY-MM month, None for blank input, or raise ListValidationError."""
    if month is None or not month.strip():
        return None
    month = month.strip()
    if not MONTH_PATTERN.match(month):
        raise ListValidationError(
            _result([ValidationIssue(
                field="month",
                issue_type="invalid_format",
                message=f"Month must be YYYY-MM, got {month!r}",
            )]),
            user_message="Invalid month",
        )
    return month


def current_month(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{today.year}-{today.month:02d}"
