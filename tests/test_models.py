"""
Tests for FinTrack

Test strategy:
1. Unit tests for individual components (models, validators, grouping)
2. Integration tests for sessions and flows (against the in-memory store)
3. No real API calls in tests (in-memory store or httpx.MockTransport)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from fintrack.models.shopping import (
    SUGGESTED_CATEGORIES,
    ExpenseDraft,
    ItemDraft,
    ListStatus,
    ShoppingItem,
    ShoppingList,
    ShoppingListCreate,
    Transaction,
    ValidationIssue,
    ValidationResult,
)
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestShoppingModels:
    """Tests for shopping-list Pydantic models."""

    def test_item_creation(self):
        """Test ShoppingItem model creation."""
        item = ShoppingItem(
            id=1,
            shopping_list_id=1,
            name="Arroz",
            category="Mercearia",
            quantity="5kg",
            estimated_price=Decimal("25.90"),
        )
        assert item.name == "Arroz"
        assert item.is_purchased is False
        assert item.actual_price is None

    def test_item_strips_whitespace(self):
        """Test that whitespace is stripped from the item name."""
        item = ShoppingItem(id=1, shopping_list_id=1, name="  Arroz  ")
        assert item.name == "Arroz"

    def test_item_defaults_to_outros(self):
        """Test the default category."""
        item = ShoppingItem(id=1, shopping_list_id=1, name="Arroz")
        assert item.category == "Outros"

    def test_item_rejects_negative_price(self):
        """Test that negative prices are rejected."""
        with pytest.raises(ValueError):
            ShoppingItem(
                id=1,
                shopping_list_id=1,
                name="Arroz",
                estimated_price=Decimal("-1"),
            )

    def test_effective_price_prefers_actual(self):
        """Test effective_price falls back to the estimate only when unset."""
        item = ShoppingItem(
            id=1, shopping_list_id=1, name="Sabão",
            estimated_price=Decimal("15"), actual_price=Decimal("12"),
        )
        assert item.effective_price == Decimal("12")
        assert item.model_copy(update={"actual_price": None}).effective_price == Decimal("15")

    def test_money_serializes_as_number(self):
        """Test Decimal prices are written as JSON numbers."""
        item = ShoppingItem(id=1, shopping_list_id=1, name="Pão", estimated_price=Decimal("7.5"))
        assert item.model_dump(mode="json")["estimated_price"] == 7.5

    def test_list_month_validation(self):
        """Test month must be YYYY-MM."""
        with pytest.raises(ValueError, match="YYYY-MM"):
            ShoppingList(id=1, name="Mercado", month="03/2025")

    def test_list_blank_month_is_none(self):
        """Test a blank month reads as no month."""
        lst = ShoppingList(id=1, name="Mercado", month="  ")
        assert lst.month is None

    def test_list_rejects_empty_name(self):
        """Test a list name cannot be empty."""
        with pytest.raises(ValueError):
            ShoppingListCreate(name="   ")

    def test_list_totals_from_items(self, groceries):
        """Test client-side totals ignore the server-maintained fields."""
        groceries.total_spent = Decimal("999")
        assert groceries.estimated_total() == Decimal("53")
        assert groceries.spent_total() == Decimal("42")

    def test_draft_create_payload(self):
        """Test the body sent for a new item."""
        draft = ItemDraft(name="Leite", category="Laticínios", quantity="2 L", estimated_price=Decimal("9"))
        payload = draft.to_create_payload(order=4)
        assert payload == {
            "name": "Leite",
            "category": "Laticínios",
            "quantity": "2 L",
            "estimated_price": 9.0,
            "actual_price": None,
            "is_purchased": False,
            "notes": None,
            "order": 4,
        }

    def test_expense_payload_without_account(self):
        """Test account_id is left out when no account was chosen."""
        draft = ExpenseDraft(category="Frutas", amount=Decimal("30"), item_count=2, description="Mercado - Frutas")
        payload = draft.to_transaction_payload(date(2025, 3, 15))
        assert "account_id" not in payload
        assert payload["type"] == "expense"
        assert payload["amount"] == 30.0
        assert payload["date"] == "2025-03-15"

    def test_expense_payload_with_account(self):
        """Test account_id is sent when chosen."""
        draft = ExpenseDraft(
            category="Frutas", amount=Decimal("30"), item_count=2,
            description="Mercado - Frutas", account_id=7,
        )
        assert draft.to_transaction_payload(date(2025, 3, 15))["account_id"] == 7

    def test_transaction_parses_backend_payload(self):
        """Test a transaction as the backend returns it."""
        tx = Transaction.model_validate({
            "id": 3,
            "description": "Mercado - Frutas",
            "category": "Frutas",
            "date": "2025-03-15",
            "amount": 30.0,
            "type": "expense",
            "account_id": None,
        })
        assert tx.amount == Decimal("30")
        assert tx.date == date(2025, 3, 15)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ITEM_ADDED,
            description="Item added: Leite",
        )
        assert event.event_type == AuditEventType.ITEM_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.LIST_COMPLETED,
            description="List completed",
            details={"expense_count": 2},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "list_completed"
        assert log_dict["details"]["expense_count"] == 2

    def test_audit_event_builder_item_added(self):
        """Test AuditEventBuilder.item_added."""
        correlation_id = uuid4()

        event = AuditEventBuilder.item_added(
            list_id=1,
            item_id=9,
            name="Leite",
            category="Laticínios",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.ITEM_ADDED
        assert event.entity_id == 9
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_expenses_planned(self):
        """Test amounts are kept as exact strings."""
        event = AuditEventBuilder.expenses_planned(
            list_id=1,
            totals={"Frutas": Decimal("30"), "Limpeza": Decimal("12")},
            account_id=None,
            correlation_id=uuid4(),
        )
        assert event.details["totals"] == {"Frutas": "30", "Limpeza": "12"}

    def test_audit_event_builder_completion_failed_is_error(self):
        """Test a failed completion is logged above info."""
        event = AuditEventBuilder.list_completion_failed(
            list_id=1,
            expenses_created=1,
            error_message="API Error: 500",
            correlation_id=uuid4(),
        )
        assert event.severity != AuditSeverity.INFO
        assert event.error_message == "API Error: 500"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="name",
                    issue_type="missing",
                    message="Item name is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.summary() == "Item name is required"

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="estimated_price",
                    issue_type="zero_value",
                    message="Estimated price is zero",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


class TestCategories:
    """Tests for the suggested categories."""

    def test_all_categories_exist(self):
        """Test that expected categories are offered."""
        for category in ("Frutas", "Limpeza", "Mercearia", "Outros"):
            assert category in SUGGESTED_CATEGORIES

    def test_status_values(self):
        """Test status string values."""
        assert ListStatus.ACTIVE.value == "active"
        assert ListStatus.COMPLETED.value == "completed"
        assert ListStatus.ARCHIVED.value == "archived"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
