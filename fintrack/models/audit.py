"""
Audit Models for FinTrack

Every user action that reaches the backend is recorded as an audit event:
item mutations, their rollbacks, list status changes and expense
materialization. Events of one user action share a correlation ID.

Audit events are append-only.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Item mutations
    ITEM_ADDED = "item_added"
    ITEM_ADD_FAILED = "item_add_failed"
    ITEM_UPDATED = "item_updated"
    ITEM_UPDATE_REVERTED = "item_update_reverted"
    ITEM_TOGGLED = "item_toggled"
    ITEM_TOGGLE_REVERTED = "item_toggle_reverted"
    ITEM_DELETED = "item_deleted"
    ITEM_DELETE_REVERTED = "item_delete_reverted"
    ITEM_VALIDATION_FAILED = "item_validation_failed"

    # List lifecycle
    LIST_CREATED = "list_created"
    LIST_RENAMED = "list_renamed"
    LIST_MONTH_CHANGED = "list_month_changed"
    LIST_COMPLETED = "list_completed"
    LIST_COMPLETION_FAILED = "list_completion_failed"
    LIST_REOPENED = "list_reopened"
    LIST_ARCHIVED = "list_archived"
    LIST_UNARCHIVED = "list_unarchived"
    LIST_DUPLICATED = "list_duplicated"
    LIST_DELETED = "list_deleted"

    # Ledger
    EXPENSES_PLANNED = "expenses_planned"
    EXPENSE_CREATED = "expense_created"

    # Session
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    UNAUTHORIZED = "unauthorized"

    # System events
    SYSTEM_ERROR = "system_error"
    REMOTE_ERROR = "remote_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_id is the backend's integer ID (list or item); correlation_id is
    generated client-side per user action.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('shopping_list', 'shopping_item', 'session')"
    )
    entity_id: Optional[int] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.item_added(list_id, item_id, name, category, correlation_id)
        event = AuditEventBuilder.list_completed(list_id, 2, account_id, correlation_id)
    """

    @staticmethod
    def item_added(
        list_id: int,
        item_id: int,
        name: str,
        category: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_ADDED,
            entity_type="shopping_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Item added: {name}",
            details={
                "shopping_list_id": list_id,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def item_add_failed(
        list_id: int,
        name: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_ADD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="shopping_list",
            entity_id=list_id,
            correlation_id=correlation_id,
            description=f"Could not add item: {name}",
            error_message=error_message,
        )

    @staticmethod
    def item_validation_failed(
        list_id: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="shopping_list",
            entity_id=list_id,
            correlation_id=correlation_id,
            description=f"Item form rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def mutation_committed(
        event_type: AuditEventType,
        item_id: int,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="shopping_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def mutation_reverted(
        event_type: AuditEventType,
        item_id: int,
        description: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type="shopping_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=description,
            error_message=error_message,
        )

    @staticmethod
    def expenses_planned(
        list_id: int,
        totals: dict[str, Decimal],
        account_id: Optional[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_PLANNED,
            entity_type="shopping_list",
            entity_id=list_id,
            correlation_id=correlation_id,
            description=f"Planned {len(totals)} expenses from purchased items",
            details={
                "totals": {category: str(amount) for category, amount in totals.items()},
                "account_id": account_id,
            },
        )

    @staticmethod
    def expense_created(
        list_id: int,
        transaction_id: int,
        category: str,
        amount: Decimal,
        account_id: Optional[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {category} expense",
            details={
                "shopping_list_id": list_id,
                "category": category,
                "amount": str(amount),
                "account_id": account_id,
            },
        )

    @staticmethod
    def list_completed(
        list_id: int,
        expense_count: int,
        account_id: Optional[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIST_COMPLETED,
            entity_type="shopping_list",
            entity_id=list_id,
            correlation_id=correlation_id,
            description=f"List completed with {expense_count} expenses",
            details={
                "expense_count": expense_count,
                "account_id": account_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def list_completion_failed(
        list_id: int,
        expenses_created: int,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIST_COMPLETION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="shopping_list",
            entity_id=list_id,
            correlation_id=correlation_id,
            description="List completion failed; list is still active",
            details={"expenses_created": expenses_created},
            error_message=error_message,
        )

    @staticmethod
    def list_changed(
        event_type: AuditEventType,
        list_id: int,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="shopping_list",
            entity_id=list_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def session_event(
        event_type: AuditEventType,
        username: Optional[str],
    ) -> AuditEvent:
        severity = (
            AuditSeverity.WARNING
            if event_type == AuditEventType.UNAUTHORIZED
            else AuditSeverity.INFO
        )
        return AuditEvent(
            event_type=event_type,
            severity=severity,
            entity_type="session",
            description=f"{event_type.value.replace('_', ' ').capitalize()}: {username or 'anonymous'}",
            details={"username": username},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def remote_error(
        operation: str,
        status_code: Optional[int],
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Remote store error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
                "status_code": status_code,
            },
            correlation_id=correlation_id,
        )
