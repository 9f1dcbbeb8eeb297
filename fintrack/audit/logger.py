"""
Audit Logger

Every mutation sent to the backend, and every rollback, is logged as a
structured audit event. The logger:
- Renders events as JSON through structlog
- Keeps an optional bounded buffer of recent events for the UI and tests
- Never raises: a failing sink is logged and ignored
- Supports correlation IDs to trace the events of one user action
"""

import logging
from collections import deque
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from fintrack.models.audit import AuditEvent, AuditEventBuilder, AuditEventType


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("fintrack").setLevel(level.upper())


AuditSink = Callable[[AuditEvent], None]


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink and in-memory buffer (for user-visible history)
    """

    def __init__(
        self,
        buffer_size: int = 0,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            buffer_size: How many recent events to keep. 0 keeps none.
            sink: Called with every event after it is logged.
        """
        self._buffer: deque[AuditEvent] = deque(maxlen=buffer_size or None)
        self._keep = buffer_size > 0
        self._sink = sink
        self._logger = structlog.get_logger("fintrack.audit")

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Buffered events, oldest first."""
        return list(self._buffer)

    def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._buffer if e.correlation_id == correlation_id]

    def log(self, event: AuditEvent) -> None:
        """
        Log an audit event.

        Always logs locally. Forwards to the sink if configured.
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._keep:
            self._buffer.append(event)

        if self._sink:
            try:
                self._sink(event)
            except Exception as e:
                # A broken sink must not break the user action being logged
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )

    def log_item_added(
        self,
        list_id: int,
        item_id: int,
        name: str,
        category: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.item_added(list_id, item_id, name, category, correlation_id))

    def log_item_add_failed(
        self,
        list_id: int,
        name: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.item_add_failed(list_id, name, error_message, correlation_id))

    def log_validation_failed(
        self,
        list_id: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.item_validation_failed(list_id, issues, correlation_id))

    def log_committed(
        self,
        event_type: AuditEventType,
        item_id: int,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.mutation_committed(
            event_type, item_id, description, correlation_id, details,
        ))

    def log_reverted(
        self,
        event_type: AuditEventType,
        item_id: int,
        description: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.mutation_reverted(
            event_type, item_id, description, error_message, correlation_id,
        ))

    def log_expenses_planned(
        self,
        list_id: int,
        totals: dict[str, Decimal],
        account_id: Optional[int],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.expenses_planned(list_id, totals, account_id, correlation_id))

    def log_expense_created(
        self,
        list_id: int,
        transaction_id: int,
        category: str,
        amount: Decimal,
        account_id: Optional[int],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.expense_created(
            list_id, transaction_id, category, amount, account_id, correlation_id,
        ))

    def log_list_completed(
        self,
        list_id: int,
        expense_count: int,
        account_id: Optional[int],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.list_completed(list_id, expense_count, account_id, correlation_id))

    def log_completion_failed(
        self,
        list_id: int,
        expenses_created: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.list_completion_failed(
            list_id, expenses_created, error_message, correlation_id,
        ))

    def log_list_changed(
        self,
        event_type: AuditEventType,
        list_id: int,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.list_changed(
            event_type, list_id, description, correlation_id, details,
        ))

    def log_session_event(self, event_type: AuditEventType, username: Optional[str]) -> None:
        self.log(AuditEventBuilder.session_event(event_type, username))

    def log_remote_error(
        self,
        operation: str,
        status_code: Optional[int],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.remote_error(operation, status_code, error_message, correlation_id))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(error_type, error_message, details, correlation_id))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., completing a list).
    Pass it through all subsequent operations.
    """
    return uuid4()
