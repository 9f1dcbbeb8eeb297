"""Tests for the session context, notifications and the audit logger."""

from uuid import uuid4

import pytest

from fintrack.audit import AuditLogger, create_correlation_id
from fintrack.config import get_settings, validate_all_settings
from fintrack.context import AppContext, Notification, NotificationLevel, Notifier, User
from fintrack.models.audit import AuditEvent, AuditEventType


class TestNotifier:
    """Tests for user-facing notifications."""

    def test_levels_and_history(self):
        """Test each level is recorded in order."""
        notifier = Notifier()
        notifier.success("Item added!")
        notifier.error("Error removing item")
        notifier.info("Syncing")

        assert [n.level for n in notifier.history] == [
            NotificationLevel.SUCCESS, NotificationLevel.ERROR, NotificationLevel.INFO,
        ]
        assert [n.message for n in notifier.errors] == ["Error removing item"]
        assert notifier.last.message == "Syncing"

    def test_forwards_to_ui(self):
        """Test the UI callback receives every notification."""
        shown: list[Notification] = []
        Notifier(on_notify=shown.append).success("List reopened!")
        assert shown[0].message == "List reopened!"

    def test_clear(self):
        """Test clearing the history."""
        notifier = Notifier()
        notifier.error("x")
        notifier.clear()
        assert notifier.last is None


class TestAppContext:
    """Tests for the per-session context."""

    def test_session_lifecycle(self):
        """Test start and end of a session."""
        ended = []
        context = AppContext(on_session_end=lambda: ended.append(True))
        context.start_session("tok", User(id=1, email="ana@example.com", username="ana"))

        assert context.is_authenticated
        assert context.get_token() == "tok"

        context.end_session()
        assert context.get_token() is None
        assert context.user is None
        assert ended == [True]

    def test_unauthorized_ends_session_once(self):
        """Test a 401 drops the token and repeated 401s don't end it twice."""
        ended = []
        audit = AuditLogger(buffer_size=10)
        context = AppContext(audit_logger=audit, on_session_end=lambda: ended.append(True))
        context.start_session("tok")

        context.handle_unauthorized()
        context.handle_unauthorized()

        assert context.token is None
        assert ended == [True]
        assert AuditEventType.UNAUTHORIZED in [e.event_type for e in audit.recent_events]

    def test_menu(self):
        """Test the mobile menu flag."""
        context = AppContext()
        assert context.toggle_menu() is True
        context.set_menu_open(False)
        assert context.menu_open is False


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_buffer_is_bounded(self):
        """Test only the most recent events are kept."""
        audit = AuditLogger(buffer_size=2)
        for _ in range(3):
            audit.log_error("Test", "boom")
        assert len(audit.recent_events) == 2

    def test_no_buffer_by_default(self):
        """Test buffering is opt-in."""
        audit = AuditLogger()
        audit.log_error("Test", "boom")
        assert audit.recent_events == []

    def test_events_for_correlation(self):
        """Test filtering the events of one user action."""
        audit = AuditLogger(buffer_size=10)
        correlation_id = create_correlation_id()
        audit.log_list_completed(1, 2, None, correlation_id)
        audit.log_list_completed(2, 0, None, uuid4())
        assert [e.entity_id for e in audit.events_for(correlation_id)] == [1]

    def test_failing_sink_is_ignored(self):
        """Test a broken sink doesn't break the action being logged."""
        def sink(event: AuditEvent) -> None:
            raise RuntimeError("sink down")

        audit = AuditLogger(buffer_size=1, sink=sink)
        audit.log_error("Test", "boom")
        assert len(audit.recent_events) == 1


class TestSettings:
    """Tests for configuration loading."""

    def test_defaults(self, monkeypatch):
        """Test the defaults without any environment."""
        monkeypatch.delenv("FINTRACK_SHOPPING_EXPENSE_MODE", raising=False)
        shopping = get_settings().shopping
        assert shopping.expense_mode == "server"
        assert shopping.duplicate_suffix == " (Cópia)"

    def test_env_override(self, monkeypatch):
        """Test sub-settings read their prefixed variables."""
        monkeypatch.setenv("FINTRACK_SHOPPING_EXPENSE_MODE", "client")
        monkeypatch.setenv("FINTRACK_API_BASE_URL", "https://api.example.com/")
        settings = get_settings()
        assert settings.shopping.expense_mode == "client"
        assert settings.api.base_url == "https://api.example.com"

    def test_invalid_values_reported(self, monkeypatch):
        """Test validation failures are collected per section."""
        monkeypatch.setenv("FINTRACK_API_BASE_URL", "ftp://nope")
        results = validate_all_settings()
        assert results["api"] is False
        assert "api_error" in results
        assert results["shopping"] is True

    @pytest.mark.parametrize("level", ["debug", "WARNING"])
    def test_log_level_normalized(self, monkeypatch, level):
        """Test log levels are upper-cased."""
        monkeypatch.setenv("LOG_LEVEL", level)
        assert get_settings().app.log_level == level.upper()
