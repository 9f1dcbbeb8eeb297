"""
Application Context

Explicit container for per-session state: the signed-in user, the bearer
token, the mobile menu flag and the user-facing notifications. One
AppContext is created per session and passed to whatever needs it; there is
no module-level state.

Token acquisition (login) happens outside this package. The context only
holds the token it is given and drops it when the backend rejects it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, Field

from fintrack.audit import AuditLogger
from fintrack.models.audit import AuditEventType


class User(BaseModel):
    """The signed-in user, as returned by the auth backend."""

    id: int
    email: str
    username: str
    full_name: Optional[str] = None


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class Notification(BaseModel):
    """A non-blocking, toast-style message for the user."""

    level: NotificationLevel
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """
    Collects notifications and forwards them to the UI.

    The UI registers `on_notify`; without one, notifications are only kept
    in `history`.
    """

    def __init__(self, on_notify: Optional[Callable[[Notification], None]] = None):
        self._on_notify = on_notify
        self.history: list[Notification] = []

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self.history.append(notification)
        if self._on_notify:
            self._on_notify(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.INFO, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    @property
    def errors(self) -> list[Notification]:
        return [n for n in self.history if n.level == NotificationLevel.ERROR]

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def clear(self) -> None:
        self.history.clear()


class AppContext:
    """
    Per-session application state.

    Lifecycle: start_session() when a token is obtained, end_session() on
    logout or when the backend answers 401.
    """

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_session_end: Optional[Callable[[], None]] = None,
    ):
        self.notifier = notifier or Notifier()
        self.audit_logger = audit_logger
        self._on_session_end = on_session_end
        self._logger = structlog.get_logger("fintrack.context")
        self.user: Optional[User] = None
        self.token: Optional[str] = None
        self.menu_open = False

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def start_session(self, token: str, user: Optional[User] = None) -> None:
        self.token = token
        self.user = user
        self.menu_open = False
        if self.audit_logger:
            self.audit_logger.log_session_event(
                AuditEventType.SESSION_STARTED, user.username if user else None,
            )

    def end_session(self) -> None:
        username = self.user.username if self.user else None
        self.token = None
        self.user = None
        self.menu_open = False
        if self.audit_logger:
            self.audit_logger.log_session_event(AuditEventType.SESSION_ENDED, username)
        if self._on_session_end:
            self._on_session_end()

    def get_token(self) -> Optional[str]:
        """TokenProvider for the HTTP client."""
        return self.token

    def handle_unauthorized(self) -> None:
        """Called by the HTTP client on 401: the token is no longer valid."""
        self._logger.warning("session_unauthorized", username=self.user.username if self.user else None)
        if self.audit_logger:
            self.audit_logger.log_session_event(
                AuditEventType.UNAUTHORIZED, self.user.username if self.user else None,
            )
        if self.token is not None:
            self.end_session()

    def set_menu_open(self, open_: bool) -> None:
        self.menu_open = open_

    def toggle_menu(self) -> bool:
        self.menu_open = not self.menu_open
        return self.menu_open
