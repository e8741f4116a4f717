"""Fake notification dispatcher — records notifications for testing."""

from marketplace.notifications.port import Notification, NotificationDispatcher


class FakeDispatcher(NotificationDispatcher):
    """Dispatcher that keeps notifications in memory for test assertions."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []
        self.should_succeed = True
        self.failure_reason = "Notification channel unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification channel unavailable") -> None:
        """Configure the fake dispatcher behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def dispatch(self, notification: Notification) -> None:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)
        self.sent.append(notification)

    def of_type(self, notification_type: str) -> list[Notification]:
        return [n for n in self.sent if n.type == notification_type]

    def reset(self) -> None:
        """Clear sent notifications (useful between tests)."""
        self.sent.clear()
        self.should_succeed = True
        self.failure_reason = "Notification channel unavailable"
