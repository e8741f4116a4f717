"""Notification dispatcher factory.

Provides get_dispatcher() / set_dispatcher() to swap implementations. The
FakeDispatcher is the default; a push or SMS adapter is plugged in at
application start-up.
"""

import structlog

from marketplace.notifications.fake_adapter import FakeDispatcher
from marketplace.notifications.port import Notification, NotificationDispatcher, NotificationType

logger = structlog.get_logger(__name__)

_current_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    """Return the current dispatcher. Defaults to FakeDispatcher."""
    global _current_dispatcher
    if _current_dispatcher is None:
        _current_dispatcher = FakeDispatcher()
    return _current_dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher) -> None:
    """Override the active dispatcher (useful for tests)."""
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_dispatcher() -> None:
    """Reset to default dispatcher."""
    global _current_dispatcher
    _current_dispatcher = None


def notify(notification: Notification) -> bool:
    """Send ``notification``, never letting a failure reach the caller.

    Returns True when the dispatcher accepted it.
    """
    try:
        get_dispatcher().dispatch(notification)
    except Exception as exc:
        logger.warning(
            "Notification dispatch failed",
            notification_type=notification.type,
            order_id=notification.order_id,
            vendor_id=notification.vendor_id,
            error=str(exc),
        )
        return False
    return True


__all__ = [
    "Notification",
    "NotificationDispatcher",
    "NotificationType",
    "get_dispatcher",
    "notify",
    "reset_dispatcher",
    "set_dispatcher",
]
