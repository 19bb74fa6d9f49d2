"""
Monitoring Layer - notifications and the presentation boundary.

This module provides:
    - NotificationDispatcher: one toast per alert, plus a system notification
      when the console is unfocused and permission was granted
    - ToastQueue / FocusTracker: in-app notification state
    - SystemNotifier / TelegramNotifier: system-level facility with tag coalescing
    - create_console_app: FastAPI app exposing state and intents

The dashboard is imported lazily by the service so the notification layer
does not pull in the web stack.
"""

from .notifications import FocusTracker, NotificationDispatcher, Toast, ToastQueue
from .notifiers import NotificationPermission, SystemNotifier, TelegramNotifier

__all__ = [
    # Notifications
    "FocusTracker",
    "NotificationDispatcher",
    "Toast",
    "ToastQueue",
    # System notifiers
    "NotificationPermission",
    "SystemNotifier",
    "TelegramNotifier",
]
