"""
In-app toasts and the alert notification dispatcher.

Every alert produces one toast. A system-level notification is added only
when the operator is not looking at the console and has granted permission.
The toast path never depends on the system notifier.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional

from alert_console.stream.models import AlertEvent, AlertStatus

from .notifiers import NotificationPermission, SystemNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toast:
    """One in-app notification."""

    key: str
    level: str  # "warning", "success", "info", "error"
    title: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "level": self.level,
            "title": self.title,
            "message": self.message,
            "createdAt": self.created_at.isoformat(),
        }


class ToastQueue:
    """Bounded, most-recent-last toast buffer with lookup by key."""

    DEFAULT_MAX_TOASTS = 20

    def __init__(self, max_toasts: int = DEFAULT_MAX_TOASTS) -> None:
        self._toasts: Deque[Toast] = deque(maxlen=max_toasts)
        self._counter = 0

    def push(
        self,
        level: str,
        title: str,
        message: str,
        key: Optional[str] = None,
    ) -> Toast:
        self._counter += 1
        toast = Toast(
            key=key or f"toast-{self._counter}",
            level=level,
            title=title,
            message=message,
        )
        self._toasts.append(toast)
        return toast

    def success(self, message: str, key: Optional[str] = None) -> Toast:
        return self.push("success", "Success", message, key=key)

    def error(self, message: str, key: Optional[str] = None) -> Toast:
        return self.push("error", "Error", message, key=key)

    def get(self, key: str) -> Optional[Toast]:
        for toast in reversed(self._toasts):
            if toast.key == key:
                return toast
        return None

    def dismiss(self, key: str) -> None:
        self._toasts = deque((t for t in self._toasts if t.key != key), maxlen=self._toasts.maxlen)

    def items(self) -> List[Toast]:
        return list(self._toasts)

    def clear(self) -> None:
        self._toasts.clear()

    def __len__(self) -> int:
        return len(self._toasts)


class FocusTracker:
    """Whether the console surface currently has the operator's attention."""

    def __init__(self, has_focus: bool = False) -> None:
        self.has_focus = has_focus

    def __call__(self) -> bool:
        return self.has_focus


_TOAST_TITLES = {
    AlertStatus.FIRING: "Alert Triggered!",
    AlertStatus.RESOLVED: "Alert Resolved!",
}


class NotificationDispatcher:
    """
    Turns alert events into toasts and, when appropriate, system notifications.

    Usage:
        dispatcher = NotificationDispatcher(
            toasts=ToastQueue(),
            system_notifier=TelegramNotifier(bot_token, chat_id),
            focus=FocusTracker(),
        )
        channel.on_event(dispatcher.notify)
    """

    def __init__(
        self,
        toasts: ToastQueue,
        system_notifier: Optional[SystemNotifier] = None,
        focus: Optional[FocusTracker] = None,
        focus_suppression: bool = True,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            toasts: Queue receiving one toast per alert
            system_notifier: Optional system-level facility
            focus: Focus state of the console surface
            focus_suppression: Skip system notifications while focused
        """
        self._toasts = toasts
        self._system_notifier = system_notifier
        self._focus = focus or FocusTracker()
        self._focus_suppression = focus_suppression
        self._system_sent = 0

    @property
    def toasts(self) -> ToastQueue:
        return self._toasts

    @property
    def focus(self) -> FocusTracker:
        return self._focus

    @property
    def system_notifications_sent(self) -> int:
        return self._system_sent

    @property
    def permission(self) -> NotificationPermission:
        if self._system_notifier is None or not self._system_notifier.supported:
            return NotificationPermission.DENIED
        return self._system_notifier.permission

    def request_permission(self) -> NotificationPermission:
        """Explicit user action. Never called by notify()."""
        if self._system_notifier is None:
            return NotificationPermission.DENIED
        return self._system_notifier.request_permission()

    async def notify(self, event: AlertEvent) -> Toast:
        """
        Toast the alert, then deliver the system notification if allowed.

        The system notifier may block on network I/O, so it runs in a worker
        thread; events are still handled one at a time in arrival order.
        """
        toast = self._toasts.push(
            level=event.status.level if event.status else "info",
            title=_TOAST_TITLES.get(event.status, "Alert Update"),
            message=self._describe(event),
            key=event.alert_id,
        )

        if self._should_notify_system():
            await asyncio.to_thread(self._notify_system, event)

        return toast

    def _describe(self, event: AlertEvent) -> str:
        if not event.sensor_id:
            return "Unknown Sensor"
        return f"{event.sensor_id} - {event.alert_type or 'Threshold'}"

    def _should_notify_system(self) -> bool:
        notifier = self._system_notifier
        if notifier is None or not notifier.supported:
            return False
        if notifier.permission is not NotificationPermission.GRANTED:
            return False
        if self._focus_suppression and self._focus():
            return False
        return True

    def _notify_system(self, event: AlertEvent) -> None:
        sensor = event.sensor_id or "Unknown Sensor"
        if event.is_firing:
            title = f"⚠️ Alert: {sensor}"
        elif event.is_resolved:
            title = f"✅ Resolved: {sensor}"
        else:
            title = f"ℹ️ Alert update: {sensor}"
        body = event.alert_type or "Threshold alert"

        try:
            if self._system_notifier.show(title, body, tag=event.alert_id):
                self._system_sent += 1
        except Exception as e:
            logger.error(f"System notification failed: {e}")
