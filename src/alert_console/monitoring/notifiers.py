"""
System-level notification facilities.

A system notifier reaches the operator outside the console (the console may
not be in front of them). Permission is never requested implicitly: it starts
as DEFAULT and only an explicit request_permission() call can grant it.

Duplicate deliveries of the same alert share a tag; the notifier coalesces
them instead of stacking identical messages.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class NotificationPermission(str, Enum):
    """Permission state of a system notifier."""
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class SystemNotifier(ABC):
    """Capability-gated system notification facility."""

    def __init__(self) -> None:
        self._permission = NotificationPermission.DEFAULT

    @property
    @abstractmethod
    def supported(self) -> bool:
        """Whether the facility is available at all."""

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    def request_permission(self) -> NotificationPermission:
        """Explicit user action: ask for permission to notify."""
        self._permission = (
            NotificationPermission.GRANTED if self.supported else NotificationPermission.DENIED
        )
        logger.info(f"System notification permission: {self._permission.value}")
        return self._permission

    @abstractmethod
    def show(self, title: str, body: str, tag: Optional[str] = None) -> bool:
        """
        Deliver one notification.

        Returns:
            True if delivered, False if coalesced or failed
        """


@dataclass
class TagRecord:
    """Tracks when a tagged notification was last delivered."""

    tag: str
    last_sent: float  # Unix timestamp
    count: int = 1


class TelegramNotifier(SystemNotifier):
    """
    Telegram-backed system notifier.

    Usage:
        notifier = TelegramNotifier(
            bot_token="...",
            chat_id="...",
        )
        notifier.request_permission()
        notifier.show("⚠️ Alert: drill_temp1", "HighTemperature", tag="a-17")
    """

    DEFAULT_COALESCE_SECONDS = 300  # 5 minutes

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        coalesce_seconds: float = DEFAULT_COALESCE_SECONDS,
        _telegram_api: Optional[Any] = None,  # For testing
    ) -> None:
        """
        Initialize the notifier.

        Args:
            bot_token: Bot token from @BotFather
            chat_id: Chat ID to send messages to
            coalesce_seconds: Window in which a repeated tag is dropped
            _telegram_api: Injected API client for testing
        """
        super().__init__()
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._coalesce_seconds = coalesce_seconds
        self._telegram_api = _telegram_api

        self._sent_tags: Dict[str, TagRecord] = {}

    @property
    def supported(self) -> bool:
        return self._telegram_api is not None or bool(self._bot_token and self._chat_id)

    def show(self, title: str, body: str, tag: Optional[str] = None) -> bool:
        if self.permission is not NotificationPermission.GRANTED:
            logger.debug("System notification skipped: permission not granted")
            return False

        if tag and not self._should_send(tag):
            logger.debug(f"Coalesced system notification: {tag}")
            self._sent_tags[tag].count += 1
            return False

        success = self._send_telegram(f"*{title}*\n\n{body.strip()}")

        if tag and success:
            self._record_sent(tag)

        return success

    def _should_send(self, tag: str) -> bool:
        record = self._sent_tags.get(tag)
        if record is None:
            return True
        return (time.time() - record.last_sent) >= self._coalesce_seconds

    def _record_sent(self, tag: str) -> None:
        now = time.time()
        # Tags outside the window can no longer coalesce anything
        self._sent_tags = {
            t: r for t, r in self._sent_tags.items()
            if now - r.last_sent < self._coalesce_seconds
        }
        self._sent_tags[tag] = TagRecord(tag=tag, last_sent=now)

    def _send_telegram(self, text: str) -> bool:
        """Send message via Telegram API."""
        if self._telegram_api:
            try:
                self._telegram_api.send_message(
                    chat_id=self._chat_id,
                    text=text,
                    parse_mode="Markdown",
                )
                return True
            except Exception as e:
                logger.error(f"Telegram API error: {e}")
                return False

        if not self._bot_token or not self._chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        try:
            import requests

            url = f"https://api.telegram.org/bot{self._bot_token}/sendMessage"
            payload = {
                "chat_id": self._chat_id,
                "text": text,
                "parse_mode": "Markdown",
            }

            response = requests.post(url, json=payload, timeout=10)
            response.raise_for_status()

            logger.info(f"Sent Telegram notification: {text[:50]}...")
            return True

        except Exception as e:
            logger.error(f"Failed to send Telegram notification: {e}")
            return False

    def clear_tags(self) -> None:
        """Forget delivered tags."""
        self._sent_tags.clear()

    def get_stats(self) -> Dict[str, int]:
        """Delivered/coalesced counts."""
        return {
            "unique_tags": len(self._sent_tags),
            "total_seen": sum(r.count for r in self._sent_tags.values()),
        }
