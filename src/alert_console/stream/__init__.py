"""
Stream Layer - live alert events from the backend hub.

This module provides:
    - AlertEvent / AlertStatus models for hub payloads
    - JSON hub protocol framing (handshake, invocations, pings, close)
    - AlertPushChannel with fixed-delay reconnection

Usage:
    from alert_console.stream import AlertPushChannel, ConnectionState

    channel = AlertPushChannel(url="ws://localhost:5167/alertHub")
    channel.on_event(handle_alert)
    await channel.connect()
"""

from .models import AlertEvent, AlertStatus
from .channel import AlertPushChannel, ConnectionState

__all__ = [
    "AlertEvent",
    "AlertStatus",
    "AlertPushChannel",
    "ConnectionState",
]
