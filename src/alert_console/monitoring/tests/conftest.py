"""
Test fixtures for monitoring.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from alert_console.monitoring.notifications import (
    FocusTracker,
    NotificationDispatcher,
    ToastQueue,
)
from alert_console.monitoring.notifiers import TelegramNotifier
from alert_console.snapshot.client import ConsoleRestClient
from alert_console.snapshot.models import AlertRecord, Sensor
from alert_console.stream.models import AlertEvent


@pytest.fixture
def mock_telegram_api():
    """Mock Telegram API client."""
    api = MagicMock()
    api.send_message = MagicMock(return_value={"ok": True})
    return api


@pytest.fixture
def notifier(mock_telegram_api):
    """Telegram notifier with the mock API injected."""
    return TelegramNotifier(
        bot_token="test_token",
        chat_id="test_chat",
        _telegram_api=mock_telegram_api,
    )


@pytest.fixture
def granted_notifier(notifier):
    notifier.request_permission()
    return notifier


@pytest.fixture
def toasts():
    return ToastQueue()


@pytest.fixture
def focus():
    return FocusTracker(has_focus=False)


@pytest.fixture
def dispatcher(toasts, granted_notifier, focus):
    return NotificationDispatcher(
        toasts=toasts,
        system_notifier=granted_notifier,
        focus=focus,
    )


@pytest.fixture
def firing_event():
    return AlertEvent.from_payload({
        "alertId": "a-17",
        "sensorId": "drill_temp1",
        "digitalModuleId": "DRILL001",
        "status": "firing",
        "alertType": "HighTemperature",
        "startedAt": "2026-10-19T14:05:00",
    })


@pytest.fixture
def resolved_event():
    return AlertEvent.from_payload({
        "alertId": "a-18",
        "sensorId": "drill_temp1",
        "digitalModuleId": "DRILL001",
        "status": "resolved",
    })


@pytest.fixture
def mock_rest_client():
    """Mock REST client with a small catalog and alert log."""
    client = MagicMock(spec=ConsoleRestClient)
    client.get_sensors = AsyncMock(return_value=[
        Sensor("drill_temp1", "Drill Temperature", unit="C", min_value=10.0, max_value=80.0),
        Sensor("mill_pressure1", "Mill Pressure", unit="bar", min_value=1.0, max_value=6.0),
    ])
    client.update_thresholds = AsyncMock(return_value=None)
    client.filter_alerts = AsyncMock(return_value=[
        AlertRecord(id="1", alert_id="a-1", sensor_id="drill_temp1",
                    digital_module_id="DRILL001", started_at="2026-10-19T14:05:00"),
    ])
    client.close = AsyncMock()
    return client
