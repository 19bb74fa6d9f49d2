"""
Shared test fixtures for integration tests.

This file provides fixtures that span multiple components,
unlike component-specific fixtures in src/alert_console/{component}/tests/conftest.py
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from alert_console.monitoring.notifiers import TelegramNotifier
from alert_console.service import AlertConsole, ConsoleConfig
from alert_console.snapshot.client import ConsoleRestClient
from alert_console.snapshot.models import AlertRecord, Sensor
from alert_console.stream.channel import AlertPushChannel
from alert_console.stream.tests.fakes import FakeConnector, FakeHubSocket


# =============================================================================
# Backend Fixtures
# =============================================================================

@pytest.fixture
def backend():
    """
    Mock REST backend.

    Holds a sensor catalog that update_thresholds() writes through to, so a
    reload after a save sees the saved values.
    """
    catalog = {
        "drill_temp1": Sensor("drill_temp1", "Drill Temperature", "C", 10.0, 80.0),
        "mill_temp1": Sensor("mill_temp1", "Mill Temperature", "C", 10.0, 75.0),
    }

    async def get_sensors():
        return list(catalog.values())

    async def update_thresholds(sensor_id, min_value, max_value):
        current = catalog[sensor_id]
        catalog[sensor_id] = Sensor(current.sensor_id, current.name, current.unit, min_value, max_value)

    client = MagicMock(spec=ConsoleRestClient)
    client.get_sensors = AsyncMock(side_effect=get_sensors)
    client.update_thresholds = AsyncMock(side_effect=update_thresholds)
    client.filter_alerts = AsyncMock(return_value=[
        AlertRecord(id="1", alert_id="a-old", sensor_id="drill_temp1", digital_module_id="DRILL001"),
    ])
    client.close = AsyncMock()
    return client


# =============================================================================
# Hub Fixtures
# =============================================================================

@pytest.fixture
def hub_socket():
    return FakeHubSocket()


@pytest.fixture
def telegram_api():
    """Mock Telegram API client."""
    api = MagicMock()
    api.send_message = MagicMock(return_value={"ok": True})
    return api


# =============================================================================
# Console Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def console(backend, hub_socket, telegram_api):
    """
    Fully wired console with in-memory hub and backend.

    The second hub connection succeeds with a fresh socket, so feed loss
    can be exercised end to end.
    """
    channel = AlertPushChannel(
        url="ws://hub.test/alertHub",
        reconnect_delay=0.05,
        handshake_timeout=0.5,
        connector=FakeConnector(hub_socket),
    )
    notifier = TelegramNotifier(bot_token="t", chat_id="c", _telegram_api=telegram_api)
    console = AlertConsole(
        config=ConsoleConfig(dashboard_enabled=False),
        client=backend,
        channel=channel,
        system_notifier=notifier,
    )

    yield console

    await console.stop()
