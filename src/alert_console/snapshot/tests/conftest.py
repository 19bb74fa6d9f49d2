"""
Test fixtures for the snapshot layer.

IMPORTANT: No test talks to a real backend. The REST client is either an
AsyncMock or runs against a FakeSession.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from alert_console.monitoring.notifications import ToastQueue
from alert_console.snapshot.client import ConsoleRestClient
from alert_console.snapshot.models import AlertRecord, Sensor


def make_sensors(count: int) -> list:
    return [
        Sensor(sensor_id=f"sensor_{i}", name=f"Sensor {i}", unit="C", min_value=10.0, max_value=80.0)
        for i in range(count)
    ]


def make_records(count: int) -> list:
    return [
        AlertRecord(id=str(i), alert_id=f"a-{i}", sensor_id="S1", digital_module_id="M1")
        for i in range(count)
    ]


@pytest.fixture
def sensor_payload():
    """Sensor catalog as the backend returns it."""
    return [
        {"sensorId": "drill_temp1", "name": "Drill Temperature", "unit": "C",
         "minValue": 10, "maxValue": 80.5},
        {"sensorId": "mill_pressure1", "name": "Mill Pressure", "unit": "bar",
         "minValue": None, "maxValue": 6},
    ]


@pytest.fixture
def mock_client():
    """Mock REST client with three sensors and no alerts."""
    client = MagicMock(spec=ConsoleRestClient)
    client.get_sensors = AsyncMock(return_value=make_sensors(3))
    client.update_thresholds = AsyncMock(return_value=None)
    client.filter_alerts = AsyncMock(return_value=[])
    return client


@pytest.fixture
def toasts():
    return ToastQueue()
