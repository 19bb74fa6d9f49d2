"""
Test fixtures for the core layer.
"""

import pytest

from alert_console.core.aggregator import AlertStateAggregator
from alert_console.stream.models import AlertEvent


def make_event(alert_id, sensor_id="S1", module_id="M1", status="firing", **extra):
    """Build an AlertEvent the way the push channel would."""
    payload = {
        "alertId": alert_id,
        "sensorId": sensor_id,
        "digitalModuleId": module_id,
        "status": status,
        "alertType": "HighTemperature",
    }
    payload.update(extra)
    return AlertEvent.from_payload(payload)


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def aggregator():
    return AlertStateAggregator(capacity=50)
