"""
Test fixtures for the stream layer.

IMPORTANT: No test opens a real socket. See fakes.py for the in-memory
hub transport.
"""

import pytest
import pytest_asyncio

from alert_console.stream.channel import AlertPushChannel

from .fakes import FakeConnector, FakeHubSocket


@pytest.fixture
def sample_payload():
    """A firing alert as the backend sends it."""
    return {
        "alertId": "a-100",
        "sensorId": "drill_temp1",
        "digitalModuleId": "DRILL001",
        "status": "Firing",
        "alertType": "HighTemperature",
        "description": "Drill temperature above max threshold",
        "startedAt": "2026-10-19 14:05:00",
    }


@pytest.fixture
def hub_socket():
    """A socket that completes the handshake."""
    return FakeHubSocket()


@pytest_asyncio.fixture
async def make_channel():
    """
    Build channels with short timings and track them for teardown.

    Usage:
        channel = make_channel(FakeConnector(socket))
    """
    created = []

    def _make(connector=None, **kwargs):
        options = {
            "reconnect_delay": 0.05,
            "keepalive_interval": 10.0,
            "server_timeout": 30.0,
            "handshake_timeout": 0.5,
        }
        options.update(kwargs)
        channel = AlertPushChannel(
            url="ws://hub.test/alertHub",
            connector=connector or FakeConnector(),
            **options,
        )
        created.append(channel)
        return channel

    yield _make

    for channel in created:
        await channel.disconnect()


@pytest.fixture
def recorder():
    """Collects whatever a handler is called with."""

    class Recorder:
        def __init__(self):
            self.items = []

        def __call__(self, item):
            self.items.append(item)

    return Recorder()
