"""
Tests for the alert push channel.

These tests verify:
- Connect lifecycle and handshake
- Ordered delivery to every handler (sync and async)
- Connect failures are swallowed and turned into one scheduled reconnect
- Unexpected close -> DISCONNECTED now, CONNECTING after the fixed delay
- disconnect() cancels pending reconnects and stops delivery
"""

import asyncio

import pytest

from alert_console.stream.channel import ConnectionState
from alert_console.stream.hub_protocol import handshake_request, ping_message
from alert_console.stream.models import AlertStatus

from .fakes import (
    RS,
    FakeConnector,
    FakeHubSocket,
    alert_invocation,
    hub_frame,
    wait_until,
)


class TestConnect:
    """Tests for connect()."""

    @pytest.mark.asyncio
    async def test_connect_reaches_connected(self, make_channel, hub_socket):
        channel = make_channel(FakeConnector(hub_socket))
        states = []
        channel.on_state_change(states.append)

        await channel.connect()

        assert channel.state == ConnectionState.CONNECTED
        assert channel.is_connected
        assert states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]

    @pytest.mark.asyncio
    async def test_handshake_is_first_message(self, make_channel, hub_socket):
        channel = make_channel(FakeConnector(hub_socket))

        await channel.connect()

        assert hub_socket.sent[0] == handshake_request()

    @pytest.mark.asyncio
    async def test_connect_failure_is_not_raised(self, make_channel):
        connector = FakeConnector(OSError("connection refused"))
        channel = make_channel(connector)

        # Should not raise
        await channel.connect()

        assert channel.state == ConnectionState.DISCONNECTED
        assert channel.reconnect_pending
        assert channel.reconnect_count == 1

    @pytest.mark.asyncio
    async def test_rejected_handshake_schedules_reconnect(self, make_channel):
        rejected = FakeHubSocket(handshake=hub_frame({"error": "protocol not supported"}))
        channel = make_channel(FakeConnector(rejected))

        await channel.connect()

        assert channel.state == ConnectionState.DISCONNECTED
        assert channel.reconnect_pending
        assert rejected.closed

    @pytest.mark.asyncio
    async def test_reconnects_after_failure(self, make_channel):
        connector = FakeConnector(OSError("connection refused"), FakeHubSocket())
        channel = make_channel(connector)

        await channel.connect()
        await wait_until(lambda: channel.is_connected)

        assert len(connector.calls) == 2

    @pytest.mark.asyncio
    async def test_retries_indefinitely_without_backoff(self, make_channel):
        failures = [OSError("down")] * 4
        connector = FakeConnector(*failures, FakeHubSocket())
        channel = make_channel(connector, reconnect_delay=0.01)

        await channel.connect()
        await wait_until(lambda: channel.is_connected)

        assert len(connector.calls) == 5
        assert channel.reconnect_count == 4

    @pytest.mark.asyncio
    async def test_connect_while_connected_is_ignored(self, make_channel, hub_socket):
        connector = FakeConnector(hub_socket)
        channel = make_channel(connector)
        await channel.connect()

        await channel.connect()

        assert len(connector.calls) == 1


class TestEventDelivery:
    """Tests for alert delivery to handlers."""

    @pytest.mark.asyncio
    async def test_delivers_alerts_in_arrival_order(self, make_channel, hub_socket, recorder):
        channel = make_channel(FakeConnector(hub_socket))
        channel.on_event(recorder)
        await channel.connect()

        hub_socket.feed(hub_frame(
            alert_invocation(alertId="a-1", sensorId="S1", digitalModuleId="M1", status="firing"),
            alert_invocation(alertId="a-2", sensorId="S1", digitalModuleId="M1", status="resolved"),
        ))
        hub_socket.feed(hub_frame(alert_invocation(alertId="a-3", status="firing")))
        await wait_until(lambda: len(recorder.items) == 3)

        assert [e.alert_id for e in recorder.items] == ["a-1", "a-2", "a-3"]
        assert recorder.items[1].status is AlertStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_delivers_to_sync_and_async_handlers(self, make_channel, hub_socket, recorder):
        channel = make_channel(FakeConnector(hub_socket))
        received = []

        async def async_handler(event):
            await asyncio.sleep(0)
            received.append(event.alert_id)

        channel.on_event(recorder)
        channel.on_event(async_handler)
        await channel.connect()

        hub_socket.feed(hub_frame(alert_invocation(alertId="a-1", status="firing")))
        await wait_until(lambda: received == ["a-1"])

        assert [e.alert_id for e in recorder.items] == ["a-1"]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, make_channel, hub_socket, recorder):
        channel = make_channel(FakeConnector(hub_socket))

        def broken(event):
            raise RuntimeError("handler bug")

        channel.on_event(broken)
        channel.on_event(recorder)
        await channel.connect()

        hub_socket.feed(hub_frame(alert_invocation(alertId="a-1", status="firing")))
        await wait_until(lambda: len(recorder.items) == 1)

        assert channel.is_connected

    @pytest.mark.asyncio
    async def test_ignores_other_targets_and_pings(self, make_channel, hub_socket, recorder):
        channel = make_channel(FakeConnector(hub_socket))
        channel.on_event(recorder)
        await channel.connect()

        hub_socket.feed(hub_frame(
            {"type": 6},
            {"type": 1, "target": "ReceiveHeartbeat", "arguments": [{}]},
            alert_invocation(alertId="a-9", status="resolved"),
        ))
        await wait_until(lambda: len(recorder.items) == 1)

        assert recorder.items[0].alert_id == "a-9"

    @pytest.mark.asyncio
    async def test_delivers_records_piggybacked_on_handshake(self, make_channel, recorder):
        socket = FakeHubSocket(
            handshake="{}" + RS + hub_frame(alert_invocation(alertId="a-0", status="firing"))
        )
        channel = make_channel(FakeConnector(socket))
        channel.on_event(recorder)

        await channel.connect()

        assert [e.alert_id for e in recorder.items] == ["a-0"]

    @pytest.mark.asyncio
    async def test_close_piggybacked_on_handshake_reconnects(self, make_channel, recorder):
        socket = FakeHubSocket(
            handshake="{}" + RS + hub_frame(
                {"type": 7, "error": "server shutting down"},
                alert_invocation(alertId="after-close", status="firing"),
            )
        )
        channel = make_channel(FakeConnector(socket), reconnect_delay=1.0)
        channel.on_event(recorder)

        await channel.connect()

        assert channel.state == ConnectionState.DISCONNECTED
        assert channel.reconnect_pending
        assert recorder.items == []
        assert socket.closed

    @pytest.mark.asyncio
    async def test_no_events_after_disconnect(self, make_channel, hub_socket, recorder):
        channel = make_channel(FakeConnector(hub_socket))
        channel.on_event(recorder)
        await channel.connect()

        await channel.disconnect()
        hub_socket.feed(hub_frame(alert_invocation(alertId="late", status="firing")))
        await asyncio.sleep(0.02)

        assert recorder.items == []
        assert hub_socket.closed


class TestReconnect:
    """Tests for loss of the live feed."""

    @pytest.mark.asyncio
    async def test_unexpected_close_reconnects_after_fixed_delay(self, make_channel, hub_socket):
        blocked = asyncio.Event()  # second connect hangs so CONNECTING is observable
        connector = FakeConnector(hub_socket, blocked)
        channel = make_channel(connector, reconnect_delay=0.1)
        await channel.connect()

        hub_socket.drop()
        await wait_until(lambda: channel.state == ConnectionState.DISCONNECTED)

        # Disconnected immediately, reconnect only after the delay
        assert channel.reconnect_pending
        assert len(connector.calls) == 1

        await wait_until(lambda: channel.state == ConnectionState.CONNECTING)

        assert len(connector.calls) == 2
        assert channel.reconnect_count == 1

    @pytest.mark.asyncio
    async def test_no_duplicate_reconnect_timers(self, make_channel, hub_socket):
        channel = make_channel(FakeConnector(hub_socket), reconnect_delay=0.2)
        await channel.connect()

        hub_socket.drop()
        await wait_until(lambda: channel.reconnect_pending)
        pending = channel._reconnect_task

        channel._schedule_reconnect()
        channel._schedule_reconnect()

        assert channel._reconnect_task is pending
        assert channel.reconnect_count == 1

    @pytest.mark.asyncio
    async def test_server_close_message_triggers_reconnect(self, make_channel, hub_socket):
        connector = FakeConnector(hub_socket, FakeHubSocket())
        channel = make_channel(connector, reconnect_delay=0.01)
        await channel.connect()

        hub_socket.feed(hub_frame({"type": 7, "error": "Server restarting"}))
        await wait_until(lambda: len(connector.calls) == 2 and channel.is_connected)

        assert hub_socket.closed

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_reconnect(self, make_channel):
        connector = FakeConnector(OSError("down"))
        channel = make_channel(connector, reconnect_delay=0.05)
        await channel.connect()
        assert channel.reconnect_pending

        await channel.disconnect()
        await asyncio.sleep(0.1)

        assert not channel.reconnect_pending
        assert len(connector.calls) == 1
        assert channel.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_during_reconnect_attempt(self, make_channel, hub_socket):
        blocked = asyncio.Event()
        connector = FakeConnector(hub_socket, blocked)
        channel = make_channel(connector, reconnect_delay=0.01)
        await channel.connect()

        hub_socket.drop()
        await wait_until(lambda: channel.state == ConnectionState.CONNECTING)
        await channel.disconnect()

        assert channel.state == ConnectionState.DISCONNECTED
        assert not channel.reconnect_pending


class TestKeepAlive:
    """Tests for pings and stale connection detection."""

    @pytest.mark.asyncio
    async def test_sends_pings(self, make_channel, hub_socket):
        channel = make_channel(FakeConnector(hub_socket), keepalive_interval=0.01)
        await channel.connect()

        await wait_until(lambda: ping_message() in hub_socket.sent)

    @pytest.mark.asyncio
    async def test_stale_connection_is_closed_and_reconnected(self, make_channel, hub_socket):
        connector = FakeConnector(hub_socket, FakeHubSocket())
        channel = make_channel(
            connector,
            keepalive_interval=0.01,
            server_timeout=0.03,
            reconnect_delay=0.01,
        )
        await channel.connect()

        await wait_until(lambda: len(connector.calls) >= 2)

        assert hub_socket.closed
