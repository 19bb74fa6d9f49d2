"""
Push channel for real-time alert events.

Features:
    - Single logical subscription to the alert hub
    - Fixed-delay reconnection, retried indefinitely (no backoff growth)
    - At most one pending reconnect at any time
    - Keep-alive pings and stale connection detection
    - Ordered delivery to every registered event handler

Connect failures are logged and turned into a scheduled reconnect. They are
never raised to the caller of connect(): losing the live feed degrades to
periodic reconnection, the console keeps working on snapshot data.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from alert_console.errors import TransportError

from .hub_protocol import (
    ALERT_RECEIVED_TARGET,
    HubMessage,
    HubMessageType,
    close_message,
    decode_frame,
    handshake_request,
    parse_handshake_response,
    ping_message,
)
from .models import AlertEvent

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Push channel connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


# Handlers may be plain functions or coroutines
EventHandler = Callable[[AlertEvent], Any]
StateHandler = Callable[[ConnectionState], Any]
Connector = Callable[..., Awaitable[Any]]


async def _invoke(handler: Callable[[Any], Any], arg: Any) -> None:
    result = handler(arg)
    if inspect.isawaitable(result):
        await result


class AlertPushChannel:
    """
    Resilient hub client delivering AlertEvents.

    Usage:
        channel = AlertPushChannel(url="ws://localhost:5167/alertHub")
        channel.on_event(aggregator.ingest)
        channel.on_event(dispatcher.notify)
        await channel.connect()

        # ... later
        await channel.disconnect()
    """

    HUB_URL = "ws://localhost:5167/alertHub"

    def __init__(
        self,
        url: Optional[str] = None,
        reconnect_delay: float = 5.0,
        keepalive_interval: float = 15.0,
        server_timeout: float = 30.0,
        handshake_timeout: float = 10.0,
        connector: Optional[Connector] = None,
    ):
        """
        Initialize the push channel.

        Args:
            url: Hub websocket URL
            reconnect_delay: Fixed delay before each reconnect attempt
            keepalive_interval: Seconds between outgoing pings
            server_timeout: Seconds without any inbound message before the
                connection is considered stale
            handshake_timeout: Seconds to wait for the handshake response
            connector: Websocket factory, defaults to websockets.connect
        """
        self._url = url or self.HUB_URL
        self._reconnect_delay = reconnect_delay
        self._keepalive_interval = keepalive_interval
        self._server_timeout = server_timeout
        self._handshake_timeout = handshake_timeout
        self._connector = connector or websockets.connect

        self._event_handlers: list[EventHandler] = []
        self._state_handlers: list[StateHandler] = []

        self._state = ConnectionState.DISCONNECTED
        self._ws: Optional[Any] = None
        self._stopped = True

        # Tasks
        self._receive_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

        self._reconnect_count = 0
        self._last_message_time: Optional[float] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        """Whether a reconnect attempt is scheduled."""
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def reconnect_count(self) -> int:
        """Number of reconnects scheduled since the first connect."""
        return self._reconnect_count

    @property
    def last_message_time(self) -> Optional[float]:
        """Event loop time of the last inbound frame."""
        return self._last_message_time

    def on_event(self, handler: EventHandler) -> EventHandler:
        """Register a handler for every received AlertEvent."""
        self._event_handlers.append(handler)
        return handler

    def on_state_change(self, handler: StateHandler) -> StateHandler:
        """Register a handler for connection state transitions."""
        self._state_handlers.append(handler)
        return handler

    async def _set_state(self, state: ConnectionState) -> None:
        """Update state and notify handlers."""
        if self._state == state:
            return

        old_state = self._state
        self._state = state
        logger.info(f"Alert hub state: {old_state.value} -> {state.value}")

        for handler in list(self._state_handlers):
            try:
                await _invoke(handler, state)
            except Exception as e:
                logger.error(f"Error in state change handler: {e}")

    async def connect(self) -> None:
        """
        Open the subscription.

        Never raises on transport failure: the channel drops back to
        DISCONNECTED and schedules a reconnect instead.
        """
        if self._state != ConnectionState.DISCONNECTED:
            logger.warning(f"Cannot connect: already {self._state.value}")
            return

        self._stopped = False

        # An explicit connect supersedes a pending reconnect
        if self.reconnect_pending:
            await self._cancel_task(self._reconnect_task)
            self._reconnect_task = None

        await self._open()

    async def disconnect(self) -> None:
        """
        Tear down the subscription and cancel any pending reconnect.

        No event is delivered after this returns.
        """
        self._stopped = True

        await self._cancel_task(self._reconnect_task)
        self._reconnect_task = None
        await self._cancel_task(self._keepalive_task)
        self._keepalive_task = None
        await self._cancel_task(self._receive_task)
        self._receive_task = None

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.send(close_message())
            except Exception as e:
                logger.debug(f"Could not send close message: {e}")
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"Error closing alert hub socket: {e}")

        await self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Alert hub channel stopped")

    async def _cancel_task(self, task: Optional[asyncio.Task]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Task ended with error during cancel: {e}")

    async def _open(self) -> None:
        """Connect, handshake and start the background loops."""
        await self._set_state(ConnectionState.CONNECTING)

        ws = None
        try:
            ws = await self._connector(
                self._url,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=5,
            )
            await ws.send(handshake_request())
            response = await asyncio.wait_for(ws.recv(), timeout=self._handshake_timeout)
            pending_records = parse_handshake_response(response)

        except asyncio.CancelledError:
            if ws is not None:
                await self._close_quietly(ws)
            raise

        except Exception as e:
            error = e if isinstance(e, TransportError) else TransportError(str(e) or type(e).__name__)
            logger.error(f"Failed to connect to alert hub at {self._url}: {error}")
            if ws is not None:
                await self._close_quietly(ws)
            await self._handle_connection_lost()
            return

        if self._stopped:
            # disconnect() ran while the handshake was in flight
            await self._close_quietly(ws)
            return

        self._ws = ws
        self._last_message_time = asyncio.get_running_loop().time()
        await self._set_state(ConnectionState.CONNECTED)
        logger.info(f"Connected to {self._url}")

        for record in pending_records:
            if await self._dispatch_frame(record):
                # Server closed in the same frame as the handshake response
                if not self._stopped:
                    await self._handle_connection_lost()
                return

        self._receive_task = asyncio.create_task(self._receive_loop(ws))
        self._keepalive_task = asyncio.create_task(self._keepalive_loop(ws))

    async def _close_quietly(self, ws: Any) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error closing socket: {e}")

    async def _receive_loop(self, ws: Any) -> None:
        """Read frames until the socket closes or the server says goodbye."""
        try:
            while not self._stopped:
                frame = await ws.recv()
                self._last_message_time = asyncio.get_running_loop().time()
                if await self._dispatch_frame(frame):
                    break

        except asyncio.CancelledError:
            logger.debug("Receive loop cancelled")
            raise

        except ConnectionClosed as e:
            logger.warning(f"Alert hub connection closed: {e}")

        except Exception as e:
            logger.error(f"Error in alert hub receive loop: {e}")

        if not self._stopped and self._ws is ws:
            await self._handle_connection_lost()

    async def _keepalive_loop(self, ws: Any) -> None:
        """Send pings and force a close when the server has gone quiet."""
        try:
            while not self._stopped:
                await asyncio.sleep(self._keepalive_interval)

                if self._last_message_time is not None:
                    elapsed = asyncio.get_running_loop().time() - self._last_message_time
                    if elapsed > self._server_timeout:
                        logger.warning(
                            f"Alert hub stale ({elapsed:.1f}s since last message), closing"
                        )
                        # The receive loop sees the close and schedules the reconnect
                        await self._close_quietly(ws)
                        return

                try:
                    await ws.send(ping_message())
                except Exception as e:
                    logger.debug(f"Ping failed: {e}")
                    return

        except asyncio.CancelledError:
            logger.debug("Keep-alive loop cancelled")
            raise

    async def _handle_connection_lost(self) -> None:
        """Drop to DISCONNECTED and schedule exactly one reconnect."""
        ws, self._ws = self._ws, None

        await self._cancel_task(self._keepalive_task)
        self._keepalive_task = None
        if ws is not None:
            await self._close_quietly(ws)

        await self._set_state(ConnectionState.DISCONNECTED)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._stopped:
            return

        task = self._reconnect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            logger.debug("Reconnect already pending")
            return

        self._reconnect_count += 1
        logger.info(
            f"Reconnecting in {self._reconnect_delay:.1f}s "
            f"(attempt #{self._reconnect_count})..."
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self._reconnect_delay)
        if not self._stopped and self._state == ConnectionState.DISCONNECTED:
            await self._open()

    async def _dispatch_frame(self, frame: Any) -> bool:
        """
        Deliver every alert in a frame.

        Returns:
            True if the server asked to close the connection
        """
        for message in decode_frame(frame):
            if self._stopped:
                return True

            if message.type == HubMessageType.INVOCATION:
                await self._handle_invocation(message)

            elif message.type == HubMessageType.PING:
                logger.debug("Received hub ping")

            elif message.type == HubMessageType.CLOSE:
                if message.error:
                    logger.warning(f"Alert hub closed connection: {message.error}")
                else:
                    logger.info("Alert hub closed connection")
                return True

            else:
                logger.debug(f"Ignoring hub message type {message.type}")

        return False

    async def _handle_invocation(self, message: HubMessage) -> None:
        if (message.target or "").lower() != ALERT_RECEIVED_TARGET.lower():
            logger.debug(f"Ignoring hub invocation '{message.target}'")
            return

        if not message.arguments:
            logger.warning("ReceiveAlert invocation without payload")
            return

        try:
            event = AlertEvent.from_payload(message.arguments[0])
        except ValueError as e:
            logger.warning(f"Dropping malformed alert payload: {e}")
            return

        logger.debug(
            f"Alert received: {event.alert_id} {event.sensor_id} "
            f"{event.status.value if event.status else 'no-status'}"
        )

        for handler in list(self._event_handlers):
            try:
                await _invoke(handler, event)
            except Exception as e:
                logger.error(f"Error in alert event handler: {e}")
