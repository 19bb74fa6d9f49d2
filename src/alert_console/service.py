"""
Alert console orchestrator.

Wires the components together:
    - Push channel -> alert state aggregator + notification dispatcher
    - REST client -> threshold editor + alert log query
    - Optional FastAPI dashboard exposing state and accepting intents

Features:
    - Graceful startup/shutdown
    - Initial catalog load and match-all alert log search on start
    - Signal handling (SIGTERM, SIGINT)
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .core.aggregator import DEFAULT_HISTORY_CAPACITY, AlertStateAggregator
from .core.modules import ModuleBoard
from .monitoring.notifications import FocusTracker, NotificationDispatcher, ToastQueue
from .monitoring.notifiers import SystemNotifier, TelegramNotifier
from .snapshot.alert_log import AlertLogQuery
from .snapshot.client import ConsoleRestClient
from .snapshot.thresholds import SavePolicy, ThresholdEditor
from .stream.channel import AlertPushChannel, ConnectionState

logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    """Service lifecycle state."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


@dataclass
class ConsoleConfig:
    """Configuration for the alert console."""

    # Backend endpoints
    api_url: str = ConsoleRestClient.BASE_URL
    hub_url: str = AlertPushChannel.HUB_URL

    # Push channel
    reconnect_delay: float = 5.0
    keepalive_interval: float = 15.0

    # REST client
    request_timeout: float = 30.0
    max_retries: int = 3

    # Live state
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    save_policy: SavePolicy = SavePolicy.PER_SENSOR
    focus_suppression: bool = True

    # Dashboard
    dashboard_enabled: bool = True
    dashboard_host: str = "127.0.0.1"
    dashboard_port: int = 9060

    # System notifications
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ConsoleConfig":
        """Load configuration from environment variables."""
        return cls(
            api_url=os.environ.get("CONSOLE_API_URL", ConsoleRestClient.BASE_URL),
            hub_url=os.environ.get("CONSOLE_HUB_URL", AlertPushChannel.HUB_URL),
            reconnect_delay=float(os.environ.get("RECONNECT_DELAY_SECONDS", "5")),
            keepalive_interval=float(os.environ.get("KEEPALIVE_INTERVAL_SECONDS", "15")),
            request_timeout=float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "30")),
            max_retries=int(os.environ.get("MAX_RETRIES", "3")),
            history_capacity=int(os.environ.get("HISTORY_CAPACITY", str(DEFAULT_HISTORY_CAPACITY))),
            save_policy=SavePolicy(os.environ.get("SAVE_POLICY", SavePolicy.PER_SENSOR.value)),
            focus_suppression=_env_bool("FOCUS_SUPPRESSION", "true"),
            dashboard_enabled=_env_bool("DASHBOARD_ENABLED", "true"),
            dashboard_host=os.environ.get("DASHBOARD_HOST", "127.0.0.1"),
            dashboard_port=int(os.environ.get("DASHBOARD_PORT", "9060")),
            telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID"),
        )


class AlertConsole:
    """
    Main console orchestrator.

    Usage:
        console = AlertConsole(ConsoleConfig.from_env())
        await console.start()

        console.aggregator.module_flags
        await console.alert_log.search()

        await console.stop()
    """

    def __init__(
        self,
        config: Optional[ConsoleConfig] = None,
        client: Optional[ConsoleRestClient] = None,
        channel: Optional[AlertPushChannel] = None,
        system_notifier: Optional[SystemNotifier] = None,
    ):
        """
        Initialize the console.

        Args:
            config: Console configuration
            client: Optional REST client (created from config if omitted)
            channel: Optional push channel (created from config if omitted)
            system_notifier: Optional system notifier (Telegram when configured)
        """
        self._config = config or ConsoleConfig()
        self._state = ServiceState.STOPPED
        self._started_at: Optional[datetime] = None
        self._stop_event = asyncio.Event()

        self.client = client or ConsoleRestClient(
            base_url=self._config.api_url,
            timeout=self._config.request_timeout,
            max_retries=self._config.max_retries,
        )
        self.channel = channel or AlertPushChannel(
            url=self._config.hub_url,
            reconnect_delay=self._config.reconnect_delay,
            keepalive_interval=self._config.keepalive_interval,
        )

        if system_notifier is None and self._config.telegram_bot_token:
            system_notifier = TelegramNotifier(
                bot_token=self._config.telegram_bot_token,
                chat_id=self._config.telegram_chat_id,
            )

        self.toasts = ToastQueue()
        self.focus = FocusTracker()
        self.aggregator = AlertStateAggregator(capacity=self._config.history_capacity)
        self.dispatcher = NotificationDispatcher(
            toasts=self.toasts,
            system_notifier=system_notifier,
            focus=self.focus,
            focus_suppression=self._config.focus_suppression,
        )
        self.modules = ModuleBoard(self.aggregator)
        self.editor = ThresholdEditor(self.client, self.toasts, policy=self._config.save_policy)
        self.alert_log = AlertLogQuery(self.client)

        # Fold into state before notifying
        self.channel.on_event(self.aggregator.ingest)
        self.channel.on_event(self.dispatcher.notify)
        self.channel.on_state_change(self._handle_channel_state)

        self._dashboard_task: Optional[asyncio.Task] = None

    @property
    def config(self) -> ConsoleConfig:
        return self._config

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def connection_state(self) -> ConnectionState:
        return self.channel.state

    async def start(self) -> None:
        """Connect the live feed and take the initial snapshots."""
        if self._state != ServiceState.STOPPED:
            logger.warning(f"Cannot start: already in state {self._state.value}")
            return

        self._state = ServiceState.STARTING
        self._started_at = datetime.now(timezone.utc)
        self._stop_event.clear()
        logger.info("Starting alert console...")

        await self.channel.connect()
        await self.editor.load()
        await self.alert_log.search()

        if self._config.dashboard_enabled:
            await self._start_dashboard()

        self._state = ServiceState.RUNNING
        logger.info("Alert console running")

    async def stop(self) -> None:
        """Stop the console gracefully."""
        if self._state in (ServiceState.STOPPED, ServiceState.STOPPING):
            return

        self._state = ServiceState.STOPPING
        logger.info("Stopping alert console...")

        await self.channel.disconnect()

        if self._dashboard_task:
            self._dashboard_task.cancel()
            try:
                await self._dashboard_task
            except asyncio.CancelledError:
                pass
            self._dashboard_task = None

        await self.client.close()

        self._state = ServiceState.STOPPED
        self._stop_event.set()
        logger.info("Alert console stopped")

    async def _handle_channel_state(self, state: ConnectionState) -> None:
        if state == ConnectionState.DISCONNECTED and self._state == ServiceState.RUNNING:
            logger.warning("Live alert feed lost, showing snapshot data until reconnected")

    async def _start_dashboard(self) -> None:
        """Start the dashboard server in the background."""
        # Import lazily so the console runs headless without the web stack loaded
        from .monitoring.dashboard import create_console_app

        import uvicorn

        app = create_console_app(self)
        config = uvicorn.Config(
            app,
            host=self._config.dashboard_host,
            port=self._config.dashboard_port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        self._dashboard_task = asyncio.create_task(server.serve())
        logger.info(
            f"Dashboard started at http://{self._config.dashboard_host}:"
            f"{self._config.dashboard_port}"
        )

    def status(self) -> dict[str, Any]:
        """Snapshot of the console state for display."""
        uptime = 0.0
        if self._started_at:
            uptime = (datetime.now(timezone.utc) - self._started_at).total_seconds()

        return {
            "state": self._state.value,
            "uptime_seconds": round(uptime, 0),
            "connection": {
                "state": self.channel.state.value,
                "connected": self.channel.is_connected,
                "reconnect_pending": self.channel.reconnect_pending,
                "reconnect_count": self.channel.reconnect_count,
            },
            "unread_alerts": self.aggregator.unread_alerts,
            "history_size": len(self.aggregator.history),
            "history_capacity": self.aggregator.capacity,
            "sensors_loaded": len(self.editor.sensors),
            "alert_log_records": len(self.alert_log.results),
            "notification_permission": self.dispatcher.permission.value,
        }

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def handle_signal(sig):
            logger.info(f"Received signal {sig}, initiating shutdown...")
            asyncio.create_task(self.stop())

        try:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    async def run_forever(self) -> None:
        """Run the console until a shutdown signal arrives."""
        self._setup_signal_handlers()
        await self.start()

        try:
            await self._stop_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self.stop()
