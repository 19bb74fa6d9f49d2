"""
Industrial Alert Console - Main Entry Point

Usage:
    python -m alert_console.main [--no-dashboard] [--port PORT]

Environment Variables:
    CONSOLE_API_URL               Backend REST base URL (default: http://localhost:5167)
    CONSOLE_HUB_URL               Alert hub websocket URL (default: ws://localhost:5167/alertHub)
    RECONNECT_DELAY_SECONDS       Fixed delay between hub reconnects (default: 5)
    KEEPALIVE_INTERVAL_SECONDS    Hub ping interval (default: 15)
    REQUEST_TIMEOUT_SECONDS       REST request timeout (default: 30)
    MAX_RETRIES                   REST retries for reads (default: 3)
    HISTORY_CAPACITY              Live alerts kept in memory (default: 50)
    SAVE_POLICY                   per_sensor or global (default: per_sensor)
    FOCUS_SUPPRESSION             Skip system notifications while focused (default: true)
    DASHBOARD_ENABLED             Serve the console API (default: true)
    DASHBOARD_HOST                Dashboard bind host (default: 127.0.0.1)
    DASHBOARD_PORT                Dashboard port (default: 9060)
    TELEGRAM_BOT_TOKEN            Telegram bot token for system notifications
    TELEGRAM_CHAT_ID              Telegram chat ID for system notifications
    LOG_LEVEL                     Logging level (DEBUG/INFO/WARNING/ERROR)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

# Configure logging before imports
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from alert_console.service import AlertConsole, ConsoleConfig  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Industrial Alert Console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--no-dashboard",
        action="store_true",
        help="Run headless without the console API",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Dashboard port (overrides DASHBOARD_PORT)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ConsoleConfig:
    config = ConsoleConfig.from_env()
    if args.no_dashboard:
        config.dashboard_enabled = False
    if args.port is not None:
        config.dashboard_port = args.port
    return config


async def main_async(args: argparse.Namespace) -> int:
    config = build_config(args)

    logger.info("=" * 60)
    logger.info("INDUSTRIAL ALERT CONSOLE")
    logger.info("=" * 60)
    logger.info(f"Backend: {config.api_url}")
    logger.info(f"Hub: {config.hub_url}")
    logger.info(f"Save policy: {config.save_policy.value}")
    logger.info("=" * 60)

    console = AlertConsole(config)
    await console.run_forever()
    return 0


def main() -> int:
    args = parse_args()
    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
