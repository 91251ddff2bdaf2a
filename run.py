#!/usr/bin/env python3
"""
Bunker Price Alert - Entry Point

Polls Shipping Manager fuel/CO2 prices every half hour and sends a
Telegram alert when a price drops to or below its threshold.

Usage:
    python run.py                    # Run continuously
    python run.py --once             # Single check and exit
    python run.py --test-telegram    # Send a test message and exit
    python run.py --env /path/.env   # Use a specific .env file
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from bunker_alert.alerts import CheckContext, CheckStatus, check_prices
from bunker_alert.config import REQUEST_TIMEOUT_SECONDS, Config, ConfigError, load_config
from bunker_alert.cooldown import CooldownStore, format_slot
from bunker_alert.notifier import send_test_message
from bunker_alert.scheduler import Scheduler
from bunker_alert.timezones import format_local_time, timezone_name

logger = logging.getLogger("bunker_alert")


def build_context(config: Config, store: CooldownStore, client: httpx.AsyncClient) -> CheckContext:
    """Load persisted cooldown state and bundle it with config and client."""
    state = store.load()
    logger.info(
        f"Cooldown state loaded - last check: "
        f"{format_local_time(state.last_check, config.timezone)}, "
        f"last fuel slot: {format_slot(state.last_fuel_slot)}, "
        f"last CO2 slot: {format_slot(state.last_co2_slot)}"
    )
    return CheckContext(config=config, store=store, client=client, state=state)


async def test_telegram(config: Config) -> bool:
    """Send a test message to the configured chat."""
    print("\n🔔 Testing Telegram delivery...")

    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        success = await send_test_message(client, config)

    if success:
        print("✅ Test message sent successfully! Check your Telegram chat.")
    else:
        print("❌ Failed to send test message. Check logs for details.")

    return success


async def run_single_check(config: Config, store: CooldownStore) -> bool:
    """Run one check cycle and report whether it completed."""
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        context = build_context(config, store, client)
        result = await check_prices(context)

    print(f"\n📊 Check result: {result.status.value}")
    return result.status not in (CheckStatus.FETCH_FAILED, CheckStatus.NO_PRICES)


async def run_continuous(config: Config, store: CooldownStore) -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        context = build_context(config, store, client)
        scheduler = Scheduler(context)
        scheduler.install_signal_handlers()
        await scheduler.run()

    logger.info("Bot stopped")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Shipping Manager Bunker Price Alerts for Telegram",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--env",
        type=Path,
        default=None,
        help="Path to .env file (default: next to this program, then working dir)",
    )
    parser.add_argument(
        "--cooldown-file",
        type=Path,
        default=None,
        help="Path to cooldown state file (default: .cooldown next to this program)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single price check and exit",
    )
    parser.add_argument(
        "--test-telegram",
        action="store_true",
        help="Send a test Telegram message and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info("Shipping Manager Price Alert Bot starting...")

    try:
        config = load_config(args.env)
    except ConfigError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1

    logger.info(
        f"Config loaded - Fuel threshold: ${config.thresholds.fuel}/t, "
        f"CO2 threshold: ${config.thresholds.co2}/t, "
        f"Timezone: {timezone_name(config.timezone)}"
    )
    logger.info(f"Telegram chat ID: {config.telegram_chat_id}")

    if args.test_telegram:
        return 0 if asyncio.run(test_telegram(config)) else 1

    store = CooldownStore(args.cooldown_file)

    if args.once:
        return 0 if asyncio.run(run_single_check(config, store)) else 1

    try:
        asyncio.run(run_continuous(config, store))
    except KeyboardInterrupt:
        print("\n\n👋 Bot stopped.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
