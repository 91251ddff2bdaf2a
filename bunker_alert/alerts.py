"""Alert decisions and the price check cycle."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from .config import Config, Thresholds
from .cooldown import CooldownState, CooldownStore
from .notifier import send_alert
from .prices import PriceSlot, fetch_prices
from .slot_clock import current_slot_time, utcnow
from .timezones import format_local_time, timezone_name

logger = logging.getLogger(__name__)

FetchFunc = Callable[[httpx.AsyncClient, Config], Awaitable[Optional[list[PriceSlot]]]]
NotifyFunc = Callable[[httpx.AsyncClient, Config, str], Awaitable[bool]]


class CheckStatus(Enum):
    """Outcome of one check cycle."""
    FETCH_FAILED = "fetch_failed"        # Request or parse error, state untouched
    NO_PRICES = "no_prices"              # Empty price list, state untouched
    ABOVE_THRESHOLD = "above_threshold"  # Nothing green
    ALREADY_ALERTED = "already_alerted"  # Green, but this slot was alerted before
    ALERTED = "alerted"
    DELIVERY_FAILED = "delivery_failed"  # Slots left as-is so the next tick retries


@dataclass(frozen=True)
class AlertDecision:
    """What one set of prices means for the alert channels."""
    slot: PriceSlot
    slot_key: str
    exact_match: bool
    fuel_green: bool
    co2_green: bool
    fire_fuel: bool
    fire_co2: bool
    updated_state: CooldownState
    message: Optional[str] = None

    @property
    def should_notify(self) -> bool:
        return self.fire_fuel or self.fire_co2


@dataclass
class CheckResult:
    status: CheckStatus
    decision: Optional[AlertDecision] = None


def is_green(price: int, threshold: int) -> bool:
    """A zero price is a data anomaly, never a bargain."""
    return 0 < price <= threshold


def select_slot(prices: Sequence[PriceSlot], slot_time: str) -> tuple[PriceSlot, bool]:
    """
    Find the slot for ``slot_time``.

    Falls back to the last entry (assumed most recent) when there is no
    exact match. Returns (slot, exact_match).
    """
    for slot in prices:
        if slot.time == slot_time:
            return slot, True
    return prices[-1], False


def build_message(slot: PriceSlot, fire_fuel: bool, fire_co2: bool) -> Optional[str]:
    """Telegram Markdown text for the channels that fire, None if neither."""
    if fire_fuel and fire_co2:
        return (
            "*Great news, Captain!*\n\n"
            "Both fuel and CO2 prices are looking fantastic right now!\n\n"
            f"Fuel: *${slot.fuel_price}/t*\n"
            f"CO2: *${slot.co2_price}/t*\n\n"
            "Time to stock up!"
        )
    if fire_fuel:
        return (
            "*Ahoy, Captain!*\n\n"
            "Fuel prices have dropped to a great level!\n\n"
            f"Fuel: *${slot.fuel_price}/t*\n\n"
            "Might be a good time to fill up your tanks!"
        )
    if fire_co2:
        return (
            "*Ahoy, Captain!*\n\n"
            "CO2 certificate prices are looking good!\n\n"
            f"CO2: *${slot.co2_price}/t*\n\n"
            "A fine opportunity to stock up on certificates!"
        )
    return None


def decide(
    prices: Sequence[PriceSlot],
    slot_time: str,
    thresholds: Thresholds,
    state: CooldownState,
    checked_at: Optional[datetime] = None,
) -> AlertDecision:
    """
    Decide which alerts fire for the current slot.

    Each channel fires when its price is green and the channel has not
    already been alerted for this slot key. ``updated_state`` is the
    state to keep once delivery succeeds; it also carries ``checked_at``
    as the new check timestamp when given.

    Raises:
        ValueError: if ``prices`` is empty.
    """
    if not prices:
        raise ValueError("cannot decide on an empty price list")

    slot, exact = select_slot(prices, slot_time)
    if not exact:
        logger.warning(
            f"No price found for time slot {slot_time}, "
            f"using last available slot: {slot.time} (day {slot.day})"
        )

    key = slot.slot_key
    fuel_green = is_green(slot.fuel_price, thresholds.fuel)
    co2_green = is_green(slot.co2_price, thresholds.co2)
    fire_fuel = fuel_green and state.last_fuel_slot != key
    fire_co2 = co2_green and state.last_co2_slot != key

    updated = replace(
        state,
        last_fuel_slot=key if fire_fuel else state.last_fuel_slot,
        last_co2_slot=key if fire_co2 else state.last_co2_slot,
        last_check=checked_at if checked_at is not None else state.last_check,
    )

    return AlertDecision(
        slot=slot,
        slot_key=key,
        exact_match=exact,
        fuel_green=fuel_green,
        co2_green=co2_green,
        fire_fuel=fire_fuel,
        fire_co2=fire_co2,
        updated_state=updated,
        message=build_message(slot, fire_fuel, fire_co2),
    )


@dataclass
class CheckContext:
    """Everything a check cycle needs, built once at startup."""
    config: Config
    store: CooldownStore
    client: httpx.AsyncClient
    state: CooldownState = field(default_factory=CooldownState)
    fetch: FetchFunc = fetch_prices
    notify: NotifyFunc = send_alert
    clock: Callable[[], datetime] = utcnow


async def check_prices(ctx: CheckContext, now: Optional[datetime] = None) -> CheckResult:
    """
    Run one check: fetch, decide, notify, persist.

    Fetch failures and empty results leave the cooldown state and file
    untouched. Every other outcome updates the check timestamp and saves.
    """
    if now is None:
        now = ctx.clock()
    tz = ctx.config.timezone
    thresholds = ctx.config.thresholds

    logger.info(
        f"Checking prices at {format_local_time(now, tz, '%H:%M:%S')} ({timezone_name(tz)})..."
    )

    prices = await ctx.fetch(ctx.client, ctx.config)
    if prices is None:
        logger.warning("Skipping this check, will retry on the next tick")
        return CheckResult(CheckStatus.FETCH_FAILED)
    if not prices:
        logger.warning("API returned empty price list")
        return CheckResult(CheckStatus.NO_PRICES)

    decision = decide(prices, current_slot_time(now), thresholds, ctx.state, checked_at=now)
    slot = decision.slot
    logger.info(
        f"Current prices - Fuel: ${slot.fuel_price}/t, CO2: ${slot.co2_price}/t "
        f"(slot: {slot.time}, day: {slot.day})"
    )

    if not decision.should_notify:
        if decision.fuel_green or decision.co2_green:
            logger.info(f"Prices are green but already alerted for slot {decision.slot_key}")
            status = CheckStatus.ALREADY_ALERTED
        else:
            logger.info("Prices above threshold, no alert needed")
            status = CheckStatus.ABOVE_THRESHOLD
        ctx.state = decision.updated_state
        ctx.store.save(ctx.state)
        return CheckResult(status, decision)

    delivered = await ctx.notify(ctx.client, ctx.config, decision.message)

    if delivered:
        ctx.state = decision.updated_state
        if decision.fire_fuel:
            logger.info(
                f"Fuel alert sent (${slot.fuel_price}/t <= ${thresholds.fuel}/t threshold, "
                f"slot {decision.slot_key})"
            )
        if decision.fire_co2:
            logger.info(
                f"CO2 alert sent (${slot.co2_price}/t <= ${thresholds.co2}/t threshold, "
                f"slot {decision.slot_key})"
            )
        status = CheckStatus.ALERTED
    else:
        ctx.state = replace(ctx.state, last_check=now)
        status = CheckStatus.DELIVERY_FAILED

    ctx.store.save(ctx.state)
    return CheckResult(status, decision)
