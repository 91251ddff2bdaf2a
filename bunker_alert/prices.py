"""Bunker price fetching from the game API."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .config import (
    GAME_ORIGIN,
    GAME_VERSION,
    PRICE_API_URL,
    SESSION_COOKIE,
    USER_AGENT,
    Config,
)
from .slot_clock import slot_key

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """The price API answered with something we cannot read."""


@dataclass(frozen=True)
class PriceSlot:
    """A single half-hour price entry from the API."""
    fuel_price: int
    co2_price: int
    time: str
    day: int

    @property
    def slot_key(self) -> str:
        return slot_key(self.time, self.day)

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "PriceSlot":
        """Build a slot from one API record, validating field types."""
        try:
            fuel = item["fuel_price"]
            co2 = item["co2_price"]
            time = item["time"]
            day = item["day"]
        except (KeyError, TypeError) as e:
            raise PayloadError(f"price record missing field: {e}") from e

        for name, value in (("fuel_price", fuel), ("co2_price", co2), ("day", day)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise PayloadError(f"price record field {name} is not an integer: {value!r}")
        if not isinstance(time, str):
            raise PayloadError(f"price record field time is not a string: {time!r}")
        if fuel < 0 or co2 < 0:
            raise PayloadError(f"negative price in record: {item!r}")

        return cls(fuel_price=fuel, co2_price=co2, time=time, day=day)


def parse_prices(payload: Any) -> list[PriceSlot]:
    """
    Extract price slots from a ``{"data": {"prices": [...]}}`` response body.

    A missing ``prices`` list is read as empty; anything structurally
    wrong raises PayloadError.
    """
    if not isinstance(payload, dict):
        raise PayloadError(f"expected a JSON object, got {type(payload).__name__}")

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise PayloadError("'data' is not an object")

    prices = data.get("prices") or []
    if not isinstance(prices, list):
        raise PayloadError("'data.prices' is not a list")

    return [PriceSlot.from_dict(item) for item in prices]


def build_headers(session_token: str) -> dict[str, str]:
    """Request headers the game API expects from a browser session."""
    return {
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json, text/plain, */*",
        "Game-Version": GAME_VERSION,
        "User-Agent": USER_AGENT,
        "Origin": GAME_ORIGIN,
        "Referer": f"{GAME_ORIGIN}/loading",
        "Cookie": f"{SESSION_COOKIE}={session_token}",
    }


async def fetch_prices(client: httpx.AsyncClient, config: Config) -> Optional[list[PriceSlot]]:
    """
    Fetch the current window of price slots.

    Returns the (possibly empty) list of slots, or None if the request
    failed or the response could not be parsed.
    """
    try:
        response = await client.post(
            PRICE_API_URL,
            content=b"",
            headers=build_headers(config.session_token),
        )
    except httpx.TimeoutException as e:
        logger.error(f"Price API request timed out: {e!r}")
        return None
    except httpx.RequestError as e:
        logger.error(f"Price API request failed: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"Price API returned status {response.status_code}: {response.text}")
        return None

    try:
        prices = parse_prices(response.json())
    except ValueError as e:
        logger.error(f"Failed to parse price response: {e} (body: {response.text})")
        return None

    logger.debug(f"Fetched {len(prices)} price slots")
    return prices
