"""Shipping Manager bunker price alerts over Telegram."""

from .config import Config, ConfigError, Thresholds, load_config
from .cooldown import CooldownState, CooldownStore
from .prices import PriceSlot, fetch_prices
from .alerts import AlertDecision, CheckContext, CheckStatus, check_prices, decide
from .scheduler import Scheduler

__all__ = [
    "Config",
    "ConfigError",
    "Thresholds",
    "load_config",
    "CooldownState",
    "CooldownStore",
    "PriceSlot",
    "fetch_prices",
    "AlertDecision",
    "CheckContext",
    "CheckStatus",
    "check_prices",
    "decide",
    "Scheduler",
]
