"""Configuration settings for the bunker price alert bot."""

import logging
import os
import sys
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

from .timezones import resolve_timezone

logger = logging.getLogger(__name__)

# Game price API
PRICE_API_URL: str = "https://shippingmanager.cc/api/bunker/get-prices"
GAME_ORIGIN: str = "https://shippingmanager.cc"
GAME_VERSION: str = "1.0.313"
USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/141.0.0.0 Safari/537.36"
)
SESSION_COOKIE: str = "shipping_manager_session"

# Telegram
TELEGRAM_API_BASE: str = "https://api.telegram.org"

# Scheduling (prices roll over on UTC :00/:30, we poll one minute later)
CHECK_INTERVAL_MINUTES: int = 30
BOUNDARY_OFFSET_MINUTES: int = 1

# HTTP settings
REQUEST_TIMEOUT_SECONDS: int = 30

# Files
ENV_FILENAME: str = ".env"
COOLDOWN_FILENAME: str = ".cooldown"

REQUIRED_KEYS: tuple[str, ...] = (
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "SESSION_TOKEN",
    "FUEL_THRESHOLD",
    "CO2_THRESHOLD",
)


class ConfigError(Exception):
    """Raised when required settings are missing or malformed."""


@dataclass(frozen=True)
class Thresholds:
    """Alert thresholds in $/t, one per price type."""
    fuel: int
    co2: int


@dataclass(frozen=True)
class Config:
    """Immutable process configuration, loaded once before scheduling starts."""
    telegram_bot_token: str
    telegram_chat_id: str
    session_token: str
    thresholds: Thresholds
    timezone: tzinfo
    env_path: Optional[Path] = None


def program_dir() -> Optional[Path]:
    """Directory of the running program, or None if it cannot be determined."""
    argv0 = sys.argv[0] if sys.argv else ""
    if not argv0 or argv0 == "-c":
        return None
    try:
        return Path(argv0).resolve().parent
    except OSError:
        return None


def find_env_file() -> Optional[Path]:
    """Look for .env beside the program first, then in the working directory."""
    base = program_dir()
    if base is not None:
        candidate = base / ENV_FILENAME
        if candidate.is_file():
            return candidate

    candidate = Path(ENV_FILENAME)
    if candidate.is_file():
        return candidate

    return None


def _parse_threshold(key: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def load_config(env_path: str | Path | None = None) -> Config:
    """
    Load and validate configuration.

    Values come from the .env file (explicit path, or discovered via
    find_env_file). Process environment variables fill keys the file
    does not set.

    Raises:
        ConfigError: if the file is missing/unreadable or a required
            value is missing or invalid.
    """
    if env_path is not None:
        path: Optional[Path] = Path(env_path)
        if not path.is_file():
            raise ConfigError(f".env file not found: {path}")
    else:
        path = find_env_file()

    values: dict[str, str] = {}
    if path is not None:
        logger.info(f"Loading config from: {path}")
        try:
            file_values = dotenv_values(path)
        except OSError as e:
            raise ConfigError(f"failed to read {path}: {e}") from e
        values.update({k: v.strip() for k, v in file_values.items() if v is not None})

    for key in (*REQUIRED_KEYS, "TIMEZONE"):
        if not values.get(key) and os.getenv(key):
            values[key] = os.environ[key].strip()

    if path is None and not any(values.get(key) for key in REQUIRED_KEYS):
        raise ConfigError(".env file not found (checked program dir and working dir)")

    for key in REQUIRED_KEYS:
        if not values.get(key):
            raise ConfigError(f"missing required .env value: {key}")

    thresholds = Thresholds(
        fuel=_parse_threshold("FUEL_THRESHOLD", values["FUEL_THRESHOLD"]),
        co2=_parse_threshold("CO2_THRESHOLD", values["CO2_THRESHOLD"]),
    )

    return Config(
        telegram_bot_token=values["TELEGRAM_BOT_TOKEN"],
        telegram_chat_id=values["TELEGRAM_CHAT_ID"],
        session_token=values["SESSION_TOKEN"],
        thresholds=thresholds,
        timezone=resolve_timezone(values.get("TIMEZONE", "")),
        env_path=path,
    )
