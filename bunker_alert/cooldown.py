"""Persistent cooldown state: which price slot was last alerted per channel."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import COOLDOWN_FILENAME, program_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CooldownState:
    """Last alerted slot key per channel ("" = never) and the last check time."""
    last_fuel_slot: str = ""
    last_co2_slot: str = ""
    last_check: Optional[datetime] = None

    def to_dict(self) -> dict[str, str]:
        data = {
            "last_fuel_slot": self.last_fuel_slot,
            "last_co2_slot": self.last_co2_slot,
        }
        if self.last_check is not None:
            data["last_check"] = format_rfc3339(self.last_check)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CooldownState":
        """Build state from the file's JSON object; raises ValueError on bad types."""
        fuel = data.get("last_fuel_slot")
        co2 = data.get("last_co2_slot")
        # null reads as unset; any other non-string is malformed
        fuel = "" if fuel is None else fuel
        co2 = "" if co2 is None else co2
        if not isinstance(fuel, str) or not isinstance(co2, str):
            raise ValueError("slot fields must be strings")

        last_check = None
        raw_check = data.get("last_check")
        if raw_check:
            try:
                if not isinstance(raw_check, str):
                    raise TypeError(type(raw_check).__name__)
                last_check = parse_rfc3339(raw_check)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring unreadable last_check value: {raw_check!r}")

        return cls(last_fuel_slot=fuel, last_co2_slot=co2, last_check=last_check)


def format_rfc3339(moment: datetime) -> str:
    """RFC 3339 with second precision, 'Z' for UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def parse_rfc3339(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        raise ValueError(f"timestamp has no UTC offset: {text}")
    return moment


def default_cooldown_path() -> Path:
    """The .cooldown file beside the running program, else a relative path."""
    base = program_dir()
    if base is None:
        return Path(COOLDOWN_FILENAME)
    return base / COOLDOWN_FILENAME


class CooldownStore:
    """Loads and saves CooldownState as a small JSON file."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else default_cooldown_path()

    def load(self) -> CooldownState:
        """
        Read the persisted state.

        A missing file is a normal first run. Unreadable or malformed
        files are logged and treated as "never alerted". Never raises.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No cooldown file at {self.path}, starting fresh")
            return CooldownState()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read cooldown file {self.path}: {e}")
            return CooldownState()

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return CooldownState.from_dict(data)
        except ValueError as e:
            logger.warning(f"Failed to parse cooldown file {self.path}: {e}")
            return CooldownState()

    def save(self, state: CooldownState) -> bool:
        """
        Overwrite the file with ``state``.

        Written to a temp file in the same directory and renamed into
        place. Returns False (after logging) if the write failed.
        """
        directory = self.path.parent
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
            logger.debug(f"Cooldown state saved to {self.path}")
            return True
        except OSError as e:
            logger.warning(f"Failed to save cooldown file {self.path}: {e}")
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass


def format_slot(slot: str) -> str:
    """Slot key for log lines, 'none' when empty."""
    return slot or "none"
