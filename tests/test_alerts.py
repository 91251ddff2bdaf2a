"""Unit tests for alert decisions and the check cycle."""

import asyncio
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bunker_alert.alerts import (
    CheckContext,
    CheckStatus,
    build_message,
    check_prices,
    decide,
    is_green,
    select_slot,
)
from bunker_alert.config import Config, Thresholds
from bunker_alert.cooldown import CooldownState, CooldownStore
from bunker_alert.prices import PriceSlot

THRESHOLDS = Thresholds(fuel=500, co2=10)
NOW = datetime(2024, 5, 1, 14, 1, tzinfo=timezone.utc)


def make_config(thresholds: Thresholds = THRESHOLDS) -> Config:
    return Config(
        telegram_bot_token="123:abc",
        telegram_chat_id="-100200",
        session_token="session",
        thresholds=thresholds,
        timezone=timezone.utc,
    )


class FakeApi:
    """Stands in for the price fetch and Telegram delivery."""

    def __init__(self, prices=None, deliver_ok: bool = True):
        self.prices = prices
        self.deliver_ok = deliver_ok
        self.messages: list[str] = []
        self.fetch_calls = 0

    async def fetch(self, client, config):
        self.fetch_calls += 1
        return self.prices

    async def notify(self, client, config, text):
        self.messages.append(text)
        return self.deliver_ok


def make_context(tmp_path, api: FakeApi, state: CooldownState | None = None) -> CheckContext:
    return CheckContext(
        config=make_config(),
        store=CooldownStore(tmp_path / ".cooldown"),
        client=None,
        state=state or CooldownState(),
        fetch=api.fetch,
        notify=api.notify,
        clock=lambda: NOW,
    )


class TestIsGreen:
    """Tests for the threshold criterion."""

    def test_below_threshold(self):
        assert is_green(450, 500)

    def test_equal_to_threshold(self):
        """At the threshold counts as green."""
        assert is_green(500, 500)

    def test_above_threshold(self):
        assert not is_green(501, 500)

    def test_zero_never_green(self):
        """A zero price is a data anomaly regardless of threshold."""
        assert not is_green(0, 500)
        assert not is_green(0, 0)


class TestSelectSlot:
    """Tests for matching the current slot."""

    def test_exact_match(self):
        prices = [PriceSlot(1, 1, "13:30", 3), PriceSlot(2, 2, "14:00", 3), PriceSlot(3, 3, "14:30", 3)]
        slot, exact = select_slot(prices, "14:00")
        assert slot.fuel_price == 2
        assert exact

    def test_falls_back_to_last(self):
        """Without a match the last entry is used."""
        prices = [PriceSlot(1, 1, "13:00", 3), PriceSlot(2, 2, "13:30", 3)]
        slot, exact = select_slot(prices, "14:00")
        assert slot.time == "13:30"
        assert not exact


class TestDecide:
    """Tests for the alert decision."""

    def test_fuel_only(self):
        """Green fuel with empty cooldown fires a fuel-only alert."""
        prices = [PriceSlot(450, 15, "14:00", 3)]
        decision = decide(prices, "14:00", THRESHOLDS, CooldownState())
        assert decision.fire_fuel
        assert not decision.fire_co2
        assert decision.slot_key == "14:00-d3"
        assert decision.updated_state.last_fuel_slot == "14:00-d3"
        assert decision.updated_state.last_co2_slot == ""
        assert decision.message.startswith("*Ahoy, Captain!*\n\nFuel prices")

    def test_already_alerted_slot(self):
        """The same slot never fires twice."""
        prices = [PriceSlot(450, 15, "14:00", 3)]
        state = CooldownState(last_fuel_slot="14:00-d3")
        decision = decide(prices, "14:00", THRESHOLDS, state)
        assert decision.fuel_green
        assert not decision.should_notify
        assert decision.message is None
        assert decision.updated_state == state

    def test_zero_fuel_only_co2_fires(self):
        """Fuel price 0 is ignored, CO2 still fires."""
        prices = [PriceSlot(0, 5, "09:30", 1)]
        decision = decide(prices, "09:30", THRESHOLDS, CooldownState())
        assert not decision.fire_fuel
        assert decision.fire_co2
        assert decision.updated_state.last_co2_slot == "09:30-d1"
        assert decision.updated_state.last_fuel_slot == ""

    def test_both_channels_independent(self):
        """Fuel and CO2 fire together when both are green."""
        prices = [PriceSlot(400, 8, "14:00", 3)]
        decision = decide(prices, "14:00", THRESHOLDS, CooldownState())
        assert decision.fire_fuel and decision.fire_co2
        assert decision.message.startswith("*Great news, Captain!*")

    def test_fuel_cooldown_does_not_block_co2(self):
        """A fuel cooldown for this slot leaves CO2 free to fire."""
        prices = [PriceSlot(400, 8, "14:00", 3)]
        state = CooldownState(last_fuel_slot="14:00-d3")
        decision = decide(prices, "14:00", THRESHOLDS, state)
        assert not decision.fire_fuel
        assert decision.fire_co2
        assert decision.updated_state.last_fuel_slot == "14:00-d3"
        assert decision.updated_state.last_co2_slot == "14:00-d3"

    def test_new_slot_fires_again(self):
        """A later slot is a fresh opportunity."""
        prices = [PriceSlot(450, 15, "14:30", 3)]
        state = CooldownState(last_fuel_slot="14:00-d3")
        decision = decide(prices, "14:30", THRESHOLDS, state)
        assert decision.fire_fuel

    def test_idempotent(self):
        """Deciding again on the resulting state fires nothing."""
        prices = [PriceSlot(400, 8, "14:00", 3)]
        first = decide(prices, "14:00", THRESHOLDS, CooldownState())
        second = decide(prices, "14:00", THRESHOLDS, first.updated_state)
        assert first.should_notify
        assert not second.should_notify

    def test_check_timestamp_recorded(self):
        """checked_at becomes the state's last check time."""
        prices = [PriceSlot(900, 50, "14:00", 3)]
        decision = decide(prices, "14:00", THRESHOLDS, CooldownState(), checked_at=NOW)
        assert not decision.should_notify
        assert decision.updated_state == CooldownState(last_check=NOW)

    def test_fallback_logs_warning(self, caplog):
        """Using the last slot instead of an exact match is logged."""
        prices = [PriceSlot(450, 15, "13:30", 3)]
        decision = decide(prices, "14:00", THRESHOLDS, CooldownState())
        assert not decision.exact_match
        assert decision.slot_key == "13:30-d3"
        assert "No price found for time slot 14:00" in caplog.text

    def test_empty_prices_rejected(self):
        with pytest.raises(ValueError):
            decide([], "14:00", THRESHOLDS, CooldownState())


class TestBuildMessage:
    """Tests for exact message wording."""

    def test_both(self):
        slot = PriceSlot(400, 8, "14:00", 3)
        assert build_message(slot, True, True) == (
            "*Great news, Captain!*\n\n"
            "Both fuel and CO2 prices are looking fantastic right now!\n\n"
            "Fuel: *$400/t*\nCO2: *$8/t*\n\n"
            "Time to stock up!"
        )

    def test_fuel(self):
        slot = PriceSlot(450, 15, "14:00", 3)
        assert build_message(slot, True, False) == (
            "*Ahoy, Captain!*\n\n"
            "Fuel prices have dropped to a great level!\n\n"
            "Fuel: *$450/t*\n\n"
            "Might be a good time to fill up your tanks!"
        )

    def test_co2(self):
        slot = PriceSlot(0, 5, "09:30", 1)
        assert build_message(slot, False, True) == (
            "*Ahoy, Captain!*\n\n"
            "CO2 certificate prices are looking good!\n\n"
            "CO2: *$5/t*\n\n"
            "A fine opportunity to stock up on certificates!"
        )

    def test_neither(self):
        assert build_message(PriceSlot(1, 1, "14:00", 3), False, False) is None


class TestCheckPrices:
    """Tests for one full check cycle."""

    def test_fuel_alert_sent_and_persisted(self, tmp_path):
        """A fuel alert is delivered, recorded and saved."""
        api = FakeApi(prices=[PriceSlot(450, 15, "14:00", 3)])
        ctx = make_context(tmp_path, api)

        result = asyncio.run(check_prices(ctx))

        assert result.status == CheckStatus.ALERTED
        assert len(api.messages) == 1
        assert "Fuel: *$450/t*" in api.messages[0]
        assert ctx.state == CooldownState(last_fuel_slot="14:00-d3", last_check=NOW)
        assert ctx.store.load() == ctx.state

    def test_second_check_same_slot_silent(self, tmp_path):
        """Running twice in the same slot sends one message."""
        api = FakeApi(prices=[PriceSlot(450, 15, "14:00", 3)])
        ctx = make_context(tmp_path, api)

        asyncio.run(check_prices(ctx))
        result = asyncio.run(check_prices(ctx))

        assert result.status == CheckStatus.ALREADY_ALERTED
        assert len(api.messages) == 1

    def test_cooldown_survives_restart(self, tmp_path):
        """A fresh context loaded from disk does not re-alert."""
        api = FakeApi(prices=[PriceSlot(450, 15, "14:00", 3)])
        asyncio.run(check_prices(make_context(tmp_path, api)))

        restarted = make_context(tmp_path, api)
        restarted.state = restarted.store.load()
        result = asyncio.run(check_prices(restarted))

        assert result.status == CheckStatus.ALREADY_ALERTED
        assert len(api.messages) == 1

    def test_already_alerted_only_updates_timestamp(self, tmp_path):
        """With the slot already alerted only last_check changes."""
        api = FakeApi(prices=[PriceSlot(450, 15, "14:00", 3)])
        ctx = make_context(tmp_path, api, CooldownState(last_fuel_slot="14:00-d3"))

        result = asyncio.run(check_prices(ctx))

        assert result.status == CheckStatus.ALREADY_ALERTED
        assert api.messages == []
        assert ctx.state == CooldownState(last_fuel_slot="14:00-d3", last_check=NOW)

    def test_above_threshold_saves_timestamp(self, tmp_path):
        """A threshold miss still records the check."""
        api = FakeApi(prices=[PriceSlot(900, 50, "14:00", 3)])
        ctx = make_context(tmp_path, api)

        result = asyncio.run(check_prices(ctx))

        assert result.status == CheckStatus.ABOVE_THRESHOLD
        assert api.messages == []
        assert ctx.store.load() == CooldownState(last_check=NOW)

    def test_empty_prices_abort(self, tmp_path):
        """An empty result leaves state and file untouched."""
        api = FakeApi(prices=[])
        ctx = make_context(tmp_path, api)

        result = asyncio.run(check_prices(ctx))

        assert result.status == CheckStatus.NO_PRICES
        assert api.messages == []
        assert ctx.state == CooldownState()
        assert not ctx.store.path.exists()

    def test_fetch_failure_abort(self, tmp_path):
        """A failed fetch leaves prior state intact."""
        prior = CooldownState(last_co2_slot="13:30-d3")
        api = FakeApi(prices=None)
        ctx = make_context(tmp_path, api, prior)

        result = asyncio.run(check_prices(ctx))

        assert result.status == CheckStatus.FETCH_FAILED
        assert ctx.state == prior
        assert not ctx.store.path.exists()

    def test_delivery_failure_keeps_cooldown(self, tmp_path):
        """Failed delivery records the check but not the slot, so the next tick retries."""
        api = FakeApi(prices=[PriceSlot(450, 15, "14:00", 3)], deliver_ok=False)
        ctx = make_context(tmp_path, api)

        result = asyncio.run(check_prices(ctx))
        assert result.status == CheckStatus.DELIVERY_FAILED
        assert ctx.state == CooldownState(last_check=NOW)

        api.deliver_ok = True
        result = asyncio.run(check_prices(ctx))
        assert result.status == CheckStatus.ALERTED
        assert len(api.messages) == 2

    def test_uses_current_slot_from_clock(self, tmp_path):
        """The slot matching the clock is chosen over the latest entry."""
        api = FakeApi(prices=[
            PriceSlot(450, 15, "14:00", 3),
            PriceSlot(900, 50, "14:30", 3),
        ])
        ctx = make_context(tmp_path, api)

        result = asyncio.run(check_prices(ctx))

        assert result.decision.slot.time == "14:00"
        assert result.status == CheckStatus.ALERTED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
