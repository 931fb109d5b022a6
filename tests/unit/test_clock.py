"""Tests for the epoch clocks.

Coverage:
- ManualEpochClock start, advance and argument validation
- WallClockEpochClock epoch arithmetic against a patched time source
- A ledger component stamping updates with wall-clock epochs
"""

import pytest

from stakeledger.core.settings import LedgerSettings
from stakeledger.ledger import ExchangeRate, ManualEpochClock, WallClockEpochClock
from stakeledger.ledger import clock as clock_module


@pytest.fixture
def now(monkeypatch):
    """Settable replacement for time.time inside the clock module."""
    current = {"ts": 0.0}
    monkeypatch.setattr(clock_module.time, "time", lambda: current["ts"])
    return current


class TestManualEpochClock:
    def test_starts_at_given_epoch(self):
        assert ManualEpochClock().current_epoch() == 0
        assert ManualEpochClock(start_epoch=5).current_epoch() == 5

    def test_advance(self):
        clock = ManualEpochClock()
        assert clock.advance() == 1
        assert clock.advance(3) == 4
        assert clock.advance(0) == 4
        assert clock.current_epoch() == 4

    def test_negative_advance_rejected(self):
        clock = ManualEpochClock(start_epoch=2)
        with pytest.raises(ValueError, match="non-negative"):
            clock.advance(-1)
        assert clock.current_epoch() == 2

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError):
            ManualEpochClock(start_epoch=-1)


class TestWallClockEpochClock:
    @pytest.mark.parametrize(
        "ts,expected",
        [
            (1_000.0, 0),
            (1_099.9, 0),
            (1_100.0, 1),
            (1_250.0, 2),
            (10_999.0, 99),
        ],
    )
    def test_epoch_from_elapsed_time(self, now, ts, expected):
        clock = WallClockEpochClock(genesis_ts_sec=1_000.0, epoch_duration_sec=100.0)
        now["ts"] = ts
        assert clock.current_epoch() == expected

    def test_before_genesis_is_epoch_zero(self, now):
        clock = WallClockEpochClock(genesis_ts_sec=1_000.0, epoch_duration_sec=100.0)
        now["ts"] = 500.0
        assert clock.current_epoch() == 0

    def test_default_epoch_is_one_day(self, now):
        clock = WallClockEpochClock(genesis_ts_sec=0.0)
        now["ts"] = 3 * 86_400.0 + 1
        assert clock.current_epoch() == 3

    @pytest.mark.parametrize("duration", [0.0, -60.0])
    def test_non_positive_duration_rejected(self, duration):
        with pytest.raises(ValueError, match="must be positive"):
            WallClockEpochClock(genesis_ts_sec=0.0, epoch_duration_sec=duration)

    def test_drives_ledger_epochs(self, now):
        clock = WallClockEpochClock(genesis_ts_sec=1_000.0, epoch_duration_sec=100.0)
        settings = LedgerSettings(
            min_stake=100,
            max_stake=1_000_000,
            protocol_fee_bps=500,
            withdrawal_delay_epochs=2,
        )
        exchange_rate = ExchangeRate(settings, clock)

        now["ts"] = 1_350.0
        exchange_rate.stake_update(1_000)
        assert exchange_rate.last_update_epoch == 3

        now["ts"] = 1_720.0
        exchange_rate.rewards_update(100)
        assert exchange_rate.last_update_epoch == 7
