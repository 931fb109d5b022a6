"""Tests for StakeRegistry.

Coverage:
- Stake admission (bounds, validator, capacity, mode)
- Per-validator aggregate accounting
- Repeat stakes keep every position
- Withdrawal ownership checks
- One-shot emergency withdraw
"""

import pytest

from stakeledger.core.domain import CallerContext
from stakeledger.core.errors import (
    AboveMaximumError,
    AlreadyProcessedError,
    BelowMinimumError,
    EmergencyModeActiveError,
    InvalidParameterError,
    NotInEmergencyError,
    PoolDrainedError,
    PositionMismatchError,
    PositionNotFoundError,
    ProtocolPausedError,
    SystemCapacityExceededError,
    UnauthorizedError,
    ValidatorCapacityExceededError,
    ValidatorInactiveError,
    ValidatorNotFoundError,
)
from stakeledger.core.settings import LedgerSettings
from stakeledger.ledger import GovernanceStore, ManualEpochClock, StakeRegistry, Treasury

GOVERNOR = CallerContext.governor("gov")


@pytest.fixture
def clock():
    return ManualEpochClock()


@pytest.fixture
def governance(clock):
    settings = LedgerSettings(
        min_stake=100,
        max_stake=1_000_000,
        protocol_fee_bps=500,
        withdrawal_delay_epochs=2,
        system_capacity=50_000,
    )
    store = GovernanceStore(settings, clock)
    store.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 1000)
    store.add_or_update_validator(GOVERNOR, "val-2", True, 100_000, 500)
    return store


@pytest.fixture
def treasury(governance):
    return Treasury(governance)


@pytest.fixture
def registry(governance, treasury):
    return StakeRegistry(governance, treasury)


def assert_consistent(registry, treasury, governance):
    total = registry.total_aggregate_stake()
    assert total == treasury.staked_principal == governance.config.total_staked


class TestStake:
    def test_stake_creates_position(self, registry, treasury, governance):
        position = registry.stake("alice", "val-1", 100)

        assert position.position_id == "pos-000001"
        assert position.staker_id == "alice"
        assert position.amount == 100
        assert registry.has_position("alice")
        assert registry.aggregate_stake("val-1") == 100
        assert treasury.pool_balance == 100
        assert_consistent(registry, treasury, governance)

    def test_validator_capacity_boundary(self, registry, treasury, governance):
        registry.stake("alice", "val-1", 100)
        registry.stake("bob", "val-1", 200)
        assert registry.aggregate_stake("val-1") == 300

        with pytest.raises(ValidatorCapacityExceededError):
            registry.stake("carol", "val-1", 9_701)
        assert registry.aggregate_stake("val-1") == 300
        assert not registry.has_position("carol")

        registry.stake("carol", "val-1", 9_700)
        assert registry.aggregate_stake("val-1") == 10_000
        assert_consistent(registry, treasury, governance)

    def test_repeat_stake_keeps_both_positions(self, registry, treasury, governance):
        first = registry.stake("alice", "val-1", 100)
        second = registry.stake("alice", "val-2", 500)

        positions = registry.positions_of("alice")
        assert [p.position_id for p in positions] == [first.position_id, second.position_id]
        assert treasury.staked_principal == 600
        assert_consistent(registry, treasury, governance)

    def test_below_minimum(self, registry):
        with pytest.raises(BelowMinimumError):
            registry.stake("alice", "val-1", 99)

    def test_above_maximum(self, registry):
        with pytest.raises(AboveMaximumError):
            registry.stake("alice", "val-2", 1_000_001)

    def test_unknown_validator(self, registry):
        with pytest.raises(ValidatorNotFoundError):
            registry.stake("alice", "val-x", 100)

    def test_inactive_validator(self, registry, governance):
        governance.add_or_update_validator(GOVERNOR, "val-1", False, 10_000, 1000)
        with pytest.raises(ValidatorInactiveError):
            registry.stake("alice", "val-1", 100)

    def test_system_capacity(self, registry, treasury):
        registry.stake("alice", "val-2", 49_000)
        with pytest.raises(SystemCapacityExceededError):
            registry.stake("bob", "val-2", 1_001)
        assert treasury.staked_principal == 49_000
        assert registry.aggregate_stake("val-2") == 49_000
        assert not registry.has_position("bob")

    def test_paused(self, registry, governance, treasury):
        governance.set_pause_status(GOVERNOR, True)
        with pytest.raises(ProtocolPausedError):
            registry.stake("alice", "val-1", 100)
        assert treasury.pool_balance == 0
        assert not registry.has_position("alice")

    def test_empty_staker_rejected(self, registry):
        with pytest.raises(InvalidParameterError):
            registry.stake("", "val-1", 100)


class TestWithdraw:
    def test_withdraw(self, registry, treasury, governance):
        position = registry.stake("alice", "val-1", 100)
        result = registry.withdraw("alice", position.position_id)

        assert result.position == position
        assert result.pending.amount == 100
        assert result.pending.unlock_epoch == 2
        assert not registry.has_position("alice")
        assert registry.aggregate_stake("val-1") == 0
        assert treasury.withdrawal_escrow == 100
        assert_consistent(registry, treasury, governance)

    def test_unknown_position(self, registry):
        registry.stake("alice", "val-1", 100)
        with pytest.raises(PositionNotFoundError):
            registry.withdraw("alice", "pos-999999")

    def test_foreign_position(self, registry):
        registry.stake("alice", "val-1", 100)
        bob_position = registry.stake("bob", "val-1", 200)

        with pytest.raises(PositionMismatchError):
            registry.withdraw("alice", bob_position.position_id)
        assert registry.aggregate_stake("val-1") == 300

    def test_withdraw_one_of_several(self, registry):
        first = registry.stake("alice", "val-1", 100)
        second = registry.stake("alice", "val-1", 200)

        registry.withdraw("alice", first.position_id)

        assert registry.positions_of("alice") == [second]
        assert registry.aggregate_stake("val-1") == 200

    def test_blocked_in_emergency(self, registry, governance):
        position = registry.stake("alice", "val-1", 100)
        governance.set_emergency_mode(GOVERNOR, True)
        with pytest.raises(EmergencyModeActiveError):
            registry.withdraw("alice", position.position_id)

    def test_paused_allows_withdraw(self, registry, governance):
        position = registry.stake("alice", "val-1", 100)
        governance.set_pause_status(GOVERNOR, True)
        registry.withdraw("alice", position.position_id)
        assert not registry.has_position("alice")


class TestEmergencyWithdraw:
    def test_drain_once(self, registry, treasury, governance):
        registry.stake("alice", "val-1", 100)
        registry.stake("bob", "val-2", 500)
        governance.set_emergency_mode(GOVERNOR, True)

        payout = registry.emergency_withdraw(GOVERNOR)

        assert payout.amount == 600
        assert payout.recipient == "gov"
        assert treasury.pool_balance == 0
        assert governance.config.total_staked == 0
        assert registry.emergency_processed
        assert registry.total_aggregate_stake() == 0

        with pytest.raises(AlreadyProcessedError):
            registry.emergency_withdraw(GOVERNOR)

    def test_requires_emergency(self, registry):
        with pytest.raises(NotInEmergencyError):
            registry.emergency_withdraw(GOVERNOR)

    def test_requires_governor(self, registry, governance):
        governance.set_emergency_mode(GOVERNOR, True)
        with pytest.raises(UnauthorizedError):
            registry.emergency_withdraw(CallerContext.staker("alice"))
        assert not registry.emergency_processed

    def test_positions_frozen_after_drain(self, registry, governance):
        position = registry.stake("alice", "val-1", 100)
        governance.set_emergency_mode(GOVERNOR, True)
        registry.emergency_withdraw(GOVERNOR)
        governance.set_emergency_mode(GOVERNOR, False)

        with pytest.raises(PoolDrainedError):
            registry.withdraw("alice", position.position_id)
