"""Unit tests for the stake admission gates.

Coverage:
- GATE 0: protocol status (paused / emergency / drained)
- GATE 1: stake bounds
- GATE 2: validator availability and capacity
- StakeGatekeeper ordering and error mapping
"""

import pytest

from stakeledger.core.domain import ProtocolConfig, ValidatorConfig
from stakeledger.core.errors import (
    BelowMinimumError,
    ProtocolPausedError,
    ValidatorCapacityExceededError,
)
from stakeledger.emergency import ProtocolMode
from stakeledger.gatekeeper import StakeGatekeeper, raise_for_block
from stakeledger.gatekeeper.gates import (
    Gate00ProtocolStatus,
    Gate00Result,
    Gate01Result,
    Gate01StakeBounds,
    Gate02Result,
    Gate02ValidatorCapacity,
)


@pytest.fixture
def validator():
    return ValidatorConfig(is_active=True, max_stake=10_000, commission_bps=1000)


@pytest.fixture
def config(validator):
    return ProtocolConfig(
        min_stake=100,
        max_stake=1_000_000,
        protocol_fee_bps=500,
        withdrawal_delay_epochs=2,
        validators={"val-1": validator},
    )


class TestGate00ProtocolStatus:
    def test_active_passes(self):
        result = Gate00ProtocolStatus().evaluate(False, False, False)
        assert result.entry_allowed
        assert result.mode == ProtocolMode.ACTIVE

    @pytest.mark.parametrize(
        "paused,emergency,processed,reason",
        [
            (True, False, False, "protocol_paused"),
            (True, True, False, "emergency_mode_active"),
            (True, True, True, "pool_drained"),
            (True, False, True, "pool_drained"),
        ],
    )
    def test_blocked(self, paused, emergency, processed, reason):
        result = Gate00ProtocolStatus().evaluate(paused, emergency, processed)
        assert not result.entry_allowed
        assert result.block_reason == reason


class TestGate01StakeBounds:
    def test_within_bounds(self):
        result = Gate01StakeBounds().evaluate(100, 100, 1_000)
        assert result.entry_allowed

    def test_below_minimum(self):
        result = Gate01StakeBounds().evaluate(99, 100, 1_000)
        assert result.block_reason == "amount_below_minimum"

    def test_above_maximum(self):
        result = Gate01StakeBounds().evaluate(1_001, 100, 1_000)
        assert result.block_reason == "amount_above_maximum"

    def test_max_stake_inclusive(self):
        assert Gate01StakeBounds().evaluate(1_000, 100, 1_000).entry_allowed


class TestGate02ValidatorCapacity:
    def test_unknown_validator(self):
        result = Gate02ValidatorCapacity().evaluate("val-x", None, 0, 100)
        assert result.block_reason == "validator_not_found"

    def test_inactive_validator(self):
        inactive = ValidatorConfig(is_active=False, max_stake=10_000, commission_bps=0)
        result = Gate02ValidatorCapacity().evaluate("val-1", inactive, 0, 100)
        assert result.block_reason == "validator_inactive"

    def test_capacity_boundary(self, validator):
        gate = Gate02ValidatorCapacity()
        assert gate.evaluate("val-1", validator, 300, 9_700).entry_allowed

        result = gate.evaluate("val-1", validator, 300, 9_701)
        assert not result.entry_allowed
        assert result.block_reason == "validator_capacity_exceeded"
        assert result.aggregate_after == 10_001


class TestStakeGatekeeper:
    def test_all_gates_pass(self, config, validator):
        result = StakeGatekeeper().evaluate(config, False, "val-1", validator, 0, 1_000)
        assert result.entry_allowed
        assert isinstance(result, Gate02Result)
        raise_for_block(result)

    def test_first_block_wins(self, config, validator):
        paused = config.replace(paused=True)
        result = StakeGatekeeper().evaluate(paused, False, "val-1", validator, 0, 1)
        assert isinstance(result, Gate00Result)
        with pytest.raises(ProtocolPausedError):
            raise_for_block(result)

    def test_bounds_before_validator(self, config):
        result = StakeGatekeeper().evaluate(config, False, "val-x", None, 0, 1)
        assert isinstance(result, Gate01Result)
        with pytest.raises(BelowMinimumError):
            raise_for_block(result)

    def test_validator_capacity_error(self, config, validator):
        result = StakeGatekeeper().evaluate(config, False, "val-1", validator, 9_999, 100)
        assert isinstance(result, Gate02Result)
        with pytest.raises(ValidatorCapacityExceededError, match="capacity"):
            raise_for_block(result)
