"""Tests for GovernanceStore.

Coverage:
- Authorization and emergency gating of admin updates
- min_stake / protocol fee / max_stake updates with magnitude and rate limits
- Validator registration and the deactivation grace period
- Pause / emergency toggles
- Internal total_staked accounting
"""

import pytest

from stakeledger.core.domain import CallerContext
from stakeledger.core.errors import (
    ChangeTooLargeError,
    EmergencyModeActiveError,
    InvalidParameterError,
    ProtocolPausedError,
    RateLimitedError,
    SystemCapacityExceededError,
    UnauthorizedError,
    ValidatorNotFoundError,
)
from stakeledger.core.settings import LedgerSettings
from stakeledger.emergency import ProtocolMode
from stakeledger.ledger import GovernanceStore, ManualEpochClock

GOVERNOR = CallerContext.governor("gov")
ALICE = CallerContext.staker("alice")


@pytest.fixture
def clock():
    return ManualEpochClock()


@pytest.fixture
def governance(clock):
    settings = LedgerSettings(
        min_stake=100,
        max_stake=1_000,
        protocol_fee_bps=500,
        withdrawal_delay_epochs=2,
        system_capacity=5_000,
    )
    return GovernanceStore(settings, clock)


class TestAuthorization:
    def test_staker_cannot_update(self, governance):
        with pytest.raises(UnauthorizedError):
            governance.update_min_stake(ALICE, 200)
        with pytest.raises(UnauthorizedError):
            governance.set_pause_status(ALICE, True)
        assert governance.config.min_stake == 100
        assert governance.config.paused is False

    def test_updates_rejected_in_emergency(self, governance):
        governance.set_emergency_mode(GOVERNOR, True)
        with pytest.raises(EmergencyModeActiveError):
            governance.update_min_stake(GOVERNOR, 200)
        with pytest.raises(EmergencyModeActiveError):
            governance.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 1000)


class TestMinStake:
    def test_update(self, governance):
        change = governance.update_min_stake(GOVERNOR, 200)
        assert change.old_value == 100
        assert change.new_value == 200
        assert governance.config.min_stake == 200

    @pytest.mark.parametrize("value", [0, 1_001, -5])
    def test_out_of_range(self, governance, value):
        with pytest.raises(InvalidParameterError):
            governance.update_min_stake(GOVERNOR, value)
        assert governance.config.min_stake == 100


class TestProtocolFee:
    def test_first_update_not_rate_limited(self, governance, clock):
        change = governance.update_protocol_fee(GOVERNOR, 1_400)
        assert governance.config.protocol_fee_bps == 1_400
        assert governance.config.last_fee_update_epoch == clock.current_epoch()
        assert change.epoch == 0

    def test_change_too_large(self, governance):
        with pytest.raises(ChangeTooLargeError):
            governance.update_protocol_fee(GOVERNOR, 1_501)
        assert governance.config.protocol_fee_bps == 500

    def test_rate_limited_within_window(self, governance, clock):
        governance.update_protocol_fee(GOVERNOR, 600)
        with pytest.raises(RateLimitedError, match="next update allowed at epoch 1"):
            governance.update_protocol_fee(GOVERNOR, 700)

        clock.advance(1)
        governance.update_protocol_fee(GOVERNOR, 700)
        assert governance.config.protocol_fee_bps == 700

    def test_above_full_bps_rejected(self, governance):
        with pytest.raises(InvalidParameterError):
            governance.update_protocol_fee(GOVERNOR, 10_001)


class TestMaxStake:
    def test_raise_then_too_large_then_raise_after_window(self, governance, clock):
        governance.update_max_stake(GOVERNOR, 1_400)
        assert governance.config.max_stake == 1_400

        # 60% of 1400 in the same window: magnitude is checked first
        with pytest.raises(ChangeTooLargeError):
            governance.update_max_stake(GOVERNOR, 2_240)

        clock.advance(1)
        governance.update_max_stake(GOVERNOR, 1_960)
        assert governance.config.max_stake == 1_960

    def test_small_change_rate_limited(self, governance):
        governance.update_max_stake(GOVERNOR, 1_100)
        with pytest.raises(RateLimitedError):
            governance.update_max_stake(GOVERNOR, 1_200)

    def test_exact_limit_allowed(self, governance):
        governance.update_max_stake(GOVERNOR, 1_500)
        assert governance.config.max_stake == 1_500

    def test_decrease_limited_too(self, governance):
        with pytest.raises(ChangeTooLargeError):
            governance.update_max_stake(GOVERNOR, 499)

    def test_below_min_stake_rejected(self, governance):
        governance.update_min_stake(GOVERNOR, 800)
        with pytest.raises(InvalidParameterError):
            governance.update_max_stake(GOVERNOR, 700)


class TestValidators:
    def test_register_and_lookup(self, governance):
        governance.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 1000)
        validator = governance.get_validator_config("val-1")
        assert validator.max_stake == 10_000
        assert validator.commission_bps == 1000
        assert governance.is_validator_active("val-1")

    def test_unknown_validator(self, governance):
        with pytest.raises(ValidatorNotFoundError):
            governance.get_validator_config("val-x")
        assert not governance.is_validator_active("val-x")

    def test_invalid_commission(self, governance):
        with pytest.raises(InvalidParameterError):
            governance.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 10_001)

    def test_deactivation_grace_period(self, governance, clock):
        governance.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 1000)
        clock.advance(3)
        governance.add_or_update_validator(GOVERNOR, "val-1", False, 10_000, 1000)

        validator = governance.get_validator_config("val-1")
        assert validator.deactivation_epoch == 5
        assert not governance.is_validator_active("val-1")
        assert governance.is_validator_active_at("val-1", 4)
        assert not governance.is_validator_active_at("val-1", 5)

    def test_reactivation_clears_grace(self, governance):
        governance.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 1000)
        governance.add_or_update_validator(GOVERNOR, "val-1", False, 10_000, 1000)
        governance.add_or_update_validator(GOVERNOR, "val-1", True, 10_000, 1000)
        assert governance.get_validator_config("val-1").deactivation_epoch is None

    def test_new_inactive_validator_has_no_grace(self, governance):
        governance.add_or_update_validator(GOVERNOR, "val-2", False, 10_000, 0)
        assert governance.get_validator_config("val-2").deactivation_epoch is None


class TestModeToggles:
    def test_pause_and_unpause(self, governance):
        result = governance.set_pause_status(GOVERNOR, True)
        assert result.new_mode == ProtocolMode.PAUSED
        assert governance.config.paused

        governance.set_pause_status(GOVERNOR, False)
        assert not governance.config.paused

    def test_emergency_forces_pause_and_exit_keeps_it(self, governance):
        governance.set_emergency_mode(GOVERNOR, True)
        assert governance.config.paused
        assert governance.config.emergency_mode

        governance.set_emergency_mode(GOVERNOR, False)
        assert governance.config.paused
        assert not governance.config.emergency_mode


class TestTotalStaked:
    def test_increase_and_decrease(self, governance):
        assert governance.increase_total_staked(1_000) == 1_000
        assert governance.decrease_total_staked(400) == 600
        assert governance.config.total_staked == 600

    def test_capacity(self, governance):
        governance.increase_total_staked(5_000)
        with pytest.raises(SystemCapacityExceededError):
            governance.increase_total_staked(1)
        assert governance.config.total_staked == 5_000

    def test_paused_rejects_new_principal(self, governance):
        governance.set_pause_status(GOVERNOR, True)
        with pytest.raises(ProtocolPausedError):
            governance.increase_total_staked(100)
