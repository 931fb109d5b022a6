"""Tests for the fee kernels.

Coverage:
- Protocol fee floor rounding
- Validator commission after the protocol fee, monotonic in commission_bps
- Full reward split and its conservation
- Basis-point validation
"""

import pytest

from stakeledger.core.errors import InvalidParameterError
from stakeledger.core.math import (
    PRECISION,
    calculate_protocol_fee,
    calculate_reward_split,
    calculate_validator_commission,
    validate_bps,
)


class TestProtocolFee:
    def test_fee_and_net(self):
        split = calculate_protocol_fee(10_000, 500)
        assert split.fee == 500
        assert split.net == 9_500

    def test_fee_floors(self):
        split = calculate_protocol_fee(999, 500)
        assert split.fee == 49
        assert split.net == 950

    def test_zero_fee(self):
        split = calculate_protocol_fee(1_000, 0)
        assert split.fee == 0
        assert split.net == 1_000


class TestValidatorCommission:
    def test_three_percent_fee_twenty_percent_commission(self):
        assert calculate_validator_commission(10_000_000_000, 300, 2000) == 1_940_000_000

    def test_zero_commission(self):
        assert calculate_validator_commission(10_000_000_000, 300, 0) == 0

    def test_full_fee_leaves_no_commission(self):
        assert calculate_validator_commission(10_000_000_000, 10_000, 5000) == 0

    def test_monotonic_in_gross(self):
        previous = 0
        for gross in range(0, 50_000, 997):
            commission = calculate_validator_commission(gross, 500, 1000)
            assert commission >= previous
            previous = commission

    @pytest.mark.parametrize("fee_bps", [0, 300, 500, 9_000])
    def test_strictly_increasing_in_commission(self, fee_bps):
        gross = 10_000_000_000
        previous = calculate_validator_commission(gross, fee_bps, 0)
        for commission_bps in range(1, 10_001, 37):
            commission = calculate_validator_commission(gross, fee_bps, commission_bps)
            assert commission > previous
            previous = commission

    def test_invalid_bps(self):
        with pytest.raises(InvalidParameterError, match="commission_bps"):
            calculate_validator_commission(1_000, 500, 10_001)


class TestRewardSplit:
    def test_five_percent_fee_ten_percent_commission(self):
        split = calculate_reward_split(30 * PRECISION, 500, 1000)
        assert split.protocol_fee == 1_500_000_000
        assert split.post_fee == 28_500_000_000
        assert split.commission == 2_850_000_000
        assert split.pool_residual == 25_650_000_000

    def test_matches_commission_kernel(self):
        for gross in (1, 999, 123_456_789, 10 * PRECISION):
            split = calculate_reward_split(gross, 300, 2000)
            assert split.commission == calculate_validator_commission(gross, 300, 2000)

    @pytest.mark.parametrize("gross", [0, 1, 7, 999, 10_001, 987_654_321_123])
    def test_parts_sum_to_gross(self, gross):
        split = calculate_reward_split(gross, 333, 1234)
        assert split.protocol_fee + split.commission + split.pool_residual == gross


class TestValidateBps:
    def test_bounds(self):
        assert validate_bps(0, "x") == 0
        assert validate_bps(10_000, "x") == 10_000

    @pytest.mark.parametrize("value", [-1, 10_001, 1.5, True])
    def test_rejects(self, value):
        with pytest.raises(InvalidParameterError):
            validate_bps(value, "fee_bps")
