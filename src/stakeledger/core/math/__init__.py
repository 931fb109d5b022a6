"""
Core math modules for stakeledger

Целочисленные арифметические примитивы с явной гарантией домена u64.
"""

# Checked Math
from stakeledger.core.math.checked_math import (
    # Constants
    BPS_DENOMINATOR,
    MAX_U64,
    PRECISION,
    # Domain checks
    checked_u64,
    # Operations
    abs_diff,
    add,
    div,
    max_u64,
    min_u64,
    mul,
    mul_bps,
    mul_div,
    sub,
)

# Fee Kernels
from stakeledger.core.math.fees import (
    FeeSplit,
    RewardSplit,
    calculate_protocol_fee,
    calculate_reward_split,
    calculate_validator_commission,
    validate_bps,
)

__all__ = [
    # Checked Math: Constants
    "BPS_DENOMINATOR",
    "MAX_U64",
    "PRECISION",
    # Checked Math: Domain checks
    "checked_u64",
    # Checked Math: Operations
    "abs_diff",
    "add",
    "div",
    "max_u64",
    "min_u64",
    "mul",
    "mul_bps",
    "mul_div",
    "sub",
    # Fee Kernels: Types
    "FeeSplit",
    "RewardSplit",
    # Fee Kernels: Functions
    "calculate_protocol_fee",
    "calculate_reward_split",
    "calculate_validator_commission",
    "validate_bps",
]
