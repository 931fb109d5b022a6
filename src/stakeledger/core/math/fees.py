"""
Fee Kernels: Protocol Fee & Validator Commission Splits

Модуль делит gross reward целочисленно, с округлением вниз:

    protocol_fee   = gross * protocol_fee_bps / 10000
    post_fee       = gross - protocol_fee
    commission     = post_fee * commission_bps / 10000
    pool_residual  = post_fee - commission

Сначала всегда удерживается protocol fee, commission берётся с остатка.
Оба шага идут через mul_div, поэтому большие gross не переполняют u64.
protocol_fee считается как дополнение к post_fee, поэтому
protocol_fee + commission + pool_residual == gross точно.

Пример (fee=5%, commission=10%, gross=30e9):
    protocol_fee = 1.5e9, post_fee = 28.5e9, commission = 2.85e9,
    pool_residual = 25.65e9
"""

from dataclasses import dataclass

from stakeledger.core.errors import InvalidParameterError
from stakeledger.core.math.checked_math import (
    BPS_DENOMINATOR,
    checked_u64,
    mul_div,
    sub,
)


@dataclass(frozen=True)
class FeeSplit:
    """Gross amount split into protocol fee and net remainder."""

    fee: int
    net: int


@dataclass(frozen=True)
class RewardSplit:
    """Full breakdown of a gross validator reward."""

    gross: int
    protocol_fee: int
    post_fee: int
    commission: int
    pool_residual: int


def validate_bps(value: int, name: str) -> int:
    """
    Basis points должны лежать в [0, 10000].

    Raises:
        InvalidParameterError: If value is outside the range
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be an int, got {value!r}")
    if value < 0 or value > BPS_DENOMINATOR:
        raise InvalidParameterError(
            f"{name} must be in [0, {BPS_DENOMINATOR}], got {value}"
        )
    return value


def calculate_protocol_fee(gross: int, protocol_fee_bps: int) -> FeeSplit:
    """
    Protocol fee on a gross amount.

    Args:
        gross: Gross amount (base units)
        protocol_fee_bps: Protocol fee in bps

    Returns:
        FeeSplit(fee=floor(gross * bps / 10000), net=gross - fee)
    """
    checked_u64(gross, "gross")
    validate_bps(protocol_fee_bps, "protocol_fee_bps")
    fee = mul_div(gross, protocol_fee_bps, BPS_DENOMINATOR)
    return FeeSplit(fee=fee, net=sub(gross, fee))


def calculate_validator_commission(
    gross: int,
    protocol_fee_bps: int,
    commission_bps: int,
) -> int:
    """
    Commission валидатора, удерживаемая после protocol fee.

    commission = mul_div(mul_div(gross, 10000 - fee_bps, 10000), commission_bps, 10000)

    Args:
        gross: Gross reward (base units)
        protocol_fee_bps: Protocol fee in bps
        commission_bps: Validator commission in bps

    Returns:
        Commission amount (base units, floor-rounded)

    Examples:
        >>> calculate_validator_commission(10_000_000_000, 300, 2000)
        1940000000
    """
    checked_u64(gross, "gross")
    validate_bps(protocol_fee_bps, "protocol_fee_bps")
    validate_bps(commission_bps, "commission_bps")

    post_fee = mul_div(gross, BPS_DENOMINATOR - protocol_fee_bps, BPS_DENOMINATOR)
    return mul_div(post_fee, commission_bps, BPS_DENOMINATOR)


def calculate_reward_split(
    gross: int,
    protocol_fee_bps: int,
    commission_bps: int,
) -> RewardSplit:
    """
    Breakdown of a gross reward into fee, commission and pool residual.

    post_fee is computed the same way as in calculate_validator_commission,
    so commission here always equals that function's result.
    """
    checked_u64(gross, "gross")
    validate_bps(protocol_fee_bps, "protocol_fee_bps")
    validate_bps(commission_bps, "commission_bps")

    post_fee = mul_div(gross, BPS_DENOMINATOR - protocol_fee_bps, BPS_DENOMINATOR)
    commission = mul_div(post_fee, commission_bps, BPS_DENOMINATOR)

    return RewardSplit(
        gross=gross,
        protocol_fee=sub(gross, post_fee),
        post_fee=post_fee,
        commission=commission,
        pool_residual=sub(post_fee, commission),
    )
