"""
Checked Math: Overflow-Safe u64 Fixed-Point Primitives

Модуль обеспечивает целочисленную арифметику ledger в домене u64:
- Все суммы лежат в [0, MAX_U64]
- Python int не переполняется сам, поэтому домен проверяется явно
- Каждый примитив проверяет входы и результат и бросает CONSISTENCY
  ошибку вместо wrap-around или тихой потери точности

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. No result ever leaves [0, MAX_U64] (ArithmeticOverflowError / ArithmeticUnderflowError)
2. Division by zero is never silent (DivisionByZeroError)
3. mul_div keeps the exact wide product, only the final quotient must fit u64
4. All divisions floor-round and are deterministic
"""

from typing import Final

from stakeledger.core.errors import (
    ArithmeticOverflowError,
    ArithmeticUnderflowError,
    DivisionByZeroError,
)

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_U64: Final[int] = 2**64 - 1

# 1 bps = 1/10000
BPS_DENOMINATOR: Final[int] = 10_000

# Fixed-point 1.0 for exchange rates
PRECISION: Final[int] = 1_000_000_000


# =============================================================================
# DOMAIN CHECKS
# =============================================================================


def checked_u64(value: int, name: str = "value") -> int:
    """
    Проверка, что value является int в [0, MAX_U64].

    Args:
        value: Проверяемое значение
        name: Имя параметра для сообщения об ошибке

    Returns:
        value без изменений

    Raises:
        TypeError: If value is not an int (bool тоже отклоняется)
        ArithmeticUnderflowError: If value < 0
        ArithmeticOverflowError: If value > MAX_U64
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ArithmeticUnderflowError(f"{name} is negative: {value}")
    if value > MAX_U64:
        raise ArithmeticOverflowError(f"{name} exceeds u64 range: {value}")
    return value


# =============================================================================
# BASIC OPERATIONS
# =============================================================================


def add(x: int, y: int) -> int:
    """
    Сложение x + y с детекцией переполнения.

    Examples:
        >>> add(1, 2)
        3
        >>> add(MAX_U64, 1)
        ArithmeticOverflowError  # u64 range exceeded
    """
    checked_u64(x, "x")
    checked_u64(y, "y")
    result = x + y
    if result > MAX_U64:
        raise ArithmeticOverflowError(f"add overflow: {x} + {y}")
    return result


def sub(x: int, y: int) -> int:
    """x - y, raises ArithmeticUnderflowError when y > x."""
    checked_u64(x, "x")
    checked_u64(y, "y")
    if y > x:
        raise ArithmeticUnderflowError(f"sub underflow: {x} - {y}")
    return x - y


def mul(x: int, y: int) -> int:
    """
    x * y computed wide, raises ArithmeticOverflowError if the product
    does not fit u64.
    """
    checked_u64(x, "x")
    checked_u64(y, "y")
    result = x * y
    if result > MAX_U64:
        raise ArithmeticOverflowError(f"mul overflow: {x} * {y}")
    return result


def div(x: int, y: int) -> int:
    """Floor division, raises DivisionByZeroError when y == 0."""
    checked_u64(x, "x")
    checked_u64(y, "y")
    if y == 0:
        raise DivisionByZeroError(f"div by zero: {x} / 0")
    return x // y


def mul_div(x: int, y: int, z: int) -> int:
    """
    floor(x * y / z) с широким промежуточным произведением.

    Произведение x * y может выйти за u64 (не более 128 бит),
    в u64 должно укладываться только частное.

    Args:
        x: Multiplicand
        y: Multiplier
        z: Divisor

    Returns:
        floor(x * y / z)

    Raises:
        DivisionByZeroError: If z == 0
        ArithmeticOverflowError: If the quotient exceeds MAX_U64

    Examples:
        >>> mul_div(MAX_U64, 1, MAX_U64)
        1
        >>> mul_div(10, 3, 4)
        7
    """
    checked_u64(x, "x")
    checked_u64(y, "y")
    checked_u64(z, "z")
    if z == 0:
        raise DivisionByZeroError(f"mul_div by zero: {x} * {y} / 0")
    result = (x * y) // z
    if result > MAX_U64:
        raise ArithmeticOverflowError(f"mul_div overflow: {x} * {y} / {z}")
    return result


def mul_bps(x: int, bps: int) -> int:
    """x * bps / 10000, floor-rounded."""
    return mul_div(x, bps, BPS_DENOMINATOR)


def min_u64(x: int, y: int) -> int:
    return x if x <= y else y


def max_u64(x: int, y: int) -> int:
    return x if x >= y else y


def abs_diff(x: int, y: int) -> int:
    """|x - y| without leaving the u64 domain."""
    checked_u64(x, "x")
    checked_u64(y, "y")
    return x - y if x >= y else y - x
