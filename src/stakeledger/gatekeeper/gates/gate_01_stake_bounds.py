"""GATE 1: Stake Bounds

- Второй gate в цепочке (после GATE 0)
- Сумма должна лежать в [min_stake, max_stake], обе границы включительно
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Gate01Result:
    """Результат GATE 1."""

    entry_allowed: bool
    block_reason: str

    # Diagnostics
    amount: int
    min_stake: int
    max_stake: int

    details: str


class Gate01StakeBounds:
    """GATE 1: Stake Bounds."""

    def evaluate(self, amount: int, min_stake: int, max_stake: int) -> Gate01Result:
        if amount < min_stake:
            allowed, reason = False, "amount_below_minimum"
            details = f"amount {amount} < min_stake {min_stake}"
        elif amount > max_stake:
            allowed, reason = False, "amount_above_maximum"
            details = f"amount {amount} > max_stake {max_stake}"
        else:
            allowed, reason = True, ""
            details = f"amount {amount} within bounds"

        return Gate01Result(
            entry_allowed=allowed,
            block_reason=reason,
            amount=amount,
            min_stake=min_stake,
            max_stake=max_stake,
            details=details,
        )
