"""GATE 2: Validator Availability / Capacity

- Последний gate в цепочке
- Валидатор должен быть зарегистрирован и активен
- aggregate_stake[validator] + amount не должен превышать validator.max_stake

Интеграция:
- aggregate_stake читается под lock StakeRegistry, поэтому параллельные
  stake не могут вместе превысить capacity
"""

from dataclasses import dataclass
from typing import Optional

from stakeledger.core.domain.config import ValidatorConfig


@dataclass(frozen=True)
class Gate02Result:
    """Результат GATE 2."""

    entry_allowed: bool
    block_reason: str

    validator_id: str
    aggregate_after: int
    validator_max_stake: int

    details: str


class Gate02ValidatorCapacity:
    """GATE 2: Validator Availability / Capacity.

    Порядок проверок:
    1. Валидатор зарегистрирован
    2. Валидатор активен
    3. Capacity валидатора
    """

    def evaluate(
        self,
        validator_id: str,
        validator: Optional[ValidatorConfig],
        aggregate_stake: int,
        amount: int,
    ) -> Gate02Result:
        aggregate_after = aggregate_stake + amount

        if validator is None:
            return Gate02Result(
                entry_allowed=False,
                block_reason="validator_not_found",
                validator_id=validator_id,
                aggregate_after=aggregate_after,
                validator_max_stake=0,
                details=f"Validator {validator_id!r} is not registered",
            )

        if not validator.is_active:
            return Gate02Result(
                entry_allowed=False,
                block_reason="validator_inactive",
                validator_id=validator_id,
                aggregate_after=aggregate_after,
                validator_max_stake=validator.max_stake,
                details=f"Validator {validator_id!r} is inactive",
            )

        if aggregate_after > validator.max_stake:
            return Gate02Result(
                entry_allowed=False,
                block_reason="validator_capacity_exceeded",
                validator_id=validator_id,
                aggregate_after=aggregate_after,
                validator_max_stake=validator.max_stake,
                details=(
                    f"Validator {validator_id!r} stake {aggregate_after} > "
                    f"capacity {validator.max_stake}"
                ),
            )

        return Gate02Result(
            entry_allowed=True,
            block_reason="",
            validator_id=validator_id,
            aggregate_after=aggregate_after,
            validator_max_stake=validator.max_stake,
            details=f"Validator {validator_id!r} capacity ok",
        )
