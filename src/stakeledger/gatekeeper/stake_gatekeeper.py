"""Stake Gatekeeper: упорядоченная цепочка допуска нового stake.

Gates выполняются в фиксированном порядке, цепочка останавливается на
первой блокировке:
GATE 0 (protocol status) → GATE 1 (stake bounds) →
GATE 2 (validator availability, capacity).

System capacity не является gate: её проверяет Treasury.deposit_stake
через GovernanceStore.increase_total_staked.

raise_for_block отображает block_reason в ошибку ledger для вызывающего.
"""

from typing import Optional, Union

from stakeledger.core.domain.config import ProtocolConfig, ValidatorConfig
from stakeledger.core.errors import (
    AboveMaximumError,
    BelowMinimumError,
    EmergencyModeActiveError,
    LedgerError,
    PoolDrainedError,
    ProtocolPausedError,
    ValidatorCapacityExceededError,
    ValidatorInactiveError,
    ValidatorNotFoundError,
)
from stakeledger.gatekeeper.gates import (
    Gate00ProtocolStatus,
    Gate00Result,
    Gate01Result,
    Gate01StakeBounds,
    Gate02Result,
    Gate02ValidatorCapacity,
)

GateResult = Union[Gate00Result, Gate01Result, Gate02Result]

BLOCK_REASON_ERRORS: dict[str, type[LedgerError]] = {
    "pool_drained": PoolDrainedError,
    "emergency_mode_active": EmergencyModeActiveError,
    "protocol_paused": ProtocolPausedError,
    "amount_below_minimum": BelowMinimumError,
    "amount_above_maximum": AboveMaximumError,
    "validator_not_found": ValidatorNotFoundError,
    "validator_inactive": ValidatorInactiveError,
    "validator_capacity_exceeded": ValidatorCapacityExceededError,
}


class StakeGatekeeper:
    """Runs GATE 0-2 for a stake request."""

    def __init__(self):
        self.gate00 = Gate00ProtocolStatus()
        self.gate01 = Gate01StakeBounds()
        self.gate02 = Gate02ValidatorCapacity()

    def evaluate(
        self,
        config: ProtocolConfig,
        emergency_processed: bool,
        validator_id: str,
        validator: Optional[ValidatorConfig],
        aggregate_stake: int,
        amount: int,
    ) -> GateResult:
        """Result of the first blocking gate, or of GATE 2 if all pass."""
        gate00 = self.gate00.evaluate(
            paused=config.paused,
            emergency_mode=config.emergency_mode,
            emergency_processed=emergency_processed,
        )
        if not gate00.entry_allowed:
            return gate00

        gate01 = self.gate01.evaluate(
            amount=amount, min_stake=config.min_stake, max_stake=config.max_stake
        )
        if not gate01.entry_allowed:
            return gate01

        return self.gate02.evaluate(
            validator_id=validator_id,
            validator=validator,
            aggregate_stake=aggregate_stake,
            amount=amount,
        )


def raise_for_block(result: GateResult) -> None:
    """
    Raises:
        LedgerError: The error mapped to the block reason, if blocked
    """
    if result.entry_allowed:
        return
    error_cls = BLOCK_REASON_ERRORS.get(result.block_reason, LedgerError)
    raise error_cls(result.details)
