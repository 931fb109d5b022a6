"""Stake Registry: per-staker positions and per-validator aggregate stake.

Per-staker lifecycle:
    NoPosition → Staked → Withdrawn (pending in Treasury) / Staked again

A staker may hold several positions at once: a repeat stake opens a new
position next to the existing ones instead of overwriting the pointer to
the previous one, so no principal is ever orphaned.

INVARIANT (checked by StakingProtocol.check_invariants):
    sum(aggregate_stake.values()) == Treasury.staked_principal
                                  == ProtocolConfig.total_staked
"""

import logging
from dataclasses import dataclass, field

from stakeledger.core.domain.access import CallerContext, Role, require_role
from stakeledger.core.domain.position import PendingWithdrawal, StakePosition
from stakeledger.core.errors import (
    AlreadyProcessedError,
    EmergencyModeActiveError,
    InvalidParameterError,
    NotInEmergencyError,
    PoolDrainedError,
    PositionMismatchError,
    PositionNotFoundError,
)
from stakeledger.core.math.checked_math import add, checked_u64, sub
from stakeledger.gatekeeper import StakeGatekeeper, raise_for_block
from stakeledger.ledger.governance import GovernanceStore
from stakeledger.ledger.transaction import (
    LOCK_ORDER_REGISTRY,
    LedgerComponent,
    LedgerTransaction,
)
from stakeledger.ledger.treasury import Payout, Treasury

logger = logging.getLogger(__name__)


@dataclass
class RegistryState:
    positions: dict[str, StakePosition] = field(default_factory=dict)
    staker_positions: dict[str, list[str]] = field(default_factory=dict)
    aggregate_stake: dict[str, int] = field(default_factory=dict)
    emergency_processed: bool = False
    next_position_seq: int = 1


@dataclass(frozen=True)
class WithdrawalResult:
    position: StakePosition
    pending: PendingWithdrawal


class StakeRegistry(LedgerComponent):
    """Shared registry of stake positions."""

    lock_order = LOCK_ORDER_REGISTRY
    name = "registry"

    def __init__(
        self,
        governance: GovernanceStore,
        treasury: Treasury,
        state: RegistryState | None = None,
    ):
        super().__init__(state if state is not None else RegistryState())
        self.governance = governance
        self.treasury = treasury
        self.gatekeeper = StakeGatekeeper()

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def emergency_processed(self) -> bool:
        return self._state.emergency_processed

    def has_position(self, staker_id: str) -> bool:
        return bool(self._state.staker_positions.get(staker_id))

    def positions_of(self, staker_id: str) -> list[StakePosition]:
        """Live positions of a staker in opening order."""
        ids = self._state.staker_positions.get(staker_id, [])
        return [self._state.positions[pid] for pid in ids]

    def get_position(self, position_id: str) -> StakePosition:
        """
        Raises:
            PositionNotFoundError: If no live position has this id
        """
        position = self._state.positions.get(position_id)
        if position is None:
            raise PositionNotFoundError(f"position {position_id!r} not found")
        return position

    def aggregate_stake(self, validator_id: str) -> int:
        return self._state.aggregate_stake.get(validator_id, 0)

    def total_aggregate_stake(self) -> int:
        total = 0
        for amount in self._state.aggregate_stake.values():
            total = add(total, amount)
        return total

    # =========================================================================
    # STAKE
    # =========================================================================

    def stake(self, staker_id: str, validator_id: str, amount: int) -> StakePosition:
        """
        Open a new position.

        Validates through the admission gates, raises the validator aggregate,
        forwards funds to Treasury.deposit_stake and records the position.

        Raises:
            BelowMinimumError, AboveMaximumError, SystemCapacityExceededError,
            ValidatorNotFoundError, ValidatorInactiveError,
            ValidatorCapacityExceededError, ProtocolPausedError,
            EmergencyModeActiveError, PoolDrainedError
        """
        if not isinstance(staker_id, str) or not staker_id:
            raise InvalidParameterError(f"staker_id must be a non-empty string, got {staker_id!r}")
        checked_u64(amount, "amount")

        with LedgerTransaction("stake", self.governance, self, self.treasury):
            state = self._state
            config = self.governance.config
            aggregate = state.aggregate_stake.get(validator_id, 0)

            admission = self.gatekeeper.evaluate(
                config=config,
                emergency_processed=state.emergency_processed,
                validator_id=validator_id,
                validator=config.validators.get(validator_id),
                aggregate_stake=aggregate,
                amount=amount,
            )
            raise_for_block(admission)

            state.aggregate_stake[validator_id] = add(aggregate, amount)
            self.treasury.deposit_stake(validator_id, amount)

            position = StakePosition(
                position_id=f"pos-{state.next_position_seq:06d}",
                staker_id=staker_id,
                validator_id=validator_id,
                amount=amount,
                opened_at_epoch=self.governance.clock.current_epoch(),
            )
            state.next_position_seq += 1
            state.positions[position.position_id] = position
            state.staker_positions.setdefault(staker_id, []).append(position.position_id)

        logger.info(
            "Stake created: %s staked %s with %s (%s)",
            staker_id, amount, validator_id, position.position_id,
        )
        return position

    # =========================================================================
    # WITHDRAW
    # =========================================================================

    def withdraw(self, staker_id: str, position_id: str) -> WithdrawalResult:
        """
        Close a position and start its two-phase withdrawal.

        Raises:
            PositionNotFoundError: If the position does not exist
            PositionMismatchError: If the position exists but belongs to
                another staker
            EmergencyModeActiveError: While emergency mode is active
            PoolDrainedError: After the emergency drain
        """
        with LedgerTransaction("withdraw", self.governance, self, self.treasury):
            state = self._state
            if state.emergency_processed:
                raise PoolDrainedError("pool was drained, positions cannot be withdrawn")
            if self.governance.config.emergency_mode:
                raise EmergencyModeActiveError("withdrawals are blocked in emergency mode")

            position = state.positions.get(position_id)
            if position is None:
                raise PositionNotFoundError(f"position {position_id!r} not found")
            owned = state.staker_positions.get(staker_id, [])
            if position.staker_id != staker_id or position_id not in owned:
                raise PositionMismatchError(
                    f"position {position_id!r} is not owned by {staker_id!r}"
                )

            remaining = sub(state.aggregate_stake.get(position.validator_id, 0), position.amount)
            if remaining == 0:
                state.aggregate_stake.pop(position.validator_id, None)
            else:
                state.aggregate_stake[position.validator_id] = remaining

            del state.positions[position_id]
            owned.remove(position_id)
            if not owned:
                del state.staker_positions[staker_id]

            pending = self.treasury.initiate_withdrawal(staker_id, position_id, position.amount)

        logger.info(
            "Withdrawal initiated: %s closed %s (%s), unlocks at epoch %s",
            staker_id, position_id, position.amount, pending.unlock_epoch,
        )
        return WithdrawalResult(position=position, pending=pending)

    # =========================================================================
    # EMERGENCY
    # =========================================================================

    def emergency_withdraw(self, caller: CallerContext) -> Payout:
        """
        One-shot drain of the whole pool to the governor.

        Raises:
            UnauthorizedError: If the caller is not a governor
            NotInEmergencyError: If emergency mode is not active
            AlreadyProcessedError: If the drain already happened
        """
        require_role(caller, Role.GOVERNOR)
        with LedgerTransaction("emergency_withdraw", self.governance, self, self.treasury):
            state = self._state
            if not self.governance.config.emergency_mode:
                raise NotInEmergencyError("emergency withdraw requires emergency mode")
            if state.emergency_processed:
                raise AlreadyProcessedError("emergency withdraw was already processed")

            payout = self.treasury.drain_pool(caller.caller_id)
            state.aggregate_stake.clear()
            state.emergency_processed = True

        logger.warning("Emergency withdraw processed by %s: %s", caller.caller_id, payout.amount)
        return payout
