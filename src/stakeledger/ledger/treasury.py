"""Treasury: pooled funds, fee/commission ledger, pending withdrawals.

Balances:
- pool_balance: staked principal plus absorbed yield. Always equals
  ExchangeRate.total_base, it is what backs outstanding claims.
- staked_principal: principal of live positions. Always equals the sum of
  the registry's per-validator aggregates and ProtocolConfig.total_staked.
- reward_reserve: commission earmarked for validator claimants. Reward
  claims are paid from here only, never from principal.
- protocol_fees_collected: protocol fee revenue.
- withdrawal_escrow: principal of initiated withdrawals waiting for their
  unlock epoch.

Funds move in via deposit_stake and absorb_rewards, and out via
finalize_withdrawal, distribute_rewards, pay_reward, withdraw_protocol_fees
and the emergency drain_pool.
"""

import logging
from dataclasses import dataclass, field

from stakeledger.core.domain.access import CallerContext, Role, require_role
from stakeledger.core.domain.position import PendingWithdrawal
from stakeledger.core.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    NoPendingWithdrawalError,
    ValidatorInactiveError,
    WithdrawalLockedError,
)
from stakeledger.core.math.checked_math import add, checked_u64, sub
from stakeledger.core.math.fees import RewardSplit, calculate_protocol_fee
from stakeledger.ledger.governance import GovernanceStore
from stakeledger.ledger.transaction import (
    LOCK_ORDER_TREASURY,
    LedgerComponent,
    LedgerTransaction,
)

logger = logging.getLogger(__name__)


@dataclass
class TreasuryState:
    pool_balance: int = 0
    staked_principal: int = 0
    reward_reserve: int = 0
    protocol_fees_collected: int = 0
    withdrawal_escrow: int = 0
    validator_rewards: dict[str, int] = field(default_factory=dict)
    pending_withdrawals: dict[str, list[PendingWithdrawal]] = field(default_factory=dict)


@dataclass(frozen=True)
class Payout:
    """Funds leaving the ledger to a recipient."""

    recipient: str
    amount: int
    reason: str


@dataclass(frozen=True)
class DistributionResult:
    """Result of Treasury.distribute_rewards."""

    validator_id: str
    gross: int
    protocol_fee: int
    validator_net: int
    payout: Payout


class Treasury(LedgerComponent):
    """Pooled funds of the protocol."""

    lock_order = LOCK_ORDER_TREASURY
    name = "treasury"

    def __init__(self, governance: GovernanceStore, state: TreasuryState | None = None):
        super().__init__(state if state is not None else TreasuryState())
        self.governance = governance

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def pool_balance(self) -> int:
        return self._state.pool_balance

    @property
    def staked_principal(self) -> int:
        return self._state.staked_principal

    @property
    def reward_reserve(self) -> int:
        return self._state.reward_reserve

    @property
    def protocol_fees_collected(self) -> int:
        return self._state.protocol_fees_collected

    @property
    def withdrawal_escrow(self) -> int:
        return self._state.withdrawal_escrow

    @property
    def yield_surplus(self) -> int:
        """Pool balance above staked principal."""
        return sub(self._state.pool_balance, self._state.staked_principal)

    def validator_rewards(self, validator_id: str) -> int:
        return self._state.validator_rewards.get(validator_id, 0)

    def pending_withdrawals(self, staker_id: str) -> list[PendingWithdrawal]:
        return list(self._state.pending_withdrawals.get(staker_id, []))

    def total_pending(self) -> int:
        """Sum of every pending withdrawal entry."""
        total = 0
        for entries in self._state.pending_withdrawals.values():
            for entry in entries:
                total = add(total, entry.amount)
        return total

    # =========================================================================
    # DEPOSITS
    # =========================================================================

    def deposit_stake(self, validator_id: str, amount: int) -> int:
        """
        Credit staked principal to the pool.

        Returns:
            New pool balance

        Raises:
            ValidatorInactiveError: If the validator is not active
            InvalidAmountError: If amount is zero
            (plus the pause/emergency/capacity errors of increase_total_staked)
        """
        checked_u64(amount, "amount")
        if amount == 0:
            raise InvalidAmountError("deposit amount must be positive")
        if not self.governance.is_validator_active(validator_id):
            raise ValidatorInactiveError(f"validator {validator_id!r} is not active")

        with LedgerTransaction("deposit_stake", self.governance, self):
            self.governance.increase_total_staked(amount)
            state = self._state
            state.pool_balance = add(state.pool_balance, amount)
            state.staked_principal = add(state.staked_principal, amount)
            return state.pool_balance

    def absorb_rewards(self, split: RewardSplit) -> int:
        """
        Absorb an incoming gross reward in full.

        protocol_fee goes to protocol_fees_collected, commission to
        reward_reserve for the validator's claimants, and pool_residual raises
        pool_balance for every claim holder.

        Returns:
            Amount added to pool_balance
        """
        with self._lock:
            state = self._state
            fees = add(state.protocol_fees_collected, split.protocol_fee)
            reward_reserve = add(state.reward_reserve, split.commission)
            pool_balance = add(state.pool_balance, split.pool_residual)
            state.protocol_fees_collected = fees
            state.reward_reserve = reward_reserve
            state.pool_balance = pool_balance
        return split.pool_residual

    def add_validator_reward(self, validator_id: str, amount: int) -> int:
        """Direct credit to a validator's cumulative reward ledger."""
        checked_u64(amount, "amount")
        with self._lock:
            rewards = self._state.validator_rewards
            rewards[validator_id] = add(rewards.get(validator_id, 0), amount)
            return rewards[validator_id]

    # =========================================================================
    # REWARD OUTFLOWS
    # =========================================================================

    def distribute_rewards(
        self,
        caller: CallerContext,
        validator_id: str,
        gross: int,
        max_payout: int | None = None,
    ) -> DistributionResult:
        """
        Pay a validator's share of accrued pool yield.

        fee = floor(gross * protocol_fee_bps / 10000) goes to
        protocol_fees_collected, validator_net = gross - fee is paid out and
        credited to the validator's reward ledger. Only yield above staked
        principal can be distributed, and never more than max_payout when given
        (the exchange rate floor, see ExchangeRate.max_payout).

        Raises:
            UnauthorizedError: If the caller is not a governor
            InvalidAmountError: If gross is zero
            InsufficientBalanceError: If gross exceeds the pool's yield surplus
                or max_payout
        """
        require_role(caller, Role.GOVERNOR)
        checked_u64(gross, "gross")
        if gross == 0:
            raise InvalidAmountError("reward amount must be positive")
        self.governance.get_validator_config(validator_id)

        with self._lock:
            state = self._state
            if state.pool_balance < gross:
                raise InsufficientBalanceError(
                    f"pool balance {state.pool_balance} below reward {gross}"
                )
            surplus = sub(state.pool_balance, state.staked_principal)
            if gross > surplus:
                raise InsufficientBalanceError(
                    f"reward {gross} exceeds distributable yield {surplus}"
                )
            if max_payout is not None and gross > max_payout:
                raise InsufficientBalanceError(
                    f"reward {gross} would push the exchange rate below its floor, "
                    f"at most {max_payout} can leave the pool"
                )

            split = calculate_protocol_fee(gross, self.governance.config.protocol_fee_bps)

            state.pool_balance = sub(state.pool_balance, split.fee)
            state.protocol_fees_collected = add(state.protocol_fees_collected, split.fee)
            state.pool_balance = sub(state.pool_balance, split.net)
            state.validator_rewards[validator_id] = add(
                state.validator_rewards.get(validator_id, 0), split.net
            )

        logger.info(
            "Distributed %s to validator %s (fee=%s, net=%s)",
            gross, validator_id, split.fee, split.net,
        )
        return DistributionResult(
            validator_id=validator_id,
            gross=gross,
            protocol_fee=split.fee,
            validator_net=split.net,
            payout=Payout(recipient=validator_id, amount=split.net, reason="validator_rewards"),
        )

    def pay_reward(self, recipient: str, amount: int) -> Payout:
        """
        Raises:
            InsufficientBalanceError: If the reward reserve cannot cover amount
        """
        checked_u64(amount, "amount")
        with self._lock:
            state = self._state
            if state.reward_reserve < amount:
                raise InsufficientBalanceError(
                    f"reward reserve {state.reward_reserve} below claim {amount}"
                )
            state.reward_reserve = sub(state.reward_reserve, amount)
        return Payout(recipient=recipient, amount=amount, reason="reward_claim")

    def withdraw_protocol_fees(self, caller: CallerContext, amount: int) -> Payout:
        """
        Raises:
            UnauthorizedError: If the caller is not a governor
            InvalidAmountError: If amount is zero
            InsufficientBalanceError: If fees collected are below amount
        """
        require_role(caller, Role.GOVERNOR)
        checked_u64(amount, "amount")
        if amount == 0:
            raise InvalidAmountError("fee withdrawal amount must be positive")
        with self._lock:
            state = self._state
            if state.protocol_fees_collected < amount:
                raise InsufficientBalanceError(
                    f"protocol fees {state.protocol_fees_collected} below {amount}"
                )
            state.protocol_fees_collected = sub(state.protocol_fees_collected, amount)
        return Payout(recipient=caller.caller_id, amount=amount, reason="protocol_fees")

    # =========================================================================
    # WITHDRAWALS (two-phase)
    # =========================================================================

    def initiate_withdrawal(
        self,
        staker_id: str,
        position_id: str,
        amount: int,
    ) -> PendingWithdrawal:
        """
        Phase 1: move principal from the pool into escrow and record a
        pending entry unlocking at now + withdrawal_delay_epochs.

        Raises:
            InvalidAmountError: If amount is zero
            InsufficientBalanceError: If the pool cannot cover amount
        """
        checked_u64(amount, "amount")
        if amount == 0:
            raise InvalidAmountError("withdrawal amount must be positive")

        with LedgerTransaction("initiate_withdrawal", self.governance, self):
            state = self._state
            if state.pool_balance < amount or state.staked_principal < amount:
                raise InsufficientBalanceError(
                    f"pool balance {state.pool_balance} below withdrawal {amount}"
                )
            config = self.governance.config
            now = self.governance.clock.current_epoch()
            pending = PendingWithdrawal(
                position_id=position_id,
                amount=amount,
                unlock_epoch=add(now, config.withdrawal_delay_epochs),
            )

            state.pool_balance = sub(state.pool_balance, amount)
            state.staked_principal = sub(state.staked_principal, amount)
            state.withdrawal_escrow = add(state.withdrawal_escrow, amount)
            state.pending_withdrawals.setdefault(staker_id, []).append(pending)
            self.governance.decrease_total_staked(amount)

        return pending

    def finalize_withdrawal(self, staker_id: str) -> Payout:
        """
        Phase 2: release every unlocked pending entry of the staker.

        Raises:
            NoPendingWithdrawalError: If the staker has nothing pending
            WithdrawalLockedError: If no pending entry is unlocked yet
        """
        with self._lock:
            state = self._state
            entries = state.pending_withdrawals.get(staker_id, [])
            if not entries:
                raise NoPendingWithdrawalError(f"no pending withdrawal for {staker_id!r}")

            now = self.governance.clock.current_epoch()
            unlocked = [e for e in entries if e.is_unlocked(now)]
            if not unlocked:
                next_unlock = min(e.unlock_epoch for e in entries)
                raise WithdrawalLockedError(
                    f"withdrawal for {staker_id!r} unlocks at epoch {next_unlock}, now {now}"
                )

            total = 0
            for entry in unlocked:
                total = add(total, entry.amount)
            state.withdrawal_escrow = sub(state.withdrawal_escrow, total)

            remaining = [e for e in entries if not e.is_unlocked(now)]
            if remaining:
                state.pending_withdrawals[staker_id] = remaining
            else:
                del state.pending_withdrawals[staker_id]

        return Payout(recipient=staker_id, amount=total, reason="withdrawal")

    # =========================================================================
    # EMERGENCY
    # =========================================================================

    def drain_pool(self, recipient: str) -> Payout:
        """Move the whole pool balance to the recipient."""
        with LedgerTransaction("drain_pool", self.governance, self):
            state = self._state
            amount = state.pool_balance
            principal = state.staked_principal
            state.pool_balance = 0
            state.staked_principal = 0
            self.governance.decrease_total_staked(principal)
        logger.warning("Emergency drain: %s moved out of the pool to %s", amount, recipient)
        return Payout(recipient=recipient, amount=amount, reason="emergency_drain")
