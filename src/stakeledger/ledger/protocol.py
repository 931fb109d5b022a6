"""StakingProtocol: the ledger's public operation surface.

Wires the five singleton ledgers (GovernanceStore, StakeRegistry, Treasury,
ExchangeRate, RewardPool) around one EpochClock and one EventLog. Every
mutating operation runs inside a single LedgerTransaction over all the
ledgers it touches, so the registry, the treasury and the exchange rate move
together or not at all. Events are emitted after commit.
"""

import logging
from dataclasses import dataclass

from stakeledger.core.domain.access import CallerContext
from stakeledger.core.domain.config import ValidatorConfig
from stakeledger.core.domain.events import EventLog, EventType
from stakeledger.core.domain.position import PendingWithdrawal, StakePosition
from stakeledger.core.errors import InvariantViolationError
from stakeledger.core.settings import LedgerSettings
from stakeledger.emergency.state_machine import (
    ModeTransitionResult,
    ProtocolMode,
    derive_mode,
)
from stakeledger.ledger.clock import EpochClock
from stakeledger.ledger.exchange_rate import ExchangeRate, ExchangeRateState
from stakeledger.ledger.governance import GovernanceStore, ParameterChange
from stakeledger.ledger.registry import RegistryState, StakeRegistry
from stakeledger.ledger.rewards import (
    ClaimResult,
    RewardPool,
    RewardPoolState,
    RewardsAddedResult,
)
from stakeledger.ledger.transaction import LedgerTransaction
from stakeledger.ledger.treasury import (
    DistributionResult,
    Payout,
    Treasury,
    TreasuryState,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StakeReceipt:
    position: StakePosition
    claims_issued: int
    rate: int


@dataclass(frozen=True)
class WithdrawalReceipt:
    position: StakePosition
    pending: PendingWithdrawal
    claims_retired: int
    rate: int


class StakingProtocol:
    """Liquid-staking ledger."""

    def __init__(
        self,
        governance: GovernanceStore,
        registry: StakeRegistry,
        treasury: Treasury,
        exchange_rate: ExchangeRate,
        reward_pool: RewardPool,
        clock: EpochClock,
        events: EventLog | None = None,
    ):
        self.governance = governance
        self.registry = registry
        self.treasury = treasury
        self.exchange_rate = exchange_rate
        self.reward_pool = reward_pool
        self.clock = clock
        self.events = events if events is not None else EventLog()

    @classmethod
    def bootstrap(
        cls,
        settings: LedgerSettings,
        clock: EpochClock,
        *,
        governance: GovernanceStore | None = None,
        registry_state: RegistryState | None = None,
        treasury_state: TreasuryState | None = None,
        exchange_rate_state: ExchangeRateState | None = None,
        reward_pool_state: RewardPoolState | None = None,
    ) -> "StakingProtocol":
        """
        Build the ledgers once for the lifetime of the process.

        Fresh ledgers are created unless state is supplied (restore path).
        """
        if governance is None:
            governance = GovernanceStore(settings, clock)
        treasury = Treasury(governance, treasury_state)
        registry = StakeRegistry(governance, treasury, registry_state)
        exchange_rate = ExchangeRate(settings, clock, exchange_rate_state)
        reward_pool = RewardPool(governance, registry, treasury, exchange_rate, reward_pool_state)
        logger.info(
            "Staking protocol bootstrapped at epoch %s (capacity=%s)",
            clock.current_epoch(), settings.system_capacity,
        )
        return cls(governance, registry, treasury, exchange_rate, reward_pool, clock)

    @property
    def settings(self) -> LedgerSettings:
        return self.governance.settings

    # =========================================================================
    # STAKING
    # =========================================================================

    def stake(self, caller: CallerContext, validator_id: str, amount: int) -> StakeReceipt:
        """Open a position and issue claims at the pre-stake rate."""
        with LedgerTransaction(
            "stake", self.governance, self.registry, self.treasury, self.exchange_rate
        ):
            position = self.registry.stake(caller.caller_id, validator_id, amount)
            claims_issued = self.exchange_rate.stake_update(amount)
            rate = self.exchange_rate.rate

        self.events.emit(
            EventType.STAKE_CREATED,
            self.clock.current_epoch(),
            staker_id=caller.caller_id,
            validator_id=validator_id,
            position_id=position.position_id,
            amount=amount,
            claims_issued=claims_issued,
        )
        return StakeReceipt(position=position, claims_issued=claims_issued, rate=rate)

    def withdraw(self, caller: CallerContext, position_id: str) -> WithdrawalReceipt:
        """Close a position; funds unlock after withdrawal_delay_epochs."""
        with LedgerTransaction(
            "withdraw",
            self.governance, self.registry, self.treasury, self.exchange_rate, self.reward_pool,
        ):
            result = self.registry.withdraw(caller.caller_id, position_id)
            claims_retired = self.exchange_rate.unstake_update(result.position.amount)
            self.reward_pool.release_position(position_id)
            rate = self.exchange_rate.rate

        self.events.emit(
            EventType.WITHDRAWAL_INITIATED,
            self.clock.current_epoch(),
            staker_id=caller.caller_id,
            position_id=position_id,
            amount=result.position.amount,
            unlock_epoch=result.pending.unlock_epoch,
        )
        return WithdrawalReceipt(
            position=result.position,
            pending=result.pending,
            claims_retired=claims_retired,
            rate=rate,
        )

    def finalize_withdrawal(self, caller: CallerContext) -> Payout:
        """Release every unlocked pending withdrawal of the caller."""
        with LedgerTransaction("finalize_withdrawal", self.treasury):
            payout = self.treasury.finalize_withdrawal(caller.caller_id)

        self.events.emit(
            EventType.WITHDRAWAL_FINALIZED,
            self.clock.current_epoch(),
            staker_id=caller.caller_id,
            amount=payout.amount,
        )
        logger.info("Withdrawal finalized: %s received %s", caller.caller_id, payout.amount)
        return payout

    # =========================================================================
    # REWARDS
    # =========================================================================

    def add_validator_rewards(self, validator_id: str, gross_reward: int) -> RewardsAddedResult:
        result = self.reward_pool.add_validator_rewards(validator_id, gross_reward)
        self.events.emit(
            EventType.REWARDS_ADDED,
            self.clock.current_epoch(),
            validator_id=validator_id,
            gross=result.gross,
            protocol_fee=result.protocol_fee,
            commission=result.commission,
            rate=result.new_rate,
        )
        return result

    def claim_rewards(self, caller: CallerContext, position_id: str) -> ClaimResult:
        result = self.reward_pool.claim_rewards(caller.caller_id, position_id)
        self.events.emit(
            EventType.REWARDS_CLAIMED,
            self.clock.current_epoch(),
            staker_id=caller.caller_id,
            position_id=position_id,
            amount=result.share,
        )
        return result

    def distribute_rewards(
        self, caller: CallerContext, validator_id: str, gross: int
    ) -> DistributionResult:
        """Pay a validator out of pool yield; the exchange rate follows."""
        with LedgerTransaction(
            "distribute_rewards", self.governance, self.treasury, self.exchange_rate
        ):
            result = self.treasury.distribute_rewards(
                caller, validator_id, gross, max_payout=self.exchange_rate.max_payout()
            )
            self.exchange_rate.rewards_payout_update(result.gross)

        self.events.emit(
            EventType.REWARDS_DISTRIBUTED,
            self.clock.current_epoch(),
            validator_id=validator_id,
            gross=result.gross,
            protocol_fee=result.protocol_fee,
            validator_net=result.validator_net,
        )
        return result

    def withdraw_protocol_fees(self, caller: CallerContext, amount: int) -> Payout:
        with LedgerTransaction("withdraw_protocol_fees", self.treasury):
            payout = self.treasury.withdraw_protocol_fees(caller, amount)

        self.events.emit(
            EventType.PROTOCOL_FEES_WITHDRAWN,
            self.clock.current_epoch(),
            recipient=payout.recipient,
            amount=payout.amount,
        )
        logger.info("Protocol fees withdrawn: %s to %s", payout.amount, payout.recipient)
        return payout

    # =========================================================================
    # EMERGENCY / MODE
    # =========================================================================

    def emergency_withdraw(self, caller: CallerContext) -> Payout:
        """One-shot drain of the pool; the claim basis is reset with it."""
        with LedgerTransaction(
            "emergency_withdraw",
            self.governance, self.registry, self.treasury, self.exchange_rate,
        ):
            payout = self.registry.emergency_withdraw(caller)
            self.exchange_rate.reset()

        self.events.emit(
            EventType.EMERGENCY_DRAINED,
            self.clock.current_epoch(),
            recipient=payout.recipient,
            amount=payout.amount,
        )
        return payout

    def set_pause_status(self, caller: CallerContext, paused: bool) -> ModeTransitionResult:
        with LedgerTransaction("set_pause_status", self.governance, self.registry):
            result = self.governance.set_pause_status(
                caller, paused, emergency_processed=self.registry.emergency_processed
            )
        self._emit_mode_change(result)
        return result

    def set_emergency_mode(self, caller: CallerContext, enabled: bool) -> ModeTransitionResult:
        with LedgerTransaction("set_emergency_mode", self.governance, self.registry):
            result = self.governance.set_emergency_mode(
                caller, enabled, emergency_processed=self.registry.emergency_processed
            )
        self._emit_mode_change(result)
        return result

    # =========================================================================
    # GOVERNANCE
    # =========================================================================

    def update_min_stake(self, caller: CallerContext, new_min_stake: int) -> ParameterChange:
        return self._record(self.governance.update_min_stake(caller, new_min_stake))

    def update_protocol_fee(self, caller: CallerContext, new_fee_bps: int) -> ParameterChange:
        return self._record(self.governance.update_protocol_fee(caller, new_fee_bps))

    def update_max_stake(self, caller: CallerContext, new_max_stake: int) -> ParameterChange:
        return self._record(self.governance.update_max_stake(caller, new_max_stake))

    def add_or_update_validator(
        self,
        caller: CallerContext,
        validator_id: str,
        is_active: bool,
        max_stake: int,
        commission_bps: int,
    ) -> ParameterChange:
        change = self.governance.add_or_update_validator(
            caller, validator_id, is_active, max_stake, commission_bps
        )
        self.events.emit(
            EventType.CONFIG_UPDATED,
            change.epoch,
            parameter=change.parameter,
            is_active=is_active,
            max_stake=max_stake,
            commission_bps=commission_bps,
        )
        return change

    def _record(self, change: ParameterChange) -> ParameterChange:
        self.events.emit(
            EventType.CONFIG_UPDATED,
            change.epoch,
            parameter=change.parameter,
            old_value=change.old_value,
            new_value=change.new_value,
        )
        return change

    def _emit_mode_change(self, result: ModeTransitionResult) -> None:
        self.events.emit(
            EventType.CONFIG_UPDATED,
            self.clock.current_epoch(),
            parameter="mode",
            old_value=result.previous_mode.value,
            new_value=result.new_mode.value,
            reason=result.transition_reason,
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_pool_balance(self) -> int:
        return self.treasury.pool_balance

    def get_exchange_rate(self) -> int:
        return self.exchange_rate.rate

    def get_validator_config(self, validator_id: str) -> ValidatorConfig:
        return self.governance.get_validator_config(validator_id)

    def has_position(self, staker_id: str) -> bool:
        return self.registry.has_position(staker_id)

    def positions_of(self, staker_id: str) -> list[StakePosition]:
        return self.registry.positions_of(staker_id)

    def pending_withdrawals(self, staker_id: str) -> list[PendingWithdrawal]:
        return self.treasury.pending_withdrawals(staker_id)

    def claimable_rewards(self, position_id: str) -> int:
        return self.reward_pool.claimable_rewards(position_id)

    def mode(self) -> ProtocolMode:
        config = self.governance.config
        return derive_mode(config.paused, config.emergency_mode, self.registry.emergency_processed)

    # =========================================================================
    # INVARIANTS
    # =========================================================================

    def check_invariants(self) -> None:
        """
        Verify cross-ledger accounting under all ledger locks.

        Raises:
            InvariantViolationError: On the first violated relation
        """
        with LedgerTransaction(
            "check_invariants",
            self.governance, self.registry, self.treasury, self.exchange_rate, self.reward_pool,
        ):
            config = self.governance.config
            treasury = self.treasury
            aggregate = self.registry.total_aggregate_stake()

            if not (aggregate == treasury.staked_principal == config.total_staked):
                _violation(
                    f"staked principal mismatch: aggregate={aggregate} "
                    f"treasury={treasury.staked_principal} config={config.total_staked}"
                )
            if treasury.pool_balance < treasury.staked_principal:
                _violation(
                    f"pool balance {treasury.pool_balance} below principal "
                    f"{treasury.staked_principal}"
                )
            if self.exchange_rate.total_base != treasury.pool_balance:
                _violation(
                    f"exchange rate base {self.exchange_rate.total_base} != pool "
                    f"{treasury.pool_balance}"
                )
            rate = self.exchange_rate.rate
            if not (self.exchange_rate.min_rate <= rate <= self.exchange_rate.max_rate):
                _violation(f"exchange rate {rate} out of bounds")
            if config.total_staked > self.settings.system_capacity:
                _violation(f"total staked {config.total_staked} exceeds system capacity")

            unclaimed = self.reward_pool.unclaimed_credit()
            if treasury.reward_reserve != unclaimed:
                _violation(
                    f"reward reserve {treasury.reward_reserve} != unclaimed credit {unclaimed}"
                )
            for validator_id, credited in self.reward_pool.credited_validators().items():
                if self.reward_pool.validator_claimed(validator_id) > credited:
                    _violation(f"validator {validator_id!r} paid out more than credited")

            escrowed = treasury.total_pending()
            if escrowed != treasury.withdrawal_escrow:
                _violation(
                    f"withdrawal escrow {treasury.withdrawal_escrow} != pending {escrowed}"
                )


def _violation(message: str) -> None:
    logger.error("Invariant violated: %s", message)
    raise InvariantViolationError(message)
