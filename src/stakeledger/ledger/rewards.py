"""Reward Distribution Engine: commission splitting and proportional claims.

Incoming rewards (add_validator_rewards):
    split = calculate_reward_split(gross, protocol_fee_bps, commission_bps)
    - the whole gross enters the Treasury
    - protocol_fee is booked as protocol revenue
    - commission is credited to the validator's reward pool and parked in
      Treasury.reward_reserve for the validator's stakers
    - pool_residual raises pool_balance and the exchange rate, so every
      claim holder benefits ("rising tide")
    - with no claims outstanding there is nobody to credit, the reward is
      rejected (NoRewardsError)

Claims (claim_rewards):
    entitled = amount * validator_total / validator_stake_sum   (floor)
    share    = min(entitled - already_claimed_by_position,
                   validator_total - claimed_from_validator)

CRITICAL INVARIANTS:
1. Claims are paid from reward_reserve only, never from principal
2. Total claimed per validator never exceeds what was credited to it
3. A position cannot claim the same entitlement twice
"""

import logging
from dataclasses import dataclass, field

from stakeledger.core.errors import (
    InvalidAmountError,
    NoRewardsError,
    PoolDrainedError,
    PositionMismatchError,
)
from stakeledger.core.math.checked_math import add, checked_u64, min_u64, mul_div, sub
from stakeledger.core.math.fees import calculate_reward_split
from stakeledger.ledger.exchange_rate import ExchangeRate
from stakeledger.ledger.governance import GovernanceStore
from stakeledger.ledger.registry import StakeRegistry
from stakeledger.ledger.transaction import (
    LOCK_ORDER_REWARD_POOL,
    LedgerComponent,
    LedgerTransaction,
)
from stakeledger.ledger.treasury import Payout, Treasury

logger = logging.getLogger(__name__)


@dataclass
class RewardPoolState:
    total_rewards_credited: dict[str, int] = field(default_factory=dict)
    validator_claimed: dict[str, int] = field(default_factory=dict)
    cumulative_claimed: dict[str, int] = field(default_factory=dict)
    position_claimed: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RewardsAddedResult:
    validator_id: str
    gross: int
    protocol_fee: int
    commission: int
    pool_residual: int
    new_rate: int


@dataclass(frozen=True)
class ClaimResult:
    staker_id: str
    position_id: str
    validator_id: str
    share: int
    payout: Payout


class RewardPool(LedgerComponent):
    """Per-validator reward credit and per-staker claim ledger."""

    lock_order = LOCK_ORDER_REWARD_POOL
    name = "reward_pool"

    def __init__(
        self,
        governance: GovernanceStore,
        registry: StakeRegistry,
        treasury: Treasury,
        exchange_rate: ExchangeRate,
        state: RewardPoolState | None = None,
    ):
        super().__init__(state if state is not None else RewardPoolState())
        self.governance = governance
        self.registry = registry
        self.treasury = treasury
        self.exchange_rate = exchange_rate

    # =========================================================================
    # QUERIES
    # =========================================================================

    def total_rewards_credited(self, validator_id: str) -> int:
        return self._state.total_rewards_credited.get(validator_id, 0)

    def validator_claimed(self, validator_id: str) -> int:
        return self._state.validator_claimed.get(validator_id, 0)

    def cumulative_claimed(self, staker_id: str) -> int:
        return self._state.cumulative_claimed.get(staker_id, 0)

    def credited_validators(self) -> dict[str, int]:
        return dict(self._state.total_rewards_credited)

    def unclaimed_credit(self) -> int:
        """Credited but not yet claimed, across all validators."""
        total = 0
        for validator_id, credited in self._state.total_rewards_credited.items():
            total = add(total, sub(credited, self.validator_claimed(validator_id)))
        return total

    def claimable_rewards(self, position_id: str) -> int:
        """Share claimable now for a live position (0 if none)."""
        position = self.registry.get_position(position_id)
        return self._claimable_share(position.position_id, position.validator_id, position.amount)

    # =========================================================================
    # INCOMING REWARDS
    # =========================================================================

    def add_validator_rewards(self, validator_id: str, gross_reward: int) -> RewardsAddedResult:
        """
        Absorb a gross reward earned by a validator.

        Raises:
            InvalidAmountError: If gross_reward is zero
            ValidatorNotFoundError: If the validator is not registered
            PoolDrainedError: After the emergency drain
            NoRewardsError: If no claims are outstanding
            ExchangeRateOutOfBoundsError: If the repricing leaves the band
        """
        checked_u64(gross_reward, "gross_reward")
        if gross_reward == 0:
            raise InvalidAmountError("reward amount must be positive")

        with LedgerTransaction(
            "add_validator_rewards",
            self.governance, self.registry, self.treasury, self.exchange_rate, self,
        ):
            if self.registry.emergency_processed:
                raise PoolDrainedError("rewards cannot be added after the pool was drained")
            if self.exchange_rate.total_claims == 0:
                raise NoRewardsError(
                    f"no claims outstanding, rewards for {validator_id!r} have no holders"
                )

            config = self.governance.config
            validator = self.governance.get_validator_config(validator_id)
            split = calculate_reward_split(
                gross_reward, config.protocol_fee_bps, validator.commission_bps
            )
            commission = split.commission

            credited = self._state.total_rewards_credited
            credited[validator_id] = add(credited.get(validator_id, 0), commission)
            self.treasury.add_validator_reward(validator_id, commission)

            pool_residual = self.treasury.absorb_rewards(split)
            new_rate = self.exchange_rate.rewards_update(pool_residual)

        logger.info(
            "Rewards added for %s: gross=%s fee=%s commission=%s residual=%s rate=%s",
            validator_id, gross_reward, split.protocol_fee, commission, pool_residual, new_rate,
        )
        return RewardsAddedResult(
            validator_id=validator_id,
            gross=gross_reward,
            protocol_fee=split.protocol_fee,
            commission=commission,
            pool_residual=pool_residual,
            new_rate=new_rate,
        )

    # =========================================================================
    # CLAIMS
    # =========================================================================

    def claim_rewards(self, staker_id: str, position_id: str) -> ClaimResult:
        """
        Pay a position its proportional share of the validator's credit.

        Raises:
            PositionNotFoundError: If the position does not exist
            PositionMismatchError: If the position is not owned by staker_id
            NoRewardsError: If nothing is claimable
        """
        with LedgerTransaction("claim_rewards", self.registry, self.treasury, self):
            position = self.registry.get_position(position_id)
            if position.staker_id != staker_id:
                raise PositionMismatchError(
                    f"position {position_id!r} is not owned by {staker_id!r}"
                )

            share = self._claimable_share(
                position.position_id, position.validator_id, position.amount
            )
            if share == 0:
                raise NoRewardsError(f"no rewards claimable for {position_id!r}")

            state = self._state
            state.position_claimed[position_id] = add(
                state.position_claimed.get(position_id, 0), share
            )
            state.cumulative_claimed[staker_id] = add(
                state.cumulative_claimed.get(staker_id, 0), share
            )
            state.validator_claimed[position.validator_id] = add(
                state.validator_claimed.get(position.validator_id, 0), share
            )
            payout = self.treasury.pay_reward(staker_id, share)

        logger.info("Rewards claimed: %s received %s for %s", staker_id, share, position_id)
        return ClaimResult(
            staker_id=staker_id,
            position_id=position_id,
            validator_id=position.validator_id,
            share=share,
            payout=payout,
        )

    def release_position(self, position_id: str) -> int:
        """Drop the claim checkpoint of a destroyed position; returns what it had claimed."""
        with self._lock:
            return self._state.position_claimed.pop(position_id, 0)

    def _claimable_share(self, position_id: str, validator_id: str, amount: int) -> int:
        validator_total = self.total_rewards_credited(validator_id)
        validator_stake_sum = self.registry.aggregate_stake(validator_id)
        if validator_total == 0 or validator_stake_sum == 0:
            return 0

        entitled = mul_div(amount, validator_total, validator_stake_sum)
        already = self._state.position_claimed.get(position_id, 0)
        if entitled <= already:
            return 0

        remaining_credit = sub(validator_total, self.validator_claimed(validator_id))
        return min_u64(sub(entitled, already), remaining_credit)
