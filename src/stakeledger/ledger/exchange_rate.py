"""Exchange Rate Engine: share price of claims against the pool.

Pricing model:
    rate = total_base * PRECISION / total_claims
    rate = PRECISION when total_claims == 0

Updates:
- stake_update: claims are issued at the pre-update rate, so a deposit does
  not move the price beyond floor rounding
- unstake_update: symmetric subtraction
- rewards_update: only total_base grows, the rate strictly rises and every
  claim appreciates without any transfer to holders
- rewards_payout_update: yield leaving the pool lowers total_base only,
  max_payout is the most it can take before the rate drops below min_rate

CIRCUIT BREAKER: any update that would move the rate outside
[min_rate, max_rate] raises ExchangeRateOutOfBoundsError. Inside a
LedgerTransaction this aborts and rolls back the whole operation.
"""

import logging
from dataclasses import dataclass

from stakeledger.core.errors import ExchangeRateOutOfBoundsError
from stakeledger.core.math.checked_math import PRECISION, add, checked_u64, mul_div, sub
from stakeledger.core.settings import LedgerSettings
from stakeledger.ledger.clock import EpochClock
from stakeledger.ledger.transaction import LOCK_ORDER_EXCHANGE_RATE, LedgerComponent

logger = logging.getLogger(__name__)


@dataclass
class ExchangeRateState:
    rate: int = PRECISION
    total_base: int = 0
    total_claims: int = 0
    last_update_epoch: int = 0


class ExchangeRate(LedgerComponent):
    """Share price of claims."""

    lock_order = LOCK_ORDER_EXCHANGE_RATE
    name = "exchange_rate"

    def __init__(
        self,
        settings: LedgerSettings,
        clock: EpochClock,
        state: ExchangeRateState | None = None,
    ):
        super().__init__(state if state is not None else ExchangeRateState())
        self.min_rate = settings.min_rate
        self.max_rate = settings.max_rate
        self.clock = clock

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def rate(self) -> int:
        return self._state.rate

    @property
    def total_base(self) -> int:
        return self._state.total_base

    @property
    def total_claims(self) -> int:
        return self._state.total_claims

    @property
    def last_update_epoch(self) -> int:
        return self._state.last_update_epoch

    def base_to_claims(self, base_amount: int) -> int:
        """Claims worth base_amount at the current rate (floor)."""
        return mul_div(base_amount, PRECISION, self._state.rate)

    def claims_to_base(self, claims_amount: int) -> int:
        """Base value of claims_amount at the current rate (floor)."""
        return mul_div(claims_amount, self._state.rate, PRECISION)

    def max_payout(self) -> int:
        """
        Largest amount rewards_payout_update accepts without leaving the band.

        floor(base * PRECISION / claims) >= min_rate  <=>
        base >= ceil(min_rate * claims / PRECISION)
        """
        state = self._state
        if state.total_claims == 0:
            return state.total_base
        min_base = -(-self.min_rate * state.total_claims // PRECISION)
        if state.total_base <= min_base:
            return 0
        return state.total_base - min_base

    # =========================================================================
    # UPDATES
    # =========================================================================

    def stake_update(self, base_amount: int) -> int:
        """
        Register a deposit.

        Returns:
            Claims issued for base_amount at the pre-update rate
        """
        checked_u64(base_amount, "base_amount")
        with self._lock:
            claims_issued = self.base_to_claims(base_amount)
            state = self._state
            self._commit(
                add(state.total_base, base_amount),
                add(state.total_claims, claims_issued),
            )
            return claims_issued

    def unstake_update(self, base_amount: int) -> int:
        """
        Register a withdrawal.

        Returns:
            Claims retired for base_amount at the pre-update rate
        """
        checked_u64(base_amount, "base_amount")
        with self._lock:
            claims_retired = self.base_to_claims(base_amount)
            state = self._state
            self._commit(
                sub(state.total_base, base_amount),
                sub(state.total_claims, claims_retired),
            )
            return claims_retired

    def rewards_update(self, reward_amount: int) -> int:
        """
        Absorb yield into the pool: total_base grows, total_claims does not.

        Returns:
            New rate
        """
        checked_u64(reward_amount, "reward_amount")
        with self._lock:
            state = self._state
            return self._commit(add(state.total_base, reward_amount), state.total_claims)

    def rewards_payout_update(self, payout_amount: int) -> int:
        """
        Yield leaves the pool: total_base shrinks, total_claims does not.

        Returns:
            New rate
        """
        checked_u64(payout_amount, "payout_amount")
        with self._lock:
            state = self._state
            return self._commit(sub(state.total_base, payout_amount), state.total_claims)

    def reset(self) -> None:
        """Zero the pricing basis (used after an emergency drain)."""
        with self._lock:
            self._state = ExchangeRateState(last_update_epoch=self.clock.current_epoch())

    def _commit(self, total_base: int, total_claims: int) -> int:
        """Reprice and write the new totals only if the rate stays in band."""
        if total_claims == 0:
            new_rate = PRECISION
        else:
            new_rate = mul_div(total_base, PRECISION, total_claims)

        if new_rate < self.min_rate or new_rate > self.max_rate:
            logger.error(
                "Exchange rate %s outside [%s, %s] (total_base=%s, total_claims=%s)",
                new_rate, self.min_rate, self.max_rate, total_base, total_claims,
            )
            raise ExchangeRateOutOfBoundsError(
                f"rate {new_rate} outside [{self.min_rate}, {self.max_rate}]"
            )

        state = self._state
        state.total_base = total_base
        state.total_claims = total_claims
        state.rate = new_rate
        state.last_update_epoch = self.clock.current_epoch()
        return new_rate
