"""Tests for LedgerTransaction.

Coverage:
- Global lock ordering
- All-or-nothing commit across several ledgers
- Nested transactions on reentrant locks
"""

from dataclasses import dataclass, field

import pytest

from stakeledger.core.errors import InvalidAmountError
from stakeledger.ledger import LedgerComponent, LedgerTransaction
from stakeledger.ledger.transaction import (
    LOCK_ORDER_CONFIG,
    LOCK_ORDER_REWARD_POOL,
    LOCK_ORDER_TREASURY,
)


@dataclass
class BalanceState:
    balance: int = 0
    history: list[int] = field(default_factory=list)


class Balance(LedgerComponent):
    def __init__(self, lock_order):
        super().__init__(BalanceState())
        self.lock_order = lock_order

    def credit(self, amount):
        self._state.balance += amount
        self._state.history.append(amount)

    @property
    def balance(self):
        return self._state.balance


@pytest.fixture
def ledgers():
    return (
        Balance(LOCK_ORDER_REWARD_POOL),
        Balance(LOCK_ORDER_CONFIG),
        Balance(LOCK_ORDER_TREASURY),
    )


class TestLedgerTransaction:
    def test_components_sorted_and_deduplicated(self, ledgers):
        pool, config, treasury = ledgers
        tx = LedgerTransaction("op", pool, config, treasury, config)
        assert tx.components == [config, treasury, pool]

    def test_commit(self, ledgers):
        pool, config, treasury = ledgers
        with LedgerTransaction("op", pool, config, treasury):
            config.credit(1)
            treasury.credit(2)
            pool.credit(3)

        assert (config.balance, treasury.balance, pool.balance) == (1, 2, 3)

    def test_rollback_restores_every_ledger(self, ledgers):
        pool, config, treasury = ledgers
        config.credit(10)

        with pytest.raises(InvalidAmountError):
            with LedgerTransaction("op", pool, config, treasury):
                config.credit(1)
                treasury.credit(2)
                raise InvalidAmountError("rejected")

        assert config.balance == 10
        assert config._state.history == [10]
        assert treasury.balance == 0
        assert pool.balance == 0

    def test_rollback_on_unexpected_error(self, ledgers):
        _, config, _ = ledgers
        with pytest.raises(RuntimeError):
            with LedgerTransaction("op", config):
                config.credit(5)
                raise RuntimeError("boom")
        assert config.balance == 0

    def test_nested_inner_failure_rolls_back_outer(self, ledgers):
        pool, config, treasury = ledgers
        with pytest.raises(InvalidAmountError):
            with LedgerTransaction("outer", config, treasury):
                config.credit(1)
                with LedgerTransaction("inner", treasury, pool):
                    treasury.credit(2)
                    pool.credit(3)
                raise InvalidAmountError("late rejection")

        assert (config.balance, treasury.balance, pool.balance) == (0, 0, 0)

    def test_locks_released(self, ledgers):
        _, config, _ = ledgers
        with LedgerTransaction("op", config):
            pass
        assert config.lock.acquire(blocking=False)
        config.lock.release()
