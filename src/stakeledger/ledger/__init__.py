"""Ledger: the five singleton ledgers and the protocol facade.

- GovernanceStore: protocol configuration and admin mutation
- StakeRegistry: stake positions and per-validator aggregates
- Treasury: pooled funds, fees, pending withdrawals
- ExchangeRate: share price of claims
- RewardPool: validator reward credit and staker claims
"""

from .clock import EpochClock, ManualEpochClock, WallClockEpochClock
from .exchange_rate import ExchangeRate, ExchangeRateState
from .governance import GovernanceStore, ParameterChange
from .persistence import export_state, load_state, restore_state, save_state
from .protocol import StakeReceipt, StakingProtocol, WithdrawalReceipt
from .registry import RegistryState, StakeRegistry, WithdrawalResult
from .rewards import ClaimResult, RewardPool, RewardPoolState, RewardsAddedResult
from .transaction import LedgerComponent, LedgerTransaction
from .treasury import DistributionResult, Payout, Treasury, TreasuryState

__all__ = [
    # Clock
    "EpochClock",
    "ManualEpochClock",
    "WallClockEpochClock",
    # Transactions
    "LedgerComponent",
    "LedgerTransaction",
    # Ledgers
    "GovernanceStore",
    "ParameterChange",
    "StakeRegistry",
    "RegistryState",
    "WithdrawalResult",
    "Treasury",
    "TreasuryState",
    "Payout",
    "DistributionResult",
    "ExchangeRate",
    "ExchangeRateState",
    "RewardPool",
    "RewardPoolState",
    "RewardsAddedResult",
    "ClaimResult",
    # Facade
    "StakingProtocol",
    "StakeReceipt",
    "WithdrawalReceipt",
    # Persistence
    "export_state",
    "restore_state",
    "save_state",
    "load_state",
]
