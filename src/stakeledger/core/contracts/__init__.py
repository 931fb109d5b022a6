"""
Contract Validation Module

Модуль для валидации JSON контрактов сохранённых записей ledger.
"""

from .validators import (
    RECORD_NAMES,
    ContractValidator,
    ExchangeRateValidator,
    ProtocolConfigValidator,
    RewardPoolValidator,
    SchemaLoader,
    StakeRegistryValidator,
    TreasuryValidator,
    validate_exchange_rate,
    validate_protocol_config,
    validate_record,
    validate_reward_pool,
    validate_stake_registry,
    validate_treasury,
)

__all__ = [
    "RECORD_NAMES",
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "ProtocolConfigValidator",
    "StakeRegistryValidator",
    "TreasuryValidator",
    "ExchangeRateValidator",
    "RewardPoolValidator",
    # Functions
    "validate_protocol_config",
    "validate_stake_registry",
    "validate_treasury",
    "validate_exchange_rate",
    "validate_reward_pool",
    "validate_record",
]
