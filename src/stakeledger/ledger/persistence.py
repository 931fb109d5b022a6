"""Ledger persistence: export/restore of the five persisted records.

Records (one per singleton ledger):
- protocol_config
- stake_registry
- treasury
- exchange_rate
- reward_pool

Every record is validated against its JSON Schema contract on export and on
restore. A restored protocol must also pass check_invariants.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from stakeledger.core.contracts import RECORD_NAMES, validate_record
from stakeledger.core.domain.config import ProtocolConfig
from stakeledger.core.domain.position import PendingWithdrawal, StakePosition
from stakeledger.core.errors import InvalidParameterError
from stakeledger.core.settings import LedgerSettings
from stakeledger.ledger.clock import EpochClock
from stakeledger.ledger.exchange_rate import ExchangeRateState
from stakeledger.ledger.governance import GovernanceStore
from stakeledger.ledger.protocol import StakingProtocol
from stakeledger.ledger.registry import RegistryState
from stakeledger.ledger.rewards import RewardPoolState
from stakeledger.ledger.transaction import LedgerTransaction
from stakeledger.ledger.treasury import TreasuryState

logger = logging.getLogger(__name__)


# =============================================================================
# EXPORT
# =============================================================================


def export_state(protocol: StakingProtocol) -> dict[str, dict[str, Any]]:
    """Consistent snapshot of every ledger as plain JSON-compatible records."""
    with LedgerTransaction(
        "export_state",
        protocol.governance,
        protocol.registry,
        protocol.treasury,
        protocol.exchange_rate,
        protocol.reward_pool,
    ):
        registry = protocol.registry.snapshot()
        treasury = protocol.treasury.snapshot()
        rate = protocol.exchange_rate.snapshot()
        rewards = protocol.reward_pool.snapshot()
        records = {
            "protocol_config": protocol.governance.config.model_dump(),
            "stake_registry": {
                "positions": [p.model_dump() for p in registry.positions.values()],
                "aggregate_stake": dict(registry.aggregate_stake),
                "emergency_processed": registry.emergency_processed,
                "next_position_seq": registry.next_position_seq,
            },
            "treasury": {
                "pool_balance": treasury.pool_balance,
                "staked_principal": treasury.staked_principal,
                "reward_reserve": treasury.reward_reserve,
                "protocol_fees_collected": treasury.protocol_fees_collected,
                "withdrawal_escrow": treasury.withdrawal_escrow,
                "validator_rewards": dict(treasury.validator_rewards),
                "pending_withdrawals": {
                    staker: [p.model_dump() for p in entries]
                    for staker, entries in treasury.pending_withdrawals.items()
                },
            },
            "exchange_rate": {
                "rate": rate.rate,
                "total_base": rate.total_base,
                "total_claims": rate.total_claims,
                "last_update_epoch": rate.last_update_epoch,
            },
            "reward_pool": {
                "total_rewards_credited": dict(rewards.total_rewards_credited),
                "validator_claimed": dict(rewards.validator_claimed),
                "cumulative_claimed": dict(rewards.cumulative_claimed),
                "position_claimed": dict(rewards.position_claimed),
            },
        }

    for name in RECORD_NAMES:
        validate_record(name, records[name])
    return records


# =============================================================================
# RESTORE
# =============================================================================


def restore_state(
    records: dict[str, dict[str, Any]],
    settings: LedgerSettings,
    clock: EpochClock,
) -> StakingProtocol:
    """
    Rebuild a StakingProtocol from exported records.

    Raises:
        InvalidParameterError: If a record is missing or malformed
        jsonschema.ValidationError: If a record violates its contract
        InvariantViolationError: If the records are mutually inconsistent
    """
    missing = [name for name in RECORD_NAMES if name not in records]
    if missing:
        raise InvalidParameterError(f"missing persisted records: {missing}")
    for name in RECORD_NAMES:
        validate_record(name, records[name])

    try:
        config = ProtocolConfig.model_validate(records["protocol_config"])
        positions = [
            StakePosition.model_validate(p) for p in records["stake_registry"]["positions"]
        ]
        pending = {
            staker: [PendingWithdrawal.model_validate(p) for p in entries]
            for staker, entries in records["treasury"]["pending_withdrawals"].items()
        }
    except PydanticValidationError as e:
        raise InvalidParameterError(f"malformed persisted record: {e}") from e

    registry_record = records["stake_registry"]
    registry_state = RegistryState(
        aggregate_stake=dict(registry_record["aggregate_stake"]),
        emergency_processed=registry_record["emergency_processed"],
        next_position_seq=registry_record["next_position_seq"],
    )
    for position in positions:
        if position.position_id in registry_state.positions:
            raise InvalidParameterError(f"duplicate position id {position.position_id!r}")
        registry_state.positions[position.position_id] = position
        registry_state.staker_positions.setdefault(position.staker_id, []).append(
            position.position_id
        )

    treasury_record = records["treasury"]
    treasury_state = TreasuryState(
        pool_balance=treasury_record["pool_balance"],
        staked_principal=treasury_record["staked_principal"],
        reward_reserve=treasury_record["reward_reserve"],
        protocol_fees_collected=treasury_record["protocol_fees_collected"],
        withdrawal_escrow=treasury_record["withdrawal_escrow"],
        validator_rewards=dict(treasury_record["validator_rewards"]),
        pending_withdrawals=pending,
    )

    rate_record = records["exchange_rate"]
    exchange_rate_state = ExchangeRateState(
        rate=rate_record["rate"],
        total_base=rate_record["total_base"],
        total_claims=rate_record["total_claims"],
        last_update_epoch=rate_record["last_update_epoch"],
    )

    rewards_record = records["reward_pool"]
    reward_pool_state = RewardPoolState(
        total_rewards_credited=dict(rewards_record["total_rewards_credited"]),
        validator_claimed=dict(rewards_record["validator_claimed"]),
        cumulative_claimed=dict(rewards_record["cumulative_claimed"]),
        position_claimed=dict(rewards_record["position_claimed"]),
    )

    protocol = StakingProtocol.bootstrap(
        settings,
        clock,
        governance=GovernanceStore(settings, clock, config),
        registry_state=registry_state,
        treasury_state=treasury_state,
        exchange_rate_state=exchange_rate_state,
        reward_pool_state=reward_pool_state,
    )
    protocol.check_invariants()
    logger.info(
        "Ledger state restored: %s positions, pool balance %s",
        len(positions), treasury_state.pool_balance,
    )
    return protocol


# =============================================================================
# FILES
# =============================================================================


def save_state(protocol: StakingProtocol, path: str | Path) -> Path:
    path = Path(path)
    records = export_state(protocol)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, indent=2, sort_keys=True)
    logger.info("Ledger state saved to %s", path)
    return path


def load_state(path: str | Path, settings: LedgerSettings, clock: EpochClock) -> StakingProtocol:
    with open(Path(path), "r", encoding="utf-8") as f:
        records = json.load(f)
    return restore_state(records, settings, clock)
