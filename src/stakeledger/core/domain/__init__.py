"""
Domain models and value objects.

Contains the ledger's entities: ProtocolConfig, ValidatorConfig,
StakePosition, PendingWithdrawal, caller roles and ledger events.
"""

from stakeledger.core.domain.access import CallerContext, Role, require_role
from stakeledger.core.domain.config import ProtocolConfig, ValidatorConfig
from stakeledger.core.domain.events import EventLog, EventType, LedgerEvent
from stakeledger.core.domain.position import PendingWithdrawal, StakePosition

__all__ = [
    # Access
    "CallerContext",
    "Role",
    "require_role",
    # Config
    "ProtocolConfig",
    "ValidatorConfig",
    # Events
    "EventLog",
    "EventType",
    "LedgerEvent",
    # Positions
    "PendingWithdrawal",
    "StakePosition",
]
