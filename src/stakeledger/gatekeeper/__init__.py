"""Gatekeeper: admission gates for new stake.

- Fixed gate order, first block wins
- Block reasons map onto ledger errors
"""

from .gates.gate_00_protocol_status import Gate00ProtocolStatus, Gate00Result
from .stake_gatekeeper import GateResult, StakeGatekeeper, raise_for_block

__all__ = [
    "Gate00ProtocolStatus",
    "Gate00Result",
    "GateResult",
    "StakeGatekeeper",
    "raise_for_block",
]
