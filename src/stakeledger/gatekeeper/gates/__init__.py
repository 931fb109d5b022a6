"""Gates: отдельные gates допуска нового stake.

- GATE 0: Protocol Status (pause / emergency / drained)
- GATE 1: Stake Bounds
- GATE 2: Validator Availability / Capacity
"""

from .gate_00_protocol_status import Gate00ProtocolStatus, Gate00Result
from .gate_01_stake_bounds import Gate01StakeBounds, Gate01Result
from .gate_02_validator_capacity import Gate02ValidatorCapacity, Gate02Result

__all__ = [
    "Gate00ProtocolStatus",
    "Gate00Result",
    "Gate01StakeBounds",
    "Gate01Result",
    "Gate02ValidatorCapacity",
    "Gate02Result",
]
