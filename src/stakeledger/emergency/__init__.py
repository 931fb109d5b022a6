"""Emergency: pause and emergency mode management.

- Derived protocol mode (ACTIVE/PAUSED/EMERGENCY/DRAINED)
- Pause/emergency toggle transitions
"""

from .state_machine import (
    ModeRequest,
    ModeTransitionResult,
    ProtocolMode,
    ProtocolModeMachine,
    derive_mode,
)

__all__ = [
    "ModeRequest",
    "ModeTransitionResult",
    "ProtocolMode",
    "ProtocolModeMachine",
    "derive_mode",
]
