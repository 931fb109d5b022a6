"""
Ledger Events: records emitted by committed operations

Events are appended only after the operation's transaction has committed,
so a rolled-back operation never leaves an event behind.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """Ledger event type"""

    STAKE_CREATED = "stake_created"
    WITHDRAWAL_INITIATED = "withdrawal_initiated"
    WITHDRAWAL_FINALIZED = "withdrawal_finalized"
    REWARDS_ADDED = "rewards_added"
    REWARDS_DISTRIBUTED = "rewards_distributed"
    REWARDS_CLAIMED = "rewards_claimed"
    EMERGENCY_DRAINED = "emergency_drained"
    PROTOCOL_FEES_WITHDRAWN = "protocol_fees_withdrawn"
    CONFIG_UPDATED = "config_updated"


@dataclass(frozen=True)
class LedgerEvent:
    """Committed ledger event."""

    sequence: int
    event_type: EventType
    epoch: int
    attributes: dict[str, Any] = field(default_factory=dict)


class EventLog:
    """Append-only, sequence-numbered event log."""

    def __init__(self):
        self._events: list[LedgerEvent] = []
        self._lock = threading.Lock()

    def emit(self, event_type: EventType, epoch: int, **attributes: Any) -> LedgerEvent:
        with self._lock:
            event = LedgerEvent(
                sequence=len(self._events),
                event_type=event_type,
                epoch=epoch,
                attributes=dict(attributes),
            )
            self._events.append(event)
            return event

    def events(self, event_type: EventType | None = None) -> list[LedgerEvent]:
        with self._lock:
            if event_type is None:
                return list(self._events)
            return [e for e in self._events if e.event_type == event_type]

    def __len__(self) -> int:
        return len(self._events)
