"""Epoch clocks.

The epoch is the ledger's discrete time unit: rate limits and withdrawal
unlocks are expressed in epochs. The execution environment supplies the
clock; ManualEpochClock is used for deterministic replays and tests.
"""

import threading
import time
from typing import Protocol


class EpochClock(Protocol):
    def current_epoch(self) -> int:
        ...


class ManualEpochClock:
    """Clock advanced explicitly by the caller."""

    def __init__(self, start_epoch: int = 0):
        if start_epoch < 0:
            raise ValueError(f"start_epoch must be non-negative, got {start_epoch}")
        self._epoch = start_epoch
        self._lock = threading.Lock()

    def current_epoch(self) -> int:
        return self._epoch

    def advance(self, epochs: int = 1) -> int:
        if epochs < 0:
            raise ValueError(f"epochs must be non-negative, got {epochs}")
        with self._lock:
            self._epoch += epochs
            return self._epoch


class WallClockEpochClock:
    """Epochs of fixed wall-clock length counted from a genesis timestamp."""

    def __init__(self, genesis_ts_sec: float, epoch_duration_sec: float = 86_400.0):
        if epoch_duration_sec <= 0:
            raise ValueError(f"epoch_duration_sec must be positive, got {epoch_duration_sec}")
        self.genesis_ts_sec = genesis_ts_sec
        self.epoch_duration_sec = epoch_duration_sec

    def current_epoch(self) -> int:
        elapsed = time.time() - self.genesis_ts_sec
        if elapsed <= 0:
            return 0
        return int(elapsed // self.epoch_duration_sec)
