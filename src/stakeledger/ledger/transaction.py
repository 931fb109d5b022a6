"""Ledger transactions: ordered locking and all-or-nothing commit.

Every externally visible operation runs inside a LedgerTransaction over the
ledgers it touches:

1. Locks are acquired in the fixed global order
   Config → Registry → Treasury → ExchangeRate → RewardPool
   (LedgerComponent.lock_order), so multi-ledger operations cannot deadlock.
2. The state of every participant is snapshotted.
3. If any exception escapes the body, every snapshot is restored before the
   exception propagates: no partial commit is ever observable.
"""

import copy
import logging
import threading
from contextlib import ExitStack
from typing import Any

from stakeledger.core.errors import ErrorKind, LedgerError

logger = logging.getLogger(__name__)

# Global lock order
LOCK_ORDER_CONFIG = 0
LOCK_ORDER_REGISTRY = 1
LOCK_ORDER_TREASURY = 2
LOCK_ORDER_EXCHANGE_RATE = 3
LOCK_ORDER_REWARD_POOL = 4


class LedgerComponent:
    """Singleton ledger object owning its state and its lock.

    Subclasses keep all mutable state in self._state so it can be
    snapshotted and restored as a unit.
    """

    lock_order: int = 0
    name: str = "ledger"

    def __init__(self, state: Any):
        self._state = state
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def snapshot(self) -> Any:
        return copy.deepcopy(self._state)

    def restore(self, snapshot: Any) -> None:
        self._state = snapshot


class LedgerTransaction:
    """Context manager applying an operation atomically to several ledgers."""

    def __init__(self, operation: str, *components: LedgerComponent):
        self.operation = operation
        # Deduplicate, then sort by global lock order
        unique = {id(c): c for c in components}
        self.components = sorted(unique.values(), key=lambda c: c.lock_order)
        self._stack: ExitStack | None = None
        self._snapshots: list[tuple[LedgerComponent, Any]] = []

    def __enter__(self) -> "LedgerTransaction":
        stack = ExitStack()
        try:
            for component in self.components:
                stack.enter_context(component.lock)
            self._snapshots = [(c, c.snapshot()) for c in self.components]
        except BaseException:
            stack.close()
            raise
        self._stack = stack
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is not None:
                for component, snapshot in reversed(self._snapshots):
                    component.restore(snapshot)
                self._log_rollback(exc)
        finally:
            self._snapshots = []
            if self._stack is not None:
                self._stack.close()
                self._stack = None
        return False

    def _log_rollback(self, exc: BaseException) -> None:
        if isinstance(exc, LedgerError) and exc.kind != ErrorKind.CONSISTENCY:
            logger.warning("%s rejected: %s", self.operation, exc)
        else:
            logger.error("%s aborted and rolled back: %s", self.operation, exc)
