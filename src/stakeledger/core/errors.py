"""
Ledger Errors: single exception hierarchy

Every rejection raised by the ledger is a LedgerError subclass tagged with an
ErrorKind and a stable string code. The kind tells the caller how to react:

- VALIDATION: fix the input and retry
- AUTHORIZATION: the caller lacks the required role
- CAPACITY: retry with a smaller amount or another validator
- RATE_LIMIT: wait for the window to elapse or submit a smaller delta
- CONSISTENCY: arithmetic or invariant failure, indicates a bug
- STATE: the ledger is not in a state that allows the operation

CRITICAL INVARIANT: a raised LedgerError never leaves a partially applied
mutation behind (see stakeledger.ledger.transaction).
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error category"""

    VALIDATION = "VALIDATION"
    AUTHORIZATION = "AUTHORIZATION"
    CAPACITY = "CAPACITY"
    RATE_LIMIT = "RATE_LIMIT"
    CONSISTENCY = "CONSISTENCY"
    STATE = "STATE"


class LedgerError(Exception):
    """Base class for every error raised by the ledger."""

    kind: ErrorKind = ErrorKind.STATE
    code: str = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# =============================================================================
# VALIDATION
# =============================================================================


class InvalidParameterError(LedgerError):
    kind = ErrorKind.VALIDATION
    code = "invalid_parameter"


class InvalidAmountError(LedgerError):
    kind = ErrorKind.VALIDATION
    code = "invalid_amount"


class BelowMinimumError(LedgerError):
    kind = ErrorKind.VALIDATION
    code = "below_minimum"


class AboveMaximumError(LedgerError):
    kind = ErrorKind.VALIDATION
    code = "above_maximum"


# =============================================================================
# AUTHORIZATION
# =============================================================================


class UnauthorizedError(LedgerError):
    kind = ErrorKind.AUTHORIZATION
    code = "unauthorized"


# =============================================================================
# CAPACITY
# =============================================================================


class ValidatorCapacityExceededError(LedgerError):
    kind = ErrorKind.CAPACITY
    code = "validator_capacity_exceeded"


class SystemCapacityExceededError(LedgerError):
    kind = ErrorKind.CAPACITY
    code = "system_capacity_exceeded"


class InsufficientBalanceError(LedgerError):
    kind = ErrorKind.CAPACITY
    code = "insufficient_balance"


# =============================================================================
# RATE LIMIT / MAGNITUDE
# =============================================================================


class RateLimitedError(LedgerError):
    kind = ErrorKind.RATE_LIMIT
    code = "rate_limited"


class ChangeTooLargeError(LedgerError):
    kind = ErrorKind.RATE_LIMIT
    code = "change_too_large"


# =============================================================================
# CONSISTENCY / ARITHMETIC
# =============================================================================


class ArithmeticOverflowError(LedgerError):
    kind = ErrorKind.CONSISTENCY
    code = "arithmetic_overflow"


class ArithmeticUnderflowError(LedgerError):
    kind = ErrorKind.CONSISTENCY
    code = "arithmetic_underflow"


class DivisionByZeroError(LedgerError):
    kind = ErrorKind.CONSISTENCY
    code = "division_by_zero"


class ExchangeRateOutOfBoundsError(LedgerError):
    """
    Exchange rate left the [min_rate, max_rate] band.

    Circuit breaker: the whole operation is aborted and rolled back.
    """

    kind = ErrorKind.CONSISTENCY
    code = "exchange_rate_out_of_bounds"


class InvariantViolationError(LedgerError):
    kind = ErrorKind.CONSISTENCY
    code = "invariant_violation"


# =============================================================================
# STATE
# =============================================================================


class ValidatorInactiveError(LedgerError):
    kind = ErrorKind.STATE
    code = "validator_inactive"


class ValidatorNotFoundError(LedgerError):
    kind = ErrorKind.STATE
    code = "validator_not_found"


class PositionNotFoundError(LedgerError):
    kind = ErrorKind.STATE
    code = "position_not_found"


class PositionMismatchError(LedgerError):
    """The position exists but is not owned by the caller."""

    kind = ErrorKind.STATE
    code = "position_mismatch"


class ProtocolPausedError(LedgerError):
    kind = ErrorKind.STATE
    code = "protocol_paused"


class EmergencyModeActiveError(LedgerError):
    kind = ErrorKind.STATE
    code = "emergency_mode_active"


class AlreadyInEmergencyError(LedgerError):
    kind = ErrorKind.STATE
    code = "already_in_emergency"


class NotInEmergencyError(LedgerError):
    kind = ErrorKind.STATE
    code = "not_in_emergency"


class AlreadyProcessedError(LedgerError):
    kind = ErrorKind.STATE
    code = "already_processed"


class PoolDrainedError(LedgerError):
    kind = ErrorKind.STATE
    code = "pool_drained"


class NoRewardsError(LedgerError):
    kind = ErrorKind.STATE
    code = "no_rewards"


class WithdrawalLockedError(LedgerError):
    kind = ErrorKind.STATE
    code = "withdrawal_locked"


class NoPendingWithdrawalError(LedgerError):
    kind = ErrorKind.STATE
    code = "no_pending_withdrawal"
