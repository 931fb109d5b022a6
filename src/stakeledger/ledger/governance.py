"""Governance Store: protocol configuration and rate-limited admin mutation.

Holds the single ProtocolConfig. All public mutations require Role.GOVERNOR
and, except the pause/emergency toggles, are rejected while emergency mode is
active.

Parameter updates are checked in this order:
1. authorization
2. emergency mode
3. value range (InvalidParameterError)
4. magnitude of the change (ChangeTooLargeError)
5. time since the previous update of the same parameter (RateLimitedError)

Rate and magnitude limits keep a single admin action from instantly
repricing the whole system.
"""

import logging
from dataclasses import dataclass

from stakeledger.core.domain.access import CallerContext, Role, require_role
from stakeledger.core.domain.config import ProtocolConfig, ValidatorConfig
from stakeledger.core.errors import (
    ChangeTooLargeError,
    EmergencyModeActiveError,
    InvalidParameterError,
    ProtocolPausedError,
    RateLimitedError,
    SystemCapacityExceededError,
    ValidatorNotFoundError,
)
from stakeledger.core.math.checked_math import (
    BPS_DENOMINATOR,
    MAX_U64,
    abs_diff,
    add,
    checked_u64,
    sub,
)
from stakeledger.core.math.fees import validate_bps
from stakeledger.core.settings import LedgerSettings
from stakeledger.emergency.state_machine import (
    ModeRequest,
    ModeTransitionResult,
    ProtocolModeMachine,
)
from stakeledger.ledger.clock import EpochClock
from stakeledger.ledger.transaction import LOCK_ORDER_CONFIG, LedgerComponent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterChange:
    """Accepted governance change."""

    parameter: str
    old_value: object
    new_value: object
    epoch: int


class GovernanceStore(LedgerComponent):
    """Process-wide protocol configuration."""

    lock_order = LOCK_ORDER_CONFIG
    name = "config"

    def __init__(
        self,
        settings: LedgerSettings,
        clock: EpochClock,
        config: ProtocolConfig | None = None,
    ):
        if config is None:
            config = ProtocolConfig(
                min_stake=settings.min_stake,
                max_stake=settings.max_stake,
                protocol_fee_bps=settings.protocol_fee_bps,
                withdrawal_delay_epochs=settings.withdrawal_delay_epochs,
            )
        super().__init__(config)
        self.settings = settings
        self.clock = clock
        self.mode_machine = ProtocolModeMachine()

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def config(self) -> ProtocolConfig:
        return self._state

    def get_validator_config(self, validator_id: str) -> ValidatorConfig:
        """
        Raises:
            ValidatorNotFoundError: If the validator was never registered
        """
        validator = self._state.validators.get(validator_id)
        if validator is None:
            raise ValidatorNotFoundError(f"unknown validator {validator_id!r}")
        return validator

    def is_validator_active(self, validator_id: str) -> bool:
        validator = self._state.validators.get(validator_id)
        return validator is not None and validator.is_active

    def is_validator_active_at(self, validator_id: str, epoch: int) -> bool:
        """Activity at an epoch, honouring the deactivation grace period."""
        validator = self._state.validators.get(validator_id)
        return validator is not None and validator.is_active_at(epoch)

    def ensure_operational(self) -> None:
        """
        Raises:
            EmergencyModeActiveError: If emergency mode is active
            ProtocolPausedError: If the protocol is paused
        """
        if self._state.emergency_mode:
            raise EmergencyModeActiveError("operation rejected: emergency mode is active")
        if self._state.paused:
            raise ProtocolPausedError("operation rejected: protocol is paused")

    # =========================================================================
    # PAUSE / EMERGENCY
    # =========================================================================

    def set_pause_status(
        self,
        caller: CallerContext,
        paused: bool,
        emergency_processed: bool = False,
    ) -> ModeTransitionResult:
        require_role(caller, Role.GOVERNOR)
        request = ModeRequest.PAUSE if paused else ModeRequest.UNPAUSE
        return self._apply_mode_request(request, emergency_processed)

    def set_emergency_mode(
        self,
        caller: CallerContext,
        enabled: bool,
        emergency_processed: bool = False,
    ) -> ModeTransitionResult:
        """
        Entering emergency forces paused=True. Exiting clears the flag but
        leaves the protocol paused.
        """
        require_role(caller, Role.GOVERNOR)
        request = ModeRequest.ENTER_EMERGENCY if enabled else ModeRequest.EXIT_EMERGENCY
        return self._apply_mode_request(request, emergency_processed)

    def _apply_mode_request(
        self, request: ModeRequest, emergency_processed: bool
    ) -> ModeTransitionResult:
        with self._lock:
            result = self.mode_machine.evaluate_transition(
                paused=self._state.paused,
                emergency_mode=self._state.emergency_mode,
                emergency_processed=emergency_processed,
                request=request,
            )
            self._state = self._state.replace(
                paused=result.paused, emergency_mode=result.emergency_mode
            )
        logger.info(
            "Protocol mode %s → %s (%s)",
            result.previous_mode.value,
            result.new_mode.value,
            result.transition_reason,
        )
        return result

    # =========================================================================
    # PARAMETER UPDATES
    # =========================================================================

    def update_min_stake(self, caller: CallerContext, new_min_stake: int) -> ParameterChange:
        """0 < new_min_stake <= max_stake."""
        self._require_governor_outside_emergency(caller)
        with self._lock:
            config = self._state
            if (
                not _is_int(new_min_stake)
                or new_min_stake <= 0
                or new_min_stake > config.max_stake
            ):
                raise InvalidParameterError(
                    f"min_stake must be in (0, {config.max_stake}], got {new_min_stake!r}"
                )
            change = ParameterChange(
                "min_stake", config.min_stake, new_min_stake, self.clock.current_epoch()
            )
            self._state = config.replace(min_stake=new_min_stake)
        logger.info("min_stake updated %s → %s", change.old_value, change.new_value)
        return change

    def update_protocol_fee(self, caller: CallerContext, new_fee_bps: int) -> ParameterChange:
        """
        new_fee_bps <= 10000, |new - current| <= max_fee_change_bps, at most
        once per min_update_delay_epochs.
        """
        self._require_governor_outside_emergency(caller)
        with self._lock:
            config = self._state
            validate_bps(new_fee_bps, "protocol_fee_bps")

            if abs_diff(new_fee_bps, config.protocol_fee_bps) > self.settings.max_fee_change_bps:
                raise ChangeTooLargeError(
                    f"protocol fee change {config.protocol_fee_bps} → {new_fee_bps} exceeds "
                    f"{self.settings.max_fee_change_bps} bps"
                )

            now = self.clock.current_epoch()
            self._check_rate_limit("protocol_fee_bps", config.last_fee_update_epoch, now)

            change = ParameterChange("protocol_fee_bps", config.protocol_fee_bps, new_fee_bps, now)
            self._state = config.replace(
                protocol_fee_bps=new_fee_bps, last_fee_update_epoch=now
            )
        logger.info("protocol_fee_bps updated %s → %s", change.old_value, change.new_value)
        return change

    def update_max_stake(self, caller: CallerContext, new_max_stake: int) -> ParameterChange:
        """
        new_max_stake >= min_stake, |new - current| / current <= max_stake_change_bps,
        at most once per min_update_delay_epochs.
        """
        self._require_governor_outside_emergency(caller)
        with self._lock:
            config = self._state
            if (
                not _is_int(new_max_stake)
                or new_max_stake < config.min_stake
                or new_max_stake > MAX_U64
            ):
                raise InvalidParameterError(
                    f"max_stake must be in [{config.min_stake}, {MAX_U64}], got {new_max_stake!r}"
                )

            # Exact wide comparison: diff / current <= limit_bps / 10000
            diff = abs_diff(new_max_stake, config.max_stake)
            if diff * BPS_DENOMINATOR > self.settings.max_stake_change_bps * config.max_stake:
                raise ChangeTooLargeError(
                    f"max_stake change {config.max_stake} → {new_max_stake} exceeds "
                    f"{self.settings.max_stake_change_bps} bps of current"
                )

            now = self.clock.current_epoch()
            self._check_rate_limit("max_stake", config.last_max_stake_update_epoch, now)

            change = ParameterChange("max_stake", config.max_stake, new_max_stake, now)
            self._state = config.replace(
                max_stake=new_max_stake, last_max_stake_update_epoch=now
            )
        logger.info("max_stake updated %s → %s", change.old_value, change.new_value)
        return change

    def add_or_update_validator(
        self,
        caller: CallerContext,
        validator_id: str,
        is_active: bool,
        max_stake: int,
        commission_bps: int,
    ) -> ParameterChange:
        """
        Register or update a validator.

        Deactivating an active validator starts a grace period ending at
        now + withdrawal_delay_epochs; reactivating clears it.
        """
        self._require_governor_outside_emergency(caller)
        if not isinstance(validator_id, str) or not validator_id:
            raise InvalidParameterError(f"validator_id must be a non-empty string, got {validator_id!r}")
        validate_bps(commission_bps, "commission_bps")
        if not _is_int(max_stake) or max_stake < 0 or max_stake > MAX_U64:
            raise InvalidParameterError(f"validator max_stake out of range: {max_stake!r}")

        with self._lock:
            config = self._state
            now = self.clock.current_epoch()
            previous = config.validators.get(validator_id)

            if is_active:
                deactivation_epoch = None
            elif previous is not None and previous.is_active:
                deactivation_epoch = add(now, config.withdrawal_delay_epochs)
            elif previous is not None:
                deactivation_epoch = previous.deactivation_epoch
            else:
                deactivation_epoch = None

            validator = ValidatorConfig(
                is_active=bool(is_active),
                max_stake=max_stake,
                commission_bps=commission_bps,
                deactivation_epoch=deactivation_epoch,
            )
            self._state = config.with_validator(validator_id, validator)

        logger.info(
            "Validator %s %s: active=%s max_stake=%s commission_bps=%s",
            validator_id,
            "updated" if previous is not None else "registered",
            validator.is_active,
            validator.max_stake,
            validator.commission_bps,
        )
        return ParameterChange(f"validator:{validator_id}", previous, validator, now)

    # =========================================================================
    # INTERNAL: TOTAL STAKED (Treasury only)
    # =========================================================================

    def increase_total_staked(self, amount: int) -> int:
        """
        Central pause/emergency/capacity gate for new principal.

        Raises:
            EmergencyModeActiveError, ProtocolPausedError,
            SystemCapacityExceededError
        """
        checked_u64(amount, "amount")
        with self._lock:
            self.ensure_operational()
            config = self._state
            new_total = add(config.total_staked, amount)
            if new_total > self.settings.system_capacity:
                raise SystemCapacityExceededError(
                    f"total staked {new_total} would exceed system capacity "
                    f"{self.settings.system_capacity}"
                )
            self._state = config.replace(total_staked=new_total)
            return new_total

    def decrease_total_staked(self, amount: int) -> int:
        checked_u64(amount, "amount")
        with self._lock:
            config = self._state
            new_total = sub(config.total_staked, amount)
            self._state = config.replace(total_staked=new_total)
            return new_total

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_governor_outside_emergency(self, caller: CallerContext) -> None:
        require_role(caller, Role.GOVERNOR)
        if self._state.emergency_mode:
            raise EmergencyModeActiveError("governance updates are rejected in emergency mode")

    def _check_rate_limit(self, parameter: str, last_update_epoch: int | None, now: int) -> None:
        if last_update_epoch is None:
            return
        elapsed = now - last_update_epoch
        if elapsed < self.settings.min_update_delay_epochs:
            raise RateLimitedError(
                f"{parameter} updated at epoch {last_update_epoch}, next update allowed at "
                f"epoch {last_update_epoch + self.settings.min_update_delay_epochs}"
            )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
