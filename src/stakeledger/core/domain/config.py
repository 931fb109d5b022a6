"""
ProtocolConfig: global protocol parameters and validator registry

Immutable Pydantic models. GovernanceStore never mutates a config in place:
every accepted change builds a new, fully re-validated instance through
ProtocolConfig.replace, so an invalid change can never be half-applied.
"""

from pydantic import BaseModel, Field, model_validator

from stakeledger.core.math.checked_math import BPS_DENOMINATOR, MAX_U64


# =============================================================================
# VALIDATOR CONFIG
# =============================================================================


class ValidatorConfig(BaseModel):
    """
    Per-validator parameters.

    deactivation_epoch is set when the validator is deactivated and marks the
    end of its grace period; it is cleared on reactivation.
    """

    is_active: bool = Field(..., description="Validator accepts new stake")
    max_stake: int = Field(..., ge=0, le=MAX_U64, description="Per-validator capacity")
    commission_bps: int = Field(
        ..., ge=0, le=BPS_DENOMINATOR, description="Validator commission (bps)"
    )
    deactivation_epoch: int | None = Field(
        None, ge=0, description="End of the deactivation grace period"
    )

    model_config = {"frozen": True}

    def is_active_at(self, epoch: int) -> bool:
        """
        Activity for lookups keyed on an epoch.

        A deactivated validator still counts as active until its grace period
        ends.
        """
        if self.is_active:
            return True
        return self.deactivation_epoch is not None and epoch < self.deactivation_epoch


# =============================================================================
# PROTOCOL CONFIG
# =============================================================================


class ProtocolConfig(BaseModel):
    """
    Process-wide protocol configuration.

    Mutated exclusively through GovernanceStore (and the internal total_staked
    hooks used by Treasury). Never deleted.
    """

    # Mode flags
    paused: bool = Field(False, description="Normal operations are halted")
    emergency_mode: bool = Field(False, description="Emergency mode is active")

    # Stake bounds
    min_stake: int = Field(..., gt=0, le=MAX_U64, description="Minimum single stake")
    max_stake: int = Field(..., gt=0, le=MAX_U64, description="Maximum single stake")

    # Fees and delays
    protocol_fee_bps: int = Field(..., ge=0, le=BPS_DENOMINATOR, description="Protocol fee (bps)")
    withdrawal_delay_epochs: int = Field(..., ge=0, description="Unlock delay for withdrawals")

    # Accounting
    total_staked: int = Field(0, ge=0, le=MAX_U64, description="Total principal staked")

    # Rate limiting
    last_fee_update_epoch: int | None = Field(None, ge=0)
    last_max_stake_update_epoch: int | None = Field(None, ge=0)

    # Validator registry
    validators: dict[str, ValidatorConfig] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_stake_bounds(self) -> "ProtocolConfig":
        if self.min_stake > self.max_stake:
            raise ValueError(
                f"min_stake {self.min_stake} exceeds max_stake {self.max_stake}"
            )
        return self

    def replace(self, **changes) -> "ProtocolConfig":
        """New validated config with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return ProtocolConfig.model_validate(data)

    def with_validator(self, validator_id: str, validator: ValidatorConfig) -> "ProtocolConfig":
        validators = dict(self.validators)
        validators[validator_id] = validator
        return self.replace(validators=validators)
