"""
LedgerSettings: tunable constants and bootstrap parameters

A single immutable settings object is built once at process start and
passed to StakingProtocol.bootstrap. Defaults reproduce the protocol
constants:

- SYSTEM_CAPACITY: 1e18 base units (1e9 tokens at 1e9 precision)
- MIN_UPDATE_DELAY: 1 epoch (24h-equivalent)
- MAX_FEE_CHANGE: 1000 bps (10%) absolute per update
- MAX_STAKE_CHANGE: 5000 bps (50%) relative per update
- Exchange rate band: [0.1x, 10x] of PRECISION
"""

import json
from pathlib import Path
from typing import Final

from pydantic import BaseModel, Field, model_validator

from stakeledger.core.math.checked_math import BPS_DENOMINATOR, MAX_U64, PRECISION

# =============================================================================
# DEFAULTS
# =============================================================================

SYSTEM_CAPACITY_DEFAULT: Final[int] = 10**18
MIN_UPDATE_DELAY_EPOCHS_DEFAULT: Final[int] = 1
MAX_FEE_CHANGE_BPS_DEFAULT: Final[int] = 1_000
MAX_STAKE_CHANGE_BPS_DEFAULT: Final[int] = 5_000
MIN_RATE_DEFAULT: Final[int] = PRECISION // 10
MAX_RATE_DEFAULT: Final[int] = PRECISION * 10

MIN_STAKE_DEFAULT: Final[int] = 1_000_000_000  # 1 token
MAX_STAKE_DEFAULT: Final[int] = 1_000_000_000_000_000  # 1M tokens
PROTOCOL_FEE_BPS_DEFAULT: Final[int] = 500
WITHDRAWAL_DELAY_EPOCHS_DEFAULT: Final[int] = 2


class LedgerSettings(BaseModel):
    """
    Ledger constants and bootstrap values for ProtocolConfig.

    Immutable (frozen=True). Unknown keys are rejected.
    """

    # Limits
    system_capacity: int = Field(
        SYSTEM_CAPACITY_DEFAULT, gt=0, le=MAX_U64, description="Global stake ceiling"
    )
    min_update_delay_epochs: int = Field(
        MIN_UPDATE_DELAY_EPOCHS_DEFAULT,
        ge=0,
        description="Epochs between two updates of a rate-limited parameter",
    )
    max_fee_change_bps: int = Field(
        MAX_FEE_CHANGE_BPS_DEFAULT,
        ge=0,
        le=BPS_DENOMINATOR,
        description="Max absolute protocol fee change per update (bps)",
    )
    max_stake_change_bps: int = Field(
        MAX_STAKE_CHANGE_BPS_DEFAULT,
        ge=0,
        le=BPS_DENOMINATOR,
        description="Max relative max_stake change per update (bps of current)",
    )

    # Exchange rate circuit breaker
    min_rate: int = Field(MIN_RATE_DEFAULT, gt=0, description="Lowest allowed rate")
    max_rate: int = Field(MAX_RATE_DEFAULT, gt=0, le=MAX_U64, description="Highest allowed rate")

    # Bootstrap ProtocolConfig
    min_stake: int = Field(MIN_STAKE_DEFAULT, gt=0, le=MAX_U64)
    max_stake: int = Field(MAX_STAKE_DEFAULT, gt=0, le=MAX_U64)
    protocol_fee_bps: int = Field(PROTOCOL_FEE_BPS_DEFAULT, ge=0, le=BPS_DENOMINATOR)
    withdrawal_delay_epochs: int = Field(WITHDRAWAL_DELAY_EPOCHS_DEFAULT, ge=0)

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def validate_consistency(self) -> "LedgerSettings":
        if self.min_stake > self.max_stake:
            raise ValueError(
                f"min_stake {self.min_stake} exceeds max_stake {self.max_stake}"
            )
        if not (self.min_rate <= PRECISION <= self.max_rate):
            raise ValueError(
                f"rate band [{self.min_rate}, {self.max_rate}] must contain PRECISION {PRECISION}"
            )
        return self


def load_settings(path: str | Path) -> LedgerSettings:
    """
    Load LedgerSettings from a JSON file.

    Missing keys fall back to defaults.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If values are invalid or keys are unknown
    """
    settings_path = Path(path)
    with open(settings_path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return LedgerSettings.model_validate(raw)
