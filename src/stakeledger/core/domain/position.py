"""
StakePosition: a staker's open stake against one validator

Immutable Pydantic models. A position is created by a successful stake and
destroyed by withdrawal; withdrawal turns it into a PendingWithdrawal that
unlocks after the configured delay.
"""

from pydantic import BaseModel, Field


# =============================================================================
# POSITION MODEL
# =============================================================================


class StakePosition(BaseModel):
    """
    Open stake position.

    Exclusively owned by one staker. A staker may hold several positions at
    once; a new stake never overwrites an existing one.
    """

    position_id: str = Field(..., min_length=1, description="Unique position id")
    staker_id: str = Field(..., min_length=1, description="Owner")
    validator_id: str = Field(..., min_length=1, description="Validator the stake is assigned to")
    amount: int = Field(..., gt=0, description="Principal (base units)")
    opened_at_epoch: int = Field(..., ge=0, description="Epoch of the stake")

    model_config = {"frozen": True}


# =============================================================================
# PENDING WITHDRAWAL
# =============================================================================


class PendingWithdrawal(BaseModel):
    """
    Escrowed withdrawal waiting for its unlock epoch.
    """

    position_id: str = Field(..., min_length=1, description="Withdrawn position")
    amount: int = Field(..., gt=0, description="Escrowed principal (base units)")
    unlock_epoch: int = Field(..., ge=0, description="First epoch funds can be released")

    model_config = {"frozen": True}

    def is_unlocked(self, epoch: int) -> bool:
        return epoch >= self.unlock_epoch
