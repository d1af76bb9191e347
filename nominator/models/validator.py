"""
Validator data models for the nomination client.

Records are rebuilt from a fresh chain snapshot every round and are never
shared between rounds.
"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Commission is stored on chain as a Perbill
COMMISSION_RATE_DECIMAL = 1_000_000_000


class ValidatorIdentity(BaseModel):
    """On-chain identity registration of a validator stash."""

    has_identity: bool = Field(False, description="Whether an identity is registered")
    display: Optional[str] = Field(None, description="Identity display name")


class ValidatorAccount(BaseModel):
    """Staking accounts and preferences of one validator."""

    account_id: str = Field(..., description="Validator account (the stash)")
    stash_id: str = Field(..., description="Stash account")
    controller_id: str = Field(..., description="Controller account")
    commission_rate: float = Field(..., ge=0.0, le=1.0, description="Commission in [0, 1]")
    blocked: bool = Field(False, description="Whether new nominations are blocked")


class Exposure(BaseModel):
    """Stake backing a validator in one era (base token units)."""

    total: int = Field(0, ge=0)
    own: int = Field(0, ge=0)

    @property
    def nomination(self) -> int:
        """Nominated stake only, clamped to zero."""
        return max(self.total - self.own, 0)


class EraPoints(BaseModel):
    """Reward points of one era."""

    era: int = Field(..., ge=0)
    total: int = Field(0, ge=0, description="Points earned by the whole validator set")
    individual: Dict[str, int] = Field(default_factory=dict)


class ValidatorRecord(BaseModel):
    """Everything the score engine needs to know about one validator."""

    account_id: str = Field(..., description="Validator account identifier")
    stash_id: str = Field(..., description="Stash account")
    controller_id: str = Field(..., description="Controller account")
    commission_rate: float = Field(..., description="Commission in [0, 1]")
    blocked: bool = Field(False)
    identity: ValidatorIdentity = Field(default_factory=ValidatorIdentity)
    stake_exposure: int = Field(0, ge=0, description="Nominated stake in base units")
    avg_era_points: float = Field(0.0, ge=0.0)
    avg_era_points_of_all: float = Field(0.0, ge=0.0)
    was_slashed: bool = Field(False)
    score: Optional[int] = Field(None, description="Computed score, absent until scored")

    @field_validator("commission_rate")
    @classmethod
    def _commission_in_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"commission_rate must be within [0, 1], got {value}")
        return value


class ScoringCoefficients(BaseModel):
    """Per-round scoring weights. Never mutated by the engine."""

    model_config = ConfigDict(frozen=True)

    commission_weight: float = Field(..., description="crf")
    nomination_weight: float = Field(..., description="nf")
    era_points_weight: float = Field(..., description="epf")


class ScoringPolicy(BaseModel):
    """Domain policy applied around the scoring formula."""

    model_config = ConfigDict(frozen=True)

    max_commission_rate: Optional[float] = Field(
        0.075, description="Commission cap; None disables it"
    )
    token_decimals: int = Field(12, ge=0, description="Relay chain token decimals")

    @property
    def token_unit(self) -> int:
        return 10 ** self.token_decimals


class SelectionPolicy(BaseModel):
    """Ranking and cap configuration for the selector."""

    model_config = ConfigDict(frozen=True)

    max_validators: int = Field(16, gt=0)
    tie_break_by_stake: bool = Field(
        True, description="Prefer lower-staked validators among equal scores"
    )


class NominationEntry(BaseModel):
    """One ranked entry of the nomination list."""

    model_config = ConfigDict(frozen=True)

    display_name: Optional[str] = None
    account_id: str
    stake_amount: int = Field(0, ge=0)
    score: int = 0
