"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DAY = 86400
WEEK = 7 * DAY


class VeDetails(BaseModel):
    """Descriptive metadata of the escrow token."""
    name: str = Field(default="Vote Escrow", description="Escrow token name")
    symbol: str = Field(default="veToken", description="Escrow token symbol")
    version: str = Field(default="1", description="Escrow version string")

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v):
        """YAML reads an unquoted 1 as an int."""
        if v is None:
            return v
        return str(v)


class ClockSettings(BaseModel):
    """Lock horizon and rounding granularity."""
    max_time: int = Field(default=2 * 365 * DAY, gt=0, description="Maximum lock duration in seconds")
    clock_unit: int = Field(default=WEEK, gt=0, description="Expiry rounding granularity in seconds")

    @model_validator(mode='after')
    def validate_unit(self):
        """The clock unit cannot exceed the lock horizon."""
        if self.clock_unit > self.max_time:
            raise ValueError(
                f"clock_unit ({self.clock_unit}s) must not exceed max_time ({self.max_time}s)"
            )
        return self

    @property
    def max_walk_steps(self) -> int:
        """Iteration cap for a catch-up walk: ceil(max_time / clock_unit)."""
        return -(-self.max_time // self.clock_unit)


class MergeSettings(BaseModel):
    """Merge behaviour when source and destination permanence differ."""
    permanence_policy: Literal["strict", "destination"] = Field(
        default="strict",
        description="strict rejects a mismatch, destination adopts the destination's permanence"
    )


class WeightLensSettings(BaseModel):
    """Tiered multipliers by remaining lock duration."""
    duration_days_thresholds: List[int] = Field(
        default_factory=lambda: [365, 180, 90, 45],
        description="Remaining-duration thresholds in days, strictly descending"
    )
    multipliers: List[int] = Field(
        default_factory=lambda: [2000, 1500, 1250, 1000],
        description="Multiplier per threshold, scaled by multiplier_precision"
    )
    multiplier_precision: int = Field(default=1000, gt=0, description="Multiplier scale (1000 = 1x)")

    @model_validator(mode='after')
    def validate_tiers(self):
        """Thresholds and multipliers pair up and thresholds descend."""
        if len(self.duration_days_thresholds) != len(self.multipliers):
            raise ValueError(
                f"weight lens needs one multiplier per threshold, got "
                f"{len(self.duration_days_thresholds)} thresholds and {len(self.multipliers)} multipliers"
            )
        thresholds = self.duration_days_thresholds
        if any(later >= earlier for earlier, later in zip(thresholds, thresholds[1:])):
            raise ValueError(f"duration_days_thresholds must be strictly descending, got {thresholds}")
        if any(m < 0 for m in self.multipliers):
            raise ValueError("multipliers must be non-negative")
        return self


class EscrowConfig(BaseModel):
    """Complete configuration for the escrow ledger."""
    ve_details: VeDetails = Field(default_factory=VeDetails)
    clock: ClockSettings = Field(default_factory=ClockSettings)
    merge: MergeSettings = Field(default_factory=MergeSettings)
    weight_lens: WeightLensSettings = Field(default_factory=WeightLensSettings)

    @property
    def max_time(self) -> int:
        return self.clock.max_time

    @property
    def clock_unit(self) -> int:
        return self.clock.clock_unit

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EscrowConfig':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
