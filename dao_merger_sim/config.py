#!/usr/bin/env python3
"""
Configuration schemas for the DAO merger engine.

Pydantic models for every threshold, weight and policy the engine reads, so a
bad override fails at construction rather than deep inside a calculation.
"""

from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field, field_validator, model_validator

from .core.collateral import LTVProfile, VaultRiskLimits
from .core.euler_math import DEFAULT_FEE, MAX_FEE


class MergerType(str, Enum):
    """Merger classifications, in the order they are tested"""
    ACQUISITION = "acquisition"
    STRATEGIC_ALIGNMENT = "strategic_alignment"
    EQUAL_MERGER = "equal_merger"
    DIVERSIFICATION = "diversification"


class LTVConfig(BaseModel):
    """USDC collateral loan-to-value limits"""
    borrow_ltv: float = Field(default=0.90, gt=0, le=1, description="Maximum borrow LTV")
    liquidation_ltv: float = Field(default=0.93, gt=0, le=1, description="Liquidation LTV")
    recommended_ltv: float = Field(default=0.85, gt=0, le=1, description="Target LTV used for sizing")

    @model_validator(mode="after")
    def validate_ordering(self):
        """recommended <= borrow <= liquidation"""
        if not self.recommended_ltv <= self.borrow_ltv <= self.liquidation_ltv:
            raise ValueError("LTVs must satisfy recommended <= borrow <= liquidation")
        return self

    def to_profile(self) -> LTVProfile:
        return LTVProfile(
            borrow_ltv=self.borrow_ltv,
            liquidation_ltv=self.liquidation_ltv,
            recommended=self.recommended_ltv,
        )


class RiskThresholds(BaseModel):
    """Trigger levels for risk entries"""
    high_volatility: float = Field(default=0.5, ge=0, description="Annualised volatility flagged as high")
    low_correlation: float = Field(default=0.3, ge=0, le=1, description="|r| below this is weak correlation")
    slippage_high_pct: float = Field(default=2.0, ge=0)
    slippage_medium_pct: float = Field(default=1.0, ge=0)
    price_impact_high_pct: float = Field(default=10.0, ge=0)
    price_impact_medium_pct: float = Field(default=5.0, ge=0)
    dilution_high_pct: float = Field(default=50.0, ge=0, le=100)
    dilution_medium_pct: float = Field(default=30.0, ge=0, le=100)
    slippage_reference_usd: float = Field(default=10_000_000, gt=0, description="Swap value at full slippage weight")
    high_utilization: float = Field(default=0.9, ge=0, description="Post-merger vault utilisation flagged as high")
    medium_utilization: float = Field(default=0.7, ge=0)
    low_capacity_risk_ratio: float = Field(default=0.1, ge=0, description="Daily volume / mint above this is low risk")
    medium_capacity_risk_ratio: float = Field(default=0.02, ge=0)
    max_daily_swap_fraction: float = Field(default=0.05, gt=0, le=1, description="Share of the mint swapped per day")

    @model_validator(mode="after")
    def validate_tiers(self):
        if self.slippage_medium_pct > self.slippage_high_pct:
            raise ValueError("slippage_medium_pct cannot exceed slippage_high_pct")
        if self.price_impact_medium_pct > self.price_impact_high_pct:
            raise ValueError("price_impact_medium_pct cannot exceed price_impact_high_pct")
        if self.dilution_medium_pct > self.dilution_high_pct:
            raise ValueError("dilution_medium_pct cannot exceed dilution_high_pct")
        if self.medium_utilization > self.high_utilization:
            raise ValueError("medium_utilization cannot exceed high_utilization")
        if self.medium_capacity_risk_ratio > self.low_capacity_risk_ratio:
            raise ValueError("medium_capacity_risk_ratio cannot exceed low_capacity_risk_ratio")
        return self

    def vault_limits(self) -> VaultRiskLimits:
        return VaultRiskLimits(
            high_utilization=self.high_utilization,
            medium_utilization=self.medium_utilization,
            low_capacity_risk_ratio=self.low_capacity_risk_ratio,
            medium_capacity_risk_ratio=self.medium_capacity_risk_ratio,
            max_daily_swap_fraction=self.max_daily_swap_fraction,
        )


class FeasibilityWeights(BaseModel):
    """Weights of the feasibility factors; must sum to 1"""
    collateral_adequacy: float = Field(default=0.35, ge=0, le=1)
    volatility_compatibility: float = Field(default=0.20, ge=0, le=1)
    correlation_factor: float = Field(default=0.15, ge=0, le=1)
    vault_capacity: float = Field(default=0.20, ge=0, le=1)
    treasury_alignment: float = Field(default=0.10, ge=0, le=1)

    @model_validator(mode="after")
    def validate_sum(self):
        total = sum(self.as_dict().values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Feasibility weights must sum to 1, got {total:.4f}")
        return self

    def as_dict(self) -> Dict[str, float]:
        return {
            "collateral_adequacy": self.collateral_adequacy,
            "volatility_compatibility": self.volatility_compatibility,
            "correlation_factor": self.correlation_factor,
            "vault_capacity": self.vault_capacity,
            "treasury_alignment": self.treasury_alignment,
        }


class SwapPolicy(BaseModel):
    """Swap sizing and pool construction policy"""
    base_percentages: Dict[MergerType, float] = Field(
        default_factory=lambda: {
            MergerType.ACQUISITION: 25.0,
            MergerType.STRATEGIC_ALIGNMENT: 40.0,
            MergerType.EQUAL_MERGER: 35.0,
            MergerType.DIVERSIFICATION: 30.0,
        },
        description="Share of each native balance swapped, in percent"
    )
    small_swap_penalty: float = Field(default=0.7, gt=0, le=1, description="Scale applied when a side needs small swaps")
    reserve_multiplier: float = Field(default=2.5, gt=0)
    fee: int = Field(default=DEFAULT_FEE, ge=0, le=MAX_FEE, description="Pool fee on a 1e18 scale")
    number_of_batches: int = Field(default=10, gt=0)
    expected_volume_fraction: float = Field(default=0.1, gt=0, le=1, description="Share of vault cash tradable per day")
    high_leverage_multiple: float = Field(default=10.0, gt=0)
    low_leverage_multiple: float = Field(default=5.0, gt=0)
    leverage_utilization_cutoff: float = Field(default=0.8, ge=0, le=1)

    @field_validator("base_percentages")
    @classmethod
    def validate_percentages(cls, v):
        missing = set(MergerType) - set(v)
        if missing:
            raise ValueError(f"Missing base percentage for: {sorted(m.value for m in missing)}")
        for merger_type, pct in v.items():
            if not 0 < pct <= 100:
                raise ValueError(f"Base percentage for {merger_type.value} must be in (0, 100]")
        return v


class TimelineConfig(BaseModel):
    """Phase durations in hours and their multipliers"""
    preparation_hours: float = Field(default=24, gt=0)
    execution_hours: float = Field(default=48, gt=0)
    settlement_hours: float = Field(default=12, gt=0)
    large_swap_threshold_usd: float = Field(default=100_000_000, gt=0)
    large_swap_multiplier: float = Field(default=1.5, ge=1)
    high_volatility_multiplier: float = Field(default=1.5, ge=1)


class MergerEngineConfig(BaseModel):
    """Complete merger engine configuration"""
    version: str = Field(default="1.0.0", description="Configuration version")
    ltv: LTVConfig = Field(default_factory=LTVConfig)
    risk_thresholds: RiskThresholds = Field(default_factory=RiskThresholds)
    feasibility_weights: FeasibilityWeights = Field(default_factory=FeasibilityWeights)
    swap_policy: SwapPolicy = Field(default_factory=SwapPolicy)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    viability_threshold: float = Field(default=0.6, ge=0, le=1)


def create_default_config() -> MergerEngineConfig:
    """Create the default engine configuration"""
    return MergerEngineConfig()
