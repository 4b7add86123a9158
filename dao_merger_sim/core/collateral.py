#!/usr/bin/env python3
"""
Collateral Planning

Stablecoin (USDC) collateral sizing for cross-collateralised JIT borrowing,
vault utilisation impact, vault capacity, liquidation and borrowing-cost
analysis. Pure functions over plain numbers; every division is guarded.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class LTVProfile:
    """Loan-to-value limits for USDC collateral"""
    borrow_ltv: float = 0.90
    liquidation_ltv: float = 0.93
    recommended: float = 0.85


@dataclass(frozen=True)
class VaultRiskLimits:
    """Severity cut-offs for vault utilisation and capacity"""
    high_utilization: float = 0.9
    medium_utilization: float = 0.7
    low_capacity_risk_ratio: float = 0.1
    medium_capacity_risk_ratio: float = 0.02
    max_daily_swap_fraction: float = 0.05


@dataclass(frozen=True)
class CollateralRequirement:
    """USDC one DAO must post so the opposite side's tokens can be borrowed"""
    usdc_required: float
    available_usdc: float
    borrowing_capacity: float

    @property
    def shortfall(self) -> float:
        return max(0.0, self.usdc_required - self.available_usdc)

    @property
    def coverage_ratio(self) -> float:
        """available / required, 1.0 when nothing is required"""
        if self.usdc_required <= 0:
            return 1.0
        return self.available_usdc / self.usdc_required


@dataclass(frozen=True)
class UtilizationImpact:
    current_utilization: float
    new_utilization: float
    required_liquidity: float
    severity: str
    within_borrow_cap: bool


@dataclass(frozen=True)
class VaultCapacityRisk:
    volume_ratio: float
    execution_days: Optional[int]
    severity: str
    recommended_max_daily_swap: float


@dataclass(frozen=True)
class LiquidationRisk:
    current_ltv: float
    safety_buffer: float
    liquidation_price_move: float
    severity: str
    recommended_max_ltv: float


@dataclass(frozen=True)
class BorrowingCost:
    base_apy: float
    utilization_multiplier: float
    estimated_apy: float
    severity: str


class CollateralPlanner:
    """Collateral and vault-capacity calculations for a two-sided merger"""

    def __init__(self, ltv: Optional[LTVProfile] = None, limits: Optional[VaultRiskLimits] = None):
        self.ltv = ltv or LTVProfile()
        self.limits = limits or VaultRiskLimits()

    def collateral_requirement(self, opposite_borrow_value_usd: float,
                               available_stablecoins: float) -> CollateralRequirement:
        """
        Size one side's collateral

        Args:
            opposite_borrow_value_usd: USD value of tokens borrowed on the opposite side
            available_stablecoins: stablecoins this DAO holds

        Returns:
            CollateralRequirement with ``usdc_required = borrow value / recommended LTV``
        """
        ltv = self.ltv.recommended
        borrow_value = max(0.0, opposite_borrow_value_usd)
        available = max(0.0, available_stablecoins)
        return CollateralRequirement(
            usdc_required=borrow_value / ltv if ltv > 0 else float("inf"),
            available_usdc=available,
            borrowing_capacity=available * ltv,
        )

    def plan(self, borrow_value_a_usd: float, borrow_value_b_usd: float,
             stablecoins_a: float, stablecoins_b: float) -> Dict[str, CollateralRequirement]:
        """Both sides: DAO A collateralises B's borrow and vice versa"""
        return {
            "dao_a": self.collateral_requirement(borrow_value_b_usd, stablecoins_a),
            "dao_b": self.collateral_requirement(borrow_value_a_usd, stablecoins_b),
        }

    def utilization_severity(self, utilization: float) -> str:
        if utilization > self.limits.high_utilization:
            return "high"
        if utilization > self.limits.medium_utilization:
            return "medium"
        return "low"

    def utilization_impact(self, total_assets: float, current_borrows: float,
                           required_liquidity: float, current_utilization: float = 0.0,
                           borrow_cap_remaining: Optional[float] = None) -> UtilizationImpact:
        """Projected vault utilisation once the merger borrows are drawn"""
        if total_assets <= 0:
            new_utilization = 0.0
        else:
            new_utilization = (current_borrows + required_liquidity) / total_assets

        within_cap = True
        if borrow_cap_remaining is not None and borrow_cap_remaining > 0:
            within_cap = required_liquidity <= borrow_cap_remaining

        return UtilizationImpact(
            current_utilization=current_utilization,
            new_utilization=new_utilization,
            required_liquidity=required_liquidity,
            severity=self.utilization_severity(new_utilization),
            within_borrow_cap=within_cap,
        )

    def vault_capacity_risk(self, required_mint: float, expected_daily_volume: float) -> VaultCapacityRisk:
        """
        How many days of vault volume the merger needs

        ``volume_ratio = expected_daily_volume / required_mint``. With no volume
        the merger cannot complete: severity is high and ``execution_days`` is
        None. Nothing to mint is trivially low risk.
        """
        if required_mint <= 0:
            return VaultCapacityRisk(volume_ratio=float("inf"), execution_days=0,
                                     severity="low", recommended_max_daily_swap=0.0)

        daily_volume = max(0.0, expected_daily_volume)
        volume_ratio = daily_volume / required_mint
        execution_days = math.ceil(1 / volume_ratio) if volume_ratio > 0 else None

        if volume_ratio > self.limits.low_capacity_risk_ratio:
            severity = "low"
        elif volume_ratio > self.limits.medium_capacity_risk_ratio:
            severity = "medium"
        else:
            severity = "high"

        return VaultCapacityRisk(
            volume_ratio=volume_ratio,
            execution_days=execution_days,
            severity=severity,
            recommended_max_daily_swap=min(daily_volume, required_mint * self.limits.max_daily_swap_fraction),
        )

    def liquidation_risk(self, volatility: float, collateral_value: float, debt_value: float) -> LiquidationRisk:
        """
        Compare volatility with the price move that would trigger liquidation

        The move is the safety buffer (liquidation LTV minus current LTV)
        relative to current LTV. Volatility above the move is high risk, above
        half of it medium.
        """
        liquidation_ltv = self.ltv.liquidation_ltv
        recommended_max = liquidation_ltv * 0.85

        if debt_value <= 0:
            return LiquidationRisk(0.0, liquidation_ltv, float("inf"), "low", recommended_max)
        if collateral_value <= 0:
            return LiquidationRisk(float("inf"), float("-inf"), float("-inf"), "high", recommended_max)

        current_ltv = debt_value / collateral_value
        safety_buffer = liquidation_ltv - current_ltv
        price_move = safety_buffer / current_ltv

        if volatility > price_move:
            severity = "high"
        elif volatility > price_move * 0.5:
            severity = "medium"
        else:
            severity = "low"

        return LiquidationRisk(current_ltv, safety_buffer, price_move, severity, recommended_max)

    @staticmethod
    def borrowing_cost(base_apy: float, utilization: float) -> BorrowingCost:
        """Borrow APY (percent) stepped up as utilisation rises past 60% and 80%"""
        if utilization > 0.8:
            multiplier = 2.0
        elif utilization > 0.6:
            multiplier = 1.5
        else:
            multiplier = 1.0

        estimated = max(0.0, base_apy) * multiplier
        if estimated > 15:
            severity = "high"
        elif estimated > 10:
            severity = "medium"
        else:
            severity = "low"

        return BorrowingCost(base_apy, multiplier, estimated, severity)

    @staticmethod
    def interest_rate_model(kink: float = 0.8) -> Dict[str, object]:
        """Linear-kink IRM recommended for the borrowed-token vaults"""
        return {
            "type": "Dynamic Utilization Model",
            "model": "LinearKink IRM",
            "base_rate": 0.0,
            "slope1_apy": 0.05,
            "slope2_apy": 1.0,
            "kink": kink,
            "description": f"0-5% APY below {kink:.0%} utilization, steep above",
        }
