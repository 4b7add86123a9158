#!/usr/bin/env python3
"""
Merger Configurator

Builds a complete MergerConfiguration for one DAO pair from price histories,
treasury snapshots and the lending vault state: merger type, swap sizing,
collateral plan, vault analysis, curve parameters, price impact, risks,
feasibility, capital efficiency and timeline.
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import pandas as pd

from ..analysis.feasibility import FeasibilityResult, FeasibilityScorer
from ..analysis.price_impact import PriceImpactReport, merger_price_impact
from ..analysis.risk_assessor import RiskAssessor, RiskEntry, RiskSignals
from ..config import MergerEngineConfig, MergerType, create_default_config
from ..core.collateral import (
    BorrowingCost, CollateralPlanner, CollateralRequirement, LiquidationRisk,
    UtilizationImpact, VaultCapacityRisk,
)
from ..core.data import MergerInputs, PriceSeries, TreasurySnapshot, VaultState, normalize_inputs
from ..core.euler_math import ONE_E18, AmmParameters, CurveParameterDeriver, ValidationReport
from ..core.risk_classifier import VolatilityCategory, VolatilityResult, categorize_volatility
from ..core.statistics import StatisticsEngine


logger = logging.getLogger(__name__)

_SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2}


@dataclass(frozen=True)
class PairProfile:
    """What merger classification looks at"""
    size_ratio: float
    correlation: float
    volatility_a: float
    volatility_b: float


# First matching predicate wins
MERGER_TYPE_RULES: Tuple[Tuple[Callable[[PairProfile], bool], MergerType], ...] = (
    (lambda p: p.size_ratio > 3 or p.size_ratio < 0.33, MergerType.ACQUISITION),
    (lambda p: abs(p.correlation) > 0.7, MergerType.STRATEGIC_ALIGNMENT),
    (lambda p: abs(p.volatility_a - p.volatility_b) < 0.1, MergerType.EQUAL_MERGER),
    (lambda p: True, MergerType.DIVERSIFICATION),
)


def classify_merger(profile: PairProfile) -> MergerType:
    for predicate, merger_type in MERGER_TYPE_RULES:
        if predicate(profile):
            return merger_type
    return MergerType.DIVERSIFICATION


def size_ratio(total_value_a: float, total_value_b: float) -> float:
    if total_value_b > 0:
        return total_value_a / total_value_b
    return math.inf if total_value_a > 0 else 1.0


@dataclass(frozen=True)
class SwapSizing:
    token_a_amount: float
    token_b_amount: float
    percentage_a: float
    percentage_b: float
    total_value_usd: float
    value_a_usd: float = 0.0
    value_b_usd: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "tokenAAmount": self.token_a_amount,
            "tokenBAmount": self.token_b_amount,
            "percentageA": self.percentage_a,
            "percentageB": self.percentage_b,
            "totalValueUSD": self.total_value_usd,
        }


@dataclass(frozen=True)
class MergerMetrics:
    market_cap_ratio: float
    required_mint: float
    dilution_percentage: float
    total_value_usd: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "marketCapRatio": self.market_cap_ratio,
            "requiredMint": self.required_mint,
            "dilutionPercentage": self.dilution_percentage,
            "totalValueUSD": self.total_value_usd,
        }


@dataclass(frozen=True)
class CapitalEfficiency:
    leverage_multiple: float
    total_collateral: float
    total_borrowed: float
    capital_saved: float

    @property
    def efficiency_ratio(self) -> float:
        if self.total_collateral <= 0:
            return 0.0
        return self.total_borrowed / self.total_collateral

    def to_dict(self) -> Dict[str, float]:
        return {
            "leverageMultiple": self.leverage_multiple,
            "totalCollateral": self.total_collateral,
            "totalBorrowed": self.total_borrowed,
            "capitalSaved": self.capital_saved,
            "efficiencyRatio": self.efficiency_ratio,
        }


@dataclass(frozen=True)
class Timeline:
    preparation_hours: float
    execution_hours: float
    settlement_hours: float
    multiplier: float = 1.0

    @property
    def total_hours(self) -> float:
        return self.preparation_hours + self.execution_hours + self.settlement_hours

    @property
    def estimated_days(self) -> int:
        return math.ceil(self.total_hours / 24)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preparation": self.preparation_hours,
            "execution": self.execution_hours,
            "settlement": self.settlement_hours,
            "total": self.total_hours,
            "multiplier": self.multiplier,
            "estimatedDays": self.estimated_days,
            "unit": "hours",
        }


@dataclass(frozen=True)
class MergerConfiguration:
    """Everything derived for one DAO pair; built once, never mutated"""
    dao_a: str
    dao_b: str
    merger_type: str
    volatility_a: VolatilityResult
    volatility_b: VolatilityResult
    correlation: float
    swap_sizing: SwapSizing
    collateral: Dict[str, CollateralRequirement]
    utilization: UtilizationImpact
    capacity: VaultCapacityRisk
    liquidation: LiquidationRisk
    borrowing_cost: BorrowingCost
    amm_parameters: AmmParameters
    validation: ValidationReport
    price_impact: PriceImpactReport
    risks: Tuple[RiskEntry, ...]
    feasibility: FeasibilityResult
    capital_efficiency: CapitalEfficiency
    timeline: Timeline
    merger_metrics: MergerMetrics
    interest_rate_model: Dict[str, Any] = field(default_factory=dict)
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Nested camelCase rendering with stable field paths"""
        def volatility(result: VolatilityResult) -> Dict[str, Any]:
            return {
                "volatility": result.value,
                "category": result.category,
                "riskScore": result.risk_score,
                "swapSizeRecommendation": result.swap_size_recommendation,
            }

        def collateral(req: CollateralRequirement) -> Dict[str, float]:
            return {
                "usdcRequired": req.usdc_required,
                "availableUsdc": req.available_usdc,
                "borrowingCapacity": req.borrowing_capacity,
                "shortfall": req.shortfall,
            }

        return {
            "daoA": self.dao_a,
            "daoB": self.dao_b,
            "mergerType": self.merger_type,
            "feasibility": self.feasibility.to_dict(),
            "volatilityAnalysis": {
                "daoA": volatility(self.volatility_a),
                "daoB": volatility(self.volatility_b),
                "correlation": self.correlation,
            },
            "swapConfiguration": {
                "sizes": self.swap_sizing.to_dict(),
                "ammParameters": self.amm_parameters.to_dict(),
                "validation": self.validation.to_dict(),
                "priceImpact": self.price_impact.to_dict(),
            },
            "collateralRequirements": {
                "daoA": collateral(self.collateral["dao_a"]),
                "daoB": collateral(self.collateral["dao_b"]),
            },
            "vaultAnalysis": {
                "utilizationImpact": {
                    "currentUtilization": self.utilization.current_utilization,
                    "newUtilization": self.utilization.new_utilization,
                    "requiredLiquidity": self.utilization.required_liquidity,
                    "severity": self.utilization.severity,
                    "withinBorrowCap": self.utilization.within_borrow_cap,
                },
                "capacityRisk": {
                    "volumeRatio": self.capacity.volume_ratio,
                    "executionDays": self.capacity.execution_days,
                    "severity": self.capacity.severity,
                    "recommendedMaxDailySwap": self.capacity.recommended_max_daily_swap,
                },
                "liquidationRisk": {
                    "currentLTV": self.liquidation.current_ltv,
                    "safetyBuffer": self.liquidation.safety_buffer,
                    "liquidationPriceMove": self.liquidation.liquidation_price_move,
                    "severity": self.liquidation.severity,
                    "recommendedMaxLTV": self.liquidation.recommended_max_ltv,
                },
                "borrowingCost": {
                    "baseAPY": self.borrowing_cost.base_apy,
                    "utilizationMultiplier": self.borrowing_cost.utilization_multiplier,
                    "estimatedAPY": self.borrowing_cost.estimated_apy,
                    "severity": self.borrowing_cost.severity,
                },
                "interestRateModel": dict(self.interest_rate_model),
            },
            "capitalEfficiency": self.capital_efficiency.to_dict(),
            "timeline": self.timeline.to_dict(),
            "risks": [risk.to_dict() for risk in self.risks],
            "mergerMetrics": self.merger_metrics.to_dict(),
            "notes": list(self.notes),
        }

    def risk_table(self) -> pd.DataFrame:
        return pd.DataFrame(
            [risk.to_dict() for risk in self.risks],
            columns=["type", "severity", "description", "mitigation"],
        )


class MergerConfigurator:
    """Runs the full merger analysis for one DAO pair"""

    def __init__(self, config: Optional[MergerEngineConfig] = None):
        self.config = config or create_default_config()
        self.collateral_planner = CollateralPlanner(
            self.config.ltv.to_profile(), self.config.risk_thresholds.vault_limits()
        )
        self.curve_deriver = CurveParameterDeriver(
            reserve_multiplier=self.config.swap_policy.reserve_multiplier,
            fee=self.config.swap_policy.fee,
        )
        self.risk_assessor = RiskAssessor(self.config.risk_thresholds)
        self.feasibility_scorer = FeasibilityScorer(
            self.config.feasibility_weights, self.config.viability_threshold
        )

    def configure(self, series_a: Optional[PriceSeries], series_b: Optional[PriceSeries],
                  treasury_a: Optional[TreasurySnapshot], treasury_b: Optional[TreasurySnapshot],
                  vault: Optional[VaultState]) -> MergerConfiguration:
        """
        Build the merger configuration

        Raises:
            MissingDataError: if any input is absent
        """
        inputs = normalize_inputs(series_a, series_b, treasury_a, treasury_b, vault)
        return self.configure_inputs(inputs)

    def configure_inputs(self, inputs: MergerInputs) -> MergerConfiguration:
        treasury_a, treasury_b, vault = inputs.treasury_a, inputs.treasury_b, inputs.vault
        price_a, price_b = treasury_a.native_token_price, treasury_b.native_token_price

        vol_a = categorize_volatility(StatisticsEngine.volatility(inputs.series_a))
        vol_b = categorize_volatility(StatisticsEngine.volatility(inputs.series_b))
        correlation = StatisticsEngine.correlation(inputs.series_a, inputs.series_b)

        merger_type = classify_merger(PairProfile(
            size_ratio=size_ratio(treasury_a.total_value_usd, treasury_b.total_value_usd),
            correlation=correlation,
            volatility_a=vol_a.value,
            volatility_b=vol_b.value,
        ))
        logger.debug("Merger %s/%s classified as %s", treasury_a.dao_symbol, treasury_b.dao_symbol,
                     merger_type.value)

        sizing = self.swap_sizing(merger_type, vol_a, vol_b, treasury_a, treasury_b)
        metrics = self.merger_metrics(sizing, treasury_a, treasury_b)

        collateral = self.collateral_planner.plan(
            borrow_value_a_usd=sizing.value_a_usd,
            borrow_value_b_usd=sizing.value_b_usd,
            stablecoins_a=treasury_a.stablecoin_balance,
            stablecoins_b=treasury_b.stablecoin_balance,
        )
        utilization = self.collateral_planner.utilization_impact(
            total_assets=vault.total_assets,
            current_borrows=vault.total_borrows,
            required_liquidity=sizing.total_value_usd,
            current_utilization=vault.utilization,
            borrow_cap_remaining=vault.borrow_cap_remaining,
        )
        expected_daily_volume = (
            vault.cash * self.config.swap_policy.expected_volume_fraction / price_b if price_b > 0 else 0.0
        )
        capacity = self.collateral_planner.vault_capacity_risk(sizing.token_b_amount, expected_daily_volume)
        borrowing_cost = self.collateral_planner.borrowing_cost(vault.borrow_apr, utilization.new_utilization)

        timeline = self.timeline(sizing.total_value_usd, vol_a, vol_b)
        liquidation = self.liquidation_risk(collateral, sizing, max(vol_a.value, vol_b.value))

        amm = self.curve_deriver.derive(
            price_a=price_a,
            price_b=price_b,
            correlation=correlation,
            volatility_a=vol_a.value,
            volatility_b=vol_b.value,
            swap_amount_a=sizing.token_a_amount,
            swap_amount_b=sizing.token_b_amount,
            decimals_a=treasury_a.decimals,
            decimals_b=treasury_b.decimals,
            concentration_cap_a=vol_a.concentration_hint,
            concentration_cap_b=vol_b.concentration_hint,
        )
        validation = self.curve_deriver.validate(amm)
        if not validation.valid:
            logger.warning("Derived curve parameters failed validation: %s", validation.errors)

        price_impact = merger_price_impact(
            int(sizing.token_a_amount * ONE_E18), amm, self.config.swap_policy.number_of_batches
        )

        risks = self.risk_assessor.assess(RiskSignals(
            volatility_a=vol_a.value,
            volatility_b=vol_b.value,
            correlation=correlation,
            collateral=collateral,
            utilization=utilization,
            capacity=capacity,
            liquidation=liquidation,
            borrowing_cost=borrowing_cost,
            concentration_x=amm.concentration_x,
            concentration_y=amm.concentration_y,
            total_value_usd=sizing.total_value_usd,
            price_impact_pct=price_impact.total_price_impact,
            validation=validation,
            dilution_pct=metrics.dilution_percentage,
        ))

        feasibility = self.feasibility_scorer.score(
            collateral=collateral,
            volatility_a=vol_a.value,
            volatility_b=vol_b.value,
            correlation=correlation,
            new_utilization=utilization.new_utilization,
            stablecoin_ratio_a=treasury_a.stablecoin_ratio,
            stablecoin_ratio_b=treasury_b.stablecoin_ratio,
            risks=risks,
        )

        logger.info(
            "Merger %s/%s: type=%s score=%.3f viable=%s risks=%d",
            treasury_a.dao_symbol, treasury_b.dao_symbol, merger_type.value,
            feasibility.score, feasibility.viable, len(risks),
        )

        return MergerConfiguration(
            dao_a=treasury_a.dao_symbol,
            dao_b=treasury_b.dao_symbol,
            merger_type=merger_type.value,
            volatility_a=vol_a,
            volatility_b=vol_b,
            correlation=correlation,
            swap_sizing=sizing,
            collateral=collateral,
            utilization=utilization,
            capacity=capacity,
            liquidation=liquidation,
            borrowing_cost=borrowing_cost,
            amm_parameters=amm,
            validation=validation,
            price_impact=price_impact,
            risks=tuple(risks),
            feasibility=feasibility,
            capital_efficiency=self.capital_efficiency(collateral, sizing, vault.utilization),
            timeline=timeline,
            merger_metrics=metrics,
            interest_rate_model=self.collateral_planner.interest_rate_model(),
            notes=inputs.notes,
        )

    def swap_sizing(self, merger_type: MergerType, vol_a: VolatilityResult, vol_b: VolatilityResult,
                    treasury_a: TreasurySnapshot, treasury_b: TreasurySnapshot) -> SwapSizing:
        """Same percentage of each native balance, reduced when either side needs small swaps"""
        policy = self.config.swap_policy
        percentage = policy.base_percentages[merger_type]
        if vol_a.recommends_small_swaps or vol_b.recommends_small_swaps:
            percentage *= policy.small_swap_penalty

        amount_a = treasury_a.native_token_balance * percentage / 100
        amount_b = treasury_b.native_token_balance * percentage / 100
        value_a = amount_a * treasury_a.native_token_price
        value_b = amount_b * treasury_b.native_token_price

        return SwapSizing(
            token_a_amount=amount_a,
            token_b_amount=amount_b,
            percentage_a=percentage,
            percentage_b=percentage,
            total_value_usd=value_a + value_b,
            value_a_usd=value_a,
            value_b_usd=value_b,
        )

    @staticmethod
    def merger_metrics(sizing: SwapSizing, treasury_a: TreasurySnapshot,
                       treasury_b: TreasurySnapshot) -> MergerMetrics:
        price_b = treasury_b.native_token_price
        required_mint = sizing.value_a_usd / price_b if price_b > 0 else 0.0

        supply_b = treasury_b.native_token_balance
        dilution = required_mint / (supply_b + required_mint) * 100 if supply_b + required_mint > 0 else 0.0

        native_b = treasury_b.native_value_usd
        market_cap_ratio = treasury_a.native_value_usd / native_b if native_b > 0 else 0.0

        return MergerMetrics(
            market_cap_ratio=market_cap_ratio,
            required_mint=required_mint,
            dilution_percentage=dilution,
            total_value_usd=sizing.total_value_usd,
        )

    def timeline(self, total_value_usd: float, vol_a: VolatilityResult, vol_b: VolatilityResult) -> Timeline:
        cfg = self.config.timeline
        multiplier = 1.0
        if total_value_usd > cfg.large_swap_threshold_usd:
            multiplier *= cfg.large_swap_multiplier
        if VolatilityCategory.HIGH.value in (vol_a.category, vol_b.category):
            multiplier *= cfg.high_volatility_multiplier

        return Timeline(
            preparation_hours=cfg.preparation_hours * multiplier,
            execution_hours=cfg.execution_hours * multiplier,
            settlement_hours=cfg.settlement_hours * multiplier,
            multiplier=multiplier,
        )

    def liquidation_risk(self, collateral: Dict[str, CollateralRequirement], sizing: SwapSizing,
                         volatility: float) -> LiquidationRisk:
        """
        Worst liquidation exposure across both borrow positions

        Each DAO posts what it can of its required USDC against the opposite
        side's borrow. The larger annual volatility is compared with the
        price move that would liquidate each position.
        """
        positions = (
            (collateral["dao_a"], sizing.value_b_usd),
            (collateral["dao_b"], sizing.value_a_usd),
        )

        worst = None
        for requirement, debt in positions:
            posted = min(requirement.available_usdc, requirement.usdc_required)
            risk = self.collateral_planner.liquidation_risk(volatility, posted, debt)
            if worst is None or (_SEVERITY_RANK[risk.severity], risk.current_ltv) > \
                    (_SEVERITY_RANK[worst.severity], worst.current_ltv):
                worst = risk
        return worst

    def capital_efficiency(self, collateral: Dict[str, CollateralRequirement], sizing: SwapSizing,
                           current_utilization: float) -> CapitalEfficiency:
        """
        Collateral posted and tokens borrowed

        Pre-funding would lock the full borrowed value; JIT borrowing needs
        ``1 / leverage`` of it as working capital.
        """
        policy = self.config.swap_policy
        if current_utilization < policy.leverage_utilization_cutoff:
            leverage = policy.high_leverage_multiple
        else:
            leverage = policy.low_leverage_multiple

        total_collateral = sum(req.usdc_required for req in collateral.values())
        total_borrowed = sizing.value_a_usd + sizing.value_b_usd

        return CapitalEfficiency(
            leverage_multiple=leverage,
            total_collateral=total_collateral,
            total_borrowed=total_borrowed,
            capital_saved=total_borrowed - total_borrowed / leverage,
        )
