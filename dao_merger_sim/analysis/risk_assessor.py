#!/usr/bin/env python3
"""
Merger Risk Assessment

Turns the collateral, vault, curve and market signals of a merger into a flat
list of risk entries. Every signal is checked on its own and adds at most one
entry; entries are never merged or suppressed by one another.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from ..core.collateral import (
    BorrowingCost, CollateralRequirement, LiquidationRisk, UtilizationImpact, VaultCapacityRisk
)
from ..core.euler_math import ONE_E18, ValidationReport
from ..config import RiskThresholds


logger = logging.getLogger(__name__)

SEVERITIES = ("low", "medium", "high")


@dataclass(frozen=True)
class RiskEntry:
    type: str
    severity: str
    description: str
    mitigation: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
            "mitigation": self.mitigation,
        }


@dataclass(frozen=True)
class RiskSignals:
    """Everything the assessor looks at for one merger"""
    volatility_a: float
    volatility_b: float
    correlation: float
    collateral: Mapping[str, CollateralRequirement]
    utilization: UtilizationImpact
    capacity: VaultCapacityRisk
    liquidation: Optional[LiquidationRisk] = None
    borrowing_cost: Optional[BorrowingCost] = None
    concentration_x: int = 0
    concentration_y: int = 0
    total_value_usd: float = 0.0
    price_impact_pct: Optional[float] = None
    validation: Optional[ValidationReport] = None
    dilution_pct: float = 0.0


def count_by_severity(risks: List[RiskEntry]) -> Dict[str, int]:
    counts = {severity: 0 for severity in SEVERITIES}
    for risk in risks:
        counts[risk.severity] = counts.get(risk.severity, 0) + 1
    return counts


class RiskAssessor:
    """Collects risk entries from independent merger signals"""

    def __init__(self, thresholds: Optional[RiskThresholds] = None):
        self.thresholds = thresholds or RiskThresholds()

    def assess(self, signals: RiskSignals) -> List[RiskEntry]:
        risks: List[RiskEntry] = []
        checks = (
            self._volatility_risk,
            self._correlation_risk,
            self._collateral_risk,
            self._liquidity_risk,
            self._liquidation_risk,
            self._capacity_risk,
            self._borrowing_cost_risk,
            self._slippage_risk,
            self._price_impact_risk,
            self._dilution_risk,
            self._parameter_bounds_risk,
        )
        for check in checks:
            entry = check(signals)
            if entry is not None:
                risks.append(entry)

        logger.debug("Risk assessment: %s", count_by_severity(risks))
        return risks

    def _volatility_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        worst = max(s.volatility_a, s.volatility_b)
        if worst <= self.thresholds.high_volatility:
            return None
        return RiskEntry(
            type="volatility",
            severity="high",
            description=f"High volatility detected ({worst * 100:.1f}% annualized)",
            mitigation="Use smaller swap sizes and lower curve concentration",
        )

    def _correlation_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        if abs(s.correlation) >= self.thresholds.low_correlation:
            return None
        return RiskEntry(
            type="correlation",
            severity="medium",
            description=f"Low price correlation ({s.correlation:.2f}) between tokens",
            mitigation="Widen the curve and monitor the exchange rate during execution",
        )

    def _collateral_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        short = {side: req for side, req in s.collateral.items() if req.available_usdc < req.usdc_required}
        if not short:
            return None
        total_shortfall = sum(req.shortfall for req in short.values())
        sides = ", ".join(sorted(short))
        return RiskEntry(
            type="collateral",
            severity="high",
            description=f"Insufficient USDC collateral ({sides}): shortfall ${total_shortfall:,.0f}",
            mitigation="Acquire additional stablecoins or reduce swap size",
        )

    def _liquidity_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        if s.utilization.severity != "high":
            return None
        return RiskEntry(
            type="liquidity",
            severity="medium",
            description=f"Vault utilization would reach {s.utilization.new_utilization * 100:.1f}%",
            mitigation="Stage borrows over time or add vault liquidity first",
        )

    def _liquidation_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        liq = s.liquidation
        if liq is None or liq.severity not in ("medium", "high"):
            return None
        return RiskEntry(
            type="liquidation",
            severity=liq.severity,
            description=f"Borrow position at {liq.current_ltv * 100:.1f}% LTV "
                        f"liquidates on a {liq.liquidation_price_move * 100:.1f}% price move",
            mitigation=f"Keep LTV below {liq.recommended_max_ltv * 100:.1f}%",
        )

    def _capacity_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        cap = s.capacity
        if cap.severity not in ("medium", "high"):
            return None
        days = "never completes" if cap.execution_days is None else f"needs {cap.execution_days} days"
        return RiskEntry(
            type="capacity",
            severity=cap.severity,
            description=f"Vault capacity covers {cap.volume_ratio * 100:.1f}% of the mint per day; execution {days}",
            mitigation=f"Cap daily swaps at {cap.recommended_max_daily_swap:,.0f} tokens",
        )

    def _borrowing_cost_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        cost = s.borrowing_cost
        if cost is None or cost.severity not in ("medium", "high"):
            return None
        return RiskEntry(
            type="borrowing_cost",
            severity=cost.severity,
            description=f"Estimated borrow APY of {cost.estimated_apy:.1f}%",
            mitigation="Shorten the borrow window or negotiate a dedicated vault",
        )

    def _slippage_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        avg_concentration = (s.concentration_x + s.concentration_y) / 2
        size_factor = min(max(0.0, s.total_value_usd) / self.thresholds.slippage_reference_usd, 1.0)
        expected = (1 - avg_concentration / ONE_E18) * size_factor * 100

        if expected > self.thresholds.slippage_high_pct:
            severity = "high"
        elif expected > self.thresholds.slippage_medium_pct:
            severity = "medium"
        else:
            return None
        return RiskEntry(
            type="slippage",
            severity=severity,
            description=f"Expected slippage of {expected:.2f}%",
            mitigation="Increase concentration or split the swap into more batches",
        )

    def _price_impact_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        if s.price_impact_pct is None:
            return None
        impact = s.price_impact_pct
        if impact > self.thresholds.price_impact_high_pct:
            return RiskEntry(
                type="price_impact",
                severity="high",
                description=f"Price impact of {impact:.1f}% is very high",
                mitigation="Increase number of batches or reduce concentration parameters",
            )
        if impact > self.thresholds.price_impact_medium_pct:
            return RiskEntry(
                type="price_impact",
                severity="medium",
                description=f"Price impact of {impact:.1f}% may affect execution",
                mitigation="Execute swaps gradually over multiple days",
            )
        return None

    def _dilution_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        if s.dilution_pct > self.thresholds.dilution_high_pct:
            return RiskEntry(
                type="dilution",
                severity="high",
                description=f"Extreme dilution of {s.dilution_pct:.1f}% may face governance resistance",
                mitigation="Consider phased approach or reduced merger scope",
            )
        if s.dilution_pct > self.thresholds.dilution_medium_pct:
            return RiskEntry(
                type="dilution",
                severity="medium",
                description=f"Significant dilution of {s.dilution_pct:.1f}%",
                mitigation="Clear communication of merger benefits required",
            )
        return None

    def _parameter_bounds_risk(self, s: RiskSignals) -> Optional[RiskEntry]:
        if s.validation is None or s.validation.valid:
            return None
        return RiskEntry(
            type="parameter_bounds",
            severity="high",
            description="Curve parameters out of bounds: " + "; ".join(s.validation.errors),
            mitigation="Re-derive pool parameters before deployment",
        )
