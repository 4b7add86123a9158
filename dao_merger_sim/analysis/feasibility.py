#!/usr/bin/env python3
"""
Merger Feasibility Scoring

Weighted score over collateral adequacy, volatility compatibility,
correlation, vault capacity and treasury alignment.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence

from ..config import FeasibilityWeights
from ..core.collateral import CollateralRequirement
from .risk_assessor import RiskEntry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeasibilityResult:
    score: float
    viable: bool
    recommendation: str
    factors: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "score": self.score,
            "viable": self.viable,
            "recommendation": self.recommendation,
            "factors": dict(self.factors),
        }


class FeasibilityScorer:
    """Scores a merger between 0 and 1"""

    def __init__(self, weights: Optional[FeasibilityWeights] = None, viability_threshold: float = 0.6):
        self.weights = (weights or FeasibilityWeights()).as_dict()
        self.viability_threshold = viability_threshold

    @staticmethod
    def collateral_adequacy(collateral: Mapping[str, CollateralRequirement]) -> float:
        """Worst coverage ratio across sides; can exceed 1"""
        if not collateral:
            return 1.0
        return min(req.coverage_ratio for req in collateral.values())

    @staticmethod
    def volatility_compatibility(volatility_a: float, volatility_b: float) -> float:
        highest = max(volatility_a, volatility_b)
        if highest <= 0:
            return 1.0
        return 1 - abs(volatility_a - volatility_b) / highest

    def factors(self, collateral: Mapping[str, CollateralRequirement], volatility_a: float,
                volatility_b: float, correlation: float, new_utilization: float,
                stablecoin_ratio_a: float, stablecoin_ratio_b: float) -> Dict[str, float]:
        """Per-factor values; none of them is clamped"""
        return {
            "collateral_adequacy": self.collateral_adequacy(collateral),
            "volatility_compatibility": self.volatility_compatibility(volatility_a, volatility_b),
            "correlation_factor": abs(correlation),
            "vault_capacity": 1 - new_utilization,
            "treasury_alignment": 1 - abs(stablecoin_ratio_a - stablecoin_ratio_b),
        }

    def weighted_score(self, factors: Mapping[str, float]) -> float:
        """Weighted sum clamped to [0, 1]"""
        raw = sum(factors[key] * self.weights[key] for key in self.weights)
        return max(0.0, min(1.0, raw))

    def score(self, collateral: Mapping[str, CollateralRequirement], volatility_a: float,
              volatility_b: float, correlation: float, new_utilization: float,
              stablecoin_ratio_a: float, stablecoin_ratio_b: float,
              risks: Sequence[RiskEntry] = ()) -> FeasibilityResult:
        factors = self.factors(collateral, volatility_a, volatility_b, correlation,
                               new_utilization, stablecoin_ratio_a, stablecoin_ratio_b)
        score = self.weighted_score(factors)
        recommendation = self.recommendation(score, risks)

        logger.debug("Feasibility score %.3f (%s) from %s", score, recommendation, factors)

        return FeasibilityResult(
            score=score,
            viable=score > self.viability_threshold,
            recommendation=recommendation,
            factors=factors,
        )

    @staticmethod
    def recommendation(score: float, risks: Sequence[RiskEntry] = ()) -> str:
        high_risks = high_risk_count(risks)

        if score > 0.8 and high_risks == 0:
            return "Highly recommended"
        elif score > 0.6 and high_risks <= 1:
            return "Recommended with risk mitigation"
        elif score > 0.4:
            return "Proceed with caution"
        else:
            return "Not recommended"


def high_risk_count(risks: Sequence[RiskEntry]) -> int:
    return sum(1 for risk in risks if risk.severity == "high")
