#!/usr/bin/env python3
"""
Volatility Risk Tiers

Buckets annualised volatility into low / medium / high tiers, each carrying a
risk score, a swap-size hint and a curve concentration hint (1e18 scale).
"""

from dataclasses import dataclass
from enum import Enum


class VolatilityCategory(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SwapSizeRecommendation(str, Enum):
    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"


LOW_VOLATILITY_CEILING = 0.2
MEDIUM_VOLATILITY_CEILING = 0.5


@dataclass(frozen=True)
class VolatilityResult:
    """Volatility estimate together with its risk tier"""
    value: float
    category: str
    risk_score: int
    swap_size_recommendation: str
    concentration_hint: int

    @property
    def recommends_small_swaps(self) -> bool:
        return self.swap_size_recommendation == SwapSizeRecommendation.SMALL.value


class RiskClassifier:
    """Maps volatility onto contiguous tiers split at 0.2 and 0.5"""

    TIERS = (
        (LOW_VOLATILITY_CEILING, VolatilityCategory.LOW, 20, SwapSizeRecommendation.LARGE, 95 * 10**16),
        (MEDIUM_VOLATILITY_CEILING, VolatilityCategory.MEDIUM, 50, SwapSizeRecommendation.MEDIUM, 85 * 10**16),
        (float("inf"), VolatilityCategory.HIGH, 80, SwapSizeRecommendation.SMALL, 70 * 10**16),
    )

    @classmethod
    def categorize(cls, volatility: float) -> VolatilityResult:
        volatility = max(0.0, float(volatility))
        for ceiling, category, risk_score, swap_size, concentration in cls.TIERS:
            if volatility < ceiling:
                return VolatilityResult(
                    value=volatility,
                    category=category.value,
                    risk_score=risk_score,
                    swap_size_recommendation=swap_size.value,
                    concentration_hint=concentration,
                )
        # inf volatility still lands in the top tier
        _, category, risk_score, swap_size, concentration = cls.TIERS[-1]
        return VolatilityResult(volatility, category.value, risk_score, swap_size.value, concentration)


def categorize_volatility(volatility: float) -> VolatilityResult:
    return RiskClassifier.categorize(volatility)
