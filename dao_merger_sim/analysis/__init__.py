"""Risk, feasibility and price impact analysis"""

from .risk_assessor import RiskAssessor, RiskEntry, RiskSignals
from .feasibility import FeasibilityResult, FeasibilityScorer
from .price_impact import PriceImpactReport, exact_price_impact, merger_price_impact

__all__ = [
    "RiskAssessor", "RiskEntry", "RiskSignals",
    "FeasibilityResult", "FeasibilityScorer",
    "PriceImpactReport", "exact_price_impact", "merger_price_impact"
]
