"""Core merger math: inputs, statistics, risk tiers, collateral and curve parameters"""

from .data import MissingDataError, PriceSeries, TreasurySnapshot, VaultState, normalize_inputs
from .statistics import StatisticsEngine
from .risk_classifier import RiskClassifier, categorize_volatility
from .collateral import CollateralPlanner
from .euler_math import AmmParameters, CurveParameterDeriver

__all__ = [
    "MissingDataError", "PriceSeries", "TreasurySnapshot", "VaultState", "normalize_inputs",
    "StatisticsEngine", "RiskClassifier", "categorize_volatility",
    "CollateralPlanner", "AmmParameters", "CurveParameterDeriver"
]
