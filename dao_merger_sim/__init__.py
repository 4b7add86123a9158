"""
DAO Merger Simulation

Feasibility analytics for merging two DAO treasuries through borrow-based
just-in-time liquidity on EulerSwap: volatility and correlation, swap sizing,
collateral planning, bounded curve parameters, risks and a feasibility score.
"""

__version__ = "1.0.0"
__author__ = "DAO Merger Research Team"

# Core components
from .core.data import (
    MissingDataError, PricePoint, PriceSeries, TreasurySnapshot, VaultState, normalize_inputs
)
from .core.statistics import StatisticsEngine
from .core.risk_classifier import RiskClassifier, VolatilityResult, categorize_volatility
from .core.collateral import CollateralPlanner, CollateralRequirement, LTVProfile
from .core.euler_math import AmmParameters, CurveParameterDeriver, ValidationReport

# Configuration
from .config import MergerEngineConfig, MergerType, create_default_config

# Analysis
from .analysis.risk_assessor import RiskAssessor, RiskEntry
from .analysis.feasibility import FeasibilityResult, FeasibilityScorer

# Engine
from .engine.configurator import MergerConfiguration, MergerConfigurator
from .engine.planner import SimulationStep, SimulationStepPlanner

__all__ = [
    # Core
    "MissingDataError", "PricePoint", "PriceSeries", "TreasurySnapshot", "VaultState", "normalize_inputs",
    "StatisticsEngine", "RiskClassifier", "VolatilityResult", "categorize_volatility",
    "CollateralPlanner", "CollateralRequirement", "LTVProfile",
    "AmmParameters", "CurveParameterDeriver", "ValidationReport",

    # Configuration
    "MergerEngineConfig", "MergerType", "create_default_config",

    # Analysis
    "RiskAssessor", "RiskEntry", "FeasibilityResult", "FeasibilityScorer",

    # Engine
    "MergerConfiguration", "MergerConfigurator", "SimulationStep", "SimulationStepPlanner"
]
