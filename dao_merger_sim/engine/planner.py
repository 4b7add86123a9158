#!/usr/bin/env python3
"""
Simulation Step Planner

Turns a merger configuration into the ordered, human-readable execution plan
and provides the batch execution strategies (rapid, gradual, dynamic).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pandas as pd

from ..core.euler_math import ONE_E18, AmmParameters
from ..analysis.price_impact import exact_price_impact


logger = logging.getLogger(__name__)

# Front-loaded rapid execution: 100 batches at each step, 100% in total
RAPID_DISTRIBUTION = tuple(
    fraction for fraction in (0.003, 0.0025, 0.002, 0.0015, 0.001) for _ in range(100)
)


def format_number(value: float) -> str:
    """Compact number: 1.2B, 3.4M, 5.6K"""
    value = float(value or 0)
    if abs(value) >= 1e9:
        return f"{value / 1e9:.2f}B"
    if abs(value) >= 1e6:
        return f"{value / 1e6:.2f}M"
    if abs(value) >= 1e3:
        return f"{value / 1e3:.2f}K"
    return f"{value:.2f}"


def _get(data: Mapping[str, Any], path: str, default: Any = 0) -> Any:
    """Dotted lookup into nested dicts; missing or None gives ``default``"""
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, Mapping) or current.get(key) is None:
            return default
        current = current[key]
    return current


def _num(data: Mapping[str, Any], path: str) -> float:
    value = _get(data, path, 0)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class ExecutionStrategy:
    name: str
    batches: Optional[int]
    completion_days: Dict[str, float]
    price_impact_multiplier: float = 1.0
    distribution: Tuple[float, ...] = ()

    @property
    def adaptive(self) -> bool:
        return self.batches is None

    def batch_sizes(self, total_amount: float) -> List[float]:
        if self.distribution:
            return [total_amount * fraction for fraction in self.distribution]
        if self.batches:
            return [total_amount / self.batches] * self.batches
        raise ValueError(f"{self.name} execution sizes batches adaptively; use dynamic_batches()")

    def describe(self) -> str:
        if self.name == "rapid":
            return f"Rapid execution ({self.batches} batches)"
        if self.name == "gradual":
            return f"Gradual execution ({self.batches} batches)"
        return "Adaptive batching (3-10% of remainder per batch)"


def rapid_strategy() -> ExecutionStrategy:
    return ExecutionStrategy(
        name="rapid",
        batches=len(RAPID_DISTRIBUTION),
        completion_days={"optimistic": 3, "realistic": 5, "conservative": 7},
        price_impact_multiplier=1.1,
        distribution=RAPID_DISTRIBUTION,
    )


def gradual_strategy() -> ExecutionStrategy:
    return ExecutionStrategy(
        name="gradual",
        batches=1000,
        completion_days={"optimistic": 10, "realistic": 20, "conservative": 30},
        price_impact_multiplier=0.5,
    )


def dynamic_strategy(average_volatility: float = 0.0) -> ExecutionStrategy:
    factor = 1.5 if average_volatility > 0.5 else 1.0
    return ExecutionStrategy(
        name="dynamic",
        batches=None,
        completion_days={
            "optimistic": 7 * factor,
            "realistic": 15 * factor,
            "conservative": 25 * factor,
        },
    )


def get_execution_strategy(name: str, average_volatility: float = 0.0) -> ExecutionStrategy:
    if name == "rapid":
        return rapid_strategy()
    if name == "gradual":
        return gradual_strategy()
    if name == "dynamic":
        return dynamic_strategy(average_volatility)
    raise ValueError(f"Unknown execution strategy: {name}")


def dynamic_next_batch(remaining_amount: float, current_impact: float, target_impact: float = 2.0) -> float:
    """Shrink batches above the target impact, grow them well below it"""
    if current_impact > target_impact:
        return remaining_amount * 0.03
    if current_impact < target_impact * 0.5:
        return remaining_amount * 0.1
    return remaining_amount * 0.05


def dynamic_batches(total_amount: int, amm: AmmParameters, target_impact: float = 2.0,
                    max_batches: int = 30) -> List[int]:
    """
    Adaptive batch sizes for swapping ``total_amount`` of token0

    Each batch is sized from the impact of the previous one, read off the
    curve. The final batch takes whatever remains.
    """
    remaining = int(max(0, total_amount))
    reserve0, reserve1 = amm.equilibrium_reserve0, amm.equilibrium_reserve1
    current_impact = 0.0
    sizes: List[int] = []

    while remaining > 0:
        if len(sizes) == max_batches - 1:
            size = remaining
        else:
            size = max(1, int(dynamic_next_batch(remaining, current_impact, target_impact)))
        result = exact_price_impact(size, reserve0, reserve1, amm, token0_in=True)
        reserve0, reserve1 = result.new_reserve0, result.new_reserve1
        current_impact = result.price_impact_pct
        sizes.append(size)
        remaining -= size

    return sizes


@dataclass(frozen=True)
class SimulationStep:
    id: str
    name: str
    description: str
    details: Tuple[str, ...] = field(default_factory=tuple)
    duration: str = ""
    status: str = "pending"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "details": list(self.details),
            "duration": self.duration,
            "status": self.status,
        }


class SimulationStepPlanner:
    """Six-stage merger execution plan"""

    STEP_IDS = (
        "collateral-setup",
        "borrow-native-tokens",
        "deploy-eulerswap",
        "execute-swaps",
        "monitor-positions",
        "completion-verification",
    )

    def __init__(self, strategy: str = "gradual"):
        self.strategy_name = strategy

    def plan(self, configuration: Union[Mapping[str, Any], Any, None]) -> List[SimulationStep]:
        """
        Build the plan from a MergerConfiguration or its ``to_dict()`` form

        Partial dictionaries are fine; any missing number reads as 0.
        """
        if configuration is None:
            data: Mapping[str, Any] = {}
        elif hasattr(configuration, "to_dict"):
            data = configuration.to_dict()
        else:
            data = configuration

        dao_a = _get(data, "daoA", "DAO A")
        dao_b = _get(data, "daoB", "DAO B")
        average_volatility = (_num(data, "volatilityAnalysis.daoA.volatility")
                              + _num(data, "volatilityAnalysis.daoB.volatility")) / 2
        strategy = get_execution_strategy(self.strategy_name, average_volatility)

        steps = [
            SimulationStep(
                id="collateral-setup",
                name="Deposit USDC Collateral",
                description="Both DAOs deposit stablecoins into the USDC vault as collateral",
                details=(
                    f"{dao_a} deposits: ${format_number(_num(data, 'collateralRequirements.daoA.usdcRequired'))} USDC",
                    f"{dao_b} deposits: ${format_number(_num(data, 'collateralRequirements.daoB.usdcRequired'))} USDC",
                    f"{dao_a} borrowing capacity: "
                    f"${format_number(_num(data, 'collateralRequirements.daoA.borrowingCapacity'))}",
                    f"{dao_b} borrowing capacity: "
                    f"${format_number(_num(data, 'collateralRequirements.daoB.borrowingCapacity'))}",
                ),
                duration=f"{_num(data, 'timeline.preparation'):.0f} hours",
            ),
            SimulationStep(
                id="borrow-native-tokens",
                name="Borrow Native Tokens",
                description="Borrow each side's swap amount just in time against the posted collateral",
                details=(
                    f"Borrow {format_number(_num(data, 'swapConfiguration.sizes.tokenAAmount'))} {dao_a} "
                    f"({_num(data, 'swapConfiguration.sizes.percentageA'):.1f}% of treasury)",
                    f"Borrow {format_number(_num(data, 'swapConfiguration.sizes.tokenBAmount'))} {dao_b} "
                    f"({_num(data, 'swapConfiguration.sizes.percentageB'):.1f}% of treasury)",
                    f"Vault utilization after borrow: "
                    f"{_num(data, 'vaultAnalysis.utilizationImpact.newUtilization') * 100:.1f}%",
                    f"Estimated borrow APY: {_num(data, 'vaultAnalysis.borrowingCost.estimatedAPY'):.2f}%",
                ),
                duration="30 minutes",
            ),
            SimulationStep(
                id="deploy-eulerswap",
                name="Initialize EulerSwap Pool",
                description=f"Deploy the {dao_a}/{dao_b} curve with bounded parameters",
                details=(
                    f"Concentration X: {_num(data, 'swapConfiguration.ammParameters.concentrationX') / ONE_E18:.2f}",
                    f"Concentration Y: {_num(data, 'swapConfiguration.ammParameters.concentrationY') / ONE_E18:.2f}",
                    f"Fee tier: {_num(data, 'swapConfiguration.ammParameters.fee') / ONE_E18 * 100:.2f}%",
                    f"Equilibrium reserves: "
                    f"{format_number(_num(data, 'swapConfiguration.ammParameters.equilibriumReserve0') / ONE_E18)} / "
                    f"{format_number(_num(data, 'swapConfiguration.ammParameters.equilibriumReserve1') / ONE_E18)}",
                ),
                duration="15 minutes",
            ),
            SimulationStep(
                id="execute-swaps",
                name="Execute Merger Swaps",
                description=f"Batch execution strategy: {strategy.describe()}",
                details=(
                    f"Total value: ${format_number(_num(data, 'swapConfiguration.sizes.totalValueUSD'))}",
                    f"Expected price impact: {_num(data, 'swapConfiguration.priceImpact.total'):.2f}%",
                    f"Completion estimate: {strategy.completion_days['realistic']:g} days",
                    f"Required {dao_b} mint: {format_number(_num(data, 'mergerMetrics.requiredMint'))}",
                ),
                duration=f"{_num(data, 'timeline.execution'):.0f} hours",
            ),
            SimulationStep(
                id="monitor-positions",
                name="Monitor Positions",
                description="Track collateral health and vault utilization during execution",
                details=(
                    f"Current LTV: {_num(data, 'vaultAnalysis.liquidationRisk.currentLTV') * 100:.1f}%",
                    f"Liquidation buffer: {_num(data, 'vaultAnalysis.liquidationRisk.safetyBuffer') * 100:.1f}%",
                    f"Max recommended LTV: {_num(data, 'vaultAnalysis.liquidationRisk.recommendedMaxLTV') * 100:.1f}%",
                    f"Daily swap cap: {format_number(_num(data, 'vaultAnalysis.capacityRisk.recommendedMaxDailySwap'))}",
                ),
                duration="Throughout execution",
            ),
            SimulationStep(
                id="completion-verification",
                name="Verify Merger Completion",
                description="Repay borrows, release collateral and confirm final distributions",
                details=(
                    f"Total value merged: ${format_number(_num(data, 'mergerMetrics.totalValueUSD'))}",
                    f"{dao_b} holders diluted: {_num(data, 'mergerMetrics.dilutionPercentage'):.1f}%",
                    f"Capital saved vs pre-funding: ${format_number(_num(data, 'capitalEfficiency.capitalSaved'))}",
                    f"Feasibility score: {_num(data, 'feasibility.score'):.2f}",
                ),
                duration=f"{_num(data, 'timeline.settlement'):.0f} hours",
            ),
        ]

        logger.debug("Planned %d steps with %s execution", len(steps), strategy.name)
        return steps

    def steps_table(self, configuration: Union[Mapping[str, Any], Any, None]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {"id": s.id, "name": s.name, "duration": s.duration,
                 "status": s.status, "details": len(s.details)}
                for s in self.plan(configuration)
            ],
            columns=["id", "name", "duration", "status", "details"],
        )
