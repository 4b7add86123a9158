#!/usr/bin/env python3
"""
Merger Price Impact

Walks merger swaps along the EulerSwap curve, batch by batch, to estimate
price impact and slippage against the pool's equilibrium rate. Amounts are
whole tokens scaled to 1e18, the same unit the pool reserves use.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core.euler_math import AmmParameters, ONE_E18, curve_f, curve_f_inverse


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapResult:
    output_amount: int
    new_reserve0: int
    new_reserve1: int
    initial_price: float
    final_price: float
    price_impact: float

    @property
    def price_impact_pct(self) -> float:
        return self.price_impact * 100


@dataclass(frozen=True)
class BatchImpact:
    batch: int
    swap_amount: int
    output_amount: int
    price_impact_pct: float
    cumulative_impact_pct: float
    cumulative_input: int
    cumulative_output: int


@dataclass(frozen=True)
class PriceImpactReport:
    total_price_impact: float
    total_slippage: float
    average_price: float
    impacts: List[BatchImpact] = field(default_factory=list)
    recommendation: str = ""

    @property
    def average_batch_impact(self) -> float:
        if not self.impacts:
            return 0.0
        return sum(b.price_impact_pct for b in self.impacts) / len(self.impacts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total_price_impact,
            "slippage": self.total_slippage,
            "average": self.average_batch_impact,
            "averagePrice": self.average_price,
            "recommendation": self.recommendation,
            "breakdown": [
                {
                    "batch": b.batch,
                    "swapAmount": b.swap_amount,
                    "outputAmount": b.output_amount,
                    "priceImpact": b.price_impact_pct,
                    "cumulativeImpact": b.cumulative_impact_pct,
                }
                for b in self.impacts
            ],
        }


def _reserve_price(reserve0: int, reserve1: int, amm: AmmParameters) -> float:
    if reserve0 > 0:
        return reserve1 / reserve0
    return amm.price_x / amm.price_y


def exact_price_impact(swap_amount: int, current_reserve0: int, current_reserve1: int,
                       amm: AmmParameters, token0_in: bool = True) -> SwapResult:
    """
    Single swap against the curve

    The fee is taken from the input first. When token0 comes in and reserve0
    stays at or below equilibrium the curve is read with ``f``; past
    equilibrium it is read through ``f_inverse`` of the token1 side.
    Symmetrically for token1 input.
    """
    effective = int(max(0, swap_amount) * (ONE_E18 - amm.fee) // ONE_E18)
    initial_price = _reserve_price(current_reserve0, current_reserve1, amm)

    if token0_in:
        new_reserve0 = current_reserve0 + effective
        if new_reserve0 <= amm.equilibrium_reserve0:
            new_reserve1 = curve_f(new_reserve0, amm.price_x, amm.price_y,
                                   amm.equilibrium_reserve0, amm.equilibrium_reserve1, amm.concentration_x)
        else:
            new_reserve1 = curve_f_inverse(new_reserve0, amm.price_y, amm.price_x,
                                           amm.equilibrium_reserve1, amm.equilibrium_reserve0, amm.concentration_y)
        output = current_reserve1 - new_reserve1
    else:
        new_reserve1 = current_reserve1 + effective
        if new_reserve1 <= amm.equilibrium_reserve1:
            new_reserve0 = curve_f(new_reserve1, amm.price_y, amm.price_x,
                                   amm.equilibrium_reserve1, amm.equilibrium_reserve0, amm.concentration_y)
        else:
            new_reserve0 = curve_f_inverse(new_reserve1, amm.price_x, amm.price_y,
                                           amm.equilibrium_reserve0, amm.equilibrium_reserve1, amm.concentration_x)
        output = current_reserve0 - new_reserve0

    final_price = _reserve_price(new_reserve0, new_reserve1, amm)
    impact = abs(final_price - initial_price) / initial_price if initial_price > 0 else 0.0

    return SwapResult(
        output_amount=max(0, output),
        new_reserve0=new_reserve0,
        new_reserve1=new_reserve1,
        initial_price=initial_price,
        final_price=final_price,
        price_impact=impact,
    )


def batch_sizes(total_amount: int, number_of_batches: int,
                distribution: Optional[Sequence[float]] = None) -> List[int]:
    """Equal split by default; a distribution gives each batch's fraction"""
    number_of_batches = max(1, int(number_of_batches))
    if distribution:
        sizes = []
        for i in range(number_of_batches):
            fraction = distribution[i] if i < len(distribution) else 1 / number_of_batches
            sizes.append(int(total_amount * fraction))
        return sizes
    return [total_amount // number_of_batches] * number_of_batches


def merger_price_impact(total_swap_amount: int, amm: AmmParameters, number_of_batches: int = 10,
                        distribution: Optional[Sequence[float]] = None) -> PriceImpactReport:
    """
    Price impact of swapping ``total_swap_amount`` of token0 in batches

    Impact is the shortfall of actual output against the equilibrium rate
    ``price_x / price_y``, in percent.
    """
    total_swap_amount = int(max(0, total_swap_amount))
    if total_swap_amount == 0 or amm.price_y <= 0:
        return PriceImpactReport(0.0, 0.0, 0.0, [], "No swap volume to execute")

    expected_rate = amm.price_x / amm.price_y
    reserve0 = amm.equilibrium_reserve0
    reserve1 = amm.equilibrium_reserve1
    total_input = 0
    total_output = 0
    impacts: List[BatchImpact] = []

    for i, size in enumerate(batch_sizes(total_swap_amount, number_of_batches, distribution)):
        result = exact_price_impact(size, reserve0, reserve1, amm, token0_in=True)
        total_input += size
        total_output += result.output_amount

        expected_so_far = total_input * expected_rate
        cumulative = (expected_so_far - total_output) / expected_so_far * 100 if expected_so_far > 0 else 0.0

        impacts.append(BatchImpact(
            batch=i + 1,
            swap_amount=size,
            output_amount=result.output_amount,
            price_impact_pct=result.price_impact_pct,
            cumulative_impact_pct=cumulative,
            cumulative_input=total_input,
            cumulative_output=total_output,
        ))
        reserve0, reserve1 = result.new_reserve0, result.new_reserve1

    expected_total = total_swap_amount * expected_rate
    total_impact = (expected_total - total_output) / expected_total * 100 if expected_total > 0 else 0.0
    average_price = total_output / total_swap_amount
    total_slippage = (1 - average_price / expected_rate) * 100 if expected_rate > 0 else 0.0

    if abs(total_impact) > 50 or total_output == 0:
        logger.warning(
            "Price impact issue: total=%.2f%% output=%d expected=%.0f batches=%d",
            total_impact, total_output, expected_total, len(impacts),
        )

    if total_impact > 10:
        recommendation = "High price impact - consider increasing concentration or splitting over more days"
    elif total_impact > 5:
        recommendation = "Moderate price impact - current parameters acceptable"
    else:
        recommendation = "Low price impact - efficient execution expected"

    return PriceImpactReport(
        total_price_impact=total_impact,
        total_slippage=total_slippage,
        average_price=average_price,
        impacts=impacts,
        recommendation=recommendation,
    )
