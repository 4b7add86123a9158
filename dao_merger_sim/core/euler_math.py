#!/usr/bin/env python3
"""
Pure mathematical functions for EulerSwap curve parameters.

Prices, concentrations, reserves and fees are fixed-point integers on a 1e18
scale, bounded the way the on-chain pool stores them. Curve evaluation uses
exact integer arithmetic with the same rounding directions as the contract.
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Dict, List


logger = logging.getLogger(__name__)

ONE_E18 = 10**18
MIN_PRICE = 1
MAX_PRICE = 10**25
MAX_CONCENTRATION = ONE_E18
MAX_FEE = ONE_E18
MAX_UINT112 = 2**112 - 1
DEFAULT_FEE = 3 * 10**15  # 0.3%
UNLIMITED_CAP = float("inf")


@dataclass(frozen=True)
class AmmParameters:
    """EulerSwap pool parameters in fixed-point integer form"""
    price_x: int
    price_y: int
    concentration_x: int
    concentration_y: int
    equilibrium_reserve0: int
    equilibrium_reserve1: int
    fee: int = DEFAULT_FEE

    def to_dict(self) -> Dict[str, int]:
        return {
            "priceX": self.price_x,
            "priceY": self.price_y,
            "concentrationX": self.concentration_x,
            "concentrationY": self.concentration_y,
            "equilibriumReserve0": self.equilibrium_reserve0,
            "equilibriumReserve1": self.equilibrium_reserve1,
            "fee": self.fee,
        }


@dataclass(frozen=True)
class ValidationReport:
    """Bounds check result; warnings never make a report invalid"""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, object]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _ceil_div(numerator: int, denominator: int) -> int:
    """Ceiling division for non-negative operands"""
    return -(-numerator // denominator)


def _trunc_div(numerator: int, denominator: int) -> int:
    """Division rounding toward zero, as signed integer division on-chain"""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def scale_for_euler_swap(price_a: float, price_b: float,
                         decimals_a: int = 18, decimals_b: int = 18) -> Dict[str, int]:
    """
    Scale a USD price pair into pool prices

    ``price_x`` is fixed at 1e18 so only ``price_y`` needs clamping:
    ``price_y = clamp(floor(price_b / price_a * 10^(decimals_b - decimals_a) * 1e18), 1, 1e25)``.
    Non-positive (or non-finite) prices give a neutral 1:1 pair.

    Returns:
        {"price_x": int, "price_y": int}
    """
    if not (math.isfinite(price_a) and math.isfinite(price_b)) or price_a <= 0 or price_b <= 0:
        return {"price_x": ONE_E18, "price_y": ONE_E18}

    ratio = (price_b / price_a) * (10.0 ** (decimals_b - decimals_a))
    scaled = ratio * ONE_E18

    if not math.isfinite(scaled) or scaled >= MAX_PRICE:
        price_y = MAX_PRICE
    else:
        price_y = _clamp(math.floor(scaled), MIN_PRICE, MAX_PRICE)

    return {"price_x": ONE_E18, "price_y": price_y}


def concentration_from_correlation(correlation: float) -> int:
    """Tighter liquidity for more correlated pairs"""
    abs_corr = abs(correlation) if math.isfinite(correlation) else 0.0
    if abs_corr > 0.7:
        return 95 * 10**16
    if abs_corr > 0.3:
        return 85 * 10**16
    return 70 * 10**16


def concentration(correlation: float, volatility_a: float, volatility_b: float) -> int:
    """
    Curve concentration for a token pair

    Correlation tier (0.70 / 0.85 / 0.95) scaled by
    ``max(0.5, 1 - max(vol_a, vol_b) * 0.3)``. Non-decreasing in |correlation|
    and non-increasing in the larger volatility.
    """
    base = concentration_from_correlation(correlation)
    worst_vol = max(max(0.0, volatility_a), max(0.0, volatility_b))
    adjustment = max(0.5, 1 - worst_vol * 0.3)
    return _clamp(math.floor(base * adjustment), 0, MAX_CONCENTRATION)


def safe_reserves(target_value: float, multiplier: float = 2.5) -> int:
    """
    Equilibrium reserve sized at ``target_value * multiplier``

    Clamped to the uint112 ceiling with a warning. Non-positive or NaN targets
    give 1, the smallest reserve the pool accepts.
    """
    proposed = target_value * multiplier
    if math.isnan(proposed) or proposed <= 0:
        return 1
    if proposed > MAX_UINT112:
        logger.warning("Reserve %s exceeds uint112 max, capping at %d", proposed, MAX_UINT112)
        return MAX_UINT112
    return max(1, math.floor(proposed))


def validate_reserve_size(reserve_value: float) -> bool:
    return 0 < reserve_value <= MAX_UINT112


def validate_params(params: AmmParameters) -> ValidationReport:
    """
    Check every parameter against the pool's storage bounds

    Out-of-range values are blocking errors. A concentration sitting exactly at
    0 or 1e18 is reported as a warning only, since the curve degenerates there
    but the pool still accepts it.
    """
    errors: List[str] = []
    warnings: List[str] = []

    for name, value in (("PriceX", params.price_x), ("PriceY", params.price_y)):
        if value > MAX_PRICE:
            errors.append(f"{name} exceeds maximum of 1e25")
        if value < MIN_PRICE:
            errors.append(f"{name} below minimum of 1")

    for name, value in (("ConcentrationX", params.concentration_x), ("ConcentrationY", params.concentration_y)):
        if value > MAX_CONCENTRATION:
            errors.append(f"{name} exceeds maximum of 1e18")
        if value < 0:
            errors.append(f"{name} cannot be negative")
        if value == 0 or value == MAX_CONCENTRATION:
            warnings.append(f"{name} at extreme value {value} may cause curve calculation issues")

    for name, value in (("Reserve0", params.equilibrium_reserve0), ("Reserve1", params.equilibrium_reserve1)):
        if value > MAX_UINT112:
            errors.append(f"{name} exceeds uint112 max: {MAX_UINT112}")
        if value <= 0:
            errors.append(f"{name} must be positive")

    if params.fee > MAX_FEE:
        errors.append("Fee exceeds maximum of 1e18")
    if params.fee < 0:
        errors.append("Fee cannot be negative")

    return ValidationReport(errors=errors, warnings=warnings)


def curve_f(x: int, px: int, py: int, x0: int, y0: int, c: int) -> int:
    """
    EulerSwap curve ``y = f(x)`` for ``0 < x <= x0``

    ``y = y0 + ceil(ceil(px * (x0 - x) * (c*x + (1e18 - c)*x0) / (x * 1e18)) / py)``
    """
    x, px, py, x0, y0, c = (int(v) for v in (x, px, py, x0, y0, c))
    if x <= 0:
        raise ValueError("x must be positive")
    if py <= 0:
        raise ValueError("py must be positive")

    numerator = px * (x0 - x) * (c * x + (ONE_E18 - c) * x0)
    v = _ceil_div(numerator, x * ONE_E18)
    return y0 + _ceil_div(v, py)


def curve_f_inverse(y: int, px: int, py: int, x0: int, y0: int, c: int) -> int:
    """
    Solve ``f(x) = y`` for x, capped at x0

    Quadratic in x; uses the standard root when B <= 0 and the citardauq form
    otherwise to avoid cancellation. ``c == 0`` (constant-sum limit) always
    takes the citardauq form.
    """
    y, px, py, x0, y0, c = (int(v) for v in (y, px, py, x0, y0, c))
    if px <= 0:
        raise ValueError("px must be positive")

    delta = y - y0
    if delta >= 0:
        term1 = _ceil_div(py * ONE_E18 * delta, px)
    else:
        term1 = -_ceil_div(py * ONE_E18 * -delta, px)
    term2 = (2 * c - ONE_E18) * x0
    b = _trunc_div(term1 - term2, ONE_E18)

    c_term = _ceil_div((ONE_E18 - c) * x0 * x0, ONE_E18)
    four_ac = _ceil_div(4 * c * c_term, ONE_E18)

    abs_b = abs(b)
    discriminant = abs_b * abs_b + four_ac
    sqrt = math.isqrt(discriminant)
    if sqrt * sqrt < discriminant:
        sqrt += 1

    if b <= 0 and c > 0:
        x = _ceil_div((abs_b + sqrt) * ONE_E18, 2 * c) + 1
    else:
        denominator = abs_b + sqrt
        if denominator == 0:
            return x0
        x = _ceil_div(2 * c_term, denominator) + 1

    return min(x, x0)


def decode_amount_cap(raw_cap: int) -> float:
    """
    Decode an Euler AmountCap

    Low 6 bits are a base-10 exponent, the remaining 10 bits a mantissa:
    ``10^exponent * mantissa / 100``. Zero means no limit.
    """
    raw_cap = int(raw_cap)
    if raw_cap == 0:
        return UNLIMITED_CAP
    exponent = raw_cap & 63
    mantissa = raw_cap >> 6
    return (10 ** exponent) * mantissa / 100


def format_cap_value(decoded_cap: float) -> str:
    if decoded_cap == UNLIMITED_CAP:
        return "Unlimited"
    if decoded_cap >= 1e9:
        return f"{decoded_cap / 1e9:.1f}B"
    if decoded_cap >= 1e6:
        return f"{decoded_cap / 1e6:.1f}M"
    if decoded_cap >= 1e3:
        return f"{decoded_cap / 1e3:.1f}K"
    return f"{decoded_cap:,.0f}"


class CurveParameterDeriver:
    """Builds bounded pool parameters for a merger pair"""

    def __init__(self, reserve_multiplier: float = 2.5, fee: int = DEFAULT_FEE):
        self.reserve_multiplier = reserve_multiplier
        self.fee = fee

    def derive(self, price_a: float, price_b: float, correlation: float,
               volatility_a: float, volatility_b: float,
               swap_amount_a: float, swap_amount_b: float,
               decimals_a: int = 18, decimals_b: int = 18,
               concentration_cap_a: int = MAX_CONCENTRATION,
               concentration_cap_b: int = MAX_CONCENTRATION) -> AmmParameters:
        """
        Derive pool parameters

        Reserves are sized from each side's swap amount in whole tokens scaled
        to 1e18, so the pool and the impact simulation share one unit. Each
        side's concentration is the pair concentration capped by that token's
        own volatility tier hint.
        """
        prices = scale_for_euler_swap(price_a, price_b, decimals_a, decimals_b)
        pair_concentration = concentration(correlation, volatility_a, volatility_b)

        return AmmParameters(
            price_x=prices["price_x"],
            price_y=prices["price_y"],
            concentration_x=min(pair_concentration, concentration_cap_a),
            concentration_y=min(pair_concentration, concentration_cap_b),
            equilibrium_reserve0=safe_reserves(swap_amount_a * ONE_E18, self.reserve_multiplier),
            equilibrium_reserve1=safe_reserves(swap_amount_b * ONE_E18, self.reserve_multiplier),
            fee=self.fee,
        )

    @staticmethod
    def validate(params: AmmParameters) -> ValidationReport:
        return validate_params(params)
