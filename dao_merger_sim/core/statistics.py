#!/usr/bin/env python3
"""
Price Statistics

Volatility and correlation estimates from daily price histories. Degenerate
inputs (too few points, constant prices, mismatched lengths) resolve to 0
rather than raising.
"""

import math
from typing import Any, Dict, Iterable, Optional, Union

import numpy as np
import pandas as pd

from .data import PriceSeries
from .risk_classifier import categorize_volatility


DAYS_PER_YEAR = 365
MAX_ANNUAL_VOLATILITY = 5.0  # 500%

SeriesLike = Union[PriceSeries, Iterable[Any]]


def _as_price_array(series: Optional[SeriesLike]) -> np.ndarray:
    """Raw price vector with invalid entries as NaN"""
    if series is None:
        return np.array([], dtype=float)

    if isinstance(series, PriceSeries):
        raw = series.prices
    else:
        raw = []
        for item in series:
            if isinstance(item, dict):
                raw.append(item.get("price", item.get("value")))
            elif isinstance(item, (tuple, list)):
                raw.append(item[1] if len(item) > 1 else None)
            else:
                raw.append(getattr(item, "price", item))

    prices = np.array(
        [float(p) if isinstance(p, (int, float, np.number)) and not isinstance(p, bool) else np.nan for p in raw],
        dtype=float,
    )
    prices[~np.isfinite(prices) | (prices <= 0)] = np.nan
    return prices


def _pairwise_returns(prices: np.ndarray) -> np.ndarray:
    """Simple returns per consecutive pair, NaN where either side is invalid"""
    if prices.size < 2:
        return np.array([], dtype=float)
    prev, cur = prices[:-1], prices[1:]
    with np.errstate(invalid="ignore", divide="ignore"):
        returns = (cur - prev) / prev
    returns[~(np.isfinite(prev) & np.isfinite(cur))] = np.nan
    return returns


class StatisticsEngine:
    """Pure statistical functions over price series"""

    @staticmethod
    def returns(series: SeriesLike) -> np.ndarray:
        """Valid simple daily returns, skipping pairs with a gap"""
        returns = _pairwise_returns(_as_price_array(series))
        return returns[np.isfinite(returns)]

    @staticmethod
    def volatility(series: SeriesLike) -> float:
        """
        Annualised volatility of daily returns

        Population standard deviation of simple returns scaled by sqrt(365)
        and capped at 500%. Returns 0 when fewer than two valid returns exist.
        """
        returns = StatisticsEngine.returns(series)
        if returns.size < 2:
            return 0.0

        daily_vol = float(np.std(returns))
        return min(daily_vol * math.sqrt(DAYS_PER_YEAR), MAX_ANNUAL_VOLATILITY)

    @staticmethod
    def correlation(series_a: SeriesLike, series_b: SeriesLike) -> float:
        """
        Pearson correlation of daily returns

        Series must have equal length. Returns are aligned pairwise and any day
        missing on either side is dropped. Mismatched lengths and zero-variance
        series give 0.
        """
        prices_a = _as_price_array(series_a)
        prices_b = _as_price_array(series_b)
        if prices_a.size != prices_b.size or prices_a.size < 2:
            return 0.0

        returns_a = _pairwise_returns(prices_a)
        returns_b = _pairwise_returns(prices_b)
        mask = np.isfinite(returns_a) & np.isfinite(returns_b)
        returns_a, returns_b = returns_a[mask], returns_b[mask]
        if returns_a.size < 2:
            return 0.0

        diff_a = returns_a - returns_a.mean()
        diff_b = returns_b - returns_b.mean()
        denom_a = float(np.sum(diff_a * diff_a))
        denom_b = float(np.sum(diff_b * diff_b))
        if denom_a == 0 or denom_b == 0:
            return 0.0

        corr = float(np.sum(diff_a * diff_b)) / math.sqrt(denom_a * denom_b)
        return max(-1.0, min(1.0, corr))

    @staticmethod
    def price_stats(series: SeriesLike) -> Optional[Dict[str, float]]:
        """Current/start/high/low, percentage change and volatility"""
        prices = _as_price_array(series)
        valid = prices[np.isfinite(prices)]
        if valid.size == 0:
            return None

        start, current = float(valid[0]), float(valid[-1])
        return {
            "current": current,
            "start": start,
            "change_pct": (current - start) / start * 100,
            "high": float(valid.max()),
            "low": float(valid.min()),
            "volatility": StatisticsEngine.volatility(series),
        }


def volatility_table(series_by_symbol: Dict[str, SeriesLike]) -> pd.DataFrame:
    """Volatility and risk tier per token, most volatile first"""
    rows = []
    for symbol, series in series_by_symbol.items():
        result = categorize_volatility(StatisticsEngine.volatility(series))
        rows.append({
            "symbol": symbol,
            "volatility": result.value,
            "volatility_pct": result.value * 100,
            "category": result.category,
            "risk_score": result.risk_score,
            "swap_size_recommendation": result.swap_size_recommendation,
        })

    table = pd.DataFrame(rows, columns=[
        "symbol", "volatility", "volatility_pct", "category", "risk_score", "swap_size_recommendation"
    ])
    return table.sort_values("volatility", ascending=False).reset_index(drop=True)
