#!/usr/bin/env python3
"""
Price Statistics Tests

Volatility and correlation estimates, including every degenerate input that
must resolve to 0.
"""

import math

import pytest

from dao_merger_sim.core.data import PriceSeries
from dao_merger_sim.core.statistics import (
    MAX_ANNUAL_VOLATILITY, StatisticsEngine, volatility_table
)


class TestVolatility:
    """Annualised population volatility of simple daily returns"""

    def test_fewer_than_two_points(self):
        assert StatisticsEngine.volatility([]) == 0.0
        assert StatisticsEngine.volatility([100.0]) == 0.0

    def test_single_return_is_not_enough(self):
        assert StatisticsEngine.volatility([1.0, 2.0]) == 0.0

    def test_constant_prices(self):
        assert StatisticsEngine.volatility([5.0] * 30) == 0.0

    def test_known_volatility(self, returns_factory, series_factory):
        returns_a, _ = returns_factory(0.25, 0.30, 0.75)
        series = series_factory("AAA", returns_a)

        assert StatisticsEngine.volatility(series) == pytest.approx(0.25, rel=1e-9)

    def test_invariant_under_scaling(self):
        prices = [10.0, 10.5, 10.2, 11.0, 10.7, 11.3]
        scaled = [p * 1234.5 for p in prices]

        assert StatisticsEngine.volatility(scaled) == pytest.approx(StatisticsEngine.volatility(prices))

    def test_capped_at_five(self):
        wild = [1.0, 100.0] * 20
        assert StatisticsEngine.volatility(wild) == MAX_ANNUAL_VOLATILITY

    def test_gaps_are_skipped(self):
        with_gaps = [1.0, None, 1.1, 0.0, 1.2, float("nan"), 1.0, 1.05, 1.1]
        returns = StatisticsEngine.returns(with_gaps)

        # Only the pairs (1.0, 1.05) and (1.05, 1.1) are fully valid
        assert len(returns) == 2
        assert StatisticsEngine.volatility(with_gaps) > 0

    def test_accepts_record_dicts(self):
        records = [{"price": p} for p in (1.0, 1.1, 1.0, 1.1)]
        assert StatisticsEngine.volatility(records) > 0


class TestCorrelation:
    """Pearson correlation of aligned daily returns"""

    def test_self_correlation_is_one(self):
        prices = [1.0, 1.2, 1.1, 1.4, 1.3, 1.5]
        assert StatisticsEngine.correlation(prices, prices) == pytest.approx(1.0)

    def test_length_mismatch_gives_zero(self):
        assert StatisticsEngine.correlation([1.0, 1.1, 1.2], [1.0, 1.1]) == 0.0

    def test_constant_series_gives_zero(self):
        assert StatisticsEngine.correlation([1.0, 1.2, 1.1, 1.3], [2.0] * 4) == 0.0

    def test_too_short(self):
        assert StatisticsEngine.correlation([1.0], [1.0]) == 0.0

    @pytest.mark.parametrize("target", [0.75, 0.0, -0.5])
    def test_known_correlation(self, pair_factory, target):
        series_a, series_b = pair_factory(0.25, 0.30, target)
        assert StatisticsEngine.correlation(series_a, series_b) == pytest.approx(target, abs=1e-6)

    def test_result_within_bounds(self):
        a = [1.0, 2.0, 1.0, 2.0, 1.0]
        b = [3.0, 6.0, 3.0, 6.0, 3.0]
        corr = StatisticsEngine.correlation(a, b)
        assert -1.0 <= corr <= 1.0
        assert corr == pytest.approx(1.0)


class TestPriceStats:

    def test_empty_series(self):
        assert StatisticsEngine.price_stats(PriceSeries("TKN")) is None

    def test_summary_values(self):
        stats = StatisticsEngine.price_stats([2.0, None, 3.0, 1.0, 4.0])

        assert stats["start"] == 2.0
        assert stats["current"] == 4.0
        assert stats["high"] == 4.0
        assert stats["low"] == 1.0
        assert stats["change_pct"] == pytest.approx(100.0)
        assert math.isfinite(stats["volatility"])


class TestVolatilityTable:

    def test_sorted_most_volatile_first(self, pair_factory):
        calm, wild = pair_factory(0.1, 0.8, 0.2)
        table = volatility_table({"CALM": calm, "WILD": wild})

        assert list(table["symbol"]) == ["WILD", "CALM"]
        assert list(table["category"]) == ["high", "low"]
        assert table.loc[0, "volatility_pct"] == pytest.approx(80.0, rel=1e-6)
