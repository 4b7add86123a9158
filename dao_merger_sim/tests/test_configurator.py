#!/usr/bin/env python3
"""
Merger Configurator Tests

End-to-end configuration of a DAO pair: classification, sizing, collateral,
vault analysis, curve parameters, risks and feasibility.
"""

import math

import pytest

from dao_merger_sim.config import MergerEngineConfig, MergerType
from dao_merger_sim.core.data import MissingDataError, VaultState
from dao_merger_sim.engine.configurator import (
    MergerConfigurator, PairProfile, classify_merger, size_ratio
)


def profile(ratio=1.0, correlation=0.5, vol_a=0.3, vol_b=0.3) -> PairProfile:
    return PairProfile(size_ratio=ratio, correlation=correlation, volatility_a=vol_a, volatility_b=vol_b)


class TestClassification:

    @pytest.mark.parametrize("pair, expected", [
        (profile(ratio=4.0, correlation=0.95), MergerType.ACQUISITION),
        (profile(ratio=0.2), MergerType.ACQUISITION),
        (profile(correlation=0.75, vol_a=0.1, vol_b=0.9), MergerType.STRATEGIC_ALIGNMENT),
        (profile(correlation=-0.8), MergerType.STRATEGIC_ALIGNMENT),
        (profile(correlation=0.5, vol_a=0.30, vol_b=0.35), MergerType.EQUAL_MERGER),
        (profile(correlation=0.5, vol_a=0.2, vol_b=0.6), MergerType.DIVERSIFICATION),
    ])
    def test_first_match_wins(self, pair, expected):
        assert classify_merger(pair) == expected

    def test_ratio_boundaries_are_exclusive(self):
        assert classify_merger(profile(ratio=3.0, vol_b=0.9)) == MergerType.DIVERSIFICATION
        assert classify_merger(profile(ratio=0.33, vol_b=0.9)) == MergerType.DIVERSIFICATION

    def test_size_ratio(self):
        assert size_ratio(300.0, 100.0) == 3.0
        assert math.isinf(size_ratio(10.0, 0.0))
        assert size_ratio(0.0, 0.0) == 1.0


class TestAlignedMerger:
    """Two similar DAOs with well funded treasuries and a quiet vault"""

    def setup_method(self):
        self.configurator = MergerConfigurator()

    def test_classification_and_sizing(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.merger_type == MergerType.STRATEGIC_ALIGNMENT.value
        assert result.volatility_a.category == "medium"
        assert result.volatility_b.category == "medium"
        assert result.correlation == pytest.approx(0.75, abs=1e-6)

        sizing = result.swap_sizing
        assert sizing.percentage_a == sizing.percentage_b == 40.0
        assert sizing.token_a_amount == pytest.approx(36e6)
        assert sizing.token_b_amount == pytest.approx(33.6e6)
        assert sizing.total_value_usd == pytest.approx(139.2e6)

    def test_collateral_plan(self, aligned_merger_inputs):
        collateral = self.configurator.configure(**aligned_merger_inputs).collateral

        assert collateral["dao_a"].usdc_required == pytest.approx(67.2e6 / 0.85)
        assert collateral["dao_b"].usdc_required == pytest.approx(72e6 / 0.85)
        assert collateral["dao_a"].shortfall == 0
        assert collateral["dao_b"].shortfall == 0

    def test_vault_analysis(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.utilization.new_utilization == pytest.approx(0.3392)
        assert result.utilization.severity == "low"
        # 10% of $800M cash at $2 per token
        assert result.capacity.volume_ratio == pytest.approx(40e6 / 33.6e6)
        assert result.capacity.severity == "low"
        assert result.borrowing_cost.utilization_multiplier == 1.0
        assert result.liquidation.current_ltv == pytest.approx(0.85)

    def test_liquidation_uses_annual_volatility(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)

        # 30% annual volatility against a 0.08 / 0.85 = 9.4% liquidation move
        assert result.liquidation.liquidation_price_move == pytest.approx(0.08 / 0.85)
        assert result.liquidation.severity == "high"
        assert ("liquidation", "high") in {(risk.type, risk.severity) for risk in result.risks}

    def test_curve_parameters(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)
        amm = result.amm_parameters

        assert amm.price_x == amm.price_y == 10**18
        # 0.95 * 0.91 = 0.8645 capped by the medium tier's 0.85
        assert amm.concentration_x == amm.concentration_y == 85 * 10**16
        assert result.validation.valid
        assert len(result.price_impact.impacts) == 10

    def test_feasibility(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)

        expected = (
            0.35 * (112 * 0.85 / 72)
            + 0.20 * (1 - 0.05 / 0.30)
            + 0.15 * 0.75
            + 0.20 * (1 - 0.3392)
            + 0.10 * 1.0
        )
        assert result.feasibility.score == pytest.approx(expected, rel=1e-4)
        assert result.feasibility.viable
        assert "collateral" not in {risk.type for risk in result.risks}
        # 15% expected slippage on a $139M swap at 0.85 concentration
        assert ("slippage", "high") in {(risk.type, risk.severity) for risk in result.risks}

    def test_metrics_and_efficiency(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.merger_metrics.required_mint == pytest.approx(36e6)
        assert result.merger_metrics.dilution_percentage == pytest.approx(30.0)
        assert result.merger_metrics.market_cap_ratio == pytest.approx(180 / 168)

        efficiency = result.capital_efficiency
        assert efficiency.leverage_multiple == 10.0
        assert efficiency.total_borrowed == pytest.approx(139.2e6)
        assert efficiency.capital_saved == pytest.approx(139.2e6 * 0.9)

    def test_large_swap_stretches_timeline(self, aligned_merger_inputs):
        timeline = self.configurator.configure(**aligned_merger_inputs).timeline

        assert timeline.multiplier == 1.5
        assert timeline.total_hours == pytest.approx(126)
        assert timeline.estimated_days == 6

    def test_to_dict_paths(self, aligned_merger_inputs):
        data = self.configurator.configure(**aligned_merger_inputs).to_dict()

        assert data["daoA"] == "AAA"
        assert data["mergerType"] == "strategic_alignment"
        assert data["volatilityAnalysis"]["daoA"]["category"] == "medium"
        assert data["swapConfiguration"]["sizes"]["percentageA"] == 40.0
        assert data["swapConfiguration"]["ammParameters"]["concentrationX"] == 85 * 10**16
        assert data["swapConfiguration"]["validation"]["valid"] is True
        assert data["collateralRequirements"]["daoB"]["usdcRequired"] == pytest.approx(72e6 / 0.85)
        assert data["vaultAnalysis"]["interestRateModel"]["model"] == "LinearKink IRM"
        assert data["timeline"]["estimatedDays"] == 6
        assert data["feasibility"]["viable"] is True
        assert isinstance(data["risks"], list)

    def test_risk_table(self, aligned_merger_inputs):
        result = self.configurator.configure(**aligned_merger_inputs)
        table = result.risk_table()

        assert list(table.columns) == ["type", "severity", "description", "mitigation"]
        assert len(table) == len(result.risks)


class TestStressedMergers:

    def setup_method(self):
        self.configurator = MergerConfigurator()

    def test_missing_collateral(self, aligned_merger_inputs, treasury_factory):
        aligned_merger_inputs["treasury_a"] = treasury_factory("AAA", 300e6, 0.0, 90e6)
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.feasibility.factors["collateral_adequacy"] == 0.0
        assert result.feasibility.score < 0.6
        assert not result.feasibility.viable
        assert ("collateral", "high") in {(risk.type, risk.severity) for risk in result.risks}
        assert result.liquidation.severity == "high"

    def test_saturated_vault(self, aligned_merger_inputs, vault_factory):
        aligned_merger_inputs["vault"] = vault_factory(total_borrows=9.5e8, utilization=0.95)
        result = self.configurator.configure(**aligned_merger_inputs)
        found = {(risk.type, risk.severity) for risk in result.risks}

        assert result.utilization.new_utilization == pytest.approx(1.0892)
        assert result.feasibility.factors["vault_capacity"] == pytest.approx(-0.0892)
        assert ("liquidity", "medium") in found
        # 10% of $50M cash covers 7.4% of the mint per day
        assert ("capacity", "medium") in found
        assert result.borrowing_cost.utilization_multiplier == 2.0
        assert result.capital_efficiency.leverage_multiple == 5.0

    def test_saturated_vault_from_utilization_only(self, aligned_merger_inputs):
        aligned_merger_inputs["vault"] = VaultState.from_dict(
            {"totalAssets": 1e9, "cash": 5e7, "utilization": 0.95, "borrowAPR": 4.5}
        )
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.utilization.new_utilization == pytest.approx(1.0892)
        assert abs(result.feasibility.factors["vault_capacity"]) < 0.1
        assert ("liquidity", "medium") in {(risk.type, risk.severity) for risk in result.risks}

    def test_vault_without_cash_figure(self, aligned_merger_inputs):
        aligned_merger_inputs["vault"] = VaultState.from_dict(
            {"totalAssets": 1e9, "totalBorrows": 2e8, "utilization": 0.2, "borrowAPR": 4.5}
        )
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.capacity.severity == "low"
        assert result.capacity.execution_days == 1

    def test_volatile_pair_swaps_less(self, aligned_merger_inputs, pair_factory):
        series_a, series_b = pair_factory(0.6, 0.6, 0.75)
        aligned_merger_inputs.update(series_a=series_a, series_b=series_b)
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.volatility_a.category == "high"
        assert result.swap_sizing.percentage_a == pytest.approx(28.0)
        assert result.timeline.multiplier == 1.5
        assert ("volatility", "high") in {(risk.type, risk.severity) for risk in result.risks}

    def test_acquisition_takes_precedence(self, aligned_merger_inputs, treasury_factory):
        aligned_merger_inputs["treasury_a"] = treasury_factory("AAA", 1.2e9, 480e6, 360e6)
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.merger_type == MergerType.ACQUISITION.value
        assert result.swap_sizing.percentage_a == 25.0

    def test_missing_price_falls_back_to_history(self, aligned_merger_inputs, treasury_factory):
        aligned_merger_inputs["treasury_b"] = treasury_factory("BBB", 280e6, 112e6, 84e6, price=0.0)
        result = self.configurator.configure(**aligned_merger_inputs)

        assert result.notes
        assert result.swap_sizing.token_b_amount == pytest.approx(33.6e6)

    @pytest.mark.parametrize("missing", ["series_a", "series_b", "treasury_a", "treasury_b", "vault"])
    def test_missing_input(self, aligned_merger_inputs, missing):
        aligned_merger_inputs[missing] = None
        with pytest.raises(MissingDataError):
            self.configurator.configure(**aligned_merger_inputs)

    def test_custom_viability_threshold(self, aligned_merger_inputs):
        configurator = MergerConfigurator(MergerEngineConfig(viability_threshold=0.99))
        assert not configurator.configure(**aligned_merger_inputs).feasibility.viable
