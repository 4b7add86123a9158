#!/usr/bin/env python3
"""
Merger Input Data Tests

Timestamp normalisation, price series ingestion, snapshot parsing and the
single input normalisation step.
"""

import math
from datetime import datetime, timezone

import pandas as pd
import pytest

from dao_merger_sim.core.data import (
    MissingDataError, PriceSeries, TreasurySnapshot, VaultState,
    normalize_inputs, normalize_timestamp,
)


class TestTimestampNormalization:
    """All accepted timestamp forms resolve to integer UNIX seconds"""

    def test_seconds_pass_through(self):
        assert normalize_timestamp(1_700_000_000) == 1_700_000_000

    def test_milliseconds_are_scaled(self):
        assert normalize_timestamp(1_700_000_000_123) == 1_700_000_000

    def test_iso_string(self):
        assert normalize_timestamp("2024-01-01T00:00:00Z") == 1_704_067_200

    def test_naive_datetime_is_utc(self):
        assert normalize_timestamp(datetime(2024, 1, 1)) == 1_704_067_200
        assert normalize_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc)) == 1_704_067_200

    def test_pandas_timestamp(self):
        assert normalize_timestamp(pd.Timestamp("2024-01-01", tz="UTC")) == 1_704_067_200

    def test_invalid_values_raise(self):
        with pytest.raises(ValueError):
            normalize_timestamp(None)
        with pytest.raises(ValueError):
            normalize_timestamp(float("nan"))


class TestPriceSeries:
    """Ingestion keeps gaps, drops unusable timestamps and sorts"""

    def test_from_records_sorts_and_normalizes(self):
        series = PriceSeries.from_records("TKN", [
            {"timestamp": 1_700_086_400_000, "price": 2.0},
            {"timestamp": 1_700_000_000, "price": 1.0},
        ])

        assert [p.timestamp for p in series.points] == [1_700_000_000, 1_700_086_400]
        assert series.prices == [1.0, 2.0]
        assert series.current_price == 2.0

    def test_invalid_prices_become_gaps(self):
        series = PriceSeries.from_records("TKN", [
            (1, 1.0), (2, None), (3, -5), (4, "abc"), (5, 1.5),
        ])

        assert len(series) == 5
        assert series.valid_prices == [1.0, 1.5]
        assert sum(1 for p in series.points if not p.is_valid) == 3

    def test_bad_timestamps_are_dropped(self):
        series = PriceSeries.from_records("TKN", [
            {"timestamp": "not a date", "price": 1.0},
            {"timestamp": None, "price": 1.0},
            {"timestamp": 10, "value": 3.0},
        ])

        assert len(series) == 1
        assert series.points[0].price == 3.0

    def test_current_price_of_empty_series(self):
        assert PriceSeries(symbol="TKN").current_price == 0.0

    def test_frame_round_trip(self):
        frame = pd.DataFrame({"timestamp": [1_700_000_000, 1_700_086_400], "price": [1.0, 1.1]})
        series = PriceSeries.from_frame("TKN", frame)

        out = series.to_frame()
        assert list(out["price"]) == [1.0, 1.1]
        assert str(out.index.tz) == "UTC"

    def test_empty_frame(self):
        assert len(PriceSeries.from_frame("TKN", pd.DataFrame())) == 0


class TestSnapshots:

    def test_treasury_from_camel_case(self):
        treasury = TreasurySnapshot.from_dict({
            "daoSymbol": "AAA",
            "totalValueUSD": 100.0,
            "stablecoinBalance": 25.0,
            "nativeTokenBalance": 30.0,
            "nativeTokenPrice": 2.5,
        })

        assert treasury.dao_symbol == "AAA"
        assert treasury.stablecoin_ratio == pytest.approx(0.25)
        assert treasury.native_value_usd == pytest.approx(75.0)
        assert treasury.decimals == 18

    def test_stablecoin_ratio_of_empty_treasury(self):
        treasury = TreasurySnapshot("AAA", 0.0, 10.0, 0.0, 1.0)
        assert treasury.stablecoin_ratio == 0.0

    def test_vault_from_dict_missing_fields(self):
        vault = VaultState.from_dict({"totalAssets": 1000, "borrowAPR": None})
        assert vault.total_assets == 1000
        assert vault.borrow_apr == 0.0


class TestNormalizeInputs:
    """One normalisation step fills every gap or raises MissingDataError"""

    def setup_method(self):
        self.series = PriceSeries.from_records("AAA", [(1, 1.0), (2, 1.2)])
        self.treasury = TreasurySnapshot("AAA", 100.0, 20.0, 40.0, 2.0)
        self.vault = VaultState(1000.0, 750.0, 250.0, 0.25, 4.0, 100.0)

    def test_missing_inputs_are_named(self):
        with pytest.raises(MissingDataError) as excinfo:
            normalize_inputs(self.series, None, self.treasury, None, self.vault)

        message = str(excinfo.value)
        assert "price series B" in message
        assert "treasury snapshot B" in message
        assert "vault state" not in message

    def test_missing_data_error_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_inputs(None, None, None, None, None)

    def test_price_falls_back_to_history(self):
        unpriced = TreasurySnapshot("AAA", 100.0, 20.0, 40.0, 0.0)
        inputs = normalize_inputs(self.series, self.series, unpriced, self.treasury, self.vault)

        assert inputs.treasury_a.native_token_price == pytest.approx(1.2)
        assert len(inputs.notes) == 1

    def test_negative_balances_are_clamped(self):
        broken = TreasurySnapshot("AAA", -5.0, -1.0, float("nan"), 2.0)
        inputs = normalize_inputs(self.series, self.series, broken, self.treasury, self.vault)

        assert inputs.treasury_a.total_value_usd == 0.0
        assert inputs.treasury_a.stablecoin_balance == 0.0
        assert inputs.treasury_a.native_token_balance == 0.0

    def test_vault_gaps_are_derived(self):
        vault = VaultState(100.0, float("nan"), 25.0, 0.0, 4.0, 0.0)
        inputs = normalize_inputs(self.series, self.series, self.treasury, self.treasury, vault)

        assert inputs.vault.utilization == pytest.approx(0.25)
        assert inputs.vault.cash == pytest.approx(75.0)
        assert not math.isnan(inputs.vault.cash)

    def test_missing_cash_is_derived(self):
        vault = VaultState.from_dict({"totalAssets": 1e9, "totalBorrows": 2e8, "utilization": 0.2, "borrowAPR": 4.5})
        inputs = normalize_inputs(self.series, self.series, self.treasury, self.treasury, vault)

        assert inputs.vault.cash == pytest.approx(8e8)

    def test_borrows_derived_from_utilization(self):
        vault = VaultState.from_dict({"totalAssets": 1e9, "cash": 5e7, "utilization": 0.95, "borrowAPR": 4.5})
        inputs = normalize_inputs(self.series, self.series, self.treasury, self.treasury, vault)

        assert inputs.vault.total_borrows == pytest.approx(9.5e8)
        assert inputs.vault.utilization == pytest.approx(0.95)
        assert inputs.vault.cash == pytest.approx(5e7)
