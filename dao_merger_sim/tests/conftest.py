#!/usr/bin/env python3
"""
Shared fixtures for the merger test suite

Return paths are built from two orthogonal, zero-mean, unit-variance sign
patterns so that annualised volatility and correlation come out exactly as
requested.
"""

import math

import pytest

from dao_merger_sim.core.data import PriceSeries, TreasurySnapshot, VaultState


START_TS = 1_700_000_000
DAY = 86_400


def sign_patterns(n: int):
    """(+1,-1,...) and (+1,+1,-1,-1,...); n must be a multiple of 4"""
    z1 = [1.0 if i % 2 == 0 else -1.0 for i in range(n)]
    z2 = [1.0 if i % 4 < 2 else -1.0 for i in range(n)]
    return z1, z2


def correlated_returns(vol_a: float, vol_b: float, correlation: float, n: int = 60):
    z1, z2 = sign_patterns(n)
    daily_a = vol_a / math.sqrt(365)
    daily_b = vol_b / math.sqrt(365)
    ortho = math.sqrt(1 - correlation ** 2)
    returns_a = [daily_a * a for a in z1]
    returns_b = [daily_b * (correlation * a + ortho * b) for a, b in zip(z1, z2)]
    return returns_a, returns_b


def series_from_returns(symbol: str, returns, start_price: float = 2.0) -> PriceSeries:
    prices = [start_price]
    for r in returns:
        prices.append(prices[-1] * (1 + r))
    return PriceSeries.from_records(symbol, [(START_TS + i * DAY, p) for i, p in enumerate(prices)])


def make_pair(vol_a: float = 0.25, vol_b: float = 0.30, correlation: float = 0.75):
    returns_a, returns_b = correlated_returns(vol_a, vol_b, correlation)
    return series_from_returns("AAA", returns_a), series_from_returns("BBB", returns_b)


def make_treasury(symbol: str, total: float, stables: float, native_balance: float,
                  price: float = 2.0) -> TreasurySnapshot:
    return TreasurySnapshot(
        dao_symbol=symbol,
        total_value_usd=total,
        stablecoin_balance=stables,
        native_token_balance=native_balance,
        native_token_price=price,
    )


def make_vault(total_assets: float = 1e9, total_borrows: float = 2e8, utilization: float = 0.2,
               borrow_apr: float = 4.5) -> VaultState:
    return VaultState(
        total_assets=total_assets,
        cash=total_assets - total_borrows,
        total_borrows=total_borrows,
        utilization=utilization,
        borrow_apr=borrow_apr,
        borrow_cap_remaining=5e8,
    )


@pytest.fixture
def series_pair():
    return make_pair()


@pytest.fixture
def aligned_merger_inputs():
    """$300M / $280M treasuries, 40% stablecoins each, r = 0.75, vols 0.25 / 0.30"""
    series_a, series_b = make_pair()
    return {
        "series_a": series_a,
        "series_b": series_b,
        "treasury_a": make_treasury("AAA", 300e6, 120e6, 90e6),
        "treasury_b": make_treasury("BBB", 280e6, 112e6, 84e6),
        "vault": make_vault(),
    }


@pytest.fixture
def pair_factory():
    return make_pair


@pytest.fixture
def treasury_factory():
    return make_treasury


@pytest.fixture
def vault_factory():
    return make_vault


@pytest.fixture
def returns_factory():
    return correlated_returns


@pytest.fixture
def series_factory():
    return series_from_returns
