#!/usr/bin/env python3
"""
Merger Input Data

Immutable input snapshots (price series, treasuries, vault state) and the
single normalisation step that turns loosely-populated upstream data into a
fully-populated struct for the engine. Timestamps are normalised to integer
UNIX seconds at this boundary.
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

# Epoch values above this are treated as milliseconds
_MILLISECOND_THRESHOLD = 10_000_000_000


class MissingDataError(ValueError):
    """A required price series or snapshot was not supplied"""


def _safe_float(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float, falling back to ``default``"""
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def normalize_timestamp(value: Any) -> int:
    """
    Convert a timestamp to integer UNIX seconds

    Accepts epoch seconds, epoch milliseconds, ISO-8601 strings, ``datetime``
    and pandas ``Timestamp`` values. Naive datetimes are taken as UTC.
    """
    if value is None:
        raise ValueError("Timestamp cannot be None")

    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        numeric = float(value)
        if not math.isfinite(numeric):
            raise ValueError(f"Invalid timestamp: {value}")
        if abs(numeric) >= _MILLISECOND_THRESHOLD:
            numeric /= 1000.0
        return int(numeric)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())

    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.timestamp())


@dataclass(frozen=True)
class PricePoint:
    """Single price observation; ``price`` may be NaN for a gap"""
    timestamp: int
    price: float

    @property
    def is_valid(self) -> bool:
        return math.isfinite(self.price) and self.price > 0


@dataclass(frozen=True)
class PriceSeries:
    """Chronologically ordered price history for one token"""
    symbol: str
    points: Tuple[PricePoint, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    @property
    def prices(self) -> List[float]:
        """Raw prices in order, gaps included as NaN"""
        return [p.price for p in self.points]

    @property
    def valid_prices(self) -> List[float]:
        return [p.price for p in self.points if p.is_valid]

    @property
    def current_price(self) -> float:
        """Most recent valid price, 0.0 when none exists"""
        for point in reversed(self.points):
            if point.is_valid:
                return point.price
        return 0.0

    @classmethod
    def from_records(cls, symbol: str, records: Iterable[Any]) -> "PriceSeries":
        """
        Build a series from upstream records

        Records may be ``{"timestamp": ..., "price": ...}`` dicts (``value`` is
        accepted as an alias of ``price``) or ``(timestamp, price)`` pairs.
        Entries with an unparseable timestamp are dropped; entries with a
        missing or invalid price are kept as NaN gaps so paired series stay
        aligned. The result is sorted by timestamp.
        """
        points = []
        for record in records or []:
            if isinstance(record, dict):
                raw_ts = record.get("timestamp")
                raw_price = record.get("price", record.get("value"))
            else:
                try:
                    raw_ts, raw_price = record[0], record[1]
                except (TypeError, IndexError):
                    continue

            try:
                timestamp = normalize_timestamp(raw_ts)
            except (ValueError, TypeError):
                logger.debug("Dropping %s price record with bad timestamp: %r", symbol, raw_ts)
                continue

            price = _safe_float(raw_price, default=float("nan"))
            if price <= 0:
                price = float("nan")
            points.append(PricePoint(timestamp=timestamp, price=price))

        points.sort(key=lambda p: p.timestamp)
        return cls(symbol=symbol, points=tuple(points))

    @classmethod
    def from_frame(cls, symbol: str, frame: pd.DataFrame,
                   timestamp_col: str = "timestamp", price_col: str = "price") -> "PriceSeries":
        """Build a series from a DataFrame with timestamp and price columns"""
        if frame is None or frame.empty:
            return cls(symbol=symbol)
        records = zip(frame[timestamp_col].tolist(), frame[price_col].tolist())
        return cls.from_records(symbol, records)

    def to_frame(self) -> pd.DataFrame:
        """Series as a DataFrame indexed by UTC datetime"""
        frame = pd.DataFrame(
            {"timestamp": [p.timestamp for p in self.points], "price": self.prices}
        )
        frame["datetime"] = pd.to_datetime(frame["timestamp"], unit="s", utc=True)
        return frame.set_index("datetime")


@dataclass(frozen=True)
class TreasurySnapshot:
    """Point-in-time treasury composition of one DAO"""
    dao_symbol: str
    total_value_usd: float
    stablecoin_balance: float
    native_token_balance: float
    native_token_price: float
    decimals: int = 18

    @property
    def stablecoin_ratio(self) -> float:
        if self.total_value_usd <= 0:
            return 0.0
        return self.stablecoin_balance / self.total_value_usd

    @property
    def native_value_usd(self) -> float:
        return self.native_token_balance * self.native_token_price

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TreasurySnapshot":
        """Accepts snake_case or camelCase keys; missing numbers become 0"""
        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls(
            dao_symbol=str(pick("dao_symbol", "daoSymbol", "symbol", default="")),
            total_value_usd=_safe_float(pick("total_value_usd", "totalValueUSD")),
            stablecoin_balance=_safe_float(pick("stablecoin_balance", "stablecoinBalance")),
            native_token_balance=_safe_float(pick("native_token_balance", "nativeTokenBalance")),
            native_token_price=_safe_float(pick("native_token_price", "nativeTokenPrice")),
            decimals=int(_safe_float(pick("decimals"), default=18)),
        )


@dataclass(frozen=True)
class VaultState:
    """
    Read-only lending vault state

    Monetary fields are USD; ``utilization`` is a 0-1 fraction and
    ``borrow_apr`` an annual percentage (4.5 means 4.5%).
    """
    total_assets: float
    cash: float
    total_borrows: float
    utilization: float
    borrow_apr: float
    borrow_cap_remaining: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultState":
        def pick(*keys):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return None

        return cls(
            total_assets=_safe_float(pick("total_assets", "totalAssets")),
            cash=_safe_float(pick("cash")),
            total_borrows=_safe_float(pick("total_borrows", "totalBorrows")),
            utilization=_safe_float(pick("utilization")),
            borrow_apr=_safe_float(pick("borrow_apr", "borrowAPR")),
            borrow_cap_remaining=_safe_float(pick("borrow_cap_remaining", "borrowCapRemaining")),
        )


@dataclass(frozen=True)
class MergerInputs:
    """Fully-populated engine input; later stages never re-check for None"""
    series_a: PriceSeries
    series_b: PriceSeries
    treasury_a: TreasurySnapshot
    treasury_b: TreasurySnapshot
    vault: VaultState
    notes: Tuple[str, ...] = field(default_factory=tuple)


def _clean_treasury(treasury: TreasurySnapshot, series: PriceSeries, notes: List[str]) -> TreasurySnapshot:
    price = _safe_float(treasury.native_token_price)
    if price <= 0:
        fallback = series.current_price
        if fallback > 0:
            notes.append(f"{treasury.dao_symbol}: native price taken from latest price history")
        price = fallback

    return TreasurySnapshot(
        dao_symbol=treasury.dao_symbol or series.symbol,
        total_value_usd=max(0.0, _safe_float(treasury.total_value_usd)),
        stablecoin_balance=max(0.0, _safe_float(treasury.stablecoin_balance)),
        native_token_balance=max(0.0, _safe_float(treasury.native_token_balance)),
        native_token_price=max(0.0, price),
        decimals=int(treasury.decimals) if treasury.decimals is not None else 18,
    )


def _clean_vault(vault: VaultState) -> VaultState:
    total_assets = max(0.0, _safe_float(vault.total_assets))
    total_borrows = max(0.0, _safe_float(vault.total_borrows))
    utilization = max(0.0, _safe_float(vault.utilization))
    if total_assets > 0:
        if utilization == 0:
            utilization = total_borrows / total_assets
        elif total_borrows <= 0:
            total_borrows = utilization * total_assets

    # Zero cash is read as missing when assets exceed borrows
    cash = max(0.0, _safe_float(vault.cash))
    if cash <= 0:
        cash = max(0.0, total_assets - total_borrows)

    return VaultState(
        total_assets=total_assets,
        cash=cash,
        total_borrows=total_borrows,
        utilization=utilization,
        borrow_apr=max(0.0, _safe_float(vault.borrow_apr)),
        borrow_cap_remaining=max(0.0, _safe_float(vault.borrow_cap_remaining)),
    )


def normalize_inputs(series_a: Optional[PriceSeries], series_b: Optional[PriceSeries],
                     treasury_a: Optional[TreasurySnapshot], treasury_b: Optional[TreasurySnapshot],
                     vault: Optional[VaultState]) -> MergerInputs:
    """
    Validate presence of every input and fill numeric gaps

    Raises:
        MissingDataError: if any series, snapshot or the vault state is absent
    """
    missing = [
        name for name, value in (
            ("price series A", series_a),
            ("price series B", series_b),
            ("treasury snapshot A", treasury_a),
            ("treasury snapshot B", treasury_b),
            ("vault state", vault),
        )
        if value is None
    ]
    if missing:
        raise MissingDataError(f"Missing required merger inputs: {', '.join(missing)}")

    notes: List[str] = []
    clean_a = _clean_treasury(treasury_a, series_a, notes)
    clean_b = _clean_treasury(treasury_b, series_b, notes)

    for note in notes:
        logger.info(note)

    return MergerInputs(
        series_a=series_a,
        series_b=series_b,
        treasury_a=clean_a,
        treasury_b=clean_b,
        vault=_clean_vault(vault),
        notes=tuple(notes),
    )
