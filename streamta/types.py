"""
Core data structures: the OHLCV bar, per-indicator output records and
variant enums.

Multi-valued indicators return one record per input position. A record
whose every field is NaN is the warmup sentinel.
"""

import math
from dataclasses import dataclass, fields, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import InvalidParameter

MS_PER_DAY = 86_400_000


# ============================================================================
# OHLCV Bar
# ============================================================================

@dataclass(frozen=True)
class OHLCV:
    """OHLCV bar with a millisecond Unix epoch timestamp (UTC)."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def typical_price(self) -> float:
        """Typical price (high + low + close) / 3."""
        return (self.high + self.low + self.close) / 3.0

    def median_price(self) -> float:
        """Median price (high + low) / 2."""
        return (self.high + self.low) / 2.0

    def utc_day(self) -> int:
        """UTC day number of the bar timestamp."""
        return self.timestamp // MS_PER_DAY

    @classmethod
    def from_row(cls, timestamp, open, high, low, close, volume) -> "OHLCV":
        return cls(int(timestamp), float(open), float(high), float(low),
                   float(close), float(volume))


def ohlcv_bars(timestamp: Sequence, open: Sequence, high: Sequence,
               low: Sequence, close: Sequence, volume: Sequence) -> List[OHLCV]:
    """
    Build bars from six parallel sequences.

    Raises
    ------
    InvalidParameter
        If the sequences differ in length.
    """
    columns = (timestamp, open, high, low, close, volume)
    names = ("timestamp", "open", "high", "low", "close", "volume")
    length = len(columns[0])
    for name, column in zip(names[1:], columns[1:]):
        if len(column) != length:
            raise InvalidParameter(
                f"{name} has length {len(column)}, expected {length} (all arrays must have the same length)"
            )
    return [OHLCV.from_row(*row) for row in zip(*columns)]


def ohlcv_from_frame(df: pd.DataFrame) -> List[OHLCV]:
    """
    Build bars from an OHLCV DataFrame.

    Timestamps come from a ``timestamp`` column (epoch ms) when present,
    otherwise from a ``DatetimeIndex``.
    """
    missing = [col for col in ("open", "high", "low", "close", "volume") if col not in df.columns]
    if missing:
        raise InvalidParameter(f"missing required columns: {missing}")

    if "timestamp" in df.columns:
        timestamps = df["timestamp"].to_numpy(dtype=np.int64)
    elif isinstance(df.index, pd.DatetimeIndex):
        epoch = pd.Timestamp("1970-01-01", tz="UTC" if df.index.tz is not None else None)
        timestamps = ((df.index - epoch) // pd.Timedelta(milliseconds=1)).to_numpy(dtype=np.int64)
    else:
        raise InvalidParameter("no timestamp column or DatetimeIndex found")

    return ohlcv_bars(
        timestamps.tolist(),
        df["open"].to_numpy(dtype=float).tolist(),
        df["high"].to_numpy(dtype=float).tolist(),
        df["low"].to_numpy(dtype=float).tolist(),
        df["close"].to_numpy(dtype=float).tolist(),
        df["volume"].to_numpy(dtype=float).tolist(),
    )


# ============================================================================
# Variants
# ============================================================================

class SignalType(Enum):
    """Smoothing used for the MACD signal line."""
    EMA = "ema"
    SMA = "sma"


class StochType(Enum):
    """Fast (raw %K) or slow (smoothed %K) stochastic."""
    FAST = "fast"
    SLOW = "slow"


class PivotVariant(Enum):
    """Pivot point formula family."""
    STANDARD = "standard"
    FIBONACCI = "fibonacci"
    WOODIE = "woodie"


def coerce_enum(enum_cls, value, name: str):
    """Accept an enum member or its string value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = [member.value for member in enum_cls]
        raise InvalidParameter(f"{name} must be one of {choices}, got {value!r}") from None


# ============================================================================
# Output Records
# ============================================================================

class _Record:
    """Shared helpers for output records."""

    @classmethod
    def nan(cls):
        return cls(*([math.nan] * len(fields(cls))))

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def is_nan(self) -> bool:
        """True for the warmup sentinel (every field NaN)."""
        return all(math.isnan(getattr(self, name)) for name in self.field_names())

    def is_valid(self) -> bool:
        """True when no field is NaN."""
        return not any(math.isnan(getattr(self, name)) for name in self.field_names())

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MacdOutput(_Record):
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerOutput(_Record):
    upper: float
    middle: float
    lower: float
    percent_b: float
    bandwidth: float


@dataclass(frozen=True)
class StochOutput(_Record):
    """%K / %D pair, shared by Stochastic and Stochastic RSI."""
    k: float
    d: float


@dataclass(frozen=True)
class IchimokuOutput(_Record):
    tenkan: float
    kijun: float
    senkou_a: float
    senkou_b: float
    chikou: float


@dataclass(frozen=True)
class AdxOutput(_Record):
    adx: float
    plus_di: float
    minus_di: float


@dataclass(frozen=True)
class LinRegOutput(_Record):
    value: float
    upper: float
    lower: float
    slope: float
    r: float
    r_squared: float


@dataclass(frozen=True)
class PivotOutput(_Record):
    pivot: float
    r1: float
    r2: float
    r3: float
    s1: float
    s2: float
    s3: float


@dataclass(frozen=True)
class VolumeProfileRow:
    """One histogram bin of a volume profile."""
    price: float
    volume: float
    low: float
    high: float


@dataclass(frozen=True)
class FrvpOutput:
    """Fixed-range volume profile with point of control and value area."""
    poc: float
    vah: float
    val: float
    total_volume: float
    poc_volume: float
    value_area_volume: float
    range_high: float
    range_low: float
    histogram: Tuple[VolumeProfileRow, ...]

    def histogram_frame(self) -> pd.DataFrame:
        """Histogram as a DataFrame with price, volume, low, high columns."""
        return pd.DataFrame(
            [asdict(row) for row in self.histogram],
            columns=["price", "volume", "low", "high"],
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def records_to_frame(records: Sequence[_Record], index: Optional[pd.Index] = None) -> pd.DataFrame:
    """One column per record field, one row per record."""
    if not records:
        return pd.DataFrame(index=index)
    columns = type(records[0]).field_names()
    return pd.DataFrame([r.as_dict() for r in records], columns=columns, index=index)
