"""
Volume-based indicators.

VWAP (session, rolling and anchored), Cumulative Volume Delta and the
Fixed-Range Volume Profile.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from numba import jit

from .base import (BarIndicator, Indicator, StreamingIndicator, as_bars, as_float_array,
                   check_lengths)
from .core import ArrayLike, RunningSum, check_period
from .errors import InsufficientData, InvalidParameter
from .registry import register_indicator
from .types import OHLCV, FrvpOutput, VolumeProfileRow

logger = logging.getLogger(__name__)

EPSILON = np.finfo(np.float64).eps


# ============================================================================
# VWAP
# ============================================================================

class SessionVWAPStream(StreamingIndicator):
    """
    VWAP reset at every UTC day boundary.

    Accumulates typical price times volume and volume over bars sharing a
    UTC day number; a bar on a new day clears both before it is included.
    """

    def __init__(self):
        super().__init__()
        self.warmup = 0
        self._day = None
        self._cum_tp_volume = 0.0
        self._cum_volume = 0.0

    @property
    def cumulative_volume(self) -> float:
        return self._cum_volume

    @property
    def cumulative_tp_volume(self) -> float:
        return self._cum_tp_volume

    def _update(self, bar: OHLCV) -> Optional[float]:
        day = bar.utc_day()
        if day != self._day:
            self._day = day
            self._cum_tp_volume = 0.0
            self._cum_volume = 0.0
        self._cum_tp_volume += bar.typical_price() * bar.volume
        self._cum_volume += bar.volume
        if self._cum_volume > 0.0:
            return self._cum_tp_volume / self._cum_volume
        return None

    def _reset(self):
        self._day = None
        self._cum_tp_volume = 0.0
        self._cum_volume = 0.0


class RollingVWAPStream(StreamingIndicator):
    """VWAP over the last ``period`` bars."""

    def __init__(self, period: int = 20):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period - 1
        self._tp_volume = RunningSum(self.period)
        self._volume = RunningSum(self.period)
        # bars in the window with positive volume; the sums can keep a residual
        self._positive = RunningSum(self.period)

    def _update(self, bar: OHLCV) -> Optional[float]:
        self._tp_volume.push(bar.typical_price() * bar.volume)
        self._volume.push(bar.volume)
        self._positive.push(1.0 if bar.volume > 0.0 else 0.0)
        if not self._volume.is_full or self._positive.total < 0.5 or self._volume.total <= 0.0:
            return None
        return self._tp_volume.total / self._volume.total

    def _reset(self):
        self._tp_volume.clear()
        self._volume.clear()
        self._positive.clear()


class AnchoredVWAPStream(StreamingIndicator):
    """
    VWAP accumulated from an anchor bar onward.

    The anchor is either a timestamp (first bar at or after it), a bar
    position, or neither, which binds the anchor to the next bar received.
    Output is absent before the anchor.
    """

    def __init__(self, anchor_timestamp: Optional[int] = None,
                 anchor_index: Optional[int] = None):
        super().__init__()
        if anchor_timestamp is not None and anchor_index is not None:
            raise InvalidParameter("specify anchor_timestamp or anchor_index, not both")
        if anchor_index is not None:
            anchor_index = check_period(anchor_index, "anchor_index", minimum=0)
        if anchor_timestamp is not None:
            anchor_timestamp = int(anchor_timestamp)
        self._initial_anchor = (anchor_timestamp, anchor_index)
        self.anchor_timestamp = anchor_timestamp
        self.anchor_index = anchor_index
        self.warmup = anchor_index or 0
        self._position = 0
        self._active = False
        self._cum_tp_volume = 0.0
        self._cum_volume = 0.0

    @property
    def cumulative_volume(self) -> float:
        return self._cum_volume

    @property
    def cumulative_tp_volume(self) -> float:
        return self._cum_tp_volume

    def set_anchor(self, anchor_timestamp: int):
        """Re-anchor at a timestamp, discarding accumulated volume."""
        self.anchor_timestamp = int(anchor_timestamp)
        self.anchor_index = None
        self._restart()

    def anchor_now(self):
        """Re-anchor at the next bar received."""
        self.anchor_timestamp = None
        self.anchor_index = None
        self._restart()

    def _restart(self):
        self._current = None
        self._active = False
        self._cum_tp_volume = 0.0
        self._cum_volume = 0.0

    def _reached(self, bar: OHLCV, position: int) -> bool:
        if self.anchor_index is not None:
            return position >= self.anchor_index
        if self.anchor_timestamp is None:
            self.anchor_timestamp = bar.timestamp
            return True
        return bar.timestamp >= self.anchor_timestamp

    def _update(self, bar: OHLCV) -> Optional[float]:
        position = self._position
        self._position += 1
        if not self._active:
            if not self._reached(bar, position):
                return None
            self._active = True
        self._cum_tp_volume += bar.typical_price() * bar.volume
        self._cum_volume += bar.volume
        if self._cum_volume > 0.0:
            return self._cum_tp_volume / self._cum_volume
        return None

    def _reset(self):
        self.anchor_timestamp, self.anchor_index = self._initial_anchor
        self._position = 0
        self._restart()


@register_indicator("session_vwap")
class SessionVWAP(BarIndicator):
    """Session (UTC day) VWAP."""

    def __init__(self):
        super().__init__(SessionVWAPStream())


@register_indicator("rolling_vwap")
class RollingVWAP(BarIndicator):
    """Rolling-window VWAP."""

    def __init__(self, period: int = 20):
        super().__init__(RollingVWAPStream(period))
        self.period = period


@register_indicator("anchored_vwap")
class AnchoredVWAP(BarIndicator):
    """Anchored VWAP."""

    def __init__(self, anchor_timestamp: Optional[int] = None,
                 anchor_index: Optional[int] = None):
        super().__init__(AnchoredVWAPStream(anchor_timestamp, anchor_index))
        self.anchor_timestamp = anchor_timestamp
        self.anchor_index = anchor_index

    @classmethod
    def from_timestamp(cls, bars: Sequence[OHLCV], anchor_timestamp: int) -> "AnchoredVWAP":
        """
        Anchor at the first bar whose timestamp is at or after
        ``anchor_timestamp``; past the end when no bar qualifies.
        """
        bars = as_bars(bars)
        index = next((i for i, bar in enumerate(bars) if bar.timestamp >= anchor_timestamp),
                     len(bars))
        return cls(anchor_index=index)


def session_vwap(data) -> ArrayLike:
    """
    Session VWAP, reset at each UTC day.

    Parameters:
    -----------
    data : pd.DataFrame or sequence of OHLCV
        Bars; a DataFrame needs OHLCV columns and a timestamp column or
        DatetimeIndex
    """
    return SessionVWAP().calculate(data)


def rolling_vwap(data, n: int = 20) -> ArrayLike:
    """Rolling VWAP over n bars."""
    return RollingVWAP(n).calculate(data)


def anchored_vwap(data, anchor_timestamp: Optional[int] = None,
                  anchor_index: Optional[int] = None) -> ArrayLike:
    """Anchored VWAP from a timestamp or bar position (default: first bar)."""
    return AnchoredVWAP(anchor_timestamp, anchor_index).calculate(data)


# ============================================================================
# Cumulative Volume Delta
# ============================================================================

def ohlcv_delta(high: float, low: float, close: float, volume: float) -> float:
    """
    Approximate signed volume of a bar from where it closed in its range.

    delta = volume * (2 * close - high - low) / (high - low), 0 for a
    zero range or no volume.
    """
    rng = high - low
    if rng <= 0.0 or volume <= 0.0:
        return 0.0
    return volume * (2.0 * close - high - low) / rng


class CVDStream(StreamingIndicator):
    """
    Running sum of signed volume deltas.

    A NaN delta yields no value and leaves the running total untouched.
    """

    def __init__(self):
        super().__init__()
        self.warmup = 0
        self.total = 0.0

    def _update(self, delta: float) -> Optional[float]:
        if math.isnan(delta):
            return None
        self.total += delta
        return self.total

    def _reset(self):
        self.total = 0.0


class CVDOhlcvStream(StreamingIndicator):
    """CVD from (high, low, close, volume) tuples via ``ohlcv_delta``."""

    def __init__(self):
        super().__init__()
        self.warmup = 0
        self.total = 0.0

    def _update(self, item) -> float:
        self.total += ohlcv_delta(*item)
        return self.total

    def _reset(self):
        self.total = 0.0


@register_indicator("cvd")
class CVD(Indicator):
    """Cumulative Volume Delta from signed deltas."""

    inputs = ("delta",)

    def __init__(self):
        super().__init__(CVDStream())


@register_indicator("cvd_ohlcv")
class CVDOhlcv(Indicator):
    """Cumulative Volume Delta approximated from OHLCV bars."""

    inputs = ("high", "low", "close", "volume")

    def __init__(self):
        super().__init__(CVDOhlcvStream())


def cvd(delta: ArrayLike) -> ArrayLike:
    """Cumulative Volume Delta of a signed delta series."""
    return CVD().calculate(delta)


def cvd_ohlcv(high: ArrayLike, low: ArrayLike, close: ArrayLike, volume: ArrayLike) -> ArrayLike:
    """Cumulative Volume Delta estimated from bar ranges."""
    return CVDOhlcv().calculate(high, low, close, volume)


# ============================================================================
# Fixed-Range Volume Profile
# ============================================================================

@jit(nopython=True)
def _bin_volume(lows: np.ndarray, highs: np.ndarray, volumes: np.ndarray,
                range_low: float, bin_size: float, num_bins: int) -> np.ndarray:
    """Spread each bar's volume over the bins it overlaps, pro rata."""
    bins = np.zeros(num_bins)
    for i in range(volumes.shape[0]):
        volume = volumes[i]
        if volume <= 0.0:
            continue
        low = lows[i]
        high = highs[i]
        start = int(np.floor((low - range_low) / bin_size))
        end = int(np.floor((high - range_low) / bin_size))
        start = min(max(start, 0), num_bins - 1)
        end = min(max(end, 0), num_bins - 1)

        bar_range = high - low
        if bar_range < EPSILON:
            bins[start] += volume
            continue
        for b in range(start, end + 1):
            bin_low = range_low + b * bin_size
            bin_high = bin_low + bin_size
            overlap = min(high, bin_high) - max(low, bin_low)
            if overlap > 0.0:
                bins[b] += volume * overlap / bar_range
    return bins


@jit(nopython=True)
def _point_of_control(bins: np.ndarray) -> int:
    # strict comparison keeps the lowest bin on ties
    poc = 0
    best = 0.0
    for i in range(bins.shape[0]):
        if bins[i] > best:
            best = bins[i]
            poc = i
    return poc


@jit(nopython=True)
def _value_area(bins: np.ndarray, poc: int, target: float):
    """Grow [lo, hi] from the POC toward the heavier neighbour until target is covered."""
    lo = poc
    hi = poc
    accumulated = bins[poc]
    last = bins.shape[0] - 1
    while accumulated < target:
        can_down = lo > 0
        can_up = hi < last
        if not can_down and not can_up:
            break
        down = bins[lo - 1] if can_down else 0.0
        up = bins[hi + 1] if can_up else 0.0
        if can_down and (down >= up or not can_up):
            lo -= 1
            accumulated += down
        else:
            hi += 1
            accumulated += up
    return lo, hi, accumulated


def check_value_area(value_area: float) -> float:
    if not (math.isfinite(value_area) and 0.0 <= value_area <= 1.0):
        raise InvalidParameter("value_area must be in [0, 1]")
    return float(value_area)


def compute_profile(highs: np.ndarray, lows: np.ndarray, volumes: np.ndarray,
                    num_bins: int = 100, value_area: float = 0.70) -> FrvpOutput:
    """
    Volume profile over the full price range of the given bars.

    Parameters:
    -----------
    highs, lows, volumes : np.ndarray
        Per-bar high, low and volume (float64, equal length)
    num_bins : int
        Number of equal-width price bins
    value_area : float
        Fraction of total volume the value area must cover

    Returns:
    --------
    FrvpOutput with POC, value area bounds and the histogram
    """
    if len(volumes) == 0:
        raise InsufficientData(required=1, provided=0)

    range_high = float(np.max(highs))
    range_low = float(np.min(lows))

    if range_high - range_low < EPSILON:
        logger.debug("Price range collapsed at %s, using a single bin", range_high)
        total = float(np.sum(volumes))
        row = VolumeProfileRow(price=range_high, volume=total, low=range_low, high=range_high)
        return FrvpOutput(
            poc=range_high, vah=range_high, val=range_low,
            total_volume=total, poc_volume=total, value_area_volume=total,
            range_high=range_high, range_low=range_low, histogram=(row,),
        )

    bin_size = (range_high - range_low) / num_bins
    bins = _bin_volume(lows, highs, volumes, range_low, bin_size, num_bins)
    total = float(bins.sum())
    poc = _point_of_control(bins)
    lo, hi, va_volume = _value_area(bins, poc, total * value_area)

    histogram = tuple(
        VolumeProfileRow(
            price=range_low + (i + 0.5) * bin_size,
            volume=float(bins[i]),
            low=range_low + i * bin_size,
            high=range_low + (i + 1) * bin_size,
        )
        for i in range(num_bins)
    )
    return FrvpOutput(
        poc=range_low + (poc + 0.5) * bin_size,
        vah=range_low + (hi + 1) * bin_size,
        val=range_low + lo * bin_size,
        total_volume=total,
        poc_volume=float(bins[poc]),
        value_area_volume=float(va_volume),
        range_high=range_high,
        range_low=range_low,
        histogram=histogram,
    )


class FRVPStream(StreamingIndicator):
    """
    Volume profile over every bar appended so far.

    Keeps all appended bars and recomputes the profile on each append, so
    memory grows until ``reset``/``clear``.
    """

    output_type = FrvpOutput

    def __init__(self, num_bins: int = 100, value_area: float = 0.70):
        super().__init__()
        self.num_bins = check_period(num_bins, "num_bins")
        self.value_area = check_value_area(value_area)
        self.warmup = 0
        self._highs: List[float] = []
        self._lows: List[float] = []
        self._volumes: List[float] = []

    @property
    def bar_count(self) -> int:
        return len(self._volumes)

    def _update(self, bar: OHLCV) -> FrvpOutput:
        self._highs.append(bar.high)
        self._lows.append(bar.low)
        self._volumes.append(bar.volume)
        return compute_profile(
            np.array(self._highs), np.array(self._lows), np.array(self._volumes),
            self.num_bins, self.value_area,
        )

    def init(self, items) -> List[FrvpOutput]:
        """Reset, append all bars and return ``[profile]`` (``[]`` for no bars)."""
        self.reset()
        bars = list(items)
        if not bars:
            return []
        for bar in bars[:-1]:
            self._highs.append(bar.high)
            self._lows.append(bar.low)
            self._volumes.append(bar.volume)
        logger.debug("FRVPStream replayed %d bars", len(bars))
        return [self.next(bars[-1])]

    def clear(self):
        self.reset()

    def _reset(self):
        self._highs = []
        self._lows = []
        self._volumes = []


@register_indicator("frvp")
class FRVP(BarIndicator):
    """Fixed-Range Volume Profile."""

    def __init__(self, num_bins: int = 100, value_area: float = 0.70):
        super().__init__(FRVPStream(num_bins, value_area))
        self.num_bins = num_bins
        self.value_area = value_area

    def calculate(self, *data) -> FrvpOutput:
        """Profile of all given bars; raises InsufficientData when there are none."""
        bars = self._items(*data)
        if not bars:
            raise InsufficientData(required=1, provided=0)
        return self.stream().init(bars)[0]


def volume_profile(high: ArrayLike, low: ArrayLike, volume: ArrayLike,
                   bins: int = 100, value_area: float = 0.70) -> FrvpOutput:
    """Fixed-range volume profile from high, low and volume arrays."""
    arrays = [as_float_array(high, "high"), as_float_array(low, "low"),
              as_float_array(volume, "volume")]
    check_lengths(arrays, ("high", "low", "volume"))
    return compute_profile(arrays[0], arrays[1], arrays[2],
                           check_period(bins, "num_bins"), check_value_area(value_area))
