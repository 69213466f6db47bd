"""
Momentum indicators and oscillators.

RSI, Stochastic, Stochastic RSI and Money Flow Index, all bounded in
[0, 100] when finite.
"""

import math
from typing import Optional

from .base import Indicator, StreamingIndicator, unpack_records
from .core import (ArrayLike, MaxDeque, MinDeque, RunningSum, WilderSmoother,
                   check_period, typical_price)
from .registry import register_indicator
from .types import StochOutput, StochType, coerce_enum


# ============================================================================
# RSI
# ============================================================================

def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        return 50.0 if avg_gain == 0.0 else 100.0
    if avg_gain == 0.0:
        return 0.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


class RSIStream(StreamingIndicator):
    """
    Relative Strength Index with Wilder smoothing.

    The first value appears after ``period`` price changes, seeded by the
    plain mean of gains and losses. A flat market reads 50.
    """

    def __init__(self, period: int = 14):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period
        self._prev = None
        self._gain = WilderSmoother(self.period)
        self._loss = WilderSmoother(self.period)

    def _update(self, value: float) -> Optional[float]:
        prev = self._prev
        self._prev = value
        if prev is None:
            return None
        change = value - prev
        avg_gain = self._gain.update(max(change, 0.0))
        avg_loss = self._loss.update(max(-change, 0.0))
        if avg_gain is None:
            return None
        return _rsi_value(avg_gain, avg_loss)

    def _reset(self):
        self._prev = None
        self._gain.clear()
        self._loss.clear()


@register_indicator("rsi")
class RSI(Indicator):
    """Relative Strength Index."""

    def __init__(self, period: int = 14):
        super().__init__(RSIStream(period))
        self.period = period


def rsi(close: ArrayLike, n: int = 14) -> ArrayLike:
    """
    Relative Strength Index.

    Parameters:
    -----------
    close : ArrayLike
        Close prices
    n : int
        Period (default: 14)

    Returns:
    --------
    RSI values (0-100)
    """
    return RSI(n).calculate(close)


# ============================================================================
# Stochastic Oscillator
# ============================================================================

def _stoch_position(value: float, highest: float, lowest: float) -> float:
    """Position of value within [lowest, highest] scaled to 0-100; 50 on a flat window."""
    rng = highest - lowest
    if rng == 0.0:
        return 50.0
    return 100.0 * (value - lowest) / rng


class StochasticStream(StreamingIndicator):
    """
    Stochastic oscillator; items are (high, low, close) tuples.

    Fast: %K is the raw position of close in the k-period range.
    Slow: %K is the SMA of raw %K over ``slowing`` bars.
    %D is the SMA of %K over ``d_period`` bars and reads NaN until ready.
    """

    output_type = StochOutput

    def __init__(self, k_period: int = 14, d_period: int = 3, slowing: int = 3,
                 stoch_type=StochType.FAST):
        super().__init__()
        self.k_period = check_period(k_period, "k_period")
        self.d_period = check_period(d_period, "d_period")
        self.slowing = check_period(slowing, "slowing")
        self.stoch_type = coerce_enum(StochType, stoch_type, "stoch_type")
        if self.stoch_type is StochType.FAST:
            self.warmup = self.k_period - 1
        else:
            self.warmup = self.k_period + self.slowing - 2
        self._highest = MaxDeque(self.k_period)
        self._lowest = MinDeque(self.k_period)
        self._count = 0
        self._slow_k = RunningSum(self.slowing)
        self._d = RunningSum(self.d_period)

    def _update(self, item) -> Optional[StochOutput]:
        high, low, close = item
        highest = self._highest.push(high)
        lowest = self._lowest.push(low)
        self._count += 1
        if self._count < self.k_period:
            return None

        k = _stoch_position(close, highest, lowest)
        if self.stoch_type is StochType.SLOW:
            self._slow_k.push(k)
            if not self._slow_k.is_full:
                return None
            k = self._slow_k.mean

        self._d.push(k)
        d = self._d.mean if self._d.is_full else math.nan
        return StochOutput(k, d)

    def _reset(self):
        self._highest.clear()
        self._lowest.clear()
        self._count = 0
        self._slow_k.clear()
        self._d.clear()


@register_indicator("stoch")
class Stochastic(Indicator):
    """Stochastic oscillator (fast or slow)."""

    inputs = ("high", "low", "close")

    def __init__(self, k_period: int = 14, d_period: int = 3, slowing: int = 3,
                 stoch_type=StochType.FAST):
        super().__init__(StochasticStream(k_period, d_period, slowing, stoch_type))
        self.k_period = k_period
        self.d_period = d_period
        self.slowing = slowing
        self.stoch_type = self._prototype.stoch_type


def stochastic(high: ArrayLike, low: ArrayLike, close: ArrayLike,
               k: int = 14, d: int = 3, slowing: int = 3,
               stoch_type=StochType.FAST) -> dict:
    """
    Stochastic oscillator.

    Returns:
    --------
    dict with 'k' and 'd'
    """
    records = Stochastic(k, d, slowing, stoch_type).calculate(high, low, close)
    return unpack_records(records, StochOutput, like=close)


# ============================================================================
# Stochastic RSI
# ============================================================================

class StochRSIStream(StreamingIndicator):
    """
    Stochastic RSI.

    RSI -> position within the rolling RSI range -> SMA (%K) -> SMA (%D).
    Emits (k, NaN) while %D is warming up.
    """

    output_type = StochOutput

    def __init__(self, rsi_period: int = 14, stoch_period: int = 14,
                 k_smooth: int = 3, d_smooth: int = 3):
        super().__init__()
        self.rsi_period = check_period(rsi_period, "rsi_period")
        self.stoch_period = check_period(stoch_period, "stoch_period")
        self.k_smooth = check_period(k_smooth, "k_smooth")
        self.d_smooth = check_period(d_smooth, "d_smooth")
        self.warmup = self.rsi_period + self.stoch_period + self.k_smooth - 2
        self._rsi = RSIStream(self.rsi_period)
        self._highest = MaxDeque(self.stoch_period)
        self._lowest = MinDeque(self.stoch_period)
        self._count = 0
        self._k = RunningSum(self.k_smooth)
        self._d = RunningSum(self.d_smooth)

    def _update(self, value: float) -> Optional[StochOutput]:
        rsi_value = self._rsi.next(value)
        if rsi_value is None:
            return None
        highest = self._highest.push(rsi_value)
        lowest = self._lowest.push(rsi_value)
        self._count += 1
        if self._count < self.stoch_period:
            return None

        self._k.push(_stoch_position(rsi_value, highest, lowest))
        if not self._k.is_full:
            return None
        k = self._k.mean
        self._d.push(k)
        d = self._d.mean if self._d.is_full else math.nan
        return StochOutput(k, d)

    def _reset(self):
        self._rsi.reset()
        self._highest.clear()
        self._lowest.clear()
        self._count = 0
        self._k.clear()
        self._d.clear()


@register_indicator("stoch_rsi")
class StochRSI(Indicator):
    """Stochastic RSI."""

    def __init__(self, rsi_period: int = 14, stoch_period: int = 14,
                 k_smooth: int = 3, d_smooth: int = 3):
        super().__init__(StochRSIStream(rsi_period, stoch_period, k_smooth, d_smooth))
        self.rsi_period = rsi_period
        self.stoch_period = stoch_period
        self.k_smooth = k_smooth
        self.d_smooth = d_smooth


def stoch_rsi(close: ArrayLike, rsi_period: int = 14, stoch_period: int = 14,
              k: int = 3, d: int = 3) -> dict:
    """Stochastic RSI; dict with 'k' and 'd'."""
    records = StochRSI(rsi_period, stoch_period, k, d).calculate(close)
    return unpack_records(records, StochOutput, like=close)


# ============================================================================
# Money Flow Index
# ============================================================================

class MFIStream(StreamingIndicator):
    """
    Money Flow Index; items are (high, low, close, volume) tuples.

    Raw money flow is typical price times volume, classed positive or
    negative by the direction of typical price. Bars with unchanged
    typical price count toward neither side.
    """

    def __init__(self, period: int = 14):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period
        self._prev_tp = None
        self._positive = RunningSum(self.period)
        self._negative = RunningSum(self.period)

    def _update(self, item) -> Optional[float]:
        high, low, close, volume = item
        tp = typical_price(high, low, close)
        prev_tp = self._prev_tp
        self._prev_tp = tp
        if prev_tp is None:
            return None

        flow = tp * volume
        self._positive.push(flow if tp > prev_tp else 0.0)
        self._negative.push(flow if tp < prev_tp else 0.0)
        if not self._positive.is_full:
            return None

        # running totals can drift just below zero
        positive = max(self._positive.total, 0.0)
        negative = max(self._negative.total, 0.0)
        if negative == 0.0:
            return 100.0
        if positive == 0.0:
            return 0.0
        return 100.0 - 100.0 / (1.0 + positive / negative)

    def _reset(self):
        self._prev_tp = None
        self._positive.clear()
        self._negative.clear()


@register_indicator("mfi")
class MFI(Indicator):
    """Money Flow Index."""

    inputs = ("high", "low", "close", "volume")

    def __init__(self, period: int = 14):
        super().__init__(MFIStream(period))
        self.period = period


def mfi(high: ArrayLike, low: ArrayLike, close: ArrayLike, volume: ArrayLike,
        n: int = 14) -> ArrayLike:
    """Money Flow Index (volume-weighted RSI)."""
    return MFI(n).calculate(high, low, close, volume)
