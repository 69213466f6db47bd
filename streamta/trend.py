"""
Trend indicators and moving averages.

Streaming implementations of moving averages, MACD, ADX, Ichimoku,
linear-regression channels and pivot points, each paired with a batch
class and a functional shortcut.
"""

import math
from typing import Optional, Tuple

import numpy as np
from numba import jit

from .base import Indicator, StreamingIndicator, unpack_records
from .core import (ArrayLike, MaxDeque, MinDeque, RingBuffer, RunningSum, WilderSmoother,
                   check_period, directional_movement, true_range)
from .errors import InvalidParameter
from .registry import register_indicator
from .types import (AdxOutput, IchimokuOutput, LinRegOutput, MacdOutput, PivotOutput,
                    PivotVariant, SignalType, coerce_enum)


# ============================================================================
# Moving Averages
# ============================================================================

class SMAStream(StreamingIndicator):
    """Simple Moving Average over a ring buffer with a running sum."""

    def __init__(self, period: int):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period - 1
        self._sum = RunningSum(self.period)

    def _update(self, value: float) -> Optional[float]:
        self._sum.push(value)
        if not self._sum.is_full:
            return None
        return self._sum.mean

    def _reset(self):
        self._sum.clear()


class EMAStream(StreamingIndicator):
    """
    Exponential Moving Average.

    Seeded with the SMA of the first ``period`` values, then
    ema <- x * alpha + ema * (1 - alpha).

    Parameters:
    -----------
    period : int
        Seed length; alpha defaults to 2 / (period + 1)
    alpha : float, optional
        Explicit smoothing factor in (0, 1]
    """

    def __init__(self, period: int, alpha: Optional[float] = None):
        super().__init__()
        self.period = check_period(period)
        if alpha is None:
            alpha = 2.0 / (self.period + 1)
        elif not (math.isfinite(alpha) and 0.0 < alpha <= 1.0):
            raise InvalidParameter("alpha must be in (0, 1]")
        self.alpha = float(alpha)
        self.warmup = self.period - 1
        self._count = 0
        self._seed_sum = 0.0
        self._value = None

    def _update(self, value: float) -> Optional[float]:
        if self._value is None:
            self._count += 1
            self._seed_sum += value
            if self._count < self.period:
                return None
            self._value = self._seed_sum / self.period
            return self._value
        self._value = value * self.alpha + self._value * (1.0 - self.alpha)
        return self._value

    def _reset(self):
        self._count = 0
        self._seed_sum = 0.0
        self._value = None


class WMAStream(StreamingIndicator):
    """Linearly Weighted Moving Average with O(1) updates."""

    def __init__(self, period: int):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period - 1
        self._denominator = self.period * (self.period + 1) / 2.0
        self._buffer = RingBuffer(self.period)
        self._simple_sum = 0.0
        self._weighted_sum = 0.0

    def _update(self, value: float) -> Optional[float]:
        if not self._buffer.is_full:
            self._buffer.push(value)
            if not self._buffer.is_full:
                return None
            window = self._buffer.ordered()
            self._simple_sum = float(window.sum())
            self._weighted_sum = float(np.dot(window, np.arange(1, self.period + 1)))
            return self._weighted_sum / self._denominator

        oldest = self._buffer.push(value)
        self._weighted_sum = self._weighted_sum - self._simple_sum + value * self.period
        self._simple_sum = self._simple_sum - oldest + value
        return self._weighted_sum / self._denominator

    def _reset(self):
        self._buffer.clear()
        self._simple_sum = 0.0
        self._weighted_sum = 0.0


class HMAStream(StreamingIndicator):
    """
    Hull Moving Average.

    HMA = WMA(2*WMA(n/2) - WMA(n), sqrt(n))
    """

    def __init__(self, period: int):
        super().__init__()
        self.period = check_period(period, minimum=2)
        half = self.period // 2
        sqrt_n = max(1, int(math.sqrt(self.period)))
        self.warmup = self.period + sqrt_n - 2
        self._half = WMAStream(half)
        self._full = WMAStream(self.period)
        self._smooth = WMAStream(sqrt_n)

    def _update(self, value: float) -> Optional[float]:
        half = self._half.next(value)
        full = self._full.next(value)
        if half is None or full is None:
            return None
        return self._smooth.next(2.0 * half - full)

    def _reset(self):
        self._half.reset()
        self._full.reset()
        self._smooth.reset()


@register_indicator("sma")
class SMA(Indicator):
    """Simple Moving Average."""

    def __init__(self, period: int):
        super().__init__(SMAStream(period))
        self.period = period


@register_indicator("ema")
class EMA(Indicator):
    """Exponential Moving Average, SMA-seeded."""

    def __init__(self, period: int, alpha: Optional[float] = None):
        super().__init__(EMAStream(period, alpha))
        self.period = period
        self.alpha = self._prototype.alpha


@register_indicator("wma")
class WMA(Indicator):
    """Weighted Moving Average."""

    def __init__(self, period: int):
        super().__init__(WMAStream(period))
        self.period = period


@register_indicator("hma")
class HMA(Indicator):
    """Hull Moving Average."""

    def __init__(self, period: int):
        super().__init__(HMAStream(period))
        self.period = period


def sma(close: ArrayLike, n: int) -> ArrayLike:
    """Simple Moving Average."""
    return SMA(n).calculate(close)


def ema(close: ArrayLike, n: int, alpha: Optional[float] = None) -> ArrayLike:
    """
    Exponential Moving Average.

    Parameters:
    -----------
    close : ArrayLike
        Price series
    n : int
        Period for EMA
    alpha : float, optional
        Smoothing factor overriding 2 / (n + 1)
    """
    return EMA(n, alpha).calculate(close)


def wma(close: ArrayLike, n: int) -> ArrayLike:
    """
    Weighted Moving Average.

    Weights increase linearly from oldest to newest.
    """
    return WMA(n).calculate(close)


def hma(close: ArrayLike, n: int) -> ArrayLike:
    """Hull Moving Average."""
    return HMA(n).calculate(close)


# ============================================================================
# MACD
# ============================================================================

class MACDStream(StreamingIndicator):
    """
    Moving Average Convergence Divergence.

    The MACD line starts once the slow EMA is seeded; the signal line
    smooths valid MACD values only, and signal/histogram stay NaN until it
    is ready.
    """

    output_type = MacdOutput

    def __init__(self, fast: int = 12, slow: int = 26, signal: int = 9,
                 signal_type=SignalType.EMA):
        super().__init__()
        self.fast = check_period(fast, "fast")
        self.slow = check_period(slow, "slow")
        self.signal = check_period(signal, "signal")
        if self.fast >= self.slow:
            raise InvalidParameter("fast period must be less than slow period")
        self.signal_type = coerce_enum(SignalType, signal_type, "signal_type")
        self.warmup = self.slow - 1
        self._fast_ema = EMAStream(self.fast)
        self._slow_ema = EMAStream(self.slow)
        if self.signal_type is SignalType.EMA:
            self._signal_line = EMAStream(self.signal)
        else:
            self._signal_line = SMAStream(self.signal)

    def _update(self, value: float) -> Optional[MacdOutput]:
        fast = self._fast_ema.next(value)
        slow = self._slow_ema.next(value)
        if fast is None or slow is None:
            return None
        macd = fast - slow
        signal = self._signal_line.next(macd)
        if signal is None:
            return MacdOutput(macd, math.nan, math.nan)
        return MacdOutput(macd, signal, macd - signal)

    def _reset(self):
        self._fast_ema.reset()
        self._slow_ema.reset()
        self._signal_line.reset()


@register_indicator("macd")
class MACD(Indicator):
    """MACD line, signal line and histogram."""

    def __init__(self, fast: int = 12, slow: int = 26, signal: int = 9,
                 signal_type=SignalType.EMA):
        super().__init__(MACDStream(fast, slow, signal, signal_type))
        self.fast = fast
        self.slow = slow
        self.signal = signal
        self.signal_type = self._prototype.signal_type


def macd(close: ArrayLike, fast: int = 12, slow: int = 26, signal: int = 9,
         signal_type=SignalType.EMA) -> dict:
    """
    MACD (Moving Average Convergence Divergence).

    Returns:
    --------
    dict with 'macd', 'signal', 'histogram'
    """
    records = MACD(fast, slow, signal, signal_type).calculate(close)
    return unpack_records(records, MacdOutput, like=close)


# ============================================================================
# ADX
# ============================================================================

def _di_dx(plus_dm: float, minus_dm: float, tr: float) -> Tuple[float, float, float]:
    """Directional indicators and DX from smoothed movement and true range."""
    if tr == 0.0:
        return 0.0, 0.0, 0.0
    plus_di = 100.0 * plus_dm / tr
    minus_di = 100.0 * minus_dm / tr
    di_sum = plus_di + minus_di
    dx = 100.0 * abs(plus_di - minus_di) / di_sum if di_sum != 0.0 else 0.0
    return plus_di, minus_di, dx


class ADXStream(StreamingIndicator):
    """
    Average Directional Index with +DI / -DI.

    Items are (high, low, close) tuples. DI values appear once ``period``
    bar-to-bar changes have been smoothed; ADX needs a further ``period``
    DX values.
    """

    output_type = AdxOutput

    def __init__(self, period: int = 14):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period
        self._tr = WilderSmoother(self.period)
        self._plus_dm = WilderSmoother(self.period)
        self._minus_dm = WilderSmoother(self.period)
        self._adx = WilderSmoother(self.period)
        self._prev = None

    def _update(self, item) -> Optional[AdxOutput]:
        high, low, close = item
        prev = self._prev
        self._prev = (high, low, close)
        if prev is None:
            return None

        prev_high, prev_low, prev_close = prev
        plus_dm, minus_dm = directional_movement(high, low, prev_high, prev_low)
        tr = self._tr.update(true_range(high, low, prev_close))
        smoothed_plus = self._plus_dm.update(plus_dm)
        smoothed_minus = self._minus_dm.update(minus_dm)
        if tr is None:
            return None

        plus_di, minus_di, dx = _di_dx(smoothed_plus, smoothed_minus, tr)
        adx = self._adx.update(dx)
        return AdxOutput(math.nan if adx is None else adx, plus_di, minus_di)

    def _reset(self):
        self._tr.clear()
        self._plus_dm.clear()
        self._minus_dm.clear()
        self._adx.clear()
        self._prev = None


@register_indicator("adx")
class ADX(Indicator):
    """Average Directional Index."""

    inputs = ("high", "low", "close")

    def __init__(self, period: int = 14):
        super().__init__(ADXStream(period))
        self.period = period


def adx(high: ArrayLike, low: ArrayLike, close: ArrayLike, n: int = 14) -> dict:
    """
    Average Directional Index.

    Returns:
    --------
    dict with 'adx', 'plus_di', 'minus_di'
    """
    return unpack_records(ADX(n).calculate(high, low, close), AdxOutput, like=close)


# ============================================================================
# Ichimoku
# ============================================================================

class IchimokuStream(StreamingIndicator):
    """
    Ichimoku Kinko Hyo.

    Tenkan, kijun and senkou B are (highest high + lowest low) / 2 over
    their windows. Lines are reported unshifted: displacing senkou spans
    forward and chikou back is left to the caller.
    """

    output_type = IchimokuOutput

    def __init__(self, tenkan: int = 9, kijun: int = 26, senkou_b: int = 52):
        super().__init__()
        self.tenkan = check_period(tenkan, "tenkan")
        self.kijun = check_period(kijun, "kijun")
        self.senkou_b = check_period(senkou_b, "senkou_b")
        self.warmup = 0
        self._windows = [(MaxDeque(p), MinDeque(p)) for p in (self.tenkan, self.kijun, self.senkou_b)]
        self._count = 0

    def _update(self, item) -> IchimokuOutput:
        high, low, close = item
        self._count += 1
        lines = []
        for (highest, lowest), period in zip(self._windows, (self.tenkan, self.kijun, self.senkou_b)):
            mid = (highest.push(high) + lowest.push(low)) / 2.0
            lines.append(mid if self._count >= period else math.nan)
        tenkan, kijun, senkou_b = lines
        senkou_a = (tenkan + kijun) / 2.0
        return IchimokuOutput(tenkan, kijun, senkou_a, senkou_b, close)

    def _reset(self):
        for highest, lowest in self._windows:
            highest.clear()
            lowest.clear()
        self._count = 0


@register_indicator("ichimoku")
class Ichimoku(Indicator):
    """Ichimoku cloud lines (unshifted)."""

    inputs = ("high", "low", "close")

    def __init__(self, tenkan: int = 9, kijun: int = 26, senkou_b: int = 52):
        super().__init__(IchimokuStream(tenkan, kijun, senkou_b))
        self.tenkan = tenkan
        self.kijun = kijun
        self.senkou_b = senkou_b


def ichimoku(high: ArrayLike, low: ArrayLike, close: ArrayLike,
             tenkan: int = 9, kijun: int = 26, senkou_b: int = 52) -> dict:
    """
    Ichimoku Kinko Hyo.

    Returns:
    --------
    dict with 'tenkan', 'kijun', 'senkou_a', 'senkou_b', 'chikou'
    """
    records = Ichimoku(tenkan, kijun, senkou_b).calculate(high, low, close)
    return unpack_records(records, IchimokuOutput, like=close)


# ============================================================================
# Linear Regression Channel
# ============================================================================

@jit(nopython=True)
def _regression_window(y: np.ndarray):
    """
    Least-squares fit of y against x = 0..n-1.

    Returns (value at window end, slope, r, population residual std).
    """
    n = y.shape[0]
    x_mean = (n - 1) / 2.0
    y_mean = 0.0
    for i in range(n):
        y_mean += y[i]
    y_mean /= n

    sxy = 0.0
    sxx = 0.0
    syy = 0.0
    for i in range(n):
        dx = i - x_mean
        dy = y[i] - y_mean
        sxy += dx * dy
        sxx += dx * dx
        syy += dy * dy

    slope = 0.0
    if sxx != 0.0:
        slope = sxy / sxx
    intercept = y_mean - slope * x_mean

    r = 0.0
    if sxx != 0.0 and syy != 0.0:
        r = sxy / np.sqrt(sxx * syy)
        r = min(1.0, max(-1.0, r))

    ss_resid = 0.0
    for i in range(n):
        resid = y[i] - (slope * i + intercept)
        ss_resid += resid * resid

    value = slope * (n - 1) + intercept
    return value, slope, r, np.sqrt(ss_resid / n)


class LinRegStream(StreamingIndicator):
    """
    Linear regression channel over a sliding window.

    Bands are the fitted end value plus/minus ``multiplier`` residual
    standard deviations. Each update refits the window in O(period).
    """

    output_type = LinRegOutput

    def __init__(self, period: int = 20, multiplier: float = 2.0):
        super().__init__()
        self.period = check_period(period, minimum=2)
        if not (math.isfinite(multiplier) and multiplier >= 0.0):
            raise InvalidParameter("multiplier must be finite and non-negative")
        self.multiplier = float(multiplier)
        self.warmup = self.period - 1
        self._buffer = RingBuffer(self.period)

    def _update(self, value: float) -> Optional[LinRegOutput]:
        self._buffer.push(value)
        if not self._buffer.is_full:
            return None
        fitted, slope, r, std = _regression_window(self._buffer.ordered())
        band = self.multiplier * std
        return LinRegOutput(fitted, fitted + band, fitted - band, slope, r, r * r)

    def _reset(self):
        self._buffer.clear()


@register_indicator("linreg")
class LinReg(Indicator):
    """Linear regression channel."""

    def __init__(self, period: int = 20, multiplier: float = 2.0):
        super().__init__(LinRegStream(period, multiplier))
        self.period = period
        self.multiplier = multiplier


def linreg(close: ArrayLike, n: int = 20, multiplier: float = 2.0) -> dict:
    """
    Linear regression channel.

    Returns:
    --------
    dict with 'value', 'upper', 'lower', 'slope', 'r', 'r_squared'
    """
    return unpack_records(LinReg(n, multiplier).calculate(close), LinRegOutput, like=close)


# ============================================================================
# Pivot Points
# ============================================================================

def _pivot_levels(high: float, low: float, close: float, variant: PivotVariant) -> PivotOutput:
    if math.isnan(high) or math.isnan(low) or math.isnan(close):
        return PivotOutput.nan()

    rng = high - low
    if variant is PivotVariant.FIBONACCI:
        p = (high + low + close) / 3.0
        return PivotOutput(
            pivot=p,
            r1=p + 0.382 * rng, r2=p + 0.618 * rng, r3=p + rng,
            s1=p - 0.382 * rng, s2=p - 0.618 * rng, s3=p - rng,
        )

    if variant is PivotVariant.WOODIE:
        p = (high + low + 2.0 * close) / 4.0
    else:
        p = (high + low + close) / 3.0
    return PivotOutput(
        pivot=p,
        r1=2.0 * p - low, r2=p + rng, r3=high + 2.0 * (p - low),
        s1=2.0 * p - high, s2=p - rng, s3=low - 2.0 * (high - p),
    )


class PivotPointsStream(StreamingIndicator):
    """Per-bar pivot levels; items are (high, low, close) tuples."""

    output_type = PivotOutput

    def __init__(self, variant=PivotVariant.STANDARD):
        super().__init__()
        self.variant = coerce_enum(PivotVariant, variant, "variant")
        self.warmup = 0

    def _update(self, item) -> Optional[PivotOutput]:
        levels = _pivot_levels(*item, self.variant)
        return None if levels.is_nan() else levels

    def _reset(self):
        pass


@register_indicator("pivot_points")
class PivotPoints(Indicator):
    """Pivot points: standard, Fibonacci or Woodie."""

    inputs = ("high", "low", "close")

    def __init__(self, variant=PivotVariant.STANDARD):
        super().__init__(PivotPointsStream(variant))
        self.variant = self._prototype.variant

    def calculate_single(self, high: float, low: float, close: float) -> PivotOutput:
        """Levels for one bar (usually the previous session's H/L/C)."""
        return _pivot_levels(float(high), float(low), float(close), self.variant)


def pivot_points(high: ArrayLike, low: ArrayLike, close: ArrayLike,
                 variant=PivotVariant.STANDARD) -> dict:
    """
    Pivot points per bar.

    Returns:
    --------
    dict with 'pivot', 'r1', 'r2', 'r3', 's1', 's2', 's3'
    """
    records = PivotPoints(variant).calculate(high, low, close)
    return unpack_records(records, PivotOutput, like=close)
