"""
Volatility indicators: Average True Range and Bollinger Bands.
"""

import math
from typing import Optional

from .base import Indicator, StreamingIndicator, unpack_records
from .core import ArrayLike, RunningMoments, WilderSmoother, check_period, true_range
from .errors import InvalidParameter
from .registry import register_indicator
from .types import BollingerOutput


# ============================================================================
# ATR
# ============================================================================

class ATRStream(StreamingIndicator):
    """
    Average True Range; items are (high, low, close) tuples.

    The first bar's true range is high - low. ATR is seeded by the mean of
    the first ``period`` true ranges and Wilder-smoothed afterwards.
    """

    def __init__(self, period: int = 14):
        super().__init__()
        self.period = check_period(period)
        self.warmup = self.period - 1
        self._smoother = WilderSmoother(self.period)
        self._prev_close = None

    def _update(self, item) -> Optional[float]:
        high, low, close = item
        tr = true_range(high, low, self._prev_close)
        self._prev_close = close
        return self._smoother.update(tr)

    def _reset(self):
        self._smoother.clear()
        self._prev_close = None


@register_indicator("atr")
class ATR(Indicator):
    """Average True Range."""

    inputs = ("high", "low", "close")

    def __init__(self, period: int = 14):
        super().__init__(ATRStream(period))
        self.period = period


def atr(high: ArrayLike, low: ArrayLike, close: ArrayLike, n: int = 14) -> ArrayLike:
    """
    Average True Range.

    Parameters:
    -----------
    high, low, close : ArrayLike
        OHLC data
    n : int
        Period (default: 14)
    """
    return ATR(n).calculate(high, low, close)


# ============================================================================
# Bollinger Bands
# ============================================================================

class BollingerBandsStream(StreamingIndicator):
    """
    Bollinger Bands from a running mean and population standard deviation.

    %B is 0.5 when the bands have zero width; bandwidth is 0 when the
    middle band is not positive.
    """

    output_type = BollingerOutput

    def __init__(self, period: int = 20, k: float = 2.0):
        super().__init__()
        self.period = check_period(period)
        if not (math.isfinite(k) and k > 0.0):
            raise InvalidParameter("std_dev multiplier must be finite and positive")
        self.k = float(k)
        self.warmup = self.period - 1
        self._moments = RunningMoments(self.period)

    def _update(self, value: float) -> Optional[BollingerOutput]:
        self._moments.push(value)
        if not self._moments.is_full:
            return None

        middle = self._moments.mean
        offset = self.k * self._moments.std
        upper = middle + offset
        lower = middle - offset
        width = upper - lower
        percent_b = (value - lower) / width if width > 0.0 else 0.5
        bandwidth = width / middle if middle > 0.0 else 0.0
        return BollingerOutput(upper, middle, lower, percent_b, bandwidth)

    def _reset(self):
        self._moments.clear()


@register_indicator("bbands")
class BollingerBands(Indicator):
    """Bollinger Bands."""

    def __init__(self, period: int = 20, k: float = 2.0):
        super().__init__(BollingerBandsStream(period, k))
        self.period = period
        self.k = k


def bollinger_bands(close: ArrayLike, n: int = 20, k: float = 2.0) -> dict:
    """
    Bollinger Bands.

    Returns:
    --------
    dict with 'upper', 'middle', 'lower', 'percent_b', 'bandwidth'
    """
    return unpack_records(BollingerBands(n, k).calculate(close), BollingerOutput, like=close)
