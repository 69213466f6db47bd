"""
Incremental primitives and price composites.

Bounded-memory building blocks shared by the streaming indicators: ring
buffers, running sums and moments, monotonic min/max deques and Wilder
smoothing. Every push is amortised O(1).
"""

import math
from abc import ABC, abstractmethod
from collections import deque
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

from .errors import InvalidParameter


# Type aliases
ArrayLike = Union[np.ndarray, pd.Series, pd.DataFrame]


def check_period(value, name: str = "period", minimum: int = 1) -> int:
    """Validate an integer window length."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameter(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        if minimum == 1:
            raise InvalidParameter(f"{name} must be greater than 0")
        raise InvalidParameter(f"{name} must be at least {minimum}")
    return int(value)


# ============================================================================
# Buffers
# ============================================================================

class RingBuffer:
    """
    Fixed-capacity circular buffer over numpy storage.

    Parameters:
    -----------
    capacity : int
        Number of elements retained; the oldest element is evicted once full
    """

    def __init__(self, capacity: int):
        self.capacity = check_period(capacity, "capacity")
        self._data = np.zeros(self.capacity)
        self._head = 0
        self._count = 0

    def push(self, value: float) -> Optional[float]:
        """Append a value, returning the evicted element once the buffer is full."""
        evicted = None
        if self._count == self.capacity:
            evicted = float(self._data[self._head])
        else:
            self._count += 1
        self._data[self._head] = value
        self._head = (self._head + 1) % self.capacity
        return evicted

    @property
    def is_full(self) -> bool:
        return self._count == self.capacity

    def oldest(self) -> Optional[float]:
        if self._count == 0:
            return None
        if self._count < self.capacity:
            return float(self._data[0])
        return float(self._data[self._head])

    def ordered(self) -> np.ndarray:
        """Contents from oldest to newest."""
        if self._count < self.capacity:
            return self._data[:self._count].copy()
        return np.concatenate((self._data[self._head:], self._data[:self._head]))

    def clear(self):
        self._data.fill(0.0)
        self._head = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __iter__(self):
        return iter(self.ordered().tolist())


class RunningSum:
    """Windowed sum: ring buffer plus a scalar total updated on every push."""

    def __init__(self, window: int):
        self.window = check_period(window, "window")
        self._buffer = RingBuffer(self.window)
        self.total = 0.0

    def push(self, value: float) -> float:
        evicted = self._buffer.push(value)
        if evicted is not None:
            self.total -= evicted
        self.total += value
        return self.total

    @property
    def is_full(self) -> bool:
        return self._buffer.is_full

    @property
    def count(self) -> int:
        return len(self._buffer)

    @property
    def mean(self) -> float:
        """Total divided by the window length (meaningful once full)."""
        return self.total / self.window

    def clear(self):
        self._buffer.clear()
        self.total = 0.0


class RunningMoments:
    """
    Windowed mean and population variance via Welford's sliding update.

    A constant window keeps the squared-deviation sum at exactly zero.
    """

    def __init__(self, window: int):
        self.window = check_period(window, "window")
        self._buffer = RingBuffer(self.window)
        self.mean = 0.0
        self._m2 = 0.0

    def push(self, value: float):
        evicted = self._buffer.push(value)
        if evicted is None:
            delta = value - self.mean
            self.mean += delta / len(self._buffer)
            self._m2 += delta * (value - self.mean)
            return
        delta = value - evicted
        old_mean = self.mean
        self.mean += delta / self.window
        self._m2 += delta * (value - self.mean + evicted - old_mean)

    @property
    def is_full(self) -> bool:
        return self._buffer.is_full

    @property
    def variance(self) -> float:
        """Population variance, floored at zero."""
        variance = self._m2 / self.window
        return variance if variance > 0.0 else 0.0

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def clear(self):
        self._buffer.clear()
        self.mean = 0.0
        self._m2 = 0.0


# ============================================================================
# Monotonic Deques
# ============================================================================

class _MonotonicDeque(ABC):
    """Sliding-window extreme over (index, value) pairs."""

    def __init__(self, window: int):
        self.window = check_period(window, "window")
        self._deque = deque()
        self._index = 0

    @abstractmethod
    def _dominated(self, back: float, value: float) -> bool:
        """True when ``back`` can never be the extreme again once ``value`` arrives."""
        pass

    def push(self, value: float) -> float:
        """Insert a value and return the extreme of the last ``window`` values."""
        i = self._index
        while self._deque and self._dominated(self._deque[-1][1], value):
            self._deque.pop()
        self._deque.append((i, value))
        while self._deque[0][0] <= i - self.window:
            self._deque.popleft()
        self._index += 1
        return self._deque[0][1]

    @property
    def value(self) -> Optional[float]:
        return self._deque[0][1] if self._deque else None

    def clear(self):
        self._deque.clear()
        self._index = 0

    def __len__(self) -> int:
        return len(self._deque)


class MaxDeque(_MonotonicDeque):
    """Sliding-window maximum."""

    def _dominated(self, back: float, value: float) -> bool:
        return back <= value


class MinDeque(_MonotonicDeque):
    """Sliding-window minimum."""

    def _dominated(self, back: float, value: float) -> bool:
        return back >= value


# ============================================================================
# Smoothing
# ============================================================================

class WilderSmoother:
    """
    Wilder's smoothing (alpha = 1/n).

    Seeded by the arithmetic mean of the first ``period`` samples, then
    s <- (s * (n - 1) + x) / n.
    """

    def __init__(self, period: int):
        self.period = check_period(period)
        self.value: Optional[float] = None
        self._seed_sum = 0.0
        self._count = 0

    def update(self, x: float) -> Optional[float]:
        if self.value is None:
            self._seed_sum += x
            self._count += 1
            if self._count == self.period:
                self.value = self._seed_sum / self.period
            return self.value
        self.value = (self.value * (self.period - 1) + x) / self.period
        return self.value

    @property
    def is_ready(self) -> bool:
        return self.value is not None

    def clear(self):
        self.value = None
        self._seed_sum = 0.0
        self._count = 0


# ============================================================================
# Price Composites
# ============================================================================

def typical_price(high: float, low: float, close: float) -> float:
    """Typical price (high + low + close) / 3."""
    return (high + low + close) / 3.0


def true_range(high: float, low: float, prev_close: Optional[float] = None) -> float:
    """True range; plain high - low when there is no previous close."""
    if prev_close is None:
        return high - low
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def directional_movement(high: float, low: float,
                         prev_high: float, prev_low: float) -> Tuple[float, float]:
    """
    Wilder's directional movement.

    Returns:
    --------
    (plus_dm, minus_dm), at most one of them non-zero
    """
    up_move = high - prev_high
    down_move = prev_low - low
    plus_dm = up_move if (up_move > down_move and up_move > 0.0) else 0.0
    minus_dm = down_move if (down_move > up_move and down_move > 0.0) else 0.0
    return plus_dm, minus_dm
