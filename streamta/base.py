"""
Batch and streaming indicator contract.

Every indicator ships as a pair: a stateful ``StreamingIndicator`` that
accepts one item at a time, and a stateless ``Indicator`` whose
``calculate`` replays the whole input through a fresh stream. Batch and
streaming outputs therefore agree element-wise by construction.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .core import ArrayLike
from .errors import InvalidParameter, NotInitialized
from .types import OHLCV, ohlcv_from_frame

logger = logging.getLogger(__name__)


# ============================================================================
# Input / Output Helpers
# ============================================================================

def as_float_array(x, name: str = "input") -> np.ndarray:
    """Coerce a list, ndarray or Series to a 1-D float64 array."""
    if isinstance(x, pd.Series):
        arr = x.to_numpy(dtype=float)
    else:
        arr = np.asarray(x, dtype=float)
    if arr.ndim != 1:
        raise InvalidParameter(f"{name} must be one-dimensional, got shape {arr.shape}")
    return arr


def check_lengths(arrays: Sequence[np.ndarray], names: Sequence[str]):
    """All parallel input arrays must share one length."""
    expected = len(arrays[0])
    for name, arr in zip(names[1:], arrays[1:]):
        if len(arr) != expected:
            raise InvalidParameter(
                f"{name} has length {len(arr)}, expected {expected} (all arrays must have the same length)"
            )


def as_bars(data) -> List[OHLCV]:
    """Accept a DataFrame or any iterable of OHLCV bars."""
    if isinstance(data, pd.DataFrame):
        return ohlcv_from_frame(data)
    bars = list(data)
    for bar in bars:
        if not isinstance(bar, OHLCV):
            raise InvalidParameter(f"expected OHLCV bars, got {type(bar).__name__}")
    return bars


def wrap_like(values: np.ndarray, like: Any, name: Optional[str] = None) -> ArrayLike:
    """Return a Series sharing ``like``'s index when it is a pandas object."""
    if isinstance(like, (pd.Series, pd.DataFrame)):
        return pd.Series(values, index=like.index, name=name)
    return values


def unpack_records(records: Sequence, record_type, like: Any = None) -> Dict[str, ArrayLike]:
    """Split a list of records into one array (or Series) per field."""
    out = {}
    for field_name in record_type.field_names():
        values = np.array([getattr(r, field_name) for r in records], dtype=float)
        out[field_name] = wrap_like(values, like, name=field_name)
    return out


# ============================================================================
# Streaming Contract
# ============================================================================

class StreamingIndicator(ABC):
    """
    Stateful incremental indicator.

    Subclasses implement ``_update`` (one item in, value or None out) and
    ``_reset``. ``output_type`` is the record class for multi-valued
    indicators and None for scalar ones.
    """

    output_type = None

    def __init__(self):
        self.warmup = 0
        self._current = None

    @abstractmethod
    def _update(self, item):
        pass

    @abstractmethod
    def _reset(self):
        pass

    def next(self, item):
        """Consume one item; returns the new value, or None while warming up."""
        value = self._update(item)
        if value is not None:
            self._current = value
        return value

    def init(self, items: Iterable):
        """
        Reset and replay a historical prefix.

        Returns:
        --------
        np.ndarray of floats (NaN in the warmup region) for scalar
        indicators, a list of records (all-NaN sentinels) otherwise
        """
        self.reset()
        results = [self._sentinel() if value is None else value
                   for value in map(self.next, items)]
        logger.debug("%s replayed %d items", type(self).__name__, len(results))
        if self.output_type is None:
            return np.array(results, dtype=float)
        return results

    def reset(self):
        """Clear all state; the stream behaves as freshly constructed."""
        self._current = None
        self._reset()

    def is_ready(self) -> bool:
        """True once at least one call to next produced a value."""
        return self._current is not None

    def current(self):
        """Most recently produced value."""
        if self._current is None:
            raise NotInitialized(type(self).__name__)
        return self._current

    def copy(self) -> "StreamingIndicator":
        """Independent deep copy of the stream state."""
        return copy.deepcopy(self)

    def _sentinel(self):
        if self.output_type is None:
            return np.nan
        return self.output_type.nan()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(warmup={self.warmup}, ready={self.is_ready()})"


# ============================================================================
# Batch Contract
# ============================================================================

class Indicator(ABC):
    """
    Stateless batch indicator.

    Constructed from a prototype stream that validates the parameters;
    ``calculate`` replays the input through a copy of it.

    Parameters:
    -----------
    prototype : StreamingIndicator
        Freshly constructed stream carrying the indicator parameters
    """

    name: str = ""
    inputs: Tuple[str, ...] = ("close",)

    def __init__(self, prototype: StreamingIndicator):
        self._prototype = prototype

    def stream(self) -> StreamingIndicator:
        """Fresh stream with identical parameters."""
        return self._prototype.copy()

    @property
    def warmup(self) -> int:
        """Index of the first non-sentinel output."""
        return self._prototype.warmup

    def calculate(self, *data):
        """
        Compute the indicator over full input arrays.

        Parameters:
        -----------
        *data : ArrayLike
            One array per name in ``inputs``, all of equal length

        Returns:
        --------
        np.ndarray (pd.Series when the first input is a Series) for scalar
        indicators, list of output records for multi-valued ones
        """
        items = self._items(*data)
        results = self.stream().init(items)
        if isinstance(results, np.ndarray):
            return wrap_like(results, data[0])
        return results

    def _items(self, *data) -> list:
        if len(data) != len(self.inputs):
            raise InvalidParameter(
                f"{type(self).__name__} expects {len(self.inputs)} input arrays "
                f"({', '.join(self.inputs)}), got {len(data)}"
            )
        arrays = [as_float_array(x, name) for x, name in zip(data, self.inputs)]
        check_lengths(arrays, self.inputs)
        if len(arrays) == 1:
            return arrays[0].tolist()
        return list(zip(*(arr.tolist() for arr in arrays)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._prototype!r})"


class BarIndicator(Indicator):
    """Batch indicator over OHLCV bars (a bar list or an OHLCV DataFrame)."""

    inputs = ("bars",)

    def _items(self, *data) -> list:
        if len(data) != 1:
            raise InvalidParameter(f"{type(self).__name__} expects a single bar sequence or DataFrame")
        return as_bars(data[0])
