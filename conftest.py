"""
Shared fixtures: a reproducible synthetic OHLCV series.
"""

import numpy as np
import pandas as pd
import pytest

from streamta import ohlcv_from_frame

HOUR_MS = 3_600_000


def make_ohlcv(n: int = 300, seed: int = 42, start_ms: int = 1_700_000_000_000,
               step_ms: int = HOUR_MS) -> pd.DataFrame:
    """Random-walk OHLCV bars with consistent high/low envelopes."""
    rng = np.random.default_rng(seed)
    close = 100 + np.cumsum(rng.normal(0, 1, n))
    open_ = close + rng.normal(0, 0.3, n)
    high = np.maximum(open_, close) + rng.uniform(0.01, 1.0, n)
    low = np.minimum(open_, close) - rng.uniform(0.01, 1.0, n)
    volume = rng.uniform(100, 1000, n)
    timestamp = start_ms + step_ms * np.arange(n, dtype=np.int64)
    index = pd.to_datetime(timestamp, unit="ms", utc=True)
    return pd.DataFrame({
        "timestamp": timestamp,
        "open": open_,
        "high": high,
        "low": low,
        "close": close,
        "volume": volume,
    }, index=index)


@pytest.fixture
def ohlcv():
    return make_ohlcv()


@pytest.fixture
def close(ohlcv):
    return ohlcv["close"].to_numpy()


@pytest.fixture
def bars(ohlcv):
    return ohlcv_from_frame(ohlcv)
