"""
Tests for ATR and Bollinger Bands.
"""

import numpy as np
import pandas as pd
import pytest

from streamta import ATR, BollingerBands, InvalidParameter, atr, bollinger_bands, true_range


def test_bollinger_constant_series():
    records = BollingerBands(3, 2.0).calculate([10.0] * 5)
    assert records[0].is_nan() and records[1].is_nan()
    for r in records[2:]:
        assert r.upper == r.middle == r.lower == 10.0
        assert r.percent_b == 0.5
        assert r.bandwidth == 0.0


def test_bollinger_flat_inexact_series():
    records = BollingerBands(20, 2.0).calculate(np.full(200, 0.1))
    assert all(r.is_nan() for r in records[:19])
    for r in records[19:]:
        assert r.upper == r.middle == r.lower == 0.1
        assert r.percent_b == 0.5
        assert r.bandwidth == 0.0


def test_bollinger_matches_population_std(close):
    n, k = 20, 2.0
    out = bollinger_bands(close, n, k)
    rolling = pd.Series(close).rolling(n)
    middle = rolling.mean().to_numpy()
    std = rolling.std(ddof=0).to_numpy()
    np.testing.assert_allclose(out["middle"], middle, atol=1e-8)
    np.testing.assert_allclose(out["upper"], middle + k * std, atol=1e-6)
    np.testing.assert_allclose(out["lower"], middle - k * std, atol=1e-6)


def test_bollinger_percent_b_and_bandwidth(close):
    out = bollinger_bands(close, 20)
    i = 50
    width = out["upper"][i] - out["lower"][i]
    assert out["percent_b"][i] == pytest.approx((close[i] - out["lower"][i]) / width)
    assert out["bandwidth"][i] == pytest.approx(width / out["middle"][i])


def test_bollinger_bandwidth_zero_for_non_positive_middle():
    records = BollingerBands(2).calculate([-1.0, -3.0, -2.0])
    assert records[1].bandwidth == 0.0
    assert records[1].middle == pytest.approx(-2.0)


@pytest.mark.parametrize("k", [0.0, -1.0, float("inf"), float("nan")])
def test_bollinger_invalid_multiplier(k):
    with pytest.raises(InvalidParameter):
        BollingerBands(20, k)


def test_atr_seed_and_smoothing():
    high = np.array([10.0, 11.0, 12.0, 11.5, 13.0])
    low = np.array([9.0, 9.5, 10.5, 10.0, 11.0])
    close = np.array([9.5, 10.5, 11.5, 10.5, 12.5])
    result = ATR(3).calculate(high, low, close)

    tr = [true_range(high[0], low[0])]
    tr += [true_range(high[i], low[i], close[i - 1]) for i in range(1, 5)]
    assert np.isnan(result[:2]).all()
    seed = np.mean(tr[:3])
    assert result[2] == pytest.approx(seed)
    assert result[3] == pytest.approx((seed * 2 + tr[3]) / 3)
    assert result[4] == pytest.approx((result[3] * 2 + tr[4]) / 3)


def test_atr_warmup_and_positivity(ohlcv):
    result = atr(ohlcv["high"], ohlcv["low"], ohlcv["close"], n=14)
    assert isinstance(result, pd.Series)
    values = result.to_numpy()
    assert np.isnan(values[:13]).all()
    assert (values[13:] > 0).all()


def test_atr_length_mismatch():
    with pytest.raises(InvalidParameter):
        ATR(3).calculate([1.0, 2.0, 3.0], [0.5, 1.0], [0.8, 1.5, 2.5])
