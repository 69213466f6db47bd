"""
Tests for RSI, Stochastic, Stochastic RSI and MFI.
"""

import numpy as np
import pytest

from streamta import (MFI, RSI, InvalidParameter, Stochastic, StochRSI, StochType, mfi, rsi,
                      stoch_rsi, stochastic)

TOL = 1e-9


def _assert_bounded(values):
    finite = values[np.isfinite(values)]
    assert len(finite) > 0
    assert (finite >= -TOL).all()
    assert (finite <= 100 + TOL).all()


# ============================================================================
# RSI
# ============================================================================

def test_rsi_strictly_increasing_is_100():
    result = RSI(3).calculate([1.0, 2.0, 3.0, 4.0, 5.0])
    assert np.isnan(result[:3]).all()
    np.testing.assert_allclose(result[3:], 100.0)


def test_rsi_strictly_decreasing_is_0():
    result = RSI(3).calculate([5.0, 4.0, 3.0, 2.0, 1.0])
    np.testing.assert_allclose(result[3:], 0.0)


def test_rsi_flat_market_is_50():
    result = rsi(np.full(20, 42.0), n=5)
    np.testing.assert_allclose(result[5:], 50.0)


def test_rsi_wilder_smoothing():
    prices = [10.0, 11.0, 10.5, 11.5, 11.0, 12.0]
    result = RSI(3).calculate(prices)
    # changes: +1, -0.5, +1, -0.5, +1
    avg_gain = 2.0 / 3
    avg_loss = 0.5 / 3
    assert result[3] == pytest.approx(100 - 100 / (1 + avg_gain / avg_loss))
    avg_gain = (avg_gain * 2 + 0.0) / 3
    avg_loss = (avg_loss * 2 + 0.5) / 3
    assert result[4] == pytest.approx(100 - 100 / (1 + avg_gain / avg_loss))


def test_rsi_bounds(close):
    _assert_bounded(rsi(close, 14))


# ============================================================================
# Stochastic
# ============================================================================

def test_fast_stochastic_close_at_high():
    high = np.arange(10.0, 20.0)
    low = high - 2
    close = high.copy()
    records = Stochastic(3, 2).calculate(high, low, close)
    assert records[1].is_nan()
    assert records[2].k == pytest.approx(100.0)
    assert np.isnan(records[2].d)
    assert records[3].d == pytest.approx(100.0)


def test_stochastic_zero_range_is_50():
    flat = np.full(10, 5.0)
    records = Stochastic(3, 3).calculate(flat, flat, flat)
    assert all(r.k == 50.0 for r in records[2:])


def test_slow_stochastic_smooths_raw_k(ohlcv):
    high, low, close = (ohlcv[c].to_numpy() for c in ("high", "low", "close"))
    fast = stochastic(high, low, close, k=14, d=3)
    slow = stochastic(high, low, close, k=14, d=3, slowing=3, stoch_type="slow")
    warmup = 14 + 3 - 2
    assert Stochastic(14, 3, 3, StochType.SLOW).warmup == warmup
    assert np.isnan(slow["k"][:warmup]).all()
    assert slow["k"][warmup] == pytest.approx(fast["k"][warmup - 2:warmup + 1].mean())
    # %D starts d - 1 bars after %K
    assert np.isnan(slow["d"][warmup + 1])
    assert np.isfinite(slow["d"][warmup + 2])


def test_stochastic_bounds(ohlcv):
    high, low, close = (ohlcv[c].to_numpy() for c in ("high", "low", "close"))
    out = stochastic(high, low, close)
    _assert_bounded(out["k"])
    _assert_bounded(out["d"])


def test_stochastic_invalid_type():
    with pytest.raises(InvalidParameter):
        Stochastic(14, 3, stoch_type="medium")


# ============================================================================
# Stochastic RSI
# ============================================================================

def test_stoch_rsi_warmup_and_partial_records(close):
    indicator = StochRSI(5, 5, 3, 3)
    records = indicator.calculate(close)
    warmup = 5 + 5 + 3 - 2
    assert indicator.warmup == warmup
    assert all(r.is_nan() for r in records[:warmup])
    # %K present while %D still warms up
    assert np.isfinite(records[warmup].k)
    assert np.isnan(records[warmup].d)
    assert np.isfinite(records[warmup + 2].d)


def test_stoch_rsi_bounds(close):
    out = stoch_rsi(close)
    _assert_bounded(out["k"])
    _assert_bounded(out["d"])


# ============================================================================
# MFI
# ============================================================================

def test_mfi_rising_typical_price_is_100():
    high = np.arange(11.0, 31.0)
    low = high - 2
    close = high - 1
    volume = np.full(20, 1000.0)
    result = MFI(5).calculate(high, low, close, volume)
    assert np.isnan(result[:5]).all()
    np.testing.assert_allclose(result[5:], 100.0)


def test_mfi_falling_typical_price_is_0():
    high = np.arange(31.0, 11.0, -1.0)
    result = mfi(high, high - 2, high - 1, np.full(20, 500.0), n=5)
    np.testing.assert_allclose(result[5:], 0.0)


def test_mfi_bounds(ohlcv):
    result = mfi(ohlcv["high"], ohlcv["low"], ohlcv["close"], ohlcv["volume"])
    _assert_bounded(result.to_numpy())


def test_mfi_length_mismatch():
    with pytest.raises(InvalidParameter, match="same length"):
        mfi([1.0, 2.0], [1.0, 2.0], [1.0], [1.0, 2.0])
