"""
Tests for MACD, ADX, Ichimoku, linear regression channels and pivot points.
"""

import numpy as np
import pytest

from streamta import (ADX, MACD, EMA, Ichimoku, InvalidParameter, LinReg, PivotPoints,
                      PivotVariant, SignalType, SMA, adx, ichimoku, linreg, macd, pivot_points)


# ============================================================================
# MACD
# ============================================================================

def test_macd_line_is_ema_difference(close):
    out = macd(close, 12, 26, 9)
    expected = EMA(12).calculate(close) - EMA(26).calculate(close)
    assert np.isnan(out["macd"][:25]).all()
    np.testing.assert_allclose(out["macd"][25:], expected[25:], atol=1e-12)


def test_macd_signal_warmup(close):
    records = MACD(12, 26, 9).calculate(close)
    assert records[24].is_nan()
    assert np.isfinite(records[25].macd)
    assert np.isnan(records[25].signal) and np.isnan(records[25].histogram)
    assert np.isnan(records[32].signal)
    first = records[33]
    assert first.is_valid()
    macd_line = np.array([r.macd for r in records[25:34]])
    assert first.signal == pytest.approx(macd_line.mean())
    assert first.histogram == pytest.approx(first.macd - first.signal)


def test_macd_sma_signal(close):
    out = macd(close, 5, 10, 4, signal_type=SignalType.SMA)
    expected = SMA(4).calculate(out["macd"][9:])
    np.testing.assert_allclose(out["signal"][9:], expected, atol=1e-12)


def test_macd_signal_type_from_string():
    assert MACD(3, 6, 2, signal_type="sma").signal_type is SignalType.SMA


@pytest.mark.parametrize("fast,slow,signal", [(26, 12, 9), (12, 12, 9), (0, 26, 9), (12, 26, 0)])
def test_macd_invalid_periods(fast, slow, signal):
    with pytest.raises(InvalidParameter):
        MACD(fast, slow, signal)


# ============================================================================
# ADX
# ============================================================================

def test_adx_flat_market_is_zero():
    flat = np.full(40, 100.0)
    records = ADX(14).calculate(flat, flat, flat)
    assert all(r.is_nan() for r in records[:14])
    assert records[14].plus_di == 0.0 and records[14].minus_di == 0.0
    assert np.isnan(records[14].adx)
    assert records[27].adx == 0.0
    assert all(r.adx == 0.0 for r in records[27:])


def test_adx_warmup(ohlcv):
    n = 10
    out = adx(ohlcv["high"], ohlcv["low"], ohlcv["close"], n)
    plus_di = out["plus_di"].to_numpy()
    adx_line = out["adx"].to_numpy()
    assert np.isnan(plus_di[:n]).all()
    assert np.isfinite(plus_di[n:]).all()
    assert np.isnan(adx_line[:2 * n - 1]).all()
    assert np.isfinite(adx_line[2 * n - 1:]).all()


def test_adx_bounds(ohlcv):
    out = adx(ohlcv["high"].to_numpy(), ohlcv["low"].to_numpy(), ohlcv["close"].to_numpy())
    for key in ("adx", "plus_di", "minus_di"):
        finite = out[key][np.isfinite(out[key])]
        assert ((finite >= 0) & (finite <= 100)).all()


def test_adx_strong_uptrend_favours_plus_di():
    high = np.arange(1.0, 61.0) + 1
    low = high - 2
    close = high - 0.5
    records = ADX(14).calculate(high, low, close)
    last = records[-1]
    assert last.plus_di > last.minus_di
    assert last.adx == pytest.approx(100.0)


# ============================================================================
# Ichimoku
# ============================================================================

def test_ichimoku_lines(ohlcv):
    high, low, close = (ohlcv[c].to_numpy() for c in ("high", "low", "close"))
    out = ichimoku(high, low, close)
    np.testing.assert_array_equal(out["chikou"], close)
    assert np.isnan(out["tenkan"][:8]).all()
    assert out["tenkan"][8] == pytest.approx((high[:9].max() + low[:9].min()) / 2)
    assert out["kijun"][40] == pytest.approx((high[15:41].max() + low[15:41].min()) / 2)
    assert np.isnan(out["senkou_a"][24])
    assert out["senkou_a"][25] == pytest.approx((out["tenkan"][25] + out["kijun"][25]) / 2)
    assert np.isnan(out["senkou_b"][50])
    assert np.isfinite(out["senkou_b"][51])


def test_ichimoku_emits_from_first_bar():
    records = Ichimoku(2, 3, 4).calculate([2.0], [1.0], [1.5])
    assert records[0].chikou == 1.5
    assert not records[0].is_nan()


# ============================================================================
# Linear Regression
# ============================================================================

def test_linreg_perfect_line():
    y = 2.0 * np.arange(10) + 1.0
    records = LinReg(5, 2.0).calculate(y)
    assert all(r.is_nan() for r in records[:4])
    for i in range(4, 10):
        r = records[i]
        assert r.slope == pytest.approx(2.0)
        assert r.value == pytest.approx(y[i])
        assert r.r == pytest.approx(1.0)
        assert r.r_squared == pytest.approx(1.0)
        assert r.upper == pytest.approx(r.value, abs=1e-9)
        assert r.lower == pytest.approx(r.value, abs=1e-9)


def test_linreg_constant_series():
    records = LinReg(4).calculate([3.0] * 6)
    for r in records[3:]:
        assert r.slope == 0.0
        assert r.r == 0.0
        assert r.value == pytest.approx(3.0)


def test_linreg_matches_polyfit(close):
    n = 20
    out = linreg(close, n, multiplier=1.5)
    window = close[30 - n + 1:31]
    x = np.arange(n)
    slope, intercept = np.polyfit(x, window, 1)
    fitted = slope * x + intercept
    std = np.sqrt(np.mean((window - fitted) ** 2))
    assert out["slope"][30] == pytest.approx(slope)
    assert out["value"][30] == pytest.approx(fitted[-1])
    assert out["upper"][30] == pytest.approx(fitted[-1] + 1.5 * std)
    assert out["r"][30] == pytest.approx(np.corrcoef(x, window)[0, 1])


def test_linreg_bounds(close):
    out = linreg(close, 14)
    r = out["r"][13:]
    assert ((r >= -1) & (r <= 1)).all()
    assert ((out["r_squared"][13:] >= 0) & (out["r_squared"][13:] <= 1)).all()


@pytest.mark.parametrize("period,multiplier", [(1, 2.0), (20, -0.5), (20, float("inf"))])
def test_linreg_invalid(period, multiplier):
    with pytest.raises(InvalidParameter):
        LinReg(period, multiplier)


# ============================================================================
# Pivot Points
# ============================================================================

def test_pivot_standard_known_values():
    p = PivotPoints().calculate_single(110.0, 100.0, 105.0)
    assert p.pivot == pytest.approx(105.0)
    assert (p.r1, p.s1) == (pytest.approx(110.0), pytest.approx(100.0))
    assert (p.r2, p.s2) == (pytest.approx(115.0), pytest.approx(95.0))
    assert (p.r3, p.s3) == (pytest.approx(120.0), pytest.approx(90.0))


def test_pivot_fibonacci():
    p = PivotPoints(PivotVariant.FIBONACCI).calculate_single(110.0, 100.0, 105.0)
    assert p.r1 == pytest.approx(108.82)
    assert p.s2 == pytest.approx(98.82)
    assert p.r3 == pytest.approx(115.0)


def test_pivot_woodie():
    p = PivotPoints("woodie").calculate_single(110.0, 100.0, 108.0)
    assert p.pivot == pytest.approx(106.5)
    assert p.r1 == pytest.approx(113.0)
    assert p.s1 == pytest.approx(103.0)


def test_pivot_nan_input():
    assert PivotPoints().calculate_single(np.nan, 100.0, 105.0).is_nan()
    out = pivot_points([110.0, np.nan], [100.0, 99.0], [105.0, 101.0])
    assert out["pivot"][0] == pytest.approx(105.0)
    assert np.isnan(out["pivot"][1])
