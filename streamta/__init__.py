"""
Dual-mode technical indicators.

Every indicator is available three ways:
- Batch class: ``RSI(14).calculate(close)``, pure, NaN-filled warmup
- Streaming class: ``RSIStream(14)`` with init / next / reset / current
- Function: ``rsi(close, n=14)``

Batch results equal a fresh stream replaying the same input.

Standard signature: fn(series, n=..., **params)
"""

from .errors import IndicatorError, InvalidParameter, InsufficientData, NotInitialized
from .types import (
    OHLCV, ohlcv_bars, ohlcv_from_frame, records_to_frame,
    SignalType, StochType, PivotVariant,
    MacdOutput, BollingerOutput, StochOutput, IchimokuOutput, AdxOutput,
    LinRegOutput, PivotOutput, VolumeProfileRow, FrvpOutput,
)
from .base import Indicator, BarIndicator, StreamingIndicator
from .core import *
from .trend import *
from .momentum import *
from .volatility import *
from .volume import *
from .registry import (
    register_indicator, get_registered_indicators,
    create_indicator, create_stream, IndicatorSpec,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    'IndicatorError', 'InvalidParameter', 'InsufficientData', 'NotInitialized',

    # Data model
    'OHLCV', 'ohlcv_bars', 'ohlcv_from_frame', 'records_to_frame',
    'SignalType', 'StochType', 'PivotVariant',
    'MacdOutput', 'BollingerOutput', 'StochOutput', 'IchimokuOutput',
    'AdxOutput', 'LinRegOutput', 'PivotOutput', 'VolumeProfileRow', 'FrvpOutput',

    # Contract
    'Indicator', 'BarIndicator', 'StreamingIndicator',

    # Primitives
    'RingBuffer', 'RunningSum', 'RunningMoments', 'MaxDeque', 'MinDeque',
    'WilderSmoother', 'typical_price', 'true_range', 'directional_movement',

    # Moving averages
    'SMA', 'EMA', 'WMA', 'HMA',
    'SMAStream', 'EMAStream', 'WMAStream', 'HMAStream',
    'sma', 'ema', 'wma', 'hma',

    # Trend indicators
    'MACD', 'ADX', 'Ichimoku', 'LinReg', 'PivotPoints',
    'MACDStream', 'ADXStream', 'IchimokuStream', 'LinRegStream', 'PivotPointsStream',
    'macd', 'adx', 'ichimoku', 'linreg', 'pivot_points',

    # Momentum indicators
    'RSI', 'Stochastic', 'StochRSI', 'MFI',
    'RSIStream', 'StochasticStream', 'StochRSIStream', 'MFIStream',
    'rsi', 'stochastic', 'stoch_rsi', 'mfi',

    # Volatility indicators
    'ATR', 'BollingerBands', 'ATRStream', 'BollingerBandsStream',
    'atr', 'bollinger_bands',

    # Volume indicators
    'SessionVWAP', 'RollingVWAP', 'AnchoredVWAP', 'CVD', 'CVDOhlcv', 'FRVP',
    'SessionVWAPStream', 'RollingVWAPStream', 'AnchoredVWAPStream',
    'CVDStream', 'CVDOhlcvStream', 'FRVPStream',
    'session_vwap', 'rolling_vwap', 'anchored_vwap', 'cvd', 'cvd_ohlcv',
    'ohlcv_delta', 'volume_profile', 'compute_profile',

    # Registry
    'register_indicator', 'get_registered_indicators',
    'create_indicator', 'create_stream', 'IndicatorSpec',
]
