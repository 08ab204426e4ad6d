"""Technical indicators (pure math, no I/O)."""

from market_core.indicators.indicators import (
    ema,
    sma,
    rsi,
    rsi_latest,
    macd,
    bollinger_bands,
    stoch_rsi,
    true_range,
    atr,
    volatility_trend_proxy,
    adx_proxy,
    volume_profile,
    fibonacci_levels,
    anchored_vwap,
    pearson_correlation,
    IndicatorCalculator,
)

__all__ = [
    "ema",
    "sma",
    "rsi",
    "rsi_latest",
    "macd",
    "bollinger_bands",
    "stoch_rsi",
    "true_range",
    "atr",
    "volatility_trend_proxy",
    "adx_proxy",
    "volume_profile",
    "fibonacci_levels",
    "anchored_vwap",
    "pearson_correlation",
    "IndicatorCalculator",
]
