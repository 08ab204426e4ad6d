"""Technical indicators for market analysis.

All series functions return lists aligned 1:1 with their input, using
``None`` where the lookback is insufficient. Computation happens on
NumPy arrays with NaN as the internal placeholder; NaN never leaves
this module.
"""

from typing import Sequence

import numpy as np

from market_core.models.analysis import FibonacciLevels, StochRSI, VolumeBin, VolumeProfile
from market_core.models.candle import Candle, ChartPoint, get_closes

FIB_RATIOS = (0.236, 0.382, 0.5, 0.618, 0.786)
VALUE_AREA_SHARE = 0.7


# =============================================================================
# Helpers
# =============================================================================

def _to_optional(arr: np.ndarray) -> list[float | None]:
    """Convert a NaN-padded array into an aligned optional list."""
    return [None if np.isnan(v) else float(v) for v in arr]


def _to_array(values: Sequence[float | None]) -> np.ndarray:
    return np.array([np.nan if v is None else float(v) for v in values], dtype=np.float64)


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# =============================================================================
# Moving averages and oscillators
# =============================================================================

def ema(values: Sequence[float], period: int) -> list[float | None]:
    """
    Calculate Exponential Moving Average.

    Seeded with the SMA of the first ``period`` values, then smoothed
    with ``k = 2 / (period + 1)``.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values (None for the first period - 1 entries)
    """
    if len(values) < period:
        return [None] * len(values)

    arr = np.asarray(values, dtype=np.float64)
    multiplier = 2.0 / (period + 1)

    result = np.empty_like(arr)
    result[:period - 1] = np.nan
    result[period - 1] = np.mean(arr[:period])

    for i in range(period, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return _to_optional(result)


def sma(values: Sequence[float], period: int) -> list[float | None]:
    """Calculate Simple Moving Average."""
    if len(values) < period:
        return [None] * len(values)

    arr = np.asarray(values, dtype=np.float64)
    result = np.empty_like(arr)
    result[:period - 1] = np.nan

    for i in range(period - 1, len(arr)):
        result[i] = np.mean(arr[i - period + 1 : i + 1])

    return _to_optional(result)


def rsi(prices: Sequence[float], period: int = 14) -> list[float | None]:
    """
    Calculate the Relative Strength Index series (Wilder smoothing).

    The first value is defined at index ``period``, seeded from the
    average gain/loss of the first ``period`` price changes. A window
    without losses reads 100.

    Args:
        prices: Sequence of close prices
        period: RSI period

    Returns:
        List of RSI values in [0, 100]
    """
    n = len(prices)
    if n < period + 1:
        return [None] * n

    arr = np.asarray(prices, dtype=np.float64)
    changes = np.diff(arr)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    result = np.full(n, np.nan)
    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return _to_optional(result)


def rsi_latest(prices: Sequence[float], period: int = 14) -> float | None:
    """Get the latest RSI value, or None if there is not enough data."""
    if len(prices) <= period:
        return None
    return rsi(prices, period)[-1]


def macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[list[float | None], list[float | None], list[float | None]]:
    """
    Calculate MACD line, signal line and histogram.

    The signal line is the EMA of the defined part of the MACD line,
    re-aligned to the input by left padding.

    Returns:
        Tuple of (macd_line, signal_line, histogram)
    """
    n = len(prices)
    fast_ema = _to_array(ema(prices, fast))
    slow_ema = _to_array(ema(prices, slow))
    macd_line = fast_ema - slow_ema

    signal_line = np.full(n, np.nan)
    defined = np.flatnonzero(~np.isnan(macd_line))
    if defined.size:
        start = int(defined[0])
        signal_line[start:] = _to_array(ema(macd_line[start:], signal))

    histogram = macd_line - signal_line
    return _to_optional(macd_line), _to_optional(signal_line), _to_optional(histogram)


def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    k: float = 2.0,
) -> tuple[list[float | None], list[float | None], list[float | None]]:
    """
    Calculate Bollinger Bands using the population standard deviation.

    Returns:
        Tuple of (upper, middle, lower)
    """
    arr = np.asarray(prices, dtype=np.float64)
    n = len(arr)
    upper = np.full(n, np.nan)
    middle = np.full(n, np.nan)
    lower = np.full(n, np.nan)

    for i in range(period - 1, n):
        window = arr[i - period + 1 : i + 1]
        mean = np.mean(window)
        std = np.std(window)
        middle[i] = mean
        upper[i] = mean + k * std
        lower[i] = mean - k * std

    return _to_optional(upper), _to_optional(middle), _to_optional(lower)


def stoch_rsi(prices: Sequence[float], period: int = 14) -> StochRSI | None:
    """
    Calculate Stochastic RSI.

    RSI is min/max normalised over a trailing ``period`` window of RSI
    values. %K is the 3-period SMA of the normalised series (x100), %D
    the 3-period SMA of %K. ``raw_k`` is the latest unsmoothed reading.
    A flat window normalises to the midpoint.

    Returns:
        StochRSI, or None with fewer than ``period + 5`` RSI samples
    """
    rsi_values = np.array([v for v in rsi(prices, period) if v is not None], dtype=np.float64)
    if len(rsi_values) < period + 5:
        return None

    stoch = []
    for i in range(period, len(rsi_values)):
        window = rsi_values[i - period + 1 : i + 1]
        low, high = window.min(), window.max()
        if high == low:
            stoch.append(0.5)
        else:
            stoch.append((rsi_values[i] - low) / (high - low))

    k_values = np.convolve(np.array(stoch) * 100.0, np.ones(3) / 3, mode="valid")
    d_values = np.convolve(k_values, np.ones(3) / 3, mode="valid")

    return StochRSI(
        k=float(k_values[-1]),
        d=float(d_values[-1]),
        raw_k=float(stoch[-1] * 100.0),
    )


# =============================================================================
# Volatility
# =============================================================================

def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close)).
    The first entry has no previous close and is the plain high - low.
    """
    n = len(highs)
    if n == 0:
        return []

    result = [highs[0] - lows[0]]
    for i in range(1, n):
        hl = highs[i] - lows[i]
        hc = abs(highs[i] - closes[i - 1])
        lc = abs(lows[i] - closes[i - 1])
        result.append(max(hl, hc, lc))

    return result


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float | None:
    """
    Calculate Average True Range as the simple mean of the last
    ``period`` true ranges (each with a previous close).

    Returns:
        ATR value, or None with fewer than ``period + 1`` candles
    """
    if len(highs) < period + 1:
        return None
    tr = np.asarray(true_range(highs, lows, closes)[1:], dtype=np.float64)
    return float(np.mean(tr[-period:]))


def volatility_trend_proxy(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float | None:
    """
    Volatility-based trend-strength proxy used in place of ADX.

    This is not Wilder's ADX: it is the mean absolute close-to-close
    change over the last ``period`` closes relative to the last close,
    scaled by 1000 and clamped to [10, 60]. Scoring thresholds are
    tuned against this scale.

    Returns:
        Proxy value, or None with fewer than ``2 * period`` candles or a
        zero last close
    """
    if len(highs) < period * 2 or len(closes) == 0:
        return None
    last = closes[-1]
    if last == 0:
        return None

    window = np.asarray(closes[-period:], dtype=np.float64)
    # first change in the window counts as zero
    avg_change = np.sum(np.abs(np.diff(window))) / period
    return float(min(max(avg_change / last * 1000, 10.0), 60.0))


adx_proxy = volatility_trend_proxy


# =============================================================================
# Price levels
# =============================================================================

def volume_profile(
    prices: Sequence[float],
    volumes: Sequence[float],
    bins: int = 24,
) -> VolumeProfile:
    """
    Calculate a volume-at-price profile.

    Prices are bucketed into equal-width bins over [min, max] (bin price
    is the lower edge). The Point of Control is the first bin with the
    most volume; the Value Area grows from it toward the heavier
    neighbour (ties grow downward) until it holds 70% of total volume.

    Args:
        prices: Sequence of prices
        volumes: Sequence of volumes aligned with prices
        bins: Number of bins

    Returns:
        VolumeProfile (all zero with no bins for empty input)
    """
    n = min(len(prices), len(volumes))
    if n == 0:
        return VolumeProfile()

    price_arr = np.asarray(prices[:n], dtype=np.float64)
    vol_arr = np.asarray(volumes[:n], dtype=np.float64)
    low, high = float(price_arr.min()), float(price_arr.max())
    price_range = high - low

    if price_range == 0:
        total = float(vol_arr.sum())
        return VolumeProfile(
            poc=low,
            value_area_low=low,
            value_area_high=low,
            bins=[VolumeBin(price=low, volume=total)],
        )

    step = price_range / bins
    edges = [low + i * step for i in range(bins)]
    indices = np.clip(np.floor((price_arr - low) / step).astype(int), 0, bins - 1)
    bin_volumes = np.bincount(indices, weights=vol_arr, minlength=bins)

    poc_idx = int(np.argmax(bin_volumes))
    target = float(bin_volumes.sum()) * VALUE_AREA_SHARE
    current = float(bin_volumes[poc_idx])
    low_idx = high_idx = poc_idx

    while current < target and (low_idx > 0 or high_idx < bins - 1):
        lower = bin_volumes[low_idx - 1] if low_idx > 0 else 0.0
        upper = bin_volumes[high_idx + 1] if high_idx < bins - 1 else 0.0
        if high_idx < bins - 1 and (low_idx == 0 or upper > lower):
            high_idx += 1
            current += upper
        else:
            low_idx -= 1
            current += lower

    return VolumeProfile(
        poc=edges[poc_idx],
        value_area_low=edges[low_idx],
        value_area_high=edges[high_idx],
        bins=[VolumeBin(price=p, volume=float(v)) for p, v in zip(edges, bin_volumes)],
    )


def fibonacci_levels(prices: Sequence[float], lookback: int = 100) -> FibonacciLevels | None:
    """
    Calculate Fibonacci retracement levels over the trailing window.

    fib_x = high - (high - low) * x
    """
    if len(prices) == 0:
        return None

    window = np.asarray(prices[-lookback:], dtype=np.float64)
    low, high = float(window.min()), float(window.max())
    diff = high - low
    fib_236, fib_382, fib_500, fib_618, fib_786 = (high - diff * r for r in FIB_RATIOS)

    return FibonacciLevels(
        low=low,
        high=high,
        fib_236=fib_236,
        fib_382=fib_382,
        fib_500=fib_500,
        fib_618=fib_618,
        fib_786=fib_786,
    )


def anchored_vwap(candles: Sequence[Candle], anchor_index: int = 0) -> list[float | None]:
    """
    Calculate VWAP anchored at a given candle.

    Uses close * volume. Entries before the anchor are None; while no
    volume has accumulated the close itself is reported. An anchor
    outside the series yields an all-None series.
    """
    n = len(candles)
    if anchor_index < 0 or anchor_index >= n:
        return [None] * n

    result: list[float | None] = [None] * anchor_index
    cum_vol = 0.0
    cum_pv = 0.0
    for candle in candles[anchor_index:]:
        cum_pv += candle.close * candle.volume
        cum_vol += candle.volume
        result.append(cum_pv / cum_vol if cum_vol > 0 else candle.close)

    return result


def pearson_correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Pearson correlation over the overlapping suffix of two series.

    Returns 0 with fewer than 10 points or when either series is flat.
    """
    n = min(len(a), len(b))
    if n < 10:
        return 0.0

    x = np.asarray(a[-n:], dtype=np.float64)
    y = np.asarray(b[-n:], dtype=np.float64)
    dx = x - x.mean()
    dy = y - y.mean()
    den_x = float(np.sum(dx * dx))
    den_y = float(np.sum(dy * dy))
    if den_x == 0 or den_y == 0:
        return 0.0
    return float(np.sum(dx * dy) / np.sqrt(den_x * den_y))


# =============================================================================
# IndicatorCalculator class
# =============================================================================

class IndicatorCalculator:
    """Calculator for the chart indicators (RSI, MACD, Bollinger Bands)."""

    def __init__(
        self,
        rsi_period: int = 14,
        macd_fast: int = 12,
        macd_slow: int = 26,
        macd_signal: int = 9,
        bb_period: int = 20,
        bb_k: float = 2.0,
    ):
        self.rsi_period = rsi_period
        self.macd_fast = macd_fast
        self.macd_slow = macd_slow
        self.macd_signal = macd_signal
        self.bb_period = bb_period
        self.bb_k = bb_k

    @property
    def min_candles(self) -> int:
        """Candles needed before every indicator is defined."""
        return max(
            self.rsi_period + 1,
            self.macd_slow + self.macd_signal - 1,
            self.bb_period,
        )

    def calculate_all(self, candles: Sequence[Candle]) -> dict[str, list[float | None]]:
        """
        Calculate all indicators for the given candles.

        Returns:
            Dict of indicator name to aligned series
        """
        closes = get_closes(candles)
        macd_line, signal_line, histogram = macd(
            closes, self.macd_fast, self.macd_slow, self.macd_signal
        )
        upper, _, lower = bollinger_bands(closes, self.bb_period, self.bb_k)

        return {
            "rsi": rsi(closes, self.rsi_period),
            "macd_line": macd_line,
            "signal_line": signal_line,
            "histogram": histogram,
            "upper_band": upper,
            "lower_band": lower,
        }

    def chart_points(self, candles: Sequence[Candle]) -> list[ChartPoint]:
        """Augment candles with indicator values."""
        indicators = self.calculate_all(candles)
        return [
            ChartPoint(
                time=c.time,
                price=c.close,
                high=c.high,
                low=c.low,
                volume=c.volume,
                **{name: series[i] for name, series in indicators.items()},
            )
            for i, c in enumerate(candles)
        ]

    def calculate_latest(self, candles: Sequence[Candle]) -> dict[str, float] | None:
        """
        Calculate indicators for the latest candle only.

        Returns:
            Dict with indicator values for the latest candle, or None if
            not enough data
        """
        if len(candles) < self.min_candles:
            return None

        indicators = self.calculate_all(candles)
        return {name: series[-1] for name, series in indicators.items()}
