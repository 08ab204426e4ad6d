"""Price/oscillator divergence detection."""

from typing import Sequence

from market_core.models.analysis import (
    NO_DIVERGENCE,
    DivergenceResult,
    DivergenceStrength,
    DivergenceType,
)

MIN_SAMPLES = 20
PEAK_START = 5
RECENT_BARS = 15


def find_peaks(values: Sequence[float], kind: str = "high") -> list[int]:
    """
    Find strict local extremes against the two bars on each side.

    Only indices in ``[5, len - 2)`` are considered.

    Args:
        values: Price series
        kind: "high" for peaks, "low" for troughs

    Returns:
        Indices of the extremes in ascending order
    """
    indices = []
    for i in range(PEAK_START, len(values) - 2):
        val = values[i]
        neighbours = (values[i - 2], values[i - 1], values[i + 1], values[i + 2])
        if kind == "high":
            if all(val > other for other in neighbours):
                indices.append(i)
        elif all(val < other for other in neighbours):
            indices.append(i)
    return indices


def detect_divergence(
    prices: Sequence[float],
    oscillator: Sequence[float | None],
) -> DivergenceResult:
    """
    Detect regular divergence between price and an oscillator (RSI).

    Bearish: the last two price peaks rise while the oscillator falls at
    the same indices. Bullish: the last two troughs fall while the
    oscillator rises. The last extreme must be within 15 bars of the
    end. Bearish takes precedence.
    """
    if len(prices) < MIN_SAMPLES or len(oscillator) < MIN_SAMPLES:
        return NO_DIVERGENCE

    price_highs = find_peaks(prices, "high")
    price_lows = find_peaks(prices, "low")
    if len(price_highs) < 2 or len(price_lows) < 2:
        return NO_DIVERGENCE

    n = len(prices)

    prev_idx, last_idx = price_highs[-2], price_highs[-1]
    if n - last_idx < RECENT_BARS and prices[last_idx] > prices[prev_idx]:
        osc_last, osc_prev = _osc_at(oscillator, last_idx), _osc_at(oscillator, prev_idx)
        if osc_last is not None and osc_prev is not None and osc_last < osc_prev:
            return DivergenceResult(type=DivergenceType.BEARISH, strength=DivergenceStrength.STRONG)

    prev_idx, last_idx = price_lows[-2], price_lows[-1]
    if n - last_idx < RECENT_BARS and prices[last_idx] < prices[prev_idx]:
        osc_last, osc_prev = _osc_at(oscillator, last_idx), _osc_at(oscillator, prev_idx)
        if osc_last is not None and osc_prev is not None and osc_last > osc_prev:
            return DivergenceResult(type=DivergenceType.BULLISH, strength=DivergenceStrength.STRONG)

    return NO_DIVERGENCE


def _osc_at(oscillator: Sequence[float | None], idx: int) -> float | None:
    return oscillator[idx] if idx < len(oscillator) else None
