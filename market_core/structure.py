"""Market structure analysis: swing points, S/R clusters and trend."""

from typing import Sequence

from market_core.models.analysis import MarketStructure, Trend

MIN_PRICES = 10
MAX_LEVELS = 3
FALLBACK_TREND_THRESHOLD = 0.05


def find_swings(prices: Sequence[float]) -> tuple[list[float], list[float]]:
    """
    Detect swing highs and lows with a one-bar lag.

    ``prices[i-1]`` is a swing high when it is above both neighbours,
    a swing low when it is below both.

    Returns:
        Tuple of (swing_highs, swing_lows) in chronological order
    """
    highs: list[float] = []
    lows: list[float] = []
    for i in range(2, len(prices)):
        prev2, pivot, cur = prices[i - 2], prices[i - 1], prices[i]
        if pivot > prev2 and pivot > cur:
            highs.append(pivot)
        if pivot < prev2 and pivot < cur:
            lows.append(pivot)
    return highs, lows


def cluster_levels(levels: Sequence[float], tolerance: float = 0.02) -> list[float]:
    """
    Merge nearby price levels into cluster means.

    Levels are sorted ascending; a level joins the running cluster when
    it lies within ``tolerance`` above the cluster mean.

    Returns:
        Ascending list of cluster means
    """
    ordered = sorted(levels)
    if not ordered:
        return []

    clusters: list[float] = []
    total, count = ordered[0], 1
    for level in ordered[1:]:
        mean = total / count
        if level <= mean * (1 + tolerance):
            total += level
            count += 1
        else:
            clusters.append(mean)
            total, count = level, 1
    clusters.append(total / count)
    return clusters


def analyze_market_structure(prices: Sequence[float]) -> MarketStructure:
    """
    Classify trend and extract support/resistance levels.

    HH + HL is an uptrend and LH + LL a downtrend. A close through the
    latest opposite swing flips the trend (break of structure). With
    fewer than two swings on either side, the first and last prices are
    compared against a 5% band instead.
    """
    if len(prices) < MIN_PRICES:
        return MarketStructure()

    highs, lows = find_swings(prices)
    resistances = cluster_levels(highs)[-MAX_LEVELS:]
    supports = cluster_levels(lows)[:MAX_LEVELS]

    last_price = prices[-1]
    trend = Trend.RANGING

    if len(highs) >= 2 and len(lows) >= 2:
        last_high, prev_high = highs[-1], highs[-2]
        last_low, prev_low = lows[-1], lows[-2]

        if last_high > prev_high and last_low > prev_low:
            trend = Trend.UPTREND
        elif last_high < prev_high and last_low < prev_low:
            trend = Trend.DOWNTREND

        if trend == Trend.DOWNTREND and last_price > last_high:
            trend = Trend.UPTREND
        elif trend == Trend.UPTREND and last_price < last_low:
            trend = Trend.DOWNTREND
    else:
        first_price = prices[0]
        if last_price > first_price * (1 + FALLBACK_TREND_THRESHOLD):
            trend = Trend.UPTREND
        elif last_price < first_price * (1 - FALLBACK_TREND_THRESHOLD):
            trend = Trend.DOWNTREND

    return MarketStructure(trend=trend, supports=supports, resistances=resistances)
