"""Volume anomaly (whale activity) and order book pressure classification."""

from typing import Sequence

from market_core.models.analysis import (
    MarketPressure,
    NetFlowStatus,
    OrderBookAnalysis,
    WhaleMetrics,
)
from market_core.models.candle import Candle, get_volumes

ABSORPTION_FACTOR = 1.5
HEAVY_FACTOR = 2.0
THIN_FACTOR = 0.8
FLAT_MOVE_PCT = 3.0
SHARP_MOVE_PCT = 5.0
HIGH_CLOSE_POSITION = 0.7
MIN_HISTORY = 24

BUYING_RATIO = 1.5
SELLING_RATIO = 0.6

ALERT_INSUFFICIENT = "Insufficient data for whale analysis"
ALERT_NONE = "No abnormal activity"
ALERT_ABSORPTION = "Hidden buy wall: heavy volume with a flat price (absorption)"
ALERT_DUMP = "Violent dump: heavy sell-side volume pushing price down"
ALERT_FAKE_RALLY = "Fake rally: price rising without real volume (trap)"
ALERT_INSTITUTIONAL = "Institutional buying: strong close on heavy volume"


def detect_whale_movements(
    price_change_pct: float,
    volume: float,
    market_cap: float,
    history: Sequence[Candle],
    period_count: int = 24,
) -> WhaleMetrics:
    """
    Classify large-player flow from volume anomalies.

    ``volume`` is the aggregate over ``period_count`` candles (e.g. 24h
    volume against hourly candles), so the anomaly factor compares it to
    the trailing average candle volume times ``period_count``. Rules are
    checked in order and the first match wins.

    Args:
        price_change_pct: Price change over the period, in percent
        volume: Traded volume over the period
        market_cap: Market capitalisation (0 if unknown)
        history: Candle history, most recent last
        period_count: Candles per period

    Returns:
        WhaleMetrics (NEUTRAL with zero factors with fewer than
        ``MIN_HISTORY`` or ``period_count`` candles of history)
    """
    if len(history) < max(MIN_HISTORY, period_count):
        return WhaleMetrics(alert=ALERT_INSUFFICIENT)

    turnover = volume / market_cap * 100 if market_cap > 0 else 0.0

    recent = history[-period_count:]
    avg_volume = sum(get_volumes(recent)) / len(recent)
    anomaly = volume / (avg_volume * period_count) if avg_volume > 0 else 1.0

    close_position = history[-1].close_position
    high_close = close_position is not None and close_position > HIGH_CLOSE_POSITION

    status = NetFlowStatus.NEUTRAL
    alert = ALERT_NONE
    if anomaly > ABSORPTION_FACTOR and abs(price_change_pct) < FLAT_MOVE_PCT:
        status, alert = NetFlowStatus.ACCUMULATION, ALERT_ABSORPTION
    elif anomaly > HEAVY_FACTOR and price_change_pct < -SHARP_MOVE_PCT:
        status, alert = NetFlowStatus.DISTRIBUTION, ALERT_DUMP
    elif price_change_pct > SHARP_MOVE_PCT and anomaly < THIN_FACTOR:
        status, alert = NetFlowStatus.DISTRIBUTION, ALERT_FAKE_RALLY
    elif anomaly > HEAVY_FACTOR and high_close:
        status, alert = NetFlowStatus.ACCUMULATION, ALERT_INSTITUTIONAL

    return WhaleMetrics(
        net_flow_status=status,
        volume_anomaly_factor=max(anomaly, 0.0),
        turnover_ratio=max(turnover, 0.0),
        alert=alert,
    )


def analyze_order_book(
    bids: Sequence[tuple[float, float]],
    asks: Sequence[tuple[float, float]],
) -> OrderBookAnalysis:
    """
    Classify order book pressure from (price, size) depth levels.

    The imbalance ratio is bid volume over ask volume (1 when the ask
    side is empty).
    """
    bid_volume = float(sum(size for _, size in bids))
    ask_volume = float(sum(size for _, size in asks))
    ratio = bid_volume / ask_volume if ask_volume > 0 else 1.0

    pressure = MarketPressure.NEUTRAL
    if ratio > BUYING_RATIO:
        pressure = MarketPressure.BUYING
    elif ratio < SELLING_RATIO:
        pressure = MarketPressure.SELLING

    return OrderBookAnalysis(
        bid_volume=bid_volume,
        ask_volume=ask_volume,
        imbalance_ratio=ratio,
        market_pressure=pressure,
    )
