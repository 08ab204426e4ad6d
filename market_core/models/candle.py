"""Candle (OHLCV) data models and boundary parsing."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

logger = logging.getLogger(__name__)


class Candle(BaseModel):
    """OHLCV candle.

    Open, high and low are optional at the boundary: a data source that
    only reports closes (line charts, tickers) still yields a valid
    candle, with the missing fields substituted by ``close``.
    """

    model_config = ConfigDict(frozen=True)

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _fill_missing_prices(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("close") is not None:
            data = dict(data)
            for key in ("open", "high", "low"):
                if data.get(key) is None:
                    data[key] = data["close"]
        return data

    @property
    def close_position(self) -> float | None:
        """Where the close sits inside the candle range (0=low, 1=high).

        None for a zero-range candle.
        """
        rng = self.high - self.low
        if rng <= 0:
            return None
        return (self.close - self.low) / rng


class ChartPoint(BaseModel):
    """A candle augmented with indicator values, ready for charting."""

    model_config = ConfigDict(frozen=True)

    time: datetime
    price: float
    high: float
    low: float
    volume: float
    rsi: float | None = None
    macd_line: float | None = None
    signal_line: float | None = None
    histogram: float | None = None
    upper_band: float | None = None
    lower_band: float | None = None


def get_closes(candles: Sequence[Candle]) -> list[float]:
    """Get list of close prices."""
    return [c.close for c in candles]


def get_highs(candles: Sequence[Candle]) -> list[float]:
    """Get list of high prices."""
    return [c.high for c in candles]


def get_lows(candles: Sequence[Candle]) -> list[float]:
    """Get list of low prices."""
    return [c.low for c in candles]


def get_volumes(candles: Sequence[Candle]) -> list[float]:
    """Get list of volumes."""
    return [c.volume for c in candles]


def is_strictly_increasing(candles: Sequence[Candle]) -> bool:
    """Check that candle times are strictly increasing."""
    return all(a.time < b.time for a, b in zip(candles, candles[1:]))


def parse_kline_rows(rows: Sequence[Sequence[Any]]) -> list[Candle]:
    """
    Parse exchange kline arrays into candles.

    Expected row layout (Binance REST): ``[open_time_ms, open, high, low,
    close, volume, ...]`` with prices as strings or numbers.

    Any malformed row, non-finite value or out-of-order timestamp rejects
    the whole payload: the result is an empty series (insufficient data)
    rather than a series with holes or NaN values.

    Args:
        rows: Raw kline rows from the data provider

    Returns:
        List of candles, or an empty list if the payload is invalid
    """
    candles: list[Candle] = []
    for idx, row in enumerate(rows):
        try:
            candle = Candle(
                time=datetime.fromtimestamp(int(row[0]) / 1000, tz=timezone.utc),
                open=row[1],
                high=row[2],
                low=row[3],
                close=row[4],
                volume=row[5],
            )
        except (IndexError, TypeError, ValueError, OverflowError, ValidationError) as e:
            logger.warning(f"Rejecting kline payload: row {idx} is malformed ({e})")
            return []

        values = (candle.open, candle.high, candle.low, candle.close, candle.volume)
        if not all(math.isfinite(v) for v in values):
            logger.warning(f"Rejecting kline payload: row {idx} has non-finite values")
            return []
        if candles and candle.time <= candles[-1].time:
            logger.warning(f"Rejecting kline payload: row {idx} is out of order")
            return []
        candles.append(candle)

    return candles
