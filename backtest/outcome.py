"""Candle-based position exit determination for backtesting.

A single position is tracked at a time. Exits are checked against each
candle's intrabar high/low:

- LONG: low <= stop → stop-loss, high >= target → take-profit
- SHORT: high >= stop → stop-loss, low <= target → take-profit
- Both touched on the same candle → stop-loss (pessimistic assumption)

Fills happen exactly at the stop or target price.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from market_core.models.candle import Candle
from market_core.models.signal import Direction

logger = logging.getLogger(__name__)


class ExitReason(str, Enum):
    STOP_LOSS = "Stop Loss"
    TAKE_PROFIT = "Take Profit"


@dataclass(frozen=True)
class OpenPosition:
    """A simulated position waiting for its stop or target."""

    side: Direction
    entry_time: datetime
    entry_price: float
    stop_price: float
    target_price: float

    @property
    def risk_distance(self) -> float:
        return abs(self.entry_price - self.stop_price)

    @property
    def reward_distance(self) -> float:
        return abs(self.target_price - self.entry_price)

    @property
    def reward_risk(self) -> float:
        """Reward-to-risk multiple (a zero stop distance counts as 1)."""
        return self.reward_distance / (self.risk_distance or 1)


@dataclass(frozen=True)
class ExitEvent:
    position: OpenPosition
    exit_time: datetime
    exit_price: float
    reason: ExitReason

    @property
    def is_win(self) -> bool:
        return self.reason == ExitReason.TAKE_PROFIT


class PositionTracker:
    """Track the open position and resolve it against candles."""

    def __init__(self) -> None:
        self._position: OpenPosition | None = None
        self._resolved_count = 0

    @property
    def position(self) -> OpenPosition | None:
        return self._position

    @property
    def is_flat(self) -> bool:
        return self._position is None

    @property
    def resolved_count(self) -> int:
        return self._resolved_count

    def open(
        self,
        side: Direction,
        entry_time: datetime,
        entry_price: float,
        stop_pct: float,
        target_pct: float,
    ) -> OpenPosition:
        """Open a position with stop/target at fractional distances from entry."""
        if self._position is not None:
            raise RuntimeError("A position is already open")

        sign = side.sign
        self._position = OpenPosition(
            side=side,
            entry_time=entry_time,
            entry_price=entry_price,
            stop_price=entry_price * (1 - sign * stop_pct),
            target_price=entry_price * (1 + sign * target_pct),
        )
        return self._position

    def check_candle(self, candle: Candle) -> ExitEvent | None:
        """Check the open position against a candle.

        Pessimistic rule: if both stop and target are touched in the
        same candle, the outcome is a stop-loss.
        """
        position = self._position
        if position is None:
            return None

        if position.side == Direction.LONG:
            stop_hit = candle.low <= position.stop_price
            target_hit = candle.high >= position.target_price
        else:
            stop_hit = candle.high >= position.stop_price
            target_hit = candle.low <= position.target_price

        if stop_hit:
            event = ExitEvent(position, candle.time, position.stop_price, ExitReason.STOP_LOSS)
        elif target_hit:
            event = ExitEvent(position, candle.time, position.target_price, ExitReason.TAKE_PROFIT)
        else:
            return None

        self._position = None
        self._resolved_count += 1
        return event

    def finalize(self) -> None:
        """Drop a position still open at the end of the data."""
        if self._position is not None:
            logger.debug(
                f"Discarding open position from {self._position.entry_time:%Y-%m-%d %H:%M} "
                f"(unresolved at end of data)"
            )
        self._position = None
