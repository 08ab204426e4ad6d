"""Event-driven backtest engine.

Steps through a candle series one index at a time with at most one
open position. Processing order for each candle from the warmup index:

1. If a position is open, check its stop/target against this candle
   (a candle that closes a position never opens a new one)
2. If flat, evaluate the entry rule on data up to and including this
   candle and fill at its close
"""

from __future__ import annotations

import logging
from typing import Sequence

from market_core.indicators import rsi
from market_core.models.analysis import Trend
from market_core.models.candle import Candle, get_closes
from market_core.models.config import StrategyConfig, StrategyMode
from market_core.models.signal import Direction
from market_core.scoring import FactorVotes, compute_factor_votes, score_from_votes
from market_core.structure import analyze_market_structure

from backtest.outcome import ExitEvent, PositionTracker
from backtest.stats import BacktestResult, EquityPoint, StatisticsCalculator, TradeLog

logger = logging.getLogger(__name__)


class BacktestEngine:
    """Simulate one strategy over a candle series.

    The engine holds no state between runs: the same candles and
    configuration always produce the same result.
    """

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()
        self._stats = StatisticsCalculator()

    def run(
        self,
        candles: Sequence[Candle],
        trade_start_index: int = 0,
        votes: Sequence[FactorVotes | None] | None = None,
    ) -> BacktestResult:
        """
        Run the backtest.

        Args:
            candles: Candle series, oldest first
            trade_start_index: Positions only open at or after this index;
                earlier candles serve as indicator lookback
            votes: Precomputed per-index factor votes for score-based
                entries (computed on demand when omitted)

        Returns:
            BacktestResult (zeroed when the series is too short)
        """
        cfg = self.config
        first_entry = max(cfg.warmup_candles, trade_start_index)
        if len(candles) <= first_entry:
            logger.debug(
                f"Backtest skipped: {len(candles)} candles, first entry index {first_entry}"
            )
            return BacktestResult.empty(cfg.initial_capital)

        closes = get_closes(candles)
        rsi_series = rsi(closes)
        if cfg.mode == StrategyMode.SCORE_BASED and votes is None:
            votes = compute_factor_votes(candles, start=first_entry)

        equity = cfg.initial_capital
        start_time = candles[min(trade_start_index, len(candles) - 1)].time
        equity_curve: list[EquityPoint] = [(start_time, equity)]
        trades: list[TradeLog] = []
        tracker = PositionTracker()

        for i in range(cfg.warmup_candles, len(candles)):
            candle = candles[i]

            if not tracker.is_flat:
                event = tracker.check_candle(candle)
                if event is not None:
                    trade = self._close_trade(event, equity)
                    equity += trade.pnl
                    trades.append(trade)
                    equity_curve.append((candle.time, equity))
                    continue

            if tracker.is_flat and i >= first_entry and self._should_enter(i, closes, rsi_series, votes):
                tracker.open(
                    Direction.LONG,
                    candle.time,
                    candle.close,
                    cfg.stop_distance,
                    cfg.target_distance,
                )
                logger.debug(f"Entry LONG @ {candle.close:.6g} ({candle.time:%Y-%m-%d %H:%M})")

        tracker.finalize()

        result = self._stats.calculate(trades, equity_curve, cfg.initial_capital)
        logger.debug(
            f"Backtest {cfg.mode.value}: {result.total_trades} trades, "
            f"win rate {result.win_rate:.1f}%, final equity {result.final_equity:.2f}"
        )
        return result

    def _should_enter(
        self,
        i: int,
        closes: list[float],
        rsi_series: list[float | None],
        votes: Sequence[FactorVotes | None] | None,
    ) -> bool:
        cfg = self.config

        if cfg.mode == StrategyMode.SCORE_BASED:
            vote = votes[i] if votes is not None and i < len(votes) else None
            if vote is None:
                return False
            return score_from_votes(vote, cfg.weights) > cfg.score_entry_min

        rsi_value = rsi_series[i]
        if rsi_value is None:
            return False

        if cfg.mode == StrategyMode.TREND_FOLLOWING:
            if rsi_value >= cfg.trend_rsi_max:
                return False
            return analyze_market_structure(closes[: i + 1]).trend == Trend.UPTREND

        # MEAN_REVERSION
        if rsi_value >= cfg.mean_reversion_rsi_max:
            return False
        return analyze_market_structure(closes[: i + 1]).trend == Trend.RANGING

    def _close_trade(self, event: ExitEvent, equity: float) -> TradeLog:
        """Size the closed trade at a fixed fraction of current equity."""
        position = event.position
        risk_amount = equity * self.config.risk_per_trade
        pnl = risk_amount * position.reward_risk if event.is_win else -risk_amount
        move = 0.0
        if position.entry_price:
            move = (event.exit_price - position.entry_price) / position.entry_price * 100

        trade = TradeLog(
            entry_time=position.entry_time,
            exit_time=event.exit_time,
            side=position.side,
            entry_price=position.entry_price,
            exit_price=event.exit_price,
            pnl=pnl,
            pnl_percent=move * position.side.sign,
            reason=event.reason.value,
        )
        logger.debug(
            f"Exit {event.reason.value} @ {event.exit_price:.6g} "
            f"pnl={pnl:+.2f} ({trade.pnl_percent:+.2f}%)"
        )
        return trade
