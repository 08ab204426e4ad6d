"""Backtesting and strategy validation.

Depends only on market_core/ for indicators, structure and scoring.
Candles come in as CSV files (CLI) or any CandleProvider.

Usage:
    python -m backtest candles.csv
    python -m backtest candles.csv --walk-forward
    python -m backtest candles.csv --sensitivity
"""

from backtest.cancel import CancelToken
from backtest.engine import BacktestEngine
from backtest.sensitivity import SensitivityAnalyzer, SensitivityResult
from backtest.stats import BacktestResult, TradeLog
from backtest.walkforward import WalkForwardResult, WalkForwardValidator

__all__ = [
    "BacktestEngine",
    "BacktestResult",
    "CancelToken",
    "SensitivityAnalyzer",
    "SensitivityResult",
    "TradeLog",
    "WalkForwardResult",
    "WalkForwardValidator",
]
