"""Report formatting for backtest results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum

import numpy as np

from backtest.sensitivity import SensitivityResult
from backtest.stats import BacktestResult
from backtest.walkforward import WalkForwardResult


class ReportEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, np.floating):
            return float(obj)
        return super().default(obj)


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(result: BacktestResult, title: str = "BACKTEST RESULTS") -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print(f"  {title}")
        print("=" * 70)
        print(f"  Initial capital:  {result.initial_capital:,.2f}")
        print(f"  Final equity:     {result.final_equity:,.2f} ({result.return_percent:+.2f}%)")
        print(f"  Total trades:     {result.total_trades}")
        print(f"  Wins:             {result.wins}")
        print(f"  Losses:           {result.losses}")
        print(f"  Win rate:         {result.win_rate:.1f}%")
        print(f"  Profit factor:    {result.profit_factor:.2f}")
        print(f"  Max drawdown:     {result.max_drawdown_percent:.2f}%")

        if result.trades:
            print("\n" + "-" * 70)
            print("  TRADES (last 10)")
            print("-" * 70)
            print(f"  {'Entry':<17} {'Exit':<17} {'Side':<6} {'Entry $':>10} {'Exit $':>10} {'PnL':>9}")
            for t in result.trades[-10:]:
                print(
                    f"  {t.entry_time:%Y-%m-%d %H:%M} {t.exit_time:%Y-%m-%d %H:%M} "
                    f"{t.side.value:<6} {t.entry_price:>10.4g} {t.exit_price:>10.4g} {t.pnl:>+9.2f}"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def print_walk_forward(result: WalkForwardResult) -> None:
        print("\n" + "=" * 70)
        print("  WALK-FORWARD VALIDATION")
        print("=" * 70)
        print(f"  {'Start':>6} {'Train trades':>13} {'Train WR':>9} {'Test trades':>12} {'Test WR':>8} {'Stab.':>7}")
        for w in result.windows:
            print(
                f"  {w.start_index:>6} {w.train.total_trades:>13} {w.train.win_rate:>8.1f}% "
                f"{w.test.total_trades:>12} {w.test.win_rate:>7.1f}% {w.stability:>7.1f}"
            )
        print("-" * 70)
        print(f"  Overall stability:      {result.overall_stability:.1f}")
        print(f"  Average test win rate:  {result.average_test_win_rate:.1f}%")
        if result.cancelled:
            print("  (cancelled: partial results)")
        print("=" * 70)

    @staticmethod
    def print_sensitivity(result: SensitivityResult) -> None:
        print("\n" + "=" * 70)
        print(f"  WEIGHT SENSITIVITY (±{result.perturbation * 100:.0f}%)")
        print("=" * 70)
        print(f"  Baseline win rate: {result.baseline_win_rate:.1f}%")
        print(f"  {'Factor':<20} {'WR up':>8} {'WR down':>8} {'Swing':>7}")
        for f in result.factors:
            print(f"  {f.factor:<20} {f.win_rate_up:>7.1f}% {f.win_rate_down:>7.1f}% {f.swing:>7.1f}")
        top = result.most_sensitive
        if top is not None:
            print(f"\n  Most sensitive: {top.factor}")
        if result.cancelled:
            print("  (cancelled: partial results)")
        print("=" * 70)

    @staticmethod
    def to_dict(result: BacktestResult) -> dict:
        """Convert results to JSON-serializable dict."""
        return {
            "overall": {
                "total_trades": result.total_trades,
                "wins": result.wins,
                "losses": result.losses,
                "win_rate": round(result.win_rate, 2),
                "profit_factor": round(result.profit_factor, 4),
                "max_drawdown_percent": round(result.max_drawdown_percent, 4),
                "initial_capital": result.initial_capital,
                "final_equity": result.final_equity,
            },
            "equity_curve": [
                {"time": t, "equity": e} for t, e in result.equity_curve
            ],
            "trades": [
                {
                    "entry_time": t.entry_time,
                    "exit_time": t.exit_time,
                    "side": t.side,
                    "entry_price": t.entry_price,
                    "exit_price": t.exit_price,
                    "pnl": t.pnl,
                    "pnl_percent": t.pnl_percent,
                    "reason": t.reason,
                }
                for t in result.trades
            ],
        }

    @classmethod
    def walk_forward_to_dict(cls, result: WalkForwardResult) -> dict:
        return {
            "overall_stability": round(result.overall_stability, 4),
            "average_test_win_rate": round(result.average_test_win_rate, 4),
            "cancelled": result.cancelled,
            "windows": [
                {
                    "start_index": w.start_index,
                    "stability": round(w.stability, 4),
                    "train": cls.to_dict(w.train)["overall"],
                    "test": cls.to_dict(w.test)["overall"],
                }
                for w in result.windows
            ],
        }

    @staticmethod
    def sensitivity_to_dict(result: SensitivityResult) -> dict:
        top = result.most_sensitive
        return {
            "baseline_win_rate": result.baseline_win_rate,
            "perturbation": result.perturbation,
            "most_sensitive": top.factor if top else None,
            "cancelled": result.cancelled,
            "factors": [
                {
                    "factor": f.factor,
                    "win_rate_up": f.win_rate_up,
                    "win_rate_down": f.win_rate_down,
                    "swing": f.swing,
                }
                for f in result.factors
            ],
        }

    @staticmethod
    def save_json(data: dict, path: str) -> None:
        """Save a report dict to a JSON file."""
        with open(path, "w") as f:
            json.dump(data, f, cls=ReportEncoder, indent=2)
        print(f"\nResults saved to {path}")
