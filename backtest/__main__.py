"""CLI entry point for the backtesting system.

Usage:
    python -m backtest candles.csv
    python -m backtest candles.csv --mode TREND_FOLLOWING --output result.json
    python -m backtest candles.csv --walk-forward --train-size 200 --test-size 50
    python -m backtest candles.csv --sensitivity --timeout 30
"""

import argparse
import logging
import sys

from market_core.models.config import StrategyMode, WalkForwardConfig

from backtest.cancel import CancelToken
from backtest.config import get_backtest_settings
from backtest.data_loader import DataLoadError, load_candles
from backtest.engine import BacktestEngine
from backtest.report import ReportFormatter
from backtest.sensitivity import SensitivityAnalyzer
from backtest.walkforward import WalkForwardValidator

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest and validate strategies on a candle CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest data/BTCUSDT_1h.csv
  python -m backtest data/BTCUSDT_1h.csv --mode MEAN_REVERSION
  python -m backtest data/BTCUSDT_1h.csv --walk-forward -o wf.json
  python -m backtest data/BTCUSDT_1h.csv --sensitivity --timeout 60
        """,
    )
    parser.add_argument("data", type=str, help="Candle CSV (time, open, high, low, close, volume)")
    parser.add_argument(
        "--mode",
        type=str.upper,
        choices=[m.value for m in StrategyMode],
        default=None,
        help="Strategy mode (default: BACKTEST_MODE or SCORE_BASED)",
    )
    parser.add_argument(
        "--walk-forward",
        action="store_true",
        help="Run walk-forward validation instead of a single backtest",
    )
    parser.add_argument(
        "--sensitivity",
        action="store_true",
        help="Run scoring weight sensitivity analysis",
    )
    parser.add_argument("--train-size", type=int, default=None, help="Walk-forward train candles")
    parser.add_argument("--test-size", type=int, default=None, help="Walk-forward test candles")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel walk-forward/sensitivity after this many seconds",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    settings = get_backtest_settings()
    config = settings.strategy_config(StrategyMode(args.mode) if args.mode else None)

    try:
        candles = load_candles(args.data)
    except DataLoadError as e:
        logger.error(str(e))
        return 1

    timeout = args.timeout if args.timeout is not None else settings.timeout_seconds
    token = CancelToken(timeout=timeout)

    if args.walk_forward:
        windows = WalkForwardConfig(
            train_size=args.train_size or settings.train_size,
            test_size=args.test_size or settings.test_size,
        )
        result = WalkForwardValidator(config, windows).run(candles, cancel_token=token)
        ReportFormatter.print_walk_forward(result)
        data = ReportFormatter.walk_forward_to_dict(result)
    elif args.sensitivity:
        result = SensitivityAnalyzer(config).run(candles, cancel_token=token)
        ReportFormatter.print_sensitivity(result)
        data = ReportFormatter.sensitivity_to_dict(result)
    else:
        result = BacktestEngine(config).run(candles)
        ReportFormatter.print_console(result, title=f"BACKTEST RESULTS: {config.mode.value}")
        data = ReportFormatter.to_dict(result)

    if args.output:
        ReportFormatter.save_json(data, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
