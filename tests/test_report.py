"""Tests for report formatting and the CLI entry point."""

import json
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from backtest.__main__ import main
from backtest.report import ReportEncoder, ReportFormatter
from backtest.sensitivity import FactorSensitivity, SensitivityResult
from backtest.stats import StatisticsCalculator, TradeLog
from backtest.walkforward import WalkForwardResult, WindowResult
from market_core.models.signal import Direction


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
T0_MS = 1_735_689_600_000
HOUR_MS = 3_600_000


def make_result():
    trade = TradeLog(
        entry_time=T0,
        exit_time=T0 + timedelta(hours=3),
        side=Direction.LONG,
        entry_price=100.0,
        exit_price=104.0,
        pnl=40.0,
        pnl_percent=4.0,
        reason="Take Profit",
    )
    curve = [(T0, 1000.0), (T0 + timedelta(hours=3), 1040.0)]
    return StatisticsCalculator().calculate([trade], curve, 1000.0)


def write_random_walk_csv(path, n: int = 120, seed: int = 3) -> None:
    rng = np.random.default_rng(seed)
    closes = 100 * np.cumprod(1 + rng.normal(0, 0.01, n))
    lines = ["time,open,high,low,close,volume"]
    for i, c in enumerate(closes):
        lines.append(f"{T0_MS + i * HOUR_MS},{c:.4f},{c * 1.004:.4f},{c * 0.996:.4f},{c:.4f},100")
    path.write_text("\n".join(lines) + "\n")


class TestReportFormatter:
    """Tests for dict/JSON export."""

    def test_to_dict(self):
        data = ReportFormatter.to_dict(make_result())

        assert data["overall"]["total_trades"] == 1
        assert data["overall"]["win_rate"] == 100.0
        assert data["overall"]["final_equity"] == 1040.0
        assert len(data["equity_curve"]) == 2
        assert data["trades"][0]["reason"] == "Take Profit"

    def test_save_json(self, tmp_path):
        path = tmp_path / "result.json"
        ReportFormatter.save_json(ReportFormatter.to_dict(make_result()), str(path))

        loaded = json.loads(path.read_text())
        assert loaded["trades"][0]["side"] == "LONG"
        assert loaded["trades"][0]["entry_time"] == T0.isoformat()

    def test_encoder_handles_numpy(self):
        assert json.dumps({"x": np.float64(1.5)}, cls=ReportEncoder) == '{"x": 1.5}'

    def test_walk_forward_to_dict(self):
        result = make_result()
        wf = WalkForwardResult(
            windows=[WindowResult(start_index=0, train=result, test=result)],
            overall_stability=100.0,
            average_test_win_rate=100.0,
        )
        data = ReportFormatter.walk_forward_to_dict(wf)

        assert data["windows"][0]["stability"] == 100.0
        assert data["windows"][0]["test"]["total_trades"] == 1
        assert data["cancelled"] is False

    def test_sensitivity_to_dict(self):
        result = SensitivityResult(
            baseline_win_rate=50.0,
            factors=[FactorSensitivity("trend", 60.0, 45.0, 10.0)],
        )
        data = ReportFormatter.sensitivity_to_dict(result)
        assert data["most_sensitive"] == "trend"
        assert data["factors"][0]["swing"] == 10.0

    def test_print_console(self, capsys):
        ReportFormatter.print_console(make_result(), title="TEST RUN")
        out = capsys.readouterr().out
        assert "TEST RUN" in out
        assert "Win rate:         100.0%" in out


class TestCLI:
    """Tests for the command line entry point."""

    def test_backtest_run(self, tmp_path):
        data = tmp_path / "candles.csv"
        output = tmp_path / "out.json"
        write_random_walk_csv(data)

        assert main([str(data), "--mode", "mean_reversion", "-o", str(output)]) == 0
        loaded = json.loads(output.read_text())
        assert "overall" in loaded

    def test_walk_forward(self, tmp_path):
        data = tmp_path / "candles.csv"
        output = tmp_path / "wf.json"
        write_random_walk_csv(data, n=200)

        args = [str(data), "--mode", "MEAN_REVERSION", "--walk-forward",
                "--train-size", "100", "--test-size", "50", "-o", str(output)]
        assert main(args) == 0
        assert len(json.loads(output.read_text())["windows"]) == 2

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / "missing.csv")]) == 1

    def test_invalid_mode(self, tmp_path):
        with pytest.raises(SystemExit):
            main([str(tmp_path / "x.csv"), "--mode", "YOLO"])
