"""Backtest-specific configuration.

Process-level defaults for CLI runs, loaded from ``BACKTEST_*``
environment variables or a ``.env`` file. Library code never reads
these directly: they are turned into explicit config objects.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from market_core.models.config import StrategyConfig, StrategyMode, WalkForwardConfig


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mode: StrategyMode = StrategyMode.SCORE_BASED
    initial_capital: float = Field(default=1000.0, gt=0)
    risk_per_trade: float = Field(default=0.02, gt=0, le=1)
    warmup_candles: int = Field(default=50, ge=1)

    train_size: int = Field(default=200, ge=1)
    test_size: int = Field(default=50, ge=1)

    # Seconds before walk-forward / sensitivity runs are cancelled
    timeout_seconds: float | None = None

    def strategy_config(self, mode: StrategyMode | None = None) -> StrategyConfig:
        return StrategyConfig(
            mode=mode or self.mode,
            initial_capital=self.initial_capital,
            risk_per_trade=self.risk_per_trade,
            warmup_candles=self.warmup_candles,
        )

    def walk_forward_config(self) -> WalkForwardConfig:
        return WalkForwardConfig(train_size=self.train_size, test_size=self.test_size)


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
