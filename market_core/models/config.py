"""Scoring, strategy and enrichment configuration models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ScoringWeights(BaseModel):
    """Point weights of the technical score factors.

    Each factor votes -1, 0 or +1; its contribution is the vote times
    the weight. Field order is the canonical factor order used by
    breakdowns and sensitivity analysis.
    """

    model_config = ConfigDict(frozen=True)

    ema_momentum: float = Field(default=12.0, ge=0)
    trend: float = Field(default=10.0, ge=0)
    rsi_extreme: float = Field(default=10.0, ge=0)
    rsi_trend_confirm: float = Field(default=5.0, ge=0)
    adx_amplifier: float = Field(default=10.0, ge=0)
    stoch_rsi: float = Field(default=10.0, ge=0)
    divergence: float = Field(default=15.0, ge=0)

    @classmethod
    def factor_names(cls) -> list[str]:
        return list(cls.model_fields)

    def scaled(self, factor: str, multiplier: float) -> ScoringWeights:
        """Return a copy with a single weight multiplied."""
        if factor not in type(self).model_fields:
            raise KeyError(f"Unknown scoring factor: {factor}")
        return self.model_copy(update={factor: getattr(self, factor) * multiplier})


class StrategyMode(str, Enum):
    """Entry rule used by the backtest engine."""

    TREND_FOLLOWING = "TREND_FOLLOWING"
    MEAN_REVERSION = "MEAN_REVERSION"
    SCORE_BASED = "SCORE_BASED"


# (stop_loss_pct, take_profit_pct) per mode, as fractions of entry price
MODE_EXIT_DEFAULTS: dict[StrategyMode, tuple[float, float]] = {
    StrategyMode.TREND_FOLLOWING: (0.02, 0.04),
    StrategyMode.MEAN_REVERSION: (0.03, 0.03),
    StrategyMode.SCORE_BASED: (0.02, 0.04),
}


class StrategyConfig(BaseModel):
    """Backtest strategy parameters.

    ``stop_loss_pct`` / ``take_profit_pct`` default to the mode's
    distances when left unset.
    """

    model_config = ConfigDict(frozen=True)

    mode: StrategyMode = StrategyMode.SCORE_BASED
    initial_capital: float = Field(default=1000.0, gt=0)
    risk_per_trade: float = Field(default=0.02, gt=0, le=1)
    warmup_candles: int = Field(default=50, ge=1)

    stop_loss_pct: float | None = Field(default=None, gt=0, lt=1)
    take_profit_pct: float | None = Field(default=None, gt=0)

    # Entry thresholds
    trend_rsi_max: float = 40.0
    mean_reversion_rsi_max: float = 30.0
    score_entry_min: float = 75.0

    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    @property
    def stop_distance(self) -> float:
        if self.stop_loss_pct is not None:
            return self.stop_loss_pct
        return MODE_EXIT_DEFAULTS[self.mode][0]

    @property
    def target_distance(self) -> float:
        if self.take_profit_pct is not None:
            return self.take_profit_pct
        return MODE_EXIT_DEFAULTS[self.mode][1]


class WalkForwardConfig(BaseModel):
    """Rolling train/test window sizes."""

    model_config = ConfigDict(frozen=True)

    train_size: int = Field(default=200, ge=1)
    test_size: int = Field(default=50, ge=1)


class EnricherConfig(BaseModel):
    """Thresholds of the hybrid regime/opportunity enricher."""

    model_config = ConfigDict(frozen=True)

    min_candles: int = Field(default=50, ge=2)
    volatile_atr_pct: float = 2.5
    volume_confirm_mult: float = 1.5
    volume_lookback: int = 20
    range_lookback: int = 50
    news_move_pct: float = 2.0

    short_squeeze_ls_max: float = 0.6
    crowded_longs_ls_min: float = 3.0
    smart_money_ls_max: float = 0.8
