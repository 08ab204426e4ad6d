"""Scanner signal and enrichment data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    """Trade direction."""

    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.LONG else -1


class SignalType(str, Enum):
    """Rule-based scanner signal categories."""

    ACCUMULATION = "ACCUMULATION"
    BREAKOUT = "BREAKOUT"
    VOLUME_SPIKE = "VOLUME_SPIKE"
    DUMP = "DUMP"
    SCALPING_PUMP = "SCALPING_PUMP"
    TREND_CONTINUATION = "TREND_CONTINUATION"
    UNDERVALUED = "UNDERVALUED"
    FALSE_BREAKOUT_RISK = "FALSE_BREAKOUT_RISK"


class MarketRegime(str, Enum):
    TRENDING = "TRENDING"
    RANGING = "RANGING"
    VOLATILE = "VOLATILE"
    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"


class MoveClassification(str, Enum):
    """Authenticity of the move behind a signal."""

    REAL_MOMENTUM = "REAL_MOMENTUM"
    LIQUIDITY_GRAB = "LIQUIDITY_GRAB"
    STOP_HUNT = "STOP_HUNT"
    NEWS_EVENT = "NEWS_EVENT"
    UNKNOWN = "UNKNOWN"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ExecutionBias(str, Enum):
    BREAKOUT = "BREAKOUT"
    PULLBACK = "PULLBACK"
    MEAN_REVERSION = "MEAN_REVERSION"
    ACCUMULATION = "ACCUMULATION"


class BtcTrend(str, Enum):
    """Direction of the reference asset (BTC) used for correlation bonuses."""

    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class FuturesData(BaseModel):
    """Derivatives-market context for a symbol."""

    model_config = ConfigDict(frozen=True)

    open_interest: float = 0.0
    long_short_ratio: float = 1.0
    funding_rate: float = 0.0
    # Percent change of open interest over the scan window, when known
    open_interest_change_pct: float | None = None

    @property
    def open_interest_rising(self) -> bool:
        if self.open_interest_change_pct is not None:
            return self.open_interest_change_pct > 0
        return self.open_interest > 0


class ScannerSignal(BaseModel):
    """Raw signal produced by the rule-based scanner."""

    model_config = ConfigDict(frozen=True)

    id: str
    coin: str
    signal_type: SignalType
    probability: float = Field(ge=0, le=100)
    price: float
    detected_at: datetime
    mode_tag: str | None = None
    days_accumulating: int | None = None
    futures_data: FuturesData | None = None


class EnrichedSignal(ScannerSignal):
    """Scanner signal with regime, authenticity and risk analysis attached."""

    market_regime: MarketRegime
    move_classification: MoveClassification
    opportunity_score: float = Field(ge=0, le=100)
    risk_level: RiskLevel
    execution_bias: ExecutionBias
    failure_probability_percent: float = Field(ge=0, le=100)
    institutional_tag: str | None = None
