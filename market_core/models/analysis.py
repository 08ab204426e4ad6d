"""Analysis result models (structure, divergence, volume, whale activity)."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Trend(str, Enum):
    """Market structure trend classification."""

    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    RANGING = "RANGING"


class DivergenceType(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NONE = "NONE"


class DivergenceStrength(str, Enum):
    WEAK = "WEAK"
    MEDIUM = "MEDIUM"
    STRONG = "STRONG"


class NetFlowStatus(str, Enum):
    """Inferred direction of large-player flow."""

    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"
    NEUTRAL = "NEUTRAL"


class MarketPressure(str, Enum):
    BUYING = "BUYING"
    SELLING = "SELLING"
    NEUTRAL = "NEUTRAL"


class Prediction(str, Enum):
    """Direction implied by the technical score."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class MarketStructure(BaseModel):
    """Trend plus clustered support/resistance levels (ascending)."""

    model_config = ConfigDict(frozen=True)

    trend: Trend = Trend.RANGING
    supports: list[float] = Field(default_factory=list)
    resistances: list[float] = Field(default_factory=list)


class DivergenceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: DivergenceType = DivergenceType.NONE
    strength: DivergenceStrength = DivergenceStrength.WEAK


NO_DIVERGENCE = DivergenceResult()


class VolumeBin(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float  # lower edge of the bin
    volume: float


class VolumeProfile(BaseModel):
    """Volume-at-price distribution with Point of Control and Value Area."""

    model_config = ConfigDict(frozen=True)

    poc: float = 0.0
    value_area_low: float = 0.0
    value_area_high: float = 0.0
    bins: list[VolumeBin] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_value_area(self) -> "VolumeProfile":
        if not self.value_area_low <= self.poc <= self.value_area_high:
            raise ValueError(
                f"value area [{self.value_area_low}, {self.value_area_high}] "
                f"does not contain POC {self.poc}"
            )
        return self


class FibonacciLevels(BaseModel):
    """Retracement levels measured down from the lookback high."""

    model_config = ConfigDict(frozen=True)

    low: float
    high: float
    fib_236: float
    fib_382: float
    fib_500: float
    fib_618: float
    fib_786: float


class StochRSI(BaseModel):
    model_config = ConfigDict(frozen=True)

    k: float
    d: float
    raw_k: float


class WhaleMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    net_flow_status: NetFlowStatus = NetFlowStatus.NEUTRAL
    volume_anomaly_factor: float = Field(default=0.0, ge=0)
    turnover_ratio: float = Field(default=0.0, ge=0)
    alert: str = ""


class OrderBookAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    bid_volume: float = 0.0
    ask_volume: float = 0.0
    imbalance_ratio: float = 1.0  # > 1 means bids outweigh asks
    market_pressure: MarketPressure = MarketPressure.NEUTRAL
