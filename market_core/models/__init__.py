"""Value objects shared by the analysis and backtest layers."""

from market_core.models.analysis import (
    DivergenceResult,
    DivergenceStrength,
    DivergenceType,
    FibonacciLevels,
    MarketPressure,
    MarketStructure,
    NetFlowStatus,
    OrderBookAnalysis,
    Prediction,
    StochRSI,
    Trend,
    VolumeBin,
    VolumeProfile,
    WhaleMetrics,
)
from market_core.models.candle import Candle, ChartPoint, parse_kline_rows
from market_core.models.config import (
    EnricherConfig,
    ScoringWeights,
    StrategyConfig,
    StrategyMode,
    WalkForwardConfig,
)
from market_core.models.prediction import NarrativeAnalysis, PredictionStatus, SavedPrediction
from market_core.models.signal import (
    BtcTrend,
    Direction,
    EnrichedSignal,
    ExecutionBias,
    FuturesData,
    MarketRegime,
    MoveClassification,
    RiskLevel,
    ScannerSignal,
    SignalType,
)

__all__ = [
    "BtcTrend",
    "Candle",
    "ChartPoint",
    "Direction",
    "DivergenceResult",
    "DivergenceStrength",
    "DivergenceType",
    "EnrichedSignal",
    "EnricherConfig",
    "ExecutionBias",
    "FibonacciLevels",
    "FuturesData",
    "MarketPressure",
    "MarketRegime",
    "MarketStructure",
    "MoveClassification",
    "NarrativeAnalysis",
    "NetFlowStatus",
    "OrderBookAnalysis",
    "Prediction",
    "PredictionStatus",
    "RiskLevel",
    "SavedPrediction",
    "ScannerSignal",
    "ScoringWeights",
    "SignalType",
    "StochRSI",
    "StrategyConfig",
    "StrategyMode",
    "Trend",
    "VolumeBin",
    "VolumeProfile",
    "WalkForwardConfig",
    "WhaleMetrics",
    "parse_kline_rows",
]
