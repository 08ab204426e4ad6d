"""Hybrid regime/opportunity enrichment of scanner signals.

Second decision layer on top of the rule-based scanner: detects the
market regime, judges whether the move behind a signal is genuine,
and turns the raw scanner probability into an opportunity score with
a risk tier and an execution bias. Derivatives positioning (long/short
ratio, open interest) can override the score and risk when available.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from market_core.indicators import atr, ema, rsi_latest
from market_core.models.candle import Candle, get_closes, get_highs, get_lows, get_volumes
from market_core.models.config import EnricherConfig
from market_core.models.signal import (
    BtcTrend,
    EnrichedSignal,
    ExecutionBias,
    MarketRegime,
    MoveClassification,
    RiskLevel,
    ScannerSignal,
    SignalType,
)

logger = logging.getLogger(__name__)

TAG_SHORT_SQUEEZE = "Potential Short Squeeze"
TAG_CROWDED_LONGS = "Crowded Longs (Risk)"
TAG_SMART_MONEY = "Smart Money Accumulation"

CLASSIFICATION_POINTS: dict[MoveClassification, float] = {
    MoveClassification.REAL_MOMENTUM: 15,
    MoveClassification.LIQUIDITY_GRAB: -20,
    MoveClassification.STOP_HUNT: -15,
    MoveClassification.NEWS_EVENT: -5,
    MoveClassification.UNKNOWN: -5,
}

REGIME_ALIGNMENT_POINTS: dict[tuple[SignalType, MarketRegime], float] = {
    (SignalType.TREND_CONTINUATION, MarketRegime.TRENDING): 10,
    (SignalType.BREAKOUT, MarketRegime.ACCUMULATION): 15,
    (SignalType.SCALPING_PUMP, MarketRegime.VOLATILE): -10,
    (SignalType.SCALPING_PUMP, MarketRegime.TRENDING): 10,
}

MOMENTUM_SIGNALS = (SignalType.BREAKOUT, SignalType.SCALPING_PUMP)
BTC_ALIGNMENT_POINTS = 5
RSI_OVERBOUGHT = 75.0
RSI_DIP = 40.0
RANGING_UNCERTAINTY = 5.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def format_mode_tag(base_tag: str, institutional_tag: str | None = None) -> str:
    """Display tag for a signal: the institutional tag replaces the base one."""
    return institutional_tag or base_tag


@dataclass
class _Overlay:
    tag: str | None = None
    points: float = 0.0
    risk: RiskLevel | None = None


class HybridEnricher:
    """Enriches scanner signals with regime, authenticity and risk analysis."""

    def __init__(self, config: EnricherConfig | None = None):
        self.config = config or EnricherConfig()

    def enrich(
        self,
        signal: ScannerSignal,
        candles: Sequence[Candle],
        btc_trend: BtcTrend | None = None,
    ) -> EnrichedSignal:
        """
        Enrich a raw scanner signal.

        Args:
            signal: Signal from the rule-based scanner
            candles: Candle history of the signal's symbol, most recent last
            btc_trend: Trend of the reference asset, if known

        Returns:
            EnrichedSignal (neutral defaults with insufficient history)
        """
        base = signal.model_dump()

        if len(candles) < self.config.min_candles:
            logger.debug(
                f"{signal.coin}: {len(candles)} candles < {self.config.min_candles}, "
                f"using fallback enrichment"
            )
            return EnrichedSignal(
                **base,
                market_regime=MarketRegime.RANGING,
                move_classification=MoveClassification.UNKNOWN,
                opportunity_score=signal.probability,
                risk_level=RiskLevel.MEDIUM,
                execution_bias=ExecutionBias.MEAN_REVERSION,
                failure_probability_percent=50.0,
            )

        regime = self.detect_market_regime(candles)
        classification = self.classify_move(signal, candles, regime)
        score = self.opportunity_score(signal, regime, classification, candles, btc_trend)

        overlay = self._derivatives_overlay(signal)
        score = _clamp(score + overlay.points, 1.0, 99.0)

        risk = overlay.risk or self.assess_risk(score, regime, classification)
        failure = 100.0 - score
        if regime == MarketRegime.RANGING:
            failure += RANGING_UNCERTAINTY

        enriched = EnrichedSignal(
            **base,
            market_regime=regime,
            move_classification=classification,
            opportunity_score=score,
            risk_level=risk,
            execution_bias=self.execution_bias(signal.signal_type, regime),
            failure_probability_percent=_clamp(failure, 0.0, 100.0),
            institutional_tag=overlay.tag,
        )
        logger.debug(
            f"{signal.coin} {signal.signal_type.value}: regime={regime.value} "
            f"move={classification.value} score={score:.0f} risk={risk.value}"
        )
        return enriched

    # -- Regime --------------------------------------------------------------

    def detect_market_regime(self, candles: Sequence[Candle]) -> MarketRegime:
        """Classify the regime from volatility, EMA alignment and range position."""
        closes = get_closes(candles)
        current = closes[-1]

        atr_value = atr(get_highs(candles), get_lows(candles), closes, 14)
        atr_pct = atr_value / current * 100 if atr_value is not None and current else 0.0
        if atr_pct > self.config.volatile_atr_pct:
            return MarketRegime.VOLATILE

        ema20 = ema(closes, 20)[-1]
        ema50 = ema(closes, 50)[-1]
        if ema20 is not None and ema50 is not None:
            if (current > ema20 > ema50) or (current < ema20 < ema50):
                return MarketRegime.TRENDING

        window = closes[-self.config.range_lookback:]
        low, high = min(window), max(window)
        if high == low:
            return MarketRegime.RANGING

        position = (current - low) / (high - low)
        if position < 0.3:
            return MarketRegime.ACCUMULATION
        if position > 0.7:
            return MarketRegime.DISTRIBUTION
        return MarketRegime.RANGING

    # -- Move authenticity ---------------------------------------------------

    def is_volume_confirmed(self, candles: Sequence[Candle]) -> bool:
        recent = candles[-self.config.volume_lookback:]
        avg_volume = sum(get_volumes(recent)) / len(recent)
        return candles[-1].volume > avg_volume * self.config.volume_confirm_mult

    def classify_move(
        self,
        signal: ScannerSignal,
        candles: Sequence[Candle],
        regime: MarketRegime,
    ) -> MoveClassification:
        confirmed = self.is_volume_confirmed(candles)

        if signal.signal_type in MOMENTUM_SIGNALS and not confirmed:
            return MoveClassification.LIQUIDITY_GRAB

        if confirmed and regime in (MarketRegime.TRENDING, MarketRegime.ACCUMULATION):
            return MoveClassification.REAL_MOMENTUM

        last, prev = candles[-1].close, candles[-2].close
        move_pct = abs(last - prev) / prev * 100 if prev else 0.0
        if move_pct > self.config.news_move_pct and regime == MarketRegime.VOLATILE:
            return MoveClassification.NEWS_EVENT

        if regime == MarketRegime.RANGING:
            return MoveClassification.UNKNOWN

        return MoveClassification.REAL_MOMENTUM

    # -- Scoring -------------------------------------------------------------

    def opportunity_score(
        self,
        signal: ScannerSignal,
        regime: MarketRegime,
        classification: MoveClassification,
        candles: Sequence[Candle],
        btc_trend: BtcTrend | None = None,
    ) -> float:
        """Opportunity score before the derivatives overlay, in [1, 99]."""
        score = 50.0 + (signal.probability - 50.0)
        score += REGIME_ALIGNMENT_POINTS.get((signal.signal_type, regime), 0)
        score += CLASSIFICATION_POINTS[classification]

        is_dump = signal.signal_type == SignalType.DUMP
        if btc_trend is not None:
            signal_bias = BtcTrend.DOWN if is_dump else BtcTrend.UP
            score += BTC_ALIGNMENT_POINTS if signal_bias == btc_trend else -BTC_ALIGNMENT_POINTS

        rsi_value = rsi_latest(get_closes(candles), 14)
        if rsi_value is not None and not is_dump:
            if rsi_value > RSI_OVERBOUGHT:
                score -= 10
            if rsi_value < RSI_DIP and regime == MarketRegime.TRENDING:
                score += 5

        return _clamp(score, 1.0, 99.0)

    def _derivatives_overlay(self, signal: ScannerSignal) -> _Overlay:
        overlay = _Overlay()
        futures = signal.futures_data
        if futures is None:
            return overlay

        is_dump = signal.signal_type == SignalType.DUMP
        if futures.long_short_ratio < self.config.short_squeeze_ls_max and not is_dump:
            overlay = _Overlay(tag=TAG_SHORT_SQUEEZE, points=20, risk=RiskLevel.LOW)
        elif futures.long_short_ratio > self.config.crowded_longs_ls_min and not is_dump:
            overlay = _Overlay(tag=TAG_CROWDED_LONGS, points=-30, risk=RiskLevel.HIGH)

        if (
            signal.signal_type == SignalType.ACCUMULATION
            and futures.open_interest_rising
            and futures.long_short_ratio < self.config.smart_money_ls_max
        ):
            overlay.tag = TAG_SMART_MONEY
            overlay.points += 15

        return overlay

    # -- Risk and execution --------------------------------------------------

    @staticmethod
    def assess_risk(
        score: float,
        regime: MarketRegime,
        classification: MoveClassification,
    ) -> RiskLevel:
        if regime == MarketRegime.VOLATILE or classification == MoveClassification.LIQUIDITY_GRAB:
            return RiskLevel.HIGH
        if score > 80:
            return RiskLevel.LOW
        if score < 50:
            return RiskLevel.HIGH
        return RiskLevel.MEDIUM

    @staticmethod
    def execution_bias(signal_type: SignalType, regime: MarketRegime) -> ExecutionBias:
        if signal_type in (SignalType.SCALPING_PUMP, SignalType.DUMP):
            return ExecutionBias.BREAKOUT
        if regime == MarketRegime.TRENDING:
            return ExecutionBias.PULLBACK
        if regime == MarketRegime.ACCUMULATION:
            return ExecutionBias.ACCUMULATION
        if regime == MarketRegime.RANGING:
            return ExecutionBias.MEAN_REVERSION
        return ExecutionBias.BREAKOUT
