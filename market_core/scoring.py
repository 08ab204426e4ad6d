"""Composite technical scoring.

Each factor casts a vote of -1, 0 or +1; the score is 50 plus the
weighted sum of votes, clamped to [0, 100]. Votes are kept separate
from weights so a series can be voted once and rescored cheaply under
different weight tables (sensitivity analysis).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from market_core.divergence import detect_divergence
from market_core.indicators import ema, rsi, rsi_latest, stoch_rsi, volatility_trend_proxy
from market_core.models.analysis import (
    NO_DIVERGENCE,
    DivergenceResult,
    DivergenceType,
    Prediction,
    StochRSI,
    Trend,
)
from market_core.models.candle import Candle, get_closes, get_highs, get_lows
from market_core.models.config import ScoringWeights
from market_core.structure import analyze_market_structure

logger = logging.getLogger(__name__)

BASE_SCORE = 50.0
EMA_MOMENTUM_PERIOD = 9
RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
RSI_CONFIRM = 50.0
STRONG_TREND_PROXY = 25.0
STOCH_OVERSOLD = 20.0
STOCH_OVERBOUGHT = 80.0

BULLISH_THRESHOLD = 60.0
BEARISH_THRESHOLD = 40.0


@dataclass(frozen=True)
class FactorVotes:
    """Per-factor direction votes (-1, 0 or +1)."""

    ema_momentum: int = 0
    trend: int = 0
    rsi_extreme: int = 0
    rsi_trend_confirm: int = 0
    adx_amplifier: int = 0
    stoch_rsi: int = 0
    divergence: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class ScoreBreakdown(BaseModel):
    """Explainable score: votes, weighted contributions and the total."""

    model_config = ConfigDict(frozen=True)

    votes: dict[str, int]
    contributions: dict[str, float]
    score: float

    @property
    def prediction(self) -> Prediction:
        return prediction_from_score(self.score)


def _trend_sign(trend: Trend) -> int:
    if trend == Trend.UPTREND:
        return 1
    if trend == Trend.DOWNTREND:
        return -1
    return 0


def score_factors(
    prices: Sequence[float],
    rsi_value: float | None,
    adx_value: float | None,
    stoch: StochRSI | None,
    trend: Trend,
    divergence: DivergenceResult = NO_DIVERGENCE,
) -> FactorVotes:
    """
    Cast the factor votes for the latest point of a price series.

    Undefined inputs (None) abstain.
    """
    ema_vote = 0
    ema9 = ema(prices, EMA_MOMENTUM_PERIOD)
    if ema9 and ema9[-1] is not None:
        ema_vote = 1 if prices[-1] > ema9[-1] else -1

    trend_vote = _trend_sign(trend)

    rsi_vote = 0
    confirm_vote = 0
    if rsi_value is not None:
        if rsi_value < RSI_OVERSOLD:
            rsi_vote = 1
        elif rsi_value > RSI_OVERBOUGHT:
            rsi_vote = -1
        elif rsi_value > RSI_CONFIRM and trend == Trend.UPTREND:
            confirm_vote = 1

    adx_vote = 0
    if adx_value is not None and adx_value > STRONG_TREND_PROXY:
        adx_vote = trend_vote

    stoch_vote = 0
    if stoch is not None:
        if stoch.raw_k < STOCH_OVERSOLD:
            stoch_vote = 1
        elif stoch.raw_k > STOCH_OVERBOUGHT:
            stoch_vote = -1

    div_vote = 0
    if divergence.type == DivergenceType.BULLISH:
        div_vote = 1
    elif divergence.type == DivergenceType.BEARISH:
        div_vote = -1

    return FactorVotes(
        ema_momentum=ema_vote,
        trend=trend_vote,
        rsi_extreme=rsi_vote,
        rsi_trend_confirm=confirm_vote,
        adx_amplifier=adx_vote,
        stoch_rsi=stoch_vote,
        divergence=div_vote,
    )


def score_from_votes(votes: FactorVotes, weights: ScoringWeights | None = None) -> float:
    """Apply a weight table to votes and clamp to [0, 100]."""
    weights = weights or ScoringWeights()
    total = BASE_SCORE + sum(
        vote * getattr(weights, name) for name, vote in votes.as_dict().items()
    )
    return max(0.0, min(100.0, total))


def breakdown(votes: FactorVotes, weights: ScoringWeights | None = None) -> ScoreBreakdown:
    weights = weights or ScoringWeights()
    vote_map = votes.as_dict()
    return ScoreBreakdown(
        votes=vote_map,
        contributions={name: vote * getattr(weights, name) for name, vote in vote_map.items()},
        score=score_from_votes(votes, weights),
    )


def calculate_technical_score(
    prices: Sequence[float],
    rsi_value: float | None,
    adx_value: float | None,
    stoch: StochRSI | None,
    trend: Trend,
    divergence: DivergenceResult = NO_DIVERGENCE,
    weights: ScoringWeights | None = None,
) -> float:
    """
    Calculate the composite technical score.

    Args:
        prices: Close prices, most recent last
        rsi_value: Latest RSI
        adx_value: Latest volatility trend proxy
        stoch: Latest Stochastic RSI (raw %K is used)
        trend: Market structure trend
        divergence: RSI divergence
        weights: Factor weights (defaults when None)

    Returns:
        Score in [0, 100]; 50 is neutral
    """
    votes = score_factors(prices, rsi_value, adx_value, stoch, trend, divergence)
    return score_from_votes(votes, weights)


def prediction_from_score(score: float) -> Prediction:
    """Map a score to a direction: > 60 bullish, < 40 bearish."""
    if score > BULLISH_THRESHOLD:
        return Prediction.BULLISH
    if score < BEARISH_THRESHOLD:
        return Prediction.BEARISH
    return Prediction.NEUTRAL


def _votes_for_prices(
    closes: Sequence[float],
    highs: Sequence[float],
    lows: Sequence[float],
) -> FactorVotes:
    structure = analyze_market_structure(closes)
    return score_factors(
        closes,
        rsi_latest(closes),
        volatility_trend_proxy(highs, lows, closes),
        stoch_rsi(closes),
        structure.trend,
        detect_divergence(closes, rsi(closes)),
    )


def compute_factor_votes(candles: Sequence[Candle], start: int = 0) -> list[FactorVotes | None]:
    """
    Vote at every index using only the candles up to and including it.

    Args:
        candles: Candle series
        start: First index to vote at (earlier entries are None)

    Returns:
        List of votes aligned with candles
    """
    closes = get_closes(candles)
    highs = get_highs(candles)
    lows = get_lows(candles)

    result: list[FactorVotes | None] = [None] * min(start, len(candles))
    for i in range(start, len(candles)):
        end = i + 1
        result.append(_votes_for_prices(closes[:end], highs[:end], lows[:end]))
    return result


class TechnicalScorer:
    """Scores candle series with a fixed weight table."""

    def __init__(self, weights: ScoringWeights | None = None):
        self.weights = weights or ScoringWeights()

    def score_candles(self, candles: Sequence[Candle]) -> ScoreBreakdown:
        """Score the latest candle of a series."""
        if not candles:
            return breakdown(FactorVotes(), self.weights)

        votes = _votes_for_prices(get_closes(candles), get_highs(candles), get_lows(candles))
        result = breakdown(votes, self.weights)
        logger.debug(f"Technical score {result.score:.1f} votes={result.votes}")
        return result
