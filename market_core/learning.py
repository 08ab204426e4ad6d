"""Score adjustment from historical prediction failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from market_core.models.prediction import PredictionStatus, SavedPrediction
from market_core.protocols import PredictionStore

logger = logging.getLogger(__name__)

MIN_LOSSES = 3
HIGH_RSI = 70.0

HIGH_RSI_RATE = 0.4
LOW_VOLUME_RATE = 0.4
DIVERGENCE_RATE = 0.5

HIGH_RSI_PENALTY = 10.0
LOW_VOLUME_PENALTY = 15.0
DIVERGENCE_PENALTY = 10.0


@dataclass
class LearningStats:
    """Failure counts aggregated from LOSS predictions.

    Failure categories are inferred from keywords in the recorded
    failure reason, so one loss may count toward several categories.
    """

    total_losses: int = 0
    high_rsi_failures: int = 0
    low_rsi_failures: int = 0
    low_volume_failures: int = 0
    divergence_failures: int = 0

    @classmethod
    def from_predictions(cls, predictions: Sequence[SavedPrediction]) -> LearningStats:
        stats = cls()
        for prediction in predictions:
            if prediction.status != PredictionStatus.LOSS:
                continue
            stats.total_losses += 1
            reason = (prediction.failure_reason or "").lower()
            if "rsi" in reason and "high" in reason:
                stats.high_rsi_failures += 1
            if "rsi" in reason and "low" in reason:
                stats.low_rsi_failures += 1
            if "volume" in reason:
                stats.low_volume_failures += 1
            if "fakeout" in reason or "divergence" in reason:
                stats.divergence_failures += 1
        return stats

    @classmethod
    def from_store(cls, store: PredictionStore) -> LearningStats:
        return cls.from_predictions(store.load())

    def rate(self, count: int) -> float:
        return count / self.total_losses if self.total_losses > 0 else 0.0


@dataclass
class LearningContext:
    """Market conditions at the time of the prediction being scored."""

    rsi: float | None = None
    volume_spike: bool = False
    divergence: bool = False


@dataclass
class LearningAdjustment:
    adjusted_score: float
    penalties: list[str] = field(default_factory=list)


def adjust_score_with_learning(
    base_score: float,
    context: LearningContext,
    stats: LearningStats,
) -> LearningAdjustment:
    """
    Penalise a score when current conditions match past failure patterns.

    No adjustment is made until at least three losses are on record.
    The adjusted score never drops below 0.
    """
    if stats.total_losses < MIN_LOSSES:
        return LearningAdjustment(adjusted_score=base_score)

    score = base_score
    penalties: list[str] = []

    if context.rsi is not None and context.rsi > HIGH_RSI:
        rate = stats.rate(stats.high_rsi_failures)
        if rate > HIGH_RSI_RATE:
            score -= HIGH_RSI_PENALTY
            penalties.append(f"Historic failure rate with high RSI is {rate * 100:.0f}%")

    if not context.volume_spike:
        rate = stats.rate(stats.low_volume_failures)
        if rate > LOW_VOLUME_RATE:
            score -= LOW_VOLUME_PENALTY
            penalties.append(f"Historic failure rate on low volume is {rate * 100:.0f}%")

    if context.divergence:
        rate = stats.rate(stats.divergence_failures)
        if rate > DIVERGENCE_RATE:
            score -= DIVERGENCE_PENALTY
            penalties.append(f"Historic divergence fakeout rate is {rate * 100:.0f}%")

    if penalties:
        logger.debug(f"Learning penalties applied: {penalties}")

    return LearningAdjustment(adjusted_score=max(0.0, score), penalties=penalties)
