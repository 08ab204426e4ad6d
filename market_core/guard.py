"""Alignment of external narrative predictions with the computed score.

The technical score is authoritative for direction: a narrative source
may explain a setup but never flip it, and its price levels are
sanitised so target and stop sit on the logical side of the price.
"""

import logging
from enum import Enum

from market_core.models.analysis import MarketStructure, Prediction
from market_core.models.prediction import NarrativeAnalysis
from market_core.scoring import prediction_from_score

logger = logging.getLogger(__name__)

NEUTRAL_BAND = 0.02
FALLBACK_DISTANCE = 0.05
MAX_DEVIATION = 0.15
MAX_DEVIATION_WIDE = 0.50


class TradingMode(str, Enum):
    SCALPING = "SCALPING"
    DAY_TRADING = "DAY_TRADING"
    SWING = "SWING"
    INVESTING = "INVESTING"


def max_deviation(mode: TradingMode) -> float:
    """Largest allowed target/stop distance from price, as a fraction."""
    if mode in (TradingMode.SWING, TradingMode.INVESTING):
        return MAX_DEVIATION_WIDE
    return MAX_DEVIATION


def _nearest_resistance(structure: MarketStructure, price: float) -> float | None:
    return next((r for r in sorted(structure.resistances) if r > price), None)


def _best_support(structure: MarketStructure, price: float) -> float | None:
    below = [s for s in structure.supports if s < price]
    return max(below) if below else None


def align_narrative(
    narrative: NarrativeAnalysis,
    technical_score: float,
    structure: MarketStructure,
    current_price: float,
    mode: TradingMode = TradingMode.DAY_TRADING,
) -> NarrativeAnalysis:
    """
    Force the score's direction onto a narrative and sanitise its levels.

    Args:
        narrative: Prediction proposed by the narrative source
        technical_score: Composite technical score
        structure: Market structure of the analysed series
        current_price: Latest price
        mode: Trading horizon (widens the deviation clamp for swing/investing)

    Returns:
        New NarrativeAnalysis with direction, confidence and levels aligned
    """
    prediction = prediction_from_score(technical_score)
    if prediction != narrative.prediction:
        logger.info(
            f"Overriding narrative direction {narrative.prediction.value} "
            f"with {prediction.value} (score {technical_score:.1f})"
        )

    target = narrative.target_price
    stop = narrative.stop_loss
    resistance = _nearest_resistance(structure, current_price)
    support = _best_support(structure, current_price)

    if prediction == Prediction.NEUTRAL:
        target = resistance or current_price * (1 + NEUTRAL_BAND)
        stop = support or current_price * (1 - NEUTRAL_BAND)
    elif prediction == Prediction.BULLISH:
        if target <= current_price:
            target = resistance or current_price * (1 + FALLBACK_DISTANCE)
        if stop >= current_price:
            stop = support or current_price * (1 - FALLBACK_DISTANCE)
    else:
        if target >= current_price:
            target = support or current_price * (1 - FALLBACK_DISTANCE)
        if stop <= current_price:
            stop = resistance or current_price * (1 + FALLBACK_DISTANCE)

    if current_price > 0 and prediction != Prediction.NEUTRAL:
        limit = max_deviation(mode)
        sign = 1 if prediction == Prediction.BULLISH else -1
        if abs(target - current_price) / current_price > limit:
            target = current_price * (1 + sign * limit)
        if abs(stop - current_price) / current_price > limit:
            stop = current_price * (1 - sign * limit)

    return narrative.model_copy(
        update={
            "prediction": prediction,
            "confidence_score": technical_score,
            "target_price": target,
            "stop_loss": stop,
        }
    )
