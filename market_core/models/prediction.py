"""Saved prediction and narrative models (learning and guard inputs)."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from market_core.models.analysis import Prediction


class PredictionStatus(str, Enum):
    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"


class SavedPrediction(BaseModel):
    """A prediction recorded by the persistence layer, with its outcome."""

    model_config = ConfigDict(frozen=True)

    id: str
    coin_symbol: str
    entry_price: float
    target_price: float
    stop_loss: float
    prediction_type: Prediction
    date: datetime
    status: PredictionStatus = PredictionStatus.PENDING
    confidence: float = Field(default=50.0, ge=0, le=100)
    failure_reason: str | None = None


class NarrativeAnalysis(BaseModel):
    """Direction and levels proposed by an external narrative source."""

    model_config = ConfigDict(frozen=True)

    prediction: Prediction
    confidence_score: float = 50.0
    target_price: float
    stop_loss: float
    reasoning: str = ""
