"""Injected collaborator protocols (data provider and prediction store).

The engine never fetches or persists anything itself. Any backend
(exchange REST client, CSV files, a database, an in-memory list) can
implement these protocols and be passed in explicitly.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from market_core.models.candle import Candle
from market_core.models.prediction import SavedPrediction


class FetchError(Exception):
    """Raised by a CandleProvider when candles cannot be retrieved."""

    def __init__(self, symbol: str, interval: str, reason: str):
        self.symbol = symbol
        self.interval = interval
        self.reason = reason
        super().__init__(f"Failed to fetch {symbol} {interval}: {reason}")


@runtime_checkable
class CandleProvider(Protocol):
    """Protocol that candle data sources must implement."""

    def fetch_candles(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        """Return up to ``limit`` candles, oldest first.

        Raises:
            FetchError: If the source cannot deliver data
        """
        ...


@runtime_checkable
class PredictionStore(Protocol):
    """Protocol that prediction history backends must implement."""

    def load(self) -> list[SavedPrediction]:
        """Load all saved predictions."""
        ...

    def save(self, predictions: Sequence[SavedPrediction]) -> None:
        """Replace the stored predictions."""
        ...


class InMemoryPredictionStore:
    """PredictionStore kept in process memory."""

    def __init__(self, predictions: Sequence[SavedPrediction] = ()):
        self._predictions = list(predictions)

    def load(self) -> list[SavedPrediction]:
        return list(self._predictions)

    def save(self, predictions: Sequence[SavedPrediction]) -> None:
        self._predictions = list(predictions)
