"""Load candle series from CSV files into Candle models.

Expected columns: ``time`` and ``close``; ``open``, ``high``, ``low``
and ``volume`` are optional. ``time`` may be epoch milliseconds or any
timestamp string pandas can parse (treated as UTC).
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from market_core.models.candle import Candle

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("time", "close")
OPTIONAL_COLUMNS = ("open", "high", "low", "volume")


class DataLoadError(ValueError):
    """Raised when a candle file is missing or unusable."""


def _parse_times(column: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(column):
        return pd.to_datetime(column, unit="ms", utc=True)
    return pd.to_datetime(column, utc=True)


def load_candles_frame(path: str | Path) -> pd.DataFrame:
    """Read and clean a candle CSV into a DataFrame sorted by time."""
    path = Path(path)
    if not path.is_file():
        raise DataLoadError(f"Candle file not found: {path}")

    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataLoadError(f"{path.name}: missing required columns {missing}")

    try:
        df["time"] = _parse_times(df["time"])
    except (ValueError, TypeError) as e:
        raise DataLoadError(f"{path.name}: unparseable time column ({e})") from e

    for col in ("close", *OPTIONAL_COLUMNS):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    before = len(df)
    df = df.dropna(subset=["close"])
    if len(df) < before:
        logger.warning(f"{path.name}: dropped {before - len(df)} rows without a close price")

    df = df.sort_values("time", kind="stable")
    duplicated = df["time"].duplicated(keep="last")
    if duplicated.any():
        logger.warning(f"{path.name}: dropped {int(duplicated.sum())} duplicate timestamps")
        df = df[~duplicated]

    if "volume" not in df.columns:
        df["volume"] = 0.0
    df["volume"] = df["volume"].fillna(0.0)

    return df.reset_index(drop=True)


def load_candles(path: str | Path) -> list[Candle]:
    """Load a candle CSV as a strictly time-ordered list of candles."""
    df = load_candles_frame(path)

    candles = []
    for row in df.itertuples(index=False):
        values = row._asdict()
        candles.append(
            Candle(
                time=values["time"].to_pydatetime(),
                open=_optional(values.get("open")),
                high=_optional(values.get("high")),
                low=_optional(values.get("low")),
                close=float(values["close"]),
                volume=float(values["volume"]),
            )
        )

    logger.info(f"Loaded {len(candles)} candles from {Path(path).name}")
    return candles


def _optional(value) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)
