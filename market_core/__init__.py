"""Core market-analysis logic: indicators, structure, scoring and enrichment.

This package contains pure business logic with no I/O dependencies
(no database, cache, or network access). Every function is a
deterministic transform of an input candle series, shared by the
analysis layer and the backtesting system (backtest/).
"""
