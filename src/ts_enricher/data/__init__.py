"""
Data access utilities for ts_enricher.

Helpers for reading local files (CSV/Parquet) into pandas DataFrames and
writing enriched tables back out, kept separate from feature engineering so
the enricher itself stays free of IO.
"""

from __future__ import annotations

__all__: list[str] = []
