"""
Feature engineering utilities for ts_enricher.

The calendar module holds the timestamp enricher:

    from ts_enricher.features.calendar import enrich

    enriched = enrich(df, "created_at", drop_timestamp=True)
"""

from __future__ import annotations

from .calendar import CALENDAR_COLUMNS, enrich, enrich_records

__all__ = ["CALENDAR_COLUMNS", "enrich", "enrich_records"]
