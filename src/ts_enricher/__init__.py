"""
ts_enricher: calendar features (day of week, hour, month) from a timestamp column.

Public API:

    from ts_enricher import enrich, ColumnNotFoundError, TimestampParseError

    enriched = enrich(df, "created_at", drop_timestamp=True)
"""

from __future__ import annotations

from importlib import metadata as _metadata

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

try:
    __version__ = _metadata.version("ts-enricher")
except _metadata.PackageNotFoundError:
    # Running from a source checkout without installation
    __version__ = "0.0.0"

# ---------------------------------------------------------------------------
# Public API re-exports
# ---------------------------------------------------------------------------

from .config import AppConfig, EnrichmentConfig, get_config, get_paths  # noqa: E402,F401
from .exceptions import (  # noqa: E402,F401
    AppError,
    ColumnNotFoundError,
    ConfigError,
    DataError,
    TimestampParseError,
)
from .features.calendar import CALENDAR_COLUMNS, enrich, enrich_records  # noqa: E402,F401
from .logging_config import get_logger  # noqa: E402,F401

__all__ = [
    "__version__",
    # Config
    "AppConfig",
    "EnrichmentConfig",
    "get_config",
    "get_paths",
    # Logging
    "get_logger",
    # Exceptions
    "AppError",
    "ConfigError",
    "DataError",
    "ColumnNotFoundError",
    "TimestampParseError",
    # Enrichment
    "CALENDAR_COLUMNS",
    "enrich",
    "enrich_records",
]
