from __future__ import annotations

import logging
from pathlib import Path
from typing import Generator

import pandas as pd
import pytest
import yaml

from ts_enricher.logging_config import PACKAGE_LOGGER, configure_logging


# ---------------------------------------------------------------------------
# Logging capture
# ---------------------------------------------------------------------------


@pytest.fixture
def package_caplog(caplog: pytest.LogCaptureFixture) -> Generator[pytest.LogCaptureFixture, None, None]:
    """caplog that also sees records from the non-propagating package logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.addHandler(caplog.handler)
    try:
        yield caplog
    finally:
        package_logger.removeHandler(caplog.handler)


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Reapply the default logging setup after a test reconfigures it."""
    yield
    configure_logging(force=True)


# ---------------------------------------------------------------------------
# In-memory DataFrames
# ---------------------------------------------------------------------------


@pytest.fixture
def events_df() -> pd.DataFrame:
    """Three events with string timestamps plus an unrelated numeric column."""
    return pd.DataFrame(
        {
            "timestamp": ["2022-01-01 08:00", "2022-02-02 09:00", "2022-03-03 10:00"],
            "amount": [10.0, 20.5, 3.25],
        }
    )


@pytest.fixture
def hourly_df() -> pd.DataFrame:
    """Small hourly series with a typed datetime64 column."""
    dates = pd.date_range("2020-01-01", periods=30, freq="h")
    return pd.DataFrame(
        {
            "created_at": dates,
            "value": range(len(dates)),
        }
    )


# ---------------------------------------------------------------------------
# On-disk datasets and configs under tmp_path
# ---------------------------------------------------------------------------


@pytest.fixture
def events_csv(tmp_path: Path, events_df: pd.DataFrame) -> Path:
    """Write events_df as CSV under tmp_path/data/raw and return its path."""
    raw_dir = tmp_path / "data" / "raw"
    raw_dir.mkdir(parents=True, exist_ok=True)

    csv_path = raw_dir / "events.csv"
    events_df.to_csv(csv_path, index=False)
    return csv_path


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Write a minimal flat YAML config rooted at tmp_path."""
    config = {
        "env": "dev",
        "log_level": "INFO",
        "paths": {
            "base_dir": str(tmp_path),
            "data_dir": "data",
            "raw_dir": "data/raw",
            "processed_dir": "data/processed",
        },
        "enrichment": {
            "timestamp_column": "timestamp",
            "drop_timestamp": True,
            "timestamp_format": "%Y-%m-%d %H:%M",
        },
    }

    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture
def profiles_config_path(tmp_path: Path) -> Path:
    """Write a YAML config with dev/prod profiles."""
    config = {
        "dev": {
            "env": "dev",
            "log_level": "DEBUG",
            "enrichment": {"timestamp_column": "ts_dev"},
        },
        "prod": {
            "env": "prod",
            "log_level": "WARNING",
            "enrichment": {"timestamp_column": "ts_prod", "drop_timestamp": True},
        },
    }

    path = tmp_path / "profiles.yaml"
    path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return path
