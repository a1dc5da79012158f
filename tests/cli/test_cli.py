from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
import pytest
import yaml
from typer.testing import CliRunner

from ts_enricher import __version__
from ts_enricher.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, restore_logging: None) -> None:
    # enrich reconfigures logging from the loaded config; restore_logging undoes it.
    monkeypatch.delenv("TS_ENRICHER_CONFIG_PATH", raising=False)
    monkeypatch.delenv("TS_ENRICHER_ENV", raising=False)
    monkeypatch.chdir(tmp_path)


def test_cli_root_help_shows_commands() -> None:
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0, result.output
    assert "enrich" in result.output
    assert "version" in result.output


def test_cli_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_enrich_with_explicit_options(events_csv: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "events_enriched.csv"

    result = runner.invoke(
        app,
        [
            "enrich",
            str(events_csv),
            "--output",
            str(output),
            "--timestamp-column",
            "timestamp",
            "--drop-timestamp",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Wrote 3 rows" in result.output

    df = pd.read_csv(output)
    assert list(df.columns) == ["amount", "day_of_week", "hour", "month"]
    assert df["day_of_week"].tolist() == [5, 2, 3]
    assert df["hour"].tolist() == [8, 9, 10]
    assert df["month"].tolist() == [1, 2, 3]


def test_cli_enrich_keeps_timestamp_by_default(events_csv: Path, tmp_path: Path) -> None:
    output = tmp_path / "kept.csv"

    result = runner.invoke(app, ["enrich", str(events_csv), "-o", str(output)])

    assert result.exit_code == 0, result.output
    df = pd.read_csv(output)
    assert df["timestamp"].tolist() == ["2022-01-01 08:00", "2022-02-02 09:00", "2022-03-03 10:00"]


def test_cli_enrich_uses_config_defaults(
    events_csv: Path,
    config_path: Path,
    tmp_path: Path,
) -> None:
    # config_path sets drop_timestamp=True and an explicit timestamp format.
    output = tmp_path / "from_config.csv"

    result = runner.invoke(
        app,
        ["enrich", str(events_csv), "-o", str(output), "--config", str(config_path)],
    )

    assert result.exit_code == 0, result.output
    df = pd.read_csv(output)
    assert "timestamp" not in df.columns
    assert df["month"].tolist() == [1, 2, 3]


def test_cli_enrich_missing_column_fails(events_csv: Path, tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["enrich", str(events_csv), "-o", str(tmp_path / "x.csv"), "-t", "created_at"],
    )

    assert result.exit_code == 1
    assert "column_not_found" in result.output
    assert not (tmp_path / "x.csv").exists()


def test_cli_enrich_bad_timestamp_fails(tmp_path: Path) -> None:
    source = tmp_path / "bad.csv"
    pd.DataFrame({"timestamp": ["2022-01-01 08:00", "yesterday-ish"]}).to_csv(source, index=False)

    result = runner.invoke(app, ["enrich", str(source), "-o", str(tmp_path / "y.csv")])

    assert result.exit_code == 1
    assert "timestamp_parse_error" in result.output


def test_cli_enrich_missing_input_fails(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["enrich", str(tmp_path / "nope.csv"), "-o", str(tmp_path / "z.csv")],
    )

    assert result.exit_code == 1
    assert "data_file_not_found" in result.output


def test_cli_keep_timestamp_overrides_config(
    events_csv: Path,
    config_path: Path,
    tmp_path: Path,
) -> None:
    # config_path sets drop_timestamp=True.
    output = tmp_path / "kept_by_flag.csv"

    result = runner.invoke(
        app,
        [
            "enrich",
            str(events_csv),
            "-o",
            str(output),
            "--config",
            str(config_path),
            "--keep-timestamp",
        ],
    )

    assert result.exit_code == 0, result.output
    df = pd.read_csv(output)
    assert "timestamp" in df.columns
    assert df["day_of_week"].tolist() == [5, 2, 3]


def test_cli_applies_logging_settings_from_config(events_csv: Path, tmp_path: Path) -> None:
    prod_config = tmp_path / "prod.yaml"
    prod_config.write_text(
        yaml.safe_dump({"env": "prod", "log_level": "WARNING", "paths": {"base_dir": str(tmp_path)}}),
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        ["enrich", str(events_csv), "-o", str(tmp_path / "prod_out.csv"), "-c", str(prod_config)],
    )

    assert result.exit_code == 0, result.output
    assert logging.getLogger("ts_enricher").level == logging.WARNING
    assert (tmp_path / "logs" / "ts_enricher.log").exists()
