"""
Command-line interface for ts_enricher.

Typical usage (after installing the package):

    ts-enricher enrich data/raw/events.csv --output data/processed/events.csv \\
        --timestamp-column created_at --drop-timestamp

Options that are not given on the command line fall back to the
`enrichment` section of the YAML config (see ts_enricher.config).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .config import load_config
from .data.loading import load_dataframe, save_dataframe
from .exceptions import AppError
from .features.calendar import enrich
from .logging_config import configure_logging_from_app_config, get_logger

app = typer.Typer(
    help="Append calendar features (day_of_week, hour, month) to tabular files.",
    no_args_is_help=True,
)

logger = get_logger(__name__)


@app.command("version")
def version() -> None:
    """Print the installed ts_enricher version."""
    typer.echo(f"ts_enricher version: {__version__}")


@app.command("enrich")
def enrich_file(
    input_path: Path = typer.Argument(
        ...,
        dir_okay=False,
        help="CSV or Parquet file to enrich.",
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        dir_okay=False,
        help="Where to write the enriched table (format inferred from the suffix).",
    ),
    timestamp_column: Optional[str] = typer.Option(
        None,
        "--timestamp-column",
        "-t",
        help="Timestamp column name. Defaults to enrichment.timestamp_column from config.",
    ),
    drop_timestamp: Optional[bool] = typer.Option(
        None,
        "--drop-timestamp/--keep-timestamp",
        help="Remove or keep the timestamp column. Defaults to enrichment.drop_timestamp from config.",
    ),
    timestamp_format: Optional[str] = typer.Option(
        None,
        "--timestamp-format",
        help="strftime-style format for parsing timestamps, e.g. '%Y-%m-%d %H:%M'.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        dir_okay=False,
        help="Path to a YAML config file. If omitted, config discovery is used.",
    ),
    env: Optional[str] = typer.Option(
        None,
        "--env",
        help="Config environment/profile name (e.g. 'dev', 'prod').",
    ),
) -> None:
    """Enrich INPUT_PATH with calendar features and write the result to --output."""
    try:
        cfg = load_config(config_path=config, env=env)
        configure_logging_from_app_config(cfg, force=True)

        settings = cfg.enrichment
        column = timestamp_column or settings.timestamp_column
        drop = settings.drop_timestamp if drop_timestamp is None else drop_timestamp

        df = load_dataframe(input_path)
        enriched = enrich(
            df,
            column,
            drop,
            inplace=True,
            timestamp_format=timestamp_format or settings.timestamp_format,
            dataset_name=input_path.name,
        )
        save_dataframe(enriched, output)
    except AppError as exc:
        logger.error("Enrichment failed", extra={"error": exc.to_dict()})
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Wrote {len(enriched)} rows to {output}")


if __name__ == "__main__":
    app()
