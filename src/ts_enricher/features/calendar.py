from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from ts_enricher.exceptions import ColumnNotFoundError, DataError, TimestampParseError
from ts_enricher.logging_config import get_logger

logger = get_logger(__name__)
_LOCATION_PREFIX = __name__

DAY_OF_WEEK_COLUMN = "day_of_week"
HOUR_COLUMN = "hour"
MONTH_COLUMN = "month"

# Order in which the derived columns are appended.
CALENDAR_COLUMNS: tuple[str, ...] = (DAY_OF_WEEK_COLUMN, HOUR_COLUMN, MONTH_COLUMN)

# Cap on how many offending row labels are carried in error context.
_MAX_REPORTED_ROWS = 10


def enrich(
    table: pd.DataFrame,
    timestamp_column: str,
    drop_timestamp: bool = False,
    *,
    inplace: bool = False,
    timestamp_format: str | None = None,
    dataset_name: str | None = None,
) -> pd.DataFrame:
    """Append calendar features derived from a timestamp column.

    For every row the value in `timestamp_column` is parsed into a calendar
    point and three integer columns are appended:

      - day_of_week: 0-6, Monday=0 ... Sunday=6 (same as `datetime.weekday()`)
      - hour:        0-23
      - month:       1-12

    Row count and row order are preserved. All values are parsed and derived
    before anything is written, so a failure never leaves a half-enriched
    table behind, even with `inplace=True`.

    Parameters
    ----------
    table:
        Input DataFrame. May be empty; the derived columns are still added.
    timestamp_column:
        Name of the column holding the timestamps.
    drop_timestamp:
        If True, the timestamp column is removed from the result. Otherwise
        it is kept unchanged.
    inplace:
        If False (default), the caller's DataFrame is copied and left
        untouched. If True, `table` itself is modified and returned.
    timestamp_format:
        Optional strftime-style format for string timestamps. If None, each
        value is parsed individually.
    dataset_name:
        Optional logical name (e.g. "train", "events.csv") used in logs/errors.

    Returns
    -------
    pd.DataFrame
        The enriched table (a new object unless `inplace=True`).

    Raises
    ------
    ColumnNotFoundError
        If `timestamp_column` is not a column of `table`.
    TimestampParseError
        If any value in the column is null or cannot be parsed.
    DataError
        If `table` is not a DataFrame, the column name is duplicated, or the
        timestamp column would be overwritten by a derived column.
    """
    if not isinstance(table, pd.DataFrame):
        raise DataError(
            f"Expected a pandas DataFrame, got {type(table).__name__}",
            code="enrich_invalid_table",
            context={"dataset_name": dataset_name, "type": type(table).__name__},
            location=f"{_LOCATION_PREFIX}.enrich",
        )

    logger.info(
        "Starting timestamp enrichment",
        extra={
            "dataset_name": dataset_name,
            "n_rows": int(table.shape[0]),
            "n_cols": int(table.shape[1]),
            "timestamp_column": timestamp_column,
            "drop_timestamp": drop_timestamp,
            "inplace": inplace,
        },
    )

    _validate_timestamp_column(
        table,
        timestamp_column=timestamp_column,
        drop_timestamp=drop_timestamp,
        dataset_name=dataset_name,
    )

    parsed = _parse_timestamps(
        table[timestamp_column],
        column=timestamp_column,
        timestamp_format=timestamp_format,
        dataset_name=dataset_name,
    )
    parts = _calendar_parts(parsed)

    if inplace:
        result = table
        if drop_timestamp:
            result.drop(columns=[timestamp_column], inplace=True)
    elif drop_timestamp:
        result = table.drop(columns=[timestamp_column])
    else:
        result = table.copy()

    overwritten = [name for name in CALENDAR_COLUMNS if name in result.columns]
    if overwritten:
        logger.warning(
            "Overwriting existing calendar columns",
            extra={"dataset_name": dataset_name, "columns": overwritten},
        )

    # Positional assignment; the input index may contain duplicate labels.
    for name in CALENDAR_COLUMNS:
        result[name] = parts[name]

    logger.info(
        "Finished timestamp enrichment",
        extra={
            "dataset_name": dataset_name,
            "n_rows": int(result.shape[0]),
            "n_cols": int(result.shape[1]),
        },
    )

    return result


def enrich_records(
    rows: Iterable[Mapping[str, Any]],
    timestamp_column: str,
    drop_timestamp: bool = False,
    *,
    columns: Sequence[str] | None = None,
    timestamp_format: str | None = None,
) -> list[dict[str, Any]]:
    """Row-oriented variant of `enrich` for lists of mappings.

    Each output row is a copy of the input mapping with the derived keys
    added (and the timestamp key removed when `drop_timestamp` is set);
    other values and keys are passed through untouched.

    `columns` declares the schema used when `rows` is empty; without it an
    empty input has no columns and fails with ColumnNotFoundError. A row
    that lacks the timestamp key is treated as a null timestamp.
    """
    materialized = [dict(row) for row in rows]

    if materialized:
        schema = list(dict.fromkeys(key for row in materialized for key in row))
    else:
        schema = list(columns or ())

    if timestamp_column in schema:
        # Only the timestamp column goes through pandas.
        table = pd.DataFrame(
            {
                timestamp_column: pd.Series(
                    [row.get(timestamp_column) for row in materialized],
                    dtype=object,
                )
            }
        )
    else:
        table = pd.DataFrame(columns=schema)

    enriched = enrich(
        table,
        timestamp_column,
        drop_timestamp,
        inplace=True,
        timestamp_format=timestamp_format,
    )
    derived = enriched[list(CALENDAR_COLUMNS)].to_dict(orient="records")

    overwritten = [
        name for name in CALENDAR_COLUMNS
        if name in schema and not (drop_timestamp and name == timestamp_column)
    ]
    if overwritten:
        logger.warning(
            "Overwriting existing calendar keys in records",
            extra={"columns": overwritten},
        )

    for row, parts in zip(materialized, derived):
        if drop_timestamp:
            row.pop(timestamp_column, None)
        row.update(parts)

    return materialized


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validate_timestamp_column(
    table: pd.DataFrame,
    *,
    timestamp_column: str,
    drop_timestamp: bool,
    dataset_name: str | None = None,
) -> None:
    if timestamp_column not in table.columns:
        raise ColumnNotFoundError(
            f"Timestamp column '{timestamp_column}' is missing from the table",
            context={
                "dataset_name": dataset_name,
                "column": timestamp_column,
                "available_columns": [str(c) for c in table.columns],
            },
            location=f"{_LOCATION_PREFIX}._validate_timestamp_column",
        )

    n_matches = int((table.columns == timestamp_column).sum())
    if n_matches > 1:
        raise DataError(
            f"Timestamp column '{timestamp_column}' appears {n_matches} times",
            code="enrich_duplicate_column",
            context={"dataset_name": dataset_name, "column": timestamp_column},
            location=f"{_LOCATION_PREFIX}._validate_timestamp_column",
        )

    if not drop_timestamp and timestamp_column in CALENDAR_COLUMNS:
        raise DataError(
            f"Timestamp column '{timestamp_column}' would be overwritten by a "
            "derived calendar column; rename it or pass drop_timestamp=True",
            code="enrich_column_collision",
            context={
                "dataset_name": dataset_name,
                "column": timestamp_column,
                "derived_columns": list(CALENDAR_COLUMNS),
            },
            location=f"{_LOCATION_PREFIX}._validate_timestamp_column",
        )


def _parse_timestamps(
    series: pd.Series,
    *,
    column: str,
    timestamp_format: str | None,
    dataset_name: str | None = None,
) -> pd.Series:
    """Convert `series` to datetime64, failing on any null or unparseable value."""
    if pd.api.types.is_datetime64_any_dtype(series.dtype):
        parsed = series
    else:
        try:
            parsed = pd.to_datetime(
                series,
                format=timestamp_format or "mixed",
                errors="coerce",
            )
        except (TypeError, ValueError, OverflowError) as exc:
            raise TimestampParseError(
                f"Failed to convert column '{column}' to datetime",
                cause=exc,
                context={
                    "dataset_name": dataset_name,
                    "column": column,
                    "timestamp_format": timestamp_format,
                },
                location=f"{_LOCATION_PREFIX}._parse_timestamps",
            ) from exc

        if not pd.api.types.is_datetime64_any_dtype(parsed.dtype):
            # e.g. strings carrying different UTC offsets
            raise TimestampParseError(
                f"Column '{column}' could not be converted to a single datetime type",
                context={
                    "dataset_name": dataset_name,
                    "column": column,
                    "parsed_dtype": str(parsed.dtype),
                },
                location=f"{_LOCATION_PREFIX}._parse_timestamps",
            )

    invalid = parsed.isna().to_numpy()
    n_invalid = int(invalid.sum())
    if n_invalid > 0:
        invalid_rows = series.index[invalid][:_MAX_REPORTED_ROWS].tolist()
        logger.warning(
            "Timestamp column contains null or unparseable values",
            extra={
                "dataset_name": dataset_name,
                "column": column,
                "n_invalid": n_invalid,
            },
        )
        raise TimestampParseError(
            f"{n_invalid} value(s) in column '{column}' could not be parsed as timestamps",
            context={
                "dataset_name": dataset_name,
                "column": column,
                "n_invalid": n_invalid,
                "invalid_rows": invalid_rows,
                "timestamp_format": timestamp_format,
            },
            location=f"{_LOCATION_PREFIX}._parse_timestamps",
        )

    return parsed


def _calendar_parts(parsed: pd.Series) -> dict[str, Any]:
    """Return the derived columns as int64 arrays aligned with `parsed`."""
    dt = parsed.dt
    return {
        DAY_OF_WEEK_COLUMN: dt.dayofweek.to_numpy(dtype=np.int64),
        HOUR_COLUMN: dt.hour.to_numpy(dtype=np.int64),
        MONTH_COLUMN: dt.month.to_numpy(dtype=np.int64),
    }
