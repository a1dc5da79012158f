from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from ts_enricher.config import PathsConfig, get_paths
from ts_enricher.exceptions import ColumnNotFoundError, DataError
from ts_enricher.logging_config import get_logger

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("csv", "parquet")


def _infer_format(path: Path) -> str:
    """Infer file format from suffix, defaulting to 'csv'."""
    suffix = path.suffix.lower()
    if suffix in {".parquet", ".pq"}:
        return "parquet"
    return "csv"


def _check_format(fmt: str, path: Path, location: str) -> None:
    if fmt not in SUPPORTED_FORMATS:
        raise DataError(
            f"Unsupported data format: {fmt}",
            code="data_unsupported_format",
            context={"path": str(path), "format": fmt, "supported": list(SUPPORTED_FORMATS)},
            location=location,
        )


def _ensure_exists(path: Path) -> None:
    """Raise DataError if path does not exist."""
    if not path.exists():
        raise DataError(
            f"Data file not found: {path}",
            code="data_file_not_found",
            context={"path": str(path)},
            location=f"{__name__}._ensure_exists",
        )


def _validate_columns(
    df: pd.DataFrame,
    required_columns: Iterable[str] | None = None,
    *,
    path: Path | None = None,
) -> None:
    """Raise ColumnNotFoundError if any required column is missing."""
    if not required_columns:
        return

    missing = set(required_columns).difference(df.columns)
    if missing:
        raise ColumnNotFoundError(
            "Missing required columns in loaded dataset",
            context={
                "path": str(path) if path is not None else None,
                "missing_columns": sorted(missing),
                "available_columns": list(df.columns),
            },
            location=f"{__name__}._validate_columns",
        )


def load_dataframe(
    path: str | Path,
    *,
    format: str | None = None,
    required_columns: Iterable[str] | None = None,
    read_kwargs: Mapping[str, Any] | None = None,
) -> pd.DataFrame:
    """Load a tabular dataset into a pandas DataFrame.

    Parameters
    ----------
    path:
        Path to the file to load.
    format:
        Optional format override: 'csv' or 'parquet'. If omitted, inferred
        from the file suffix.
    required_columns:
        Optional column names that must be present in the dataset.
    read_kwargs:
        Extra keyword arguments forwarded to the pandas reader
        (e.g. {"sep": ";"}).

    Raises
    ------
    DataError
        If the file does not exist, cannot be read, or has an unsupported format.
    ColumnNotFoundError
        If a required column is missing.
    """
    path = Path(path)
    _ensure_exists(path)

    fmt = (format or _infer_format(path)).lower()
    _check_format(fmt, path, f"{__name__}.load_dataframe")
    kwargs: dict[str, Any] = dict(read_kwargs or {})

    logger.info(
        "Loading dataframe",
        extra={"path": str(path), "format": fmt, "read_kwargs": kwargs},
    )

    try:
        if fmt == "csv":
            df = pd.read_csv(path, **kwargs)
        else:
            df = pd.read_parquet(path, **kwargs)
    except Exception as exc:
        raise DataError(
            f"Failed to load dataframe from {path}",
            code="data_load_error",
            cause=exc,
            context={"path": str(path), "format": fmt},
            location=f"{__name__}.load_dataframe",
        ) from exc

    _validate_columns(df, required_columns, path=path)

    logger.info(
        "Loaded dataframe",
        extra={
            "path": str(path),
            "format": fmt,
            "n_rows": int(df.shape[0]),
            "n_cols": int(df.shape[1]),
        },
    )

    return df


def save_dataframe(
    df: pd.DataFrame,
    path: str | Path,
    *,
    format: str | None = None,
    write_kwargs: Mapping[str, Any] | None = None,
) -> Path:
    """Write `df` to `path` (CSV or Parquet), creating parent directories.

    The index is not written. Returns the output path.
    """
    path = Path(path)
    fmt = (format or _infer_format(path)).lower()
    _check_format(fmt, path, f"{__name__}.save_dataframe")
    kwargs: dict[str, Any] = {"index": False, **dict(write_kwargs or {})}

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if fmt == "csv":
            df.to_csv(path, **kwargs)
        else:
            df.to_parquet(path, **kwargs)
    except Exception as exc:
        raise DataError(
            f"Failed to write dataframe to {path}",
            code="data_write_error",
            cause=exc,
            context={"path": str(path), "format": fmt},
            location=f"{__name__}.save_dataframe",
        ) from exc

    logger.info(
        "Saved dataframe",
        extra={
            "path": str(path),
            "format": fmt,
            "n_rows": int(df.shape[0]),
            "n_cols": int(df.shape[1]),
        },
    )

    return path


def load_raw_dataset(
    filename: str,
    *,
    paths: PathsConfig | None = None,
    required_columns: Iterable[str] | None = None,
    read_kwargs: Mapping[str, Any] | None = None,
) -> pd.DataFrame:
    """Convenience helper to load a dataset from the `raw_dir`."""
    if paths is None:
        paths = get_paths()

    return load_dataframe(
        paths.raw_dir / filename,
        required_columns=required_columns,
        read_kwargs=read_kwargs,
    )


def save_processed_dataset(
    df: pd.DataFrame,
    filename: str,
    *,
    paths: PathsConfig | None = None,
) -> Path:
    """Convenience helper to write an enriched table into `processed_dir`."""
    if paths is None:
        paths = get_paths()

    return save_dataframe(df, paths.processed_dir / filename)
