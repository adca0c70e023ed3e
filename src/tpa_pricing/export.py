"""Tabular export of lookup results and rule listings.

Converts lists of wire models into Polars DataFrames and writes them as CSV or Parquet.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import polars as pl
from pydantic import BaseModel

SUPPORTED_SUFFIXES = (".csv", ".parquet")


def models_to_frame(records: Sequence[BaseModel], columns: Sequence[str] | None = None) -> pl.DataFrame:
    """One row per record, keyed by field name (snake_case).

    Args:
        records: Wire models to flatten; nested values are kept as-is.
        columns: Optional column subset and order.

    Returns:
        DataFrame; empty (with ``columns`` when given) for no records.
    """
    rows = [record.model_dump(mode="json") for record in records]
    if not rows:
        return pl.DataFrame({c: [] for c in columns or []})
    df = pl.DataFrame(rows, infer_schema_length=None)
    if columns:
        df = df.select([c for c in columns if c in df.columns])
    return df


def write_frame(df: pl.DataFrame, path: Path) -> Path:
    """Write a DataFrame, choosing the format from the file suffix.

    Raises:
        ValueError: If the suffix is not ``.csv`` or ``.parquet``.
    """
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported export format '{suffix}'; use one of {SUPPORTED_SUFFIXES}")
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.write_csv(path)
    else:
        df.write_parquet(path)
    return path
