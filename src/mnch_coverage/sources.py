"""
Shared helpers for turning raw downloaded tables into loader input.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .errors import ConfigurationError, SchemaError

CSV_SUFFIXES = (".csv",)
EXCEL_SUFFIXES = (".xlsx", ".xls")

SheetName = Union[str, int, None]


def read_table(
    path: Path,
    sheet_name: SheetName = None,
    skiprows: Optional[int] = None,
) -> pd.DataFrame:
    """
    Read a CSV or Excel file into a dataframe without interpreting cells.

    CSV cells are kept as text so that "1,234" or "N/A" reach
    :func:`coerce_numeric` untouched.
    """

    path = Path(path)
    suffix = path.suffix.lower()
    if not path.exists():
        raise ConfigurationError(f"Input file not found: {path}")
    if suffix in CSV_SUFFIXES:
        return pd.read_csv(path, dtype=str, keep_default_na=False, skiprows=skiprows)
    if suffix in EXCEL_SUFFIXES:
        return pd.read_excel(
            path,
            sheet_name=0 if sheet_name is None else sheet_name,
            skiprows=skiprows,
        )
    raise ConfigurationError(
        f"Unsupported file type for {path.name}. Please use .csv or .xlsx."
    )


def select_columns(
    df: pd.DataFrame,
    columns: Mapping[str, Sequence[str]],
    source: str,
) -> pd.DataFrame:
    """
    Keep only the required columns, renamed to their canonical names.

    ``columns`` maps each canonical name to the header spellings accepted for
    it; the first spelling present in ``df`` wins.
    """

    renames = {}
    for canonical, candidates in columns.items():
        found = next((c for c in candidates if c in df.columns), None)
        if found is None:
            raise SchemaError(source, candidates[0], list(df.columns))
        renames[found] = canonical
    return df[list(renames)].rename(columns=renames)


def text(series: pd.Series) -> pd.Series:
    """Trimmed string view of a column with missing cells as ''."""
    return series.fillna("").astype(str).str.strip()


def coerce_numeric(series: pd.Series) -> pd.Series:
    """
    Parse a column to float, stripping thousands separators.

    Cells that still fail to parse ("N/A", "-", ":") become NaN.
    """

    cleaned = text(series).str.replace(r"[,\s]", "", regex=True)
    return pd.to_numeric(cleaned, errors="coerce").astype(float)


def split_area(series: pd.Series) -> Tuple[pd.Series, pd.Series]:
    """
    Split UNICEF "AFG: Afghanistan" labels into (code, name).

    Labels without a colon have an empty code and the whole label as name.
    """

    labels = text(series)
    parts = labels.str.split(":", n=1, expand=True)
    if parts.shape[1] < 2:
        return pd.Series("", index=labels.index), labels
    has_code = parts[1].notna()
    codes = parts[0].where(has_code, "").str.strip()
    names = parts[1].where(has_code, parts[0]).str.strip()
    return codes, names


def matches(series: pd.Series, expected) -> pd.Series:
    """Exact, whitespace-trimmed equality against a filter value."""
    return text(series) == str(expected).strip()
