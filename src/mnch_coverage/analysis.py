"""
Births-weighted coverage by U5MR track status.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence, Tuple

import pandas as pd

from .ingest_health import INDICATORS
from .ingest_mortality import TRACK_STATUSES
from .ingest_population import BIRTHS_COLUMN

SUMMARY_COLUMNS = ["track_status", "indicator", "weighted_coverage"]
REPORT_COLUMNS = SUMMARY_COLUMNS + ["countries", "total_births"]

_SORT_ORDER = {
    "track_status": TRACK_STATUSES,
    "indicator": INDICATORS,
}


def round_half_up(value: float, digits: int = 1) -> float:
    """
    Round on the decimal representation, halves away from zero.

    ``round(72.25, 1)`` gives 72.2 under banker's rounding; this gives 72.3.
    """

    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def _order_key(column: pd.Series) -> pd.Series:
    order = _SORT_ORDER.get(column.name, ())
    return column.map(lambda v: order.index(v) if v in order else len(order))


def aggregate_coverage(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Weighted mean coverage per (track_status, indicator).

    weighted_coverage = sum(value * births) / sum(births), over rows with a
    value and positive births. Groups with no such rows are left out rather
    than reported as 0.
    """

    eligible = rows[rows["value"].notna() & (rows[BIRTHS_COLUMN] > 0)]
    if eligible.empty:
        return pd.DataFrame(columns=REPORT_COLUMNS)

    eligible = eligible.assign(weighted=eligible["value"] * eligible[BIRTHS_COLUMN])
    grouped = (
        eligible.groupby(["track_status", "indicator"], sort=False)
        .agg(
            weighted=("weighted", "sum"),
            total_births=(BIRTHS_COLUMN, "sum"),
            countries=("join_key", "nunique"),
        )
        .reset_index()
    )
    grouped["weighted_coverage"] = (grouped["weighted"] / grouped["total_births"]).map(
        round_half_up
    )
    summary = grouped.sort_values(["track_status", "indicator"], key=_order_key)
    return summary[REPORT_COLUMNS].reset_index(drop=True)


def missing_groups(
    summary: pd.DataFrame,
    statuses: Sequence[str] = TRACK_STATUSES,
    indicators: Sequence[str] = INDICATORS,
) -> List[Tuple[str, str]]:
    """Expected (track_status, indicator) pairs with no row in ``summary``."""
    present = set(zip(summary["track_status"], summary["indicator"]))
    return [
        (status, indicator)
        for status in statuses
        for indicator in indicators
        if (status, indicator) not in present
    ]
