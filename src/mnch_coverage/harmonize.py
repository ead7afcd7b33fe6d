"""
Combine coverage, U5MR status and births into one country-level dataset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple

import pandas as pd

from .ingest_health import DEFAULT_MAX_YEAR, DEFAULT_MIN_YEAR, HEALTH_COLUMNS
from .ingest_mortality import UNCLASSIFIED
from .ingest_population import BIRTHS_COLUMN

logger = logging.getLogger(__name__)

MERGED_COLUMNS = [
    "join_key",
    "country",
    "indicator",
    "year",
    "value",
    "track_status",
    BIRTHS_COLUMN,
]


@dataclass
class MergeDiagnostics:
    """Join keys dropped at each merge stage, in the order they were seen."""

    health_rows: int = 0
    merged_rows: int = 0
    no_status: List[str] = field(default_factory=list)
    unclassified: List[str] = field(default_factory=list)
    no_population: List[str] = field(default_factory=list)
    missing_births: List[str] = field(default_factory=list)

    @property
    def dropped_rows(self) -> int:
        return self.health_rows - self.merged_rows


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _unique(keys: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(keys))


def combine_health(frames: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """Stack per-indicator observations in the order given."""
    frames = list(frames)
    if not frames:
        return pd.DataFrame(columns=HEALTH_COLUMNS)
    return pd.concat(frames, ignore_index=True)[HEALTH_COLUMNS]


def dedupe_latest(
    observations: pd.DataFrame,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> pd.DataFrame:
    """
    Keep the most recent observation per (join_key, indicator) in the window.

    When two rows share the latest year the one appearing first in
    ``observations`` is kept (stable sort).
    """

    window = observations[observations["year"].between(min_year, max_year)]
    latest = (
        window.sort_values("year", ascending=False, kind="mergesort")
        .drop_duplicates(subset=["join_key", "indicator"], keep="first")
        .sort_values(["join_key", "indicator"], kind="mergesort")
        .reset_index(drop=True)
    )
    return latest


def merge_sources_with_diagnostics(
    health: pd.DataFrame,
    status: pd.DataFrame,
    population: pd.DataFrame,
) -> Tuple[pd.DataFrame, MergeDiagnostics]:
    """
    Cascade health -> status -> population left joins.

    ``status`` and ``population`` must already hold one row per join key;
    pandas raises ``MergeError`` otherwise.
    """

    diagnostics = MergeDiagnostics(health_rows=len(health))

    with_status = health.merge(
        status[["join_key", "track_status"]],
        on="join_key",
        how="left",
        validate="many_to_one",
    )
    no_status = with_status["track_status"].isna()
    unclassified = with_status["track_status"] == UNCLASSIFIED
    diagnostics.no_status = _unique(with_status.loc[no_status, "join_key"])
    diagnostics.unclassified = _unique(with_status.loc[unclassified, "join_key"])
    with_status = with_status[~no_status & ~unclassified]

    with_births = with_status.merge(
        population[["join_key", BIRTHS_COLUMN]],
        on="join_key",
        how="left",
        validate="many_to_one",
    )
    no_population = ~with_births["join_key"].isin(population["join_key"])
    bad_births = ~no_population & ~(with_births[BIRTHS_COLUMN] > 0)
    diagnostics.no_population = _unique(with_births.loc[no_population, "join_key"])
    diagnostics.missing_births = _unique(with_births.loc[bad_births, "join_key"])
    merged = with_births[~no_population & ~bad_births]

    merged = merged[MERGED_COLUMNS].reset_index(drop=True)
    diagnostics.merged_rows = len(merged)

    logger.info(
        "Merged %d of %d observations (no status: %d, unclassified: %d, "
        "no population: %d, missing births: %d)",
        diagnostics.merged_rows,
        diagnostics.health_rows,
        int(no_status.sum()),
        int(unclassified.sum()),
        int(no_population.sum()),
        int(bad_births.sum()),
    )
    if diagnostics.no_status:
        logger.debug("No U5MR status for: %s", ", ".join(diagnostics.no_status))
    if diagnostics.unclassified:
        logger.debug("Unclassified U5MR status for: %s", ", ".join(diagnostics.unclassified))
    if diagnostics.no_population:
        logger.debug("No births record for: %s", ", ".join(diagnostics.no_population))
    if diagnostics.missing_births:
        logger.debug("Missing or non-positive births for: %s", ", ".join(diagnostics.missing_births))
    return merged, diagnostics


def merge_sources(
    health: pd.DataFrame,
    status: pd.DataFrame,
    population: pd.DataFrame,
) -> pd.DataFrame:
    """Rows present in all three sources with a usable status and births."""
    merged, _ = merge_sources_with_diagnostics(health, status, population)
    return merged


def write_merged_dataset(merged: pd.DataFrame, output_path: Path) -> Path:
    """Persist the country-level merged rows for auditing."""
    output_path = Path(output_path)
    _ensure_parent(output_path)
    merged.to_parquet(output_path, index=False)
    return output_path
