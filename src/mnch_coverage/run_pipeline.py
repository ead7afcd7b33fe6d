"""
Run the coverage pipeline end to end.

Usage:
    mnch-coverage --population wpp.xlsx --mortality u5mr.xlsx \
        --anc4 anc4.csv --sba sba.csv --output-dir 03_outputs
    python -m mnch_coverage.run_pipeline --help

Every flag falls back to its MNCH_* environment variable (see settings.py).
"""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

import pandas as pd

from .analysis import aggregate_coverage, missing_groups
from .errors import PipelineError
from .harmonize import (
    MergeDiagnostics,
    combine_health,
    dedupe_latest,
    merge_sources_with_diagnostics,
    write_merged_dataset,
)
from .ingest_health import ANC4, SBA, load_health_indicator
from .ingest_mortality import load_mortality_status
from .ingest_population import load_population
from .report import ReportArtifacts, write_report
from .settings import REPORT_FORMATS, PipelineConfig
from .sources import read_table

logger = logging.getLogger(__name__)

MERGED_PARQUET = "merged_coverage.parquet"


@dataclass
class PipelineResult:
    population: pd.DataFrame
    status: pd.DataFrame
    health: pd.DataFrame
    merged: pd.DataFrame
    summary: pd.DataFrame
    diagnostics: MergeDiagnostics


def _load_population(config: PipelineConfig) -> pd.DataFrame:
    schema = config.schema
    raw = read_table(
        config.population_path,
        sheet_name=config.population_sheet or schema.sheet_name,
        skiprows=schema.skiprows,
    )
    population = load_population(raw, schema=schema, target_year=config.target_year)
    logger.info("Population loaded: %d countries from %d rows", len(population), len(raw))
    return population


def _load_status(config: PipelineConfig) -> pd.DataFrame:
    raw = read_table(config.mortality_path, sheet_name=config.mortality_sheet)
    status = load_mortality_status(raw, status_map=config.status_map)
    logger.info("U5MR classification loaded: %d countries from %d rows", len(status), len(raw))
    return status


def _health_loader(indicator: str, path: Path, sheet: Optional[str]) -> Callable[[PipelineConfig], pd.DataFrame]:
    def load(config: PipelineConfig) -> pd.DataFrame:
        raw = read_table(path, sheet_name=sheet)
        observations = load_health_indicator(
            raw, indicator, min_year=config.min_year, max_year=config.max_year
        )
        logger.info("%s loaded: %d observations from %d rows", indicator, len(observations), len(raw))
        return observations

    return load


def load_sources(config: PipelineConfig) -> Dict[str, pd.DataFrame]:
    """
    Read and tidy the four inputs.

    The loaders share no state, so with ``parallel_loads`` they run on a
    thread pool; this returns only once all four are done.
    """

    loaders: Dict[str, Callable[[PipelineConfig], pd.DataFrame]] = {
        "population": _load_population,
        "status": _load_status,
        ANC4: _health_loader(ANC4, config.anc4_path, config.anc4_sheet),
        SBA: _health_loader(SBA, config.sba_path, config.sba_sheet),
    }
    if not config.parallel_loads:
        return {name: load(config) for name, load in loaders.items()}

    with ThreadPoolExecutor(max_workers=len(loaders)) as pool:
        futures = {name: pool.submit(load, config) for name, load in loaders.items()}
        return {name: future.result() for name, future in futures.items()}


def run_pipeline(config: PipelineConfig) -> PipelineResult:
    """Validate the config, then load, dedupe, merge and aggregate."""
    config.validate()
    sources = load_sources(config)

    health = dedupe_latest(
        combine_health([sources[ANC4], sources[SBA]]),
        min_year=config.min_year,
        max_year=config.max_year,
    )
    merged, diagnostics = merge_sources_with_diagnostics(
        health, sources["status"], sources["population"]
    )
    summary = aggregate_coverage(merged)

    gaps = missing_groups(summary)
    if gaps:
        logger.warning(
            "No coverage for: %s",
            ", ".join(f"{indicator} ({status})" for status, indicator in gaps),
        )
    return PipelineResult(
        population=sources["population"],
        status=sources["status"],
        health=health,
        merged=merged,
        summary=summary,
        diagnostics=diagnostics,
    )


def build_report(result: PipelineResult, config: PipelineConfig) -> ReportArtifacts:
    write_merged_dataset(result.merged, Path(config.output_dir) / MERGED_PARQUET)
    return write_report(
        result.summary,
        config.output_dir,
        report_name=config.report_name,
        fmt=config.report_format,
        context={
            "min_year": config.min_year,
            "max_year": config.max_year,
            "target_year": config.target_year,
        },
    )


def _parse_args():
    parser = argparse.ArgumentParser(
        description="Compute births-weighted ANC4 and SBA coverage by U5MR track status.",
    )
    parser.add_argument("--population", dest="population_path", type=Path, help="WPP births table (.xlsx or .csv).")
    parser.add_argument("--population-sheet", help="Sheet name in the WPP workbook.")
    parser.add_argument(
        "--population-schema",
        help="WPP layout: wpp_estimates (default) or wpp_long.",
    )
    parser.add_argument("--mortality", dest="mortality_path", type=Path, help="U5MR classification table.")
    parser.add_argument("--mortality-sheet", help="Sheet name in the U5MR workbook.")
    parser.add_argument("--anc4", dest="anc4_path", type=Path, help="UNICEF ANC4 export.")
    parser.add_argument("--anc4-sheet", help="Sheet name when the ANC4 export is a workbook.")
    parser.add_argument("--sba", dest="sba_path", type=Path, help="UNICEF SBA export.")
    parser.add_argument("--sba-sheet", help="Sheet name when the SBA export is a workbook.")
    parser.add_argument("--target-year", type=int, help="Year of the births weights (default 2022).")
    parser.add_argument("--min-year", type=int, help="First survey year considered (default 2018).")
    parser.add_argument("--max-year", type=int, help="Last survey year considered (default 2022).")
    parser.add_argument("--output-dir", type=Path, help="Directory for the report artifacts.")
    parser.add_argument("--report-name", help="File name (without extension) of the report.")
    parser.add_argument("--format", dest="report_format", choices=REPORT_FORMATS, help="Report document format.")
    parser.add_argument(
        "--parallel",
        dest="parallel_loads",
        action="store_true",
        default=None,
        help="Load the four inputs concurrently.",
    )
    parser.add_argument("--no-report", action="store_true", help="Print the summary without writing files.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log unmatched countries.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _parse_args()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = vars(args).copy()
    no_report = overrides.pop("no_report")
    overrides.pop("verbose")
    try:
        config = PipelineConfig.from_env(**overrides)
        result = run_pipeline(config)
        print(result.summary[["track_status", "indicator", "weighted_coverage"]].to_string(index=False))
        if not no_report:
            artifacts = build_report(result, config)
            logger.info("Report saved to %s", artifacts.document)
    except PipelineError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
