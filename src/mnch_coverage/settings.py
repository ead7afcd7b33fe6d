"""
Configuration for a coverage pipeline run.

Defaults point at the conventional project layout; every path and window can
be overridden through ``MNCH_*`` environment variables or CLI flags. The
resulting :class:`PipelineConfig` is passed explicitly to the pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

from .errors import ConfigurationError
from .ingest_health import DEFAULT_MAX_YEAR, DEFAULT_MIN_YEAR
from .ingest_mortality import DEFAULT_STATUS_MAP
from .ingest_population import DEFAULT_TARGET_YEAR, POPULATION_SCHEMAS, PopulationSchema
from .sources import CSV_SUFFIXES, EXCEL_SUFFIXES

# Raw snapshots and outputs, relative to the directory the run starts in
DATA_DIR = Path("01_rawdata")
OUTPUT_DIR = Path("03_outputs")
DATA_DIR_ENV = "MNCH_DATA_DIR"

DEFAULT_POPULATION_FILE = "WPP2022_GEN_F01_DEMOGRAPHIC_INDICATORS_COMPACT_REV1.xlsx"
DEFAULT_MORTALITY_FILE = "On-track and off-track countries.xlsx"
DEFAULT_ANC4_FILE = "GLOBAL_DATAFLOW_ANC4_2018-2022.csv"
DEFAULT_SBA_FILE = "GLOBAL_DATAFLOW_SBA_2018-2022.csv"

DEFAULT_FILES = {
    "population_path": DEFAULT_POPULATION_FILE,
    "mortality_path": DEFAULT_MORTALITY_FILE,
    "anc4_path": DEFAULT_ANC4_FILE,
    "sba_path": DEFAULT_SBA_FILE,
}

REPORT_FORMATS = ("html", "markdown")

# Setting name -> environment variable
ENV_VARS: Dict[str, str] = {
    "population_path": "MNCH_POPULATION_PATH",
    "population_sheet": "MNCH_POPULATION_SHEET",
    "population_schema": "MNCH_POPULATION_SCHEMA",
    "mortality_path": "MNCH_MORTALITY_PATH",
    "mortality_sheet": "MNCH_MORTALITY_SHEET",
    "anc4_path": "MNCH_ANC4_PATH",
    "anc4_sheet": "MNCH_ANC4_SHEET",
    "sba_path": "MNCH_SBA_PATH",
    "sba_sheet": "MNCH_SBA_SHEET",
    "target_year": "MNCH_TARGET_YEAR",
    "min_year": "MNCH_MIN_YEAR",
    "max_year": "MNCH_MAX_YEAR",
    "output_dir": "MNCH_OUTPUT_DIR",
    "report_name": "MNCH_REPORT_NAME",
    "report_format": "MNCH_REPORT_FORMAT",
    "parallel_loads": "MNCH_PARALLEL_LOADS",
}

_PATH_SETTINGS = ("population_path", "mortality_path", "anc4_path", "sba_path", "output_dir")
_INT_SETTINGS = ("target_year", "min_year", "max_year")


@dataclass(frozen=True)
class PipelineConfig:
    population_path: Path = DATA_DIR / DEFAULT_POPULATION_FILE
    mortality_path: Path = DATA_DIR / DEFAULT_MORTALITY_FILE
    anc4_path: Path = DATA_DIR / DEFAULT_ANC4_FILE
    sba_path: Path = DATA_DIR / DEFAULT_SBA_FILE
    population_sheet: Optional[str] = None
    mortality_sheet: Optional[str] = None
    anc4_sheet: Optional[str] = None
    sba_sheet: Optional[str] = None
    population_schema: str = "wpp_estimates"
    target_year: int = DEFAULT_TARGET_YEAR
    min_year: int = DEFAULT_MIN_YEAR
    max_year: int = DEFAULT_MAX_YEAR
    status_map: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_STATUS_MAP))
    output_dir: Path = OUTPUT_DIR
    report_name: str = "coverage_report"
    report_format: str = "html"
    parallel_loads: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """
        Build a config from defaults, then ``MNCH_*`` variables, then overrides.

        Input files default to their conventional names under ``MNCH_DATA_DIR``
        (read at call time), unless a path variable or override names them.

        Overrides set to ``None`` are ignored so argparse namespaces can be
        passed through unchanged.
        """

        data_dir = Path(os.getenv(DATA_DIR_ENV) or DATA_DIR)
        values = {name: data_dir / filename for name, filename in DEFAULT_FILES.items()}
        for name, env_var in ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw:
                values[name] = _parse_setting(name, raw, env_var)
        values.update({k: v for k, v in overrides.items() if v is not None})
        for name in _PATH_SETTINGS:
            if name in values:
                values[name] = Path(values[name])
        unknown = set(values) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return cls(**values)

    def with_overrides(self, **overrides) -> "PipelineConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def schema(self) -> PopulationSchema:
        return _lookup_schema(self.population_schema)

    def input_paths(self) -> Dict[str, Path]:
        return {
            "population_path": Path(self.population_path),
            "mortality_path": Path(self.mortality_path),
            "anc4_path": Path(self.anc4_path),
            "sba_path": Path(self.sba_path),
        }

    def validate(self) -> None:
        """Fail before any processing if a setting or input file is unusable."""
        for name, path in self.input_paths().items():
            if not path.exists():
                raise ConfigurationError(
                    f"Input file for {name} not found: {path} "
                    f"(set {ENV_VARS[name]} or pass it on the command line)"
                )
            if path.suffix.lower() not in CSV_SUFFIXES + EXCEL_SUFFIXES:
                raise ConfigurationError(
                    f"Unsupported file type for {name}: {path.name}. "
                    "Please use .csv or .xlsx."
                )
        _lookup_schema(self.population_schema)
        if self.min_year > self.max_year:
            raise ConfigurationError(
                f"min_year ({self.min_year}) is after max_year ({self.max_year})"
            )
        if self.report_format not in REPORT_FORMATS:
            raise ConfigurationError(
                f"Unsupported report format {self.report_format!r}; "
                f"choose from {', '.join(REPORT_FORMATS)}"
            )


def _parse_setting(name: str, raw: str, env_var: str):
    if name in _INT_SETTINGS:
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{env_var} must be a year, got {raw!r}") from None
    if name == "parallel_loads":
        return raw.lower() == "true"
    return raw


def _lookup_schema(name: str) -> PopulationSchema:
    try:
        return POPULATION_SCHEMAS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown population schema {name!r} "
            f"(set {ENV_VARS['population_schema']}; "
            f"choose from {', '.join(POPULATION_SCHEMAS)})"
        ) from None
