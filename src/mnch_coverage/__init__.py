"""
Births-weighted ANC4 and SBA coverage by under-five mortality track status.
"""

from .analysis import aggregate_coverage, missing_groups  # noqa: F401
from .harmonize import dedupe_latest, merge_sources  # noqa: F401
from .ingest_health import load_health_indicator  # noqa: F401
from .ingest_mortality import load_mortality_status  # noqa: F401
from .ingest_population import load_population  # noqa: F401
from .names import normalize  # noqa: F401
from .run_pipeline import run_pipeline  # noqa: F401
from .settings import PipelineConfig  # noqa: F401

__version__ = "0.1.0"
