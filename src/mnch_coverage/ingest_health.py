"""
Ingestion helpers for UNICEF ANC4 and SBA coverage exports.
"""

from __future__ import annotations

import logging
import re
from typing import Dict

import pandas as pd

from .names import join_key, normalize
from .sources import coerce_numeric, select_columns, split_area, text

logger = logging.getLogger(__name__)

ANC4 = "ANC4"
SBA = "SBA"
INDICATORS = (ANC4, SBA)

DEFAULT_MIN_YEAR = 2018
DEFAULT_MAX_YEAR = 2022

HEALTH_COLUMNS = ["join_key", "country", "indicator", "year", "value"]

# Long-form descriptions as published in the UNICEF data warehouse.
INDICATOR_DESCRIPTIONS: Dict[str, str] = {
    ANC4: (
        "Antenatal care 4+ visits - percentage of women (aged 15-49 years) "
        "attended at least four times during pregnancy by any provider"
    ),
    SBA: (
        "Skilled birth attendant - percentage of deliveries attended by "
        "skilled health personnel"
    ),
}

HEALTH_SOURCE_COLUMNS = {
    "area": ["Geographic area", "REF_AREA:Geographic area", "Country or area"],
    "description": ["Indicator", "INDICATOR:Indicator"],
    "year": ["TIME_PERIOD", "TIME_PERIOD:Time period", "TimePeriod"],
    "value": ["OBS_VALUE", "OBS_VALUE:Observation Value", "ObsValue"],
}

# Disaggregated exports repeat each country-year per category; only the
# national total is kept. Blank cells count as the total.
BREAKDOWN_COLUMNS = {
    "residence": ["Residence", "RESIDENCE:Residence"],
    "wealth_quintile": ["Wealth Quintile", "WEALTH_QUINTILE:Wealth Quintile"],
}
TOTAL_CATEGORY = "Total"

# SDMX exports prefix labels with their code, e.g. "MNCH_ANC4: Antenatal ...".
_CODE_PREFIX = re.compile(r"^[A-Z0-9_]+:\s*")


def _strip_code_prefix(series: pd.Series) -> pd.Series:
    return text(series).str.replace(_CODE_PREFIX, "", regex=True)


def _national_totals(raw: pd.DataFrame) -> pd.Series:
    keep = pd.Series(True, index=raw.index)
    for candidates in BREAKDOWN_COLUMNS.values():
        found = next((c for c in candidates if c in raw.columns), None)
        if found is not None:
            keep &= _strip_code_prefix(raw[found]).isin([TOTAL_CATEGORY, ""])
    return keep


def load_health_indicator(
    raw: pd.DataFrame,
    indicator: str,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> pd.DataFrame:
    """
    Tidy one coverage export into health observations.

    Parameters
    ----------
    raw:
        Table as read from the CSV or workbook.
    indicator:
        ``"ANC4"`` or ``"SBA"``; selects which description rows are kept.
    min_year, max_year:
        Inclusive window of survey years to keep.

    Rows with an unparseable year or a value outside [0, 100] are dropped,
    as are residence or wealth-quintile breakdowns other than the total.
    Several years per country survive; :func:`harmonize.dedupe_latest`
    picks the one that is used.
    """

    if indicator not in INDICATOR_DESCRIPTIONS:
        raise ValueError(f"Unknown indicator {indicator!r}; expected one of {INDICATORS}")

    df = select_columns(raw, HEALTH_SOURCE_COLUMNS, f"{indicator} coverage")
    df = df[_national_totals(raw)]
    df = df[_strip_code_prefix(df["description"]) == INDICATOR_DESCRIPTIONS[indicator]]

    year = coerce_numeric(df["year"])
    value = coerce_numeric(df["value"])
    keep = year.between(min_year, max_year) & value.between(0, 100)
    df, year, value = df[keep], year[keep], value[keep]

    codes, names = split_area(df["area"])
    keys = [join_key(code, name) for code, name in zip(codes, names)]
    countries = [normalize(name) or code for code, name in zip(codes, names)]
    tidy = pd.DataFrame(
        {
            "join_key": keys,
            "country": countries,
            "indicator": indicator,
            "year": year.astype(int).to_list(),
            "value": value.to_list(),
        }
    )
    tidy = tidy[tidy["join_key"] != ""]
    duplicated = tidy.duplicated(subset=["join_key", "indicator", "year"], keep="first")
    if duplicated.any():
        logger.warning(
            "%s: %d repeated country-year rows dropped, first kept (%s)",
            indicator,
            int(duplicated.sum()),
            ", ".join(sorted(set(tidy.loc[duplicated, "join_key"]))),
        )
    tidy = tidy[~duplicated]
    return tidy[HEALTH_COLUMNS].reset_index(drop=True)
