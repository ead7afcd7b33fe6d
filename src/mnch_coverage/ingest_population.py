"""
Load projected live births from UN World Population Prospects tables.

Both WPP layouts we receive (the standard "Estimates" workbook and the long
indicator export) go through one loader driven by a :class:`PopulationSchema`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from .names import is_iso3, normalize
from .sources import coerce_numeric, matches, select_columns, text

BIRTHS_COLUMN = "births_2022"
POPULATION_COLUMNS = ["join_key", "country", BIRTHS_COLUMN]
DEFAULT_TARGET_YEAR = 2022


@dataclass(frozen=True)
class PopulationSchema:
    """
    Column layout of one WPP export.

    filters:
        (column, value) pairs a row must equal to be kept, e.g.
        ``("Variant", "Estimates")``.
    births_multiplier:
        Scale applied to the births column (1000 for "Births (thousands)").
    """

    name: str
    iso3_column: str
    year_column: str
    births_column: str
    country_column: Optional[str] = None
    filters: Tuple[Tuple[str, str], ...] = ()
    births_multiplier: float = 1.0
    sheet_name: Union[str, int, None] = None
    skiprows: Optional[int] = None


WPP_ESTIMATES = PopulationSchema(
    name="wpp_estimates",
    iso3_column="ISO3 Alpha-code",
    year_column="Year",
    births_column="Births (thousands)",
    country_column="Region, subregion, country or area *",
    filters=(("Type", "Country/Area"),),
    births_multiplier=1000.0,
    sheet_name="Estimates",
    skiprows=16,
)

WPP_LONG = PopulationSchema(
    name="wpp_long",
    iso3_column="ISO3",
    year_column="Year",
    births_column="Value",
    country_column="Location",
    filters=(
        ("Variant", "Estimates"),
        ("Type", "Total"),
        ("Sex", "Both sexes"),
        ("Indicator", "Live births"),
    ),
)

POPULATION_SCHEMAS: Dict[str, PopulationSchema] = {
    WPP_ESTIMATES.name: WPP_ESTIMATES,
    WPP_LONG.name: WPP_LONG,
}


def load_population(
    raw: pd.DataFrame,
    schema: PopulationSchema = WPP_ESTIMATES,
    target_year: int = DEFAULT_TARGET_YEAR,
) -> pd.DataFrame:
    """
    Reduce a WPP table to one births figure per country.

    Rows whose ISO3 code is not three letters are regional or global
    aggregates and are discarded. Unparseable births stay as NaN so the merge
    stage can exclude the country explicitly.
    """

    source = f"population ({schema.name})"
    wanted = {
        "iso3": [schema.iso3_column],
        "year": [schema.year_column],
        "births": [schema.births_column],
    }
    if schema.country_column:
        wanted["country"] = [schema.country_column]
    for column, _ in schema.filters:
        wanted[column] = [column]
    df = select_columns(raw, wanted, source)

    keep = coerce_numeric(df["year"]) == target_year
    for column, value in schema.filters:
        keep &= matches(df[column], value)
    df = df[keep]

    iso3 = text(df["iso3"]).str.upper()
    df = df.assign(join_key=iso3)
    df = df[df["join_key"].map(is_iso3).astype(bool)]

    if "country" in df.columns:
        country = df["country"].map(normalize)
    else:
        country = df["join_key"]
    tidy = pd.DataFrame(
        {
            "join_key": df["join_key"],
            "country": country,
            BIRTHS_COLUMN: coerce_numeric(df["births"]) * schema.births_multiplier,
        }
    )
    tidy = tidy.drop_duplicates(subset=["join_key"], keep="first")
    return tidy[POPULATION_COLUMNS].reset_index(drop=True)
