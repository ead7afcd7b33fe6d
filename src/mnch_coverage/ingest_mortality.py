"""
Load the under-five mortality (U5MR) target classification.
"""

from __future__ import annotations

import re
from typing import Dict, Mapping, Optional

import pandas as pd

from .names import join_key, normalize
from .sources import select_columns, text

ON_TRACK = "on-track"
OFF_TRACK = "off-track"
UNCLASSIFIED = "unclassified"
TRACK_STATUSES = (ON_TRACK, OFF_TRACK)

STATUS_COLUMNS = ["join_key", "country", "raw_status", "track_status"]

# Keys and statuses are compared after trimming, lower-casing and collapsing spaces.
DEFAULT_STATUS_MAP: Dict[str, str] = {
    "achieved": ON_TRACK,
    "on track": ON_TRACK,
    "on-track": ON_TRACK,
    "acceleration needed": OFF_TRACK,
}

MORTALITY_SOURCE_COLUMNS = {
    "iso3": ["ISO3Code", "ISO3", "ISO Code"],
    "name": ["OfficialName", "Country"],
    "raw_status": ["Status.U5MR", "Status U5MR"],
}


def _status_key(raw: str) -> str:
    return re.sub(r"\s+", " ", raw.strip().lower())


def status_lookup(status_map: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Mapping table keyed the way incoming statuses are compared."""
    mapping = DEFAULT_STATUS_MAP if status_map is None else status_map
    return {_status_key(str(key)): value for key, value in mapping.items()}


def _classify(raw, lookup: Mapping[str, str]) -> str:
    if not isinstance(raw, str):
        return UNCLASSIFIED
    status = lookup.get(_status_key(raw), UNCLASSIFIED)
    if status not in TRACK_STATUSES:
        return UNCLASSIFIED
    return status


def classify_status(raw, status_map: Optional[Mapping[str, str]] = None) -> str:
    """Map a source status string to on-track, off-track or unclassified."""
    return _classify(raw, status_lookup(status_map))


def load_mortality_status(
    raw: pd.DataFrame,
    status_map: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """
    One classification per country, first occurrence wins.

    Unmapped statuses are kept as ``unclassified`` so that the merge stage
    can account for them; they never reach the aggregate.
    """

    df = select_columns(raw, MORTALITY_SOURCE_COLUMNS, "mortality status")
    keys = [join_key(code, name) for code, name in zip(text(df["iso3"]), df["name"])]
    tidy = pd.DataFrame(
        {
            "join_key": keys,
            "country": df["name"].map(normalize).to_list(),
            "raw_status": text(df["raw_status"]).to_list(),
        }
    )
    lookup = status_lookup(status_map)
    tidy["track_status"] = tidy["raw_status"].map(
        lambda status: _classify(status, lookup)
    )
    tidy = tidy[tidy["join_key"] != ""]
    tidy = tidy.drop_duplicates(subset=["join_key"], keep="first")
    return tidy[STATUS_COLUMNS].reset_index(drop=True)
