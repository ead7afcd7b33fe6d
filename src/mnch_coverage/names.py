"""
Country name normalization used as the fallback join key.

UN, UNICEF and WPP tables spell the same country differently
("Viet Nam", "Türkiye", "Bolivia (Plurinational State of)"). ISO3 codes are
preferred whenever a source provides one; names only matter when it does not.
"""

from __future__ import annotations

import math
import re
import unicodedata
from typing import Dict

import pandas as pd

_PARENTHETICAL = re.compile(r"\([^()]*\)")
_MARKERS = re.compile(r"[*#\u00a0\u202f\u2007\ufeff]")
_WHITESPACE = re.compile(r"\s+")
_ISO3 = re.compile(r"[A-Za-z]{3}")

# Exact matches against the cleaned string (after parentheses, markers and
# diacritics are gone).
NAME_ALIASES: Dict[str, str] = {
    "United States of America": "United States",
    "Russian Federation": "Russia",
    "Viet Nam": "Vietnam",
    "United Kingdom of Great Britain and Northern Ireland": "United Kingdom",
    "Republic of Korea": "South Korea",
    "Korea, Republic of": "South Korea",
    "Democratic People's Republic of Korea": "North Korea",
    "Korea, Democratic People's Republic of": "North Korea",
    "Lao People's Democratic Republic": "Laos",
    "Syrian Arab Republic": "Syria",
    "United Republic of Tanzania": "Tanzania",
    "Tanzania, United Republic of": "Tanzania",
    "Republic of Moldova": "Moldova",
    "Moldova, Republic of": "Moldova",
    "Democratic Republic of the Congo": "DR Congo",
    "Congo, Democratic Republic of the": "DR Congo",
    "Iran, Islamic Republic of": "Iran",
    "State of Palestine": "Palestine",
    "Brunei Darussalam": "Brunei",
    "Cabo Verde": "Cape Verde",
    "Turkiye": "Turkey",
    "Czech Republic": "Czechia",
    "Swaziland": "Eswatini",
}


def _fold_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(raw) -> str:
    """
    Canonicalize a free-text country name.

    Never raises: missing values come back as an empty string and anything
    no rule applies to is returned trimmed.
    """

    if raw is None or raw is pd.NA or (isinstance(raw, float) and math.isnan(raw)):
        return ""
    text = str(raw).strip()
    previous = None
    while previous != text:
        previous = text
        text = _PARENTHETICAL.sub("", text)
    text = _MARKERS.sub(" ", text)
    text = _fold_diacritics(text)
    text = _WHITESPACE.sub(" ", text).strip()
    text = NAME_ALIASES.get(text, text)
    return text.strip()


def is_iso3(code) -> bool:
    """True when ``code`` is exactly three ASCII letters once trimmed."""
    if not isinstance(code, str):
        return False
    return _ISO3.fullmatch(code.strip()) is not None


def join_key(iso3, name) -> str:
    """Upper-cased ISO3 when valid, otherwise the normalized name."""
    if is_iso3(iso3):
        return iso3.strip().upper()
    return normalize(name)
