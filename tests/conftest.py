import os

import pandas as pd
import pytest

from mnch_coverage.ingest_health import INDICATOR_DESCRIPTIONS
from mnch_coverage.settings import DATA_DIR_ENV, ENV_VARS

ANC4_LABEL = "MNCH_ANC4: " + INDICATOR_DESCRIPTIONS["ANC4"]
SBA_LABEL = "MNCH_SAB: " + INDICATOR_DESCRIPTIONS["SBA"]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for env_var in list(ENV_VARS.values()) + [DATA_DIR_ENV]:
        if env_var in os.environ:
            monkeypatch.delenv(env_var)


def wpp_estimates_frame() -> pd.DataFrame:
    rows = [
        # type, name, iso3, year, births (thousands)
        ("World", "WORLD", None, 2022, 133975.0),
        ("Region", "Southern Asia", None, 2022, 35000.0),
        ("Country/Area", "Afghanistan", "AFG", 2021, 1400.0),
        ("Country/Area", "Afghanistan", "AFG", 2022, 1500.0),
        ("Country/Area", "Brazil", "BRA", 2022, 2600.0),
        ("Country/Area", "India", "IND", 2022, 23000.0),
        ("Country/Area", "Viet Nam", "VNM", 2022, 1500.0),
        ("Country/Area", "France", "FRA", 2022, 700.0),
        ("Country/Area", "Nigeria", "NGA", 2022, 7900.0),
    ]
    return pd.DataFrame(
        {
            "Index": range(1, len(rows) + 1),
            "Variant": "Estimates",
            "Region, subregion, country or area *": [r[1] for r in rows],
            "Notes": None,
            "ISO3 Alpha-code": [r[2] for r in rows],
            "Type": [r[0] for r in rows],
            "Year": [r[3] for r in rows],
            "Births (thousands)": [r[4] for r in rows],
        }
    )


def mortality_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "ISO3Code": ["AFG", "BRA", "IND", "VNM", "NGA", "BRA"],
            "OfficialName": [
                "Afghanistan",
                "Brazil",
                "India",
                "Viet Nam",
                "Nigeria",
                "Brazil",
            ],
            "Status.U5MR": [
                "Acceleration Needed",
                "Achieved",
                "Acceleration Needed",
                "On Track",
                "Not assessed",
                "Acceleration Needed",
            ],
            "UNICEFReportingRegion": ["SA", "LAC", "SA", "EAP", "WCA", "LAC"],
        }
    )


def health_frame(label: str, rows) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "DATAFLOW": "UNICEF:GLOBAL_DATAFLOW(1.0)",
            "Geographic area": [r[0] for r in rows],
            "Indicator": [r[3] if len(r) > 3 else label for r in rows],
            "Sex": "Female",
            "TIME_PERIOD": [r[1] for r in rows],
            "OBS_VALUE": [r[2] for r in rows],
        }
    )


def anc4_frame() -> pd.DataFrame:
    return health_frame(
        ANC4_LABEL,
        [
            ("AFG: Afghanistan", "2019", "20"),
            ("AFG: Afghanistan", "2021", "28"),
            ("BRA: Brazil", "2020", "90"),
            ("IND: India", "2021", "58"),
            ("VNM: Viet Nam", "2020", "N/A"),
            ("VNM: Viet Nam", "2017", "80"),
            ("NGA: Nigeria", "2021", "60"),
            ("FRA: France", "2019", "95"),
            ("UNICEF_SA: South Asia", "2021", "50"),
            ("IND: India", "2021", "70", "MNCH_ANC1: Antenatal care 1+ visit"),
        ],
    )


def sba_frame() -> pd.DataFrame:
    return health_frame(
        SBA_LABEL,
        [
            ("AFG: Afghanistan", "2018", "60"),
            ("BRA: Brazil", "2021", "99"),
            ("IND: India", "2020", "89"),
            ("VNM: Viet Nam", "2021", "96"),
        ],
    )


@pytest.fixture
def input_files(tmp_path):
    """The four inputs laid out as downloaded: two workbooks and two CSVs."""
    raw_dir = tmp_path / "01_rawdata"
    raw_dir.mkdir()
    paths = {
        "population_path": raw_dir / "wpp.xlsx",
        "mortality_path": raw_dir / "u5mr.xlsx",
        "anc4_path": raw_dir / "anc4.csv",
        "sba_path": raw_dir / "sba.csv",
    }
    # WPP workbooks carry 16 rows of title block above the header
    title_block = pd.DataFrame({"title": [f"United Nations Population Division ({i})" for i in range(16)]})
    with pd.ExcelWriter(paths["population_path"]) as writer:
        title_block.to_excel(writer, sheet_name="Estimates", header=False, index=False)
        wpp_estimates_frame().to_excel(writer, sheet_name="Estimates", startrow=16, index=False)
    mortality_frame().to_excel(paths["mortality_path"], index=False)
    anc4_frame().to_csv(paths["anc4_path"], index=False)
    sba_frame().to_csv(paths["sba_path"], index=False)
    return paths
