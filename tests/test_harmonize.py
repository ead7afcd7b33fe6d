import pandas as pd
import pytest

from mnch_coverage.harmonize import (
    MERGED_COLUMNS,
    combine_health,
    dedupe_latest,
    merge_sources,
    merge_sources_with_diagnostics,
    write_merged_dataset,
)
from mnch_coverage.ingest_population import BIRTHS_COLUMN


def observations(rows):
    return pd.DataFrame(rows, columns=["join_key", "country", "indicator", "year", "value"])


def status_table(rows):
    return pd.DataFrame(rows, columns=["join_key", "country", "raw_status", "track_status"])


def population_table(rows):
    return pd.DataFrame(rows, columns=["join_key", "country", BIRTHS_COLUMN])


def test_dedupe_keeps_latest_year_in_window():
    health = observations(
        [
            ("KEN", "Kenya", "ANC4", 2019, 55.0),
            ("KEN", "Kenya", "ANC4", 2021, 66.0),
            ("KEN", "Kenya", "ANC4", 2023, 70.0),
        ]
    )
    latest = dedupe_latest(health, min_year=2018, max_year=2022)
    assert latest["year"].to_list() == [2021]
    assert latest["value"].to_list() == [66.0]


def test_dedupe_ties_keep_first_row():
    health = observations(
        [
            ("KEN", "Kenya", "SBA", 2020, 61.0),
            ("KEN", "Kenya", "SBA", 2020, 62.0),
        ]
    )
    assert dedupe_latest(health)["value"].to_list() == [61.0]


def test_dedupe_is_per_indicator_and_sorted():
    health = observations(
        [
            ("PER", "Peru", "SBA", 2018, 90.0),
            ("KEN", "Kenya", "SBA", 2019, 70.0),
            ("KEN", "Kenya", "ANC4", 2020, 60.0),
        ]
    )
    latest = dedupe_latest(health)
    assert list(zip(latest["join_key"], latest["indicator"])) == [
        ("KEN", "ANC4"),
        ("KEN", "SBA"),
        ("PER", "SBA"),
    ]


def test_combine_health_of_nothing_is_empty():
    assert combine_health([]).empty


def test_merge_excludes_every_kind_of_miss():
    health = observations(
        [
            ("KEN", "Kenya", "ANC4", 2021, 60.0),
            ("PER", "Peru", "ANC4", 2021, 90.0),
            ("FRA", "France", "ANC4", 2021, 95.0),
            ("NGA", "Nigeria", "ANC4", 2021, 50.0),
            ("TCD", "Chad", "ANC4", 2021, 30.0),
        ]
    )
    status = status_table(
        [
            ("KEN", "Kenya", "Achieved", "on-track"),
            ("PER", "Peru", "Achieved", "on-track"),
            ("NGA", "Nigeria", "Not assessed", "unclassified"),
            ("TCD", "Chad", "Acceleration needed", "off-track"),
        ]
    )
    population = population_table(
        [
            ("KEN", "Kenya", 1_400_000.0),
            ("NGA", "Nigeria", 7_900_000.0),
            ("TCD", "Chad", float("nan")),
        ]
    )
    merged, diagnostics = merge_sources_with_diagnostics(health, status, population)

    assert merged["join_key"].to_list() == ["KEN"]
    assert list(merged.columns) == MERGED_COLUMNS
    assert diagnostics.no_status == ["FRA"]
    assert diagnostics.unclassified == ["NGA"]
    assert diagnostics.no_population == ["PER"]
    assert diagnostics.missing_births == ["TCD"]
    assert diagnostics.dropped_rows == 4


def test_merged_keys_exist_once_in_each_source():
    health = observations(
        [
            ("KEN", "Kenya", "ANC4", 2021, 60.0),
            ("KEN", "Kenya", "SBA", 2020, 70.0),
        ]
    )
    status = status_table([("KEN", "Kenya", "Achieved", "on-track")])
    population = population_table([("KEN", "Kenya", 1_400_000.0)])
    merged = merge_sources(health, status, population)
    assert len(merged) == 2
    for key in merged["join_key"]:
        assert (health["join_key"] == key).sum() == 2
        assert (status["join_key"] == key).sum() == 1
        assert (population["join_key"] == key).sum() == 1


def test_merge_requires_unique_lookup_keys():
    health = observations([("KEN", "Kenya", "ANC4", 2021, 60.0)])
    status = status_table(
        [
            ("KEN", "Kenya", "Achieved", "on-track"),
            ("KEN", "Kenya", "Acceleration needed", "off-track"),
        ]
    )
    population = population_table([("KEN", "Kenya", 1.0)])
    with pytest.raises(pd.errors.MergeError):
        merge_sources(health, status, population)


def test_write_merged_dataset(tmp_path):
    merged = pd.DataFrame(
        [("KEN", "Kenya", "ANC4", 2021, 60.0, "on-track", 1_400_000.0)],
        columns=MERGED_COLUMNS,
    )
    path = write_merged_dataset(merged, tmp_path / "out" / "merged.parquet")
    pd.testing.assert_frame_equal(pd.read_parquet(path), merged)
