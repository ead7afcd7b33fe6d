import pytest

from test_report import summary_frame
from mnch_coverage.report import write_report

pytest.importorskip("streamlit")


def test_load_summary_reads_report_output(tmp_path):
    from mnch_coverage.dashboard import load_summary

    write_report(summary_frame(), tmp_path)
    summary = load_summary(str(tmp_path))
    assert summary["weighted_coverage"].to_list() == [88.1, 97.9, 56.2]
    assert list(summary.columns) == [
        "track_status",
        "indicator",
        "weighted_coverage",
        "countries",
        "total_births",
    ]
